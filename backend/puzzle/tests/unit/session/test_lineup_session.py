import json

import pytest

from puzzle.logic.enums import AppLifecycle, GuessOutcome, SessionStatus
from puzzle.session.lineup_session import LineupSession
from puzzle.tests.helpers import metadata_of, wait_until
from shared.dal.models import AttemptRecord


@pytest.fixture
async def session(lineup_content, repository, clock, attempt_ids):
    lineup_session = LineupSession("p-xi", lineup_content, repository, clock=clock, attempt_id_factory=attempt_ids)
    yield lineup_session
    lineup_session.teardown()
    await lineup_session.progress.drain()


def _guess(session: LineupSession, slot: int, text: str) -> None:
    session.select_slot(slot)
    session.submit_guess(text)


def _saved(found_slots, attempt_id="saved-1") -> AttemptRecord:
    return AttemptRecord(
        id=attempt_id,
        puzzle_id="p-xi",
        metadata=json.dumps({"found_slots": found_slots, "started_at": "2026-03-01T09:00:00+00:00", "version": 2}),
    )


class TestLineupSession:
    async def test_correct_guess_saves_found_slots(self, session, repository):
        session.start()
        _guess(session, 2, "Alexander-Arnold")
        await session.progress.drain()

        record = repository.records["attempt-1"]
        assert metadata_of(record)["found_slots"] == [2]
        assert metadata_of(record)["started_at"] == "2026-03-01T09:30:00+00:00"

    async def test_wrong_slot_feedback(self, session, repository):
        session.start()
        _guess(session, 1, "Mohamed Salah")

        assert session.state.last_guess_outcome == GuessOutcome.WRONG_SLOT
        assert session.state.flagged_index == 3
        assert repository.writes == []

    async def test_feedback_clears(self, session, monkeypatch):
        monkeypatch.setattr("puzzle.session.lineup_session.FEEDBACK_SECONDS", 0.01)
        session.start()
        _guess(session, 1, "Jordan Henderson")
        assert session.state.last_guess_outcome == GuessOutcome.INCORRECT

        await wait_until(lambda: session.state.last_guess_outcome is None)
        assert session.state.selected_slot == 1

    async def test_deselect(self, session):
        session.start()
        session.select_slot(1)
        session.deselect_slot()
        assert session.state.selected_slot is None

    async def test_completion_writes_final_attempt(self, session, repository):
        session.start()
        _guess(session, 1, "van Dijk")
        _guess(session, 2, "Alexander-Arnold")
        _guess(session, 3, "Mohamed Salah")
        await session.progress.drain()

        assert session.state.status == SessionStatus.COMPLETE
        final = repository.records["attempt-1"]
        assert final.completed
        assert final.score == 3
        assert final.score_display == "3/3"
        assert metadata_of(final)["gave_up"] is False
        assert metadata_of(final)["version"] == 3

    async def test_give_up_writes_final_attempt_once(self, session, repository):
        session.start()
        session.give_up()
        session.give_up()
        await session.progress.drain()

        assert session.state.status == SessionStatus.GAVE_UP
        finals = [write for write in repository.writes if write.completed]
        assert len(finals) == 1
        assert finals[0].score == 0
        assert metadata_of(finals[0])["gave_up"] is True

    async def test_failed_write_does_not_affect_play(self, session, repository):
        repository.fail_writes = True
        session.start()
        _guess(session, 1, "van Dijk")
        await session.progress.drain()

        assert session.state.slots[1].is_found
        assert session.state.status == SessionStatus.PLAYING

    async def test_inactive_is_ignored(self, session, repository):
        session.start()
        _guess(session, 1, "van Dijk")
        await session.progress.drain()
        session.on_app_state_change(AppLifecycle.INACTIVE)
        await session.progress.drain()

        assert len(repository.writes) == 1


class TestLineupResume:
    async def test_restores_found_slots(self, session, repository):
        repository.seed(_saved([1, 3]))

        assert await session.mount() is True
        assert session.state.found_slots == (1, 3)
        assert session.state.attempt_id == "saved-1"
        assert session.state.started_at.isoformat() == "2026-03-01T09:00:00+00:00"

    async def test_slot_that_was_never_hidden_rejects_snapshot(self, session, repository):
        repository.seed(_saved([0]))

        assert await session.mount() is False
        assert session.state.status == SessionStatus.IDLE

    async def test_out_of_range_slot_rejects_snapshot(self, session, repository):
        repository.seed(_saved([11]))
        assert await session.mount() is False

    async def test_mount_after_start_is_ignored(self, session, repository):
        repository.seed(_saved([1]))
        session.start()

        assert await session.mount() is False
        assert session.state.found_count == 0

    async def test_resumed_game_completes_same_attempt(self, session, repository):
        repository.seed(_saved([1, 3]))
        await session.mount()
        _guess(session, 2, "Alexander-Arnold")
        await session.progress.drain()

        final = repository.records["saved-1"]
        assert final.completed
        assert final.started_at.isoformat() == "2026-03-01T09:00:00+00:00"
        assert "attempt-1" not in repository.records
