import json
from unittest.mock import MagicMock

import pytest
import structlog

from puzzle.logic.enums import AppLifecycle, GuessOutcome, SessionStatus
from puzzle.session.recall_session import RecallSession
from puzzle.tests.helpers import metadata_of, wait_until
from shared.dal.models import AttemptRecord

TICK = 0.01


@pytest.fixture
async def make_session(recall_content, repository, clock, attempt_ids):
    sessions: list[RecallSession] = []

    def _make(**kwargs) -> RecallSession:
        kwargs.setdefault("tick_interval", TICK)
        session = RecallSession(
            "p-recall",
            recall_content,
            repository,
            clock=clock,
            attempt_id_factory=attempt_ids,
            **kwargs,
        )
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.teardown()
        await session.progress.drain()


def _saved_progress(**overrides) -> AttemptRecord:
    metadata = {"found_scorers": ["sadio mane"], "time_remaining": 30, "started_at": None, "version": 4}
    metadata.update(overrides)
    return AttemptRecord(id="saved-1", puzzle_id="p-recall", metadata=json.dumps(metadata))


class TestPlay:
    async def test_start_runs_the_countdown(self, make_session):
        session = make_session(time_limit=60)
        session.start()

        assert session.state.status == SessionStatus.PLAYING
        assert session.timer.is_running
        await wait_until(lambda: session.state.time_remaining < 60)
        assert session.state.time_remaining == session.timer.time_remaining

    async def test_correct_guess_saves_progress(self, make_session, repository):
        session = make_session()
        session.start()
        session.submit_guess("Mohamed Salah")
        await session.progress.drain()

        record = repository.records["attempt-1"]
        assert not record.completed
        metadata = metadata_of(record)
        assert metadata["found_scorers"] == ["mohamed salah"]
        assert metadata["version"] == 1
        assert session.state.attempt_id == "attempt-1"

    async def test_wrong_guess_writes_nothing(self, make_session, repository):
        session = make_session()
        session.start()
        session.submit_guess("Steven Gerrard")
        await session.progress.drain()

        assert session.state.last_guess_outcome == GuessOutcome.INCORRECT
        assert repository.writes == []
        assert session.state.attempt_id is None

    async def test_feedback_clears_after_delay(self, make_session, monkeypatch):
        monkeypatch.setattr("puzzle.session.recall_session.MISS_FEEDBACK_SECONDS", 0.01)
        session = make_session()
        session.start()
        session.submit_guess("Steven Gerrard")

        await wait_until(lambda: session.state.last_guess_outcome is None)

    async def test_finding_everyone_wins_and_saves_once(self, make_session, repository):
        session = make_session()
        session.start()
        for guess in ("Mohamed Salah", "Mane", "Firmino"):
            session.submit_guess(guess)
        session.give_up()
        await session.progress.drain()

        assert session.state.status == SessionStatus.WON
        assert not session.timer.is_running
        final = repository.records["attempt-1"]
        assert final.completed
        assert final.score == 5
        assert final.score_display == "3/3"
        assert metadata_of(final)["won"] is True
        assert sum(1 for write in repository.writes if write.completed) == 1

    async def test_running_out_of_time_loses(self, make_session, repository):
        session = make_session(time_limit=2)
        session.start()
        session.submit_guess("Firmino")

        await wait_until(lambda: session.state.status == SessionStatus.LOST)
        await session.progress.drain()

        final = repository.records["attempt-1"]
        assert final.completed
        assert final.score == 2
        assert final.score_display == "1/3"
        metadata = metadata_of(final)
        assert metadata["time_remaining"] == 0
        assert metadata["scorers_found"] == 1
        assert metadata["won"] is False

    async def test_time_bonus_scoring(self, make_session, repository):
        session = make_session(time_limit=60, time_bonus=True)
        session.start()
        for guess in ("Mohamed Salah", "Mane", "Firmino"):
            session.submit_guess(guess)
        await session.progress.drain()

        final = repository.records["attempt-1"]
        remaining = session.state.time_remaining
        assert final.score == 3 + remaining * 2
        assert metadata_of(final)["time_bonus"] == remaining * 2

    async def test_final_save_requests_sync(self, make_session):
        sync_service = MagicMock()
        session = make_session(sync_service=sync_service)
        session.start()
        session.give_up()
        await session.progress.drain()

        sync_service.request_sync.assert_called_once_with()


class TestResume:
    async def test_mount_restores_progress_without_starting_timer(self, make_session, repository):
        repository.seed(_saved_progress())
        session = make_session()

        assert await session.mount() is True
        assert session.state.status == SessionStatus.PLAYING
        assert session.state.found_scorers == frozenset({"sadio mane"})
        assert session.timer.time_remaining == 30
        assert not session.timer.is_running

        session.resume()
        assert session.timer.is_running

    async def test_writes_continue_the_restored_attempt(self, make_session, repository):
        repository.seed(_saved_progress())
        session = make_session()
        await session.mount()
        session.submit_guess("Firmino")
        await session.progress.drain()

        record = repository.records["saved-1"]
        assert metadata_of(record)["version"] == 5
        assert sorted(metadata_of(record)["found_scorers"]) == ["roberto firmino", "sadio mane"]

    async def test_resume_with_no_time_left_loses(self, make_session, repository):
        repository.seed(_saved_progress(time_remaining=0))
        session = make_session()
        await session.mount()
        session.resume()

        assert session.state.status == SessionStatus.LOST

    async def test_malformed_metadata_is_skipped(self, make_session, repository):
        repository.seed(AttemptRecord(id="bad", puzzle_id="p-recall", metadata="not json"))
        session = make_session()

        assert await session.mount() is False
        assert session.state.status == SessionStatus.IDLE

    async def test_completed_attempt_is_not_resumed(self, make_session, repository):
        repository.seed(AttemptRecord(id="done", puzzle_id="p-recall", completed=True, score=5, metadata="{}"))
        session = make_session()

        assert await session.mount() is False


class TestLifecycle:
    async def test_background_flushes_progress(self, make_session, repository):
        session = make_session()
        session.start()
        session.submit_guess("Firmino")
        await session.progress.drain()
        session.on_app_state_change(AppLifecycle.BACKGROUND)
        await session.progress.drain()

        assert len(repository.writes) == 2
        assert metadata_of(repository.records["attempt-1"])["version"] == 2

    async def test_background_without_progress_writes_nothing(self, make_session, repository):
        session = make_session()
        session.start()
        session.on_app_state_change(AppLifecycle.BACKGROUND)
        await session.progress.drain()

        assert repository.writes == []

    async def test_active_nudges_sync(self, make_session):
        sync_service = MagicMock()
        session = make_session(sync_service=sync_service)
        session.on_app_state_change(AppLifecycle.ACTIVE)

        sync_service.on_foreground.assert_called_once_with()

    async def test_teardown_flushes_and_stops(self, make_session, repository):
        session = make_session()
        session.start()
        session.submit_guess("Firmino")
        session.teardown()
        await session.progress.drain()

        assert session.is_torn_down
        assert not session.timer.is_running
        assert len(repository.writes) == 2

        session.submit_guess("Mane")
        assert session.state.found_count == 1

    async def test_teardown_clears_log_context(self, make_session, repository):
        repository.seed(_saved_progress())
        session = make_session()
        await session.mount()
        assert structlog.contextvars.get_contextvars()["attempt_id"] == "saved-1"

        session.teardown()

        context = structlog.contextvars.get_contextvars()
        assert "puzzle_id" not in context
        assert "attempt_id" not in context

    async def test_reset_returns_to_idle(self, make_session):
        session = make_session()
        session.start()
        session.submit_guess("Firmino")
        session.reset()

        assert session.state.status == SessionStatus.IDLE
        assert session.state.found_count == 0
        assert session.state.attempt_id is None
        assert not session.timer.is_running
        assert session.timer.time_remaining == 60
        assert session.progress.version == 0
