"""
Score calculation for each puzzle mode.

All calculators are pure: they map progress counters into a frozen score
record and never look at anything but their arguments. Completion and "won"
are independent flags; a time-bounded game completed exactly as the clock hits
zero is complete but not won.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pydantic import BaseModel

from puzzle.logic.enums import ChainScoreLabel

if TYPE_CHECKING:
    from collections.abc import Sequence

RECALL_MAX_POINTS = 5
TIME_BONUS_MULTIPLIER = 2


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# ---------------------------------------------------------------------------
# Goalscorer recall
# ---------------------------------------------------------------------------


class RecallScore(BaseModel, frozen=True):
    points: int
    percentage: int
    scorers_found: int
    total_scorers: int
    time_remaining: int
    time_bonus: int
    all_found: bool
    won: bool
    message: str


def recall_message(scorers_found: int, total_scorers: int, *, all_found: bool) -> str:
    """Feedback line chosen by completion ratio."""
    if all_found or total_scorers == 0:
        return "All scorers found!"
    scaled = round_half_up(scorers_found / total_scorers * RECALL_MAX_POINTS)
    if scaled >= 4:
        return "Great memory! So close!"
    if scaled >= 2:
        return "Good effort! Keep practicing!"
    if scaled == 1:
        return "Nice try! Every scorer counts!"
    return "Better luck next time!"


def calculate_recall_score(
    scorers_found: int,
    total_scorers: int,
    all_found: bool,
    time_remaining: int,
    *,
    time_bonus: bool = False,
    gave_up: bool = False,
) -> RecallScore:
    """
    Score a goalscorer recall game.

    Default scoring scales the completion ratio onto 0-5 points, with 5 reserved
    for finding everyone. With time_bonus, points are the scorers found plus
    TIME_BONUS_MULTIPLIER points per second left on a won game.

    A puzzle without scorable goals is trivially won for zero points.
    """
    time_remaining = max(0, time_remaining)
    if total_scorers == 0:
        return RecallScore(
            points=0,
            percentage=100,
            scorers_found=0,
            total_scorers=0,
            time_remaining=time_remaining,
            time_bonus=0,
            all_found=True,
            won=not gave_up,
            message=recall_message(0, 0, all_found=True),
        )

    won = all_found and time_remaining > 0 and not gave_up
    bonus = time_remaining * TIME_BONUS_MULTIPLIER if won else 0
    if time_bonus:
        points = scorers_found + bonus
    elif all_found:
        points = RECALL_MAX_POINTS
    else:
        points = min(RECALL_MAX_POINTS, round_half_up(scorers_found / total_scorers * RECALL_MAX_POINTS))

    return RecallScore(
        points=points,
        percentage=round_half_up(scorers_found / total_scorers * 100),
        scorers_found=scorers_found,
        total_scorers=total_scorers,
        time_remaining=time_remaining,
        time_bonus=bonus,
        all_found=all_found,
        won=won,
        message=recall_message(scorers_found, total_scorers, all_found=all_found),
    )


def recall_score_display(score: RecallScore) -> str:
    return f"{score.scorers_found}/{score.total_scorers}"


# ---------------------------------------------------------------------------
# Starting XI
# ---------------------------------------------------------------------------


class LineupScore(BaseModel, frozen=True):
    points: int
    max_points: int
    found_count: int
    total_hidden: int
    all_found: bool
    won: bool
    label: str


def lineup_label(found_count: int, total_hidden: int) -> str:
    ratio = 1.0 if total_hidden == 0 else found_count / total_hidden
    if ratio >= 1.0:
        return "Perfect XI!"
    if ratio >= 0.75:
        return "World class knowledge!"
    if ratio >= 0.5:
        return "Solid squad recall"
    if ratio > 0:
        return "Room to improve"
    return "Back to the dugout"


def calculate_lineup_score(found_count: int, total_hidden: int, *, gave_up: bool = False) -> LineupScore:
    """One point per hidden player found."""
    all_found = found_count >= total_hidden
    return LineupScore(
        points=found_count,
        max_points=total_hidden,
        found_count=found_count,
        total_hidden=total_hidden,
        all_found=all_found,
        won=all_found and not gave_up,
        label=lineup_label(found_count, total_hidden),
    )


def lineup_score_display(score: LineupScore) -> str:
    return f"{score.found_count}/{score.total_hidden}"


def lineup_emoji_grid(slot_results: Sequence[bool | None]) -> str:
    """One marker per slot: found, missed, or shown from the start (None)."""
    markers = {True: "✅", False: "❌", None: "⬜"}
    return "".join(markers[result] for result in slot_results)


# ---------------------------------------------------------------------------
# The chain
# ---------------------------------------------------------------------------

_CHAIN_EMOJI = {
    ChainScoreLabel.EAGLE: "🦅",
    ChainScoreLabel.BIRDIE: "🐦",
    ChainScoreLabel.PAR: "⛳",
    ChainScoreLabel.BOGEY: "😅",
    ChainScoreLabel.DOUBLE_BOGEY: "😬",
    ChainScoreLabel.TRIPLE_BOGEY_PLUS: "🥵",
    ChainScoreLabel.DID_NOT_FINISH: "💀",
}


class ChainScore(BaseModel, frozen=True):
    points: int
    max_points: int
    steps_taken: int
    par: int
    par_difference: int
    label: ChainScoreLabel
    completed: bool
    won: bool


def chain_label(par_difference: int, completed: bool) -> ChainScoreLabel:
    if not completed:
        return ChainScoreLabel.DID_NOT_FINISH
    if par_difference <= -2:
        return ChainScoreLabel.EAGLE
    if par_difference == -1:
        return ChainScoreLabel.BIRDIE
    if par_difference == 0:
        return ChainScoreLabel.PAR
    if par_difference == 1:
        return ChainScoreLabel.BOGEY
    if par_difference == 2:
        return ChainScoreLabel.DOUBLE_BOGEY
    return ChainScoreLabel.TRIPLE_BOGEY_PLUS


def calculate_chain_score(steps_taken: int, par: int, completed: bool) -> ChainScore:
    """
    Golf-style scoring: fewer steps than par earns more points.

    points = max(0, 2 * par - steps) for a finished chain, 0 otherwise.
    """
    par_difference = steps_taken - par
    return ChainScore(
        points=max(0, 2 * par - steps_taken) if completed else 0,
        max_points=par + 2,
        steps_taken=steps_taken,
        par=par,
        par_difference=par_difference,
        label=chain_label(par_difference, completed),
        completed=completed,
        won=completed,
    )


def _format_par_difference(par_difference: int) -> str:
    if par_difference == 0:
        return "E"
    if par_difference > 0:
        return f"+{par_difference}"
    return str(par_difference)


def format_chain_score(score: ChainScore) -> str:
    """Compact result, e.g. "7pts (-2)", "5pts (E)" or "DNF"."""
    if not score.completed:
        return "DNF"
    return f"{score.points}pts ({_format_par_difference(score.par_difference)})"


def chain_score_emoji(score: ChainScore) -> str:
    return _CHAIN_EMOJI[score.label]


def chain_score_display(score: ChainScore) -> str:
    if not score.completed:
        return f"{chain_score_emoji(score)} DNF"
    return (
        f"{chain_score_emoji(score)} {score.steps_taken} steps ({_format_par_difference(score.par_difference)})"
    )


def chain_emoji_grid(score: ChainScore) -> str:
    """One link per step, green up to par and orange beyond, then the finish marker."""
    within_par = min(score.steps_taken, score.par)
    over_par = max(0, score.steps_taken - score.par)
    finish = "🏁" if score.completed else "❌"
    return "🟢" * within_par + "🟠" * over_par + finish
