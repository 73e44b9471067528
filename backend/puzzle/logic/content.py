"""
Puzzle content models for each game mode.

Content arrives already validated by the authoring pipeline; parsing here only
asserts the shape the sessions rely on (required fields present, basic types).
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from puzzle.logic.enums import GameMode, TeamSide
from puzzle.logic.exceptions import PuzzleContentError

if TYPE_CHECKING:
    from collections.abc import Mapping


class Goal(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    scorer: str = Field(min_length=1)
    minute: int = Field(ge=0)
    team: TeamSide
    is_own_goal: bool = Field(default=False, validation_alias=AliasChoices("is_own_goal", "isOwnGoal"))


class RecallContent(BaseModel, frozen=True):
    home_team: str
    away_team: str
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    competition: str = ""
    match_date: str = ""
    goals: tuple[Goal, ...]


class LineupPlayer(BaseModel, frozen=True):
    position_key: str = Field(min_length=1)
    player_name: str = Field(min_length=1)
    is_hidden: bool
    override_x: float | None = Field(default=None, ge=0, le=100)
    override_y: float | None = Field(default=None, ge=0, le=100)


class LineupContent(BaseModel, frozen=True):
    match_name: str
    competition: str = ""
    match_date: str = ""
    formation: str
    team: str
    players: tuple[LineupPlayer, ...]


class ChainPlayer(BaseModel, frozen=True):
    qid: str = Field(min_length=1)  # external player id
    name: str
    nationality_code: str | None = None


class ChainContent(BaseModel, frozen=True):
    start_player: ChainPlayer
    end_player: ChainPlayer
    par: int = Field(ge=1)
    solution_path: tuple[ChainPlayer, ...] = ()
    hint_player: ChainPlayer | None = None


PuzzleContent = RecallContent | LineupContent | ChainContent

_CONTENT_MODELS: dict[GameMode, type[BaseModel]] = {
    GameMode.GOALSCORER_RECALL: RecallContent,
    GameMode.STARTING_XI: LineupContent,
    GameMode.THE_CHAIN: ChainContent,
}


class Puzzle(BaseModel, frozen=True):
    """A daily puzzle as delivered to the client: identity, mode and raw content."""

    id: str
    game_mode: str  # other modes exist upstream; sessions only support GameMode values
    puzzle_date: date | None = None
    content: dict[str, Any]


def parse_content(game_mode: GameMode, raw: Mapping[str, Any]) -> PuzzleContent:
    """Validate raw content for a mode, raising PuzzleContentError on shape errors."""
    model = _CONTENT_MODELS[game_mode]
    try:
        return model.model_validate(raw)  # type: ignore[return-value]
    except ValidationError as exc:
        raise PuzzleContentError(f"invalid {game_mode} content: {exc.error_count()} error(s)") from exc


def parse_recall_content(raw: Mapping[str, Any]) -> RecallContent:
    return parse_content(GameMode.GOALSCORER_RECALL, raw)  # type: ignore[return-value]


def parse_lineup_content(raw: Mapping[str, Any]) -> LineupContent:
    return parse_content(GameMode.STARTING_XI, raw)  # type: ignore[return-value]


def parse_chain_content(raw: Mapping[str, Any]) -> ChainContent:
    return parse_content(GameMode.THE_CHAIN, raw)  # type: ignore[return-value]
