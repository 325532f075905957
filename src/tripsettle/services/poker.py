from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from tripsettle.config import get_settings
from tripsettle.services.settlement import Transfer, settle


class GameStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(slots=True)
class PokerEntry:
    attendee_id: str
    buy_in_cents: int
    cash_out_cents: int
    status: GameStatus = GameStatus.ACTIVE

    def __post_init__(self) -> None:
        if self.buy_in_cents < 0 or self.cash_out_cents < 0:
            raise ValueError("buy-in and cash-out must be non-negative")

    @property
    def net_cents(self) -> int:
        return self.cash_out_cents - self.buy_in_cents


@dataclass(slots=True)
class PokerGame:
    game_id: str
    entries: Sequence[PokerEntry] = field(default_factory=list)
    status: GameStatus = GameStatus.ACTIVE


def finish_game(game: PokerGame) -> PokerGame:
    """Close a game once every player has cashed out and the chips add up."""
    still_playing = [e.attendee_id for e in game.entries if e.status != GameStatus.FINISHED]
    if still_playing:
        raise ValueError(f"players still active: {', '.join(still_playing)}")
    discrepancy = sum(e.net_cents for e in game.entries)
    if discrepancy != 0:
        raise ValueError(f"cash-outs differ from buy-ins by {discrepancy} cents")
    return replace(game, status=GameStatus.FINISHED)


def reopen_game(game: PokerGame) -> PokerGame:
    return replace(game, status=GameStatus.ACTIVE)


@dataclass(slots=True)
class PokerSummary:
    attendee_id: str
    net_cents: int


def summarize(games: Iterable[PokerGame]) -> list[PokerSummary]:
    """Net winnings per attendee across all games, in first-seen order."""
    nets: dict[str, int] = {}
    for game in games:
        for entry in game.entries:
            nets[entry.attendee_id] = nets.get(entry.attendee_id, 0) + entry.net_cents
    return [PokerSummary(attendee_id=aid, net_cents=net) for aid, net in nets.items()]


def settle_poker(games: Iterable[PokerGame], *, consolidate: Optional[bool] = None) -> List[Transfer]:
    if consolidate is None:
        consolidate = get_settings().poker_consolidate
    summary = summarize(games)
    return settle({row.attendee_id: row.net_cents for row in summary}, consolidate=consolidate)
