from __future__ import annotations

from typing import Any


class SettlementError(Exception):
    pass


class InvalidBalanceError(SettlementError, ValueError):
    """A balance amount that cannot be converted to whole cents."""

    def __init__(self, message: str, *, participant_id: str | None = None, errors: list[Any] | None = None) -> None:
        super().__init__(message)
        self.participant_id = participant_id
        self.errors = errors or []
