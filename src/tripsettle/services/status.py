from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from tripsettle.services.settlement import Transfer, from_cents


@dataclass(slots=True, frozen=True)
class SettlementStatus:
    from_id: str
    to_id: str
    paid: bool
    amount_cents: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass(slots=True, frozen=True)
class TransferView:
    from_id: str
    to_id: str
    amount_cents: int
    paid: bool = False
    recorded_amount_cents: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    @property
    def is_outdated(self) -> bool:
        """Marked paid for an amount that no longer matches the current plan."""
        return (
            self.paid
            and self.recorded_amount_cents is not None
            and self.recorded_amount_cents != self.amount_cents
        )


def attach_statuses(transfers: Iterable[Transfer], statuses: Iterable[SettlementStatus]) -> list[TransferView]:
    by_pair = {(s.from_id, s.to_id): s for s in statuses}
    views: list[TransferView] = []
    for transfer in transfers:
        status = by_pair.get((transfer.from_id, transfer.to_id))
        views.append(
            TransferView(
                from_id=transfer.from_id,
                to_id=transfer.to_id,
                amount_cents=transfer.amount_cents,
                paid=status.paid if status else False,
                recorded_amount_cents=status.amount_cents if status else None,
                updated_at=status.updated_at if status else None,
            )
        )
    return views


def toggle_status(
    current: Optional[SettlementStatus],
    from_id: str,
    to_id: str,
    amount_cents: Optional[int] = None,
    now: Optional[datetime] = None,
) -> SettlementStatus:
    if from_id == to_id:
        raise ValueError("a participant cannot pay themselves")
    if amount_cents is not None and amount_cents <= 0:
        raise ValueError("amount_cents must be positive")
    paid = not current.paid if current else True
    recorded = amount_cents if amount_cents is not None else (current.amount_cents if current else None)
    return SettlementStatus(
        from_id=from_id,
        to_id=to_id,
        paid=paid,
        amount_cents=recorded,
        updated_at=now or datetime.now(timezone.utc),
    )
