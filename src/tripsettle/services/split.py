from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from tripsettle.config import get_settings
from tripsettle.services.settlement import Transfer, settle


@dataclass(slots=True)
class Expense:
    payer_id: str
    amount_cents: int
    # empty means the whole group benefits
    beneficiary_ids: Sequence[str] = ()


@dataclass(slots=True)
class ExpenseTotals:
    total_spend_cents: int = 0
    paid: dict[str, int] = field(default_factory=dict)
    shares: dict[str, int] = field(default_factory=dict)

    @property
    def net(self) -> dict[str, int]:
        """Paid minus share per attendee; positive means the attendee is owed."""
        ids = list(self.paid)
        ids.extend(pid for pid in self.shares if pid not in self.paid)
        return {pid: self.paid.get(pid, 0) - self.shares.get(pid, 0) for pid in ids}


def split_amount(amount_cents: int, consumers: Sequence[str]) -> dict[str, int]:
    if amount_cents < 0:
        raise ValueError("amount_cents must be non-negative")
    if not consumers:
        raise ValueError("consumers must not be empty")

    base_share, remainder = divmod(amount_cents, len(consumers))
    shares: dict[str, int] = {}
    for idx, consumer in enumerate(consumers):
        shares[consumer] = shares.get(consumer, 0) + base_share + (1 if idx < remainder else 0)
    return shares


def calculate_totals(attendee_ids: Sequence[str], expenses: Sequence[Expense]) -> ExpenseTotals:
    totals = ExpenseTotals(
        paid={pid: 0 for pid in attendee_ids},
        shares={pid: 0 for pid in attendee_ids},
    )

    for expense in expenses:
        beneficiaries = list(expense.beneficiary_ids) or list(attendee_ids)
        if not beneficiaries:
            continue
        totals.total_spend_cents += expense.amount_cents
        totals.paid[expense.payer_id] = totals.paid.get(expense.payer_id, 0) + expense.amount_cents
        for user_id, share in split_amount(expense.amount_cents, beneficiaries).items():
            totals.shares[user_id] = totals.shares.get(user_id, 0) + share

    return totals


def settle_expenses(
    attendee_ids: Sequence[str],
    expenses: Sequence[Expense],
    *,
    consolidate: Optional[bool] = None,
) -> List[Transfer]:
    if consolidate is None:
        consolidate = get_settings().expense_consolidate
    totals = calculate_totals(attendee_ids, expenses)
    return settle(totals.net, consolidate=consolidate)
