"""Debt settlement: turn net balances into point-to-point transfers.

Balances use one sign convention only: positive ``net`` means the participant
is owed money (creditor), negative means they owe money (debtor). Callers whose
bookkeeping runs the other way must flip the sign before calling in.

All arithmetic is done in integer cents. Decimal amounts are converted at the
boundary by rounding half-up to the nearest cent.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation, localcontext
from typing import Iterable, List, Mapping, Union

from tripsettle.errors import InvalidBalanceError
from tripsettle.logging import get_logger

CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]
Edge = tuple[str, str]

log = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class Balance:
    participant_id: str
    net: Decimal


@dataclass(slots=True, frozen=True)
class Transfer:
    from_id: str
    to_id: str
    amount_cents: int

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)


def to_cents(value: Amount, *, participant_id: str | None = None) -> int:
    if isinstance(value, bool):
        raise InvalidBalanceError(f"balance must be a number, got {value!r}", participant_id=participant_id)
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidBalanceError(f"balance is not a number: {value!r}", participant_id=participant_id) from exc
    if not amount.is_finite():
        raise InvalidBalanceError(f"balance must be finite, got {value!r}", participant_id=participant_id)

    try:
        with localcontext() as ctx:
            # enough digits to hold the whole amount in cents
            ctx.prec = max(ctx.prec, len(amount.as_tuple().digits) + max(amount.adjusted(), 0) + 3)
            cents = int((abs(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except DecimalException as exc:
        raise InvalidBalanceError(f"balance is out of range: {value!r}", participant_id=participant_id) from exc
    return -cents if amount < 0 else cents


def from_cents(cents: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, Decimal(cents).adjusted() + 3)
        return (Decimal(cents) / 100).quantize(CENT)


def compute_settlement(balances: Iterable[Balance], *, consolidate: bool = True) -> List[Transfer]:
    """Settle decimal balances.

    Input order is the tie-break order for equal amounts, so the same input
    always yields the same transfers. Repeated participant ids are summed.
    """
    cents: dict[str, int] = {}
    for balance in balances:
        pid = balance.participant_id
        cents[pid] = cents.get(pid, 0) + to_cents(balance.net, participant_id=pid)
    return settle(cents, consolidate=consolidate)


def settle(balances: Mapping[str, int], *, consolidate: bool = True) -> List[Transfer]:
    """Settle cent balances keyed by participant id.

    Greedy matching of largest debtor against largest creditor gives at most
    ``debtors + creditors - 1`` transfers. With ``consolidate`` a rerouting
    pass then tries to leave each creditor with a single payer. The pass is a
    best-effort heuristic and does not guarantee a global minimum.

    If credits and debts do not sum to the same total, the smaller side is
    fully settled and the rest stays unmatched.
    """
    creditors: list[list] = []  # [participant_id, to_receive]
    debtors: list[list] = []  # [participant_id, to_pay]

    for participant_id, amount in balances.items():
        if amount > 0:
            creditors.append([participant_id, amount])
        elif amount < 0:
            debtors.append([participant_id, -amount])

    # list.sort is stable with reverse=True, equal amounts keep input order
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    credit_total = sum(c[1] for c in creditors)
    debit_total = sum(d[1] for d in debtors)
    if credit_total != debit_total:
        log.info("settlement.unbalanced", credit_cents=credit_total, debit_cents=debit_total)

    edges = _match(debtors, creditors)
    greedy_count = len(edges)
    if consolidate:
        _consolidate(edges)

    transfers = [
        Transfer(from_id=from_id, to_id=to_id, amount_cents=amount)
        for (from_id, to_id), amount in edges.items()
        if amount > 0
    ]
    log.debug(
        "settlement.computed",
        creditors=len(creditors),
        debtors=len(debtors),
        greedy_transfers=greedy_count,
        transfers=len(transfers),
        consolidate=consolidate,
    )
    return transfers


def residuals(balances: Iterable[Balance], transfers: Iterable[Transfer]) -> dict[str, Decimal]:
    """Balance each participant still has after the transfers are paid.

    All values are zero for balanced input. Non-zero values point at a
    reporting discrepancy in whatever produced the balances.
    """
    left: dict[str, int] = {}
    for balance in balances:
        pid = balance.participant_id
        left[pid] = left.get(pid, 0) + to_cents(balance.net, participant_id=pid)
    for transfer in transfers:
        left[transfer.to_id] = left.get(transfer.to_id, 0) - transfer.amount_cents
        left[transfer.from_id] = left.get(transfer.from_id, 0) + transfer.amount_cents
    return {pid: from_cents(cents) for pid, cents in left.items()}


def _match(debtors: list[list], creditors: list[list]) -> dict[Edge, int]:
    edges: dict[Edge, int] = {}
    i = 0
    j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]
        pay = min(debtor[1], creditor[1])
        if pay > 0:
            key = (debtor[0], creditor[0])
            edges[key] = edges.get(key, 0) + pay
            debtor[1] -= pay
            creditor[1] -= pay
        if debtor[1] == 0:
            i += 1
        if creditor[1] == 0:
            j += 1
    return edges


def _consolidate(edges: dict[Edge, int]) -> None:
    # each committed reroute removes at least one edge, so this terminates
    while _reroute_once(edges):
        pass


def _reroute_once(edges: dict[Edge, int]) -> bool:
    payers_by_creditor, recipients_by_debtor = _index(edges)

    for creditor, payers in payers_by_creditor.items():
        if len(payers) <= 1:
            continue
        # max() keeps the first of equal contributors
        primary, _ = max(payers, key=lambda p: p[1])
        recipients = sorted(
            (r for r in recipients_by_debtor.get(primary, []) if r[0] != creditor),
            key=lambda r: r[1],
            reverse=True,
        )
        if not recipients:
            continue

        for secondary, contribution in payers:
            if secondary == primary:
                continue
            trial = _reroute(edges, creditor, primary, secondary, contribution, recipients)
            if len(trial) < len(edges):
                log.debug(
                    "settlement.reroute",
                    creditor=creditor,
                    primary=primary,
                    secondary=secondary,
                    edges_before=len(edges),
                    edges_after=len(trial),
                )
                edges.clear()
                edges.update(trial)
                return True
    return False


def _reroute(
    edges: Mapping[Edge, int],
    creditor: str,
    primary: str,
    secondary: str,
    contribution: int,
    recipients: list[tuple[str, int]],
) -> dict[Edge, int]:
    """Move the secondary payer's share of ``creditor`` onto the primary's other creditors.

    Every participant keeps the same total inflow and outflow.
    """
    trial = dict(edges)
    remaining = contribution
    for recipient, owed in recipients:
        if remaining <= 0:
            break
        move = min(remaining, owed)
        _shift(trial, (primary, recipient), -move)
        _shift(trial, (secondary, recipient), move)
        _shift(trial, (primary, creditor), move)
        _shift(trial, (secondary, creditor), -move)
        remaining -= move
    return trial


def _shift(edges: dict[Edge, int], key: Edge, delta: int) -> None:
    amount = edges.get(key, 0) + delta
    if amount > 0:
        edges[key] = amount
    else:
        edges.pop(key, None)


def _index(
    edges: Mapping[Edge, int],
) -> tuple[dict[str, list[tuple[str, int]]], dict[str, list[tuple[str, int]]]]:
    payers_by_creditor: dict[str, list[tuple[str, int]]] = {}
    recipients_by_debtor: dict[str, list[tuple[str, int]]] = {}
    for (from_id, to_id), amount in edges.items():
        if amount <= 0:
            continue
        payers_by_creditor.setdefault(to_id, []).append((from_id, amount))
        recipients_by_debtor.setdefault(from_id, []).append((to_id, amount))
    return payers_by_creditor, recipients_by_debtor
