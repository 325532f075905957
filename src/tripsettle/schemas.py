from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_serializer

from tripsettle.errors import InvalidBalanceError
from tripsettle.services.settlement import Balance, Transfer


class BalanceIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    participant_id: str = Field(..., alias="participantId", min_length=1)
    # Decimal fields reject NaN and infinity by default
    net: Decimal

    def to_balance(self) -> Balance:
        return Balance(participant_id=self.participant_id, net=self.net)


class TransferOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(..., alias="from")
    to_id: str = Field(..., alias="to")
    amount: Decimal = Field(..., gt=0)

    @classmethod
    def from_transfer(cls, transfer: Transfer) -> "TransferOut":
        return cls(from_id=transfer.from_id, to_id=transfer.to_id, amount=transfer.amount)

    @field_serializer("amount")
    def _serialize_amount(self, value: Decimal) -> float:
        return float(value)


_balances_adapter = TypeAdapter(list[BalanceIn])


def parse_balances(payload: Any) -> list[Balance]:
    try:
        rows = _balances_adapter.validate_python(payload)
    except ValidationError as exc:
        raise InvalidBalanceError("Invalid balances payload", errors=exc.errors()) from exc
    return [row.to_balance() for row in rows]


def dump_transfers(transfers: Iterable[Transfer]) -> list[dict[str, Any]]:
    ordered = sorted(transfers, key=lambda t: (t.from_id, t.to_id))
    return [TransferOut.from_transfer(t).model_dump(by_alias=True) for t in ordered]
