"""Settlement planning for group trips."""

from tripsettle.errors import InvalidBalanceError, SettlementError
from tripsettle.services.settlement import Balance, Transfer, compute_settlement, residuals, settle

__all__ = [
    "Balance",
    "InvalidBalanceError",
    "SettlementError",
    "Transfer",
    "compute_settlement",
    "residuals",
    "settle",
]
