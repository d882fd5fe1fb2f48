"""
Cash position projector.

Derives how much money went through the drawer and the bank by
folding over payment splits. The fold is linear, so a reversal's
negative payments cancel the original's without any special case.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_ledger.models.transaction import Transaction
from pos_ledger.models.line_item import PaymentSplit
from pos_ledger.models.enums import (
    TransactionKind,
    PaymentMethod,
    INFLOW_KINDS,
    OUTFLOW_KINDS,
    CREDIT_METHODS,
)
from pos_ledger.money import ZERO

TRANSFER_METHODS = frozenset({PaymentMethod.TRANSFER, PaymentMethod.QR})


@dataclass(frozen=True)
class CashPosition:
    cash_in: Decimal = ZERO
    cash_out: Decimal = ZERO
    transfer_in: Decimal = ZERO
    transfer_out: Decimal = ZERO
    credit_in: Decimal = ZERO
    credit_out: Decimal = ZERO

    @property
    def net_cash(self) -> Decimal:
        return self.cash_in - self.cash_out

    @property
    def net_transfer(self) -> Decimal:
        return self.transfer_in - self.transfer_out


def project(
    payments: Iterable[tuple[TransactionKind, PaymentMethod, Decimal]],
) -> CashPosition:
    """
    Fold (transaction kind, method, amount) rows into a cash position.

    Credit payments are counted on their own and never mixed into
    the cash or transfer figures: no money changed hands.
    """
    totals = {
        f"{bucket}_{side}": ZERO
        for bucket in ("cash", "transfer", "credit")
        for side in ("in", "out")
    }

    for kind, method, amount in payments:
        if kind in INFLOW_KINDS:
            side = "in"
        elif kind in OUTFLOW_KINDS:
            side = "out"
        else:
            continue

        if method == PaymentMethod.CASH:
            bucket = "cash"
        elif method in TRANSFER_METHODS:
            bucket = "transfer"
        elif method in CREDIT_METHODS:
            bucket = "credit"
        else:
            continue

        totals[f"{bucket}_{side}"] += Decimal(str(amount))

    return CashPosition(**totals)


class CashPositionService:

    def __init__(self, db: Session):
        self.db = db

    def payment_stream(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[tuple[TransactionKind, PaymentMethod, Decimal]]:
        """Every payment with its transaction's kind, optionally windowed."""
        query = (
            select(Transaction.kind, PaymentSplit.method, PaymentSplit.amount)
            .join(PaymentSplit, PaymentSplit.transaction_id == Transaction.id)
        )
        if start is not None:
            query = query.where(Transaction.created_at >= start)
        if end is not None:
            query = query.where(Transaction.created_at <= end)

        return [tuple(row) for row in self.db.execute(query).all()]

    def project_cash_position(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> CashPosition:
        return project(self.payment_stream(start, end))
