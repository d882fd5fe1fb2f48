"""
Accumulator audit trail.

Product stock and party balances are stored as running totals for
fast reads. Every delta the ledger applies to them is also recorded
here against the transaction that caused it, so a drifted total can
be detected and rebuilt from its movements.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from pos_ledger.models.base import Base


class BalanceMovement(Base):
    """
    Immutable record of one change to a party balance.

    Like transactions, movements are append-only.
    """

    __tablename__ = "balance_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id"), nullable=False, index=True
    )
    party_id: Mapped[int] = mapped_column(
        ForeignKey("parties.id"), nullable=False, index=True
    )
    delta: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )


class StockMovement(Base):
    """Immutable record of one change to a product's stock."""

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id"), nullable=False, index=True
    )
    delta: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    stock_after: Mapped[Decimal] = mapped_column(
        Numeric(14, 3), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
