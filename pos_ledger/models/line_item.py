"""
Line item and payment split models.

Both are owned by exactly one transaction and created in the same
unit of work. Their signs follow the parent: positive on postings,
negative on reversal counter-entries.
"""

from decimal import Decimal

from sqlalchemy import (
    String, Numeric, Integer, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_ledger.models.base import Base
from pos_ledger.models.enums import PaymentMethod


class LineItem(Base):
    """One priced quantity within a transaction."""

    __tablename__ = "line_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    # Weak reference: manual and settlement lines carry no product
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id"), nullable=True, index=True
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(14, 3), nullable=False
    )
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    total_price: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )

    transaction: Mapped["Transaction"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<LineItem {self.label} x{self.quantity} = {self.total_price}>"


class PaymentSplit(Base):
    """One instrument-tagged portion of how a transaction was settled."""

    __tablename__ = "payment_splits"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            name="payment_method_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )

    transaction: Mapped["Transaction"] = relationship(
        back_populates="payments"
    )

    def __repr__(self) -> str:
        return f"<PaymentSplit {self.method.value} {self.amount}>"
