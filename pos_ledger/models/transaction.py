"""
Transaction model.

One immutable record per commercial event. A transaction owns its
line items and payment splits, which are written together with it
and never touched again. Cancelling a transaction means posting a
second transaction that points back at it through reversal_of_id.

Idempotency is enforced via the idempotency_key unique constraint.
A unique reversal_of_id means the database itself refuses a
second reversal of the same original.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, ForeignKey,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_ledger.models.base import Base
from pos_ledger.models.enums import TransactionKind, TransactionStatus


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    idempotency_key: Mapped[str | None] = mapped_column(
        String(100), unique=True, nullable=True, index=True
    )
    request_fingerprint: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    kind: Mapped[TransactionKind] = mapped_column(
        SAEnum(
            TransactionKind,
            name="transaction_kind_enum",
            create_constraint=True,
        ),
        nullable=False,
        index=True,
    )
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(
            TransactionStatus,
            name="transaction_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    party_id: Mapped[int | None] = mapped_column(
        ForeignKey("parties.id"), nullable=True, index=True
    )
    reversal_of_id: Mapped[int | None] = mapped_column(
        ForeignKey("transactions.id"), unique=True, nullable=True
    )
    description: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )

    # Relationships
    items: Mapped[list["LineItem"]] = relationship(
        back_populates="transaction", order_by="LineItem.position"
    )
    payments: Mapped[list["PaymentSplit"]] = relationship(
        back_populates="transaction", order_by="PaymentSplit.position"
    )
    party: Mapped["Party | None"] = relationship()
    reversal_of: Mapped["Transaction | None"] = relationship(
        remote_side=[id]
    )

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.id} {self.kind.value} "
            f"{self.total_amount} ({self.status.value})>"
        )
