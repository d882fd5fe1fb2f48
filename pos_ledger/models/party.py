"""
Party model.

A client or provider with a running balance. For both roles the
balance means "amount pending": what a client owes the business,
or what the business owes a provider. Credit postings raise it,
settlements lower it.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from pos_ledger.models.base import Base
from pos_ledger.models.enums import PartyRole


class Party(Base):
    __tablename__ = "parties"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    role: Mapped[PartyRole] = mapped_column(
        SAEnum(PartyRole, name="party_role_enum", create_constraint=True),
        nullable=False,
        index=True,
    )
    # Accumulator, mutated only together with the posting that moves it
    balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Party {self.name} {self.role.value} balance={self.balance}>"
