"""
Party service: clients and providers and their running balances.

Balances are accumulators. The only writer is the ledger engine,
through adjust_balance(), and every delta it applies is also kept
as a BalanceMovement so the stored figure can be checked.
"""

import logging
from decimal import Decimal

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from pos_ledger.models.party import Party
from pos_ledger.models.audit_log import BalanceMovement
from pos_ledger.models.enums import PartyRole
from pos_ledger.schemas.catalog import (
    PartyCreate,
    PartyUpdate,
    BalanceReconciliation,
)
from pos_ledger.services.exceptions import NotFound

logger = logging.getLogger(__name__)


class PartyService:

    def __init__(self, db: Session):
        self.db = db

    def create_party(self, request: PartyCreate) -> Party:
        """Create a client or provider. Every party starts at zero."""
        party = Party(
            name=request.name,
            phone=request.phone,
            role=request.role,
            balance=Decimal("0"),
        )
        self.db.add(party)
        self.db.flush()
        return party

    def update_party(self, party_id: int, request: PartyUpdate) -> Party:
        party = self.get_party(party_id)
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(party, field, value)
        self.db.flush()
        return party

    def get_party(self, party_id: int) -> Party:
        party = self.db.get(Party, party_id)
        if not party:
            raise NotFound(f"Party {party_id} not found")
        return party

    def list_parties(self, role: PartyRole | None = None) -> list[Party]:
        query = select(Party).order_by(Party.name)
        if role is not None:
            query = query.where(Party.role == role)
        return list(self.db.execute(query).scalars().all())

    def list_debtors(self, role: PartyRole = PartyRole.CLIENT) -> list[Party]:
        """Parties with something pending, largest balance first."""
        parties = self.db.execute(
            select(Party)
            .where(Party.role == role, Party.balance > 0)
            .order_by(Party.balance.desc(), Party.name)
        ).scalars().all()
        return list(parties)

    def adjust_balance(self, party_id: int, delta: Decimal) -> Decimal:
        """
        Add delta to a party's balance and return the new balance.

        Like stock, the increment is a single UPDATE so concurrent
        postings for the same party cannot lose an update.
        """
        result = self.db.execute(
            update(Party)
            .where(Party.id == party_id)
            .values(balance=Party.balance + delta)
        )
        if result.rowcount == 0:
            raise NotFound(f"Party {party_id} not found")

        balance = self.db.execute(
            select(Party.balance).where(Party.id == party_id)
        ).scalar_one()
        logger.debug(f"Balance of party {party_id} moved by {delta} to {balance}")
        return Decimal(str(balance))

    def reconcile_balance(self, party_id: int) -> BalanceReconciliation:
        """
        Compare the stored balance against the sum of its movements.

        A non-zero drift means some write path changed the balance
        without recording why.
        """
        party = self.get_party(party_id)

        replayed, count = self.db.execute(
            select(
                func.coalesce(func.sum(BalanceMovement.delta), 0),
                func.count(BalanceMovement.id),
            ).where(BalanceMovement.party_id == party_id)
        ).one()

        stored = Decimal(str(party.balance))
        replayed = Decimal(str(replayed))
        drift = stored - replayed
        if drift != 0:
            logger.warning(
                f"Balance drift on party {party_id}: "
                f"stored={stored}, replayed={replayed}"
            )

        return BalanceReconciliation(
            party_id=party.id,
            stored_balance=stored,
            replayed_balance=replayed,
            drift=drift,
            movement_count=count,
        )
