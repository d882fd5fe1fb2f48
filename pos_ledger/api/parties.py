"""
Client and provider API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pos_ledger.models.base import get_db
from pos_ledger.models.enums import PartyRole
from pos_ledger.services.party_service import PartyService
from pos_ledger.services.exceptions import NotFound
from pos_ledger.schemas.catalog import (
    PartyCreate,
    PartyUpdate,
    PartyResponse,
    BalanceReconciliation,
)

router = APIRouter(prefix="/parties", tags=["Parties"])


@router.post("", response_model=PartyResponse, status_code=201)
def create_party(
    request: PartyCreate,
    db: Session = Depends(get_db),
):
    party = PartyService(db).create_party(request)
    db.commit()
    return party


@router.get("", response_model=list[PartyResponse])
def list_parties(
    role: PartyRole | None = None,
    db: Session = Depends(get_db),
):
    return PartyService(db).list_parties(role)


@router.get("/debtors", response_model=list[PartyResponse])
def list_debtors(
    role: PartyRole = PartyRole.CLIENT,
    db: Session = Depends(get_db),
):
    """Parties with a pending balance, largest first."""
    return PartyService(db).list_debtors(role)


@router.get("/{party_id}", response_model=PartyResponse)
def get_party(
    party_id: int,
    db: Session = Depends(get_db),
):
    try:
        return PartyService(db).get_party(party_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{party_id}", response_model=PartyResponse)
def update_party(
    party_id: int,
    request: PartyUpdate,
    db: Session = Depends(get_db),
):
    """Edit name or phone. Balances only change through postings."""
    try:
        party = PartyService(db).update_party(party_id, request)
        db.commit()
        return party
    except NotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.get(
    "/{party_id}/reconciliation", response_model=BalanceReconciliation
)
def reconcile_balance(
    party_id: int,
    db: Session = Depends(get_db),
):
    """Compare the stored balance with the sum of its recorded movements."""
    try:
        return PartyService(db).reconcile_balance(party_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
