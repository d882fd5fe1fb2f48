"""
Transaction API endpoints.

The API layer is thin: it maps ledger errors to status codes and
commits the session once the engine has finished a unit of work.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pos_ledger.models.base import get_db
from pos_ledger.models.enums import TransactionKind
from pos_ledger.services.ledger_service import LedgerService
from pos_ledger.services.exceptions import (
    NotFound,
    PostingRejected,
    PostingFailed,
    ReversalRejected,
    ReversalFailed,
)
from pos_ledger.schemas.posting import (
    PostingRequest,
    ReversalRequest,
    SettlementRequest,
    MovementRequest,
    TransactionFilter,
    TransactionResponse,
    TransactionListResponse,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


def _commit_posting(db: Session, post):
    """Run a posting callable, commit it, and map ledger errors to HTTP."""
    try:
        txn = post()
        db.commit()
        return txn
    except (PostingRejected, ReversalRejected) as e:
        db.rollback()
        raise HTTPException(
            status_code=404 if e.is_not_found else 400,
            detail=e.to_dict(),
        )
    except (PostingFailed, ReversalFailed) as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("", response_model=TransactionResponse, status_code=201)
def post_transaction(
    request: PostingRequest,
    db: Session = Depends(get_db),
):
    """
    Post a sale, purchase or other commercial event.

    Lines and payments must agree within the configured tolerance.
    Retrying with the same idempotency_key returns the original.
    """
    service = LedgerService(db)
    return _commit_posting(db, lambda: service.post(request))


@router.post(
    "/settlements", response_model=TransactionResponse, status_code=201
)
def settle_debt(
    request: SettlementRequest,
    db: Session = Depends(get_db),
):
    """Collect a client's debt or pay a provider."""
    service = LedgerService(db)
    return _commit_posting(db, lambda: service.settle_debt(request))


@router.post(
    "/movements", response_model=TransactionResponse, status_code=201
)
def record_movement(
    request: MovementRequest,
    db: Session = Depends(get_db),
):
    """Record a manual income or expense in the cash drawer."""
    service = LedgerService(db)
    return _commit_posting(db, lambda: service.record_movement(request))


@router.post(
    "/{transaction_id}/reverse",
    response_model=TransactionResponse,
    status_code=201,
)
def reverse_transaction(
    transaction_id: int,
    request: ReversalRequest,
    db: Session = Depends(get_db),
):
    """Cancel a transaction by posting its counter-entry."""
    service = LedgerService(db)
    return _commit_posting(
        db,
        lambda: service.reverse(
            transaction_id, request.reason, request.idempotency_key
        ),
    )


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    kind: TransactionKind | None = None,
    party_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    """List transactions, newest first."""
    service = LedgerService(db)
    filters = TransactionFilter(
        kind=kind, party_id=party_id, start=start, end=end
    )
    transactions, total = service.list_transactions(filters, limit, offset)
    return TransactionListResponse(
        transactions=[
            TransactionResponse.model_validate(t) for t in transactions
        ],
        total=total,
        limit=min(
            limit or service.settings.DEFAULT_PAGE_SIZE,
            service.settings.MAX_PAGE_SIZE,
        ),
        offset=offset,
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
):
    """Get transaction details with its lines and payments."""
    service = LedgerService(db)
    try:
        return service.get_transaction(transaction_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
