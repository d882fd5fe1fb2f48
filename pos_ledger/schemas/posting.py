"""
Pydantic schemas for posting and reversing transactions.

Numeric fields are deliberately left unconstrained here: the ledger
engine checks them in a fixed order and reports the first failure
with a reason code, which a schema-level 422 could not do.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from pos_ledger.models.enums import (
    TransactionKind,
    TransactionStatus,
    PaymentMethod,
)


# --- Request Schemas ---

class LineRequest(BaseModel):
    """One line of a posting: a product or a free-text entry."""
    product_id: int | None = None
    label: str = Field(min_length=1, max_length=255)
    quantity: Decimal
    unit_price: Decimal


class PaymentRequest(BaseModel):
    method: PaymentMethod
    amount: Decimal


class PostingRequest(BaseModel):
    """
    A complete commercial event, submitted whole.

    The client may provide an idempotency_key so that retrying a
    timed-out request returns the original posting instead of
    recording the sale twice.
    """
    kind: TransactionKind
    lines: list[LineRequest] = Field(default_factory=list)
    payments: list[PaymentRequest] = Field(default_factory=list)
    party_id: int | None = None
    description: str | None = Field(default=None, max_length=255)
    idempotency_key: str | None = Field(
        default=None, min_length=1, max_length=100
    )


class ReversalRequest(BaseModel):
    reason: str = Field(default="", max_length=200)
    idempotency_key: str | None = Field(
        default=None, min_length=1, max_length=100
    )


class SettlementRequest(BaseModel):
    """Collect a client's debt or pay a provider's."""
    party_id: int
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    idempotency_key: str | None = Field(
        default=None, min_length=1, max_length=100
    )


class MovementRequest(BaseModel):
    """A manual cash-drawer movement not tied to products."""
    kind: TransactionKind
    amount: Decimal
    method: PaymentMethod = PaymentMethod.CASH
    description: str = Field(min_length=1, max_length=200)
    idempotency_key: str | None = Field(
        default=None, min_length=1, max_length=100
    )

    @field_validator("kind")
    @classmethod
    def kind_must_be_income_or_expense(
        cls, v: TransactionKind
    ) -> TransactionKind:
        if v not in (TransactionKind.INCOME, TransactionKind.EXPENSE):
            raise ValueError("manual movements must be INCOME or EXPENSE")
        return v


class TransactionFilter(BaseModel):
    kind: TransactionKind | None = None
    party_id: int | None = None
    start: datetime | None = None
    end: datetime | None = None


# --- Response Schemas ---

class LineItemResponse(BaseModel):
    id: int
    position: int
    product_id: int | None
    label: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal

    model_config = {"from_attributes": True}


class PaymentSplitResponse(BaseModel):
    id: int
    position: int
    method: PaymentMethod
    amount: Decimal

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    idempotency_key: str | None
    kind: TransactionKind
    status: TransactionStatus
    total_amount: Decimal
    party_id: int | None
    reversal_of_id: int | None
    description: str | None
    created_at: datetime
    items: list[LineItemResponse]
    payments: list[PaymentSplitResponse]

    model_config = {"from_attributes": True}


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: int
    limit: int
    offset: int
