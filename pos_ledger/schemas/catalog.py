"""
Pydantic schemas for catalog and party operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from pos_ledger.models.enums import PartyRole


# --- Category Schemas ---

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    color: str = Field(default="#6b7280", max_length=20)


class CategoryResponse(BaseModel):
    id: int
    name: str
    color: str

    model_config = {"from_attributes": True}


# --- Product Schemas ---

class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    stock: Decimal = Field(default=Decimal("0"))
    category_id: int | None = None
    is_weighable: bool = False


class ProductUpdate(BaseModel):
    """Catalog edits. Stock is not editable here."""
    name: str | None = Field(default=None, min_length=1, max_length=150)
    price: Decimal | None = Field(default=None, ge=0)
    category_id: int | None = None
    is_weighable: bool | None = None


class ProductResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: Decimal
    category_id: int | None
    is_weighable: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Party Schemas ---

class PartyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    phone: str | None = Field(default=None, max_length=30)
    role: PartyRole


class PartyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=150)
    phone: str | None = Field(default=None, max_length=30)


class PartyResponse(BaseModel):
    id: int
    name: str
    phone: str | None
    role: PartyRole
    balance: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceReconciliation(BaseModel):
    """Stored balance compared against the replayed movement trail."""
    party_id: int
    stored_balance: Decimal
    replayed_balance: Decimal
    drift: Decimal
    movement_count: int
