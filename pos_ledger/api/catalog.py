"""
Catalog API endpoints: categories and products.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pos_ledger.models.base import get_db
from pos_ledger.services.catalog_service import CatalogService
from pos_ledger.services.exceptions import NotFound
from pos_ledger.schemas.catalog import (
    CategoryCreate,
    CategoryResponse,
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)

router = APIRouter(tags=["Catalog"])


# --- Category Endpoints ---

@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(
    request: CategoryCreate,
    db: Session = Depends(get_db),
):
    service = CatalogService(db)
    try:
        category = service.create_category(request)
        db.commit()
        return category
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/categories", response_model=list[CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    return CatalogService(db).list_categories()


# --- Product Endpoints ---

@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    request: ProductCreate,
    db: Session = Depends(get_db),
):
    """Create a product. A price of 0 means it is priced at the register."""
    service = CatalogService(db)
    try:
        product = service.create_product(request)
        db.commit()
        return product
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/products", response_model=list[ProductResponse])
def list_products(
    category_id: int | None = None,
    db: Session = Depends(get_db),
):
    return CatalogService(db).list_products(category_id)


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
):
    service = CatalogService(db)
    try:
        return service.get_product(product_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    request: ProductUpdate,
    db: Session = Depends(get_db),
):
    """Edit a product. Stock only changes through postings."""
    service = CatalogService(db)
    try:
        product = service.update_product(product_id, request)
        db.commit()
        return product
    except NotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
