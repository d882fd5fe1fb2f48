"""
Catalog service: categories and products.

The catalog belongs to the shop's back office. The ledger only
reads products and moves their stock through adjust_stock().
"""

import logging
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from pos_ledger.models.catalog import Category, Product
from pos_ledger.schemas.catalog import (
    CategoryCreate,
    ProductCreate,
    ProductUpdate,
)
from pos_ledger.services.exceptions import NotFound

logger = logging.getLogger(__name__)


class CatalogService:

    def __init__(self, db: Session):
        self.db = db

    def create_category(self, request: CategoryCreate) -> Category:
        existing = self.db.execute(
            select(Category).where(Category.name == request.name)
        ).scalar_one_or_none()

        if existing:
            raise ValueError(f"Category '{request.name}' already exists")

        category = Category(name=request.name, color=request.color)
        self.db.add(category)
        self.db.flush()
        return category

    def list_categories(self) -> list[Category]:
        categories = self.db.execute(
            select(Category).order_by(Category.name)
        ).scalars().all()
        return list(categories)

    def create_product(self, request: ProductCreate) -> Product:
        if request.category_id is not None:
            if not self.db.get(Category, request.category_id):
                raise NotFound(f"Category {request.category_id} not found")

        product = Product(
            name=request.name,
            price=request.price,
            stock=request.stock,
            category_id=request.category_id,
            is_weighable=request.is_weighable,
        )
        self.db.add(product)
        self.db.flush()
        return product

    def update_product(self, product_id: int, request: ProductUpdate) -> Product:
        """Edit catalog fields. Stock only moves through the ledger."""
        product = self.get_product(product_id)
        changes = request.model_dump(exclude_unset=True)

        if changes.get("category_id") is not None:
            if not self.db.get(Category, changes["category_id"]):
                raise NotFound(f"Category {changes['category_id']} not found")

        for field, value in changes.items():
            setattr(product, field, value)

        self.db.flush()
        return product

    def get_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFound(f"Product {product_id} not found")
        return product

    def get_products(self, product_ids) -> dict[int, Product]:
        """Load several products at once, keyed by id."""
        ids = set(product_ids)
        if not ids:
            return {}
        products = self.db.execute(
            select(Product).where(Product.id.in_(ids))
        ).scalars().all()
        return {p.id: p for p in products}

    def list_products(self, category_id: int | None = None) -> list[Product]:
        query = select(Product).order_by(Product.name)
        if category_id is not None:
            query = query.where(Product.category_id == category_id)
        return list(self.db.execute(query).scalars().all())

    def adjust_stock(self, product_id: int, delta: Decimal) -> Decimal:
        """
        Add delta to a product's stock and return the new stock.

        The increment happens inside a single UPDATE statement, so
        two postings against the same product never overwrite each
        other's change. Stock is allowed to go negative: the shop
        may sell goods that were never entered.
        """
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + delta)
        )
        if result.rowcount == 0:
            raise NotFound(f"Product {product_id} not found")

        stock = self.db.execute(
            select(Product.stock).where(Product.id == product_id)
        ).scalar_one()
        logger.debug(f"Stock of product {product_id} moved by {delta} to {stock}")
        return Decimal(str(stock))
