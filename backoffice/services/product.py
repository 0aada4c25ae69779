"""
Product service.
Handles product CRUD and stock management operations.
"""

import logging
from typing import Any, Dict, List
from pydantic import ValidationError as SchemaError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from fastapi import HTTPException, status

from backoffice.models.product import Product
from backoffice.schemas.product import ProductCreate, ProductUpdate


logger = logging.getLogger(__name__)


class ProductService:
    """Service for product operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: ProductCreate) -> Product:
        """
        Create a new product.

        Args:
            data: Product data

        Returns:
            Created product
        """
        product = Product(**data.model_dump())

        self.db.add(product)
        await self.db.flush()
        await self.db.refresh(product)

        return product

    async def bulk_create(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Import products from spreadsheet rows.

        Rows without a name are skipped and a blank category falls back to the
        default one. Invalid rows are reported; the valid ones are created.
        """
        created = 0
        skipped = 0
        errors = []
        for position, row in enumerate(rows, start=1):
            name = str(row.get("name") or "").strip()
            if not name:
                skipped += 1
                continue
            if not str(row.get("category") or "").strip():
                row = {key: value for key, value in row.items() if key != "category"}
            try:
                data = ProductCreate.model_validate(row)
            except SchemaError as e:
                error = e.errors()[0]
                field = ".".join(str(part) for part in error["loc"])
                errors.append(f"Row {position} ({name}): {field}: {error['msg']}")
                continue
            self.db.add(Product(**data.model_dump()))
            created += 1

        await self.db.flush()

        logger.info(f"Product import: {created} created, {len(errors)} failed, {skipped} skipped")
        return {
            "total": len(rows) - skipped,
            "created": created,
            "failed": len(errors),
            "skipped": skipped,
            "errors": errors,
        }

    async def get_by_id(self, product_id: int) -> Product | None:
        return await self.db.get(Product, product_id)

    async def get_or_404(self, product_id: int) -> Product:
        """
        Get product by ID or raise 404.

        Raises:
            HTTPException: If product not found
        """
        product = await self.get_by_id(product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        search: str | None = None,
        category: str | None = None,
        is_active: bool | None = None,
        low_stock_only: bool = False,
    ) -> tuple[list[Product], int]:
        """
        List products with pagination and filters.

        Args:
            skip: Number of records to skip
            limit: Maximum records to return
            search: Search term for name/category
            category: Filter by top-level category
            is_active: Filter by active status
            low_stock_only: Only show products with low stock

        Returns:
            Tuple of (products list, total count)
        """
        filters = []

        if search:
            search_filter = f"%{search}%"
            filters.append(or_(
                Product.name.ilike(search_filter),
                Product.category.ilike(search_filter),
                Product.subcategory.ilike(search_filter),
            ))

        if category:
            filters.append(Product.category == category)

        if is_active is not None:
            filters.append(Product.is_active == is_active)

        if low_stock_only:
            filters.append(Product.stock_quantity <= Product.low_stock_threshold)

        # Get total count
        total_result = await self.db.execute(select(func.count(Product.id)).where(*filters))
        total = total_result.scalar() or 0

        # Get paginated results
        query = select(Product).where(*filters).order_by(Product.name).offset(skip).limit(limit)
        result = await self.db.execute(query)
        products = list(result.scalars().all())

        return products, total

    async def categories(self) -> List[str]:
        """Distinct categories of active products."""
        result = await self.db.execute(
            select(Product.category)
            .where(Product.is_active == True)
            .distinct()
            .order_by(Product.category)
        )
        return list(result.scalars().all())

    async def low_stock(self, limit: int = 10) -> List[Product]:
        """Active products at or below their threshold, lowest stock first."""
        result = await self.db.execute(
            select(Product)
            .where(
                Product.is_active == True,
                Product.stock_quantity <= Product.low_stock_threshold,
            )
            .order_by(Product.stock_quantity, Product.name)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update(self, product: Product, data: ProductUpdate) -> Product:
        """Update product with the fields that were set."""
        update_data = data.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(product, field, value)

        await self.db.flush()
        await self.db.refresh(product)

        return product

    async def update_stock(
        self,
        product: Product,
        quantity_change: int,
        reason: str | None = None,
    ) -> Product:
        """
        Update product stock quantity.

        Args:
            product: Product to update
            quantity_change: Positive to add, negative to remove
            reason: Reason for stock adjustment

        Returns:
            Updated product

        Raises:
            HTTPException: If stock would go negative
        """
        new_quantity = product.stock_quantity + quantity_change

        if new_quantity < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient stock (current: {product.stock_quantity})",
            )

        product.stock_quantity = new_quantity

        await self.db.flush()
        await self.db.refresh(product)

        logger.info(
            f"Stock of {product.name} adjusted by {quantity_change} to {new_quantity}"
            + (f" ({reason})" if reason else "")
        )
        return product

    async def delete(self, product: Product) -> None:
        """
        Delete product (soft delete by deactivating).
        Issued invoices keep their copied name and price.
        """
        product.is_active = False
        await self.db.flush()
