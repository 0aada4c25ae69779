"""
Shop service.
Handles shop CRUD operations.
"""

import logging
from typing import Any, Dict, List
from pydantic import ValidationError as SchemaError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from fastapi import HTTPException, status

from backoffice.models import Invoice, Shop
from backoffice.schemas.shop import ShopCreate, ShopUpdate


logger = logging.getLogger(__name__)


class ShopService:
    """Service for shop operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, data: ShopCreate, created_by: int) -> Shop:
        """
        Create a new shop.

        Args:
            data: Shop data
            created_by: User registering the shop

        Returns:
            Created shop
        """
        shop = Shop(
            created_by=created_by,
            **data.model_dump(),
        )

        self.db.add(shop)
        await self.db.flush()
        await self.db.refresh(shop)

        logger.info(f"Shop {shop.name} created")
        return shop

    async def bulk_create(self, rows: List[Dict[str, Any]], created_by: int) -> Dict[str, Any]:
        """
        Import shops from spreadsheet rows.

        Rows without a name are skipped. Every other row is validated on its
        own: invalid rows are reported and the valid ones are created.

        Returns:
            Counts of created, failed and skipped rows with one message per failure
        """
        created = 0
        skipped = 0
        errors = []
        for position, row in enumerate(rows, start=1):
            name = str(row.get("name") or "").strip()
            if not name:
                skipped += 1
                continue
            try:
                data = ShopCreate.model_validate(row)
            except SchemaError as e:
                error = e.errors()[0]
                field = ".".join(str(part) for part in error["loc"])
                errors.append(f"Row {position} ({name}): {field}: {error['msg']}")
                continue
            self.db.add(Shop(created_by=created_by, **data.model_dump()))
            created += 1

        await self.db.flush()

        logger.info(f"Shop import: {created} created, {len(errors)} failed, {skipped} skipped")
        return {
            "total": len(rows) - skipped,
            "created": created,
            "failed": len(errors),
            "skipped": skipped,
            "errors": errors,
        }

    async def get_by_id(self, shop_id: int) -> Shop | None:
        return await self.db.get(Shop, shop_id)

    async def get_or_404(self, shop_id: int) -> Shop:
        """
        Get shop by ID or raise 404.

        Raises:
            HTTPException: If shop not found
        """
        shop = await self.get_by_id(shop_id)
        if not shop:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Shop not found",
            )
        return shop

    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        search: str | None = None,
    ) -> tuple[list[Shop], int]:
        """
        List shops with pagination and search.

        Args:
            skip: Number of records to skip
            limit: Maximum records to return
            search: Search term for name/owner/city

        Returns:
            Tuple of (shops list, total count)
        """
        query = select(Shop)
        count_query = select(func.count(Shop.id))

        if search:
            search_filter = f"%{search}%"
            condition = or_(
                Shop.name.ilike(search_filter),
                Shop.owner_name.ilike(search_filter),
                Shop.city.ilike(search_filter),
            )
            query = query.where(condition)
            count_query = count_query.where(condition)

        # Get total count
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        # Get paginated results
        query = query.order_by(Shop.name).offset(skip).limit(limit)
        result = await self.db.execute(query)
        shops = list(result.scalars().all())

        return shops, total

    async def update(self, shop: Shop, data: ShopUpdate) -> Shop:
        """Update shop with the fields that were set."""
        update_data = data.model_dump(exclude_unset=True)

        for field, value in update_data.items():
            setattr(shop, field, value)

        await self.db.flush()
        await self.db.refresh(shop)

        return shop

    async def delete(self, shop: Shop) -> None:
        """
        Delete shop.

        Raises:
            HTTPException: If the shop has invoices
        """
        result = await self.db.execute(
            select(func.count(Invoice.id)).where(Invoice.shop_id == shop.id)
        )
        if result.scalar():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete this shop (existing invoices)",
            )

        await self.db.delete(shop)
        await self.db.flush()
        logger.info(f"Shop {shop.name} deleted")
