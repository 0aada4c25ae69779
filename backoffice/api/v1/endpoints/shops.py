"""
Shop management endpoints.
CRUD operations for shops and their outstanding balances.
"""

from fastapi import APIRouter, Query, status

from backoffice.api.deps import DbSession, CurrentUser, scope_for
from backoffice.schemas.shop import (
    ShopCreate,
    ShopUpdate,
    ShopResponse,
    ShopListResponse,
    ShopBalance,
)
from backoffice.schemas.base import BulkImportRequest, BulkImportResult, MessageResponse, page_count
from backoffice.services.invoice import InvoiceService
from backoffice.services.shop import ShopService


router = APIRouter()


@router.post(
    "",
    response_model=ShopResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a shop",
)
async def create_shop(
    data: ShopCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ShopResponse:
    """Create a new shop."""
    service = ShopService(db)
    shop = await service.create(data, current_user.id)
    return ShopResponse.model_validate(shop)


@router.post(
    "/bulk",
    response_model=BulkImportResult,
    status_code=status.HTTP_201_CREATED,
    summary="Import shops",
    description="Create shops from spreadsheet rows; invalid rows are reported, not fatal",
)
async def import_shops(
    data: BulkImportRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> BulkImportResult:
    """Bulk-create shops."""
    service = ShopService(db)
    return BulkImportResult(**await service.bulk_create(data.rows, current_user.id))


@router.get(
    "",
    response_model=ShopListResponse,
    summary="List shops",
    description="Get the paginated list of shops",
)
async def list_shops(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Search by name, owner or city"),
) -> ShopListResponse:
    """List all shops with pagination."""
    service = ShopService(db)
    skip = (page - 1) * per_page

    shops, total = await service.list(
        skip=skip,
        limit=per_page,
        search=search,
    )

    return ShopListResponse(
        items=[ShopResponse.model_validate(s) for s in shops],
        total=total,
        page=page,
        per_page=per_page,
        pages=page_count(total, per_page),
    )


@router.get(
    "/balances",
    response_model=list[ShopBalance],
    summary="Shop balances",
    description="Invoiced, paid and pending totals per shop",
)
async def list_balances(
    current_user: CurrentUser,
    db: DbSession,
) -> list[ShopBalance]:
    """Outstanding balance of every shop with invoices."""
    balances = await InvoiceService(db).shop_balances(created_by=scope_for(current_user))
    return [ShopBalance(**b) for b in balances]


@router.get(
    "/{shop_id}",
    response_model=ShopResponse,
    summary="Shop details",
)
async def get_shop(
    shop_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> ShopResponse:
    """Get shop by ID."""
    service = ShopService(db)
    shop = await service.get_or_404(shop_id)
    return ShopResponse.model_validate(shop)


@router.get(
    "/{shop_id}/balance",
    response_model=ShopBalance,
    summary="Shop balance",
    description="Invoiced, paid and pending totals of one shop",
)
async def get_shop_balance(
    shop_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> ShopBalance:
    """Outstanding balance of one shop."""
    return ShopBalance(**await InvoiceService(db).shop_summary(shop_id, scope_for(current_user)))


@router.patch(
    "/{shop_id}",
    response_model=ShopResponse,
    summary="Update a shop",
)
async def update_shop(
    shop_id: int,
    data: ShopUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ShopResponse:
    """Update a shop."""
    service = ShopService(db)
    shop = await service.get_or_404(shop_id)
    shop = await service.update(shop, data)
    return ShopResponse.model_validate(shop)


@router.delete(
    "/{shop_id}",
    response_model=MessageResponse,
    summary="Delete a shop",
    description="Delete a shop (refused when invoices exist)",
)
async def delete_shop(
    shop_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> MessageResponse:
    """Delete a shop."""
    service = ShopService(db)
    shop = await service.get_or_404(shop_id)
    await service.delete(shop)
    return MessageResponse(message="Shop deleted successfully")
