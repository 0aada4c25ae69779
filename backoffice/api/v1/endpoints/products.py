"""
Product management endpoints.
Catalog CRUD (admin) and stock management.
"""

from fastapi import APIRouter, Query, status

from backoffice.api.deps import DbSession, CurrentUser, AdminUser
from backoffice.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    StockUpdateRequest,
)
from backoffice.schemas.base import BulkImportRequest, BulkImportResult, MessageResponse, page_count
from backoffice.services.product import ProductService


router = APIRouter()


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
    description="Add a product to the catalog (admin only)",
)
async def create_product(
    data: ProductCreate,
    current_user: AdminUser,
    db: DbSession,
) -> ProductResponse:
    """Create a new product."""
    service = ProductService(db)
    product = await service.create(data)
    return ProductResponse.model_validate(product)


@router.post(
    "/bulk",
    response_model=BulkImportResult,
    status_code=status.HTTP_201_CREATED,
    summary="Import products",
    description="Create products from spreadsheet rows (admin only)",
)
async def import_products(
    data: BulkImportRequest,
    current_user: AdminUser,
    db: DbSession,
) -> BulkImportResult:
    """Bulk-create products."""
    service = ProductService(db)
    return BulkImportResult(**await service.bulk_create(data.rows))


@router.get(
    "",
    response_model=ProductListResponse,
    summary="List products",
    description="Get the paginated product catalog",
)
async def list_products(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    search: str | None = Query(None, description="Search by name or category"),
    category: str | None = Query(None, description="Filter by category"),
    is_active: bool | None = Query(None, description="Filter by active status"),
    low_stock: bool = Query(False, description="Only products at or below their threshold"),
) -> ProductListResponse:
    """List all products with pagination and filters."""
    service = ProductService(db)
    skip = (page - 1) * per_page

    products, total = await service.list(
        skip=skip,
        limit=per_page,
        search=search,
        category=category,
        is_active=is_active,
        low_stock_only=low_stock,
    )

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        per_page=per_page,
        pages=page_count(total, per_page),
    )


@router.get(
    "/categories",
    response_model=list[str],
    summary="Product categories",
)
async def list_categories(
    current_user: CurrentUser,
    db: DbSession,
) -> list[str]:
    """Distinct categories of active products."""
    return await ProductService(db).categories()


@router.get(
    "/low-stock",
    response_model=list[ProductResponse],
    summary="Low stock products",
    description="Active products at or below their low stock threshold",
)
async def list_low_stock(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(10, ge=1, le=100),
) -> list[ProductResponse]:
    """Products needing restock."""
    products = await ProductService(db).low_stock(limit)
    return [ProductResponse.model_validate(p) for p in products]


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Product details",
)
async def get_product(
    product_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> ProductResponse:
    """Get product by ID."""
    service = ProductService(db)
    product = await service.get_or_404(product_id)
    return ProductResponse.model_validate(product)


@router.patch(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Update a product's information (admin only)",
)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    current_user: AdminUser,
    db: DbSession,
) -> ProductResponse:
    """Update a product."""
    service = ProductService(db)
    product = await service.get_or_404(product_id)
    product = await service.update(product, data)
    return ProductResponse.model_validate(product)


@router.post(
    "/{product_id}/stock",
    response_model=ProductResponse,
    summary="Adjust stock",
    description="Add or remove stock (positive quantity adds, negative removes)",
)
async def update_stock(
    product_id: int,
    data: StockUpdateRequest,
    current_user: AdminUser,
    db: DbSession,
) -> ProductResponse:
    """Update product stock quantity."""
    service = ProductService(db)
    product = await service.get_or_404(product_id)
    product = await service.update_stock(product, data.quantity, data.reason)
    return ProductResponse.model_validate(product)


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Deactivate a product",
    description="Deactivate a product (soft delete)",
)
async def delete_product(
    product_id: int,
    current_user: AdminUser,
    db: DbSession,
) -> MessageResponse:
    """Delete (deactivate) a product."""
    service = ProductService(db)
    product = await service.get_or_404(product_id)
    await service.delete(product)
    return MessageResponse(message="Product deactivated successfully")
