"""
Dashboard endpoints.
Sales, collection and stock statistics. Sales users see their own figures.
"""

from fastapi import APIRouter, Query

from backoffice.api.deps import DbSession, CurrentUser, scope_for
from backoffice.services.dashboard import DashboardService


router = APIRouter()


@router.get(
    "",
    summary="Full dashboard",
    description="Get every dashboard statistic in one call",
)
async def get_full_dashboard(
    current_user: CurrentUser,
    db: DbSession,
) -> dict:
    """Get the full dashboard."""
    service = DashboardService(db)
    return await service.get_full_dashboard(scope_for(current_user))


@router.get(
    "/overview",
    summary="Overview",
    description="Counts, sales, collected and pending amounts",
)
async def get_overview(
    current_user: CurrentUser,
    db: DbSession,
) -> dict:
    """Get the overview."""
    service = DashboardService(db)
    return await service.get_overview(scope_for(current_user))


@router.get(
    "/sales",
    summary="Monthly sales",
    description="Invoiced and collected amounts per month",
)
async def get_sales_by_month(
    current_user: CurrentUser,
    db: DbSession,
    year: int | None = Query(None, description="Year (defaults to the current year)"),
) -> list:
    """Get monthly sales."""
    service = DashboardService(db)
    return await service.get_sales_by_month(scope_for(current_user), year)


@router.get(
    "/pending-invoices",
    summary="Pending invoices",
    description="Oldest invoices still carrying a balance",
)
async def get_pending_invoices(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(10, ge=1, le=50, description="Number of invoices"),
) -> list:
    """Get pending invoices."""
    service = DashboardService(db)
    return await service.get_pending_invoices(scope_for(current_user), limit)


@router.get(
    "/top-shops",
    summary="Top shops",
    description="Top shops by invoiced amount",
)
async def get_top_shops(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(5, ge=1, le=20, description="Number of shops"),
) -> list:
    """Get the top shops."""
    service = DashboardService(db)
    return await service.get_top_shops(scope_for(current_user), limit)


@router.get(
    "/top-products",
    summary="Top products",
    description="Top products by quantity sold",
)
async def get_top_products(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(5, ge=1, le=20, description="Number of products"),
) -> list:
    """Get the best selling products."""
    service = DashboardService(db)
    return await service.get_top_products(scope_for(current_user), limit)


@router.get(
    "/sales-by-category",
    summary="Sales by category",
    description="Quantities sold per product category and product",
)
async def get_sales_by_category(
    current_user: CurrentUser,
    db: DbSession,
) -> list:
    """Get product sales grouped by category."""
    service = DashboardService(db)
    return await service.get_sales_by_category(scope_for(current_user))


@router.get(
    "/recent-activity",
    summary="Recent activity",
    description="Latest invoices and payments, newest first",
)
async def get_recent_activity(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(5, ge=1, le=50, description="Number of entries"),
) -> list:
    """Get the recent activity feed."""
    service = DashboardService(db)
    return await service.get_recent_activity(scope_for(current_user), limit)


@router.get(
    "/low-stock",
    summary="Low stock products",
)
async def get_low_stock_products(
    current_user: CurrentUser,
    db: DbSession,
) -> list:
    """Get products with low stock."""
    service = DashboardService(db)
    return await service.get_low_stock_products()


@router.get(
    "/sales-performance",
    summary="Sales performance",
    description="Invoices, sales, collections and shops served per user",
)
async def get_sales_performance(
    current_user: CurrentUser,
    db: DbSession,
) -> list:
    """Get per-user sales performance."""
    service = DashboardService(db)
    return await service.get_sales_performance(scope_for(current_user))
