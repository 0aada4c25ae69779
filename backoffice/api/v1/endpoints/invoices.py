"""
Invoice management endpoints.
Invoice creation, legacy balances, listing and status maintenance.
"""

from datetime import date, datetime, timezone
from fastapi import APIRouter, Query, status

from backoffice.api.deps import DbSession, CurrentUser, AdminUser
from backoffice.schemas.invoice import (
    InvoiceCreate,
    InvoiceCreateResponse,
    InvoiceFilters,
    InvoiceListResponse,
    InvoiceNotesUpdate,
    InvoiceResponse,
    LegacyBalanceCreate,
    StatusReconciliation,
)
from backoffice.schemas.base import MessageResponse, page_count
from backoffice.models.invoice import PaymentStatus
from backoffice.services.invoice import InvoiceService


router = APIRouter()


@router.post(
    "",
    response_model=InvoiceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an invoice",
    description="Create an invoice with its lines and any cash/check received up front",
)
async def create_invoice(
    data: InvoiceCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceCreateResponse:
    """
    Create a new invoice.

    - Assigns the next invoice number
    - Records initial payments and derives the status
    - Emails the shop when requested; an email failure is a warning
    """
    service = InvoiceService(db)
    creation = await service.create(data, current_user.id)
    return InvoiceCreateResponse(
        invoice=InvoiceResponse.model_validate(creation.invoice),
        email_sent=creation.email_sent,
        warnings=creation.warnings,
    )


@router.post(
    "/legacy-balance",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a legacy balance",
    description="Record a shop's opening balance carried over from previous records",
)
async def create_legacy_balance(
    data: LegacyBalanceCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    """Create a legacy balance invoice."""
    service = InvoiceService(db)
    invoice = await service.create_legacy_balance(data, current_user.id)
    return InvoiceResponse.model_validate(invoice)


@router.get(
    "",
    response_model=InvoiceListResponse,
    summary="List invoices",
    description="Get the paginated list of invoices",
)
async def list_invoices(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    shop_id: int | None = Query(None, description="Filter by shop"),
    payment_status: PaymentStatus | None = Query(None, description="Filter by payment status"),
    created_by: int | None = Query(None, description="Filter by creator (admin only)"),
    from_date: date | None = Query(None, description="Start date"),
    to_date: date | None = Query(None, description="End date"),
    search: str | None = Query(None, description="Search by invoice number or shop name"),
) -> InvoiceListResponse:
    """List invoices; sales users only see their own."""
    service = InvoiceService(db)
    skip = (page - 1) * per_page

    filters = InvoiceFilters(
        shop_id=shop_id,
        payment_status=payment_status,
        created_by=created_by if current_user.is_admin else current_user.id,
        from_date=from_date,
        to_date=to_date,
        search=search,
    )
    invoices, total = await service.list(filters, skip=skip, limit=per_page)

    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(i) for i in invoices],
        total=total,
        page=page,
        per_page=per_page,
        pages=page_count(total, per_page),
    )


@router.post(
    "/reconcile",
    response_model=StatusReconciliation,
    summary="Reconcile statuses",
    description="Re-derive every invoice's payment status from its payments (admin only)",
)
async def reconcile_statuses(
    current_user: AdminUser,
    db: DbSession,
) -> StatusReconciliation:
    """Fix invoices whose stored status disagrees with their payments."""
    service = InvoiceService(db)
    corrected = await service.reconcile_statuses()
    return StatusReconciliation(
        checked=await service.count(),
        corrected=len(corrected),
        corrected_invoice_ids=corrected,
        checked_at=datetime.now(timezone.utc),
    )


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Invoice details",
)
async def get_invoice(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    """Get invoice by ID."""
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user)
    return InvoiceResponse.model_validate(invoice)


@router.patch(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Update invoice notes",
    description="Only notes can change once an invoice is issued",
)
async def update_invoice_notes(
    invoice_id: int,
    data: InvoiceNotesUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    """Update an invoice's notes."""
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id, current_user)
    invoice = await service.update_notes(invoice, data)
    return InvoiceResponse.model_validate(invoice)


@router.post(
    "/{invoice_id}/recompute-status",
    response_model=InvoiceResponse,
    summary="Recompute status",
    description="Re-derive one invoice's payment status from its payments",
)
async def recompute_status(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> InvoiceResponse:
    """Recompute an invoice's status."""
    service = InvoiceService(db)
    await service.get_or_404(invoice_id, current_user)
    await service.recompute_status(invoice_id)
    invoice = await service.get_or_404(invoice_id)
    return InvoiceResponse.model_validate(invoice)


@router.delete(
    "/{invoice_id}",
    response_model=MessageResponse,
    summary="Delete an invoice",
    description="Delete an invoice with its lines and payments (admin only)",
)
async def delete_invoice(
    invoice_id: int,
    current_user: AdminUser,
    db: DbSession,
) -> MessageResponse:
    """Delete an invoice."""
    service = InvoiceService(db)
    invoice = await service.get_or_404(invoice_id)
    await service.delete(invoice)
    return MessageResponse(message="Invoice deleted successfully")
