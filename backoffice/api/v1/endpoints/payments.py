"""
Payment management endpoints.
Record payments on one invoice or distribute them across a shop's invoices.
"""

from datetime import date
from fastapi import APIRouter, Query, status

from backoffice.api.deps import DbSession, CurrentUser, scope_for
from backoffice.schemas.invoice import InvoiceResponse
from backoffice.schemas.payment import (
    DistributePaymentRequest,
    DistributionResponse,
    PaymentCreate,
    PaymentListResponse,
    PaymentResponse,
    PaymentResult,
)
from backoffice.schemas.base import page_count
from backoffice.models.payment import PaymentMethod
from backoffice.services.payment import AppliedPayment, PaymentService


router = APIRouter()


def _result(applied: AppliedPayment) -> PaymentResult:
    return PaymentResult(
        payment=PaymentResponse.model_validate(applied.payment),
        invoice_id=applied.invoice.id,
        invoice_number=applied.invoice.invoice_number,
        payment_status=applied.status,
        remaining_balance=applied.invoice.remaining_balance,
    )


@router.post(
    "",
    response_model=PaymentResult,
    status_code=status.HTTP_201_CREATED,
    summary="Record a payment",
    description="Record a payment against one invoice",
)
async def create_payment(
    data: PaymentCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> PaymentResult:
    """Record a payment and return the invoice's new status. Sales users only pay their own invoices."""
    service = PaymentService(db)
    applied = await service.apply(data, current_user.id, scope_for(current_user))
    return _result(applied)


@router.post(
    "/distribute",
    response_model=DistributionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Distribute a payment",
    description=(
        "Split one payment across a shop's outstanding invoices: "
        "unpaid invoices first, then partially paid ones, oldest first"
    ),
)
async def distribute_payment(
    data: DistributePaymentRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> DistributionResponse:
    """Distribute a payment across a shop's invoices; sales users only reach their own."""
    service = PaymentService(db)
    distribution = await service.distribute(data, current_user.id, scope_for(current_user))
    return DistributionResponse(
        shop_id=distribution.shop_id,
        amount=distribution.amount,
        total_pending_before=distribution.total_pending,
        allocations=[_result(applied) for applied in distribution.applied],
    )


@router.get(
    "/distribute/{shop_id}/preview",
    response_model=list[InvoiceResponse],
    summary="Preview a distribution",
    description="Outstanding invoices of a shop in the order a distribution pays them",
)
async def preview_distribution(
    shop_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> list[InvoiceResponse]:
    """Invoices a distribution would pay, in order."""
    service = PaymentService(db)
    invoices = await service.preview_distribution(shop_id, scope_for(current_user))
    return [InvoiceResponse.model_validate(i) for i in invoices]


@router.get(
    "",
    response_model=PaymentListResponse,
    summary="List payments",
    description="Get the paginated list of payments",
)
async def list_payments(
    current_user: CurrentUser,
    db: DbSession,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    from_date: date | None = Query(None, description="Start date"),
    to_date: date | None = Query(None, description="End date"),
    payment_method: PaymentMethod | None = Query(None, description="Filter by method"),
) -> PaymentListResponse:
    """List payments; sales users only see the ones they recorded."""
    service = PaymentService(db)
    skip = (page - 1) * per_page

    payments, total = await service.list(
        skip=skip,
        limit=per_page,
        from_date=from_date,
        to_date=to_date,
        payment_method=payment_method,
        created_by=scope_for(current_user),
    )

    return PaymentListResponse(
        items=[PaymentResponse.model_validate(p) for p in payments],
        total=total,
        page=page,
        per_page=per_page,
        pages=page_count(total, per_page),
    )


@router.get(
    "/invoice/{invoice_id}",
    response_model=list[PaymentResponse],
    summary="Payments of an invoice",
)
async def list_invoice_payments(
    invoice_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> list[PaymentResponse]:
    """List all payments for an invoice."""
    service = PaymentService(db)
    payments = await service.list_by_invoice(invoice_id, scope_for(current_user))
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get(
    "/stats",
    summary="Payment statistics",
    description="Payment totals by method",
)
async def get_payment_stats(
    current_user: CurrentUser,
    db: DbSession,
    from_date: date | None = Query(None, description="Start date"),
    to_date: date | None = Query(None, description="End date"),
) -> dict:
    """Get payment statistics."""
    service = PaymentService(db)
    return await service.get_stats(from_date, to_date, scope_for(current_user))


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Payment details",
)
async def get_payment(
    payment_id: int,
    current_user: CurrentUser,
    db: DbSession,
) -> PaymentResponse:
    """Get payment by ID."""
    service = PaymentService(db)
    payment = await service.get_or_404(payment_id, scope_for(current_user))
    return PaymentResponse.model_validate(payment)
