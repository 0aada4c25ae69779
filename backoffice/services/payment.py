"""
Payment service.
Records payments against invoices and keeps invoice payment status in sync.

Two write paths exist:

* ``apply`` records one payment against one invoice.
* ``distribute`` splits one payment across a shop's outstanding invoices
  following ``backoffice.services.allocation``.

Both lock the invoice rows they touch (SELECT ... FOR UPDATE) and derive
the new status from a fresh read of the payments, so concurrent payments on
one invoice are serialized by the database.
"""

from datetime import date
from decimal import Decimal
from typing import NamedTuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, func, or_
from fastapi import HTTPException, status

from backoffice.core.config import settings
from backoffice.core.exceptions import (
    PartialApplicationError,
    PersistenceError,
    ValidationError,
)
from backoffice.models import Invoice, Payment, PaymentMethod, PaymentStatus, Shop
from backoffice.schemas.payment import PaymentBase, PaymentCreate, DistributePaymentRequest
from backoffice.services.allocation import (
    ZERO,
    AllocationCandidate,
    allocation_order,
    derive_status,
    lte,
    plan_allocation,
    remaining_balance,
    to_money,
    total_pending,
)

logger = logging.getLogger(__name__)


class AppliedPayment(NamedTuple):
    """One payment written and the invoice state it produced."""
    invoice: Invoice
    payment: Payment
    status: PaymentStatus


class Distribution(NamedTuple):
    """Outcome of a distribution."""
    shop_id: int
    amount: Decimal
    total_pending: Decimal
    applied: list[AppliedPayment]


class PaymentService:
    """Service for payment operations."""

    def __init__(self, db: AsyncSession, atomic: bool | None = None):
        self.db = db
        self.atomic = settings.ATOMIC_PAYMENT_DISTRIBUTION if atomic is None else atomic

    # Storage boundary

    async def fetch_payments(self, invoice_id: int) -> list[Payment]:
        """All payments of an invoice, oldest first."""
        result = await self.db.execute(
            select(Payment)
            .where(Payment.invoice_id == invoice_id)
            .order_by(Payment.created_at, Payment.id)
        )
        return list(result.scalars().all())

    async def _lock_invoice(self, invoice_id: int) -> Invoice | None:
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .with_for_update(of=Invoice)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def _lock_shop_invoices(self, shop_id: int, owner_id: int | None = None) -> list[Invoice]:
        query = select(Invoice).where(Invoice.shop_id == shop_id)
        if owner_id is not None:
            query = query.where(Invoice.created_by == owner_id)
        result = await self.db.execute(
            query
            .order_by(Invoice.created_at, Invoice.id)
            .with_for_update(of=Invoice)
            .execution_options(populate_existing=True)
        )
        return list(result.unique().scalars().all())

    async def _append_payment(
        self,
        invoice: Invoice,
        amount: Decimal,
        data: PaymentBase,
        created_by: int,
    ) -> Payment:
        payment = Payment(
            invoice_id=invoice.id,
            amount=amount,
            payment_method=data.payment_method,
            check_number=data.check_number if data.payment_method == PaymentMethod.CHECK else None,
            notes=data.notes or None,
            payment_date=data.payment_date or date.today(),
            created_by=created_by,
        )
        self.db.add(payment)
        await self.db.flush()
        return payment

    async def sync_status(self, invoice: Invoice) -> PaymentStatus:
        """
        Re-derive and persist an invoice's status from its payments.

        Every path that adds payments ends here; status is never set directly.
        """
        payments = await self.fetch_payments(invoice.id)
        new_status = derive_status(invoice.total_amount, [p.amount for p in payments])
        invoice.payment_status = new_status
        await self.db.flush()
        await self.db.refresh(invoice)
        return new_status

    # Single invoice

    async def apply(
        self,
        data: PaymentCreate,
        created_by: int,
        owner_id: int | None = None,
    ) -> AppliedPayment:
        """
        Record one payment against one invoice.

        Args:
            data: Payment data with the target invoice
            created_by: User recording the payment
            owner_id: When set, only invoices created by this user are reachable

        Returns:
            The invoice, the created payment and the invoice's new status

        Raises:
            ValidationError: Unknown invoice, non-positive amount, amount above
                the remaining balance (one-cent tolerance)
        """
        amount = to_money(data.amount)
        if amount <= ZERO:
            raise ValidationError("Please enter a valid amount")

        invoice = await self._lock_invoice(data.invoice_id)
        if not invoice or (owner_id is not None and invoice.created_by != owner_id):
            raise ValidationError("Please select an invoice")

        existing = [p.amount for p in await self.fetch_payments(invoice.id)]
        if derive_status(invoice.total_amount, existing) == PaymentStatus.PAID:
            raise ValidationError("This invoice is already fully paid")

        remaining = remaining_balance(invoice.total_amount, existing)
        if not lte(amount, remaining):
            raise ValidationError(
                f"Payment amount cannot exceed remaining balance ({remaining})"
            )

        try:
            payment = await self._append_payment(invoice, amount, data, created_by)
            new_status = await self.sync_status(invoice)
        except SQLAlchemyError as e:
            logger.error(f"Failed to record payment on invoice {invoice.id}: {e}", exc_info=True)
            raise PersistenceError("Failed to record payment") from e

        logger.info(
            f"Payment of {amount} ({data.payment_method.value}) recorded on invoice "
            f"{invoice.invoice_number}: {new_status.value}"
        )
        return AppliedPayment(invoice, payment, new_status)

    # Distribution

    async def distribute(
        self,
        data: DistributePaymentRequest,
        created_by: int,
        owner_id: int | None = None,
    ) -> Distribution:
        """
        Distribute one payment across a shop's outstanding invoices.

        Unpaid invoices are served first, then partially paid ones, each
        oldest first. Everything is validated before the first write.

        With atomic distribution (the default) a storage failure rolls the
        whole distribution back and raises PersistenceError. Otherwise each
        allocation is committed as it is applied and a failure raises
        PartialApplicationError describing what was and was not applied.

        With ``owner_id`` only that user's invoices of the shop take part.
        """
        amount = to_money(data.amount)
        if amount <= ZERO:
            raise ValidationError("Please enter a valid amount")

        shop = await self.db.get(Shop, data.shop_id)
        if not shop:
            raise ValidationError("Please select a shop")

        invoices = {inv.id: inv for inv in await self._lock_shop_invoices(shop.id, owner_id)}
        candidates = [
            AllocationCandidate(
                invoice_id=inv.id,
                payment_status=inv.payment_status,
                created_at=inv.created_at,
                total_amount=inv.total_amount,
                paid_amount=to_money(inv.paid_amount or 0),
            )
            for inv in invoices.values()
        ]

        pending = total_pending(candidates)
        if pending <= ZERO:
            raise ValidationError(f"Shop {shop.name} has no outstanding balance")
        if amount > pending:
            raise ValidationError(
                f"Payment amount cannot exceed total pending balance ({pending})"
            )

        plan = plan_allocation(amount, candidates)
        logger.info(
            f"Distributing {amount} across {len(plan)} invoice(s) of shop {shop.id} "
            f"(pending {pending})"
        )

        shop_id = shop.id
        applied: list[AppliedPayment] = []
        applied_ids: list[int] = []
        for position, allocation in enumerate(plan):
            invoice = invoices[allocation.invoice_id]
            try:
                payment = await self._append_payment(invoice, allocation.amount, data, created_by)
                new_status = await self.sync_status(invoice)
                if not self.atomic:
                    await self.db.commit()
            except SQLAlchemyError as e:
                logger.error(
                    f"Distribution for shop {shop_id} failed on invoice {allocation.invoice_id}: {e}",
                    exc_info=True,
                )
                await self.db.rollback()
                if self.atomic or not applied:
                    raise PersistenceError(
                        "Failed to record payment; no invoice was charged"
                    ) from e
                raise PartialApplicationError(
                    f"Payment applied to {len(applied)} of {len(plan)} invoice(s) before a failure",
                    applied_invoice_ids=applied_ids,
                    failed_invoice_id=allocation.invoice_id,
                    pending_invoice_ids=[a.invoice_id for a in plan[position + 1:]],
                ) from e

            applied.append(AppliedPayment(invoice, payment, new_status))
            applied_ids.append(allocation.invoice_id)

        return Distribution(shop_id, amount, pending, applied)

    async def preview_distribution(self, shop_id: int, owner_id: int | None = None) -> list[Invoice]:
        """Outstanding invoices of a shop in the order a distribution would pay them."""
        query = select(Invoice).where(Invoice.shop_id == shop_id)
        if owner_id is not None:
            query = query.where(Invoice.created_by == owner_id)
        result = await self.db.execute(query)
        invoices = {inv.id: inv for inv in result.unique().scalars().all()}
        ordered = allocation_order(
            AllocationCandidate(
                invoice_id=inv.id,
                payment_status=inv.payment_status,
                created_at=inv.created_at,
                total_amount=inv.total_amount,
                paid_amount=to_money(inv.paid_amount or 0),
            )
            for inv in invoices.values()
        )
        return [invoices[c.invoice_id] for c in ordered if c.remaining > ZERO]

    # Queries

    async def get_by_id(self, payment_id: int) -> Payment | None:
        """Get payment by ID."""
        return await self.db.get(Payment, payment_id)

    async def get_or_404(self, payment_id: int, owner_id: int | None = None) -> Payment:
        """
        Get payment by ID or raise 404.

        With ``owner_id`` the payment must have been recorded by that user or
        belong to one of that user's invoices.
        """
        if owner_id is None:
            payment = await self.get_by_id(payment_id)
        else:
            result = await self.db.execute(
                select(Payment)
                .join(Invoice, Invoice.id == Payment.invoice_id)
                .where(
                    Payment.id == payment_id,
                    or_(Payment.created_by == owner_id, Invoice.created_by == owner_id),
                )
            )
            payment = result.scalar_one_or_none()
        if not payment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Payment not found",
            )
        return payment

    async def list_by_invoice(self, invoice_id: int, owner_id: int | None = None) -> list[Payment]:
        """List all payments for an invoice; 404 when the invoice is out of reach."""
        invoice = await self.db.get(Invoice, invoice_id)
        if not invoice or (owner_id is not None and invoice.created_by != owner_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invoice not found",
            )
        return await self.fetch_payments(invoice_id)

    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        from_date: date | None = None,
        to_date: date | None = None,
        payment_method: PaymentMethod | None = None,
        created_by: int | None = None,
    ) -> tuple[list[Payment], int]:
        """List all payments with pagination and filters."""
        query = select(Payment)
        count_query = select(func.count(Payment.id))

        filters = []
        if from_date:
            filters.append(Payment.payment_date >= from_date)
        if to_date:
            filters.append(Payment.payment_date <= to_date)
        if payment_method:
            filters.append(Payment.payment_method == payment_method)
        if created_by:
            filters.append(Payment.created_by == created_by)

        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(Payment.payment_date.desc(), Payment.id.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        payments = list(result.scalars().all())

        return payments, total

    async def get_stats(
        self,
        from_date: date | None = None,
        to_date: date | None = None,
        created_by: int | None = None,
    ) -> dict:
        """Payment totals by method."""
        query = select(Payment.payment_method, func.sum(Payment.amount), func.count(Payment.id))
        if from_date:
            query = query.where(Payment.payment_date >= from_date)
        if to_date:
            query = query.where(Payment.payment_date <= to_date)
        if created_by:
            query = query.where(Payment.created_by == created_by)
        query = query.group_by(Payment.payment_method)

        result = await self.db.execute(query)
        by_method = {method.value: {"total": Decimal("0.00"), "count": 0} for method in PaymentMethod}
        for method, total, count in result.all():
            by_method[method.value] = {"total": to_money(total or 0), "count": count}

        return {
            "by_method": by_method,
            "total": sum((m["total"] for m in by_method.values()), Decimal("0.00")),
        }
