"""
Invoice service.
Handles invoice creation (items, discount, initial payments, numbering),
legacy balances, listing, per-shop balances and status reconciliation.
"""

import logging
from typing import List
from datetime import date, datetime, time, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete, or_
from fastapi import HTTPException, status

from backoffice.core.config import settings
from backoffice.core.exceptions import NotificationError, ValidationError
from backoffice.models import (
    Invoice,
    InvoiceItem,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Product,
    Shop,
    User,
)
from backoffice.schemas.invoice import (
    InvoiceCreate,
    InvoiceFilters,
    InvoiceNotesUpdate,
    LegacyBalanceCreate,
)
from backoffice.services.allocation import ZERO, derive_status, lte, to_money
from backoffice.services.email import EmailService
from backoffice.services.numbering import InvoiceNumberService
from backoffice.services.payment import PaymentService


logger = logging.getLogger(__name__)


class InvoiceCreation:
    """Created invoice plus the outcome of the email notification."""

    def __init__(self, invoice: Invoice, email_sent: bool = False, warnings: list[str] | None = None):
        self.invoice = invoice
        self.email_sent = email_sent
        self.warnings = warnings or []


class InvoiceService:
    """Service for invoice operations."""

    def __init__(self, db: AsyncSession, email_service: EmailService | None = None):
        self.db = db
        self.email_service = email_service or EmailService()

    async def _get_shop(self, shop_id: int | None) -> Shop:
        if not shop_id:
            raise ValidationError("Please select a shop")
        shop = await self.db.get(Shop, shop_id)
        if not shop:
            raise ValidationError("Please select a shop")
        return shop

    @staticmethod
    def _recipient(data: InvoiceCreate, shop: Shop) -> str | None:
        """Override address first, shop email otherwise."""
        email = data.recipient_email or shop.email
        return email if email and "@" in email else None

    async def create(self, data: InvoiceCreate, created_by: int) -> InvoiceCreation:
        """
        Create an invoice with its items and initial payments.

        Totals are resolved before the invoice is persisted: the total is the
        items subtotal minus the discount, never negative. Cash and check
        amounts received up front are recorded as payments and the status is
        derived from them. Product stock is decremented.

        Email dispatch happens after the invoice is persisted; its failure is
        reported as a warning and never undoes the invoice.

        Raises:
            ValidationError: No shop, no items, unknown product, discount above
                subtotal, initial payments above total, no recipient email
        """
        if not data.shop_id or not data.items:
            raise ValidationError("Please select a shop and add at least one product")

        initial_paid = to_money(data.cash_amount) + to_money(data.check_amount)

        shop = await self._get_shop(data.shop_id)
        recipient = self._recipient(data, shop)
        if data.send_email and not recipient:
            raise ValidationError("Please provide a valid email address to send the invoice")

        # Resolve lines against the catalog
        product_ids = {item.product_id for item in data.items}
        result = await self.db.execute(select(Product).where(Product.id.in_(product_ids)))
        products = {p.id: p for p in result.scalars().all()}

        lines = []
        for item in data.items:
            product = products.get(item.product_id)
            if not product or not product.is_active:
                raise ValidationError(f"Product {item.product_id} not found")
            unit_price = to_money(item.unit_price if item.unit_price is not None else product.price)
            lines.append((product, item.quantity, unit_price, to_money(unit_price * item.quantity)))

        subtotal = sum((line[3] for line in lines), ZERO)
        discount = to_money(data.discount_amount)
        if discount > subtotal:
            raise ValidationError(
                f"Discount ({discount}) cannot exceed the subtotal ({subtotal})"
            )
        total_amount = max(ZERO, subtotal - discount)

        if not lte(initial_paid, total_amount):
            raise ValidationError(
                f"Payment amount ({initial_paid}) cannot exceed invoice total ({total_amount})"
            )

        invoice_number = await InvoiceNumberService(self.db).next_invoice_number()

        invoice = Invoice(
            shop_id=shop.id,
            invoice_number=invoice_number,
            total_amount=total_amount,
            discount_amount=discount,
            payment_status=PaymentStatus.UNPAID,
            notes=data.notes or None,
            created_by=created_by,
        )
        self.db.add(invoice)
        await self.db.flush()

        for product, quantity, unit_price, line_subtotal in lines:
            self.db.add(InvoiceItem(
                invoice_id=invoice.id,
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                unit_price=unit_price,
                subtotal=line_subtotal,
            ))
            # Stock may go negative: invoicing is never blocked by inventory
            product.stock_quantity -= quantity

        for method, amount in (
            (PaymentMethod.CASH, to_money(data.cash_amount)),
            (PaymentMethod.CHECK, to_money(data.check_amount)),
        ):
            if amount > ZERO:
                self.db.add(Payment(
                    invoice_id=invoice.id,
                    amount=amount,
                    payment_method=method,
                    check_number=data.check_number if method == PaymentMethod.CHECK else None,
                    payment_date=date.today(),
                    created_by=created_by,
                ))

        await self.db.flush()
        await PaymentService(self.db).sync_status(invoice)

        logger.info(
            f"Invoice {invoice.invoice_number} created for shop {shop.id}: "
            f"total {total_amount}, {invoice.payment_status.value}"
        )

        creation = InvoiceCreation(invoice)
        if data.send_email and recipient:
            await self._notify(creation, shop, recipient)
        return creation

    async def _notify(self, creation: InvoiceCreation, shop: Shop, recipient: str) -> None:
        """Send the invoice email; failures become warnings."""
        invoice = creation.invoice
        try:
            await self.email_service.send_invoice(
                to_email=recipient,
                invoice_number=invoice.invoice_number,
                shop_name=shop.name,
                total_amount=invoice.total_amount,
            )
            creation.email_sent = True
        except NotificationError as e:
            logger.warning(f"Invoice {invoice.invoice_number} created but email failed: {e.message}")
            creation.warnings.append(f"Invoice created but email failed to send: {e.message}")

    async def create_legacy_balance(self, data: LegacyBalanceCreate, created_by: int) -> Invoice:
        """
        Record an opening balance carried over from previous records.

        The balance becomes an itemless unpaid invoice tagged in its notes,
        so it takes part in payment distribution like any other invoice.
        """
        amount = to_money(data.amount)
        if amount <= ZERO:
            raise ValidationError("Please enter a valid amount")

        shop = await self._get_shop(data.shop_id)
        invoice_number = await InvoiceNumberService(self.db).next_invoice_number()

        tag = settings.LEGACY_BALANCE_TAG
        notes = f"{tag} {data.notes}" if data.notes else f"{tag} Opening balance from previous records"

        invoice = Invoice(
            shop_id=shop.id,
            invoice_number=invoice_number,
            total_amount=amount,
            discount_amount=ZERO,
            payment_status=PaymentStatus.UNPAID,
            notes=notes,
            created_by=created_by,
        )
        self.db.add(invoice)
        await self.db.flush()
        await self.db.refresh(invoice)

        logger.info(f"Legacy balance {amount} recorded for shop {shop.id} as {invoice.invoice_number}")
        return invoice

    async def get_by_id(self, invoice_id: int) -> Invoice | None:
        """Get invoice by ID with items and shop loaded."""
        result = await self.db.execute(select(Invoice).where(Invoice.id == invoice_id))
        return result.unique().scalar_one_or_none()

    async def get_or_404(self, invoice_id: int, user: User | None = None) -> Invoice:
        """Get invoice by ID or raise 404. Sales users only reach their own invoices."""
        invoice = await self.get_by_id(invoice_id)
        if not invoice or (user is not None and not user.is_admin and invoice.created_by != user.id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invoice not found",
            )
        return invoice

    async def list(
        self,
        filters: InvoiceFilters,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Invoice], int]:
        """
        List invoices with pagination and filters, newest first.
        """
        conditions = []
        if filters.shop_id:
            conditions.append(Invoice.shop_id == filters.shop_id)
        if filters.payment_status:
            conditions.append(Invoice.payment_status == filters.payment_status)
        if filters.created_by:
            conditions.append(Invoice.created_by == filters.created_by)
        if filters.from_date:
            start = datetime.combine(filters.from_date, time.min, tzinfo=timezone.utc)
            conditions.append(Invoice.created_at >= start)
        if filters.to_date:
            end = datetime.combine(filters.to_date, time.max, tzinfo=timezone.utc)
            conditions.append(Invoice.created_at <= end)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(or_(
                Invoice.invoice_number.ilike(pattern),
                Invoice.shop_id.in_(select(Shop.id).where(Shop.name.ilike(pattern))),
            ))

        count_query = select(func.count(Invoice.id)).where(*conditions)
        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = (
            select(Invoice)
            .where(*conditions)
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(query)
        invoices = list(result.unique().scalars().all())

        return invoices, total

    async def update_notes(self, invoice: Invoice, data: InvoiceNotesUpdate) -> Invoice:
        """Update invoice notes. Amounts and status are not editable."""
        invoice.notes = data.notes
        await self.db.flush()
        await self.db.refresh(invoice)
        return invoice

    async def delete(self, invoice: Invoice) -> None:
        """
        Delete an invoice with its items and payments (admin only).
        """
        await self.db.execute(delete(Payment).where(Payment.invoice_id == invoice.id))
        await self.db.delete(invoice)
        await self.db.flush()
        logger.info(f"Invoice {invoice.invoice_number} deleted")

    async def recompute_status(self, invoice_id: int) -> PaymentStatus:
        """Re-derive one invoice's status from its payments."""
        invoice = await self.get_or_404(invoice_id)
        return await PaymentService(self.db).sync_status(invoice)

    async def reconcile_statuses(self) -> List[int]:
        """
        Re-derive every invoice's status and fix the ones out of sync.

        Returns:
            IDs of the invoices whose persisted status was corrected
        """
        result = await self.db.execute(select(Invoice).order_by(Invoice.id))
        corrected = []
        for invoice in result.unique().scalars().all():
            expected = derive_status(invoice.total_amount, [to_money(invoice.paid_amount or 0)])
            if invoice.payment_status != expected:
                logger.warning(
                    f"Invoice {invoice.invoice_number} status {invoice.payment_status.value} "
                    f"corrected to {expected.value}"
                )
                invoice.payment_status = expected
                corrected.append(invoice.id)
        await self.db.flush()
        return corrected

    async def count(self) -> int:
        result = await self.db.execute(select(func.count(Invoice.id)))
        return result.scalar() or 0

    async def shop_balances(
        self,
        shop_id: int | None = None,
        created_by: int | None = None,
    ) -> List[dict]:
        """
        Outstanding balance per shop, over one user's invoices when
        ``created_by`` is set.

        Returns:
            One row per shop with invoices: totals billed, paid and pending
        """
        paid = (
            select(Payment.invoice_id, func.sum(Payment.amount).label("paid"))
            .group_by(Payment.invoice_id)
            .subquery()
        )
        invoice_paid = func.coalesce(paid.c.paid, 0)
        query = (
            select(
                Shop,
                func.count(Invoice.id),
                func.sum(Invoice.total_amount),
                func.sum(invoice_paid),
            )
            .join(Invoice, Invoice.shop_id == Shop.id)
            .outerjoin(paid, paid.c.invoice_id == Invoice.id)
            .group_by(Shop.id)
            .order_by(Shop.name)
        )
        if shop_id:
            query = query.where(Shop.id == shop_id)

        pending_query = (
            select(Invoice.shop_id, func.count(Invoice.id))
            .outerjoin(paid, paid.c.invoice_id == Invoice.id)
            .where(Invoice.total_amount - invoice_paid > 0)
            .group_by(Invoice.shop_id)
        )
        if created_by is not None:
            query = query.where(Invoice.created_by == created_by)
            pending_query = pending_query.where(Invoice.created_by == created_by)
        pending_counts = dict((await self.db.execute(pending_query)).all())

        balances = []
        for shop, invoice_count, total_amount, total_paid in (await self.db.execute(query)).all():
            total_amount = to_money(total_amount or 0)
            total_paid = to_money(total_paid or 0)
            balances.append({
                "shop_id": shop.id,
                "shop_name": shop.name,
                "location": shop.location,
                "invoice_count": invoice_count,
                "total_amount": total_amount,
                "total_paid": total_paid,
                "total_pending": total_amount - total_paid,
                "pending_invoice_count": pending_counts.get(shop.id, 0),
            })
        return balances

    async def shop_summary(self, shop_id: int, created_by: int | None = None) -> dict:
        """Balance of one shop; zero totals when it has no invoices."""
        shop = await self.db.get(Shop, shop_id)
        if not shop:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Shop not found",
            )
        balances = await self.shop_balances(shop_id, created_by)
        if balances:
            return balances[0]
        return {
            "shop_id": shop.id,
            "shop_name": shop.name,
            "location": shop.location,
            "invoice_count": 0,
            "total_amount": ZERO,
            "total_paid": ZERO,
            "total_pending": ZERO,
            "pending_invoice_count": 0,
        }
