"""
Dashboard Service.
Provides sales, collection and stock statistics for the back-office.

Every query takes an optional ``created_by``: admins see the whole business
(``None``), sales users only the invoices they created.
"""

from datetime import date
from decimal import Decimal
from typing import List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, extract

from backoffice.models import Invoice, InvoiceItem, Payment, PaymentStatus, Product, Shop, User


class DashboardService:
    """Service for dashboard statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _scope(query, created_by: int | None):
        if created_by is not None:
            return query.where(Invoice.created_by == created_by)
        return query

    async def get_overview(self, created_by: int | None = None) -> Dict[str, Any]:
        """
        Get business overview statistics.

        Returns:
            Overview with counts, sales, collected and pending amounts
        """
        sales_result = await self.db.execute(
            self._scope(
                select(func.count(Invoice.id), func.sum(Invoice.total_amount)),
                created_by,
            )
        )
        invoice_count, total_sales = sales_result.one()
        total_sales = total_sales or Decimal("0.00")

        collected_result = await self.db.execute(
            self._scope(
                select(func.sum(Payment.amount)).join(Invoice, Invoice.id == Payment.invoice_id),
                created_by,
            )
        )
        total_collected = collected_result.scalar() or Decimal("0.00")

        product_count = await self.db.execute(
            select(func.count(Product.id)).where(Product.is_active == True)
        )
        shop_count = await self.db.execute(select(func.count(Shop.id)))

        return {
            "product_count": product_count.scalar() or 0,
            "shop_count": shop_count.scalar() or 0,
            "invoice_count": invoice_count or 0,
            "total_sales": float(total_sales),
            "total_collected": float(total_collected),
            "total_pending": float(total_sales - total_collected),
            "status_distribution": await self.get_invoice_status_distribution(created_by),
        }

    async def get_invoice_status_distribution(
        self,
        created_by: int | None = None,
    ) -> Dict[str, int]:
        """Get invoice count by payment status."""
        result = await self.db.execute(
            self._scope(
                select(Invoice.payment_status, func.count(Invoice.id)),
                created_by,
            ).group_by(Invoice.payment_status)
        )
        distribution = {status.value: 0 for status in PaymentStatus}
        for status, count in result.all():
            distribution[status.value] = count
        return distribution

    async def get_sales_by_month(
        self,
        created_by: int | None = None,
        year: int | None = None,
    ) -> List[Dict[str, Any]]:
        """
        Get monthly invoiced and collected amounts for the year.

        Args:
            created_by: Restrict to one user's invoices
            year: Year to get data for (defaults to current year)
        """
        if year is None:
            year = date.today().year

        invoice_month = extract('month', Invoice.created_at)
        sales_result = await self.db.execute(
            self._scope(
                select(
                    invoice_month,
                    func.sum(Invoice.total_amount),
                ).where(extract('year', Invoice.created_at) == year),
                created_by,
            ).group_by(invoice_month)
        )
        sales = {int(month): amount for month, amount in sales_result.all()}

        payment_month = extract('month', Payment.payment_date)
        collected_result = await self.db.execute(
            self._scope(
                select(
                    payment_month,
                    func.sum(Payment.amount),
                )
                .join(Invoice, Invoice.id == Payment.invoice_id)
                .where(extract('year', Payment.payment_date) == year),
                created_by,
            ).group_by(payment_month)
        )
        collected = {int(month): amount for month, amount in collected_result.all()}

        return [
            {
                "month": month,
                "year": year,
                "sales": float(sales.get(month) or 0),
                "collected": float(collected.get(month) or 0),
            }
            for month in range(1, 13)
        ]

    async def get_pending_invoices(
        self,
        created_by: int | None = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Oldest invoices still carrying a balance."""
        result = await self.db.execute(
            self._scope(
                select(Invoice).where(Invoice.payment_status != PaymentStatus.PAID),
                created_by,
            )
            .order_by(Invoice.created_at, Invoice.id)
            .limit(limit)
        )

        invoices = []
        for invoice in result.unique().scalars():
            invoices.append({
                "id": invoice.id,
                "invoice_number": invoice.invoice_number,
                "shop_name": invoice.shop_name or "Unknown shop",
                "payment_status": invoice.payment_status.value,
                "total_amount": float(invoice.total_amount),
                "remaining_balance": float(invoice.remaining_balance),
                "date": invoice.created_at.isoformat(),
            })
        return invoices

    async def get_top_shops(
        self,
        created_by: int | None = None,
        limit: int = 5,
    ) -> List[Dict[str, Any]]:
        """
        Get top shops by invoiced amount.

        Returns:
            List of top shops with total sales and invoice count
        """
        result = await self.db.execute(
            self._scope(
                select(
                    Shop.id,
                    Shop.name,
                    func.sum(Invoice.total_amount).label('total_sales'),
                    func.count(Invoice.id).label('invoice_count'),
                ).join(Invoice, Invoice.shop_id == Shop.id),
                created_by,
            )
            .group_by(Shop.id, Shop.name)
            .order_by(func.sum(Invoice.total_amount).desc())
            .limit(limit)
        )

        shops = []
        for row in result:
            shops.append({
                "id": row.id,
                "name": row.name,
                "total_sales": float(row.total_sales or 0),
                "invoice_count": row.invoice_count,
            })
        return shops

    async def get_top_products(
        self,
        created_by: int | None = None,
        limit: int = 5,
    ) -> List[Dict[str, Any]]:
        """
        Get top products by quantity sold.

        Returns:
            List of top products with quantity and sales
        """
        result = await self.db.execute(
            self._scope(
                select(
                    Product.id,
                    Product.name,
                    func.sum(InvoiceItem.quantity).label('total_quantity'),
                    func.sum(InvoiceItem.subtotal).label('total_sales'),
                )
                .join(InvoiceItem, InvoiceItem.product_id == Product.id)
                .join(Invoice, Invoice.id == InvoiceItem.invoice_id),
                created_by,
            )
            .group_by(Product.id, Product.name)
            .order_by(func.sum(InvoiceItem.quantity).desc())
            .limit(limit)
        )

        products = []
        for row in result:
            products.append({
                "id": row.id,
                "name": row.name,
                "total_quantity": int(row.total_quantity or 0),
                "total_sales": float(row.total_sales or 0),
            })
        return products

    async def get_sales_by_category(self, created_by: int | None = None) -> List[Dict[str, Any]]:
        """
        Quantities sold per product category, with the products of each.

        Returns:
            Categories by quantity sold, each listing its products by quantity
        """
        result = await self.db.execute(
            self._scope(
                select(
                    Product.category,
                    InvoiceItem.product_name,
                    func.sum(InvoiceItem.quantity).label('quantity'),
                    func.sum(InvoiceItem.subtotal).label('sales'),
                )
                .join(InvoiceItem, InvoiceItem.product_id == Product.id)
                .join(Invoice, Invoice.id == InvoiceItem.invoice_id),
                created_by,
            )
            .group_by(Product.category, InvoiceItem.product_name)
        )

        categories: Dict[str, Dict[str, Any]] = {}
        for row in result:
            quantity = int(row.quantity or 0)
            entry = categories.setdefault(row.category, {
                "category": row.category,
                "total_quantity": 0,
                "total_sales": 0.0,
                "products": [],
            })
            entry["total_quantity"] += quantity
            entry["total_sales"] += float(row.sales or 0)
            entry["products"].append({"name": row.product_name, "quantity": quantity})

        for entry in categories.values():
            entry["products"].sort(key=lambda p: (-p["quantity"], p["name"]))
        return sorted(categories.values(), key=lambda c: (-c["total_quantity"], c["category"]))

    async def get_recent_activity(
        self,
        created_by: int | None = None,
        limit: int = 5,
    ) -> List[Dict[str, Any]]:
        """
        Latest invoices and payments, newest first.
        """
        invoices = await self.db.execute(
            self._scope(
                select(
                    Invoice.id,
                    Invoice.invoice_number,
                    Invoice.total_amount,
                    Invoice.payment_status,
                    Invoice.created_at,
                    Shop.name.label('shop_name'),
                ).join(Shop, Shop.id == Invoice.shop_id),
                created_by,
            )
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .limit(limit)
        )
        payments = await self.db.execute(
            self._scope(
                select(
                    Payment.id,
                    Payment.amount,
                    Payment.payment_method,
                    Payment.created_at,
                    Invoice.invoice_number,
                    Shop.name.label('shop_name'),
                )
                .join(Invoice, Invoice.id == Payment.invoice_id)
                .join(Shop, Shop.id == Invoice.shop_id),
                created_by,
            )
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(limit)
        )

        activity = [
            {
                "type": "invoice",
                "id": row.id,
                "invoice_number": row.invoice_number,
                "shop_name": row.shop_name,
                "amount": float(row.total_amount),
                "payment_status": row.payment_status.value,
                "timestamp": row.created_at,
            }
            for row in invoices
        ]
        activity.extend(
            {
                "type": "payment",
                "id": row.id,
                "invoice_number": row.invoice_number,
                "shop_name": row.shop_name,
                "amount": float(row.amount),
                "payment_method": row.payment_method.value,
                "timestamp": row.created_at,
            }
            for row in payments
        )
        activity.sort(key=lambda a: a["timestamp"], reverse=True)

        recent = activity[:limit]
        for entry in recent:
            entry["timestamp"] = entry["timestamp"].isoformat()
        return recent

    async def get_low_stock_products(self) -> List[Dict[str, Any]]:
        """Get products with low stock."""
        result = await self.db.execute(
            select(Product)
            .where(
                Product.is_active == True,
                Product.stock_quantity <= Product.low_stock_threshold,
            )
            .order_by(Product.stock_quantity.asc())
        )

        products = []
        for product in result.scalars():
            products.append({
                "id": product.id,
                "name": product.name,
                "stock_quantity": product.stock_quantity,
                "low_stock_threshold": product.low_stock_threshold,
            })
        return products

    async def get_sales_performance(self, created_by: int | None = None) -> List[Dict[str, Any]]:
        """
        Sales, collections and shops served per user.
        """
        paid = (
            select(Payment.invoice_id, func.sum(Payment.amount).label("paid"))
            .group_by(Payment.invoice_id)
            .subquery()
        )
        query = (
            select(
                User.id,
                User.full_name,
                func.count(Invoice.id).label('invoice_count'),
                func.sum(Invoice.total_amount).label('total_sales'),
                func.sum(func.coalesce(paid.c.paid, 0)).label('total_collected'),
                func.count(func.distinct(Invoice.shop_id)).label('shop_count'),
            )
            .join(Invoice, Invoice.created_by == User.id)
            .outerjoin(paid, paid.c.invoice_id == Invoice.id)
            .group_by(User.id, User.full_name)
            .order_by(func.sum(Invoice.total_amount).desc())
        )
        if created_by is not None:
            query = query.where(User.id == created_by)

        result = await self.db.execute(query)
        return [
            {
                "user_id": row.id,
                "full_name": row.full_name,
                "invoice_count": row.invoice_count,
                "total_sales": float(row.total_sales or 0),
                "total_collected": float(row.total_collected or 0),
                "shop_count": row.shop_count,
            }
            for row in result
        ]

    async def get_full_dashboard(self, created_by: int | None = None) -> Dict[str, Any]:
        """
        Get complete dashboard data.

        Returns all dashboard statistics in one call.
        """
        return {
            "overview": await self.get_overview(created_by),
            "sales_by_month": await self.get_sales_by_month(created_by),
            "pending_invoices": await self.get_pending_invoices(created_by),
            "top_shops": await self.get_top_shops(created_by),
            "top_products": await self.get_top_products(created_by),
            "sales_by_category": await self.get_sales_by_category(created_by),
            "recent_activity": await self.get_recent_activity(created_by),
            "low_stock_products": await self.get_low_stock_products(),
            "sales_performance": await self.get_sales_performance(created_by),
        }
