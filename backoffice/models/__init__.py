"""
Database models module.
All SQLAlchemy models are exported from here for easy imports.
"""

from backoffice.models.user import User, UserRole
from backoffice.models.shop import Shop
from backoffice.models.product import Product
from backoffice.models.invoice import Invoice, InvoiceItem, InvoiceSequence, PaymentStatus
from backoffice.models.payment import Payment, PaymentMethod


__all__ = [
    "User",
    "UserRole",
    "Shop",
    "Product",
    "Invoice",
    "InvoiceItem",
    "InvoiceSequence",
    "PaymentStatus",
    "Payment",
    "PaymentMethod",
]
