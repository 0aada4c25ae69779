"""
Pydantic schemas for request/response validation.
"""

from backoffice.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
)
from backoffice.schemas.shop import (
    ShopCreate,
    ShopUpdate,
    ShopResponse,
    ShopBalance,
)
from backoffice.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
)
from backoffice.schemas.invoice import (
    InvoiceCreate,
    InvoiceResponse,
    InvoiceCreateResponse,
    InvoiceItemCreate,
    InvoiceItemResponse,
    LegacyBalanceCreate,
)
from backoffice.schemas.payment import (
    PaymentCreate,
    PaymentResponse,
    PaymentResult,
    DistributePaymentRequest,
    DistributionResponse,
)
from backoffice.schemas.auth import (
    Token,
    LoginRequest,
)

__all__ = [
    # User
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    # Shop
    "ShopCreate",
    "ShopUpdate",
    "ShopResponse",
    "ShopBalance",
    # Product
    "ProductCreate",
    "ProductUpdate",
    "ProductResponse",
    # Invoice
    "InvoiceCreate",
    "InvoiceResponse",
    "InvoiceCreateResponse",
    "InvoiceItemCreate",
    "InvoiceItemResponse",
    "LegacyBalanceCreate",
    # Payment
    "PaymentCreate",
    "PaymentResponse",
    "PaymentResult",
    "DistributePaymentRequest",
    "DistributionResponse",
    # Auth
    "Token",
    "LoginRequest",
]
