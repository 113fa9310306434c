"""Expose Pydantic schemas for convenient imports."""

from .client import (
    ClientCreate,
    ClientListResponse,
    ClientRead,
    ClientSubscriptionStatus,
    ClientUpdate,
)
from .common import ConflictingPayment, PaginatedResponse, RejectionDetail
from .payment import (
    PaymentAuditEntry,
    PaymentCreate,
    PaymentDetail,
    PaymentListResponse,
    PaymentPreview,
    PaymentRead,
    PaymentUpdate,
)
from .promotion import (
    PromotionBase,
    PromotionCreate,
    PromotionListResponse,
    PromotionRead,
    PromotionUpdate,
)

__all__ = [
    "ClientCreate",
    "ClientListResponse",
    "ClientRead",
    "ClientSubscriptionStatus",
    "ClientUpdate",
    "ConflictingPayment",
    "PaginatedResponse",
    "PaymentAuditEntry",
    "PaymentCreate",
    "PaymentDetail",
    "PaymentListResponse",
    "PaymentPreview",
    "PaymentRead",
    "PaymentUpdate",
    "PromotionBase",
    "PromotionCreate",
    "PromotionListResponse",
    "PromotionRead",
    "PromotionUpdate",
    "RejectionDetail",
]
