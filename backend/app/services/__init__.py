"""Service layer encapsulating business logic for API routers."""

from .clients import (
    ClientAlreadyDeletedError,
    ClientConflictError,
    ClientService,
    ClientServiceError,
)
from .observability import MetricOutcome, ObservabilityService
from .payment_storage import SqlAlchemySubscriptionStorage
from .payments import (
    ClientNotFoundError,
    OverlappingPayments,
    PaymentAlreadyDeletedError,
    PaymentService,
    PaymentServiceError,
)
from .promotions import PromotionService, PromotionServiceError
from .subscription_periods import (
    CoverageInterval,
    OverlapConflict,
    PaymentDecision,
    PaymentRejection,
    RejectionKind,
)

__all__ = [
    "ClientAlreadyDeletedError",
    "ClientConflictError",
    "ClientService",
    "ClientServiceError",
    "ClientNotFoundError",
    "CoverageInterval",
    "MetricOutcome",
    "ObservabilityService",
    "OverlapConflict",
    "OverlappingPayments",
    "PaymentAlreadyDeletedError",
    "PaymentDecision",
    "PaymentRejection",
    "PaymentService",
    "PaymentServiceError",
    "PromotionService",
    "PromotionServiceError",
    "RejectionKind",
    "SqlAlchemySubscriptionStorage",
]
