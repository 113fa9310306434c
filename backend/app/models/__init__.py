"""Expose SQLAlchemy models for convenient imports."""

from .audit import PaymentAuditAction, PaymentAuditLog
from .client import Client
from .operational_metric import OperationalMetricEvent
from .payment import NOTES_MAX_LENGTH, Payment, PaymentPeriod, SubscriptionStatus
from .promotion import Promotion

__all__ = [
    "Client",
    "NOTES_MAX_LENGTH",
    "OperationalMetricEvent",
    "Payment",
    "PaymentAuditAction",
    "PaymentAuditLog",
    "PaymentPeriod",
    "Promotion",
    "SubscriptionStatus",
]
