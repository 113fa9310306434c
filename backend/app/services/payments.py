"""Business logic for payment operations."""

from __future__ import annotations

import logging
import threading
import uuid
import weakref
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from time import perf_counter
from typing import Iterator, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from .observability import MetricOutcome, ObservabilityService
from .payment_storage import SqlAlchemySubscriptionStorage, interval_from_payment
from .subscription_periods import (
    CoverageInterval,
    InvalidInput,
    PaymentDecision,
    PaymentRejection,
    PaymentRequest,
    StatusSnapshot,
    ensure_no_overlap,
    find_overlapping_pairs,
    normalize_amount,
    resolve_and_validate_payment,
    subscription_status,
)

LOGGER = logging.getLogger(__name__)


class PaymentServiceError(RuntimeError):
    """Raised when payment operations cannot be completed."""


class ClientNotFoundError(PaymentServiceError):
    """Raised when the referenced client does not exist."""


class PaymentAlreadyDeletedError(PaymentServiceError):
    """Raised when a soft-deleted payment is deleted or edited again."""


@dataclass
class OverlappingPayments:
    client_id: int
    first: CoverageInterval
    second: CoverageInterval


class _ClientLock:
    """Per-client lock; entries leave the registry once no caller holds one."""

    __slots__ = ("lock", "__weakref__")

    def __init__(self) -> None:
        self.lock = threading.Lock()


_CLIENT_LOCKS: weakref.WeakValueDictionary[int, _ClientLock] = weakref.WeakValueDictionary()
_CLIENT_LOCKS_GUARD = threading.Lock()


@contextmanager
def _client_guard(client_id: int) -> Iterator[None]:
    """Serialize read-validate-write sequences for one client inside this process."""

    with _CLIENT_LOCKS_GUARD:
        entry = _CLIENT_LOCKS.get(client_id)
        if entry is None:
            entry = _ClientLock()
            _CLIENT_LOCKS[client_id] = entry
    with entry.lock:
        yield


def _parse_payment_id(payment_id: str) -> Optional[str]:
    try:
        return str(uuid.UUID(str(payment_id)))
    except ValueError:
        return None


class PaymentService:
    """Operations for reading and recording gym payments."""

    @staticmethod
    def list_payments(
        db: Session,
        *,
        client_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_deleted: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[list[models.Payment], int]:
        query = db.query(models.Payment)

        if not include_deleted:
            query = query.filter(models.Payment.is_deleted.is_(False))
        if client_id is not None:
            query = query.filter(models.Payment.client_id == client_id)
        if start_date:
            query = query.filter(models.Payment.payment_date >= start_date)
        if end_date:
            query = query.filter(models.Payment.payment_date <= end_date)

        total = query.count()
        items = (
            query.order_by(
                models.Payment.payment_date.desc(),
                models.Payment.created_at.desc(),
            )
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_payment(
        db: Session, payment_id: str, *, include_deleted: bool = True
    ) -> Optional[models.Payment]:
        normalized_id = _parse_payment_id(payment_id)
        if normalized_id is None:
            return None
        query = (
            db.query(models.Payment)
            .options(selectinload(models.Payment.audit_trail))
            .filter(models.Payment.id == normalized_id)
        )
        if not include_deleted:
            query = query.filter(models.Payment.is_deleted.is_(False))
        return query.first()

    @staticmethod
    def _resolve_client(
        db: Session, client_id: int, *, for_update: bool = False
    ) -> models.Client:
        query = db.query(models.Client).filter(models.Client.id == client_id)

        if for_update and db.get_bind().dialect.name != "sqlite":
            query = query.with_for_update()

        client = query.first()
        if client is None or client.deleted_at is not None:
            raise ClientNotFoundError(f"Client {client_id} not found")
        return client

    @staticmethod
    def _build_request(data: schemas.PaymentCreate) -> PaymentRequest:
        return PaymentRequest(
            client_id=data.client_id,
            payment_date=data.payment_date or date.today(),
            amount=data.amount,
            period=data.subscription_period,
            promotion_id=data.promotion_id,
            manual_months=data.manual_months,
            is_day_pass=data.is_day_pass,
        )

    @classmethod
    def preview_payment(cls, db: Session, data: schemas.PaymentCreate) -> PaymentDecision:
        """Resolve and validate a payment without writing anything."""

        cls._resolve_client(db, data.client_id)
        return resolve_and_validate_payment(
            cls._build_request(data), SqlAlchemySubscriptionStorage(db)
        )

    @staticmethod
    def _snapshot(payment: models.Payment) -> dict:
        return {
            "client_id": payment.client_id,
            "promotion_id": payment.promotion_id,
            "amount": str(payment.amount),
            "payment_date": str(payment.payment_date),
            "next_payment_date": str(payment.next_payment_date),
            "subscription_period": getattr(
                payment.subscription_period, "value", payment.subscription_period
            ),
            "notes": payment.notes,
            "recorded_by": payment.recorded_by,
        }

    @classmethod
    def create_payment(cls, db: Session, data: schemas.PaymentCreate) -> models.Payment:
        start = perf_counter()
        tags: dict[str, object] = {
            "client_id": data.client_id,
            "has_promotion": data.promotion_id is not None,
            "is_day_pass": data.is_day_pass,
        }

        with _client_guard(data.client_id):
            try:
                client = cls._resolve_client(db, data.client_id, for_update=True)
                decision = resolve_and_validate_payment(
                    cls._build_request(data), SqlAlchemySubscriptionStorage(db)
                )

                payment = models.Payment(
                    id=str(uuid.uuid4()),
                    client_id=client.id,
                    promotion_id=decision.promotion_id,
                    amount=decision.amount,
                    payment_date=decision.payment_date,
                    next_payment_date=decision.next_payment_date,
                    subscription_period=decision.period_label,
                    notes=data.notes,
                    recorded_by=data.recorded_by,
                    is_deleted=False,
                )
                client.subscription_period = decision.period_label

                db.add(payment)
                db.add(client)
                db.add(
                    models.PaymentAuditLog(
                        payment=payment,
                        action=models.PaymentAuditAction.CREATED,
                        performed_by=data.recorded_by,
                        snapshot=cls._snapshot(payment),
                    )
                )
                db.commit()
                db.refresh(payment)
            except PaymentRejection as exc:
                # releases the row lock taken by _resolve_client
                db.rollback()
                LOGGER.info(
                    "Payment rejected",
                    extra={"client_id": data.client_id, "kind": exc.kind.value},
                )
                ObservabilityService.record_rejection(
                    db,
                    "payments.validation_failed",
                    kind=exc.kind.value,
                    reason=exc.detail,
                    tags=tags,
                    duration_ms=(perf_counter() - start) * 1000,
                )
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                ObservabilityService.record_event(
                    db,
                    "payments.persistence_failed",
                    MetricOutcome.ERROR,
                    duration_ms=(perf_counter() - start) * 1000,
                    tags=tags,
                    details={"exception": str(exc)},
                )
                raise PaymentServiceError("Unable to record payment at this time.") from exc

        ObservabilityService.record_event(
            db,
            "payments.created",
            MetricOutcome.SUCCESS,
            duration_ms=(perf_counter() - start) * 1000,
            tags=tags,
        )
        return payment

    @classmethod
    def update_payment(
        cls, db: Session, payment: models.Payment, data: schemas.PaymentUpdate
    ) -> models.Payment:
        """Apply corrections, re-checking overlap whenever the coverage moves."""

        if payment.is_deleted:
            raise PaymentAlreadyDeletedError("Deleted payments cannot be edited")

        changes = data.model_dump(exclude_unset=True)
        new_start = changes.get("payment_date") or payment.payment_date
        new_end = changes.get("next_payment_date") or payment.next_payment_date
        new_amount = (
            normalize_amount(changes["amount"]) if "amount" in changes else payment.amount
        )
        interval_changed = (new_start, new_end) != (
            payment.payment_date,
            payment.next_payment_date,
        )
        if new_end <= new_start:
            raise InvalidInput("next_payment_date must be after payment_date")

        with _client_guard(payment.client_id):
            if interval_changed:
                cls._resolve_client(db, payment.client_id, for_update=True)
                storage = SqlAlchemySubscriptionStorage(db)
                try:
                    ensure_no_overlap(
                        storage.list_active_intervals_for_client(payment.client_id),
                        CoverageInterval(new_start, new_end),
                        exclude_payment_id=str(payment.id),
                    )
                except PaymentRejection:
                    db.rollback()
                    raise

            payment.amount = new_amount
            payment.payment_date = new_start
            payment.next_payment_date = new_end
            if changes.get("subscription_period") is not None:
                payment.subscription_period = changes["subscription_period"]
            if "notes" in changes:
                payment.notes = changes["notes"]
            if "recorded_by" in changes:
                payment.recorded_by = changes["recorded_by"]

            try:
                db.add(
                    models.PaymentAuditLog(
                        payment=payment,
                        action=models.PaymentAuditAction.UPDATED,
                        performed_by=changes.get("recorded_by"),
                        snapshot=cls._snapshot(payment),
                    )
                )
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PaymentServiceError("Unable to update payment at this time.") from exc

        db.refresh(payment)
        LOGGER.info(
            "Payment updated",
            extra={"payment_id": str(payment.id), "interval_changed": interval_changed},
        )
        return payment

    @classmethod
    def delete_payment(
        cls, db: Session, payment: models.Payment, *, performed_by: Optional[str] = None
    ) -> None:
        """Soft-delete a payment so its coverage no longer blocks new payments."""

        if payment.is_deleted:
            raise PaymentAlreadyDeletedError("Payment already deleted")

        payment.is_deleted = True
        payment.deleted_at = datetime.now(timezone.utc)
        try:
            db.add(
                models.PaymentAuditLog(
                    payment=payment,
                    action=models.PaymentAuditAction.DELETED,
                    performed_by=performed_by,
                    snapshot={"amount": str(payment.amount), "deleted_at": str(payment.deleted_at)},
                )
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise PaymentServiceError("Unable to delete payment at this time.") from exc

        LOGGER.info(
            "Payment soft-deleted",
            extra={"payment_id": str(payment.id), "client_id": payment.client_id},
        )

    @classmethod
    def subscription_status(
        cls, db: Session, client_id: int, *, reference_date: Optional[date] = None
    ) -> tuple[models.Client, StatusSnapshot]:
        client = cls._resolve_client(db, client_id)
        intervals = SqlAlchemySubscriptionStorage(db).list_active_intervals_for_client(client_id)
        return client, subscription_status(intervals, reference_date or date.today())

    @staticmethod
    def overlapping_payments(db: Session) -> list[OverlappingPayments]:
        """Report active payments whose coverage overlaps within the same client."""

        payments = (
            db.query(models.Payment)
            .filter(models.Payment.is_deleted.is_(False))
            .order_by(models.Payment.client_id, models.Payment.payment_date)
            .all()
        )
        by_client: dict[int, list[CoverageInterval]] = defaultdict(list)
        for payment in payments:
            by_client[payment.client_id].append(interval_from_payment(payment))

        findings: list[OverlappingPayments] = []
        for client_id, intervals in by_client.items():
            for first, second in find_overlapping_pairs(intervals):
                findings.append(OverlappingPayments(client_id, first, second))
        return findings
