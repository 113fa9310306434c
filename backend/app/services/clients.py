"""Business logic for gym client records."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from .subscription_periods import add_months

LOGGER = logging.getLogger(__name__)

MINIMUM_AGE_YEARS = 13
FULL_NAME_PATTERN = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿ'\-\s]+$")
PHONE_MAX_DIGITS = 12


class ClientServiceError(RuntimeError):
    """Raised when a client record cannot be written."""


class ClientConflictError(ClientServiceError):
    """Raised when another active client already uses the full name or national id."""


class ClientAlreadyDeletedError(ClientServiceError):
    """Raised when a soft-deleted client is deleted again."""


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = re.sub(r"[<>]", "", value).strip()
    return cleaned or None


class ClientService:
    """CRUD helpers for gym members.

    Clients are never removed from the database: deleting one stamps
    ``deleted_at`` so its payment history stays intact.
    """

    @staticmethod
    def list_clients(
        db: Session,
        *,
        skip: int = 0,
        limit: int = 50,
        search: Optional[str] = None,
        include_deleted: bool = False,
    ) -> Tuple[list[models.Client], int]:
        query = db.query(models.Client)
        if not include_deleted:
            query = query.filter(models.Client.deleted_at.is_(None))

        if search:
            pattern = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(models.Client.full_name).like(pattern),
                    func.lower(models.Client.national_id).like(pattern),
                )
            )

        total = query.count()
        items = (
            query.order_by(models.Client.full_name.asc(), models.Client.id.asc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_client(
        db: Session, client_id: int, *, include_deleted: bool = False
    ) -> Optional[models.Client]:
        client = db.get(models.Client, client_id)
        if client is None:
            return None
        if client.deleted_at is not None and not include_deleted:
            return None
        return client

    @staticmethod
    def _normalize(changes: dict[str, Any], *, today: date) -> dict[str, Any]:
        normalized = dict(changes)

        if "full_name" in normalized:
            full_name = _clean(normalized["full_name"])
            if not full_name:
                raise ClientServiceError("full_name is required")
            if not FULL_NAME_PATTERN.match(full_name):
                raise ClientServiceError("full_name may only contain letters, spaces, ' and -")
            normalized["full_name"] = full_name.upper()
        if "first_name" in normalized:
            normalized["first_name"] = _clean(normalized["first_name"])
        if "last_name" in normalized:
            normalized["last_name"] = _clean(normalized["last_name"])
        if "email" in normalized:
            email = _clean(normalized["email"])
            normalized["email"] = email.lower() if email else None
        if "phone" in normalized:
            digits = re.sub(r"[^0-9]", "", normalized["phone"] or "")
            normalized["phone"] = digits[:PHONE_MAX_DIGITS] or None
        if "national_id" in normalized:
            national_id = _clean(normalized["national_id"])
            normalized["national_id"] = national_id.upper() if national_id else None
        if "notes" in normalized:
            normalized["notes"] = _clean(normalized["notes"])

        date_of_birth = normalized.get("date_of_birth")
        if date_of_birth is not None:
            if date_of_birth > add_months(today, -12 * MINIMUM_AGE_YEARS):
                raise ClientServiceError(
                    f"Clients must be at least {MINIMUM_AGE_YEARS} years old"
                )
        return normalized

    @staticmethod
    def _ensure_unique(
        db: Session,
        *,
        full_name: Optional[str],
        national_id: Optional[str],
        exclude_client_id: Optional[int] = None,
    ) -> None:
        criteria = []
        if full_name:
            criteria.append(models.Client.full_name == full_name)
        if national_id:
            criteria.append(models.Client.national_id == national_id)
        if not criteria:
            return

        query = db.query(models.Client.id).filter(
            models.Client.deleted_at.is_(None), or_(*criteria)
        )
        if exclude_client_id is not None:
            query = query.filter(models.Client.id != exclude_client_id)
        if query.first() is not None:
            raise ClientConflictError(
                "A client with the same full name or national id already exists"
            )

    @classmethod
    def create_client(
        cls, db: Session, data: schemas.ClientCreate, *, today: Optional[date] = None
    ) -> models.Client:
        today = today or date.today()
        payload = cls._normalize(data.model_dump(), today=today)
        cls._ensure_unique(
            db, full_name=payload["full_name"], national_id=payload.get("national_id")
        )
        if payload.get("registration_date") is None:
            payload["registration_date"] = today

        client = models.Client(**payload)
        db.add(client)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ClientConflictError("National id is already registered") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise ClientServiceError("Unable to create client") from exc
        db.refresh(client)
        LOGGER.info("Client created", extra={"client_id": client.id})
        return client

    @classmethod
    def update_client(
        cls,
        db: Session,
        client: models.Client,
        data: schemas.ClientUpdate,
        *,
        today: Optional[date] = None,
    ) -> models.Client:
        changes = cls._normalize(data.model_dump(exclude_unset=True), today=today or date.today())
        if "full_name" in changes or "national_id" in changes:
            cls._ensure_unique(
                db,
                full_name=changes.get("full_name"),
                national_id=changes.get("national_id"),
                exclude_client_id=client.id,
            )

        client_id = client.id
        for field, value in changes.items():
            setattr(client, field, value)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ClientConflictError("National id is already registered") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise ClientServiceError("Unable to update client") from exc
        db.refresh(client)
        LOGGER.info(
            "Client updated", extra={"client_id": client_id, "fields": sorted(changes)}
        )
        return client

    @staticmethod
    def delete_client(db: Session, client: models.Client) -> None:
        if client.deleted_at is not None:
            raise ClientAlreadyDeletedError(f"Client {client.id} already deleted")

        client_id = client.id
        client.deleted_at = datetime.now(timezone.utc)
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise ClientServiceError("Unable to delete client") from exc
        LOGGER.info("Client soft-deleted", extra={"client_id": client_id})
