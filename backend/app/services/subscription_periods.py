"""Subscription-period engine.

Pure helpers that turn a payment request into a coverage interval and charge
amount, check promotion eligibility and reject intervals that overlap a
client's existing coverage. Nothing here touches the database; callers pass
plain records and a storage object implementing :class:`SubscriptionStorage`.
"""

from __future__ import annotations

import enum
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional, Protocol, Sequence, Union

from ..models.payment import PaymentPeriod, SubscriptionStatus

PERIOD_MONTHS: dict[PaymentPeriod, int] = {
    PaymentPeriod.MONTHLY: 1,
    PaymentPeriod.QUARTERLY: 3,
    PaymentPeriod.ANNUAL: 12,
}


class RejectionKind(str, enum.Enum):
    """Machine-readable reasons for refusing a payment."""

    INVALID_INPUT = "invalid_input"
    INVALID_AMOUNT = "invalid_amount"
    MISSING_PERIOD = "missing_period"
    PROMOTION_NOT_FOUND = "promotion_not_found"
    PROMOTION_INACTIVE = "promotion_inactive"
    OVERLAP_CONFLICT = "overlap_conflict"


class PaymentRejection(ValueError):
    """Base class for every expected refusal raised by the engine."""

    kind: RejectionKind = RejectionKind.INVALID_INPUT

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def as_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.detail}


class InvalidInput(PaymentRejection):
    kind = RejectionKind.INVALID_INPUT


class InvalidAmount(PaymentRejection):
    kind = RejectionKind.INVALID_AMOUNT


class MissingPeriod(PaymentRejection):
    kind = RejectionKind.MISSING_PERIOD


class PromotionNotFound(PaymentRejection):
    kind = RejectionKind.PROMOTION_NOT_FOUND


class PromotionInactive(PaymentRejection):
    kind = RejectionKind.PROMOTION_INACTIVE


@dataclass(frozen=True)
class CoverageInterval:
    """Half-open date range ``[starts_on, ends_on)`` paid for by one payment."""

    starts_on: date
    ends_on: date
    payment_id: Optional[str] = None

    def overlaps(self, other: "CoverageInterval") -> bool:
        return self.starts_on < other.ends_on and self.ends_on > other.starts_on


class OverlapConflict(PaymentRejection):
    kind = RejectionKind.OVERLAP_CONFLICT

    def __init__(self, detail: str, conflict: CoverageInterval) -> None:
        super().__init__(detail)
        self.conflict = conflict

    def as_dict(self) -> dict:
        payload = super().as_dict()
        payload["conflict"] = {
            "payment_id": self.conflict.payment_id,
            "payment_date": self.conflict.starts_on.isoformat(),
            "next_payment_date": self.conflict.ends_on.isoformat(),
        }
        return payload


@dataclass(frozen=True)
class PromotionTerms:
    """Snapshot of the promotion attributes the engine relies on."""

    id: int
    fixed_price: Decimal
    subscription_months: Optional[int] = None
    active: bool = True
    starts_on: Optional[date] = None
    ends_on: Optional[date] = None


@dataclass(frozen=True)
class DayPass:
    period: Optional[PaymentPeriod] = None


@dataclass(frozen=True)
class PromotionSelection:
    promotion: PromotionTerms
    fallback_period: Optional[PaymentPeriod] = None


@dataclass(frozen=True)
class ManualMonths:
    months: int
    period: Optional[PaymentPeriod] = None


@dataclass(frozen=True)
class PlainPeriod:
    period: PaymentPeriod


PeriodSelector = Union[DayPass, PromotionSelection, ManualMonths, PlainPeriod]


@dataclass(frozen=True)
class PeriodResolution:
    next_payment_date: date
    amount: Decimal
    period_label: PaymentPeriod


@dataclass(frozen=True)
class PaymentRequest:
    """Raw payment-creation input as received from the request layer."""

    client_id: int
    payment_date: date
    amount: Optional[Decimal | float | int | str] = None
    period: Optional[PaymentPeriod] = None
    promotion_id: Optional[int] = None
    manual_months: Optional[int] = None
    is_day_pass: bool = False


@dataclass(frozen=True)
class PaymentDecision:
    """Everything needed to persist an accepted payment."""

    client_id: int
    payment_date: date
    next_payment_date: date
    amount: Decimal
    period_label: PaymentPeriod
    promotion_id: Optional[int] = None

    @property
    def interval(self) -> CoverageInterval:
        return CoverageInterval(self.payment_date, self.next_payment_date)


class SubscriptionStorage(Protocol):
    def list_active_intervals_for_client(self, client_id: int) -> list[CoverageInterval]:
        ...

    def get_promotion(self, promotion_id: int) -> Optional[PromotionTerms]:
        ...


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""

    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    normalized_month = month_index % 12 + 1
    last_day = monthrange(year, normalized_month)[1]
    return date(year, normalized_month, min(start.day, last_day))


def normalize_amount(value: Decimal | float | int | str | None) -> Decimal:
    """Return the amount rounded to cents or raise :class:`InvalidAmount`."""

    if value is None:
        raise InvalidAmount("An amount greater than zero is required")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmount("Amount must be a finite number")
    amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise InvalidAmount("Amount must be greater than zero")
    return amount


def _label_for_months(months: int) -> PaymentPeriod:
    for period, period_months in PERIOD_MONTHS.items():
        if period_months == months:
            return period
    return PaymentPeriod.MONTHLY


def _positive_months(value: Optional[int]) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int) and value > 0:
        return value
    return None


def ensure_promotion_eligible(promotion: PromotionTerms, reference_date: date) -> None:
    """Raise :class:`PromotionInactive` unless the promotion applies on ``reference_date``."""

    if not promotion.active:
        raise PromotionInactive(f"Promotion {promotion.id} is not active")
    if promotion.starts_on is not None and promotion.starts_on > reference_date:
        raise PromotionInactive(
            f"Promotion {promotion.id} starts on {promotion.starts_on.isoformat()}"
        )
    if promotion.ends_on is not None and reference_date > promotion.ends_on:
        raise PromotionInactive(
            f"Promotion {promotion.id} ended on {promotion.ends_on.isoformat()}"
        )


def build_selector(
    *,
    is_day_pass: bool = False,
    promotion: Optional[PromotionTerms] = None,
    manual_months: Optional[int] = None,
    period: Optional[PaymentPeriod] = None,
) -> PeriodSelector:
    """Collapse the optional request fields into exactly one selector."""

    if is_day_pass and promotion is not None:
        raise InvalidInput("A day pass cannot be combined with a promotion")
    if manual_months is not None and (
        isinstance(manual_months, bool)
        or not isinstance(manual_months, int)
        or manual_months <= 0
    ):
        raise InvalidInput("manual_months must be a positive integer")

    if is_day_pass:
        return DayPass(period=period)
    if promotion is not None:
        return PromotionSelection(promotion=promotion, fallback_period=period)
    if manual_months is not None:
        return ManualMonths(months=manual_months, period=period)
    if period is None:
        raise MissingPeriod("A subscription period is required")
    return PlainPeriod(period=period)


def resolve_period(
    payment_date: date,
    selector: PeriodSelector,
    amount: Decimal | float | int | str | None = None,
) -> PeriodResolution:
    """Apply the precedence rules and return the coverage end and amount."""

    try:
        return _resolve_period(payment_date, selector, amount)
    except PaymentRejection:
        raise
    except (ValueError, OverflowError) as exc:
        # date arithmetic past date.max
        raise InvalidInput("coverage end is out of range") from exc


def _resolve_period(
    payment_date: date,
    selector: PeriodSelector,
    amount: Decimal | float | int | str | None,
) -> PeriodResolution:
    if isinstance(selector, DayPass):
        return PeriodResolution(
            next_payment_date=payment_date + timedelta(days=1),
            amount=normalize_amount(amount),
            period_label=selector.period or PaymentPeriod.MONTHLY,
        )

    if isinstance(selector, PromotionSelection):
        promotion = selector.promotion
        # The promotion price always wins over a manually entered amount.
        price = normalize_amount(promotion.fixed_price)
        months = _positive_months(promotion.subscription_months)
        if months is None:
            if selector.fallback_period is None:
                raise MissingPeriod(
                    f"Promotion {promotion.id} has no duration; a subscription period is required"
                )
            months = PERIOD_MONTHS[selector.fallback_period]
        return PeriodResolution(
            next_payment_date=add_months(payment_date, months),
            amount=price,
            period_label=selector.fallback_period or _label_for_months(months),
        )

    if isinstance(selector, ManualMonths):
        return PeriodResolution(
            next_payment_date=add_months(payment_date, selector.months),
            amount=normalize_amount(amount),
            period_label=selector.period or _label_for_months(selector.months),
        )

    if isinstance(selector, PlainPeriod):
        return PeriodResolution(
            next_payment_date=add_months(payment_date, PERIOD_MONTHS[selector.period]),
            amount=normalize_amount(amount),
            period_label=selector.period,
        )

    raise InvalidInput(f"Unsupported period selector: {selector!r}")


def find_overlap(
    existing: Iterable[CoverageInterval],
    candidate: CoverageInterval,
    *,
    exclude_payment_id: Optional[str] = None,
) -> Optional[CoverageInterval]:
    for interval in existing:
        if exclude_payment_id is not None and interval.payment_id == exclude_payment_id:
            continue
        if interval.overlaps(candidate):
            return interval
    return None


def ensure_no_overlap(
    existing: Iterable[CoverageInterval],
    candidate: CoverageInterval,
    *,
    exclude_payment_id: Optional[str] = None,
) -> None:
    """Raise :class:`OverlapConflict` if ``candidate`` overlaps any existing interval.

    Touching endpoints are allowed so a renewal can start the day the previous
    coverage ends.
    """

    conflict = find_overlap(existing, candidate, exclude_payment_id=exclude_payment_id)
    if conflict is None:
        return
    raise OverlapConflict(
        "Client already has a payment covering "
        f"{conflict.starts_on.isoformat()} to {conflict.ends_on.isoformat()}"
        + (f" (payment {conflict.payment_id})" if conflict.payment_id else ""),
        conflict,
    )


def find_overlapping_pairs(
    intervals: Sequence[CoverageInterval],
) -> list[tuple[CoverageInterval, CoverageInterval]]:
    ordered = sorted(intervals, key=lambda item: (item.starts_on, item.ends_on))
    pairs: list[tuple[CoverageInterval, CoverageInterval]] = []
    for index, current in enumerate(ordered):
        for following in ordered[index + 1 :]:
            if following.starts_on >= current.ends_on:
                break
            pairs.append((current, following))
    return pairs


def resolve_and_validate_payment(
    request: PaymentRequest,
    storage: SubscriptionStorage,
    *,
    exclude_payment_id: Optional[str] = None,
) -> PaymentDecision:
    """Run eligibility, resolution and overlap checks for one payment request."""

    promotion = None
    if request.promotion_id is not None:
        promotion = storage.get_promotion(request.promotion_id)
        if promotion is None:
            raise PromotionNotFound(f"Promotion {request.promotion_id} not found")

    selector = build_selector(
        is_day_pass=request.is_day_pass,
        promotion=promotion,
        manual_months=request.manual_months,
        period=request.period,
    )
    if promotion is not None:
        ensure_promotion_eligible(promotion, request.payment_date)

    resolution = resolve_period(request.payment_date, selector, request.amount)
    decision = PaymentDecision(
        client_id=request.client_id,
        payment_date=request.payment_date,
        next_payment_date=resolution.next_payment_date,
        amount=resolution.amount,
        period_label=resolution.period_label,
        promotion_id=promotion.id if promotion is not None else None,
    )

    ensure_no_overlap(
        storage.list_active_intervals_for_client(request.client_id),
        decision.interval,
        exclude_payment_id=exclude_payment_id,
    )
    return decision


@dataclass(frozen=True)
class StatusSnapshot:
    status: SubscriptionStatus
    latest: Optional[CoverageInterval]
    new_this_month: bool


def subscription_status(
    intervals: Sequence[CoverageInterval], reference_date: date
) -> StatusSnapshot:
    """Classify a client's coverage on ``reference_date``.

    A coverage ending on the reference date counts as due, hence ``LATE``.
    """

    if not intervals:
        return StatusSnapshot(SubscriptionStatus.UNPAID, None, False)

    ordered = sorted(intervals, key=lambda item: (item.starts_on, item.ends_on))
    first, latest = ordered[0], ordered[-1]
    status = (
        SubscriptionStatus.LATE
        if latest.ends_on <= reference_date
        else SubscriptionStatus.UP_TO_DATE
    )
    new_this_month = (
        first.starts_on.year == reference_date.year
        and first.starts_on.month == reference_date.month
    )
    return StatusSnapshot(status, latest, new_this_month)
