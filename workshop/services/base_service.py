import functools
import logging
import time
from typing import Dict, Any, Optional, List, Tuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import datetime, date, time as dt_time

from django.conf import settings
from django.db import OperationalError
from django.db.models import Model
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from psycopg2 import errorcodes

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    def __init__(self, message: str, field: str = None, details: Dict = None):
        super().__init__(message, "VALIDATION_ERROR", details)
        self.field = field


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)}
        )


class IllegalTransitionError(ServiceError):
    def __init__(self, current: str, target: str, allowed: List[str] = None):
        super().__init__(
            f"Illegal status transition: {current} -> {target}",
            "ILLEGAL_TRANSITION",
            {"current": str(current), "target": str(target), "allowed": [str(s) for s in allowed or []]}
        )


class InvalidTargetError(ServiceError):
    def __init__(self, value: Any):
        super().__init__(
            f"Invalid target stage: {value}",
            "INVALID_TARGET",
            {"value": str(value)}
        )


class InvalidAmountError(ServiceError):
    def __init__(self, value: Any):
        super().__init__(
            f"Payment amount must be greater than 0: {value}",
            "INVALID_AMOUNT",
            {"amount": str(value)}
        )


class TransactionConflictError(ServiceError):
    """Concurrent writers kept colliding; safe for the caller to retry."""

    def __init__(self, message: str = "The record is being updated by another request, try again"):
        super().__init__(message, "TRANSACTION_CONFLICT", {"retryable": True})


def paginate_queryset(queryset, page: int = 1, per_page: int = 20) -> Tuple[List, Dict]:
    page = max(1, page)
    per_page = min(max(1, per_page), 100)

    total = queryset.count()
    total_pages = (total + per_page - 1) // per_page

    offset = (page - 1) * per_page
    items = list(queryset[offset:offset + per_page])

    return items, {
        "page": page,
        "per_page": per_page,
        "total_items": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }


def to_decimal(value: Any, default: Optional[Decimal] = Decimal("0")) -> Optional[Decimal]:
    if value is None or value == "":
        return default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default
    if not result.is_finite():
        return default
    return result


def round_decimal(value: Decimal, places: int = 2) -> Decimal:
    if value is None:
        return Decimal("0")
    quantize_str = "0." + "0" * places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def to_datetime(value: Any, field: str) -> datetime:
    """Accept a datetime, a date or an ISO-8601 string; always returns an aware datetime."""
    parsed = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, dt_time.min)
    elif isinstance(value, str) and value.strip():
        parsed = parse_datetime(value.strip())
        if parsed is None:
            day = parse_date(value.strip())
            if day is not None:
                parsed = datetime.combine(day, dt_time.min)

    if parsed is None:
        raise ValidationError(f"{field} must be a valid date", field)

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def require_choice(value: Any, choices, field: str) -> str:
    if value not in choices.values:
        allowed = ", ".join(choices.values)
        raise ValidationError(f"{field} must be one of: {allowed}", field)
    return value


def generate_order_code(when: datetime = None, attempt: int = 0, prefix: str = None) -> str:
    """
    Human readable work order code: TW-YYYYMMDD-NNNNNN.

    NNNNNN comes from the millisecond clock, so two orders created in the
    same millisecond collide; the unique constraint on WorkOrder.code plus
    the caller's retry loop (which bumps ``attempt``) resolve that.
    """
    when = when or timezone.now()
    prefix = prefix or settings.ORDER_CODE_PREFIX
    date_part = timezone.localtime(when).strftime("%Y%m%d")
    sequence = (int(when.timestamp() * 1000) + attempt) % 1_000_000
    return f"{prefix}-{date_part}-{sequence:06d}"


# PostgreSQL SQLSTATEs raised when a row lock or snapshot cannot be had
CONFLICT_SQLSTATES = frozenset({
    errorcodes.LOCK_NOT_AVAILABLE,
    errorcodes.SERIALIZATION_FAILURE,
    errorcodes.DEADLOCK_DETECTED,
})

# SQLite reports its busy/locked states only through the message text
SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")


def is_write_conflict(error: OperationalError) -> bool:
    cause = error.__cause__
    sqlstate = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if sqlstate in CONFLICT_SQLSTATES:
        return True
    message = str(error).lower()
    return any(marker in message for marker in SQLITE_LOCK_MESSAGES)


def with_conflict_retry(func):
    """
    Re-run a transactional operation when the database reports a write
    conflict: a lock that could not be taken, a serialization failure or
    deadlock, or a locked SQLite file. Any other ``OperationalError`` is
    raised unchanged on the first attempt.

    The wrapped function must open its own ``transaction.atomic()`` block so
    each attempt starts from a fresh read of the row it locks.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        attempts = max(1, int(getattr(settings, "WORKFLOW_TRANSACTION_RETRIES", 3)))
        backoff = float(getattr(settings, "WORKFLOW_RETRY_BACKOFF_SECONDS", 0.05))

        for attempt in range(1, attempts + 1):
            try:
                return func(*args, **kwargs)
            except OperationalError as e:
                if not is_write_conflict(e):
                    raise
                if attempt == attempts:
                    logger.error(
                        "%s gave up after %d attempts: %s", func.__qualname__, attempts, e
                    )
                    raise TransactionConflictError() from e
                logger.warning(
                    "%s hit a write conflict (attempt %d/%d): %s",
                    func.__qualname__, attempt, attempts, e
                )
                if backoff:
                    time.sleep(backoff * attempt)

    return wrapper


class BaseService:
    model = None

    @classmethod
    def get_by_id(cls, id: int) -> Optional[Model]:
        try:
            return cls.model.objects.get(id=id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            return None

    @classmethod
    def get_or_404(cls, id: int) -> Model:
        obj = cls.get_by_id(id)
        if not obj:
            raise NotFoundError(cls.model._meta.verbose_name.capitalize(), id)
        return obj
