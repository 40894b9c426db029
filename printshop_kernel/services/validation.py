"""Field checks shared by the budget and order kernel services.

Each check records a message against the field name instead of raising, so
a caller gets every problem with a document in one ValidationFailedError.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any


def check_required_text(errors: dict[str, str], fields: dict[str, Any], name: str) -> None:
    value = fields.get(name)
    if not isinstance(value, str) or not value.strip():
        errors[name] = "is required"


def check_optional_text(errors: dict[str, str], fields: dict[str, Any], name: str) -> None:
    value = fields.get(name)
    if value is not None and not isinstance(value, str):
        errors[name] = "must be text"


def check_int(
    errors: dict[str, str],
    fields: dict[str, Any],
    name: str,
    *,
    minimum: int,
) -> None:
    value = fields.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        errors[name] = "must be an integer"
    elif value < minimum:
        errors[name] = f"must be >= {minimum}"


def check_money(errors: dict[str, str], fields: dict[str, Any], name: str) -> None:
    """Accept Decimal, int or a numeric string; floats are refused."""
    value = fields.get(name)
    if isinstance(value, bool) or isinstance(value, float):
        errors[name] = "must be a Decimal"
        return
    try:
        amount = Decimal(value) if value is not None else None
    except (InvalidOperation, TypeError, ValueError):
        amount = None
    if amount is None or not amount.is_finite():
        errors[name] = "must be a Decimal"
    elif amount < 0:
        errors[name] = "must be >= 0"
    else:
        fields[name] = amount


def check_optional_datetime(errors: dict[str, str], fields: dict[str, Any], name: str) -> None:
    value = fields.get(name)
    if value is not None and not isinstance(value, datetime):
        errors[name] = "must be a datetime"


def check_optional_id(errors: dict[str, str], fields: dict[str, Any], name: str) -> None:
    value = fields.get(name)
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        errors[name] = "must be a positive integer id"
