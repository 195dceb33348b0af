# moneyflow/utils/payload.py
from decimal import Decimal, InvalidOperation

from flask import request

from moneyflow.errors import ValidationError
from moneyflow.utils.dates import parse_date


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data


def first_of(data: dict, *keys, default=None):
    """Read a field accepting both snake_case and camelCase spellings."""
    for k in keys:
        if k in data:
            return data[k]
    return default


def to_decimal(value, field: str, *, positive: bool = False, required: bool = True) -> Decimal | None:
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    try:
        # "1 234,50" style input from the form widgets
        amount = Decimal(str(value).replace(" ", "").replace(",", "."))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if positive and amount <= 0:
        raise ValidationError(f"{field} must be positive")
    return amount.quantize(Decimal("0.01"))


def to_date(value, field: str, *, required: bool = True, default=None):
    if value is None or value == "":
        if required and default is None:
            raise ValidationError(f"{field} is required")
        return default
    try:
        return parse_date(value)
    except (ValueError, OverflowError):
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def to_int(value, field: str, *, required: bool = True):
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


def to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on", "y"}


def choice(value, field: str, allowed, *, required: bool = True):
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value
