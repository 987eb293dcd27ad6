from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidAmount
from .money import check_minor_units, to_minor_units
from .services.schemas import LineItemInput
from .services.stock_engine import MAX_QUANTITY


class ValidationError(ValueError):
    """400-level input problem."""


# Decimal-string payload keys and the cents columns they populate
MONEY_FIELDS = {
    "buying_price": "buying_price_cents",
    "selling_price": "selling_price_cents",
    "unit_price": "unit_price_cents",
    "subtotal": "subtotal_cents",
    "total_amount": "total_amount_cents",
}

# SQLite INTEGER is a signed 64-bit value
INT_MIN = -(2**63)
INT_MAX = 2**63 - 1


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which payload keys a route accepts, and which of them a create must carry."""
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()

    def check_keys(self, payload: dict, *, partial: bool) -> None:
        if not partial:
            missing = sorted(self.required_on_create - payload.keys())
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        for key in payload:
            if key not in self.writable_fields:
                raise ValidationError(f"Field not allowed: {key}")


def coerce_int(value: Any, field: str) -> int:
    """Strict integer parsing: rejects floats, bools, decimals and scientific notation."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        text = value.strip()
        if "e" in text.lower() or "." in text:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            value = int(text)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if not INT_MIN <= value <= INT_MAX:
        raise ValidationError(f"{field} is out of range")
    return value


def _clean_field(column, raw: Any):
    """One payload value checked against its column: null, type, blank, length."""
    if raw is None:
        if not column.nullable:
            raise ValidationError(f"{column.key} cannot be null")
        return None

    if isinstance(column.type, Integer):
        return coerce_int(raw, column.key)
    if not isinstance(column.type, (String, Text)):
        return raw

    text = str(raw).strip()
    if not text and not column.nullable:
        raise ValidationError(f"{column.key} cannot be blank")
    length = getattr(column.type, "length", None)
    if length and len(text) > length:
        raise ValidationError(f"{column.key} exceeds max length {length}")
    return text


def normalize_money(payload: dict) -> dict:
    """
    Convert decimal money keys ("14.99") into their *_cents columns.

    Sending both forms of one amount is ambiguous and rejected.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    out = dict(payload)
    for decimal_key, cents_key in MONEY_FIELDS.items():
        if decimal_key not in out:
            continue
        if cents_key in out:
            raise ValidationError(f"Send either {decimal_key} or {cents_key}, not both")
        raw = out.pop(decimal_key)
        out[cents_key] = None if raw is None else to_minor_units(raw, field=decimal_key)
    return out


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Returns the cleaned patch for a JSON body.

    partial=False is create semantics (required fields enforced);
    partial=True validates only the keys that were sent.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    policy.check_keys(payload, partial=partial)

    columns = {c.key: c for c in model.__mapper__.columns}
    patch = {}
    for key, raw in payload.items():
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}")
        patch[key] = _clean_field(columns[key], raw)
    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("buying_price_cents", "selling_price_cents"):
        if patch.get(key) is not None:
            try:
                check_minor_units(patch[key], field=key)
            except InvalidAmount as e:
                raise ValidationError(str(e))

    for key in ("current_stock", "minimum_stock_level"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


def enforce_rules_adjust(payload: dict) -> tuple[int, str | None]:
    # ADJUST requires a non-zero signed delta; reason is free text
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if "delta" not in payload:
        raise ValidationError("delta is required")

    delta = coerce_int(payload["delta"], "delta")
    if delta == 0:
        raise ValidationError("delta must be non-zero")
    if abs(delta) > MAX_QUANTITY:
        raise ValidationError(f"delta must be within +/-{MAX_QUANTITY}")

    reason = payload.get("reason")
    if reason is not None:
        reason = str(reason).strip()
        if len(reason) > 200:
            raise ValidationError("reason exceeds max length 200")
    return delta, reason or None


def parse_line_items(raw_items, *, model: DeclarativeMeta, policy: ModelValidationPolicy) -> list[LineItemInput]:
    """Sale and purchase lines share shape: product_id, quantity, optional prices."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        try:
            patch = validate_payload(
                model=model,
                payload=normalize_money(raw),
                policy=policy,
                partial=False,
            )
        except ValidationError as e:
            raise ValidationError(f"items[{index}]: {e}")

        if patch["quantity"] <= 0:
            raise ValidationError(f"items[{index}]: quantity must be > 0")

        items.append(
            LineItemInput(
                product_id=patch["product_id"],
                quantity=patch["quantity"],
                unit_price_cents=patch.get("unit_price_cents"),
                subtotal_cents=patch.get("subtotal_cents"),
            )
        )
    return items
