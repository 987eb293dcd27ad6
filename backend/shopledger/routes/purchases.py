# Overview: Flask API routes for purchases and their PENDING lifecycle.

"""
Purchase API routes.

A purchase posted as RECEIVED (the default) updates stock immediately.
PENDING purchases post nothing until /receive; /cancel ends them.
"""

from flask import Blueprint, request

from ..extensions import db
from ..models import Purchase, PurchaseItem
from ..services.ledger_store import LedgerStore
from ..services.schemas import PurchaseInput
from ..services.stock_engine import StockMutationEngine
from ..validation import (
    ModelValidationPolicy,
    normalize_money,
    parse_line_items,
    validate_payload,
)
from .common import KNOWN_ERRORS, error_response, internal_error

PURCHASE_POLICY = ModelValidationPolicy(
    writable_fields={"supplier_id", "status", "total_amount_cents"},
)

PURCHASE_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "unit_price_cents", "subtotal_cents"},
    required_on_create={"product_id", "quantity"},
)

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
def create_purchase_route():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    header = dict(payload)
    raw_items = header.pop("items", None)

    try:
        patch = validate_payload(
            model=Purchase,
            payload=normalize_money(header),
            policy=PURCHASE_POLICY,
            partial=False,
        )
        if "status" in patch:
            patch["status"] = patch["status"].upper()
        items = parse_line_items(raw_items, model=PurchaseItem, policy=PURCHASE_ITEM_POLICY)
        purchase = StockMutationEngine(db.session).record_purchase(PurchaseInput(**patch), items)
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to record purchase")

    return {"purchase": purchase.to_dict()}, 201


@purchases_bp.get("")
def list_purchases_route():
    purchases = LedgerStore(db.session).list_purchases()
    return {"purchases": [p.to_dict(include_items=False) for p in purchases]}


@purchases_bp.get("/<int:purchase_id>")
def get_purchase_route(purchase_id: int):
    try:
        purchase = LedgerStore(db.session).get_purchase(purchase_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    return {"purchase": purchase.to_dict()}


@purchases_bp.post("/<int:purchase_id>/receive")
def receive_purchase_route(purchase_id: int):
    try:
        purchase = StockMutationEngine(db.session).receive_purchase(purchase_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to receive purchase")

    return {"purchase": purchase.to_dict()}


@purchases_bp.post("/<int:purchase_id>/cancel")
def cancel_purchase_route(purchase_id: int):
    try:
        purchase = StockMutationEngine(db.session).cancel_purchase(purchase_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to cancel purchase")

    return {"purchase": purchase.to_dict()}
