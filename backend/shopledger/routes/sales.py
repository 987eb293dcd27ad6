# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/shopledger/routes/sales.py
"""Sales API routes. A sale is created with all of its items in one request."""

from flask import Blueprint, request

from ..extensions import db
from ..models import Sale, SaleItem
from ..services.ledger_store import LedgerStore
from ..services.schemas import SaleInput
from ..services.stock_engine import StockMutationEngine
from ..validation import (
    ModelValidationPolicy,
    normalize_money,
    parse_line_items,
    validate_payload,
)
from .common import KNOWN_ERRORS, error_response, internal_error

SALE_POLICY = ModelValidationPolicy(
    writable_fields={"payment_method", "customer_name", "total_amount_cents"},
)

SALE_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "quantity", "unit_price_cents", "subtotal_cents"},
    required_on_create={"product_id", "quantity"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def create_sale_route():
    """
    Record a completed sale.

    Body:
    {
      "payment_method": "CASH" | "CARD" | "MOBILE_MONEY",
      "customer_name": "optional",
      "items": [{"product_id": 1, "quantity": 2, "unit_price": "14.99"}]
    }
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    header = dict(payload)
    raw_items = header.pop("items", None)

    try:
        patch = validate_payload(
            model=Sale,
            payload=normalize_money(header),
            policy=SALE_POLICY,
            partial=False,
        )
        items = parse_line_items(raw_items, model=SaleItem, policy=SALE_ITEM_POLICY)
        sale = StockMutationEngine(db.session).record_sale(SaleInput(**patch), items)
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to record sale")

    return {"sale": sale.to_dict()}, 201


@sales_bp.get("")
def list_sales_route():
    sales = LedgerStore(db.session).list_sales()
    return {"sales": [s.to_dict(include_items=False) for s in sales]}


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = LedgerStore(db.session).get_sale(sale_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    return {"sale": sale.to_dict()}

