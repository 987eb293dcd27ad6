# Overview: Flask API routes for product master data; parses input and returns JSON responses.

"""
Product routes.

Money crosses this boundary as decimal strings ("14.99") or as *_cents
integers; both are normalized to cents before reaching the ledger store.
current_stock is accepted on create only (opening stock).
"""

from flask import Blueprint, request

from ..extensions import db
from ..models import Product
from ..services.ledger_store import LedgerStore
from ..services.schemas import ProductCreate, ProductUpdate
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_product,
    normalize_money,
    validate_payload,
)
from .common import KNOWN_ERRORS, error_response, internal_error

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "sku",
        "description",
        "category_id",
        "supplier_id",
        "buying_price_cents",
        "selling_price_cents",
        "current_stock",
        "minimum_stock_level",
        "unit_of_measurement",
    },
    required_on_create={"name"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"current_stock"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    products = LedgerStore(db.session).list_products()
    return {"products": [p.to_dict() for p in products]}


@products_bp.get("/search")
def search_products():
    term = request.args.get("q", "")
    products = LedgerStore(db.session).search_products(term)
    return {"products": [p.to_dict() for p in products], "query": term}


@products_bp.get("/low-stock")
def low_stock_products():
    products = LedgerStore(db.session).list_low_stock()
    return {"products": [p.to_dict() for p in products]}


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Product,
            payload=normalize_money(payload),
            policy=PRODUCT_POLICY,
            partial=False,
        )
        enforce_rules_product(patch)
        product = LedgerStore(db.session).create_product(ProductCreate(**patch))
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create product")

    return {"product": product.to_dict()}, 201


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = LedgerStore(db.session).get_product(product_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    return {"product": product.to_dict()}


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Product,
            payload=normalize_money(payload),
            policy=PRODUCT_UPDATE_POLICY,
            partial=True,
        )
        enforce_rules_product(patch)
        product = LedgerStore(db.session).update_product(product_id, ProductUpdate(**patch))
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update product")

    return {"product": product.to_dict()}


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        LedgerStore(db.session).delete_product(product_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete product")

    return {"ok": True}, 200
