# Overview: Flask API routes for suppliers and product categories.

from flask import Blueprint, request

from ..extensions import db
from ..models import Category, Supplier
from ..services.ledger_store import LedgerStore
from ..services.schemas import SupplierCreate, SupplierUpdate
from ..validation import ModelValidationPolicy, validate_payload
from .common import KNOWN_ERRORS, error_response, internal_error

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "phone", "email", "address"},
    required_on_create={"name"},
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@suppliers_bp.get("")
def list_suppliers_route():
    suppliers = LedgerStore(db.session).list_suppliers()
    return {"suppliers": [s.to_dict() for s in suppliers]}


@suppliers_bp.get("/search")
def search_suppliers_route():
    term = request.args.get("q", "")
    suppliers = LedgerStore(db.session).search_suppliers(term)
    return {"suppliers": [s.to_dict() for s in suppliers], "query": term}


@suppliers_bp.post("")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
        supplier = LedgerStore(db.session).create_supplier(SupplierCreate(**patch))
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create supplier")

    return {"supplier": supplier.to_dict()}, 201


@suppliers_bp.get("/<int:supplier_id>")
def get_supplier_route(supplier_id: int):
    try:
        supplier = LedgerStore(db.session).get_supplier(supplier_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    return {"supplier": supplier.to_dict()}


@suppliers_bp.put("/<int:supplier_id>")
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        supplier = LedgerStore(db.session).update_supplier(supplier_id, SupplierUpdate(**patch))
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update supplier")

    return {"supplier": supplier.to_dict()}


@suppliers_bp.delete("/<int:supplier_id>")
def delete_supplier_route(supplier_id: int):
    try:
        LedgerStore(db.session).delete_supplier(supplier_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete supplier")

    return {"ok": True}, 200


@categories_bp.get("")
def list_categories_route():
    categories = LedgerStore(db.session).list_categories()
    return {"categories": [c.to_dict() for c in categories]}


@categories_bp.post("")
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = LedgerStore(db.session).create_category(patch["name"], patch.get("description"))
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create category")

    return {"category": category.to_dict()}, 201
