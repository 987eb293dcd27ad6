# Overview: Flask API routes for stock adjustments, movement history and analytics.

from flask import Blueprint, current_app, request

from ..extensions import db
from ..services.ledger_store import LedgerStore
from ..services.metrics_service import MetricsEngine
from ..services.recommendation_service import RecommendationEngine
from ..services.stock_engine import StockMutationEngine
from ..validation import coerce_int, enforce_rules_adjust
from .common import KNOWN_ERRORS, error_response, internal_error

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/<int:product_id>/adjust")
def adjust_stock_route(product_id: int):
    """
    Signed manual correction.

    Body: {"delta": -3, "reason": "damaged"}
    Stock is clamped at zero; the movement still records |delta|.
    """
    payload = request.get_json(silent=True) or {}

    try:
        delta, reason = enforce_rules_adjust(payload)
        product = StockMutationEngine(db.session).adjust_stock(product_id, delta, reason)
    except KNOWN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to adjust stock")

    return {"product": product.to_dict()}


@inventory_bp.get("/<int:product_id>/movements")
def movement_history_route(product_id: int):
    raw_limit = request.args.get("limit")

    try:
        if raw_limit is None:
            limit = current_app.config.get("MOVEMENT_HISTORY_DEFAULT_LIMIT", 50)
        else:
            limit = coerce_int(raw_limit, "limit")
        movements = LedgerStore(db.session).get_movement_history(product_id, limit)
    except KNOWN_ERRORS as e:
        return error_response(e)

    return {
        "product_id": product_id,
        "movements": [m.to_dict() for m in movements],
    }


@inventory_bp.get("/<int:product_id>/metrics")
def product_metrics_route(product_id: int):
    try:
        metrics = MetricsEngine(db.session).product_metrics(product_id)
    except KNOWN_ERRORS as e:
        return error_response(e)
    return {"metrics": metrics.to_dict()}


@inventory_bp.get("/metrics")
def all_metrics_route():
    metrics = MetricsEngine(db.session).all_metrics()
    return {"metrics": [m.to_dict() for m in metrics]}


@inventory_bp.get("/recommendations")
def recommendations_route():
    recommendations = RecommendationEngine(db.session).generate_recommendations()
    return {"recommendations": [r.to_dict() for r in recommendations]}


@inventory_bp.get("/alerts")
def alerts_route():
    return MetricsEngine(db.session).alert_summary()
