# Overview: Reorder / de-stock suggestions derived from metrics.

from __future__ import annotations

from dataclasses import dataclass

from ..errors import DegenerateMargin
from ..models import Product
from ..money import format_money
from .ledger_store import LedgerStore
from .metrics_service import MetricsEngine, format_margin, profit_margin

"""
Recommendation rules (authoritative, first match wins per product)

critical: stock <= min
    suggested = max(min * 3, 10) - stock
high:     stock <= 1.5 * min and monthly_turnover > 0
    suggested = ceil(2.5 * min - stock)
medium:   days_since_last_movement > 60 and stock > 2 * min
    suggested = -floor(0.2 * stock)   (negative means de-stock)

Fractional thresholds are compared in integers (2*stock <= 3*min, etc.).
Output is stably sorted by urgency over the product name order.
"""

URGENCY_CRITICAL = "critical"
URGENCY_HIGH = "high"
URGENCY_MEDIUM = "medium"
URGENCY_ORDER = {URGENCY_CRITICAL: 0, URGENCY_HIGH: 1, URGENCY_MEDIUM: 2}

CRITICAL_TARGET_FLOOR = 10
IDLE_DAYS_THRESHOLD = 60


@dataclass(frozen=True)
class Recommendation:
    product: Product
    suggested_order: int
    reason: str
    urgency: str
    profit_impact: str

    def to_dict(self) -> dict:
        return {
            "product": self.product.to_dict(),
            "suggested_order": self.suggested_order,
            "reason": self.reason,
            "urgency": self.urgency,
            "profit_impact": self.profit_impact,
        }


def _margin_impact(product: Product) -> str:
    try:
        margin = format_margin(profit_margin(product.selling_price_cents, product.buying_price_cents))
    except DegenerateMargin:
        margin = "n/a"
    return f"Margin: {margin}"


class RecommendationEngine:
    def __init__(
        self,
        session,
        store: LedgerStore | None = None,
        metrics: MetricsEngine | None = None,
    ):
        self.session = session
        self.store = store or LedgerStore(session)
        self.metrics = metrics or MetricsEngine(session, store=self.store)

    def recommend_for(self, product: Product) -> Recommendation | None:
        stock = product.current_stock
        minimum = product.minimum_stock_level
        m = self.metrics.metrics_for(product)

        if stock <= minimum:
            return Recommendation(
                product=product,
                suggested_order=max(minimum * 3, CRITICAL_TARGET_FLOOR) - stock,
                reason=f"Stock critically low ({stock}/{minimum})",
                urgency=URGENCY_CRITICAL,
                profit_impact=_margin_impact(product),
            )

        if 2 * stock <= 3 * minimum and m.monthly_turnover > 0:
            # ceil((5 * min - 2 * stock) / 2)
            suggested = -(-(5 * minimum - 2 * stock) // 2)
            return Recommendation(
                product=product,
                suggested_order=suggested,
                reason=f"High velocity ({m.monthly_turnover} units/month), stock approaching minimum",
                urgency=URGENCY_HIGH,
                profit_impact=_margin_impact(product),
            )

        if m.days_since_last_movement > IDLE_DAYS_THRESHOLD and stock > 2 * minimum:
            suggested = -(stock // 5)
            return Recommendation(
                product=product,
                suggested_order=suggested,
                reason=(
                    f"Low velocity (no sales in {m.days_since_last_movement} days), "
                    "consider reducing stock"
                ),
                urgency=URGENCY_MEDIUM,
                profit_impact=f"Free up capital: {format_money(suggested * product.buying_price_cents)}",
            )

        return None

    def generate_recommendations(self) -> list[Recommendation]:
        recommendations = []
        for product in self.store.list_products():
            rec = self.recommend_for(product)
            if rec is not None:
                recommendations.append(rec)
        return sorted(recommendations, key=lambda r: URGENCY_ORDER[r.urgency])
