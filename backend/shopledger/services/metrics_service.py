# Overview: Derived stock analytics computed on demand from ledger state.

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal, ROUND_HALF_UP

from ..errors import DegenerateMargin
from ..models import MOVEMENT_ADJUSTMENT, MOVEMENT_OUT, Product
from ..time_utils import utcnow, whole_days_between
from .ledger_store import LedgerStore

"""
Metrics semantics (authoritative)

- Nothing is cached; every call reads current ledger state.
- monthly_turnover: take the product's 30 most recent movements (any type,
  newest first) and sum the OUT and ADJUSTMENT quantities among them. This is
  a fixed-count window, not a calendar window.
- days_of_supply: ceil(stock * 30 / max(1, turnover)) when stock > 0, else 0.
- stock health thresholds are inclusive: stock <= min is critical,
  stock <= 1.5 * min is warning (compared as 2 * stock <= 3 * min).
"""

TURNOVER_WINDOW = 30
SUPPLY_HORIZON_DAYS = 30

HEALTH_CRITICAL = "critical"
HEALTH_WARNING = "warning"
HEALTH_HEALTHY = "healthy"
HEALTH_ORDER = {HEALTH_CRITICAL: 0, HEALTH_WARNING: 1, HEALTH_HEALTHY: 2}

MARGIN_QUANT = Decimal("0.1")


def stock_health(current_stock: int, minimum_stock_level: int) -> str:
    if current_stock <= minimum_stock_level:
        return HEALTH_CRITICAL
    if 2 * current_stock <= 3 * minimum_stock_level:
        return HEALTH_WARNING
    return HEALTH_HEALTHY


def days_of_supply(current_stock: int, monthly_turnover: int) -> int:
    if current_stock <= 0:
        return 0
    denominator = max(1, monthly_turnover)
    return -(-(current_stock * SUPPLY_HORIZON_DAYS) // denominator)


def profit_margin(selling_price_cents: int, buying_price_cents: int) -> Decimal:
    """Margin on selling price as a percentage, one decimal place."""
    if selling_price_cents == 0:
        raise DegenerateMargin(
            "Profit margin is undefined for a zero selling price",
            details={"selling_price_cents": selling_price_cents},
        )
    margin = Decimal(selling_price_cents - buying_price_cents) * 100 / Decimal(selling_price_cents)
    return margin.quantize(MARGIN_QUANT, rounding=ROUND_HALF_UP)


def format_margin(margin: Decimal) -> str:
    return f"{margin}%"


@dataclass(frozen=True)
class ProductMetrics:
    product_id: int
    product_name: str
    current_stock: int
    minimum_stock: int
    days_of_supply: int
    monthly_turnover: int
    days_since_last_movement: int
    profit_margin: str | None
    stock_health: str

    def to_dict(self) -> dict:
        return asdict(self)


class MetricsEngine:
    """
    Read-only analytics over the ledger.

    clock is injectable so day counts are deterministic in tests.
    """

    def __init__(self, session, store: LedgerStore | None = None, clock=utcnow):
        self.session = session
        self.store = store or LedgerStore(session)
        self.clock = clock

    def product_metrics(self, product_id: int) -> ProductMetrics:
        return self.metrics_for(self.store.get_product(product_id))

    def metrics_for(self, product: Product) -> ProductMetrics:
        recent = self.store.get_movement_history(product.id, TURNOVER_WINDOW)

        turnover = sum(
            m.quantity for m in recent
            if m.movement_type in (MOVEMENT_OUT, MOVEMENT_ADJUSTMENT)
        )
        if recent:
            idle_days = whole_days_between(recent[0].created_at, self.clock())
        else:
            idle_days = 0

        try:
            margin = format_margin(profit_margin(product.selling_price_cents, product.buying_price_cents))
        except DegenerateMargin:
            margin = None

        return ProductMetrics(
            product_id=product.id,
            product_name=product.name,
            current_stock=product.current_stock,
            minimum_stock=product.minimum_stock_level,
            days_of_supply=days_of_supply(product.current_stock, turnover),
            monthly_turnover=turnover,
            days_since_last_movement=idle_days,
            profit_margin=margin,
            stock_health=stock_health(product.current_stock, product.minimum_stock_level),
        )

    def all_metrics(self) -> list[ProductMetrics]:
        """Worst health first, then soonest stock-out first (stable over name order)."""
        metrics = [self.metrics_for(p) for p in self.store.list_products()]
        return sorted(metrics, key=lambda m: (HEALTH_ORDER[m.stock_health], m.days_of_supply))

    def alert_summary(self) -> dict:
        low = self.store.list_low_stock()
        return {
            "count": len(low),
            "items": [
                {
                    "id": p.id,
                    "name": p.name,
                    "current": p.current_stock,
                    "min": p.minimum_stock_level,
                }
                for p in low
            ],
        }
