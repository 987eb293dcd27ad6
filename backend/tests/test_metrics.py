from datetime import timedelta
from decimal import Decimal

import pytest

from shopledger.errors import DegenerateMargin, NotFound
from shopledger.services.metrics_service import (
    HEALTH_CRITICAL,
    HEALTH_HEALTHY,
    HEALTH_WARNING,
    MetricsEngine,
    days_of_supply,
    profit_margin,
    stock_health,
)
from shopledger.services.schemas import LineItemInput, PurchaseInput, SaleInput
from shopledger.time_utils import utcnow


def _days_later(days):
    return lambda: utcnow() + timedelta(days=days)


def _sell(engine, product, quantity=1):
    engine.record_sale(SaleInput(), [LineItemInput(product_id=product.id, quantity=quantity)])


@pytest.mark.parametrize(
    "current, minimum, expected",
    [
        (5, 5, HEALTH_CRITICAL),
        (0, 0, HEALTH_CRITICAL),
        (4, 5, HEALTH_CRITICAL),
        (15, 10, HEALTH_WARNING),
        (7, 5, HEALTH_WARNING),
        (8, 5, HEALTH_HEALTHY),
        (16, 10, HEALTH_HEALTHY),
        (1, 0, HEALTH_HEALTHY),
    ],
)
def test_stock_health_thresholds_are_inclusive(current, minimum, expected):
    assert stock_health(current, minimum) == expected


@pytest.mark.parametrize(
    "current, turnover, expected",
    [
        (0, 12, 0),
        (10, 0, 300),
        (10, 7, 43),
        (30, 30, 30),
        (1, 1000, 1),
    ],
)
def test_days_of_supply(current, turnover, expected):
    assert days_of_supply(current, turnover) == expected


def test_profit_margin_rounds_to_one_place():
    assert profit_margin(1499, 850) == Decimal("43.3")
    assert profit_margin(1000, 400) == Decimal("60.0")
    assert profit_margin(1000, 1200) == Decimal("-20.0")


def test_profit_margin_is_degenerate_without_selling_price():
    with pytest.raises(DegenerateMargin):
        profit_margin(0, 400)


def test_metrics_record(db_session, engine, make_product):
    product = make_product(
        name="Premium Coffee Beans - Arabica",
        current_stock=150,
        minimum_stock_level=30,
        buying_price_cents=850,
        selling_price_cents=1499,
    )
    _sell(engine, product, 10)
    _sell(engine, product, 5)

    metrics = MetricsEngine(db_session).product_metrics(product.id)

    assert metrics.to_dict() == {
        "product_id": product.id,
        "product_name": "Premium Coffee Beans - Arabica",
        "current_stock": 135,
        "minimum_stock": 30,
        "days_of_supply": 270,
        "monthly_turnover": 15,
        "days_since_last_movement": 0,
        "profit_margin": "43.3%",
        "stock_health": HEALTH_HEALTHY,
    }


def test_degenerate_margin_is_none_in_metrics(db_session, make_product):
    product = make_product(selling_price_cents=0, buying_price_cents=0)
    assert MetricsEngine(db_session).product_metrics(product.id).profit_margin is None


def test_product_without_movements(db_session, make_product):
    product = make_product(current_stock=0)
    metrics = MetricsEngine(db_session).product_metrics(product.id)
    assert metrics.monthly_turnover == 0
    assert metrics.days_since_last_movement == 0
    assert metrics.days_of_supply == 0


def test_missing_product_metrics(db_session):
    with pytest.raises(NotFound):
        MetricsEngine(db_session).product_metrics(8080)


def test_turnover_window_is_last_thirty_movements(db_session, engine, make_product):
    product = make_product(current_stock=100)
    for _ in range(35):
        _sell(engine, product)

    assert MetricsEngine(db_session).product_metrics(product.id).monthly_turnover == 30


def test_inbound_movements_occupy_window_slots(db_session, engine, make_product):
    product = make_product(current_stock=100)
    for _ in range(29):
        _sell(engine, product)
    engine.record_purchase(PurchaseInput(), [LineItemInput(product_id=product.id, quantity=50)])

    # window = 1 IN + 29 OUT; the opening IN has dropped out
    assert MetricsEngine(db_session).product_metrics(product.id).monthly_turnover == 29


def test_adjustments_count_toward_turnover_by_magnitude(db_session, engine, make_product):
    product = make_product(current_stock=50)
    _sell(engine, product, 5)
    engine.adjust_stock(product.id, 10, "recount")
    engine.adjust_stock(product.id, -3, "damaged")

    assert MetricsEngine(db_session).product_metrics(product.id).monthly_turnover == 18


def test_days_since_last_movement_uses_clock(db_session, make_product):
    product = make_product(current_stock=10)
    metrics = MetricsEngine(db_session, clock=_days_later(61)).product_metrics(product.id)
    assert metrics.days_since_last_movement == 61


def test_all_metrics_orders_worst_first(db_session, make_product):
    make_product(name="A healthy", current_stock=100, minimum_stock_level=5)
    make_product(name="B critical", current_stock=2, minimum_stock_level=5)
    make_product(name="C warning", current_stock=7, minimum_stock_level=5)
    make_product(name="D critical", current_stock=0, minimum_stock_level=5)
    make_product(name="E critical", current_stock=2, minimum_stock_level=5)

    names = [m.product_name for m in MetricsEngine(db_session).all_metrics()]

    # D has zero days of supply; B and E tie and keep name order
    assert names == ["D critical", "B critical", "E critical", "C warning", "A healthy"]


def test_all_metrics_is_idempotent(db_session, engine, make_product):
    product = make_product(current_stock=40, minimum_stock_level=10)
    make_product(current_stock=3, minimum_stock_level=10)
    _sell(engine, product, 4)

    metrics_engine = MetricsEngine(db_session, clock=_days_later(3))
    assert metrics_engine.all_metrics() == metrics_engine.all_metrics()


def test_alert_summary(db_session, make_product):
    low = make_product(name="Artisanal Cheese Selection", current_stock=10, minimum_stock_level=10)
    make_product(name="Organic Granola Mix", current_stock=160, minimum_stock_level=40)

    assert MetricsEngine(db_session).alert_summary() == {
        "count": 1,
        "items": [{"id": low.id, "name": "Artisanal Cheese Selection", "current": 10, "min": 10}],
    }
