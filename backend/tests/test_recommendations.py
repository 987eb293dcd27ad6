from datetime import timedelta

from shopledger.services.metrics_service import MetricsEngine
from shopledger.services.recommendation_service import (
    URGENCY_CRITICAL,
    URGENCY_HIGH,
    URGENCY_MEDIUM,
    RecommendationEngine,
)
from shopledger.services.schemas import LineItemInput, SaleInput
from shopledger.time_utils import utcnow


def _engine_at(db_session, days_later=0):
    clock = lambda: utcnow() + timedelta(days=days_later)  # noqa: E731
    return RecommendationEngine(db_session, metrics=MetricsEngine(db_session, clock=clock))


def test_stock_at_minimum_is_critical(db_session, make_product):
    product = make_product(current_stock=5, minimum_stock_level=5, buying_price_cents=400, selling_price_cents=1000)

    recs = RecommendationEngine(db_session).generate_recommendations()

    assert len(recs) == 1
    rec = recs[0]
    assert rec.product.id == product.id
    assert rec.urgency == URGENCY_CRITICAL
    assert rec.suggested_order == 10
    assert rec.reason == "Stock critically low (5/5)"
    assert rec.profit_impact == "Margin: 60.0%"


def test_critical_target_scales_with_minimum(db_session, make_product):
    make_product(current_stock=12, minimum_stock_level=30)
    rec = RecommendationEngine(db_session).generate_recommendations()[0]
    assert rec.suggested_order == 78


def test_critical_with_zero_selling_price(db_session, make_product):
    make_product(current_stock=0, minimum_stock_level=0, selling_price_cents=0)
    rec = RecommendationEngine(db_session).generate_recommendations()[0]
    assert rec.suggested_order == 10
    assert rec.profit_impact == "Margin: n/a"


def test_approaching_minimum_with_sales_is_high(db_session, engine, make_product):
    product = make_product(current_stock=8, minimum_stock_level=5)
    engine.record_sale(SaleInput(), [LineItemInput(product_id=product.id, quantity=1)])

    recs = RecommendationEngine(db_session).generate_recommendations()

    assert len(recs) == 1
    assert recs[0].urgency == URGENCY_HIGH
    # ceil(5 * 2.5 - 7)
    assert recs[0].suggested_order == 6
    assert recs[0].reason == "High velocity (1 units/month), stock approaching minimum"


def test_approaching_minimum_without_sales_is_not_recommended(db_session, make_product):
    make_product(current_stock=7, minimum_stock_level=5)
    assert RecommendationEngine(db_session).generate_recommendations() == []


def test_idle_overstock_is_medium(db_session, make_product):
    make_product(current_stock=100, minimum_stock_level=10, buying_price_cents=400)

    recs = _engine_at(db_session, days_later=61).generate_recommendations()

    assert len(recs) == 1
    rec = recs[0]
    assert rec.urgency == URGENCY_MEDIUM
    assert rec.suggested_order == -20
    assert rec.reason == "Low velocity (no sales in 61 days), consider reducing stock"
    assert rec.profit_impact == "Free up capital: -80.00"


def test_idle_threshold_is_strict(db_session, make_product):
    make_product(current_stock=100, minimum_stock_level=10)
    make_product(current_stock=20, minimum_stock_level=10)

    assert _engine_at(db_session, days_later=60).generate_recommendations() == []
    # stock == 2 * min is not overstock
    assert len(_engine_at(db_session, days_later=90).generate_recommendations()) == 1


def test_destock_rounds_toward_fewer_units(db_session, make_product):
    make_product(current_stock=33, minimum_stock_level=5, buying_price_cents=1)
    rec = _engine_at(db_session, days_later=61).generate_recommendations()[0]
    assert rec.suggested_order == -6


def test_recommendations_are_ordered_by_urgency(db_session, engine, make_product):
    make_product(name="Almond Butter", current_stock=100, minimum_stock_level=10)
    high = make_product(name="Berry Jam", current_stock=16, minimum_stock_level=10)
    make_product(name="Cheese", current_stock=3, minimum_stock_level=10)
    make_product(name="Dates", current_stock=1, minimum_stock_level=10)
    make_product(name="Eggs", current_stock=500, minimum_stock_level=10)
    engine.record_sale(SaleInput(), [LineItemInput(product_id=high.id, quantity=1)])

    recs = _engine_at(db_session, days_later=61).generate_recommendations()

    assert [(r.product.name, r.urgency) for r in recs] == [
        ("Cheese", URGENCY_CRITICAL),
        ("Dates", URGENCY_CRITICAL),
        ("Berry Jam", URGENCY_HIGH),
        ("Almond Butter", URGENCY_MEDIUM),
        ("Eggs", URGENCY_MEDIUM),
    ]


def test_recommendation_to_dict(db_session, make_product):
    product = make_product(current_stock=1, minimum_stock_level=2)
    data = RecommendationEngine(db_session).generate_recommendations()[0].to_dict()
    assert data["product"]["id"] == product.id
    assert data["suggested_order"] == 9
    assert data["urgency"] == URGENCY_CRITICAL
