# Overview: Flask CLI command groups for bootstrap, inspection, and ledger audits.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Sample suppliers and products; skipped when products already exist.
#
# Inventory inspection:
# - python -m flask inventory low-stock
#   Products at or below their minimum stock level.
# - python -m flask inventory metrics
#   Per-product health, turnover and days of supply (worst first).
# - python -m flask inventory recommendations
#   Reorder / de-stock suggestions ordered by urgency.
# - python -m flask inventory audit
#   Replay every product's movements; exits 1 if any stock balance disagrees.

import sys

import click
from flask.cli import with_appcontext

from .extensions import db
from .money import to_minor_units
from .models import Product
from .services.ledger_store import LedgerStore
from .services.metrics_service import MetricsEngine
from .services.recommendation_service import RecommendationEngine
from .services.schemas import ProductCreate, SupplierCreate

SAMPLE_SUPPLIERS = [
    SupplierCreate(
        name="Premium Wholesale Co.",
        contact_person="John Smith",
        phone="+1-800-123-4567",
        email="john@premiumwholesale.com",
        address="123 Business Ave, Trade City, TC 12345",
    ),
    SupplierCreate(
        name="Quality Imports Ltd.",
        contact_person="Sarah Johnson",
        phone="+1-800-987-6543",
        email="sarah@qualityimports.com",
        address="456 Commerce Blvd, Port City, PC 67890",
    ),
    SupplierCreate(
        name="Direct Factory Supply",
        contact_person="Michael Chen",
        phone="+1-800-555-1234",
        email="michael@directfactory.com",
        address="789 Industrial Way, Factory Town, FT 11111",
    ),
]

# (name, sku, description, supplier index, buying, selling, stock, minimum, unit)
SAMPLE_PRODUCTS = [
    ("Premium Coffee Beans - Arabica", "COFFEE-ARAB-001",
     "High-quality single-origin Arabica coffee beans", 0, "8.50", "14.99", 150, 30, "bag"),
    ("Organic Green Tea", "TEA-GREEN-002",
     "Pure organic green tea leaves from the finest gardens", 1, "5.25", "9.99", 200, 50, "box"),
    ("Dark Chocolate Bars (70%)", "CHOCO-DARK-003",
     "Premium dark chocolate with 70% cocoa content", 2, "3.75", "7.49", 300, 100, "box"),
    ("Honey - Raw & Unfiltered", "HONEY-RAW-004",
     "Pure raw honey from local apiaries", 0, "12.00", "22.99", 80, 20, "jar"),
    ("Almond Butter - Natural", "ALMOND-NUT-005",
     "Creamy natural almond butter, no added sugar", 1, "6.50", "12.99", 120, 25, "jar"),
    ("Specialty Spice Blend - Gourmet", "SPICE-GOURM-006",
     "Exotic spice blend for premium cooking", 2, "4.20", "8.99", 75, 15, "bottle"),
    ("Extra Virgin Olive Oil", "OLIVE-OIL-007",
     "Premium extra virgin olive oil from Mediterranean", 0, "15.00", "29.99", 45, 10, "bottle"),
    ("Organic Granola Mix", "GRANOLA-ORG-008",
     "Crunchy organic granola with nuts and dried fruit", 1, "4.00", "8.49", 160, 40, "bag"),
    ("Herbal Tea Assortment", "TEA-HERB-009",
     "Premium selection of various herbal teas", 2, "7.50", "14.99", 110, 30, "box"),
    ("Artisanal Cheese Selection", "CHEESE-ART-010",
     "Premium selection of aged artisanal cheeses", 0, "18.00", "35.99", 35, 10, "pack"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' for sample data.")


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Load sample suppliers and products.

    Idempotent: does nothing when any product already exists. Sample
    suppliers left behind by an interrupted run are reused by name. Opening
    stock is recorded as an IN movement per product.
    """
    if db.session.query(Product.id).first() is not None:
        click.echo("SKIP Products already exist; nothing seeded.")
        return

    store = LedgerStore(db.session)
    existing = {s.name: s for s in store.list_suppliers()}
    suppliers = []
    created = 0
    for data in SAMPLE_SUPPLIERS:
        supplier = existing.get(data.name)
        if supplier is None:
            supplier = store.create_supplier(data)
            created += 1
        suppliers.append(supplier)
    click.echo(f"PASS Created {created} suppliers ({len(suppliers) - created} reused)")

    for name, sku, description, sup_idx, buying, selling, stock, minimum, unit in SAMPLE_PRODUCTS:
        store.create_product(
            ProductCreate(
                name=name,
                sku=sku,
                description=description,
                supplier_id=suppliers[sup_idx].id,
                buying_price_cents=to_minor_units(buying),
                selling_price_cents=to_minor_units(selling),
                current_stock=stock,
                minimum_stock_level=minimum,
                unit_of_measurement=unit,
            )
        )
    click.echo(f"PASS Created {len(SAMPLE_PRODUCTS)} products")


@click.group('inventory')
def inventory_group():
    """Stock inspection and ledger audit commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock():
    """List products at or below their minimum stock level."""
    products = LedgerStore(db.session).list_low_stock()

    if not products:
        click.echo("No low-stock products.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<40} {'Stock':>8} {'Min':>8}")
    click.echo("="*70)
    for p in products:
        click.echo(f"{p.id:<5} {p.name[:40]:<40} {p.current_stock:>8} {p.minimum_stock_level:>8}")
    click.echo("="*70 + "\n")


@inventory_group.command('metrics')
@with_appcontext
def metrics():
    """Per-product stock metrics, worst health first."""
    rows = MetricsEngine(db.session).all_metrics()

    if not rows:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<35} {'Stock':>6} {'Min':>6} {'Turnover':>9} {'Supply':>7} {'Idle':>5} {'Margin':>8} {'Health'}")
    click.echo("="*100)
    for m in rows:
        margin = m.profit_margin or "n/a"
        click.echo(
            f"{m.product_id:<5} {m.product_name[:35]:<35} {m.current_stock:>6} {m.minimum_stock:>6} "
            f"{m.monthly_turnover:>9} {m.days_of_supply:>7} {m.days_since_last_movement:>5} {margin:>8} {m.stock_health}"
        )
    click.echo("="*100 + "\n")


@inventory_group.command('recommendations')
@with_appcontext
def recommendations():
    """Reorder and de-stock suggestions ordered by urgency."""
    recs = RecommendationEngine(db.session).generate_recommendations()

    if not recs:
        click.echo("No recommendations.")
        return

    for rec in recs:
        click.echo(
            f"[{rec.urgency.upper()}] {rec.product.name}: order {rec.suggested_order} "
            f"- {rec.reason} ({rec.profit_impact})"
        )


@inventory_group.command('audit')
@with_appcontext
def audit():
    """
    Replay the movement ledger for every product.

    Exit code 1 when any product's current_stock differs from its
    signed movement sum.
    """
    store = LedgerStore(db.session)
    mismatches = []
    products = store.list_products()

    for product in products:
        replayed = store.stock_from_movements(product.id)
        if replayed != product.current_stock:
            mismatches.append((product, replayed))

    if not mismatches:
        click.echo(f"PASS {len(products)} products consistent with their movements.")
        return

    for product, replayed in mismatches:
        click.echo(
            f"FAIL Product {product.id} ({product.name}): current_stock={product.current_stock} "
            f"movements={replayed}"
        )
    sys.exit(1)


def register_commands(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
