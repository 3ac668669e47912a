import os
import random
import sys
from datetime import timedelta

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

# Database models and setup
from database import SessionLocal, init_db
from models.product import Product
from models.reference import Category, Unit, StorageZone
from models.stock import MovementType, StockMovement
from models.users import User
from services import catalog
from utils.dates import utcnow
from utils.hashing import get_password_hash

# Configuration
MANAGER_USERNAME = "manager"
MANAGER_PASSWORD = "manager123"
HISTORY_DAYS = 60 # Days of simulated consumption history
RANDOM_SEED = 42
# End Configuration

UNITS = [
    ("Pièce", "pc", True),
    ("Mètre", "m", False),
    ("Kilogramme", "kg", False),
    ("Litre", "L", False),
]
CATEGORIES = ["Visserie", "Électricité", "Plomberie", "Consommables", "Outillage"]
ZONES = ["A", "B", "C"]

# reference, designation, category, unit abbreviation, zone, stock, min, max, price
PRODUCTS = [
    ("RF00001", "Vis inox M6x20", "Visserie", "pc", "A", 450, 100, 1000, 0.12),
    ("RF00002", "Écrou frein M6", "Visserie", "pc", "A", 80, 100, 800, 0.08),
    ("RF00003", "Câble H07V-U 2.5mm² bleu", "Électricité", "m", "B", 120, 50, 500, 0.65),
    ("RF00004", "Disjoncteur 16A", "Électricité", "pc", "B", 6, 5, 30, 11.90),
    ("RF00005", "Raccord laiton 15/21", "Plomberie", "pc", "C", 0, 10, 60, 3.40),
    ("RF00006", "Graisse lithium", "Consommables", "kg", "C", 12, 4, 25, 8.75),
    ("RF00007", "Dégraissant industriel", "Consommables", "L", "C", 30, 10, 80, 5.20),
    ("RF00008", "Foret HSS 8mm", "Outillage", "pc", "A", 15, 5, 40, 2.95),
]


def _get_or_create(db, model, defaults=None, **filters):
    item = db.query(model).filter_by(**filters).first()
    if item:
        return item
    item = model(**filters, **(defaults or {}))
    db.add(item)
    db.flush()
    return item


def seed_reference_data(db):
    """Default units, categories and zones; existing rows are kept."""
    units = {
        abbr: _get_or_create(db, Unit, name=name, defaults={"abbreviation": abbr, "is_default": default})
        for name, abbr, default in UNITS
    }
    categories = {name: _get_or_create(db, Category, name=name) for name in CATEGORIES}
    zones = {name: _get_or_create(db, StorageZone, name=name) for name in ZONES}
    db.commit()
    return units, categories, zones


def seed_manager(db):
    manager = _get_or_create(
        db, User, username=MANAGER_USERNAME,
        defaults={
            "name": "Responsable magasin",
            "role": "manager",
            "password_hash": get_password_hash(MANAGER_PASSWORD),
        },
    )
    db.commit()
    return manager


def seed_history(db, product, manager, rng):
    """Simulated exits over the last HISTORY_DAYS days, ending at the current stock."""
    now = utcnow()
    stock = product.current_stock
    rows = []
    for days_ago in range(1, HISTORY_DAYS + 1):
        if rng.random() > 0.3:
            continue
        quantity = rng.randint(1, max(1, product.min_stock // 4))
        rows.append(StockMovement(
            product_id=product.id,
            product_reference=product.reference,
            product_designation=product.designation,
            movement_type=MovementType.EXIT.value,
            quantity=quantity,
            previous_stock=stock + quantity,
            new_stock=stock,
            user_id=manager.id,
            user_name=manager.name,
            reason="Demande approuvée - Sortie de stock",
            timestamp=now - timedelta(days=days_ago, hours=rng.randint(0, 8)),
        ))
        stock += quantity
    db.add_all(rows)
    db.commit()
    return len(rows)


def populate_database(db=None):
    """Main execution function to populate database."""
    own_session = db is None
    db = db or SessionLocal()
    rng = random.Random(RANDOM_SEED)
    try:
        units, categories, zones = seed_reference_data(db)
        manager = seed_manager(db)

        created = 0
        movements = 0
        for ref, designation, category, unit, zone, stock, min_stock, max_stock, price in PRODUCTS:
            if db.query(Product).filter(Product.reference == ref).first():
                continue
            product = catalog.create_product(db, {
                "reference": ref,
                "designation": designation,
                "category_id": categories[category].id,
                "unit_id": units[unit].id,
                "storage_zone_id": zones[zone].id,
                "shelf": rng.randint(1, 6),
                "position": rng.randint(1, 12),
                "current_stock": stock,
                "min_stock": min_stock,
                "max_stock": max_stock,
                "unit_price": price,
            }, manager)
            created += 1
            movements += seed_history(db, product, manager, rng)

        print(f"Inserted {created} products and {movements} historical exits.")
        return created
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    init_db()
    populate_database()
