from models.product import Product
from models.reference import Unit
from models.stock import StockMovement
from models.users import User
from populate_db import PRODUCTS, populate_database


def test_seed_is_idempotent(db):
    assert populate_database(db) == len(PRODUCTS)
    assert populate_database(db) == 0

    assert db.query(Product).count() == len(PRODUCTS)
    assert db.query(Unit).filter(Unit.is_default.is_(True)).count() == 1
    assert db.query(User).filter(User.role == "manager").count() == 1


def test_seeded_history_ends_at_current_stock(db):
    populate_database(db)

    for product in db.query(Product):
        exits = (
            db.query(StockMovement)
            .filter(StockMovement.product_id == product.id, StockMovement.movement_type == "exit")
            .order_by(StockMovement.timestamp.desc())
            .all()
        )
        if exits:
            assert exits[0].new_stock == product.current_stock
        for newer, older in zip(exits, exits[1:]):
            assert older.new_stock == newer.previous_stock
