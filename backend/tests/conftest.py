import itertools
import os
import tempfile
from types import SimpleNamespace

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="stockapp-uploads-")
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ALLOW_NEGATIVE_STOCK"] = "true"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import main
from database import Base, get_db
from models.reference import Category, Unit, StorageZone
from models.users import User
from services import catalog
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token

PASSWORD = "secret123"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    main.app.dependency_overrides[get_db] = override_get_db
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


def _make_user(db, username, name, role):
    user = User(username=username, name=name, role=role, password_hash=get_password_hash(PASSWORD))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def user(db):
    return _make_user(db, "alice", "Alice Martin", "user")


@pytest.fixture()
def other_user(db):
    return _make_user(db, "bob", "Bob Durand", "user")


@pytest.fixture()
def manager(db):
    return _make_user(db, "claire", "Claire Petit", "manager")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.username})}"}


@pytest.fixture()
def user_headers(user):
    return auth_headers(user)


@pytest.fixture()
def manager_headers(manager):
    return auth_headers(manager)


@pytest.fixture()
def refs(db):
    category = Category(name="Visserie")
    unit = Unit(name="Pièce", abbreviation="pc", is_default=True)
    zone = StorageZone(name="A")
    db.add_all([category, unit, zone])
    db.commit()
    return SimpleNamespace(category=category, unit=unit, zone=zone)


@pytest.fixture()
def make_product(db, manager, refs):
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        data = {
            "designation": f"Article {n}",
            "category_id": refs.category.id,
            "unit_id": refs.unit.id,
            "storage_zone_id": refs.zone.id,
            "shelf": 2,
            "position": 5,
            "current_stock": 10,
            "min_stock": 2,
            "max_stock": 50,
            "unit_price": 1.5,
        }
        data.update(overrides)
        return catalog.create_product(db, data, manager)

    return _make
