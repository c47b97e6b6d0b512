from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mobileorder.db import get_tx_manager, init_db
from mobileorder.main import app
from mobileorder.models.item import Item
from mobileorder.models.shop import Shop, shop_admins
from mobileorder.models.user import User, UserRole
from mobileorder.utils.transactions import TransactionManager


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(reset=True, bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def tx(session_factory):
    return TransactionManager(session_factory)


@pytest.fixture
def seed(session_factory):
    """
    shop 1: item A (100, available), item B (200, unavailable)
    shop 2: item C (300, available)
    alice, bob: customers; admin1 staffs shop 1, admin2 staffs shop 2
    """
    db = session_factory()
    try:
        shop1 = Shop(name="Noodle Bar", location="Building A")
        shop2 = Shop(name="Crepe Stand", location="East exit")
        item_a = Item(name="Ramen", price=100, is_available=True)
        item_b = Item(name="Gyoza", price=200, is_available=False)
        item_c = Item(name="Crepe", price=300, is_available=True)
        shop1.items.extend([item_a, item_b])
        shop2.items.append(item_c)
        alice = User(email="alice@example.com", role=UserRole.CUSTOMER)
        bob = User(email="bob@example.com", role=UserRole.CUSTOMER)
        admin1 = User(email="admin1@example.com", role=UserRole.ADMIN)
        admin2 = User(email="admin2@example.com", role=UserRole.ADMIN)
        db.add_all([shop1, shop2, alice, bob, admin1, admin2])
        db.flush()
        db.execute(shop_admins.insert().values(shop_id=shop1.id, admin_user_id=admin1.id))
        db.execute(shop_admins.insert().values(shop_id=shop2.id, admin_user_id=admin2.id))
        db.commit()
        return SimpleNamespace(
            shop1=shop1.id,
            shop2=shop2.id,
            item_a=item_a.id,
            item_b=item_b.id,
            item_c=item_c.id,
            alice=alice.id,
            bob=bob.id,
            admin1=admin1.id,
            admin2=admin2.id,
        )
    finally:
        db.close()


@pytest.fixture
def client(tx):
    app.dependency_overrides[get_tx_manager] = lambda: tx
    app.state.rate_limiter.reset()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.state.rate_limiter.reset()


@pytest.fixture
def clock():
    return FakeClock()
