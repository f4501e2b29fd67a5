import itertools
import uuid
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from core.auth import current_active_user
from db.category import Category
from db.database import Database
from db.inventory import InventoryLedger
from db.product import Product
from db.users import User
from db.warehouse import Warehouse
from main import create_app


@pytest.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'stockroom.db'}")
    db.connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def ledger(database):
    return InventoryLedger(database, lock_timeout=5)


@pytest.fixture
def make_category(database):
    counter = itertools.count(1)

    async def _make(name=None, is_active=True, parent_id=None):
        async with database.session_maker() as s:
            c = Category(name=name or f"Category {next(counter)}", is_active=is_active, parent_id=parent_id)
            s.add(c)
            await s.commit()
            return c

    return _make


@pytest.fixture
def make_product(database):
    counter = itertools.count(1)

    async def _make(name=None, sku=None, is_active=True, category_id=None):
        n = next(counter)
        async with database.session_maker() as s:
            p = Product(
                name=name or f"Product {n}",
                sku=sku or f"SKU-{n:04d}",
                is_active=is_active,
                category_id=category_id,
            )
            s.add(p)
            await s.commit()
            return p

    return _make


@pytest.fixture
def make_warehouse(database):
    counter = itertools.count(1)

    async def _make(name=None, is_active=True):
        async with database.session_maker() as s:
            w = Warehouse(name=name or f"Warehouse {next(counter)}", is_active=is_active)
            s.add(w)
            await s.commit()
            return w

    return _make


@pytest.fixture
async def product(make_product):
    return await make_product(name="Widget", sku="WID-001")


@pytest.fixture
async def warehouse(make_warehouse):
    return await make_warehouse(name="Main Warehouse")


@pytest.fixture
async def record(ledger, product, warehouse):
    return await ledger.create(product.id, warehouse.id, quantity=10, min_threshold=2)


def _user(role: str):
    return SimpleNamespace(
        id=uuid.uuid4(),
        email=f"{role}@stockroom.io",
        role=role,
        is_active=True,
        is_superuser=role == "admin",
        is_verified=True,
    )


def _build_app(database, ledger, user):
    app = create_app()
    app.state.database = database
    app.state.ledger = ledger
    # Role checks build on current_active_user, so this one override covers them
    app.dependency_overrides[current_active_user] = lambda: user
    return app


def _client_for(database, ledger, role):
    app = _build_app(database, ledger, _user(role))
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
async def client(database, ledger):
    async with _client_for(database, ledger, "manager") as c:
        yield c


@pytest.fixture
async def viewer_client(database, ledger):
    async with _client_for(database, ledger, "staff") as c:
        yield c


@pytest.fixture
async def admin_client(database, ledger):
    async with _client_for(database, ledger, "admin") as c:
        yield c


@pytest.fixture
def make_user(database):
    counter = itertools.count(1)

    async def _make(role="staff", is_active=True):
        async with database.session_maker() as s:
            u = User(
                email=f"user{next(counter)}@stockroom.io",
                hashed_password="not-a-real-hash",
                role=role,
                is_active=is_active,
                is_superuser=role == "admin",
                is_verified=True,
            )
            s.add(u)
            await s.commit()
            return u

    return _make
