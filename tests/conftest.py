from collections import Counter
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_service.cache import CacheMiss
from catalog_service.db import Base, init_db
from catalog_service.errors import CacheError
from catalog_service.main import app, get_cache, get_db
from catalog_service.models import Product, Review
from catalog_service.store import SqlStore

SECRET = "test-secret"


class InMemoryCache:
    """Cache double honouring the RedisCache contract, with injectable failures."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.calls = Counter()
        self.fail_on = set()

    def _call(self, operation):
        self.calls[operation] += 1
        if operation in self.fail_on:
            raise CacheError(f"Failed to {operation} cache", "connection refused")

    def get(self, key):
        self._call("get")
        if key not in self.data:
            raise CacheMiss(key)
        return self.data[key]

    def set(self, key, value, ttl=None):
        self._call("set")
        self.data[key] = str(value)
        self.ttls[key] = ttl

    def delete(self, key):
        self._call("delete")
        self.data.pop(key, None)
        self.ttls.pop(key, None)


class CountingStore(SqlStore):
    """SqlStore that records how often each operation was called."""

    def __init__(self, session):
        super().__init__(session)
        self.calls = Counter()

    def create(self, entity):
        self.calls["create"] += 1
        return super().create(entity)

    def find_by_id(self, model, entity_id):
        self.calls["find_by_id"] += 1
        return super().find_by_id(model, entity_id)

    def find_where(self, model, **criteria):
        self.calls["find_where"] += 1
        return super().find_where(model, **criteria)

    def find_all(self, model, preload=()):
        self.calls["find_all"] += 1
        return super().find_all(model, preload)

    def save(self, entity):
        self.calls["save"] += 1
        return super().save(entity)

    def delete(self, model, entity_id):
        self.calls["delete"] += 1
        return super().delete(model, entity_id)

    @property
    def total_calls(self):
        return sum(self.calls.values())


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSession()
    yield db
    db.close()


@pytest.fixture
def store(session):
    return CountingStore(session)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def make_product(session):
    def _make(name="Bananas", price="20.00", description="Bananas from Argentina"):
        product = Product(name=name, description=description, price=Decimal(price), average_rating=0.0)
        session.add(product)
        session.commit()
        return product
    return _make


@pytest.fixture
def make_review(session):
    """Insert a review directly, bypassing the service and its recompute."""
    def _make(product, rating, first_name="Miguel", last_name="Filip", review_text="Good"):
        review = Review(
            product_id=product.id,
            rating=rating,
            first_name=first_name,
            last_name=last_name,
            review_text=review_text,
        )
        session.add(review)
        session.commit()
        return review
    return _make


@pytest.fixture
def produce_event_mock():
    with patch("catalog_service.main.produce_event", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def client(session, cache, produce_event_mock, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", SECRET)

    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app, headers={"Authorization": f"Bearer {SECRET}"})
    app.dependency_overrides.clear()
