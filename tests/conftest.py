import os

# Must be set before the app modules create their engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core.config import settings
from app.database.session import Base, SessionLocal, engine, create_db_and_tables
from app.models.entry import Entry
from app.models.exit import Exit
from app.models.product import Product
from app.models.profile import UserProfile, UserRole
from app.services.access.policy import AccessPolicy
from app.services.stock.reconciliation import StockReconciliationService


@pytest.fixture(autouse=True)
def setup_test_db():
    """Fresh schema for each test"""
    create_db_and_tables(engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client


def make_profile(db, user_id, role=UserRole.SIMPLE, is_active=True, email=None):
    profile = UserProfile(id=user_id, email=email or f"{user_id}@school.test", role=role, is_active=is_active)
    db.add(profile)
    db.commit()
    return profile


def make_product(db, product_id="p-1", quantity=0, min_stock=0, name="Pencil", category="Writing"):
    """Create a product whose quantity is backed by an opening entry."""
    product = Product(id=product_id, name=name, unit="un", category=category, quantity=quantity, min_stock=min_stock)
    db.add(product)
    if quantity:
        db.add(Entry(
            id=f"{product_id}-opening",
            product_id=product_id,
            quantity=quantity,
            date=datetime(2024, 1, 1),
            employee_name="setup",
        ))
    db.commit()
    return product


def ledger_balance(db, product_id):
    entries = sum(e.quantity for e in db.query(Entry).filter(Entry.product_id == product_id))
    exits = sum(e.quantity for e in db.query(Exit).filter(Exit.product_id == product_id))
    return entries - exits


def current_quantity(db, product_id):
    db.expire_all()
    return db.query(Product).filter(Product.id == product_id).one().quantity


def make_token(user_id, email=None, expires_in=timedelta(hours=1)):
    claims = {
        "sub": user_id,
        "email": email or f"{user_id}@school.test",
        "aud": settings.TOKEN_AUDIENCE,
        "exp": datetime.utcnow() + expires_in,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_header(user_id, email=None):
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


@pytest.fixture
def admin(db):
    return make_profile(db, "admin-1", role=UserRole.ADMIN)


@pytest.fixture
def clerk(db):
    return make_profile(db, "clerk-1", role=UserRole.SIMPLE)


@pytest.fixture
def admin_service(db, admin):
    return StockReconciliationService(db, AccessPolicy(admin), admin.email)


@pytest.fixture
def clerk_service(db, clerk):
    return StockReconciliationService(db, AccessPolicy(clerk), clerk.email)
