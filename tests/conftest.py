"""
Shared fixtures for the food ordering test suite.

Every test runs against a fresh in-memory SQLite schema.
"""
import os

# Must be set before config/database are imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest

from database import Base, SessionLocal, engine, init_db
from models.catalog import Area, Restaurant, Menu
from models.types import AccessToken
from models.users import Role, User
from services.access import Principal
from services.payments import ensure_payment_settings
from utils.hashing import get_password_hash

init_db()

PASSWORD = "Secret123!"


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# Factories
# ============================================================================


def make_user(db, email, role=Role.USER, divisi=None, data_access=None, is_active=True):
    user = User(
        name=email.split("@")[0].title(),
        email=email,
        password_hash=get_password_hash(PASSWORD),
        role=role.value,
        divisi=divisi,
        data_access=AccessToken.parse(data_access or ()),
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_restaurant(db, name="Warung Nusantara", menus=(("Nasi Goreng", 10000), ("Es Teh", 5000)), is_open=True):
    area = db.query(Area).filter(Area.slug == "kantin").first()
    if not area:
        area = Area(name="Kantin", slug="kantin")
        db.add(area)
        db.flush()
    restaurant = Restaurant(area_id=area.id, name=name, is_open=is_open)
    db.add(restaurant)
    db.flush()
    created = [Menu(restaurant_id=restaurant.id, name=n, price=p, is_available=True) for n, p in menus]
    db.add_all(created)
    db.commit()
    return restaurant, created


def principal(user) -> Principal:
    return Principal.from_user(user)


def configure_payments(db):
    # Both methods switched on and carrying the data customers pay against
    settings_row = ensure_payment_settings(db)
    settings_row.qris_image = "uploads/qris.png"
    settings_row.bank_name = "BCA"
    settings_row.account_number = "1234567890"
    settings_row.account_name = "PT Kantin"
    db.commit()
    return settings_row


@pytest.fixture
def customer(db):
    return make_user(db, "budi@example.com", divisi="CRSD 1")


@pytest.fixture
def superadmin(db):
    return make_user(db, "root@example.com", role=Role.SUPERADMIN)


@pytest.fixture
def restaurant(db):
    return make_restaurant(db)


@pytest.fixture
def payment_settings(db):
    return configure_payments(db)
