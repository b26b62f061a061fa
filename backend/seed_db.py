import os
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from config import setup_logging
from database import SessionLocal, init_db
from models.catalog import Area, Restaurant, Menu
from models.users import User, Role
from services.payments import ensure_payment_settings
from utils.hashing import get_password_hash

logger = setup_logging()

# Configuration
SUPERADMIN_EMAIL = os.getenv("SEED_SUPERADMIN_EMAIL", "superadmin@example.com")
SUPERADMIN_PASSWORD = os.getenv("SEED_SUPERADMIN_PASSWORD", "ChangeMe123!")

# Sample catalog: area -> restaurants -> (menu name, price)
CATALOG = {
    ("Kantin Gedung A", "kantin-gedung-a"): {
        "Warung Nusantara": [("Nasi Goreng", 18000), ("Mie Ayam", 15000), ("Es Teh Manis", 5000)],
        "Soto Pak Kumis": [("Soto Ayam", 17000), ("Soto Daging", 22000), ("Kerupuk", 2000)],
    },
    ("Food Court Lantai 2", "food-court-lantai-2"): {
        "Dapur Sehat": [("Gado-Gado", 16000), ("Pecel", 14000), ("Jus Alpukat", 12000)],
    },
}
# End Configuration


def seed_superadmin(session) -> User:
    user = session.query(User).filter(User.email == SUPERADMIN_EMAIL).first()
    if user:
        logger.info("Superadmin %s already present", SUPERADMIN_EMAIL)
        return user

    user = User(
        name="Super Admin",
        email=SUPERADMIN_EMAIL,
        password_hash=get_password_hash(SUPERADMIN_PASSWORD),
        role=Role.SUPERADMIN.value,
        is_active=True,
    )
    session.add(user)
    session.commit()
    logger.info("Created superadmin %s", SUPERADMIN_EMAIL)
    return user


def seed_catalog(session) -> None:
    """Insert the sample areas, restaurants and menus that are missing."""
    for (area_name, slug), restaurants in CATALOG.items():
        area = session.query(Area).filter(Area.slug == slug).first()
        if not area:
            area = Area(name=area_name, slug=slug)
            session.add(area)
            session.flush()

        for restaurant_name, menus in restaurants.items():
            restaurant = (
                session.query(Restaurant)
                .filter(Restaurant.area_id == area.id, Restaurant.name == restaurant_name)
                .first()
            )
            if restaurant:
                continue
            restaurant = Restaurant(area_id=area.id, name=restaurant_name, is_open=True)
            session.add(restaurant)
            session.flush()
            for menu_name, price in menus:
                session.add(Menu(restaurant_id=restaurant.id, name=menu_name, price=price, is_available=True))

    session.commit()
    logger.info("Catalog seeded: %s area(s)", len(CATALOG))


SAMPLE_PAYMENT_DETAILS = {
    "qris_image": "uploads/qris/kantin.png",
    "bank_name": "BCA",
    "account_number": "1234567890",
    "account_name": "Kantin CRSD",
}


def seed_payment_settings(session):
    # Customers can only pay with methods that carry their display data
    settings_row = ensure_payment_settings(session)
    for field, value in SAMPLE_PAYMENT_DETAILS.items():
        if not getattr(settings_row, field):
            setattr(settings_row, field, value)
    session.commit()
    logger.info("Payment methods available: %s", [m["id"] for m in settings_row.available_methods()])


def populate_database():
    """Main execution function to populate database."""
    init_db()
    session = SessionLocal()
    try:
        seed_superadmin(session)
        seed_catalog(session)
        seed_payment_settings(session)
    finally:
        session.close()


if __name__ == "__main__":
    populate_database()
