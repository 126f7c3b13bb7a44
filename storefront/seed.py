"""Reset the database and load sample users and products.

    python -m storefront.seed
"""
import logging
import sys
from decimal import Decimal

from .auth import PasswordHasher
from .config import get_settings
from .crud import products as products_crud
from .crud import users as users_crud
from .database import Database
from .models import Order, OrderItem, Product, User

logger = logging.getLogger(__name__)

SAMPLE_USERS = [
    ("John", "Doe", "john@example.com", "password123"),
    ("Jane", "Smith", "jane@example.com", "password456"),
]

SAMPLE_PRODUCTS = [
    ("Mystery Box Deluxe", "A surprise collection of premium items.", "49.99", 70),
    ("Mystery Bundle Classic", "Curated selection of everyday treasures.", "29.99", 50),
    ("Mystery Grab Bag", "A random collection of small goodies.", "19.99", 40),
    ("Mystery Mega Pack", "The biggest box, with the most variety.", "79.99", 30),
    ("Mystery Quick Pick", "A small bag of surprises.", "14.99", 25),
    ("Mystery Gadget Box", "Tech surprises and gadgets.", "39.99", 35),
    ("Mystery Foodie Feast", "Gourmet treats from around the world.", "59.99", 55),
    ("Mystery Travel Buddy", "Travel accessories for the road.", "44.99", 28),
]


def seed(database: Database, hasher: PasswordHasher) -> None:
    database.create_all()
    db = database.session()
    try:
        logger.info("Clearing existing data")
        for model in (OrderItem, Order, Product, User):
            db.query(model).delete(synchronize_session=False)
        db.commit()

        for first_name, last_name, email, password in SAMPLE_USERS:
            user = users_crud.create_user(db, hasher, first_name, last_name, email, password)
            logger.info("Created user %s (%s)", user.id, user.email)

        for name, description, price, stock in SAMPLE_PRODUCTS:
            products_crud.create_product(db, name, description, Decimal(price), stock, "mystery")
        logger.info("Created %d products", len(SAMPLE_PRODUCTS))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def main() -> int:
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    database = Database(settings.database_url, echo=settings.sql_echo)
    try:
        seed(database, PasswordHasher(settings.password_schemes))
    except Exception:
        logger.exception("Error seeding database")
        return 1
    finally:
        database.dispose()

    logger.info("Database seeding completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
