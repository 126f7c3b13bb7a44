from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import Conflict, InvalidInput
from ..models import OrderItem, Product

UPDATABLE_FIELDS = ("name", "description", "price", "stock", "category")


def create_product(
    db: Session,
    name: str,
    description: str,
    price: Decimal,
    stock: int,
    category: str,
) -> Product:
    db_product = Product(
        name=name,
        description=description,
        price=price,
        stock=stock,
        category=category,
    )
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product


def get_product(db: Session, product_id: int) -> Optional[Product]:
    return db.query(Product).filter(Product.id == product_id).first()


def get_products(db: Session) -> List[Product]:
    return db.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_products_by_category(db: Session, category: str) -> List[Product]:
    return (
        db.query(Product)
        .filter(Product.category == category)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )


def get_top_popular(db: Session, limit: int = 5) -> List[Tuple[Product, int]]:
    """Products ranked by how many order-item rows reference them.

    Counts rows, not quantities: one order for 100 units weighs the same as
    one order for a single unit. Products never ordered rank last. Ties are
    broken by product id, lowest first.
    """
    total_orders = func.count(OrderItem.id).label("total_orders")
    rows = (
        db.query(Product, total_orders)
        .outerjoin(OrderItem, OrderItem.product_id == Product.id)
        .group_by(Product.id)
        .order_by(total_orders.desc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    return [(product, int(count)) for product, count in rows]


def update_product(db: Session, product_id: int, update_data: dict) -> Optional[Product]:
    db_product = get_product(db, product_id)
    if not db_product:
        return None

    for key, value in update_data.items():
        if key not in UPDATABLE_FIELDS:
            raise InvalidInput(f"Unknown product field: {key}")
        if value is not None:
            setattr(db_product, key, value)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise InvalidInput("Product price and stock must be non-negative", cause=e)
    db.refresh(db_product)
    return db_product


def delete_product(db: Session, product_id: int) -> bool:
    db_product = get_product(db, product_id)
    if not db_product:
        return False

    db.delete(db_product)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("Product is referenced by existing orders", cause=e)
    return True


def decrease_stock(db: Session, product_id: int, quantity: int) -> bool:
    """Subtract ``quantity`` from the product's stock only if enough is left.

    The check and the write are one conditional UPDATE evaluated by the
    store, so two buyers racing for the last unit cannot both succeed.
    Returns False when the product is missing or stock is insufficient.
    The caller owns the transaction and must commit.
    """
    if quantity <= 0:
        raise InvalidInput("quantity must be > 0")

    updated = (
        db.query(Product)
        .filter(Product.id == product_id, Product.stock >= quantity)
        .update(
            {Product.stock: Product.stock - quantity, Product.updated_at: func.now()},
            synchronize_session=False,
        )
    )
    return updated == 1
