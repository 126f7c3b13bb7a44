from collections import OrderedDict
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import PasswordHasher
from ..errors import Conflict
from ..models import Order, OrderItem, Product, User
from ..schemas import OrderStatus, PurchaseOut, PurchaseProductOut, UserOut, UserWithPurchasesOut

RECENT_PURCHASES_LIMIT = 5


def create_user(
    db: Session,
    hasher: PasswordHasher,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
) -> User:
    if get_user_by_email(db, email) is not None:
        raise Conflict("Email already registered")

    db_user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=hasher.hash(password),
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise Conflict("Email already registered", cause=e)
    db.refresh(db_user)
    return db_user


def authenticate(db: Session, hasher: PasswordHasher, email: str, password: str) -> Optional[User]:
    """Return the user only if the password matches.

    An unknown email and a wrong password both give None.
    """
    user = get_user_by_email(db, email)
    if user is None:
        return None
    return user if hasher.verify(password, user.password_hash) else None


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_users(db: Session) -> List[UserOut]:
    rows = (
        db.query(User.id, User.first_name, User.last_name, User.email)
        .order_by(User.id)
        .all()
    )
    return [UserOut(id=r.id, first_name=r.first_name, last_name=r.last_name, email=r.email) for r in rows]


def get_user_with_purchases(db: Session, user_id: int) -> Optional[UserWithPurchasesOut]:
    """The user plus their five most recent complete orders and line items."""
    user = get_user(db, user_id)
    if user is None:
        return None

    recent_ids = (
        db.query(Order.id)
        .filter(Order.user_id == user_id, Order.status == OrderStatus.COMPLETE.value)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(RECENT_PURCHASES_LIMIT)
        .subquery()
    )
    rows = (
        db.query(
            Order,
            OrderItem.product_id,
            OrderItem.quantity,
            OrderItem.unit_price,
            Product.name,
        )
        .join(recent_ids, recent_ids.c.id == Order.id)
        .outerjoin(OrderItem, OrderItem.order_id == Order.id)
        .outerjoin(Product, Product.id == OrderItem.product_id)
        .order_by(Order.created_at.desc(), Order.id.desc(), OrderItem.id)
        .all()
    )

    purchases: "OrderedDict[int, PurchaseOut]" = OrderedDict()
    for order, product_id, quantity, unit_price, product_name in rows:
        purchase = purchases.get(order.id)
        if purchase is None:
            purchase = PurchaseOut(
                id=order.id,
                status=order.status,
                customer_first_name=order.customer_first_name,
                customer_last_name=order.customer_last_name,
                total=order.total_amount,
                created_at=order.created_at,
            )
            purchases[order.id] = purchase
        if quantity is not None:
            purchase.products.append(
                PurchaseProductOut(id=product_id, name=product_name, quantity=quantity, unit_price=unit_price)
            )

    return UserWithPurchasesOut(user=UserOut.model_validate(user), purchases=list(purchases.values()))


def update_user(db: Session, user_id: int, first_name: str, last_name: str) -> Optional[User]:
    user = get_user(db, user_id)
    if user is None:
        return None

    user.first_name = first_name
    user.last_name = last_name
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> bool:
    user = get_user(db, user_id)
    if user is None:
        return False

    db.delete(user)
    db.commit()
    return True
