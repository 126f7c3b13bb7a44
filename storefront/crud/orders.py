from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import Order, OrderItem, Product
from ..schemas import OrderDetailOut, OrderItemOut, OrderOut, OrderStatus


def create_order(
    db: Session,
    user_id: int,
    customer_first_name: str,
    customer_last_name: str,
    customer_email: str,
    customer_address: str,
    payment_method: str,
    total_amount: Decimal,
) -> Order:
    """Stage a new order in ``complete`` status. Flushes, does not commit."""
    db_order = Order(
        user_id=user_id,
        status=OrderStatus.COMPLETE.value,
        customer_first_name=customer_first_name,
        customer_last_name=customer_last_name,
        customer_email=customer_email,
        customer_address=customer_address,
        payment_method=payment_method,
        total_amount=total_amount,
    )
    db.add(db_order)
    db.flush()  # Get order ID without committing
    return db_order


def add_item(db: Session, order_id: int, product_id: int, quantity: int, unit_price: Decimal) -> OrderItem:
    """Attach a product to an order, merging into an existing line if present.

    Adding the same product twice sums the quantities on one row; the unit
    price of the first line is kept. Flushes, does not commit.
    """
    existing = (
        db.query(OrderItem)
        .filter(OrderItem.order_id == order_id, OrderItem.product_id == product_id)
        .first()
    )
    if existing is not None:
        existing.quantity = existing.quantity + quantity
        db.flush()
        return existing

    item = OrderItem(order_id=order_id, product_id=product_id, quantity=quantity, unit_price=unit_price)
    db.add(item)
    db.flush()
    return item


def get_order(db: Session, order_id: int) -> Optional[Order]:
    return db.query(Order).filter(Order.id == order_id).first()


def get_items(db: Session, order_ids: List[int]) -> Dict[int, List[OrderItemOut]]:
    """Line items for the given orders with name/description from the live product row."""
    items: Dict[int, List[OrderItemOut]] = {order_id: [] for order_id in order_ids}
    if not order_ids:
        return items

    rows = (
        db.query(OrderItem, Product.name, Product.description)
        .outerjoin(Product, Product.id == OrderItem.product_id)
        .filter(OrderItem.order_id.in_(order_ids))
        .order_by(OrderItem.order_id, OrderItem.id)
        .all()
    )
    for item, name, description in rows:
        items[item.order_id].append(
            OrderItemOut(
                id=item.id,
                order_id=item.order_id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                name=name,
                description=description,
            )
        )
    return items


def _with_items(db: Session, orders: List[Order]) -> List[OrderDetailOut]:
    items = get_items(db, [o.id for o in orders])
    return [
        OrderDetailOut(**OrderOut.model_validate(o).model_dump(), items=items[o.id])
        for o in orders
    ]


def get_order_detail(db: Session, order_id: int) -> Optional[OrderDetailOut]:
    db_order = get_order(db, order_id)
    if db_order is None:
        return None
    return _with_items(db, [db_order])[0]


def get_orders(db: Session) -> List[OrderDetailOut]:
    orders = db.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return _with_items(db, orders)


def get_orders_by_user(db: Session, user_id: int) -> List[OrderDetailOut]:
    orders = (
        db.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return _with_items(db, orders)


def get_completed_orders_by_user(db: Session, user_id: int) -> List[OrderDetailOut]:
    orders = (
        db.query(Order)
        .filter(Order.user_id == user_id, Order.status == OrderStatus.COMPLETE.value)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return _with_items(db, orders)


def update_order_status(db: Session, order_id: int, new_status: OrderStatus) -> Optional[Order]:
    db_order = get_order(db, order_id)
    if not db_order:
        return None

    db_order.status = OrderStatus(new_status).value
    db.commit()
    db.refresh(db_order)
    return db_order


def delete_order(db: Session, order_id: int) -> bool:
    db_order = get_order(db, order_id)
    if not db_order:
        return False

    db.delete(db_order)
    db.commit()
    return True
