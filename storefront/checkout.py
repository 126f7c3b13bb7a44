"""
Order placement: turn a cart into a persisted, stock-committed order.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from .crud import orders as orders_crud
from .crud import products as products_crud
from .errors import InsufficientStock, InvalidInput, NotFound
from .schemas import CartItemIn, CustomerInfo, OrderDetailOut, PaymentMethod

logger = logging.getLogger(__name__)

INVALID_ITEMS_MESSAGE = "Order must contain at least one item with a positive quantity"
MISSING_FIELDS_MESSAGE = (
    "Missing required fields: customerFirstName, customerLastName, "
    "customerEmail, customerAddress, paymentMethod"
)


@dataclass(frozen=True)
class PricedItem:
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


def validate_request(
    items: Optional[Sequence[CartItemIn]],
    customer: Optional[CustomerInfo],
    payment_method: Optional[str],
) -> PaymentMethod:
    if not items or any(item.quantity <= 0 for item in items):
        raise InvalidInput(INVALID_ITEMS_MESSAGE)

    if (
        customer is None
        or not customer.first_name
        or not customer.last_name
        or not customer.email
        or not customer.address
        or not payment_method
    ):
        raise InvalidInput(MISSING_FIELDS_MESSAGE)

    try:
        return PaymentMethod(payment_method)
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise InvalidInput(f"Invalid paymentMethod '{payment_method}'. Allowed: {allowed}")


def price_items(db: Session, items: Iterable[CartItemIn]) -> List[PricedItem]:
    """Resolve each cart item against the current product row.

    The stored price becomes the unit price. Read-only; the stock check here
    is advisory and is enforced again by the conditional decrement.
    """
    priced = []
    for item in items:
        product = products_crud.get_product(db, item.product_id)
        if product is None:
            raise NotFound(f"Product with ID {item.product_id} not found")
        if product.stock < item.quantity:
            raise InsufficientStock(item.product_id)
        priced.append(PricedItem(product_id=product.id, quantity=item.quantity, unit_price=Decimal(product.price)))
    return priced


def calculate_total(items: Iterable[PricedItem]) -> Decimal:
    return sum((item.line_total for item in items), Decimal("0"))


def place_order(
    db: Session,
    user_id: int,
    items: Optional[Sequence[CartItemIn]],
    customer: Optional[CustomerInfo],
    payment_method: Optional[str],
) -> OrderDetailOut:
    """Validate the cart, create the order and commit stock, all or nothing.

    Raises InvalidInput before touching the store, NotFound for an unknown
    product and InsufficientStock when a product cannot cover the requested
    quantity (either at lookup time or when the decrement loses a race).
    On any failure after the order row is staged the whole transaction is
    rolled back: no order, no items, no stock change.
    """
    method = validate_request(items, customer, payment_method)

    priced = price_items(db, items)
    total_amount = calculate_total(priced)

    try:
        db_order = orders_crud.create_order(
            db,
            user_id=user_id,
            customer_first_name=customer.first_name,
            customer_last_name=customer.last_name,
            customer_email=customer.email,
            customer_address=customer.address,
            payment_method=method.value,
            total_amount=total_amount,
        )

        for item in priced:
            orders_crud.add_item(db, db_order.id, item.product_id, item.quantity, item.unit_price)
            if not products_crud.decrease_stock(db, item.product_id, item.quantity):
                raise InsufficientStock(item.product_id)

        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Order %s placed by user %s: %d item(s), total %s",
        db_order.id, user_id, len(priced), total_amount,
    )
    return orders_crud.get_order_detail(db, db_order.id)
