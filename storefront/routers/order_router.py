import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from .. import checkout
from ..auth import get_current_identity
from ..crud import orders as orders_crud
from ..database import get_db
from ..errors import InvalidInput, NotFound, OperationFailed
from ..messaging import EventPublisher, order_placed_event
from ..schemas import Envelope, Identity, OrderCreate, OrderDetailOut, OrderOut, OrderStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def get_event_publisher(request: Request) -> Optional[EventPublisher]:
    return getattr(request.app.state, "event_publisher", None)


def _get_own_order(db: Session, order_id: int, user_id: int) -> OrderDetailOut:
    # Another user's order is reported exactly like a missing one
    order = orders_crud.get_order_detail(db, order_id)
    if order is None or order.user_id != user_id:
        raise NotFound("Order not found")
    return order


@router.post("", response_model=Envelope[OrderDetailOut], status_code=status.HTTP_201_CREATED)
def place_order(
    body: OrderCreate,
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    publisher: Optional[EventPublisher] = Depends(get_event_publisher),
):
    try:
        order = checkout.place_order(
            db,
            user_id=current_user.id,
            items=body.items,
            customer=body.customer(),
            payment_method=body.payment_method,
        )
    except InvalidInput:
        raise
    except Exception as e:
        logger.exception("Failed to create order for user %s", current_user.id)
        raise OperationFailed("Failed to create order", cause=e)

    if publisher is not None:
        try:
            publisher.publish("order.placed", order_placed_event(order))
        except Exception:
            # The order is committed; a broker outage must not fail the request
            logger.warning("Could not publish order.placed for order %s", order.id, exc_info=True)

    return Envelope(data=order)


@router.get("", response_model=Envelope[List[OrderDetailOut]])
def get_my_orders(
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return Envelope(data=orders_crud.get_orders_by_user(db, current_user.id))


@router.get("/completed", response_model=Envelope[List[OrderDetailOut]])
def get_my_completed_orders(
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return Envelope(data=orders_crud.get_completed_orders_by_user(db, current_user.id))


@router.get("/{order_id}", response_model=Envelope[OrderDetailOut])
def get_order(
    order_id: int,
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return Envelope(data=_get_own_order(db, order_id, current_user.id))


@router.patch("/{order_id}/status", response_model=Envelope[OrderOut])
def update_order_status(
    order_id: int,
    status_update: OrderStatusUpdate,
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    _get_own_order(db, order_id, current_user.id)

    db_order = orders_crud.update_order_status(db, order_id, status_update.status)
    if not db_order:
        raise NotFound("Order not found")
    return Envelope(data=OrderOut.model_validate(db_order))


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: int,
    current_user: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    _get_own_order(db, order_id, current_user.id)
    orders_crud.delete_order(db, order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
