import logging
from uuid import uuid4

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.models.base import plain_id
from app.models.booking import Booking
from app.models.cart import Cart
from app.models.event import Event
from app.models.order import Order
from app.models.user import User
from app.services.auth import ensure_owner, restrict_to
from app.utils.base import OrderStatus, UserRole
from app.utils.base.errors import Conflict, NotFound, ValidationError


router = APIRouter()

logger = logging.getLogger("campus.payments")

student_only = restrict_to(UserRole.STUDENT.value)

FINAL_STATUSES = (OrderStatus.CAPTURED.value, OrderStatus.FAILED.value)


class CreateOrderBody(BaseModel):
    gateway_order_id: str

@router.post("/orders", status_code=201)
def create_order(body: CreateOrderBody, current_user: User = Depends(student_only)) -> dict:
    """PROTECTED | STUDENT: Open a payment order for everything in the cart."""
    cart = Cart.for_user(current_user)
    if not cart.items:
        raise ValidationError("There should be at least one event in the order")

    order = Order(
        internal_order_id=uuid4().hex,
        user=current_user,
        order_items=list(cart.items),
        total_amount=sum(event.price for event in cart.items),
        gateway_order_id=body.gateway_order_id,
    )
    order.save()

    logger.info("Order %s created for user %s", order.internal_order_id, current_user.id)
    return {"status": "success", "data": order.to_output(exclude=["user", "metadata"])}


@router.get("/orders")
def list_orders(current_user: User = Depends(student_only)) -> dict:
    """PROTECTED | STUDENT: Caller's orders, newest first."""
    orders = Order.objects(user=current_user).order_by("-created_at")
    data = [o.to_output(exclude=["user", "metadata"]) for o in orders]
    return {"status": "success", "results": len(data), "data": data}


class UpdateOrderBody(BaseModel):
    status: str

@router.patch("/orders/{internal_order_id}")
def update_order_status(
    internal_order_id: str,
    body: UpdateOrderBody,
    current_user: User = Depends(student_only),
) -> dict:
    """PROTECTED | STUDENT | OWNER: Record the gateway outcome of an order.

    Capturing an order registers the user for every ordered event and empties
    the cart.
    """
    if body.status not in FINAL_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(FINAL_STATUSES)}")

    order: Order | None = Order.objects(internal_order_id=internal_order_id).first()
    if not order:
        raise NotFound(f"There is no order with the id {internal_order_id}")
    ensure_owner(current_user, order._data.get("user"))
    if order.status != OrderStatus.CREATED.value:
        raise Conflict(f"Order is already {order.status}")

    order.status = body.status
    order.save()

    if order.status == OrderStatus.CAPTURED.value:
        # Events deleted since ordering dereference to DBRefs and get no booking
        for event in order.order_items:
            if not isinstance(event, Event):
                logger.warning("Order %s references deleted event %s", internal_order_id, plain_id(event))
                continue
            Booking.objects(event=event).update_one(add_to_set__registered_users=current_user, upsert=True)
        Cart.objects(user=current_user).update_one(set__items=[])

    logger.info("Order %s marked %s", internal_order_id, order.status)
    return {"status": "success", "data": order.to_output(exclude=["user", "metadata"])}
