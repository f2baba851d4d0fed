from fastapi import APIRouter, Depends

from app.models.cart import Cart
from app.models.event import Event
from app.models.user import User
from app.services.auth import restrict_to
from app.utils.base import UserRole
from app.utils.base.errors import NotFound


router = APIRouter()

student_only = restrict_to(UserRole.STUDENT.value)


def _cart_output(cart: Cart) -> dict:
    items = [event.to_output() for event in cart.items]
    return {"id": str(cart.id), "items": items, "total_amount": sum(item["price"] for item in items)}


@router.get("")
def get_cart(current_user: User = Depends(student_only)) -> dict:
    """PROTECTED | STUDENT: Current cart with its running total."""
    cart = Cart.for_user(current_user)
    return {"status": "success", "data": _cart_output(cart)}


@router.post("/{event_id}", status_code=201)
def add_to_cart(event_id: str, current_user: User = Depends(student_only)) -> dict:
    """PROTECTED | STUDENT: Add an event to the cart; adding twice is a no-op."""
    event: Event | None = Event.find_by_id(event_id)
    if not event:
        raise NotFound(f"There is no event with the id {event_id}")

    cart = Cart.for_user(current_user)
    Cart.objects(id=cart.id).update_one(add_to_set__items=event)
    cart.reload()
    return {"status": "success", "data": _cart_output(cart)}


@router.delete("/{event_id}")
def remove_from_cart(event_id: str, current_user: User = Depends(student_only)) -> dict:
    """PROTECTED | STUDENT: Remove an event from the cart."""
    cart = Cart.for_user(current_user)
    if event_id not in {str(item.id) for item in cart.items}:
        raise NotFound(f"Event {event_id} is not in the cart")

    cart.items = [item for item in cart.items if str(item.id) != event_id]
    cart.save()
    return {"status": "success", "data": _cart_output(cart)}
