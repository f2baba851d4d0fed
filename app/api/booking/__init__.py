from fastapi import APIRouter, Depends

from app.models.booking import Booking
from app.models.event import Event
from app.models.user import User
from app.services.auth import ensure_owner, get_current_user, restrict_to
from app.utils.base import UserRole
from app.utils.base.errors import NotFound


router = APIRouter()


@router.get("/me")
def list_my_bookings(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Events the caller is registered for."""
    bookings = Booking.objects(registered_users=current_user)
    events = [booking.event.to_output() for booking in bookings]
    return {"status": "success", "results": len(events), "data": events}


@router.get("/{event_id}")
def list_event_bookings(
    event_id: str,
    current_user: User = Depends(restrict_to(UserRole.CLUB.value)),
) -> dict:
    """PROTECTED | CLUB | OWNER: Users registered for one of the caller's events."""
    event: Event | None = Event.find_by_id(event_id)
    if not event:
        raise NotFound(f"There is no event with the id {event_id}")
    ensure_owner(current_user, event.club_id)

    booking: Booking | None = Booking.objects(event=event).first()
    users = [user.to_output() for user in booking.registered_users] if booking else []
    return {"status": "success", "results": len(users), "data": {"event": event.to_output(), "registered_users": users}}
