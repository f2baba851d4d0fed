import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field

from app.models.base import as_utc, plain_id
from app.models.booking import Booking
from app.models.cart import Cart
from app.models.event import Event, EventDay
from app.models.user import User
from app.services.auth import ensure_owner, get_current_user, get_settings, restrict_to, try_get_current_user
from app.services.cache import cache_delete, cache_get_json, cache_set_json
from app.utils.base import UserRole
from app.utils.base.errors import NotFound, ValidationError
from app.utils.config import Settings


router = APIRouter()

logger = logging.getLogger("campus.events")

LATEST_EVENTS_KEY = "events:latest"
SORTABLE_FIELDS = {"name", "date", "price", "category", "created_at"}

club_only = restrict_to(UserRole.CLUB.value)


def _get_event(event_id: str) -> Event:
    event: Event | None = Event.find_by_id(event_id)
    if not event:
        raise NotFound(f"There is no event with the id {event_id}")
    return event


def _get_day(event: Event, day_id: str) -> EventDay:
    day = event.find_day(day_id)
    if not day:
        raise NotFound(f"There is no event day with the id {day_id}")
    return day


def _ensure_not_past(value: datetime, message: str) -> None:
    if as_utc(value) < datetime.now(timezone.utc):
        raise ValidationError(message)


def _sort_keys(sort: str) -> list[str]:
    keys = [key.strip() for key in sort.split(",") if key.strip()]
    for key in keys:
        if key.lstrip("-") not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort events by '{key}'")
    return keys


@router.get("/latest")
def list_latest_events(
    viewer: User | None = Depends(try_get_current_user),
    settings: Settings = Depends(get_settings),
) -> dict:
    """PUBLIC: Upcoming events, soonest first, flagged with the viewer's registrations."""
    events = cache_get_json(LATEST_EVENTS_KEY)
    if events is None:
        events = [e.to_output() for e in Event.latest()]
        cache_set_json(LATEST_EVENTS_KEY, events, ttl_seconds=settings.cache_ttl_seconds)

    # Personalization only; anonymous viewers get the plain list
    if viewer:
        registered = {plain_id(b._data.get("event")) for b in Booking.objects(registered_users=viewer)}
        for event in events:
            event["registered"] = event["id"] in registered

    return {"status": "success", "data": events}


@router.get("")
def list_events(
    current_user: User = Depends(get_current_user),
    category: str | None = None,
    sort: str = "-created_at",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> dict:
    """PROTECTED: List events; clubs only see their own."""
    filters: dict = {}
    if current_user.role == UserRole.CLUB.value:
        filters["club"] = current_user
    if category:
        filters["category"] = category

    events = Event.objects(**filters).order_by(*_sort_keys(sort)).skip((page - 1) * limit).limit(limit)
    data = [e.to_output() for e in events]
    return {"status": "success", "results": len(data), "data": data}


@router.get("/{event_id}")
def get_event(event_id: str, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Single event with its club; clubs may only read their own."""
    event = _get_event(event_id)
    if current_user.role == UserRole.CLUB.value:
        ensure_owner(current_user, event.club_id)
    return {"status": "success", "data": event.to_output(expand_club=True)}


class EventBody(BaseModel):
    name: str
    description: str | None = None
    category: str | None = None
    venue: str | None = None
    date: datetime
    price: float = Field(0, ge=0)
    capacity: int | None = Field(None, ge=1)

@router.post("", status_code=201)
def create_event(body: EventBody, current_user: User = Depends(club_only)) -> dict:
    """PROTECTED | CLUB: Create an event owned by the caller, with its empty booking list."""
    _ensure_not_past(body.date, "Cannot create an event for a day in the past")

    event = Event(**body.model_dump(), club=current_user)
    event.save()
    Booking(event=event).save()
    cache_delete(LATEST_EVENTS_KEY)

    logger.info("Club %s created event %s", current_user.id, event.id)
    return {"status": "success", "data": event.to_output()}


class EventUpdateBody(BaseModel):
    name: str | None = None
    description: str | None = None
    category: str | None = None
    venue: str | None = None
    date: datetime | None = None
    price: float | None = Field(None, ge=0)
    capacity: int | None = Field(None, ge=1)

@router.patch("/{event_id}")
def update_event(event_id: str, body: EventUpdateBody, current_user: User = Depends(club_only)) -> dict:
    """PROTECTED | CLUB | OWNER: Update event fields; days have their own routes."""
    event = _get_event(event_id)
    ensure_owner(current_user, event.club_id)

    updates = body.model_dump(exclude_unset=True)
    if updates.get("date") is not None:
        _ensure_not_past(updates["date"], "Cannot move an event to a day in the past")
    for field, value in updates.items():
        if value is None and field in ("name", "date", "price"):
            raise ValidationError(f"Event {field} cannot be empty")
        setattr(event, field, value)
    event.save()
    cache_delete(LATEST_EVENTS_KEY)

    return {"status": "success", "data": event.to_output()}


@router.delete("/{event_id}", status_code=204)
def delete_event(event_id: str, current_user: User = Depends(club_only)) -> Response:
    """PROTECTED | CLUB | OWNER: Delete an event along with its bookings and cart entries."""
    event = _get_event(event_id)
    ensure_owner(current_user, event.club_id)

    Booking.objects(event=event).delete()
    Cart.objects(items=event).update(pull__items=event)
    event.delete()
    cache_delete(LATEST_EVENTS_KEY)

    logger.info("Club %s deleted event %s", current_user.id, event_id)
    return Response(status_code=204)


@router.get("/{event_id}/days")
def list_event_days(event_id: str, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: All days of an event."""
    event = _get_event(event_id)
    return {"status": "success", "data": [day.to_output() for day in event.days]}


@router.get("/{event_id}/days/{day_id}")
def get_event_day(event_id: str, day_id: str, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: A single day of an event."""
    event = _get_event(event_id)
    return {"status": "success", "data": _get_day(event, day_id).to_output()}


class EventDayBody(BaseModel):
    date: datetime
    start_time: str | None = None
    end_time: str | None = None
    venue: str | None = None
    description: str | None = None

@router.post("/{event_id}/days", status_code=201)
def create_event_day(event_id: str, body: EventDayBody, current_user: User = Depends(club_only)) -> dict:
    """PROTECTED | CLUB | OWNER: Append a day to an event."""
    _ensure_not_past(body.date, "Cannot create an event day in the past")
    event = _get_event(event_id)
    ensure_owner(current_user, event.club_id)

    event.days.append(EventDay(**body.model_dump()))
    event.save()
    cache_delete(LATEST_EVENTS_KEY)

    return {"status": "success", "data": event.to_output()}


class EventDayUpdateBody(BaseModel):
    date: datetime | None = None
    start_time: str | None = None
    end_time: str | None = None
    venue: str | None = None
    description: str | None = None

@router.patch("/{event_id}/days/{day_id}")
def update_event_day(
    event_id: str,
    day_id: str,
    body: EventDayUpdateBody,
    current_user: User = Depends(club_only),
) -> dict:
    """PROTECTED | CLUB | OWNER: Update one day of an event."""
    event = _get_event(event_id)
    ensure_owner(current_user, event.club_id)
    day = _get_day(event, day_id)

    updates = body.model_dump(exclude_unset=True)
    if "date" in updates:
        if updates["date"] is None:
            raise ValidationError("Event day date cannot be empty")
        _ensure_not_past(updates["date"], "Cannot move an event day to the past")
    for field, value in updates.items():
        setattr(day, field, value)
    event.save()
    cache_delete(LATEST_EVENTS_KEY)

    return {"status": "success", "data": event.to_output()}


@router.delete("/{event_id}/days/{day_id}", status_code=204)
def delete_event_day(event_id: str, day_id: str, current_user: User = Depends(club_only)) -> Response:
    """PROTECTED | CLUB | OWNER: Remove one day from an event."""
    event = _get_event(event_id)
    ensure_owner(current_user, event.club_id)
    day = _get_day(event, day_id)

    event.days.remove(day)
    event.save()
    cache_delete(LATEST_EVENTS_KEY)

    return Response(status_code=204)
