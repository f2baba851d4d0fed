from mongoengine import ListField, ReferenceField

from app.models.base import BaseDocument
from app.models.event import Event
from app.models.user import User


class Booking(BaseDocument):
    """Registrations for a single event.

    Fields:
    - event (Ref[Event], unique)
    - registered_users (list[Ref[User]])
    """
    event = ReferenceField(document_type=Event, required=True, null=False, unique=True)
    registered_users = ListField(ReferenceField(document_type=User), default=list)

    meta = {
        "collection": "bookings",
        "indexes": [
            {"fields": ["registered_users"]},
        ],
    }
