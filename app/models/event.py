from datetime import datetime, timezone

from bson.objectid import ObjectId
from mongoengine import (
    DateTimeField,
    EmbeddedDocumentListField,
    FloatField,
    IntField,
    ObjectIdField,
    ReferenceField,
    StringField,
)

from app.models.base import BaseDocument, BaseEmbeddedDocument, plain_id
from app.models.user import User


class EventDay(BaseEmbeddedDocument):
    """Embedded: one scheduled day of an event.

    Fields:
    - id (ObjectId): addressable within the parent event
    - date (datetime)
    - start_time/end_time (str|None): e.g. "10:00"
    - venue/description (str|None)
    """
    id = ObjectIdField(required=True, default=ObjectId)
    date = DateTimeField(required=True, null=False)
    start_time = StringField(required=False, null=True)
    end_time = StringField(required=False, null=True)
    venue = StringField(required=False, null=True)
    description = StringField(required=False, null=True)


class Event(BaseDocument):
    """Event document, owned by the club user that created it.

    Fields:
    - name/description/category/venue (str)
    - date (datetime): first day of the event
    - price (float), capacity (int|None)
    - club (Ref[User]): owning club
    - days (list[EventDay])
    """
    name = StringField(required=True, null=False)
    description = StringField(required=False, null=True)
    category = StringField(required=False, null=True)
    venue = StringField(required=False, null=True)
    date = DateTimeField(required=True, null=False)
    price = FloatField(required=True, null=False, default=0, min_value=0)
    capacity = IntField(required=False, null=True, min_value=1)
    club = ReferenceField(document_type=User, required=True, null=False)
    days = EmbeddedDocumentListField(EventDay, default=list)

    meta = {
        "collection": "events",
        "indexes": [
            {"fields": ["club"]},
            {"fields": ["date"]},
        ],
    }

    @classmethod
    def latest(cls, limit: int = 6) -> list["Event"]:
        """Upcoming events, soonest first."""
        # Naive UTC compares the same way against aware and naive stored values
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        return list(cls.objects(date__gte=now).order_by("date").limit(limit))

    @property
    def club_id(self) -> str | None:
        return plain_id(self._data.get("club"))

    def find_day(self, day_id: str) -> EventDay | None:
        for day in self.days:
            if str(day.id) == day_id:
                return day
        return None

    def to_output(self, fields=None, exclude=None, expand_club: bool = False):
        exclude = list(exclude or []) + ["club"]
        data = super().to_output(fields=fields, exclude=exclude)
        if expand_club:
            club = self.club
            data["club"] = {"id": str(club.id), "name": club.name, "email": club.email, "avatar": club.avatar}
        else:
            data["club"] = self.club_id
        return data
