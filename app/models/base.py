from datetime import datetime, timezone
from typing import Any
from bson.dbref import DBRef
from bson.objectid import ObjectId
from mongoengine import Document, DictField, DateTimeField, EmbeddedDocument


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes coming back from the store."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class BaseDocumentMixin:
    # Never serialized, whatever `fields` asks for
    private_fields: tuple[str, ...] = ()

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, Document):
            return value.to_output() if hasattr(value, "to_output") else str(value.id)
        elif isinstance(value, EmbeddedDocument):
            if hasattr(value, "to_output"):
                return value.to_output()
            value = {k: self._sanitize_value(getattr(value, k)) for k in value._fields}
        if isinstance(value, list):
            return [self._sanitize_value(v) for v in value]
        if isinstance(value, dict):
            return {k: self._sanitize_value(v) for k, v in value.items()}
        if isinstance(value, datetime):
            return as_utc(value).isoformat()
        if isinstance(value, ObjectId):
            return str(value)
        # Reference whose target was deleted
        if isinstance(value, DBRef):
            return str(value.id)
        return value

    def to_output(self, fields=None, exclude=None):
        data: dict[str, Any] = {}
        exclude = set(exclude or []) | set(self.private_fields)
        fields = fields or self._fields.keys()

        for field in fields:
            if field in exclude or field == "id":
                continue
            value = getattr(self, field)
            data[field] = self._sanitize_value(value)

        data["id"] = str(self.id)
        return data


class BaseEmbeddedDocument(EmbeddedDocument, BaseDocumentMixin):
    meta = {
        "abstract": True,
    }


class BaseDocument(Document, BaseDocumentMixin):
    metadata = DictField(default=dict, null=False)
    created_at = DateTimeField(default=lambda: datetime.now(timezone.utc), null=False)
    updated_at = DateTimeField(default=lambda: datetime.now(timezone.utc), null=False)

    meta = {
        "abstract": True,
    }

    def save(self, *args, **kwargs):
        self.updated_at = datetime.now(timezone.utc)
        return super().save(*args, **kwargs)

    @classmethod
    def find_by_id(cls, object_id: Any):
        """Fetch by primary key; malformed ids resolve to None like missing ones."""
        if object_id is None or not ObjectId.is_valid(str(object_id)):
            return None
        return cls.objects(id=object_id).first()


def plain_id(ref: Any) -> str | None:
    """Collapse a populated document, DBRef, ObjectId or string into one id string."""
    if ref is None:
        return None
    if isinstance(ref, Document):
        return str(ref.pk)
    if isinstance(ref, DBRef):
        return str(ref.id)
    return str(ref)
