from mongoengine import ListField, ReferenceField

from app.models.base import BaseDocument
from app.models.event import Event
from app.models.user import User


class Cart(BaseDocument):
    """A student's cart of events pending payment.

    Fields:
    - user (Ref[User], unique)
    - items (list[Ref[Event]])
    """
    user = ReferenceField(document_type=User, required=True, null=False, unique=True)
    items = ListField(ReferenceField(document_type=Event), default=list)

    meta = {
        "collection": "carts",
    }

    @classmethod
    def for_user(cls, user: User) -> "Cart":
        cart = cls.objects(user=user).first()
        if not cart:
            cart = cls(user=user)
            cart.save()
        return cart
