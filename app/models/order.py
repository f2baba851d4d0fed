from mongoengine import FloatField, ListField, ReferenceField, StringField

from app.models.base import BaseDocument
from app.models.event import Event
from app.models.user import User
from app.utils.base import OrderStatus


class Order(BaseDocument):
    """Payment order built from a cart.

    Fields:
    - internal_order_id (str, unique)
    - user (Ref[User])
    - order_items (list[Ref[Event]]): at least one event
    - total_amount (float)
    - gateway_order_id (str): id issued by the payment gateway
    - status (str): created/captured/failed
    """
    internal_order_id = StringField(required=True, null=False, unique=True)
    user = ReferenceField(document_type=User, required=True, null=False)
    order_items = ListField(ReferenceField(document_type=Event), required=True)
    total_amount = FloatField(required=True, null=False, min_value=0)
    gateway_order_id = StringField(required=True, null=False)
    status = StringField(required=True, null=False, choices=OrderStatus.choices(), default=OrderStatus.CREATED.value)

    meta = {
        "collection": "orders",
        "indexes": [
            {"fields": ["user", "-created_at"]},
        ],
    }
