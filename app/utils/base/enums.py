from enum import Enum


class BaseEnum(Enum):
    @classmethod
    def choices(cls):
        return [(item.value, item.name) for item in cls]


class UserRole(BaseEnum):
    STUDENT = "student"
    CLUB = "club"
    ADMIN = "admin"


class OrderStatus(BaseEnum):
    CREATED = "created"
    CAPTURED = "captured"
    FAILED = "failed"
