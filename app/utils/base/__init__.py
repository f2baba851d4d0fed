from app.utils.base.enums import BaseEnum, OrderStatus, UserRole

__all__ = ["BaseEnum", "OrderStatus", "UserRole"]
