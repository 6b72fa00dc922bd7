from app.models.enums import Channel, PaymentStatus, WebhookLogStatus
from app.models.order import Base, Order, OrderStatus, WebhookLog

__all__ = [
    "Base",
    "Order",
    "OrderStatus",
    "WebhookLog",
    "Channel",
    "PaymentStatus",
    "WebhookLogStatus",
]
