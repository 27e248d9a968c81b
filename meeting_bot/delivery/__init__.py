# FilePath: "/meeting_bot/delivery/__init__.py"
# Description: Delivery clients and the Notifier fan-out.

from .client import (
    DeliveryClient,
    DeliveryResult,
    HttpDeliveryClient,
    StreamConnectionPool,
    StreamDeliveryClient,
)
from .notifier import Notifier, RetryPolicy

__all__ = [
    "DeliveryClient",
    "DeliveryResult",
    "HttpDeliveryClient",
    "StreamConnectionPool",
    "StreamDeliveryClient",
    "Notifier",
    "RetryPolicy",
]
