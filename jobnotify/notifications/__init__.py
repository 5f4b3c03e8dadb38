"""Subscriber notifications: push channel, message templates, view artifacts and
the delivery worker that drains the delivery queue.
"""

from .channel import LineNotifyChannel, NotifyChannel
from .models import (
    DeliveryOutcome,
    DeliveryStatus,
    MessageLinks,
    NotificationError,
    NotificationTemplateError,
    NotifyAuthError,
    NotifyTransientError,
)
from .payloads import describe_condition
from .service import DeliveryWorker
from .templates import MessageRenderer
from .views import ViewArtifactStore, load_view

__all__ = [
    "DeliveryWorker",
    "DeliveryOutcome",
    "DeliveryStatus",
    "MessageLinks",
    "NotifyChannel",
    "LineNotifyChannel",
    "MessageRenderer",
    "ViewArtifactStore",
    "describe_condition",
    "load_view",
    "NotificationError",
    "NotifyAuthError",
    "NotifyTransientError",
    "NotificationTemplateError",
]
