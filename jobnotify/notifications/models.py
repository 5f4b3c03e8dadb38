"""Exceptions and result types for message delivery."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification failures."""


class NotifyAuthError(NotificationError):
    """The channel rejected the credential; the subscriber revoked access."""


class NotifyTransientError(NotificationError):
    """Network failure, timeout or unexpected channel status. Safe to retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotificationTemplateError(NotificationError):
    """A message template is missing or failed to render."""


class DeliveryStatus(str, Enum):
    """Per-job states observed by the batch handler.

    Pending and InFlight live in the queue; a handled job ends up in one of these.
    """

    DELIVERED = "delivered"
    RETRYING = "retrying"
    REVOKED = "revoked"
    DEAD = "dead"


@dataclass(frozen=True)
class MessageLinks:
    """URLs embedded in summary and confirmation messages."""

    view_base_url: str
    settings_url: str
    unsubscribe_url: str

    def view_url(self, view_id: str) -> str:
        return f"{self.view_base_url.rstrip('/')}/view/{view_id}"


@dataclass
class DeliveryOutcome:
    """Result of handling one queued delivery job.

    Attributes:
        message_id: Queue message id
        subscription_id: Subscriber the job belongs to
        status: Terminal or retry state reached
        attempts: Attempt number this outcome belongs to
        messages_sent: Channel messages sent during this attempt
        view_id: View artifact created for the match set, if any
        error: Error text for non-delivered outcomes
    """

    message_id: str
    subscription_id: str
    status: DeliveryStatus
    attempts: int
    messages_sent: int = 0
    view_id: Optional[str] = None
    error: Optional[str] = None
