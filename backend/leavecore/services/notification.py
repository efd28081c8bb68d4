# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    """An outbound message about a leave request."""

    recipient_id: uuid.UUID
    recipient_email: str | None
    subject: str
    body: str
    leave_request_id: uuid.UUID


@runtime_checkable
class NotificationSender(Protocol):
    """Fire-and-forget delivery of notifications (email in production)."""

    async def send(self, notification: Notification) -> None:
        """Deliver one notification."""
        ...


class InMemoryNotificationSender:
    """Records notifications instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> None:
        logger.info(
            "Notification to %s: %s", notification.recipient_email or notification.recipient_id, notification.subject
        )
        self.sent.append(notification)


_notification_sender: NotificationSender = InMemoryNotificationSender()


def get_notification_sender() -> NotificationSender:
    """Return the active notification sender."""
    return _notification_sender


def set_notification_sender(sender: NotificationSender) -> None:
    """Override the sender (for testing or production wiring)."""
    global _notification_sender
    _notification_sender = sender


async def notify(notification: Notification) -> bool:
    """Send without letting delivery failures escape. Returns whether it was sent."""
    try:
        await get_notification_sender().send(notification)
    except Exception:
        logger.warning(
            "Failed to send notification for leave request %s", notification.leave_request_id, exc_info=True
        )
        return False
    return True
