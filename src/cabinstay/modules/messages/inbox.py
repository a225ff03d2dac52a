"""Signed-in guests write to the admin; the admin replies from the inbox."""

from __future__ import annotations

import logging

from cabinstay.auth import Identity, require_admin
from cabinstay.database import utcnow
from cabinstay.errors import NotFoundError, ValidationError
from cabinstay.events import Event, EventBus, EventType, event_bus
from cabinstay.models.booking import canonical_reference
from cabinstay.models.message import UserMessage
from cabinstay.repositories.base import UserMessageRepository

logger = logging.getLogger(__name__)

UNREAD = "unread"
REPLIED = "replied"


class GuestInbox:
    def __init__(self, messages: UserMessageRepository, *, bus: EventBus | None = None) -> None:
        self._messages = messages
        self._bus = bus or event_bus

    def contact_admin(
        self,
        *,
        message: str | None,
        user_email: str | None,
        user_name: str | None = None,
        user_id: int | None = None,
        booking_reference: str | None = None,
    ) -> UserMessage:
        if not message or not message.strip() or not user_email or not user_email.strip():
            raise ValidationError("Message and email are required")

        stored = self._messages.add(UserMessage(
            user_id=user_id,
            user_name=user_name or None,
            user_email=user_email.strip().lower(),
            booking_reference=canonical_reference(booking_reference) if booking_reference else None,
            message=message.strip(),
            status=UNREAD,
        ))
        logger.info("Message %s received from %s", stored.id, stored.user_email)
        self._bus.publish(Event(
            event_type=EventType.USER_MESSAGE_RECEIVED,
            data={"message_id": stored.id, "user_email": stored.user_email},
        ))
        return stored

    def reply(self, identity: Identity | None, message_id: int | None, reply_text: str | None) -> UserMessage:
        """Record the admin's answer; delivery to the guest is left to subscribers."""
        require_admin(identity)
        if not message_id or not reply_text or not reply_text.strip():
            raise ValidationError("Message ID and reply are required")

        message = self._messages.mark_replied(message_id, reply_text.strip(), utcnow())
        if message is None:
            raise NotFoundError("Message not found")

        logger.info("Admin %s replied to message %s", identity.email, message_id)
        self._bus.publish(Event(
            event_type=EventType.ADMIN_REPLY_SENT,
            data={"message_id": message_id, "user_email": message.user_email},
        ))
        return message

    def list_messages(self, identity: Identity | None) -> list[UserMessage]:
        require_admin(identity)
        return self._messages.list_all()
