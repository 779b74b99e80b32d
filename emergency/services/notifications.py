"""
Severity-tiered contact notification.

Recipient selection is a pure policy step, separate from delivery, so the
caller can persist the event before anything goes out:

    LIFE_THREATENING  every contact, delivered concurrently
    EMERGENCY         the two lowest rank numbers
    URGENT            the primary contact, else the lowest rank number

Delivery is fire-and-forget: no confirmation, retry or dead-letter handling.
"""

import asyncio
import inspect
from collections import deque
from collections.abc import Awaitable, Callable, Sequence

import structlog

from emergency.config import NotificationConfig
from emergency.domain.models import EmergencyAssessment, EmergencyContact, Notification, Priority
from emergency.services.contacts import ContactRegistry

logger = structlog.get_logger(__name__)

NotificationHandler = Callable[[Notification], Awaitable[None] | None]


def log_notification_handler(notification: Notification) -> None:
    """Default handler: write the notification to the structured log."""
    logger.info(
        "notification_sent",
        patient_id=notification.patient_id,
        contact=notification.contact_name,
        channel=notification.channel.value,
        priority=notification.priority.value,
        message=notification.message,
    )


def build_notification_message(assessment: EmergencyAssessment) -> str:
    categories = ", ".join(c.value for c in assessment.categories)
    first_action = (
        assessment.immediate_actions[0] if assessment.immediate_actions else "Follow protocol"
    )
    ems_note = " EMS has been recommended." if assessment.requires_ems else ""
    return (
        f"[{assessment.highest_priority.value}] Emergency Alert: {categories} emergency detected."
        f" Immediate actions: {first_action}.{ems_note}"
    )


class NotificationDispatcher:
    """Maps assessment priority to a contact fan-out and delivers through handlers."""

    def __init__(
        self,
        contacts: ContactRegistry,
        config: NotificationConfig | None = None,
        handlers: Sequence[NotificationHandler] | None = None,
    ) -> None:
        self.contacts = contacts
        self.config = config or NotificationConfig()
        self.handlers: list[NotificationHandler] = list(handlers or [log_notification_handler])
        self.sent: deque[Notification] = deque(maxlen=1000)
        self.logger = logger.bind(component="notification_dispatcher")

    def select_recipients(self, patient_id: str, priority: Priority) -> list[EmergencyContact]:
        chain = self.contacts.escalation_chain(patient_id)

        if not chain:
            self.logger.warning("no_emergency_contacts", patient_id=patient_id)
            return []

        if priority is Priority.LIFE_THREATENING:
            return chain
        if priority is Priority.EMERGENCY:
            return chain[: self.config.emergency_fanout]

        primary = next((c for c in chain if c.is_primary), chain[0])
        return [primary]

    async def deliver(
        self,
        patient_id: str,
        assessment: EmergencyAssessment,
        recipients: Sequence[EmergencyContact],
    ) -> list[Notification]:
        if not recipients:
            return []

        message = build_notification_message(assessment)
        notifications = [
            Notification(
                patient_id=patient_id,
                contact_id=contact.id,
                contact_name=contact.name,
                channel=contact.notification_preference,
                priority=assessment.highest_priority,
                message=message,
            )
            for contact in recipients
        ]

        if assessment.highest_priority is Priority.LIFE_THREATENING:
            async with asyncio.TaskGroup() as task_group:
                for notification in notifications:
                    task_group.create_task(self._deliver_one(notification))
        else:
            for notification in notifications:
                await self._deliver_one(notification)

        self.logger.info(
            "notifications_dispatched",
            patient_id=patient_id,
            priority=assessment.highest_priority.value,
            recipients=[n.contact_name for n in notifications],
        )
        return notifications

    async def notify(
        self, patient_id: str, assessment: EmergencyAssessment
    ) -> list[Notification]:
        """Select recipients for the assessment's priority and deliver."""
        recipients = self.select_recipients(patient_id, assessment.highest_priority)
        return await self.deliver(patient_id, assessment, recipients)

    async def _deliver_one(self, notification: Notification) -> None:
        for handler in self.handlers:
            try:
                outcome = handler(notification)
                if inspect.isawaitable(outcome):
                    await asyncio.wait_for(
                        outcome, timeout=self.config.delivery_timeout_seconds
                    )
            except TimeoutError:
                self.logger.warning(
                    "notification_delivery_timeout",
                    contact=notification.contact_name,
                    timeout_seconds=self.config.delivery_timeout_seconds,
                )
            except Exception as e:
                self.logger.error(
                    "notification_delivery_failed",
                    error=str(e),
                    contact=notification.contact_name,
                )
        self.sent.append(notification)
