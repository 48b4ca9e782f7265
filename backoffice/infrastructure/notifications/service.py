# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fire-and-forget notification dispatch.

Domain services call ``dispatch()`` after their transaction commits.
Dispatch renders the template and schedules delivery as a background task,
then returns immediately. Delivery is retried a bounded number of times;
a message that still fails is logged and dropped. Nothing here ever
raises into the caller.

Example:
    notifier = NotificationService(settings)
    notifier.dispatch(
        "ana@example.com",
        NotificationTemplate.ENROLLMENT_CONFIRMED,
        {"student_name": "Ana", "class_name": "Turma A", "matricula": "20250001"},
    )
    ...
    await notifier.drain()  # at shutdown
"""

import asyncio
import logging
from typing import Any, Protocol

from backoffice.core.config.settings import Settings
from backoffice.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    DeliveryStatus,
    EmailChannel,
    NotificationPayload,
)
from backoffice.infrastructure.notifications.templates import NotificationTemplate, render

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    """What domain services need from a notifier."""

    def dispatch(
        self,
        recipient: str | None,
        template: NotificationTemplate | str,
        data: dict[str, Any],
    ) -> None:
        """Schedule a message; must not block or raise."""
        ...


class NotificationService:
    """Notification dispatcher delivering email in background tasks.

    Attributes:
        channel: Delivery channel.
        max_retries: Delivery attempts per message.
        retry_delay: Seconds between attempts.
    """

    def __init__(
        self,
        settings: Settings,
        channel: BaseChannel | None = None,
    ) -> None:
        """Initialize the notification service.

        Args:
            settings: Application settings (notification and SMTP sections).
            channel: Delivery channel; defaults to SMTP email.
        """
        self.enabled = settings.notification.enabled
        self.max_retries = settings.notification.max_retries
        self.retry_delay = settings.notification.retry_delay
        self.channel = channel or EmailChannel(settings.smtp)
        self._tasks: set[asyncio.Task[ChannelResult | None]] = set()

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._tasks)

    def dispatch(
        self,
        recipient: str | None,
        template: NotificationTemplate | str,
        data: dict[str, Any],
    ) -> None:
        """Render a message and schedule its delivery.

        Args:
            recipient: Destination email address; None skips the message.
            template: Template key.
            data: Template values.
        """
        if not self.enabled:
            logger.debug("Notifications disabled, dropping %s", template)
            return

        if not recipient:
            logger.debug("No recipient for %s, skipping", template)
            return

        try:
            subject, body = render(template, data)
        except (KeyError, ValueError) as e:
            logger.error("Failed to render notification %s: %s", template, str(e))
            return

        payload = NotificationPayload(
            template=NotificationTemplate(template).value,
            recipient_email=recipient,
            subject=subject,
            body=body,
            data=data,
        )

        try:
            task = asyncio.get_running_loop().create_task(self._deliver(payload))
        except RuntimeError:
            logger.error(
                "No running event loop, dropping notification %s to %s",
                payload.template,
                recipient,
            )
            return

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def send_now(self, payload: NotificationPayload) -> ChannelResult | None:
        """Deliver a payload in the foreground with the same retry policy."""
        return await self._deliver(payload)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight deliveries to finish.

        Args:
            timeout: Maximum seconds to wait; remaining tasks are cancelled.
        """
        if not self._tasks:
            return

        tasks = list(self._tasks)
        _, still_pending = await asyncio.wait(tasks, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            await asyncio.gather(*still_pending, return_exceptions=True)
            logger.warning("Cancelled %d undelivered notification(s)", len(still_pending))

    async def _deliver(self, payload: NotificationPayload) -> ChannelResult | None:
        """Send a payload, retrying transport failures.

        Returns:
            The last channel result, or None if the channel raised.
        """
        result: ChannelResult | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                result = await self.channel.send(payload)
            except Exception as e:
                logger.error(
                    "Channel error sending %s to %s (attempt %d/%d): %s",
                    payload.template,
                    payload.recipient_email,
                    attempt,
                    self.max_retries,
                    str(e),
                    exc_info=True,
                )
                result = None
            else:
                if result.status == DeliveryStatus.SENT:
                    return result
                if not result.is_retryable:
                    logger.info(
                        "Notification %s to %s skipped: %s",
                        payload.template,
                        payload.recipient_email,
                        result.error_message,
                    )
                    return result

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay)

        logger.error(
            "Dropping notification %s to %s after %d attempts",
            payload.template,
            payload.recipient_email,
            self.max_retries,
        )
        return result
