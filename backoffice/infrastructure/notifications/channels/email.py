# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel using async SMTP.

This channel sends plain text email through aiosmtplib. It is configured
from SMTPSettings (SMTP_* environment variables); while the settings are
incomplete every send is skipped with a warning logged once.
"""

from email.message import EmailMessage
from email.utils import formataddr, make_msgid

import aiosmtplib

from backoffice.core.config.settings import SMTPSettings
from backoffice.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)


class EmailChannel(BaseChannel):
    """Email notification channel using async SMTP."""

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the email channel.

        Args:
            settings: SMTP server settings.
        """
        super().__init__()
        self.settings = settings
        self._warned_unconfigured = False

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send email notification via SMTP.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self.settings.is_configured:
            if not self._warned_unconfigured:
                self.logger.warning(
                    "Email notifications disabled: SMTP_HOST, SMTP_USERNAME, "
                    "SMTP_PASSWORD, or SMTP_FROM_EMAIL not set"
                )
                self._warned_unconfigured = True
            return self.create_skipped_result("Email channel not configured")

        if not payload.recipient_email:
            return self.create_skipped_result("No recipient email address")

        message = self.build_message(payload)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.host,
                port=self.settings.port,
                username=self.settings.username,
                password=self.settings.password.get_secret_value(),
                start_tls=self.settings.use_tls,
                timeout=self.settings.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            self.logger.warning(
                "Failed to send email to %s: %s",
                payload.recipient_email,
                str(e),
            )
            return self.create_failure_result(f"SMTP error: {e}")

        self.logger.info("Email sent to %s: %s", payload.recipient_email, payload.subject)
        return self.create_success_result(message_id=message["Message-ID"])

    def build_message(self, payload: NotificationPayload) -> EmailMessage:
        """Build the MIME message for a payload.

        Args:
            payload: Notification payload.

        Returns:
            EmailMessage ready to send.
        """
        message = EmailMessage()
        message["From"] = formataddr((self.settings.from_name, self.settings.from_email or ""))
        message["To"] = payload.recipient_email
        message["Subject"] = payload.subject
        message["Message-ID"] = make_msgid()
        message.set_content(payload.body)
        return message
