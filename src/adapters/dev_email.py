"""
Dev Email Adapter.

Logs emails instead of sending them. Used for local development and tests.

Key behaviors:
- Returns SKIPPED status (not SENT)
- Keeps every email in memory so tests can read the confirmation link
- fail_with switches it into a failing mode to exercise delivery errors
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from src.core.ports.email import EmailResult, EmailStatus

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """
    Dev email adapter that logs instead of sending.

    Implements EmailPort protocol.
    """

    sent_emails: list[SentEmail] = field(default_factory=list)
    fail_with: str | None = None  # When set, every send fails with this error

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        message_id = f"dev-{uuid4().hex[:12]}"

        # Failed attempts are recorded too
        self.sent_emails.append(
            SentEmail(
                id=message_id,
                recipient=recipient,
                subject=subject,
                body_html=body_html,
                body_text=body_text or "",
                logged_at=datetime.now(UTC),
            )
        )

        if self.fail_with is not None:
            logger.warning("EMAIL (dev): simulated failure for To=%s: %s", recipient, self.fail_with)
            return EmailResult.failed(recipient, self.fail_with)

        # Body carries the confirmation link
        logger.info(
            "EMAIL (dev): To=%s, Subject=%s, MessageID=%s\n%s",
            recipient,
            subject,
            message_id,
            body_text or body_html,
        )
        return EmailResult(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            error="Dev mode - email logged, not sent",
        )

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        """Get the most recently logged email."""
        return self.sent_emails[-1] if self.sent_emails else None

    @property
    def email_count(self) -> int:
        """Get the number of logged emails."""
        return len(self.sent_emails)
