"""
Subscriptions component ports.

Protocol interfaces for the subscription workflow dependencies.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.components.subscriptions.models import (
    ConfirmationOutcome,
    NewSubscriber,
    PendingRegistration,
    Subscriber,
    SubscriberEmail,
)
from src.core.ports.email import EmailResult


class SubscriptionStorePort(Protocol):
    """
    Transactional subscription store.

    Every write operation is atomic: it commits completely or leaves no
    trace. Failures of the backing store raise SubscriptionStoreError.
    """

    def create_pending_subscriber(self, new_subscriber: NewSubscriber, token: str) -> UUID:
        """
        Insert a pending subscriber and its confirmation token together.

        Args:
            new_subscriber: Validated identity
            token: Freshly generated confirmation token

        Returns:
            The new subscriber's ID

        Raises:
            SubscriptionStoreError: If either insert fails (nothing persists)
        """
        ...

    def register_pending(
        self, new_subscriber: NewSubscriber, token: str
    ) -> PendingRegistration:
        """
        Record a registration for an identity in one transaction.

        - Unknown email: insert a pending subscriber together with the token
        - Pending subscriber: store the submitted name and add the token
        - Confirmed subscriber: write nothing, report already_confirmed

        The lookup and the writes share the transaction, so simultaneous
        submissions of the same email never collide on the email column.

        Raises:
            SubscriptionStoreError: If the transaction fails (nothing persists)
        """
        ...

    def confirm_by_token(self, token: str) -> ConfirmationOutcome:
        """
        Resolve a token and confirm its subscriber.

        Idempotent: a token whose subscriber is already confirmed yields
        CONFIRMED again without writing.

        Raises:
            SubscriptionStoreError: On backing store failure
        """
        ...

    def find_by_email(self, email: SubscriberEmail) -> Subscriber | None:
        """Get subscriber registered with this email, if any."""
        ...

    def get_subscriber(self, subscriber_id: UUID) -> Subscriber | None:
        """Get subscriber by ID."""
        ...

    def get_subscriber_by_token(self, token: str) -> Subscriber | None:
        """Get the subscriber owning a confirmation token."""
        ...

    def list_confirmed(self) -> list[Subscriber]:
        """List subscribers eligible to receive newsletters."""
        ...

    def count_tokens(self, subscriber_id: UUID) -> int:
        """Count confirmation tokens issued to a subscriber."""
        ...

    def ping(self) -> None:
        """Raise SubscriptionStoreError if the store is unreachable."""
        ...


class ConfirmationEmailSenderPort(Protocol):
    """Sends transactional emails for the subscription flow."""

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        ...
