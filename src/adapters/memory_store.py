"""
In-memory subscription store.

Implements SubscriptionStorePort with dictionaries guarded by a lock.
Used for local development and tests; state is lost on restart.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

from src.components.subscriptions.models import (
    ConfirmationOutcome,
    NewSubscriber,
    PendingRegistration,
    Subscriber,
    SubscriberEmail,
    SubscriberStatus,
    SubscriptionStoreError,
    SubscriptionToken,
)


class InMemorySubscriptionStore:
    """Thread-safe in-memory implementation of SubscriptionStorePort."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[UUID, Subscriber] = {}
        self._by_email: dict[str, UUID] = {}
        self._tokens: dict[str, SubscriptionToken] = {}

    def create_pending_subscriber(self, new_subscriber: NewSubscriber, token: str) -> UUID:
        with self._lock:
            self._check_token_free("create_pending_subscriber", token)
            if str(new_subscriber.email) in self._by_email:
                raise SubscriptionStoreError(
                    "create_pending_subscriber", "UNIQUE constraint failed: subscriptions.email"
                )
            return self._insert(new_subscriber, token)

    def register_pending(self, new_subscriber: NewSubscriber, token: str) -> PendingRegistration:
        with self._lock:
            existing_id = self._by_email.get(str(new_subscriber.email))
            if existing_id is None:
                self._check_token_free("register_pending", token)
                return PendingRegistration(self._insert(new_subscriber, token))

            existing = self._subscribers[existing_id]
            if existing.status == SubscriberStatus.CONFIRMED:
                return PendingRegistration(existing_id, already_confirmed=True)

            self._check_token_free("register_pending", token)
            self._subscribers[existing_id] = replace(existing, name=new_subscriber.name)
            self._tokens[token] = SubscriptionToken(token=token, subscriber_id=existing_id)
            return PendingRegistration(existing_id)

    def _check_token_free(self, operation: str, token: str) -> None:
        if token in self._tokens:
            raise SubscriptionStoreError(
                operation, "UNIQUE constraint failed: subscription_tokens.subscription_token"
            )

    def _insert(self, new_subscriber: NewSubscriber, token: str) -> UUID:
        subscriber = Subscriber(
            id=uuid4(),
            email=new_subscriber.email,
            name=new_subscriber.name,
            status=SubscriberStatus.PENDING_CONFIRMATION,
        )
        self._subscribers[subscriber.id] = subscriber
        self._by_email[str(subscriber.email)] = subscriber.id
        self._tokens[token] = SubscriptionToken(token=token, subscriber_id=subscriber.id)
        return subscriber.id

    def confirm_by_token(self, token: str) -> ConfirmationOutcome:
        with self._lock:
            issued = self._tokens.get(token)
            if issued is None:
                return ConfirmationOutcome.TOKEN_NOT_FOUND
            subscriber = self._subscribers[issued.subscriber_id]
            if subscriber.status == SubscriberStatus.PENDING_CONFIRMATION:
                self._subscribers[subscriber.id] = replace(
                    subscriber,
                    status=SubscriberStatus.CONFIRMED,
                    confirmed_at=datetime.now(UTC),
                )
            return ConfirmationOutcome.CONFIRMED

    def find_by_email(self, email: SubscriberEmail) -> Subscriber | None:
        with self._lock:
            sid = self._by_email.get(str(email))
            return self._subscribers.get(sid) if sid else None

    def get_subscriber(self, subscriber_id: UUID) -> Subscriber | None:
        with self._lock:
            return self._subscribers.get(subscriber_id)

    def get_subscriber_by_token(self, token: str) -> Subscriber | None:
        with self._lock:
            issued = self._tokens.get(token)
            return self._subscribers.get(issued.subscriber_id) if issued else None

    def list_confirmed(self) -> list[Subscriber]:
        with self._lock:
            return [
                s for s in self._subscribers.values() if s.status == SubscriberStatus.CONFIRMED
            ]

    def count_tokens(self, subscriber_id: UUID) -> int:
        with self._lock:
            return sum(1 for t in self._tokens.values() if t.subscriber_id == subscriber_id)

    def ping(self) -> None:
        return None

    # --- Test Helper Methods ---

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    @property
    def token_count(self) -> int:
        with self._lock:
            return len(self._tokens)
