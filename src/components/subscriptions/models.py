"""
Subscriptions component models.

Data models for double opt-in subscriber registration and confirmation.

State machine (Subscriber): pending_confirmation → confirmed
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

# --- Identity Constraints ---

# RFC 5322 simplified
EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

MAX_EMAIL_LENGTH = 254
MAX_NAME_LENGTH = 256

# Characters that would break out of the HTML email body or a path
FORBIDDEN_NAME_CHARACTERS: frozenset[str] = frozenset('/()"<>\\{}')

# Shared by link generation and the confirmation endpoint
CONFIRMATION_PATH = "/subscriptions/confirm"
TOKEN_QUERY_PARAMETER = "subscription_token"

TOKEN_LENGTH = 25


# --- Error Types ---


class SubscriptionError(Exception):
    """Base subscription error."""

    pass


class SubscriptionValidationError(SubscriptionError):
    """Submitted name or email failed validation."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class SubscriptionStoreError(SubscriptionError):
    """The backing store failed while running an operation."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store operation '{operation}' failed: {reason}")


class EmailDeliveryError(SubscriptionError):
    """The confirmation email could not be handed to the email provider."""

    def __init__(self, recipient: str, reason: str) -> None:
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Failed to send confirmation email to {recipient}: {reason}")


class TokenNotFoundError(SubscriptionError):
    """Confirmation token matches no issued token."""

    def __init__(self) -> None:
        super().__init__("Confirmation token not found")


# --- Validated Identity ---


@dataclass(frozen=True)
class SubscriberEmail:
    """
    Validated subscriber email address.

    Validation runs on construction, so every instance holds a
    syntactically plausible address.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise SubscriptionValidationError("email", "email address is required")
        if len(self.value) > MAX_EMAIL_LENGTH:
            raise SubscriptionValidationError("email", "email address is too long")
        if not EMAIL_REGEX.fullmatch(self.value):
            raise SubscriptionValidationError(
                "email", f"'{self.value}' is not a valid email address"
            )

    @classmethod
    def parse(cls, raw: str | None) -> SubscriberEmail:
        return cls((raw or "").strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberName:
    """
    Validated subscriber name.

    Non-empty, at most MAX_NAME_LENGTH characters, and free of control
    characters and FORBIDDEN_NAME_CHARACTERS.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise SubscriptionValidationError("name", "name is required")
        if len(self.value) > MAX_NAME_LENGTH:
            raise SubscriptionValidationError(
                "name", f"name must be at most {MAX_NAME_LENGTH} characters"
            )
        for char in self.value:
            if char in FORBIDDEN_NAME_CHARACTERS or unicodedata.category(char) == "Cc":
                raise SubscriptionValidationError("name", "name contains a forbidden character")

    @classmethod
    def parse(cls, raw: str | None) -> SubscriberName:
        return cls(raw or "")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NewSubscriber:
    """A validated identity ready to be persisted."""

    email: SubscriberEmail
    name: SubscriberName


# --- State Machine ---


class SubscriberStatus(Enum):
    """
    Subscriber confirmation status.

    State transitions:
    - pending_confirmation → confirmed (via confirmation link)
    """

    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


VALID_TRANSITIONS: dict[SubscriberStatus, set[SubscriberStatus]] = {
    SubscriberStatus.PENDING_CONFIRMATION: {SubscriberStatus.CONFIRMED},
    SubscriberStatus.CONFIRMED: set(),  # Terminal state
}


def can_transition(from_status: SubscriberStatus, to_status: SubscriberStatus) -> bool:
    """Check if a subscriber status transition is allowed."""
    return to_status in VALID_TRANSITIONS.get(from_status, set())


# --- Entities ---


@dataclass
class Subscriber:
    """Persisted subscriber record."""

    id: UUID
    email: SubscriberEmail
    name: SubscriberName
    status: SubscriberStatus = SubscriberStatus.PENDING_CONFIRMATION
    subscribed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    confirmed_at: datetime | None = None


@dataclass(frozen=True)
class SubscriptionToken:
    """Single-use confirmation token owned by one subscriber."""

    token: str
    subscriber_id: UUID
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ConfirmationOutcome(Enum):
    """Result of resolving a token at the store."""

    CONFIRMED = "confirmed"  # Transitioned now, or already confirmed
    TOKEN_NOT_FOUND = "token_not_found"


@dataclass(frozen=True)
class PendingRegistration:
    """Result of registering an identity at the store."""

    subscriber_id: UUID
    already_confirmed: bool = False  # True means nothing was written


# --- Input Models ---


@dataclass(frozen=True)
class RegisterInput:
    """Raw subscription form fields, as submitted."""

    name: str | None
    email: str | None


@dataclass(frozen=True)
class ConfirmInput:
    """Token taken from the confirmation link query string."""

    token: str | None


# --- Output Models ---


class RegistrationStatus(Enum):
    REGISTERED = "registered"
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    EMAIL_DELIVERY_FAILED = "email_delivery_failed"


class ConfirmationStatus(Enum):
    SUCCESS = "success"
    REJECTED = "rejected"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class RegisterOutput:
    """Output from a registration attempt."""

    status: RegistrationStatus
    subscriber_id: UUID | None = None
    message: str | None = None
    error: SubscriptionError | None = None
    already_confirmed: bool = False

    @property
    def success(self) -> bool:
        return self.status == RegistrationStatus.REGISTERED


@dataclass(frozen=True)
class ConfirmOutput:
    """Output from a confirmation attempt."""

    status: ConfirmationStatus
    error: SubscriptionError | None = None

    @property
    def success(self) -> bool:
        return self.status == ConfirmationStatus.SUCCESS


# --- Configuration ---


@dataclass(frozen=True)
class SubscriptionsConfig:
    """Subscription workflow configuration."""

    base_url: str = "http://127.0.0.1:8000"
    site_name: str = "Our Newsletter"
