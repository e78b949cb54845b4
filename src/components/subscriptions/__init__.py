"""
Subscriptions component.

Double opt-in subscriber registration and confirmation.
"""

from src.components.subscriptions.component import (
    TOKEN_ALPHABET,
    build_confirmation_url,
    generate_subscription_token,
    parse_identity,
    render_confirmation_email,
    run,
    run_confirm,
    run_register,
    send_confirmation_email,
)
from src.components.subscriptions.models import (
    CONFIRMATION_PATH,
    EMAIL_REGEX,
    FORBIDDEN_NAME_CHARACTERS,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    TOKEN_LENGTH,
    TOKEN_QUERY_PARAMETER,
    VALID_TRANSITIONS,
    ConfirmationOutcome,
    ConfirmationStatus,
    ConfirmInput,
    ConfirmOutput,
    EmailDeliveryError,
    NewSubscriber,
    PendingRegistration,
    RegisterInput,
    RegisterOutput,
    RegistrationStatus,
    Subscriber,
    SubscriberEmail,
    SubscriberName,
    SubscriberStatus,
    SubscriptionError,
    SubscriptionsConfig,
    SubscriptionStoreError,
    SubscriptionToken,
    SubscriptionValidationError,
    TokenNotFoundError,
    can_transition,
)
from src.components.subscriptions.ports import (
    ConfirmationEmailSenderPort,
    SubscriptionStorePort,
)

__all__ = [
    # Component
    "run",
    "run_register",
    "run_confirm",
    # Pure functions
    "parse_identity",
    "generate_subscription_token",
    "build_confirmation_url",
    "render_confirmation_email",
    "send_confirmation_email",
    # Constants
    "CONFIRMATION_PATH",
    "EMAIL_REGEX",
    "FORBIDDEN_NAME_CHARACTERS",
    "MAX_EMAIL_LENGTH",
    "MAX_NAME_LENGTH",
    "TOKEN_ALPHABET",
    "TOKEN_LENGTH",
    "TOKEN_QUERY_PARAMETER",
    # Models
    "NewSubscriber",
    "PendingRegistration",
    "Subscriber",
    "SubscriberEmail",
    "SubscriberName",
    "SubscriberStatus",
    "SubscriptionToken",
    "VALID_TRANSITIONS",
    "can_transition",
    "SubscriptionsConfig",
    "ConfirmationOutcome",
    # Input/Output
    "RegisterInput",
    "RegisterOutput",
    "RegistrationStatus",
    "ConfirmInput",
    "ConfirmOutput",
    "ConfirmationStatus",
    # Errors
    "SubscriptionError",
    "SubscriptionValidationError",
    "SubscriptionStoreError",
    "EmailDeliveryError",
    "TokenNotFoundError",
    # Ports
    "SubscriptionStorePort",
    "ConfirmationEmailSenderPort",
]
