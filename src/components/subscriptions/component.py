"""
Subscriptions component.

Functional core for double opt-in subscriber registration and confirmation.

Key behaviors:
- Validate name/email before anything is written
- Subscriber row and confirmation token are persisted atomically
- Confirmation email sent after commit, never rolled back
- 25-character alphanumeric tokens from a CSPRNG (secrets)
- Confirmation is idempotent: re-presenting a used token succeeds again

Invariants:
- Every persisted subscriber has a validated identity
- Status only moves pending_confirmation → confirmed
- No outcome is swallowed: each maps to exactly one HTTP status family
"""

from __future__ import annotations

import html
import logging
import secrets
import string
from urllib.parse import urlencode

from src.components.subscriptions.models import (
    CONFIRMATION_PATH,
    TOKEN_LENGTH,
    TOKEN_QUERY_PARAMETER,
    ConfirmationOutcome,
    ConfirmationStatus,
    ConfirmInput,
    ConfirmOutput,
    EmailDeliveryError,
    NewSubscriber,
    RegisterInput,
    RegisterOutput,
    RegistrationStatus,
    SubscriberEmail,
    SubscriberName,
    SubscriptionsConfig,
    SubscriptionStoreError,
    SubscriptionValidationError,
    TokenNotFoundError,
)
from src.components.subscriptions.ports import (
    ConfirmationEmailSenderPort,
    SubscriptionStorePort,
)
from src.core.ports.email import EmailSendError

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits


# --- Pure Functions (Functional Core) ---


def parse_identity(raw_name: str | None, raw_email: str | None) -> NewSubscriber:
    """
    Turn raw form fields into a validated identity.

    Raises:
        SubscriptionValidationError: If either field is invalid
    """
    email = SubscriberEmail.parse(raw_email)
    name = SubscriberName.parse(raw_name)
    return NewSubscriber(email=email, name=name)


def generate_subscription_token() -> str:
    """
    Generate a confirmation token.

    Returns:
        TOKEN_LENGTH characters drawn uniformly from [A-Za-z0-9]
    """
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def build_confirmation_url(base_url: str, token: str) -> str:
    """
    Build the confirmation link embedded in the email.

    Args:
        base_url: Public base URL of the service
        token: Confirmation token

    Returns:
        {base_url}/subscriptions/confirm?subscription_token={token}
    """
    base = base_url.rstrip("/")
    query = urlencode({TOKEN_QUERY_PARAMETER: token})
    return f"{base}{CONFIRMATION_PATH}?{query}"


def render_confirmation_email(
    name: SubscriberName,
    confirmation_url: str,
    site_name: str,
) -> tuple[str, str, str]:
    """
    Render the confirmation email.

    Returns:
        Tuple of (subject, body_html, body_text)
    """
    subject = f"Welcome to {site_name}!"
    body_html = (
        f"<p>Hi {html.escape(str(name))},</p>"
        f"<p>Welcome to {html.escape(site_name)}!<br />"
        f'Click <a href="{html.escape(confirmation_url)}">here</a> '
        f"to confirm your subscription.</p>"
    )
    body_text = (
        f"Hi {name},\n\n"
        f"Welcome to {site_name}!\n"
        f"Visit {confirmation_url} to confirm your subscription.\n"
    )
    return subject, body_html, body_text


# --- Run Handlers ---


def send_confirmation_email(
    email_sender: ConfirmationEmailSenderPort,
    new_subscriber: NewSubscriber,
    confirmation_url: str,
    site_name: str,
) -> None:
    """
    Send the confirmation email for a persisted subscriber.

    Raises:
        EmailDeliveryError: If the sender fails or reports failure
    """
    recipient = str(new_subscriber.email)
    subject, body_html, body_text = render_confirmation_email(
        new_subscriber.name, confirmation_url, site_name
    )
    try:
        result = email_sender.send_email(
            recipient=recipient,
            subject=subject,
            body_html=body_html,
            body_text=body_text,
        )
    except EmailSendError as e:
        raise EmailDeliveryError(recipient, e.error) from e

    if not result.delivered:
        raise EmailDeliveryError(recipient, result.error or "provider reported failure")


def run_register(
    inp: RegisterInput,
    *,
    store: SubscriptionStorePort,
    email_sender: ConfirmationEmailSenderPort,
    config: SubscriptionsConfig | None = None,
) -> RegisterOutput:
    """
    Handle a subscription form submission.

    Steps:
    1. Validate name and email
    2. Record the registration and its token in one store transaction
       (new subscriber, or a new token for a pending one)
    3. Send the confirmation email
    """
    cfg = config or SubscriptionsConfig()

    try:
        new_subscriber = parse_identity(inp.name, inp.email)
    except SubscriptionValidationError as e:
        logger.info("Rejected subscription form: %s", e)
        return RegisterOutput(
            status=RegistrationStatus.VALIDATION_FAILED,
            message=str(e),
            error=e,
        )

    token = generate_subscription_token()
    try:
        registration = store.register_pending(new_subscriber, token)
    except SubscriptionStoreError as e:
        logger.error("Failed to persist new subscriber: %s", e, exc_info=e)
        return RegisterOutput(
            status=RegistrationStatus.PERSISTENCE_FAILED,
            message="Failed to store subscriber details",
            error=e,
        )

    subscriber_id = registration.subscriber_id
    if registration.already_confirmed:
        logger.info("Subscriber %s is already confirmed; nothing to do", subscriber_id)
        return RegisterOutput(
            status=RegistrationStatus.REGISTERED,
            subscriber_id=subscriber_id,
            already_confirmed=True,
        )

    logger.info("Stored pending subscriber %s", subscriber_id)

    confirmation_url = build_confirmation_url(cfg.base_url, token)
    try:
        send_confirmation_email(email_sender, new_subscriber, confirmation_url, cfg.site_name)
    except EmailDeliveryError as e:
        logger.error(
            "Failed to send confirmation email for subscriber %s: %s",
            subscriber_id,
            e,
            exc_info=e,
        )
        return RegisterOutput(
            status=RegistrationStatus.EMAIL_DELIVERY_FAILED,
            subscriber_id=subscriber_id,
            message="Failed to send confirmation email",
            error=e,
        )

    return RegisterOutput(
        status=RegistrationStatus.REGISTERED,
        subscriber_id=subscriber_id,
    )


def run_confirm(
    inp: ConfirmInput,
    *,
    store: SubscriptionStorePort,
) -> ConfirmOutput:
    """
    Handle a confirmation link visit.

    All transition logic lives in the store, alongside the token lookup.
    """
    if not inp.token:
        return ConfirmOutput(status=ConfirmationStatus.REJECTED, error=TokenNotFoundError())

    try:
        outcome = store.confirm_by_token(inp.token)
    except SubscriptionStoreError as e:
        logger.error("Failed to confirm subscriber: %s", e, exc_info=e)
        return ConfirmOutput(status=ConfirmationStatus.TRANSIENT_FAILURE, error=e)

    if outcome == ConfirmationOutcome.TOKEN_NOT_FOUND:
        logger.info("Rejected unknown confirmation token")
        return ConfirmOutput(status=ConfirmationStatus.REJECTED, error=TokenNotFoundError())

    return ConfirmOutput(status=ConfirmationStatus.SUCCESS)


def run(
    inp: RegisterInput | ConfirmInput,
    *,
    store: SubscriptionStorePort,
    email_sender: ConfirmationEmailSenderPort | None = None,
    config: SubscriptionsConfig | None = None,
) -> RegisterOutput | ConfirmOutput:
    """
    Main component entry point.

    Args:
        inp: Input command
        store: Subscription store (Required)
        email_sender: Email sender (Required for registration)
        config: Configuration (Optional)

    Returns:
        Operation result
    """
    if isinstance(inp, RegisterInput):
        if email_sender is None:
            raise ValueError("email_sender is required for registration")
        return run_register(inp, store=store, email_sender=email_sender, config=config)
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, store=store)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
