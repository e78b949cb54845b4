"""
Public subscription endpoints.

Endpoints:
- POST /subscriptions - Register a subscriber (form: name, email)
- GET /subscriptions/confirm - Confirm via the link sent by email

Status codes are the machine-readable result:
- 200: registered / confirmed (also re-confirmed)
- 400: invalid form or missing token
- 401: unknown confirmation token
- 500: store or email failure
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Response, status

from src.api.deps import (
    get_email_adapter,
    get_subscription_store,
    get_subscriptions_config,
)
from src.components.subscriptions.component import run_confirm, run_register
from src.components.subscriptions.models import (
    TOKEN_QUERY_PARAMETER,
    ConfirmationStatus,
    ConfirmInput,
    RegisterInput,
    RegistrationStatus,
    SubscriptionsConfig,
)
from src.components.subscriptions.ports import SubscriptionStorePort
from src.core.ports.email import EmailPort

router = APIRouter()


@router.post(
    "/subscriptions",
    response_class=Response,
    responses={
        200: {"description": "Subscriber stored, confirmation email sent"},
        400: {"description": "Invalid name or email"},
        500: {"description": "Store or email failure"},
    },
    summary="Subscribe to the newsletter",
)
def subscribe(
    name: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    store: SubscriptionStorePort = Depends(get_subscription_store),
    email_sender: EmailPort = Depends(get_email_adapter),
    config: SubscriptionsConfig = Depends(get_subscriptions_config),
) -> Response:
    """
    Start the double opt-in flow.

    Stores the subscriber as pending and emails a confirmation link.
    """
    result = run_register(
        RegisterInput(name=name, email=email),
        store=store,
        email_sender=email_sender,
        config=config,
    )

    if result.status == RegistrationStatus.VALIDATION_FAILED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.message,
        )
    if result.status == RegistrationStatus.PERSISTENCE_FAILED:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to store subscription",
        )
    if result.status == RegistrationStatus.EMAIL_DELIVERY_FAILED:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to send confirmation email",
        )

    return Response(status_code=status.HTTP_200_OK)


@router.get(
    "/subscriptions/confirm",
    response_class=Response,
    responses={
        200: {"description": "Subscription confirmed"},
        400: {"description": "Missing token"},
        401: {"description": "Unknown token"},
        500: {"description": "Store failure"},
    },
    summary="Confirm a pending subscription",
)
def confirm(
    subscription_token: Annotated[str | None, Query(alias=TOKEN_QUERY_PARAMETER)] = None,
    store: SubscriptionStorePort = Depends(get_subscription_store),
) -> Response:
    """
    Confirm a subscription with the token from the confirmation email.

    Idempotent: visiting the same link twice succeeds both times.
    """
    if not subscription_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Confirmation token is required",
        )

    result = run_confirm(ConfirmInput(token=subscription_token), store=store)

    if result.status == ConfirmationStatus.REJECTED:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid confirmation link",
        )
    if result.status == ConfirmationStatus.TRANSIENT_FAILURE:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to confirm subscription",
        )

    return Response(status_code=status.HTTP_200_OK)
