# newsletter-subscriptions: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailPort,
    EmailResult,
    EmailSendError,
    EmailStatus,
)

__all__ = [
    # Email
    "EmailPort",
    "EmailResult",
    "EmailSendError",
    "EmailStatus",
]
