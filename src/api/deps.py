from functools import lru_cache

from fastapi import Depends

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.http_email import HttpEmailAdapter
from src.adapters.sqlite.repos import SQLiteSubscriptionStore
from src.components.subscriptions.models import SubscriptionsConfig
from src.components.subscriptions.ports import SubscriptionStorePort
from src.configuration.loader import load_settings
from src.configuration.models import Settings
from src.core.ports.email import EmailPort


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return load_settings()


# --- Store ---
def get_subscription_store(settings: Settings = Depends(get_settings)) -> SubscriptionStorePort:
    return SQLiteSubscriptionStore(
        settings.database.path,
        busy_timeout_seconds=settings.database.busy_timeout_seconds,
    )


# --- Email ---
# One adapter per process, so the dev adapter keeps its sent_emails history
_email_adapter_instance: EmailPort | None = None


def get_email_adapter(settings: Settings = Depends(get_settings)) -> EmailPort:
    """Get email adapter singleton."""
    global _email_adapter_instance
    if _email_adapter_instance is None:
        client_settings = settings.email_client
        if client_settings.kind == "http":
            _email_adapter_instance = HttpEmailAdapter(
                base_url=client_settings.base_url,
                sender=client_settings.sender_email,
                authorization_token=client_settings.authorization_token.get_secret_value(),
                timeout=client_settings.timeout_seconds,
            )
        else:
            _email_adapter_instance = DevEmailAdapter()
    return _email_adapter_instance


# --- Component Config ---
def get_subscriptions_config(settings: Settings = Depends(get_settings)) -> SubscriptionsConfig:
    return SubscriptionsConfig(
        base_url=settings.application.base_url,
        site_name=settings.newsletter.site_name,
    )
