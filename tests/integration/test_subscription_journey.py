"""
End-to-end subscription journeys through the HTTP API.

Register → read the captured confirmation email → confirm.
"""

import re
import sqlite3
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.repos import SQLiteSubscriptionStore
from src.components.subscriptions.models import SubscriberEmail, SubscriberStatus

LINK = re.compile(r"https?://\S+")
URSULA = {"name": "le guin", "email": "ursula_le_guin@gmail.com"}


def count_rows(db_path: str, table: str) -> int:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(f"SELECT count(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


def confirmation_link(email_adapter: DevEmailAdapter) -> str:
    email = email_adapter.get_last_email()
    assert email is not None
    links = LINK.findall(email.body_text)
    assert len(links) == 1
    return links[0]


def test_registration_creates_one_pending_subscriber_and_one_email(
    client: TestClient, db_path: str, test_email_adapter: DevEmailAdapter
) -> None:
    response = client.post("/subscriptions", data=URSULA)

    assert response.status_code == 200
    store = SQLiteSubscriptionStore(db_path)
    subscriber = store.find_by_email(SubscriberEmail(URSULA["email"]))
    assert subscriber is not None
    assert subscriber.status == SubscriberStatus.PENDING_CONFIRMATION

    assert test_email_adapter.email_count == 1
    link = urlparse(confirmation_link(test_email_adapter))
    assert link.path == "/subscriptions/confirm"
    token = parse_qs(link.query)["subscription_token"][0]
    assert len(token) == 25


def test_registration_without_email_is_rejected(
    client: TestClient, db_path: str, test_email_adapter: DevEmailAdapter
) -> None:
    response = client.post("/subscriptions", data={"name": "le guin"})

    assert response.status_code == 400
    assert test_email_adapter.email_count == 0
    store = SQLiteSubscriptionStore(db_path)
    assert store.find_by_email(SubscriberEmail(URSULA["email"])) is None
    assert count_rows(db_path, "subscriptions") == 0
    assert count_rows(db_path, "subscription_tokens") == 0


def test_clicking_confirmation_link_confirms_subscriber(
    client: TestClient, db_path: str, test_email_adapter: DevEmailAdapter
) -> None:
    client.post("/subscriptions", data=URSULA)
    link = urlparse(confirmation_link(test_email_adapter))
    store = SQLiteSubscriptionStore(db_path)

    first = client.get(f"{link.path}?{link.query}")
    assert first.status_code == 200
    assert store.find_by_email(SubscriberEmail(URSULA["email"])).status == (
        SubscriberStatus.CONFIRMED
    )

    second = client.get(f"{link.path}?{link.query}")
    assert second.status_code == 200
    assert store.find_by_email(SubscriberEmail(URSULA["email"])).status == (
        SubscriberStatus.CONFIRMED
    )


def test_never_issued_token_is_rejected(
    client: TestClient, db_path: str, test_email_adapter: DevEmailAdapter
) -> None:
    client.post("/subscriptions", data=URSULA)

    response = client.get(
        "/subscriptions/confirm",
        params={"subscription_token": "ZZZZZZZZZZZZZZZZZZZZZZZZZ"},
    )

    assert response.status_code == 401
    store = SQLiteSubscriptionStore(db_path)
    assert store.list_confirmed() == []
    assert store.find_by_email(SubscriberEmail(URSULA["email"])).status == (
        SubscriberStatus.PENDING_CONFIRMATION
    )
