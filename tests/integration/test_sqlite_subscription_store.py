import sqlite3
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.repos import SQLiteSubscriptionStore
from src.components.subscriptions.component import (
    generate_subscription_token,
    parse_identity,
    run_register,
)
from src.components.subscriptions.models import (
    ConfirmationOutcome,
    RegisterInput,
    RegistrationStatus,
    SubscriberStatus,
    SubscriptionStoreError,
)


def count_rows(db_path: str, table: str) -> int:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(f"SELECT count(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


@pytest.fixture
def ursula():
    return parse_identity("le guin", "ursula_le_guin@gmail.com")


def test_create_pending_subscriber_writes_both_rows(sqlite_store, migrated_db_path, ursula):
    token = generate_subscription_token()

    subscriber_id = sqlite_store.create_pending_subscriber(ursula, token)

    subscriber = sqlite_store.get_subscriber(subscriber_id)
    assert subscriber is not None
    assert subscriber.status == SubscriberStatus.PENDING_CONFIRMATION
    assert str(subscriber.email) == "ursula_le_guin@gmail.com"
    assert subscriber.subscribed_at.tzinfo is not None
    assert sqlite_store.get_subscriber_by_token(token).id == subscriber_id
    assert count_rows(migrated_db_path, "subscriptions") == 1
    assert count_rows(migrated_db_path, "subscription_tokens") == 1


def test_token_collision_rolls_back_subscriber(sqlite_store, migrated_db_path, ursula):
    token = generate_subscription_token()
    sqlite_store.create_pending_subscriber(ursula, token)
    other = parse_identity("octavia", "octavia@example.com")

    with pytest.raises(SubscriptionStoreError) as exc_info:
        sqlite_store.create_pending_subscriber(other, token)

    assert exc_info.value.operation == "create_pending_subscriber"
    assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)
    assert sqlite_store.find_by_email(other.email) is None
    assert count_rows(migrated_db_path, "subscriptions") == 1
    assert count_rows(migrated_db_path, "subscription_tokens") == 1


def test_duplicate_email_rejected(sqlite_store, ursula):
    sqlite_store.create_pending_subscriber(ursula, generate_subscription_token())

    with pytest.raises(SubscriptionStoreError):
        sqlite_store.create_pending_subscriber(ursula, generate_subscription_token())


def test_register_pending_creates_subscriber_and_token(sqlite_store, migrated_db_path, ursula):
    registration = sqlite_store.register_pending(ursula, generate_subscription_token())

    assert not registration.already_confirmed
    assert sqlite_store.find_by_email(ursula.email).id == registration.subscriber_id
    assert count_rows(migrated_db_path, "subscriptions") == 1
    assert sqlite_store.count_tokens(registration.subscriber_id) == 1


def test_register_pending_again_adds_token_and_updates_name(sqlite_store, ursula):
    first = sqlite_store.register_pending(ursula, generate_subscription_token())
    renamed = parse_identity("Ursula K. Le Guin", "ursula_le_guin@gmail.com")

    second = sqlite_store.register_pending(renamed, generate_subscription_token())

    assert second.subscriber_id == first.subscriber_id
    assert sqlite_store.count_tokens(first.subscriber_id) == 2
    assert str(sqlite_store.get_subscriber(first.subscriber_id).name) == "Ursula K. Le Guin"


def test_register_pending_for_confirmed_subscriber_writes_nothing(sqlite_store, ursula):
    token = generate_subscription_token()
    first = sqlite_store.register_pending(ursula, token)
    sqlite_store.confirm_by_token(token)

    second = sqlite_store.register_pending(ursula, generate_subscription_token())

    assert second.already_confirmed
    assert second.subscriber_id == first.subscriber_id
    assert sqlite_store.count_tokens(first.subscriber_id) == 1


def test_register_pending_token_collision_rolls_back(sqlite_store, migrated_db_path, ursula):
    token = generate_subscription_token()
    sqlite_store.register_pending(ursula, token)
    other = parse_identity("octavia", "octavia@example.com")

    with pytest.raises(SubscriptionStoreError) as exc_info:
        sqlite_store.register_pending(other, token)

    assert exc_info.value.operation == "register_pending"
    assert sqlite_store.find_by_email(other.email) is None
    assert count_rows(migrated_db_path, "subscriptions") == 1


class SlowInsertStore(SQLiteSubscriptionStore):
    """Pauses between the email lookup and the insert of a new subscriber."""

    def _insert_subscriber(self, uow, new_subscriber):  # type: ignore[no-untyped-def]
        time.sleep(0.05)
        return super()._insert_subscriber(uow, new_subscriber)


def test_simultaneous_registrations_of_one_email_all_succeed(migrated_db_path):
    store = SlowInsertStore(migrated_db_path, busy_timeout_seconds=5.0)
    email_sender = DevEmailAdapter()
    start = threading.Barrier(4)

    def submit(_: int) -> RegistrationStatus:
        start.wait()
        result = run_register(
            RegisterInput(name="le guin", email="ursula_le_guin@gmail.com"),
            store=store,
            email_sender=email_sender,
        )
        return result.status

    with ThreadPoolExecutor(max_workers=4) as pool:
        statuses = list(pool.map(submit, range(4)))

    assert statuses == [RegistrationStatus.REGISTERED] * 4
    assert count_rows(migrated_db_path, "subscriptions") == 1
    subscriber = store.find_by_email(parse_identity("x", "ursula_le_guin@gmail.com").email)
    assert store.count_tokens(subscriber.id) == 4
    assert email_sender.email_count == 4


def test_confirm_by_token_transitions_once(sqlite_store, ursula):
    token = generate_subscription_token()
    subscriber_id = sqlite_store.create_pending_subscriber(ursula, token)

    assert sqlite_store.confirm_by_token(token) == ConfirmationOutcome.CONFIRMED
    confirmed_at = sqlite_store.get_subscriber(subscriber_id).confirmed_at
    assert sqlite_store.confirm_by_token(token) == ConfirmationOutcome.CONFIRMED

    subscriber = sqlite_store.get_subscriber(subscriber_id)
    assert subscriber.status == SubscriberStatus.CONFIRMED
    assert subscriber.confirmed_at == confirmed_at
    assert [s.id for s in sqlite_store.list_confirmed()] == [subscriber_id]


def test_confirm_by_unknown_token(sqlite_store, ursula):
    subscriber_id = sqlite_store.create_pending_subscriber(ursula, generate_subscription_token())

    outcome = sqlite_store.confirm_by_token(generate_subscription_token())

    assert outcome == ConfirmationOutcome.TOKEN_NOT_FOUND
    assert sqlite_store.get_subscriber(subscriber_id).status == (
        SubscriberStatus.PENDING_CONFIRMATION
    )


def test_tokens_are_case_sensitive(sqlite_store, ursula):
    token = "AbCdEfGhIjKlMnOpQrStUvWxY"
    sqlite_store.create_pending_subscriber(ursula, token)

    assert sqlite_store.confirm_by_token(token.swapcase()) == ConfirmationOutcome.TOKEN_NOT_FOUND


def test_concurrent_confirmations_all_succeed(sqlite_store, ursula):
    token = generate_subscription_token()
    subscriber_id = sqlite_store.create_pending_subscriber(ursula, token)

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(sqlite_store.confirm_by_token, [token] * 16))

    assert outcomes == [ConfirmationOutcome.CONFIRMED] * 16
    assert sqlite_store.get_subscriber(subscriber_id).status == SubscriberStatus.CONFIRMED


def test_unmigrated_database_raises_store_error(db_path, ursula):
    store = SQLiteSubscriptionStore(db_path)

    with pytest.raises(SubscriptionStoreError):
        store.create_pending_subscriber(ursula, generate_subscription_token())
    with pytest.raises(SubscriptionStoreError):
        store.confirm_by_token(generate_subscription_token())
    with pytest.raises(SubscriptionStoreError):
        store.ping()


def test_ping_on_migrated_database(sqlite_store):
    sqlite_store.ping()
