"""
SQLite subscription store.

Implements SubscriptionStorePort on top of SQLiteUnitOfWork.

Key behaviors:
- Subscriber row and token row inserted in one transaction; the email
  lookup for a registration shares that transaction
- Confirmation is a conditional update, so repeated or concurrent
  confirmations with the same token perform at most one transition
- Every sqlite3 failure surfaces as SubscriptionStoreError with the cause chained
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from src.adapters.sqlite.unit_of_work import SQLiteUnitOfWork, connect
from src.components.subscriptions.models import (
    ConfirmationOutcome,
    NewSubscriber,
    PendingRegistration,
    Subscriber,
    SubscriberEmail,
    SubscriberName,
    SubscriberStatus,
    SubscriptionStoreError,
)

logger = logging.getLogger(__name__)


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


class SQLiteSubscriptionStore:
    """SQLite implementation of SubscriptionStorePort."""

    def __init__(self, db_path: str, busy_timeout_seconds: float = 5.0):
        self.db_path = db_path
        self.busy_timeout_seconds = busy_timeout_seconds

    def _transaction(self) -> SQLiteUnitOfWork:
        return SQLiteUnitOfWork(self.db_path, timeout=self.busy_timeout_seconds)

    # --- Writes ---

    def _insert_subscriber(self, uow: SQLiteUnitOfWork, new_subscriber: NewSubscriber) -> UUID:
        subscriber_id = uuid4()
        uow.execute(
            """
            INSERT INTO subscriptions (id, email, name, subscribed_at, status)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(subscriber_id),
                str(new_subscriber.email),
                str(new_subscriber.name),
                datetime.now(UTC).isoformat(),
                SubscriberStatus.PENDING_CONFIRMATION.value,
            ),
        )
        return subscriber_id

    def _insert_token(self, uow: SQLiteUnitOfWork, subscriber_id: UUID, token: str) -> None:
        uow.execute(
            """
            INSERT INTO subscription_tokens (subscription_token, subscriber_id, created_at)
            VALUES (?, ?, ?)
            """,
            (token, str(subscriber_id), datetime.now(UTC).isoformat()),
        )

    def create_pending_subscriber(self, new_subscriber: NewSubscriber, token: str) -> UUID:
        try:
            with self._transaction() as uow:
                subscriber_id = self._insert_subscriber(uow, new_subscriber)
                self._insert_token(uow, subscriber_id, token)
                uow.commit()
        except sqlite3.Error as e:
            raise SubscriptionStoreError("create_pending_subscriber", str(e)) from e
        return subscriber_id

    def register_pending(self, new_subscriber: NewSubscriber, token: str) -> PendingRegistration:
        try:
            with self._transaction() as uow:
                row = uow.execute(
                    "SELECT id, status FROM subscriptions WHERE email = ?",
                    (str(new_subscriber.email),),
                ).fetchone()
                if row is not None and row["status"] == SubscriberStatus.CONFIRMED.value:
                    return PendingRegistration(UUID(row["id"]), already_confirmed=True)

                if row is None:
                    subscriber_id = self._insert_subscriber(uow, new_subscriber)
                else:
                    subscriber_id = UUID(row["id"])
                    uow.execute(
                        "UPDATE subscriptions SET name = ? WHERE id = ?",
                        (str(new_subscriber.name), row["id"]),
                    )
                self._insert_token(uow, subscriber_id, token)
                uow.commit()
        except sqlite3.Error as e:
            raise SubscriptionStoreError("register_pending", str(e)) from e
        return PendingRegistration(subscriber_id)

    def confirm_by_token(self, token: str) -> ConfirmationOutcome:
        try:
            with self._transaction() as uow:
                row = uow.execute(
                    "SELECT subscriber_id FROM subscription_tokens WHERE subscription_token = ?",
                    (token,),
                ).fetchone()
                if row is None:
                    return ConfirmationOutcome.TOKEN_NOT_FOUND

                cursor = uow.execute(
                    """
                    UPDATE subscriptions SET status = ?, confirmed_at = ?
                    WHERE id = ? AND status = ?
                    """,
                    (
                        SubscriberStatus.CONFIRMED.value,
                        datetime.now(UTC).isoformat(),
                        row["subscriber_id"],
                        SubscriberStatus.PENDING_CONFIRMATION.value,
                    ),
                )
                uow.commit()
        except sqlite3.Error as e:
            raise SubscriptionStoreError("confirm_by_token", str(e)) from e

        if cursor.rowcount:
            logger.info("Confirmed subscriber %s", row["subscriber_id"])
        return ConfirmationOutcome.CONFIRMED

    # --- Reads ---

    def _fetch_one(self, operation: str, sql: str, params: tuple[Any, ...]) -> Subscriber | None:
        try:
            conn = connect(self.db_path, self.busy_timeout_seconds)
            try:
                row = conn.execute(sql, params).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SubscriptionStoreError(operation, str(e)) from e
        return self._map_row(row) if row else None

    def find_by_email(self, email: SubscriberEmail) -> Subscriber | None:
        return self._fetch_one(
            "find_by_email",
            "SELECT * FROM subscriptions WHERE email = ?",
            (str(email),),
        )

    def get_subscriber(self, subscriber_id: UUID) -> Subscriber | None:
        return self._fetch_one(
            "get_subscriber",
            "SELECT * FROM subscriptions WHERE id = ?",
            (str(subscriber_id),),
        )

    def get_subscriber_by_token(self, token: str) -> Subscriber | None:
        return self._fetch_one(
            "get_subscriber_by_token",
            """
            SELECT s.* FROM subscriptions s
            JOIN subscription_tokens t ON t.subscriber_id = s.id
            WHERE t.subscription_token = ?
            """,
            (token,),
        )

    def list_confirmed(self) -> list[Subscriber]:
        try:
            conn = connect(self.db_path, self.busy_timeout_seconds)
            try:
                rows = conn.execute(
                    "SELECT * FROM subscriptions WHERE status = ? ORDER BY subscribed_at",
                    (SubscriberStatus.CONFIRMED.value,),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SubscriptionStoreError("list_confirmed", str(e)) from e
        return [self._map_row(row) for row in rows]

    def count_tokens(self, subscriber_id: UUID) -> int:
        try:
            conn = connect(self.db_path, self.busy_timeout_seconds)
            try:
                row = conn.execute(
                    "SELECT count(*) AS n FROM subscription_tokens WHERE subscriber_id = ?",
                    (str(subscriber_id),),
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SubscriptionStoreError("count_tokens", str(e)) from e
        return int(row["n"])

    def ping(self) -> None:
        try:
            conn = connect(self.db_path, self.busy_timeout_seconds)
            try:
                conn.execute("SELECT 1 FROM subscriptions LIMIT 1").fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise SubscriptionStoreError("ping", str(e)) from e

    def _map_row(self, row: dict[str, Any]) -> Subscriber:
        return Subscriber(
            id=UUID(row["id"]),
            email=SubscriberEmail(row["email"]),
            name=SubscriberName(row["name"]),
            status=SubscriberStatus(row["status"]),
            subscribed_at=parse_dt(row["subscribed_at"]) or datetime.now(UTC),
            confirmed_at=parse_dt(row["confirmed_at"]),
        )
