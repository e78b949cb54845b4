import sqlite3

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator


@pytest.fixture
def temp_db_path(tmp_path):
    return str(tmp_path / "test_db.sqlite")


def table_exists(db_path: str, name: str) -> bool:
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,)
        )
        return cursor.fetchone() is not None
    finally:
        conn.close()


def test_migrator_creates_migration_table(temp_db_path):
    SQLiteMigrator(temp_db_path).run_migrations()

    assert table_exists(temp_db_path, "_migrations")


def test_migrator_creates_subscription_tables(temp_db_path):
    applied = SQLiteMigrator(temp_db_path).run_migrations()

    assert applied == ["001_subscriptions.sql", "002_subscription_tokens.sql"]
    assert table_exists(temp_db_path, "subscriptions")
    assert table_exists(temp_db_path, "subscription_tokens")


def test_migrator_is_idempotent(temp_db_path):
    migrator = SQLiteMigrator(temp_db_path)

    migrator.run_migrations()
    assert migrator.run_migrations() == []

    conn = sqlite3.connect(temp_db_path)
    cursor = conn.execute(
        "SELECT count(*) FROM _migrations WHERE filename='001_subscriptions.sql'"
    )
    assert cursor.fetchone()[0] == 1
    conn.close()


def test_migrator_creates_parent_directory(tmp_path):
    db_path = str(tmp_path / "nested" / "dir" / "db.sqlite")

    SQLiteMigrator(db_path).run_migrations()

    assert table_exists(db_path, "subscriptions")


def test_status_check_constraint(temp_db_path):
    SQLiteMigrator(temp_db_path).run_migrations()
    conn = sqlite3.connect(temp_db_path)
    try:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO subscriptions (id, email, name, subscribed_at, status) "
                "VALUES ('1', 'a@b.com', 'a', '2025-01-01T00:00:00', 'unsubscribed')"
            )
    finally:
        conn.close()


def test_failed_migration_raises(tmp_path, temp_db_path):
    migrations_dir = tmp_path / "broken"
    migrations_dir.mkdir()
    (migrations_dir / "001_broken.sql").write_text("CREATE TABLE oops (;")

    with pytest.raises(RuntimeError, match="001_broken.sql"):
        SQLiteMigrator(temp_db_path, str(migrations_dir)).run_migrations()


def test_unreadable_migration_file_raises(tmp_path, temp_db_path):
    migrations_dir = tmp_path / "unreadable"
    migrations_dir.mkdir()
    (migrations_dir / "001_directory.sql").mkdir()

    with pytest.raises(RuntimeError, match="001_directory.sql") as exc_info:
        SQLiteMigrator(temp_db_path, str(migrations_dir)).run_migrations()
    assert isinstance(exc_info.value.__cause__, OSError)


def test_missing_migrations_dir_raises(tmp_path, temp_db_path):
    with pytest.raises(RuntimeError, match="migration state"):
        SQLiteMigrator(temp_db_path, str(tmp_path / "absent")).run_migrations()


def test_unopenable_database_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(RuntimeError, match="Cannot open database"):
        SQLiteMigrator(str(blocker / "db.sqlite")).run_migrations()
