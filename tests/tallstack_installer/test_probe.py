"""Tests for the database connectivity probe."""

from __future__ import annotations

import pytest

from tallstack_installer.core.settings import InstallerConfig
from tallstack_installer.database.probe import DatabaseProbe, DatabaseSettings, normalize_error
from tallstack_installer.exceptions import InvalidDatabaseName

SETTINGS = DatabaseSettings(
    driver="mysql",
    host="db.internal",
    port=3306,
    name="my_saas_app",
    username="root",
    password="secret",
)


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self.conn = conn

    def execute(self, query, params=None):
        self.conn.executed.append((query, params))

    def fetchone(self):
        return ("my_saas_app",) if self.conn.schema_exists else None

    def close(self):
        pass


class FakeConnection:
    def __init__(self, schema_exists: bool):
        self.schema_exists = schema_exists
        self.executed: list[tuple] = []
        self.closed = False

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        self.closed = True


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("(2003, \"Can't connect to MySQL server on 'db.internal' ([Errno 111] Connection refused)\")", "Connection refused"),
        ("(2003, \"Can't connect to MySQL server on 'db.internal' (timed out)\")", "timed out"),
        ("(1045, \"Access denied for user 'root'@'10.0.0.1' (using password: YES)\")", "Authentication failed"),
        ('FATAL:  password authentication failed for user "postgres"', "Authentication failed"),
        ('could not translate host name "db.internal" to address', "Cannot resolve host"),
    ],
)
def test_normalize_error_gives_guidance(message: str, expected: str) -> None:
    assert expected in normalize_error(Exception(message), SETTINGS)


def test_normalize_error_passes_unknown_errors_through() -> None:
    assert normalize_error(Exception("disk quota exceeded"), SETTINGS) == "disk quota exceeded"


def test_sqlite_needs_no_connection() -> None:
    result = DatabaseProbe().probe(DatabaseSettings("sqlite", "", 0, "database", ""))
    assert result.ready


def test_probe_reports_existing_schema(monkeypatch: pytest.MonkeyPatch) -> None:
    probe = DatabaseProbe()
    conn = FakeConnection(schema_exists=True)
    monkeypatch.setattr(probe, "_connect", lambda settings: conn)

    result = probe.probe(SETTINGS)

    assert result.connected and result.schema_exists and result.error is None
    assert conn.closed
    query, params = conn.executed[0]
    assert "INFORMATION_SCHEMA.SCHEMATA" in query
    assert params == ("my_saas_app",)


def test_probe_connected_without_schema(monkeypatch: pytest.MonkeyPatch) -> None:
    probe = DatabaseProbe()
    monkeypatch.setattr(probe, "_connect", lambda settings: FakeConnection(schema_exists=False))

    result = probe.probe(SETTINGS)

    assert result.connected
    assert not result.schema_exists
    assert not result.ready


def test_probe_connection_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    probe = DatabaseProbe()

    def refuse(settings):
        raise OSError("Connection refused")

    monkeypatch.setattr(probe, "_connect", refuse)
    result = probe.probe(SETTINGS)

    assert not result.connected
    assert result.error.startswith("Connection refused on db.internal:3306")


def test_probe_missing_driver(monkeypatch: pytest.MonkeyPatch) -> None:
    probe = DatabaseProbe()

    def missing(settings):
        raise ImportError("No module named 'psycopg2'")

    monkeypatch.setattr(probe, "_connect", missing)
    result = probe.probe(DatabaseSettings("pgsql", "localhost", 5432, "app", "postgres"))

    assert not result.connected
    assert "psycopg2-binary" in result.error


def test_create_database_uses_validated_identifier(monkeypatch: pytest.MonkeyPatch) -> None:
    probe = DatabaseProbe()
    conn = FakeConnection(schema_exists=False)
    monkeypatch.setattr(probe, "_connect", lambda settings: conn)

    probe.create_database(SETTINGS)

    statement, _ = conn.executed[0]
    assert statement.startswith("CREATE DATABASE IF NOT EXISTS `my_saas_app`")
    assert "utf8mb4" in statement


def test_create_database_rejects_bad_name(monkeypatch: pytest.MonkeyPatch) -> None:
    probe = DatabaseProbe()
    monkeypatch.setattr(probe, "_connect", lambda settings: pytest.fail("must not connect"))
    bad = DatabaseSettings("pgsql", "localhost", 5432, 'x"; DROP DATABASE postgres; --', "postgres")

    with pytest.raises(InvalidDatabaseName):
        probe.create_database(bad)


@pytest.mark.parametrize("name", ["my`db", "my db", "app`; DROP DATABASE mysql; -- "])
def test_create_mysql_database_rejects_unsafe_name(monkeypatch: pytest.MonkeyPatch, name: str) -> None:
    probe = DatabaseProbe()
    connections = []
    monkeypatch.setattr(probe, "_connect", lambda settings: connections.append(settings))
    bad = DatabaseSettings("mysql", "db.internal", 3306, name, "root", "secret")

    with pytest.raises(InvalidDatabaseName):
        probe.create_database(bad)

    assert connections == []


def test_settings_from_config() -> None:
    config = InstallerConfig()
    config.update(
        {
            "database_driver": "pgsql",
            "database_host": "localhost",
            "database_port": "5432",
            "database_name": "app",
            "database_username": "postgres",
        }
    )
    settings = DatabaseSettings.from_config(config)
    assert settings.port == 5432
    assert settings.password == ""
