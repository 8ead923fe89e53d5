"""Database connectivity probe for MySQL and PostgreSQL.

The probe answers two questions with one short-lived connection: can we
authenticate against the server, and does the target schema already exist.
Drivers are imported lazily so a SQLite-only run never needs them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tallstack_installer.core.validation import is_valid_database_name
from tallstack_installer.exceptions import InvalidDatabaseName

logger = logging.getLogger(__name__)

DRIVER_PACKAGES = {
    "mysql": "PyMySQL",
    "pgsql": "psycopg2-binary",
}


@dataclass(frozen=True)
class DatabaseSettings:
    driver: str
    host: str
    port: int
    name: str
    username: str
    password: str = ""

    @classmethod
    def from_config(cls, config) -> "DatabaseSettings":
        return cls(
            driver=config.require("database_driver"),
            host=config.require("database_host"),
            port=int(config.require("database_port")),
            name=config.require("database_name"),
            username=config.require("database_username"),
            password=config.get("database_password", ""),
        )


@dataclass(frozen=True)
class ProbeResult:
    """Tri-state probe outcome: failed, connected without schema, or ready."""

    connected: bool
    schema_exists: bool = False
    error: str | None = None

    @property
    def ready(self) -> bool:
        return self.connected and self.schema_exists


_ERROR_GUIDANCE = (
    (
        ("getaddrinfo", "name or service not known", "could not translate host name",
         "nodename nor servname", "unknown mysql server host", "temporary failure in name resolution"),
        "Cannot resolve host '{host}'. Check the hostname or use 127.0.0.1.",
    ),
    (
        ("timed out", "timeout expired"),
        "Connection to {host}:{port} timed out. Check firewalls and that the host is reachable.",
    ),
    (
        ("access denied", "password authentication failed", "authentication failed", "no password supplied"),
        "Authentication failed for user '{username}'. Check the username and password.",
    ),
    (
        ("connection refused", "can't connect to mysql server", "is the server running"),
        "Connection refused on {host}:{port}. Make sure the database server is running and listening on that port.",
    ),
)


def normalize_error(exc: BaseException, settings: DatabaseSettings) -> str:
    """Rewrite well-known driver failures into actionable guidance.

    Unrecognised errors pass through verbatim.
    """
    raw = str(exc).strip() or exc.__class__.__name__
    lowered = raw.lower()
    for needles, template in _ERROR_GUIDANCE:
        if any(needle in lowered for needle in needles):
            return template.format(host=settings.host, port=settings.port, username=settings.username)
    return raw


def _quote_identifier(driver: str, name: str) -> str:
    if not is_valid_database_name(name):
        raise InvalidDatabaseName(
            f"Refusing to use database name '{name}'",
            causes=["Database names may only contain letters, numbers and underscores"],
        )
    return f"`{name}`" if driver == "mysql" else f'"{name}"'


class DatabaseProbe:
    """Connect, check for the schema, and create it on request."""

    def __init__(self, connect_timeout: int = 5):
        self.connect_timeout = connect_timeout

    def _connect(self, settings: DatabaseSettings):
        if settings.driver == "mysql":
            import pymysql

            return pymysql.connect(
                host=settings.host,
                port=settings.port,
                user=settings.username,
                password=settings.password,
                connect_timeout=self.connect_timeout,
                autocommit=True,
            )
        if settings.driver == "pgsql":
            import psycopg2

            conn = psycopg2.connect(
                host=settings.host,
                port=settings.port,
                dbname="postgres",
                user=settings.username,
                password=settings.password,
                connect_timeout=self.connect_timeout,
            )
            # CREATE DATABASE cannot run inside a transaction block
            conn.autocommit = True
            return conn
        raise ValueError(f"Unsupported database driver: {settings.driver}")

    def probe(self, settings: DatabaseSettings) -> ProbeResult:
        if settings.driver == "sqlite":
            return ProbeResult(connected=True, schema_exists=True)

        try:
            conn = self._connect(settings)
        except ImportError:
            package = DRIVER_PACKAGES.get(settings.driver, settings.driver)
            return ProbeResult(
                connected=False,
                error=f"Python driver for {settings.driver} is not installed (pip install {package}).",
            )
        except Exception as exc:
            logger.debug("Database connect failed: %s", exc)
            return ProbeResult(connected=False, error=normalize_error(exc, settings))

        try:
            return ProbeResult(connected=True, schema_exists=self._schema_exists(conn, settings))
        except Exception as exc:
            logger.debug("Schema lookup failed: %s", exc)
            return ProbeResult(connected=True, error=normalize_error(exc, settings))
        finally:
            conn.close()

    def _schema_exists(self, conn, settings: DatabaseSettings) -> bool:
        if settings.driver == "mysql":
            query = "SELECT SCHEMA_NAME FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME = %s"
        else:
            query = "SELECT 1 FROM pg_database WHERE datname = %s"
        cursor = conn.cursor()
        try:
            cursor.execute(query, (settings.name,))
            return cursor.fetchone() is not None
        finally:
            cursor.close()

    def create_database(self, settings: DatabaseSettings) -> None:
        """Create the schema; the name is re-validated immediately before use."""
        identifier = _quote_identifier(settings.driver, settings.name)
        if settings.driver == "mysql":
            statement = (
                f"CREATE DATABASE IF NOT EXISTS {identifier} "
                "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
            )
        else:
            statement = f"CREATE DATABASE {identifier}"

        conn = self._connect(settings)
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(statement)
            finally:
                cursor.close()
        finally:
            conn.close()
        logger.info("Created database %s", settings.name)


__all__ = [
    "DatabaseSettings",
    "DatabaseProbe",
    "ProbeResult",
    "normalize_error",
    "DRIVER_PACKAGES",
]
