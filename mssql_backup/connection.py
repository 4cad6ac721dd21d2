"""SQL Server connectivity: ODBC connection strings and command execution."""
from __future__ import annotations

import logging
from contextlib import closing
from typing import List, Optional, Protocol, Sequence, Tuple

from .config import ConfigError

LOGGER = logging.getLogger(__name__)

ADMINISTRATIVE_CATALOG = "master"
CATALOG_KEYS = {"database", "initial catalog"}
SENSITIVE_KEYS = {"pwd", "password"}


class DatabaseError(Exception):
    """Raised when the server cannot be reached or rejects a command."""


class ServerConnector(Protocol):
    """Interface for running one statement against the server."""

    def execute(
        self,
        connection_string: str,
        statement: str,
        params: Sequence[object],
        *,
        command_timeout: int,
        login_timeout: int,
    ) -> None:
        """Run *statement* to completion or raise :class:`DatabaseError`."""
        ...


class PyodbcConnector:
    """Execute statements through pyodbc in autocommit mode.

    ``BACKUP DATABASE`` refuses to run inside a user transaction, so the
    connection is opened with ``autocommit=True``. Every pending result set
    is drained, otherwise errors raised late by the server would be lost when
    the cursor is closed.
    """

    def execute(
        self,
        connection_string: str,
        statement: str,
        params: Sequence[object],
        *,
        command_timeout: int,
        login_timeout: int,
    ) -> None:
        import pyodbc

        LOGGER.debug("Connecting with %s", redact_connection_string(connection_string))
        try:
            with closing(
                pyodbc.connect(connection_string, autocommit=True, timeout=login_timeout)
            ) as connection:
                connection.timeout = command_timeout
                with closing(connection.cursor()) as cursor:
                    cursor.execute(statement, list(params))
                    while cursor.nextset():
                        pass
        except pyodbc.Error as exc:
            raise DatabaseError(_describe(exc)) from exc


def _describe(exc: Exception) -> str:
    # pyodbc errors carry (sqlstate, message)
    if len(exc.args) >= 2:
        return str(exc.args[1])
    return str(exc)


# ---------------------------------------------------------------------------
def parse_connection_string(raw: str) -> List[Tuple[str, str]]:
    """Split an ODBC connection string into ordered ``(key, value)`` pairs.

    Values wrapped in braces may contain ``;`` and use ``}}`` for a literal
    closing brace.
    """

    pairs: List[Tuple[str, str]] = []
    pos = 0
    length = len(raw)
    while pos < length:
        while pos < length and raw[pos] in "; \t\r\n":
            pos += 1
        if pos >= length:
            break
        eq = raw.find("=", pos)
        if eq == -1 or ";" in raw[pos:eq]:
            raise ConfigError(f"Malformed connection string near '{raw[pos:pos + 20]}'.")
        key = raw[pos:eq].strip()
        pos = eq + 1
        while pos < length and raw[pos] in " \t":
            pos += 1
        if pos < length and raw[pos] == "{":
            pos += 1
            chars: List[str] = []
            while True:
                if pos >= length:
                    raise ConfigError(f"Unterminated braced value for '{key}' in connection string.")
                if raw[pos] == "}":
                    if raw[pos + 1:pos + 2] == "}":
                        chars.append("}")
                        pos += 2
                        continue
                    pos += 1
                    break
                chars.append(raw[pos])
                pos += 1
            value = "".join(chars)
            end = raw.find(";", pos)
            end = length if end == -1 else end
            if raw[pos:end].strip():
                raise ConfigError(f"Unexpected text after braced value for '{key}' in connection string.")
        else:
            end = raw.find(";", pos)
            end = length if end == -1 else end
            value = raw[pos:end].strip()
        pos = end
        pairs.append((key, value))
    return pairs


def format_connection_string(pairs: Sequence[Tuple[str, str]]) -> str:
    return ";".join(f"{key}={_quote(value)}" for key, value in pairs)


def _quote(value: str) -> str:
    if any(ch in value for ch in ";{} \t"):
        return "{" + value.replace("}", "}}") + "}"
    return value


def build_master_connection_string(raw: Optional[str], driver: Optional[str] = None) -> str:
    """Point *raw* at the administrative catalog, whatever catalog it names."""

    if raw is None or not raw.strip():
        raise ConfigError("Administrative connection string is missing.")
    pairs = [(key, value) for key, value in parse_connection_string(raw) if key.lower() not in CATALOG_KEYS]
    if driver and not any(key.lower() == "driver" for key, _ in pairs):
        pairs.insert(0, ("DRIVER", driver))
    pairs.append(("DATABASE", ADMINISTRATIVE_CATALOG))
    return format_connection_string(pairs)


def redact_connection_string(connection_string: str) -> str:
    pairs = [
        (key, "***" if key.lower() in SENSITIVE_KEYS else value)
        for key, value in parse_connection_string(connection_string)
    ]
    return format_connection_string(pairs)


__all__ = [
    "ADMINISTRATIVE_CATALOG",
    "DatabaseError",
    "PyodbcConnector",
    "ServerConnector",
    "build_master_connection_string",
    "format_connection_string",
    "parse_connection_string",
    "redact_connection_string",
]
