"""Error code resolution and client exceptions."""

import logging
from collections.abc import Mapping
from types import MappingProxyType

from . import commands
from .constants import ERROR_CODES_PATH
from .results import DecodeError, Ok, ProtocolError, TransportError, TransportErrorKind
from .session import Session

# owserver reports errors as the negated index into a catalog it serves
# itself, e.g. "Good result,Startup - command line parameters invalid,..."
ErrorTable = Mapping[int, str]

EMPTY_TABLE: ErrorTable = MappingProxyType({})


def build_table(catalog: bytes | str) -> ErrorTable:
    """Parse the comma separated error catalog into a read-only table."""
    if isinstance(catalog, bytes):
        catalog = catalog.decode("utf-8", errors="replace")
    catalog = catalog.rstrip("\x00")
    if not catalog:
        return EMPTY_TABLE
    return MappingProxyType(dict(enumerate(catalog.split(","))))


def lookup(table: ErrorTable, code: int) -> str:
    return table.get(code, f"Unknown error {code}")


def load_table(session: Session) -> tuple[Session, ErrorTable]:
    """Fetch the catalog from the server.

    Failing to load it is not fatal: an empty table is returned and codes
    resolve to ``Unknown error N``.
    """
    session, result = commands.read(session, ERROR_CODES_PATH, flags=())
    if isinstance(result, Ok):
        return session, build_table(result.value)
    if isinstance(result, ProtocolError):
        logging.error("Unable to read error status codes: %d", result.code)
    elif isinstance(result, TransportError):
        logging.error(
            "Error codes not loaded from owserver at %s:%d (%s): %s",
            session.address,
            session.port,
            result.kind.value,
            result.detail,
        )
    elif isinstance(result, DecodeError):
        logging.error(
            "Malformed reply loading error codes from owserver at %s:%d: %s",
            session.address,
            session.port,
            result.detail,
        )
    return session, EMPTY_TABLE


# ----------------------------------------------------------------------------
# Exceptions raised by OwnetClient
# ----------------------------------------------------------------------------


class OwnetError(Exception):
    """Base class for client errors."""


class OwnetProtocolError(OwnetError):
    """The server rejected a request."""

    def __init__(self, code: int, message: str, path: str | None = None):
        self.code = code
        self.message = message
        self.path = path
        where = f" ({path})" if path else ""
        super().__init__(f"{message}{where}")


class OwnetConnectionError(OwnetError, ConnectionError):
    """The server could not be reached or the connection failed mid-request."""

    def __init__(self, kind: TransportErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class OwnetDecodeError(OwnetError):
    """The server sent a malformed reply."""
