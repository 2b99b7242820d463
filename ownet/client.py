"""Thread-safe owserver client."""

import threading
from collections.abc import Callable, Iterable
from typing import Any

from . import commands
from .config import ClientConfig
from .constants import DEFAULT_MAX_KEEPALIVES, DEFAULT_PORT, DEFAULT_TIMEOUT, Flag
from .errors import (
    EMPTY_TABLE,
    ErrorTable,
    OwnetConnectionError,
    OwnetDecodeError,
    OwnetProtocolError,
    load_table,
    lookup,
)
from .results import DecodeError, Ok, ProtocolError, Result, TransportError
from .session import Session
from .transport import TcpTransport, Transport

Flags = Iterable[Flag | str]

_TRUE = {"1", "true"}
_FALSE = {"0", "false"}


class OwnetClient:
    """owserver client that raises on failure.

    Wraps a ``Session`` value behind a lock so one client can be shared
    between threads; requests are serialized over the single connection.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = DEFAULT_PORT,
        flags: Flags = ("persistence", "uncached"),
        timeout: float = DEFAULT_TIMEOUT,
        max_keepalives: int = DEFAULT_MAX_KEEPALIVES,
        transport: Transport | None = None,
        load_errors: bool = True,
    ):
        """Initialize client.

        The server's error catalog is read right away; if that fails the
        client still works and reports errors by number.

        Args:
            host: owserver hostname
            port: owserver port
            flags: Flags sent with every request
            timeout: Socket timeout in seconds (ignored when ``transport`` is given)
            max_keepalives: Empty headers tolerated while waiting for a value
            transport: Stream transport, a ``TcpTransport`` by default
            load_errors: Whether to fetch the error catalog on start
        """
        self._lock = threading.Lock()
        self._session = Session.new(
            host,
            port,
            flags,
            transport=transport if transport is not None else TcpTransport(timeout),
            max_keepalives=max_keepalives,
        )
        self._errors: ErrorTable = EMPTY_TABLE
        if load_errors:
            with self._lock:
                self._session, self._errors = load_table(self._session)

    @classmethod
    def from_config(cls, config: ClientConfig, transport: Transport | None = None) -> "OwnetClient":
        return cls(
            host=config.host,
            port=config.port,
            flags=config.flags,
            timeout=config.timeout,
            max_keepalives=config.max_keepalives,
            transport=transport,
        )

    def __enter__(self) -> "OwnetClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def error_table(self) -> ErrorTable:
        return self._errors

    def _call(self, command: Callable[..., tuple[Session, Result]], *args: Any, path: str | None = None) -> Any:
        with self._lock:
            self._session, result = command(self._session, *args)

        if isinstance(result, Ok):
            return result.value
        if isinstance(result, ProtocolError):
            raise OwnetProtocolError(result.code, lookup(self._errors, result.code), path)
        if isinstance(result, TransportError):
            raise OwnetConnectionError(result.kind, result.detail)
        if isinstance(result, DecodeError):
            raise OwnetDecodeError(result.detail)
        raise TypeError(f"Unexpected result: {result!r}")

    def ping(self, flags: Flags = ()) -> None:
        self._call(commands.ping, flags)

    def present(self, path: str, flags: Flags = ()) -> bool:
        return self._call(commands.present, path, flags, path=path)

    def dir(self, path: str = "/", flags: Flags = ()) -> list[str]:
        return self._call(commands.dir, path, flags, path=path)

    def read(self, path: str, flags: Flags = ()) -> bytes:
        return self._call(commands.read, path, flags, path=path)

    def read_float(self, path: str, flags: Flags = ()) -> float:
        """Read a numeric value such as ``b"       21.25"``.

        Raises:
            ValueError: If the value is not a number
        """
        value = self.read(path, flags)
        try:
            return float(value.strip().decode("ascii"))
        except ValueError:
            raise ValueError("Not a float") from None

    def read_bool(self, path: str, flags: Flags = ()) -> bool:
        """Read a switch style value (``0``/``1``/``false``/``true``).

        Raises:
            ValueError: If the value is not a boolean
        """
        value = self.read(path, flags).strip().decode("ascii", errors="replace").lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ValueError("Not a boolean")

    def write(self, path: str, value: Any, flags: Flags = ()) -> None:
        """Write ``value`` to ``path``.

        ``str`` values other than ``"on"``/``"off"`` are sent UTF-8 encoded.
        """
        if isinstance(value, str) and value not in ("on", "off"):
            value = value.encode("utf-8")
        self._call(commands.write, path, value, flags, path=path)

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            self._session = self._session.close()
