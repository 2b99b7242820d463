"""Connection state for talking to one owserver."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from .constants import DEFAULT_FLAGS, DEFAULT_MAX_KEEPALIVES, DEFAULT_PORT, Flag
from .packets import flags_from, persistence_granted
from .results import DecodeError, Ok, ProtocolError, Result, TransportError, classify_os_error
from .transport import TcpTransport, Transport

# One full send + receive over a live handle
Exchange = Callable[[Transport, Any], Result]


@dataclass(frozen=True)
class Session:
    """Immutable connection state.

    Every operation returns a replacement session; callers keep the latest
    one and pass it to the next command. A session is not safe to share
    between threads without external serialization.

    owserver historically served one request per connection. Persistent
    connections were added later and are only granted per reply, so the
    socket is kept only while replies carry the persistence flag.
    """

    address: str
    port: int = DEFAULT_PORT
    flags: int = int(Flag.PERSISTENCE)
    socket: Any = None
    transport: Transport = field(default_factory=TcpTransport, repr=False, compare=False)
    max_keepalives: int = DEFAULT_MAX_KEEPALIVES

    @classmethod
    def new(
        cls,
        address: str,
        port: int = DEFAULT_PORT,
        flags: Iterable[Flag | str] = DEFAULT_FLAGS,
        transport: Transport | None = None,
        max_keepalives: int = DEFAULT_MAX_KEEPALIVES,
    ) -> "Session":
        """Create an unconnected session.

        Args:
            address: owserver host
            port: owserver port
            flags: Flags sent with every request
            transport: Stream transport, a ``TcpTransport`` by default
            max_keepalives: Empty headers tolerated while waiting for a payload

        Raises:
            ValueError: If a flag name is unknown
        """
        return cls(
            address=address,
            port=port,
            flags=flags_from(flags),
            transport=transport if transport is not None else TcpTransport(),
            max_keepalives=max_keepalives,
        )

    @property
    def connected(self) -> bool:
        return self.socket is not None

    def close(self) -> "Session":
        """Close the socket, if any, and forget it."""
        if self.socket is None:
            return self
        try:
            self.transport.close(self.socket)
        except OSError as exc:
            logging.debug("Error closing socket to %s:%d: %s", self.address, self.port, exc)
        return replace(self, socket=None)

    def connect(self) -> tuple["Session", TransportError | None]:
        """Open a new socket, closing the current one first.

        Returns:
            The connected session and ``None``, or an unconnected session and
            the reason the connection failed
        """
        session = self.close()
        try:
            handle = session.transport.connect(session.address, session.port)
        except OSError as exc:
            error = classify_os_error(exc)
            logging.debug("Unable to connect to %s:%d: %s", session.address, session.port, exc)
            return session, error
        logging.debug("Connected to %s:%d", session.address, session.port)
        return replace(session, socket=handle), None

    def ensure_connected(self) -> tuple["Session", TransportError | None]:
        if self.socket is not None:
            return self, None
        return self.connect()

    def run(self, exchange: Exchange) -> tuple["Session", Result]:
        """Run one exchange, reconnecting and retrying once if the socket was dropped.

        Args:
            exchange: Sends a request over the handle and reads the reply

        Returns:
            Updated session and the outcome of the last attempt
        """
        session, error = self.ensure_connected()
        if error is not None:
            return self, error

        result = session._attempt(exchange)
        if isinstance(result, TransportError) and result.retryable:
            logging.debug("Connection to %s:%d %s, retrying once", session.address, session.port, result.kind.value)
            session, error = session.connect()
            if error is not None:
                return session, error
            result = session._attempt(exchange)

        return session._settle(result), result

    def _attempt(self, exchange: Exchange) -> Result:
        try:
            return exchange(self.transport, self.socket)
        except OSError as exc:
            return classify_os_error(exc)

    def _settle(self, result: Result) -> "Session":
        """Keep or drop the socket depending on how the exchange ended."""
        if isinstance(result, (TransportError, DecodeError)):
            return self.close()
        if isinstance(result, (Ok, ProtocolError)) and result.header is not None:
            if persistence_granted(result.header):
                return self
        logging.debug("Persistence not granted by %s:%d, closing socket", self.address, self.port)
        return self.close()
