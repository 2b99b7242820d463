"""Typed outcomes returned by the protocol engine."""

import errno
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .packets import ResponseHeader


class TransportErrorKind(Enum):
    """Why a transport operation failed."""

    CLOSED = "closed"
    NOT_CONNECTED = "not_connected"
    REFUSED = "refused"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    STALLED = "stalled"  # too many keep-alive headers
    OTHER = "other"


# The peer may drop idle sockets that were not granted persistence
RETRYABLE_KINDS = frozenset({TransportErrorKind.CLOSED, TransportErrorKind.NOT_CONNECTED})


@dataclass(frozen=True)
class Ok:
    """A completed exchange with the command's value."""

    value: Any = None
    header: ResponseHeader | None = None


@dataclass(frozen=True)
class ProtocolError:
    """The server rejected the request with a negative return code."""

    code: int
    header: ResponseHeader | None = None


@dataclass(frozen=True)
class TransportError:
    """The exchange could not be carried out over the socket."""

    kind: TransportErrorKind
    detail: str = ""

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


@dataclass(frozen=True)
class DecodeError:
    """The server sent something that is not a valid reply."""

    detail: str = ""


Result = Union[Ok, ProtocolError, TransportError, DecodeError]


_ERRNO_KINDS = {
    errno.ECONNRESET: TransportErrorKind.CLOSED,
    errno.EPIPE: TransportErrorKind.CLOSED,
    errno.ECONNABORTED: TransportErrorKind.CLOSED,
    errno.ENOTCONN: TransportErrorKind.NOT_CONNECTED,
    errno.EBADF: TransportErrorKind.NOT_CONNECTED,
    errno.ECONNREFUSED: TransportErrorKind.REFUSED,
    errno.EHOSTUNREACH: TransportErrorKind.UNREACHABLE,
    errno.ENETUNREACH: TransportErrorKind.UNREACHABLE,
    errno.ETIMEDOUT: TransportErrorKind.TIMEOUT,
}


def classify_os_error(exc: OSError) -> TransportError:
    """Map a socket exception onto a ``TransportError``.

    Args:
        exc: Exception raised by a transport call

    Returns:
        Tagged transport error; unknown errors are ``OTHER``
    """
    if isinstance(exc, TimeoutError):
        kind = TransportErrorKind.TIMEOUT
    elif isinstance(exc, socket.gaierror):
        kind = TransportErrorKind.UNREACHABLE
    elif exc.errno in _ERRNO_KINDS:
        kind = _ERRNO_KINDS[exc.errno]
    elif isinstance(exc, ConnectionRefusedError):
        kind = TransportErrorKind.REFUSED
    elif isinstance(exc, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        kind = TransportErrorKind.CLOSED
    elif isinstance(exc, ConnectionError):
        # EOF from the peer surfaces as a bare ConnectionError
        kind = TransportErrorKind.CLOSED
    else:
        kind = TransportErrorKind.OTHER
    return TransportError(kind=kind, detail=str(exc))
