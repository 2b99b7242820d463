"""Byte-stream transports used by a session."""

import socket
from typing import Any, Protocol

from .constants import DEFAULT_TIMEOUT, RECV_CHUNK


class Transport(Protocol):
    """Operations a session needs from a stream transport.

    Every method raises ``OSError`` (usually a ``ConnectionError``) on
    failure; sessions turn those into ``TransportError`` results.
    """

    def connect(self, address: str, port: int) -> Any: ...

    def send(self, handle: Any, data: bytes) -> None: ...

    def recv(self, handle: Any, n: int) -> bytes: ...

    def close(self, handle: Any) -> None: ...


def recv_exact(sock: socket.socket, n: int) -> bytes:
    """Receive exactly ``n`` bytes, at most ``RECV_CHUNK`` per call.

    Raises:
        ConnectionError: If the peer closes before ``n`` bytes arrived
    """
    chunks: list[bytes] = []
    remaining = n
    while remaining > 0:
        chunk = sock.recv(min(remaining, RECV_CHUNK))
        if not chunk:
            raise ConnectionError(f"Peer closed with {remaining} of {n} bytes outstanding")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class TcpTransport:
    """Blocking TCP transport with a per-operation timeout."""

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT):
        """Initialize transport.

        Args:
            timeout: Socket timeout in seconds, ``None`` blocks forever
        """
        self.timeout = timeout

    def connect(self, address: str, port: int) -> socket.socket:
        return socket.create_connection((address, port), timeout=self.timeout)

    def send(self, handle: socket.socket, data: bytes) -> None:
        handle.sendall(data)

    def recv(self, handle: socket.socket, n: int) -> bytes:
        return recv_exact(handle, n)

    def close(self, handle: socket.socket) -> None:
        try:
            handle.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        finally:
            handle.close()
