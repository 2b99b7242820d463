# mypy: ignore-errors
"""Loopback owserver serving an in-memory tree.

Speaks the owserver wire format well enough to exercise the client over a
real socket: NOP, PRESENT, DIR/DIRALL/DIRALLSLASH, READ and WRITE.
"""
import logging
import socket
import threading
from collections.abc import Mapping
from contextlib import contextmanager

from .constants import ERROR_CODES_PATH, HEADER_SIZE, MAX_PAYLOAD_SIZE, Flag, MsgType
from .packets import RequestHeader, ResponseHeader, decode_request_header
from .transport import recv_exact

ERROR_CATALOG = ",".join(
    [
        "Good result",
        "Startup - command line parameters invalid",
        "legacy - No such en opened",
        "legacy - No such entity",
        "legacy - Not a directory",
        "legacy - Read only entity",
        "legacy - Bad request",
    ]
)

ERR_NO_ENTITY = 3
ERR_NOT_DIRECTORY = 4
ERR_READ_ONLY = 5
ERR_BAD_REQUEST = 6

_SLOW_TYPES = (MsgType.READ, MsgType.DIR, MsgType.DIRALL, MsgType.DIRALLSLASH)
_ACCEPT_POLL = 0.1  # seconds between checks for stop()


def _normalize(path: str) -> str:
    return "/" + path.strip("/")


class BusTree:
    """Leaf paths and their values, with directories implied by the paths."""

    def __init__(self, values: Mapping[str, bytes] | None = None, read_only: set[str] | None = None):
        self._values = {_normalize(path): bytes(value) for path, value in (values or {}).items()}
        self._read_only = {_normalize(path) for path in (read_only or set())}
        self._lock = threading.Lock()
        self._values.setdefault(ERROR_CODES_PATH, ERROR_CATALOG.encode() + b"\x00")
        self._read_only.add(ERROR_CODES_PATH)

    def is_leaf(self, path: str) -> bool:
        return _normalize(path) in self._values

    def is_dir(self, path: str) -> bool:
        prefix = _normalize(path).rstrip("/") + "/"
        return any(leaf.startswith(prefix) for leaf in self._values)

    def children(self, path: str) -> list[str]:
        """Entries directly below ``path``; directories end with a slash."""
        prefix = _normalize(path).rstrip("/") + "/"
        entries: list[str] = []
        with self._lock:
            for leaf in self._values:
                if not leaf.startswith(prefix) or leaf == ERROR_CODES_PATH:
                    continue
                head, sep, _ = leaf[len(prefix) :].partition("/")
                entry = prefix + head + sep
                if entry not in entries:
                    entries.append(entry)
        return entries

    def get(self, path: str) -> bytes | None:
        with self._lock:
            return self._values.get(_normalize(path))

    def set(self, path: str, value: bytes) -> bool:
        path = _normalize(path)
        with self._lock:
            if path not in self._values or path in self._read_only:
                return False
            self._values[path] = value
            return True


class _ClientHandler(threading.Thread):
    """Handle a single client connection."""

    def __init__(self, sock: socket.socket, addr, tree: BusTree, keepalives: int = 0):
        """Initialize client handler.

        Args:
            sock: Client socket
            addr: Client address
            tree: Tree to serve
            keepalives: Empty headers sent ahead of every READ/DIR reply
        """
        super().__init__(daemon=True)
        self.sock = sock
        self.addr = addr
        self.tree = tree
        self.keepalives = keepalives

    def run(self):
        """Answer requests until the client drops persistence or disconnects."""
        with self.sock:
            try:
                while self._answer(self._next_request()):
                    pass
            except (OSError, ValueError) as exc:
                logging.debug("owserver connection from %s ended: %s", self.addr, exc)

    def _next_request(self) -> tuple[RequestHeader, bytes]:
        header, _ = decode_request_header(recv_exact(self.sock, HEADER_SIZE))
        if header.payload_size > MAX_PAYLOAD_SIZE:
            raise ValueError(f"request payload of {header.payload_size} bytes refused")
        payload = recv_exact(self.sock, header.payload_size) if header.payload_size > 0 else b""
        return header, payload

    def _answer(self, request: tuple[RequestHeader, bytes]) -> bool:
        """Send the reply to one request.

        Returns:
            Whether persistence was granted and the connection stays open
        """
        header, payload = request
        persistent = bool(header.flags & Flag.PERSISTENCE)
        granted = int(Flag.PERSISTENCE) if persistent else 0
        ret, body, size = self._handle(header.msg_type, payload, header.size)

        frames = []
        if ret >= 0 and header.msg_type in _SLOW_TYPES:
            frames.extend(ResponseHeader(payload_size=-1, flags=granted).to_bytes() for _ in range(self.keepalives))
        frames.append(ResponseHeader(payload_size=len(body), return_code=ret, flags=granted, size=size).to_bytes())
        self.sock.sendall(b"".join(frames) + body)
        return persistent

    def _handle(self, msg_type: int, payload: bytes, size: int) -> tuple[int, bytes, int]:
        """Run one request against the tree.

        Returns:
            Return code, reply payload and reply size field
        """
        path_raw, _, value = payload.partition(b"\x00")
        path = path_raw.decode("utf-8", errors="replace") or "/"

        if msg_type == MsgType.NOP:
            return 0, b"", 0

        if msg_type == MsgType.PRESENT:
            if self.tree.is_leaf(path) or self.tree.is_dir(path) or path == "/":
                return 0, b"", 0
            return -ERR_NO_ENTITY, b"", 0

        if msg_type in (MsgType.DIR, MsgType.DIRALL, MsgType.DIRALLSLASH):
            if self.tree.is_leaf(path):
                return -ERR_NOT_DIRECTORY, b"", 0
            if path != "/" and not self.tree.is_dir(path):
                return -ERR_NO_ENTITY, b"", 0
            body = ",".join(self.tree.children(path)).encode() + b"\x00"
            return 0, body, len(body) - 1

        if msg_type == MsgType.READ:
            data = self.tree.get(path)
            if data is None:
                return -ERR_NO_ENTITY, b"", 0
            data = data[:size] if size > 0 else data
            return len(data), data, len(data)

        if msg_type == MsgType.WRITE:
            if self.tree.get(path) is None:
                return -ERR_NO_ENTITY, b"", 0
            if not self.tree.set(path, value[:size]):
                return -ERR_READ_ONLY, b"", 0
            return 0, b"", size

        return -ERR_BAD_REQUEST, b"", 0


class OwServer:
    """TCP server answering owserver requests from a ``BusTree``."""

    def __init__(self, host: str = "127.0.0.1", port: int = 0, tree: BusTree | None = None, keepalives: int = 0):
        """Initialize server.

        Args:
            host: Host to bind to
            port: Port to bind to, 0 for an ephemeral port
            tree: Tree to serve
            keepalives: Empty headers sent ahead of every READ/DIR reply
        """
        self.host = host
        self.port = port
        self.tree = tree if tree is not None else BusTree()
        self.keepalives = keepalives
        self._running = threading.Event()
        self._stopping = threading.Event()

    @property
    def address(self) -> tuple[str, int]:
        """Bound host and port; valid once the server is running."""
        return self.host, self.port

    def wait_until_running(self, timeout: float = 5.0) -> bool:
        return self._running.wait(timeout)

    def serve_forever(self):
        """Accept connections until ``stop`` is called."""
        with socket.create_server((self.host, self.port)) as listener:
            listener.settimeout(_ACCEPT_POLL)
            self.port = listener.getsockname()[1]
            self._running.set()
            logging.info("owserver listening on %s:%d", self.host, self.port)

            while not self._stopping.is_set():
                try:
                    conn, addr = listener.accept()
                except TimeoutError:
                    continue
                conn.settimeout(None)
                logging.debug("owserver connection from %s", addr)
                _ClientHandler(conn, addr, self.tree, self.keepalives).start()

        logging.info("owserver on %s:%d stopped", self.host, self.port)

    def stop(self):
        """Ask the accept loop to exit; open connections finish on their own."""
        self._stopping.set()


@contextmanager
def run_server(tree: BusTree | None = None, host: str = "127.0.0.1", port: int = 0, keepalives: int = 0):
    """Context manager to spin up a server in a background thread.

    Args:
        tree: Tree to serve
        host: Host to bind to
        port: Port to bind to
        keepalives: Empty headers sent ahead of every READ/DIR reply

    Yields:
        The running ``OwServer``
    """
    server = OwServer(host, port, tree, keepalives)
    thread = threading.Thread(target=server.serve_forever, name="owserver", daemon=True)
    thread.start()
    if not server.wait_until_running():
        raise RuntimeError(f"owserver did not start on {host}:{port}")
    try:
        yield server
    finally:
        server.stop()
        thread.join(timeout=5.0)
