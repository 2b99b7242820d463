"""Shared fixtures: a scripted transport standing in for a socket."""

import pytest

from ownet import Flag, ResponseHeader, Session


def reply(payload_size: int = 0, ret: int = 0, flags: int = 0, size: int = 0) -> bytes:
    """Bytes of a server reply header."""
    return ResponseHeader(payload_size=payload_size, return_code=ret, flags=flags, size=size).to_bytes()


PERSIST = int(Flag.PERSISTENCE)


class FakeTransport:
    """Transport that replays scripted replies and records what was sent.

    ``replies`` is consumed by ``recv`` in order; an exception in the list is
    raised instead of returned. ``send_errors`` and ``connect_errors`` work
    the same way for ``send`` and ``connect`` (``None`` means succeed).
    """

    def __init__(self, replies=None, send_errors=None, connect_errors=None):
        self.replies = list(replies or [])
        self.send_errors = list(send_errors or [])
        self.connect_errors = list(connect_errors or [])
        self.connects = 0
        self.send_attempts = 0
        self.sent: list[tuple[str, bytes]] = []
        self.recv_sizes: list[int] = []
        self.closed: list[str] = []

    def connect(self, address, port):
        if self.connect_errors:
            error = self.connect_errors.pop(0)
            if error is not None:
                raise error
        self.connects += 1
        return f"sock{self.connects}"

    def send(self, handle, data):
        self.send_attempts += 1
        if self.send_errors:
            error = self.send_errors.pop(0)
            if error is not None:
                raise error
        self.sent.append((handle, data))

    def recv(self, handle, n):
        self.recv_sizes.append(n)
        item = self.replies.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self, handle):
        self.closed.append(handle)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(transport: FakeTransport) -> Session:
    return Session.new("owserver.local", 4304, ["persistence"], transport=transport)
