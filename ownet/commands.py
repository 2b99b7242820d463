"""owserver commands built on a session.

Each command takes the current ``Session`` and returns the replacement
session together with a result:

- ``Ok`` carrying the command's value
- ``ProtocolError`` carrying the server's (positive) error code
- ``TransportError`` or ``DecodeError`` when the exchange itself failed
"""

from collections.abc import Iterable
from typing import Any

from .constants import HEADER_SIZE, MAX_PAYLOAD_SIZE, MAX_READ_SIZE, Flag, MsgType
from .packets import decode_response_header, encode_request, flags_from
from .results import DecodeError, Ok, ProtocolError, Result, TransportError, TransportErrorKind
from .session import Exchange, Session
from .transport import Transport

Flags = Iterable[Flag | str]

_ON = b"1"
_OFF = b"0"


def _path_bytes(path: str | bytes) -> bytes:
    if isinstance(path, str):
        path = path.encode("utf-8")
    return path + b"\x00"


def _value_bytes(value: Any) -> bytes:
    if value is True or value == "on":
        return _ON
    if value is False or value == "off":
        return _OFF
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f"Cannot write value of type {type(value).__name__}; pass bytes, a bool, 'on' or 'off'")


def receive_message(
    transport: Transport,
    handle: Any,
    expects_payload: bool,
    max_keepalives: int,
    max_payload: int = MAX_PAYLOAD_SIZE,
) -> Result:
    """Read reply headers until one completes the request.

    A header with no payload is a keep-alive when a payload is expected; the
    server sends those while a slow bus operation is still running.

    Args:
        transport: Transport owning ``handle``
        handle: Connected socket handle
        expects_payload: Whether an empty reply should be waited past
        max_keepalives: Empty headers tolerated before giving up
        max_payload: Largest declared payload that will be received

    Returns:
        ``Ok`` with the payload bytes, ``ProtocolError``, ``DecodeError`` or a
        ``STALLED`` ``TransportError``

    Raises:
        OSError: Propagated from the transport
    """
    keepalives = 0
    while True:
        raw = transport.recv(handle, HEADER_SIZE)
        try:
            header = decode_response_header(raw)
        except ValueError as exc:
            return DecodeError(str(exc))

        if header.return_code < 0:
            return ProtocolError(code=-header.return_code, header=header)

        if header.payload_size > 0:
            if header.payload_size > max_payload:
                return DecodeError(f"Declared payload of {header.payload_size} bytes exceeds {max_payload}")
            payload = transport.recv(handle, header.payload_size)
            if len(payload) != header.payload_size:
                return DecodeError(f"Expected {header.payload_size} payload bytes, got {len(payload)}")
            return Ok(payload, header)

        if not expects_payload:
            return Ok(b"", header)

        keepalives += 1
        if keepalives > max_keepalives:
            return TransportError(
                kind=TransportErrorKind.STALLED,
                detail=f"No payload after {max_keepalives} keep-alive headers",
            )


def _exchange(request: bytes, expects_payload: bool, max_keepalives: int) -> Exchange:
    def exchange(transport: Transport, handle: Any) -> Result:
        transport.send(handle, request)
        return receive_message(transport, handle, expects_payload, max_keepalives)

    return exchange


def _call(
    session: Session,
    msg_type: MsgType,
    payload: bytes,
    flags: Flags,
    expects_payload: bool,
    expected_size: int = 0,
) -> tuple[Session, Result]:
    request = encode_request(msg_type, payload, flags_from(flags, session.flags), expected_size)
    return session.run(_exchange(request, expects_payload, session.max_keepalives))


def ping(session: Session, flags: Flags = ()) -> tuple[Session, Result]:
    """Send a NOP to check the server is answering."""
    session, result = _call(session, MsgType.NOP, b"", flags, expects_payload=False)
    if isinstance(result, Ok):
        result = Ok(None, result.header)
    return session, result


def present(session: Session, path: str | bytes, flags: Flags = ()) -> tuple[Session, Result]:
    """Check whether ``path`` exists on the bus.

    A rejected path is reported as ``Ok(False)``, not as an error.
    """
    session, result = _call(session, MsgType.PRESENT, _path_bytes(path), flags, expects_payload=False)
    if isinstance(result, Ok):
        result = Ok(True, result.header)
    elif isinstance(result, ProtocolError):
        result = Ok(False, result.header)
    return session, result


def dir(session: Session, path: str | bytes = "/", flags: Flags = ()) -> tuple[Session, Result]:  # noqa: A001
    """List the entries below ``path`` in server order."""
    session, result = _call(session, MsgType.DIRALLSLASH, _path_bytes(path), flags, expects_payload=True)
    if isinstance(result, Ok):
        # "/43.E6ABD6010000/,/42.C2D154000000/\0"
        listing = result.value.rstrip(b"\x00").decode("utf-8", errors="replace")
        entries = listing.split(",") if listing else []
        result = Ok(entries, result.header)
    return session, result


def read(session: Session, path: str | bytes, flags: Flags = ()) -> tuple[Session, Result]:
    """Read the raw value at ``path``; parsing is left to the caller."""
    return _call(session, MsgType.READ, _path_bytes(path), flags, expects_payload=True, expected_size=MAX_READ_SIZE)


def write(session: Session, path: str | bytes, value: Any, flags: Flags = ()) -> tuple[Session, Result]:
    """Write ``value`` to ``path``.

    Args:
        session: Current session
        path: Property path, e.g. ``/42.C2D154000000/PIO.A``
        value: ``bytes``, or ``True``/``"on"``/``False``/``"off"`` for switches
        flags: Extra flags for this request

    Raises:
        TypeError: If ``value`` cannot be written
    """
    data = _value_bytes(value)
    session, result = _call(
        session,
        MsgType.WRITE,
        _path_bytes(path) + data,
        flags,
        expects_payload=False,
        expected_size=len(data),
    )
    if isinstance(result, Ok):
        result = Ok(None, result.header)
    return session, result
