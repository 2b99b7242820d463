"""owserver packet headers and serialization."""

import struct
from collections.abc import Iterable
from dataclasses import dataclass

from .constants import FLAGS_MASK, HEADER_FORMAT, HEADER_SIZE, VERSION, Flag, MsgType

_HEADER = struct.Struct(HEADER_FORMAT)

# ----------------------------------------------------------------------------
# Header structures
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestHeader:
    """Header of a client to server frame."""

    version: int = VERSION
    payload_size: int = 0
    msg_type: int = MsgType.NOP
    flags: int = 0
    size: int = 0
    offset: int = 0

    def to_bytes(self) -> bytes:
        return _HEADER.pack(
            self.version, self.payload_size, self.msg_type, self.flags & FLAGS_MASK, self.size, self.offset
        )


@dataclass(frozen=True)
class ResponseHeader:
    """Header of a server to client frame.

    ``payload_size`` is the number of payload bytes that follow the header;
    zero or negative means none. ``return_code`` is non-negative on success
    and a negated error code otherwise.
    """

    version: int = VERSION
    payload_size: int = 0
    return_code: int = 0
    flags: int = 0
    size: int = 0
    offset: int = 0

    def to_bytes(self) -> bytes:
        return _HEADER.pack(
            self.version, self.payload_size, self.return_code, self.flags & FLAGS_MASK, self.size, self.offset
        )

    @property
    def persistence_granted(self) -> bool:
        return persistence_granted(self)


# ----------------------------------------------------------------------------
# Flags
# ----------------------------------------------------------------------------


def _flag_value(name: Flag | str) -> int:
    if isinstance(name, Flag):
        return int(name)
    if isinstance(name, str):
        member = Flag.__members__.get(name.upper())
        if member is not None:
            return int(member)
    raise ValueError(f"Unknown flag: {name!r}")


def flags_from(names: Iterable[Flag | str], base: int = 0) -> int:
    """Combine named flags into a bitmask.

    Conflicting scale or display flags are OR'ed together like any other;
    the server decides what the combination means.

    Args:
        names: ``Flag`` members or their names (case-insensitive)
        base: Mask to extend

    Returns:
        ``base`` with every named bit set, as an unsigned 32-bit mask

    Raises:
        ValueError: If a name is not a known flag
    """
    value = base
    for name in names:
        value |= _flag_value(name)
    return value & FLAGS_MASK


def persistence_granted(header: ResponseHeader) -> bool:
    """Whether the server will keep the connection open after this reply."""
    return bool(header.flags & Flag.PERSISTENCE)


# ----------------------------------------------------------------------------
# Frame serialization/deserialization
# ----------------------------------------------------------------------------


def encode_request(
    msg_type: MsgType,
    payload: bytes,
    flags: int,
    expected_size: int = 0,
    offset: int = 0,
) -> bytes:
    """Pack a request header and its payload.

    Args:
        msg_type: Message type of the request
        payload: Request payload (usually a NUL terminated path)
        flags: Requested flag mask
        expected_size: Largest value accepted (read) or value length (write)
        offset: Read offset

    Returns:
        Header bytes followed by ``payload``
    """
    header = RequestHeader(
        payload_size=len(payload),
        msg_type=int(msg_type),
        flags=flags,
        size=expected_size,
        offset=offset,
    )
    return header.to_bytes() + payload


def _unpack_header(data: bytes) -> tuple[int, ...]:
    if len(data) < HEADER_SIZE:
        raise ValueError(f"Header needs {HEADER_SIZE} bytes, got {len(data)}")
    return _HEADER.unpack_from(data)


def decode_request_header(data: bytes) -> tuple[RequestHeader, bytes]:
    """Split an outgoing frame into its header and payload.

    Raises:
        ValueError: If ``data`` is shorter than a header
    """
    version, payload_size, msg_type, flags, size, offset = _unpack_header(data)
    header = RequestHeader(
        version=version,
        payload_size=payload_size,
        msg_type=msg_type,
        flags=flags,
        size=size,
        offset=offset,
    )
    return header, bytes(data[HEADER_SIZE:])


def decode_response_header(data: bytes) -> ResponseHeader:
    """Parse the fixed-size header of a server reply.

    Raises:
        ValueError: If ``data`` is shorter than a header
    """
    version, payload_size, return_code, flags, size, offset = _unpack_header(data)
    return ResponseHeader(
        version=version,
        payload_size=payload_size,
        return_code=return_code,
        flags=flags,
        size=size,
        offset=offset,
    )
