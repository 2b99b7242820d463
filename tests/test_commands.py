"""Tests for the ping/present/dir/read/write exchanges."""

import dataclasses
import errno

import pytest
from conftest import PERSIST, FakeTransport, reply

from ownet import (
    HEADER_SIZE,
    MAX_PAYLOAD_SIZE,
    MAX_READ_SIZE,
    DecodeError,
    MsgType,
    Ok,
    ProtocolError,
    Session,
    TransportError,
    TransportErrorKind,
    commands,
    decode_request_header,
)


def sent_request(transport: FakeTransport, index: int = 0):
    return decode_request_header(transport.sent[index][1])


# ----------------------------------------------------------------------------
# ping
# ----------------------------------------------------------------------------


def test_ping_sends_nop(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(flags=PERSIST)]

    _, result = commands.ping(session)

    header, payload = sent_request(transport)
    assert header.msg_type == MsgType.NOP
    assert payload == b""
    assert isinstance(result, Ok)
    assert result.value is None


def test_ping_accepts_empty_reply_immediately(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(payload_size=0)]

    _, result = commands.ping(session)

    assert isinstance(result, Ok)
    assert transport.recv_sizes == [HEADER_SIZE]


def test_ping_unreachable(session: Session, transport: FakeTransport) -> None:
    transport.send_errors = [OSError(errno.ENETUNREACH, "Network is unreachable")]

    _, result = commands.ping(session)

    assert isinstance(result, TransportError)
    assert result.kind == TransportErrorKind.UNREACHABLE
    assert transport.connects == 1


# ----------------------------------------------------------------------------
# present
# ----------------------------------------------------------------------------


def test_present_true(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(ret=0)]

    _, result = commands.present(session, "/28.32D7E0080000/temperature")

    header, payload = sent_request(transport)
    assert header.msg_type == MsgType.PRESENT
    assert payload == b"/28.32D7E0080000/temperature\x00"
    assert result.value is True


def test_present_false_on_protocol_error(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(ret=-1)]

    _, result = commands.present(session, "/")

    assert isinstance(result, Ok)
    assert result.value is False


def test_present_transport_error_propagates(session: Session, transport: FakeTransport) -> None:
    transport.send_errors = [OSError(errno.EHOSTUNREACH, "No route to host")]

    _, result = commands.present(session, "/")

    assert isinstance(result, TransportError)


# ----------------------------------------------------------------------------
# dir
# ----------------------------------------------------------------------------


def test_dir_parses_listing(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(payload_size=36, size=35), b"/43.E6ABD6010000/,/42.C2D154000000/\x00"]

    _, result = commands.dir(session, "/")

    header, payload = sent_request(transport)
    assert header.msg_type == MsgType.DIRALLSLASH
    assert payload == b"/\x00"
    assert transport.recv_sizes == [HEADER_SIZE, 36]
    assert result.value == ["/43.E6ABD6010000/", "/42.C2D154000000/"]


def test_dir_single_entry(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(payload_size=18, size=17), b"/43.E6ABD6010000/\x00"]

    _, result = commands.dir(session, "/")

    assert result.value == ["/43.E6ABD6010000/"]


def test_dir_empty_listing(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(payload_size=1), b"\x00"]

    _, result = commands.dir(session, "/")

    assert result.value == []


def test_dir_waits_past_keepalives(session: Session, transport: FakeTransport) -> None:
    transport.replies = [
        reply(payload_size=0),
        reply(payload_size=-1),
        reply(payload_size=0),
        reply(payload_size=18, size=17),
        b"/43.E6ABD6010000/\x00",
    ]

    _, result = commands.dir(session, "/")

    assert result.value == ["/43.E6ABD6010000/"]
    assert len(transport.sent) == 1
    assert transport.recv_sizes == [HEADER_SIZE] * 4 + [18]


def test_dir_protocol_error(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(ret=-1)]

    _, result = commands.dir(session, "/badpath")

    assert isinstance(result, ProtocolError)
    assert result.code == 1


# ----------------------------------------------------------------------------
# read
# ----------------------------------------------------------------------------


def test_read_returns_payload(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(payload_size=12, ret=12, size=12), b"       21.25"]

    _, result = commands.read(session, "/28.32D7E0080000/temperature")

    header, payload = sent_request(transport)
    assert header.msg_type == MsgType.READ
    assert header.size == MAX_READ_SIZE
    assert payload == b"/28.32D7E0080000/temperature\x00"
    assert transport.recv_sizes == [HEADER_SIZE, 12]
    assert result.value == b"       21.25"


def test_read_waits_for_a_payload(session: Session, transport: FakeTransport) -> None:
    transport.replies = [
        reply(payload_size=-1),
        reply(payload_size=-1),
        reply(payload_size=-1),
        reply(payload_size=12, ret=12, size=12),
        b"       21.25",
    ]

    _, result = commands.read(session, "/28.32D7E0080000/temperature")

    assert result.value == b"       21.25"
    assert len(transport.sent) == 1


def test_read_binary_data(session: Session, transport: FakeTransport) -> None:
    data = bytes([1, 2, 3, 4, 0])
    transport.replies = [reply(payload_size=len(data)), data]

    _, result = commands.read(session, "/binary/data")

    assert result.value == data


def test_read_protocol_error(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(ret=-1)]

    _, result = commands.read(session, "/badpath")

    assert isinstance(result, ProtocolError)
    assert result.code == 1


def test_read_gives_up_after_too_many_keepalives(transport: FakeTransport) -> None:
    session = Session.new("owserver.local", flags=["persistence"], transport=transport, max_keepalives=2)
    transport.replies = [reply(payload_size=0, flags=PERSIST)] * 3

    session, result = commands.read(session, "/slow")

    assert isinstance(result, TransportError)
    assert result.kind == TransportErrorKind.STALLED
    assert not result.retryable
    assert session.socket is None
    assert transport.closed == ["sock1"]
    assert transport.replies == []


def test_short_payload_is_a_decode_error(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(payload_size=12), b"  21"]

    session, result = commands.read(session, "/28.32D7E0080000/temperature")

    assert isinstance(result, DecodeError)
    assert session.socket is None


def test_oversized_payload_is_refused_unread(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(payload_size=MAX_PAYLOAD_SIZE + 1, size=12, flags=PERSIST)]

    session, result = commands.read(session, "/28.32D7E0080000/temperature")

    assert isinstance(result, DecodeError)
    assert str(MAX_PAYLOAD_SIZE + 1) in result.detail
    assert transport.recv_sizes == [HEADER_SIZE]
    assert session.socket is None
    assert transport.closed == ["sock1"]


def test_payload_at_the_limit_is_received(session: Session, transport: FakeTransport) -> None:
    data = b"x" * MAX_PAYLOAD_SIZE
    transport.replies = [reply(payload_size=MAX_PAYLOAD_SIZE, flags=PERSIST), data]

    _, result = commands.read(session, "/big")

    assert result.value == data


def test_high_flag_bits_are_encoded(session: Session, transport: FakeTransport) -> None:
    session = dataclasses.replace(session, flags=0x80000004)
    transport.replies = [reply(flags=PERSIST)]

    _, result = commands.ping(session)

    header, _ = sent_request(transport)
    assert isinstance(result, Ok)
    assert header.flags == 0x80000004


# ----------------------------------------------------------------------------
# write
# ----------------------------------------------------------------------------


def test_write_formats_request(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(size=1)]

    _, result = commands.write(session, "/42.C2D154000000/PIO.A", b"1")

    header, payload = sent_request(transport)
    assert header.msg_type == MsgType.WRITE
    assert header.size == 1
    assert payload == b"/42.C2D154000000/PIO.A\x001"
    assert result == Ok(None, result.header)
    assert transport.recv_sizes == [HEADER_SIZE]


def test_write_size_matches_value_length(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply()]

    commands.write(session, "/test", b"test")

    header, payload = sent_request(transport)
    assert header.size == 4
    assert payload.endswith(b"\x00test")


@pytest.mark.parametrize("value, expected", [(True, b"1"), ("on", b"1"), (False, b"0"), ("off", b"0")])
def test_write_switch_values(session: Session, transport: FakeTransport, value, expected: bytes) -> None:
    transport.replies = [reply()]

    commands.write(session, "/switch", value)

    _, payload = sent_request(transport)
    assert payload == b"/switch\x00" + expected


@pytest.mark.parametrize("value", [1.5, 7, None, "hello"])
def test_write_rejects_other_values(session: Session, transport: FakeTransport, value) -> None:
    with pytest.raises(TypeError):
        commands.write(session, "/switch", value)
    assert transport.connects == 0
    assert transport.send_attempts == 0


def test_write_protocol_error(session: Session, transport: FakeTransport) -> None:
    transport.replies = [reply(ret=-1)]

    _, result = commands.write(session, "/badpath", b"1")

    assert isinstance(result, ProtocolError)
    assert result.code == 1
