"""Tests for the owserver packet codec."""

import pytest

from ownet import (
    HEADER_SIZE,
    Flag,
    MsgType,
    ResponseHeader,
    decode_request_header,
    decode_response_header,
    encode_request,
    flags_from,
    persistence_granted,
)


def test_request_header_layout() -> None:
    """A NOP with the persistence flag packs into six big-endian words."""
    frame = encode_request(MsgType.NOP, b"", flags_from(["persistence"]))
    assert frame == bytes.fromhex("00000000" "00000000" "00000001" "00000004" "00000000" "00000000")


def test_request_roundtrip() -> None:
    payload = b"/28.32D7E0080000/temperature\x00"
    frame = encode_request(MsgType.READ, payload, 0x24, expected_size=65536, offset=0)

    header, body = decode_request_header(frame)
    assert len(frame) == HEADER_SIZE + len(payload)
    assert header.version == 0
    assert header.payload_size == len(payload)
    assert header.msg_type == MsgType.READ
    assert header.flags == 0x24
    assert header.size == 65536
    assert header.offset == 0
    assert body == payload


def test_flags_word_is_unsigned() -> None:
    frame = encode_request(MsgType.NOP, b"", flags_from(["persistence"], base=0x80000000))
    assert frame[12:16] == bytes.fromhex("80000004")

    header, _ = decode_request_header(frame)
    assert header.flags == 0x80000004
    assert flags_from([], base=0x1_00000024) == 0x24


def test_message_type_codes() -> None:
    assert [int(t) for t in MsgType] == list(range(11))
    assert MsgType.DIRALLSLASH == 9
    assert MsgType.GETSLASH == 10


def test_flags_from_names() -> None:
    assert flags_from(["persistence"]) == 0x00000004
    assert flags_from(["persistence", "uncached"]) == 0x00000024
    assert flags_from(["uncached", "persistence"]) == 0x00000024


def test_flags_from_members_and_base() -> None:
    assert flags_from([Flag.ALIAS], base=flags_from(["persistence"])) == 0x0000000C
    assert flags_from(["PERSISTENCE", Flag.UNCACHED]) == 0x00000024
    assert flags_from([]) == 0
    assert flags_from([], base=0x100) == 0x100


def test_conflicting_scales_are_combined() -> None:
    """Mutually exclusive groups are OR'ed, never rejected."""
    assert flags_from(["f", "k"]) == 0x00030000
    assert flags_from(["c", "mbar", "fdi"]) == 0
    assert flags_from(["fic", "psi"]) == 0x05100000


def test_flags_from_unknown_name() -> None:
    with pytest.raises(ValueError):
        flags_from(["persistence", "warp_speed"])
    with pytest.raises(ValueError):
        flags_from([42])


def test_decode_response_header() -> None:
    raw = ResponseHeader(payload_size=12, return_code=12, flags=4, size=12, offset=0).to_bytes()
    header = decode_response_header(raw)
    assert header.payload_size == 12
    assert header.return_code == 12
    assert header.flags == 4
    assert header.size == 12


def test_decode_negative_return_code() -> None:
    raw = ResponseHeader(return_code=-1).to_bytes()
    assert decode_response_header(raw).return_code == -1


def test_decode_short_header() -> None:
    with pytest.raises(ValueError):
        decode_response_header(b"\x00" * 23)
    with pytest.raises(ValueError):
        decode_request_header(b"")


def test_persistence_granted() -> None:
    assert persistence_granted(ResponseHeader(flags=0x00000004))
    assert persistence_granted(ResponseHeader(flags=0x00000024))
    assert not persistence_granted(ResponseHeader(flags=0x00000020))
    assert ResponseHeader(flags=4).persistence_granted
