"""owserver protocol constants and enums."""

from enum import IntEnum

# ----------------------------------------------------------------------------
# Protocol constants
# ----------------------------------------------------------------------------

VERSION = 0
HEADER_SIZE = 24  # six 32-bit big-endian integers
HEADER_FORMAT = ">3iI2i"  # flags word is an unsigned bitmask
FLAGS_MASK = 0xFFFFFFFF

DEFAULT_PORT = 4304
DEFAULT_TIMEOUT = 5.0
MAX_READ_SIZE = 65536  # requested buffer for READ so values arrive in one payload
MAX_PAYLOAD_SIZE = MAX_READ_SIZE  # larger declared payloads are rejected unread
RECV_CHUNK = 65536

# Empty headers owserver may send while a slow read/dir is in progress
DEFAULT_MAX_KEEPALIVES = 64

ERROR_CODES_PATH = "/settings/return_codes/text.ALL"

# ----------------------------------------------------------------------------
# Message types
# ----------------------------------------------------------------------------


class MsgType(IntEnum):
    """Request message type identifiers."""

    ERROR = 0
    NOP = 1
    READ = 2
    WRITE = 3
    DIR = 4
    SIZE = 5
    PRESENT = 6
    DIRALL = 7
    GET = 8
    DIRALLSLASH = 9
    GETSLASH = 10


# ----------------------------------------------------------------------------
# Flags
# ----------------------------------------------------------------------------


class Flag(IntEnum):
    """Request/response flag bits.

    The temperature, pressure and address display groups are meant to be
    mutually exclusive but nothing enforces it; their zero-valued defaults
    (``C``, ``MBAR``, ``FDI``) share the value 0.
    """

    # owserver options
    UNCACHED = 0x00000020  # skip the server cache
    SAFEMODE = 0x00000010  # reads and cached values only
    ALIAS = 0x00000008  # human readable names for known slaves
    PERSISTENCE = 0x00000004  # keep the socket open between requests
    BUS_RET = 0x00000002  # include special directories (settings, statistics, ...)
    OWNET = 0x00000100

    # Temperature scales
    C = 0x00000000
    F = 0x00010000
    K = 0x00020000
    R = 0x00030000

    # Pressure scales
    MBAR = 0x00000000
    ATM = 0x00040000
    MMHG = 0x00080000
    INHG = 0x000C0000
    PSI = 0x00100000
    PA = 0x00140000

    # Address displays
    FDI = 0x00000000  # /42.C2D154000000/
    FI = 0x01000000  # /42C2D154000000/
    FDIDC = 0x02000000  # /42.C2D154000000.09/
    FDIC = 0x03000000  # /42.C2D15400000009/
    FIDC = 0x04000000  # /42C2D154000000.09/
    FIC = 0x05000000  # /42C2D15400000009/


DEFAULT_FLAGS = ("persistence",)
