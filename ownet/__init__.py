# Copyright 2025 The ownet authors
# SPDX-License-Identifier: Apache-2.0
r"""ownet - a client for the owserver (1-Wire bus bridge) network protocol.

The package is split into a small protocol engine and a convenience client:

- Packet codec for the fixed 24-byte big-endian owserver header
- Immutable ``Session`` values with lazy connect, persistence tracking and a
  single reconnect-and-retry when the server drops the socket
- ping/present/dir/read/write commands returning typed results
- Error code resolution from the catalog the server publishes
- ``OwnetClient``, a thread-safe wrapper that raises on failure
- ``OwServer``, a loopback server over an in-memory tree for tests and demos
"""

# Import public API from modules
from . import commands
from .client import OwnetClient
from .config import ClientConfig
from .constants import (
    DEFAULT_MAX_KEEPALIVES,
    DEFAULT_PORT,
    ERROR_CODES_PATH,
    HEADER_SIZE,
    MAX_PAYLOAD_SIZE,
    MAX_READ_SIZE,
    Flag,
    MsgType,
)
from .errors import (
    OwnetConnectionError,
    OwnetDecodeError,
    OwnetError,
    OwnetProtocolError,
    build_table,
    load_table,
    lookup,
)
from .packets import (
    RequestHeader,
    ResponseHeader,
    decode_request_header,
    decode_response_header,
    encode_request,
    flags_from,
    persistence_granted,
)
from .results import (
    DecodeError,
    Ok,
    ProtocolError,
    Result,
    TransportError,
    TransportErrorKind,
    classify_os_error,
)
from .server import BusTree, OwServer, run_server
from .session import Session
from .transport import TcpTransport, Transport

# Public API exports
__all__ = [
    # Core classes
    "Session",
    "OwnetClient",
    "ClientConfig",
    "OwServer",
    "BusTree",
    "TcpTransport",
    "Transport",
    # Commands
    "commands",
    # Constants and enums
    "Flag",
    "MsgType",
    "DEFAULT_PORT",
    "DEFAULT_MAX_KEEPALIVES",
    "ERROR_CODES_PATH",
    "HEADER_SIZE",
    "MAX_PAYLOAD_SIZE",
    "MAX_READ_SIZE",
    # Packet utilities
    "RequestHeader",
    "ResponseHeader",
    "encode_request",
    "decode_request_header",
    "decode_response_header",
    "flags_from",
    "persistence_granted",
    # Results
    "Ok",
    "ProtocolError",
    "TransportError",
    "TransportErrorKind",
    "DecodeError",
    "Result",
    "classify_os_error",
    # Errors
    "build_table",
    "lookup",
    "load_table",
    "OwnetError",
    "OwnetProtocolError",
    "OwnetConnectionError",
    "OwnetDecodeError",
    # Test server
    "run_server",
]
