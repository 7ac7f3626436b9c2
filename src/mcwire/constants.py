from __future__ import annotations

# RCON (TCP, little-endian)
RCON_HEADER_FORMAT = "<iii"  # length, request id, type
RCON_LENGTH_FORMAT = "<i"
RCON_TERMINATOR = b"\x00\x00"
RCON_MIN_PAYLOAD = 4 + 4 + len(RCON_TERMINATOR)

TYPE_RESPONSE_VALUE = 0
TYPE_COMMAND = 2
TYPE_AUTH = 3
# server answers an unknown type with a single "Unknown request c8" frame
TYPE_MARKER = 200

INVALID_AUTH_ID = -1
INT32_MAX = 2**31 - 1

MAX_BODY_SIZE = 4096
MAX_INBOUND_LENGTH = 65536

# Query (UDP, big-endian token)
QUERY_MAGIC = b"\xfe\xfd"
QUERY_HANDSHAKE = 0x09
QUERY_STAT = 0x00
QUERY_SESSION_ID = b"\x01\x02\x03\x04"
QUERY_FULL_STAT_PADDING = b"\x00\x00\x00\x00"
QUERY_STAT_HEADER_LEN = 16  # type + session + 11 bytes of "splitnum" padding
QUERY_HANDSHAKE_MIN_LEN = 7
# well past any int32, far below int() digit limits
QUERY_TOKEN_MAX_DIGITS = 64
QUERY_PLAYER_MARKER = b"\x00\x01player_\x00\x00"
QUERY_BUFFER_SIZE = 8192

DEFAULT_QUERY_PORT = 25565
DEFAULT_RCON_PORT = 25575
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_PACING_MS = 2.0
