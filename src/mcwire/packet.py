from __future__ import annotations

import enum
import re
import struct
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from .constants import (
    MAX_BODY_SIZE,
    MAX_INBOUND_LENGTH,
    QUERY_FULL_STAT_PADDING,
    QUERY_HANDSHAKE,
    QUERY_HANDSHAKE_MIN_LEN,
    QUERY_MAGIC,
    QUERY_PLAYER_MARKER,
    QUERY_STAT,
    QUERY_STAT_HEADER_LEN,
    QUERY_TOKEN_MAX_DIGITS,
    RCON_HEADER_FORMAT,
    RCON_LENGTH_FORMAT,
    RCON_MIN_PAYLOAD,
    RCON_TERMINATOR,
    TYPE_AUTH,
    TYPE_COMMAND,
    TYPE_RESPONSE_VALUE,
)
from .errors import ProtocolError

_TOKEN_RE = re.compile(rb"[+-]?[0-9]+")


class FrameType(enum.IntEnum):
    RESPONSE_VALUE = TYPE_RESPONSE_VALUE
    COMMAND = TYPE_COMMAND
    AUTH = TYPE_AUTH


@dataclass(frozen=True, slots=True)
class RconFrame:
    request_id: int
    kind: int
    body: bytes = b""

    def to_bytes(self) -> bytes:
        if len(self.body) > MAX_BODY_SIZE:
            raise ProtocolError(f"body too large: {len(self.body)} > {MAX_BODY_SIZE}")
        if b"\x00" in self.body:
            raise ProtocolError("body contains an embedded NUL")
        length = 4 + 4 + len(self.body) + len(RCON_TERMINATOR)
        header = struct.pack(RCON_HEADER_FORMAT, length, self.request_id, int(self.kind))
        return header + self.body + RCON_TERMINATOR

    @staticmethod
    def from_bytes(payload: bytes) -> "RconFrame":
        """Decode everything that follows the 4-byte length prefix."""
        if len(payload) < RCON_MIN_PAYLOAD:
            raise ProtocolError(f"frame too small: {len(payload)} bytes")
        request_id, kind = struct.unpack_from("<ii", payload)
        return RconFrame(request_id=request_id, kind=kind, body=payload[8:-2])

    @staticmethod
    def read(recv_exact: Callable[[int], bytes]) -> "RconFrame":
        """Read one frame using a callable that returns exactly n bytes.

        TCP may split a frame anywhere, so the payload is read by its
        declared length rather than by whatever a single recv returns.
        """
        raw_len = recv_exact(4)
        if len(raw_len) != 4:
            raise ProtocolError("truncated length field")
        (length,) = struct.unpack(RCON_LENGTH_FORMAT, raw_len)
        if length < RCON_MIN_PAYLOAD or length > MAX_INBOUND_LENGTH:
            raise ProtocolError(f"invalid frame length: {length}")
        payload = recv_exact(length)
        if len(payload) != length:
            raise ProtocolError(f"truncated frame: expected {length}, got {len(payload)}")
        return RconFrame.from_bytes(payload)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass(frozen=True, slots=True)
class StatusReport:
    hostname: str
    game_type: str
    game_id: str
    version: str
    map: str
    players: Tuple[str, ...]
    max_players: int
    host_port: int

    @property
    def player_count(self) -> int:
        return len(self.players)

    def to_dict(self) -> Dict[str, object]:
        return {
            "hostname": self.hostname,
            "game_type": self.game_type,
            "game_id": self.game_id,
            "version": self.version,
            "map": self.map,
            "players": list(self.players),
            "player_count": self.player_count,
            "max_players": self.max_players,
            "host_port": self.host_port,
        }


def encode_handshake(session_id: bytes) -> bytes:
    return QUERY_MAGIC + bytes([QUERY_HANDSHAKE]) + session_id


def encode_stat(session_id: bytes, token: int) -> bytes:
    return QUERY_MAGIC + bytes([QUERY_STAT]) + session_id + struct.pack(">i", token) + QUERY_FULL_STAT_PADDING


def parse_challenge_token(raw: bytes) -> int:
    """Parse the ASCII decimal token, wrapping out-of-range values to int32."""
    text = raw.rstrip(b"\x00").strip()
    if not _TOKEN_RE.fullmatch(text):
        raise ProtocolError(f"challenge token is not numeric: {text!r}")
    if len(text) > QUERY_TOKEN_MAX_DIGITS:
        raise ProtocolError(f"challenge token too long: {len(text)} digits")
    value = int(text)
    # same as an int32 cast; servers are trusted to send sane tokens
    return (value + 2**31) % 2**32 - 2**31


def decode_handshake(raw: bytes, session_id: bytes) -> int:
    if len(raw) < QUERY_HANDSHAKE_MIN_LEN:
        raise ProtocolError(f"handshake response too short: {len(raw)} bytes")
    if raw[0] != QUERY_HANDSHAKE:
        raise ProtocolError(f"handshake type mismatch: {raw[0]:#04x}")
    if raw[1:5] != session_id:
        raise ProtocolError("handshake session id mismatch")
    return parse_challenge_token(raw[5:])


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _as_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


def decode_stat(raw: bytes) -> StatusReport:
    """Parse a full stat response.

    Layout after the 16 byte header:
    key\\0value\\0...\\0\\0 \\x01player_\\0\\0 name\\0name\\0...\\0
    """
    if len(raw) < QUERY_STAT_HEADER_LEN:
        raise ProtocolError(f"stat response too short: {len(raw)} bytes")

    sections = raw[QUERY_STAT_HEADER_LEN:].split(QUERY_PLAYER_MARKER, 1)
    if len(sections) < 2:
        raise ProtocolError("stat response has no player section marker")
    kv_section, player_section = sections

    info: Dict[str, str] = {}
    fields = kv_section.split(b"\x00")
    for i in range(0, len(fields) - 1, 2):
        key = fields[i]
        if not key:
            break
        info[_text(key)] = _text(fields[i + 1])

    players: List[str] = [_text(p) for p in player_section.split(b"\x00") if p]

    return StatusReport(
        hostname=info.get("hostname", ""),
        game_type=info.get("gametype", ""),
        game_id=info.get("game_id", ""),
        version=info.get("version", ""),
        map=info.get("map", ""),
        players=tuple(players),
        max_players=_as_int(info.get("maxplayers", "")),
        host_port=_as_int(info.get("hostport", "")),
    )
