"""
Minecraft Server List Ping (status) probe.

One TCP connection, one handshake + status request, one response packet,
then close. Connect and exchange share a single deadline; there are no
retries. Results:
- ServerStatus on success
- ConnectFailed / TimedOut / ProtocolError (all ProbeError) on failure
"""

from __future__ import annotations

import asyncio
import json
import logging
import struct
import time
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .address import ServerAddress
from .errors import ConnectFailed, ProbeError, ProtocolError, TimedOut

log = logging.getLogger("petemc.probe")

DEFAULT_TIMEOUT = 0.25

# -1 is the conventional "unknown" version for status-only pings.
PROTOCOL_VERSION = -1
NEXT_STATE_STATUS = 1
PACKET_ID_HANDSHAKE = 0x00
PACKET_ID_STATUS = 0x00

# Protocol upper bound for a packet (3-byte VarInt).
MAX_PACKET_LEN = 2097151
MAX_VARINT_BYTES = 5


@dataclass
class ServerStatus:
    online: int
    max_players: int
    sample_names: List[str] = field(default_factory=list)
    version: Optional[str] = None
    latency_ms: int = 0


# -----------------------------
# VarInt / packet encoding
# -----------------------------

def encode_varint(value: int) -> bytes:
    if value < 0:
        value += 1 << 32
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _to_signed32(value: int) -> int:
    if value & (1 << 31):
        value -= 1 << 32
    return value


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a VarInt from data at offset. Returns (value, new_offset)."""
    result = 0
    for i in range(MAX_VARINT_BYTES):
        if offset >= len(data):
            raise ProtocolError("truncated VarInt")
        byte = data[offset]
        offset += 1
        result |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return _to_signed32(result), offset
    raise ProtocolError("VarInt is too long")


async def read_varint(reader: asyncio.StreamReader) -> int:
    result = 0
    for i in range(MAX_VARINT_BYTES):
        byte = (await reader.readexactly(1))[0]
        result |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return _to_signed32(result)
    raise ProtocolError("VarInt is too long")


def _frame(payload: bytes) -> bytes:
    return encode_varint(len(payload)) + payload


def build_handshake(host: str, port: int) -> bytes:
    host_bytes = host.encode("utf-8")
    payload = (
        encode_varint(PACKET_ID_HANDSHAKE)
        + encode_varint(PROTOCOL_VERSION)
        + encode_varint(len(host_bytes))
        + host_bytes
        + struct.pack(">H", port)
        + encode_varint(NEXT_STATE_STATUS)
    )
    return _frame(payload)


def build_status_request() -> bytes:
    return _frame(encode_varint(PACKET_ID_STATUS))


# -----------------------------
# Response parsing
# -----------------------------

def _player_count(players: Dict[str, Any], key: str) -> int:
    value = players.get(key)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"players.{key} missing or not an integer")
    return value


def parse_status_json(data: Any) -> ServerStatus:
    """Build a ServerStatus from the decoded status JSON.

    A missing, null or non-list players.sample is treated as no sample.
    """
    if not isinstance(data, dict):
        raise ProtocolError("status response is not a JSON object")
    players = data.get("players")
    if not isinstance(players, dict):
        raise ProtocolError("status response has no players object")

    online = _player_count(players, "online")
    max_players = _player_count(players, "max")

    names: List[str] = []
    sample = players.get("sample")
    if isinstance(sample, list):
        for entry in sample:
            if isinstance(entry, dict) and entry.get("name"):
                names.append(str(entry["name"]))

    version = None
    raw_version = data.get("version")
    if isinstance(raw_version, dict) and raw_version.get("name"):
        version = str(raw_version["name"])

    return ServerStatus(online=online, max_players=max_players, sample_names=names, version=version)


def parse_status_packet(body: bytes) -> ServerStatus:
    """Parse a status response packet body (everything after the length prefix)."""
    packet_id, offset = decode_varint(body, 0)
    if packet_id != PACKET_ID_STATUS:
        raise ProtocolError(f"unexpected packet id 0x{packet_id & 0xFF:02x}")

    text_len, offset = decode_varint(body, offset)
    if text_len < 0 or offset + text_len > len(body):
        raise ProtocolError("status string length exceeds packet")

    try:
        text = body[offset : offset + text_len].decode("utf-8")
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise ProtocolError(f"invalid status JSON: {e}") from e
    return parse_status_json(data)


# -----------------------------
# Probe
# -----------------------------

async def _exchange(host: str, port: int) -> ServerStatus:
    t0 = time.perf_counter()
    try:
        reader, writer = await asyncio.open_connection(host, port)
    except OSError as e:
        raise ConnectFailed(f"{host}:{port}: {e.strerror or e}") from e
    except ValueError as e:
        # e.g. IDNA failure on an odd hostname
        raise ConnectFailed(f"{host}:{port}: {e}") from e

    try:
        writer.write(build_handshake(host, port) + build_status_request())
        await writer.drain()

        length = await read_varint(reader)
        if length <= 0 or length > MAX_PACKET_LEN:
            raise ProtocolError(f"invalid packet length {length}")
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise ProtocolError("connection closed before the status response was complete") from e
    except ConnectionError as e:
        raise ProtocolError(f"connection lost during handshake: {e}") from e
    finally:
        writer.close()
        with suppress(Exception):
            await writer.wait_closed()

    status = parse_status_packet(body)
    status.latency_ms = int((time.perf_counter() - t0) * 1000)
    return status


async def probe_status(address: ServerAddress, timeout: float = DEFAULT_TIMEOUT) -> ServerStatus:
    """Run one status handshake against address within timeout seconds.

    Raises:
        ConnectFailed: refused / unreachable / DNS failure
        TimedOut: deadline exceeded at any stage
        ProtocolError: connected, but the response was malformed
    """
    host, port = address.host, address.effective_port
    try:
        status = await asyncio.wait_for(_exchange(host, port), timeout=timeout)
    except asyncio.TimeoutError:
        log.debug("Probe %s:%s timed out after %.0f ms", host, port, timeout * 1000)
        raise TimedOut(f"no response from {host}:{port} within {int(timeout * 1000)} ms") from None
    except ProbeError as e:
        log.debug("Probe %s:%s failed: %s", host, port, e)
        raise

    log.debug(
        "Probe %s:%s ok: %d/%d players, version=%s, %d ms",
        host, port, status.online, status.max_players, status.version, status.latency_ms,
    )
    return status
