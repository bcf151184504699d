"""
Server address parsing: "host[:port]" -> ServerAddress.

Parsing is lenient on purpose. A bad port never blocks a status check; it
simply falls back to the default port when the probe runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import InvalidAddress

DEFAULT_PORT = 25565


@dataclass(frozen=True)
class ServerAddress:
    host: str
    port: Optional[int] = None

    @property
    def effective_port(self) -> int:
        return self.port if self.port is not None else DEFAULT_PORT

    def __str__(self) -> str:
        if self.port is None:
            return self.host
        return f"{self.host}:{self.port}"


def _parse_port(text: str) -> Optional[int]:
    text = (text or "").strip()
    # str.isdigit() also accepts non-ASCII digits such as "²"
    if not (text.isascii() and text.isdigit()):
        return None
    port = int(text)
    if 1 <= port <= 0xFFFF:
        return port
    return None


def parse_address(raw: str) -> ServerAddress:
    """Split raw "host[:port]" text into a ServerAddress.

    Only the first two ":"-separated segments are used (host, port text);
    anything after a second colon is ignored. Unparsable or out-of-range
    port text yields port=None.

    Raises:
        InvalidAddress: raw is empty/whitespace, or the host part is empty.
    """
    s = (raw or "").strip()
    if not s:
        raise InvalidAddress("address is empty")

    parts = s.split(":")
    host = parts[0].strip()
    if not host:
        raise InvalidAddress(f"missing host in '{s}'")

    port = _parse_port(parts[1]) if len(parts) > 1 else None
    return ServerAddress(host=host, port=port)
