"""
Command dispatcher: command name + options -> one reply string.

Commands:
- status [address]        probe default or given address
- set_address <address>   store default address
- start_server            probe default address, launch start command if down
- set_start_cmd <command> store start command

Every path returns exactly one reply; errors never escape dispatch().
The store is read fresh on every call (no caching here).
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from .address import ServerAddress, parse_address
from .errors import InvalidAddress, LaunchError, ProbeError, StoreError
from .mc_status_probe import DEFAULT_TIMEOUT, ServerStatus, probe_status

log = logging.getLogger("petemc.dispatch")

KEY_ADDRESS = "address"
KEY_START_CMD = "start_cmd"

NOT_CONFIGURED = ":x: Server info is not configured"
INVALID_COMMAND = "Invalid command!"


class ConfigStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def exists(self, key: str) -> bool: ...

    async def put(self, key: str, value: str) -> None: ...


class Launcher(Protocol):
    def launch(self, command_line: str) -> None: ...


Prober = Callable[[ServerAddress, float], Awaitable[ServerStatus]]


def format_status(address: str, status: ServerStatus) -> str:
    if status.online > 0:
        return (
            f":white_check_mark: Server `{address}` is online with "
            f"`{status.online}/{status.max_players}` players. "
            f"Currently Online: `{', '.join(status.sample_names)}`"
        )
    return f":white_check_mark: Server `{address}` is online with `0/{status.max_players}` players."


class CommandDispatcher:
    def __init__(
        self,
        store: ConfigStore,
        launcher: Launcher,
        prober: Prober = probe_status,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.store = store
        self.launcher = launcher
        self.prober = prober
        self.timeout = timeout
        self._handlers: Dict[str, Callable[..., Awaitable[str]]] = {
            "status": self.status,
            "set_address": self.set_address,
            "start_server": self.start_server,
            "set_start_cmd": self.set_start_cmd,
        }

    async def dispatch(self, name: str, options: Optional[Dict[str, Any]] = None) -> str:
        """Route a command invocation; always returns reply text."""
        handler = self._handlers.get((name or "").lower())
        if handler is None:
            log.info("Unknown command: %s", name)
            return INVALID_COMMAND
        opts = {k: v for k, v in (options or {}).items() if v is not None}
        try:
            inspect.signature(handler).bind(**opts)
        except TypeError as e:
            log.warning("Bad arguments for /%s: %s", name, e)
            return f":x: Invalid arguments for `{name}`"
        try:
            return await handler(**opts)
        except Exception as e:
            log.exception("Unhandled error in /%s", name)
            return f":x: Command failed: {e}"

    async def _probe(self, raw: str) -> ServerStatus:
        return await self.prober(parse_address(raw), self.timeout)

    async def status(self, address: Optional[str] = None) -> str:
        if not address:
            try:
                address = await self.store.get(KEY_ADDRESS)
            except StoreError as e:
                return f":x: Failed to read address: {e}"
            if not address:
                return NOT_CONFIGURED

        try:
            result = await self._probe(address)
        except (InvalidAddress, ProbeError) as e:
            return f":x: Failed to fetch status: {e}"
        return format_status(address, result)

    async def set_address(self, address: str) -> str:
        try:
            parse_address(address)
        except InvalidAddress as e:
            return f":x: Invalid address: {e}"
        address = address.strip()
        try:
            await self.store.put(KEY_ADDRESS, address)
        except StoreError as e:
            return f":x: Failed to set address: {e}"
        log.info("Default address set to %s", address)
        return f":white_check_mark: Address set to `{address}`"

    async def start_server(self) -> str:
        try:
            address = await self.store.get(KEY_ADDRESS)
            command = await self.store.get(KEY_START_CMD)
        except StoreError as e:
            return f":x: Failed to read server info: {e}"
        if not address or not command:
            return NOT_CONFIGURED

        try:
            await self._probe(address)
        except (InvalidAddress, ProbeError) as e:
            # Any failure means "not running".
            log.info("Server %s looks down (%s); launching start command", address, e)
        else:
            return f":white_check_mark: Server `{address}` is already running"

        try:
            self.launcher.launch(command)
        except LaunchError as e:
            log.warning("Start command failed to launch: %s", e)
            return f":x: Failed to start server: {e}"
        return f":rocket: Starting server `{address}`"

    async def set_start_cmd(self, command: str) -> str:
        command = (command or "").strip()
        if not command:
            return ":x: Start command cannot be empty"
        try:
            await self.store.put(KEY_START_CMD, command)
        except StoreError as e:
            return f":x: Failed to set start command: {e}"
        log.info("Start command updated")
        return f":white_check_mark: Start command set to `{command}`"
