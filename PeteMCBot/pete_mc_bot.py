#!/usr/bin/env python3
"""
PeteMC Bot
----------
Slash-command bot for one Minecraft server:
- /status [address]        everyone
- /set_address <address>   administrators
- /start_server            everyone
- /set_start_cmd <command> administrators

Configuration is split across:
- config.json (non-secret settings)
- config.secrets.json (server-only secrets, not committed)
Env fallbacks (also read from .env): DISCORD_TOKEN, GUILD_ID, DB_PASSWD.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

# Ensure repo root is importable when executed as a script.
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

import discord
from discord import app_commands
from discord.ext import commands

from petemc_config import cfg_int, cfg_str, load_config_with_secrets
from petemc_config import is_placeholder_secret, mask_secret

from PeteMCBot.command_dispatcher import CommandDispatcher
from PeteMCBot.errors import StoreError
from PeteMCBot.kv_store import EncryptedKVStore
from PeteMCBot.process_launcher import ProcessLauncher

log = logging.getLogger("petemc")

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_STORE_PATH = "data/petemc_db.json"
DEFAULT_PROBE_TIMEOUT_MS = 250


# Colors for terminal
class Colors:
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    CYAN = '\033[96m'
    RESET = '\033[0m'
    BOLD = '\033[1m'


def _setup_logging() -> None:
    level = (os.getenv("LOG_LEVEL", "") or "").strip().upper() or "INFO"
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # Keep discord.py internals quiet unless explicitly debugging.
    if level != "DEBUG":
        logging.getLogger("discord").setLevel(logging.WARNING)


def _resolve_path(base: Path, value: str) -> Path:
    p = Path(value).expanduser()
    return p if p.is_absolute() else (base / p)


def check_config(base: Path = BASE_DIR) -> int:
    """Validate config + secrets without connecting to Discord. Returns exit code."""
    cfg, config_path, secrets_path = load_config_with_secrets(base)
    token = cfg_str(cfg, "bot_token", "DISCORD_TOKEN")
    passwd = cfg_str(cfg, "db_passwd", "DB_PASSWD")
    errors = []
    if is_placeholder_secret(token):
        errors.append("bot_token missing/placeholder (config.secrets.json or DISCORD_TOKEN)")
    if is_placeholder_secret(passwd):
        errors.append("db_passwd missing/placeholder (config.secrets.json or DB_PASSWD)")
    try:
        guild_id = cfg_int(cfg, "guild_id", "GUILD_ID")
        if guild_id is None:
            errors.append("guild_id missing (config.json or GUILD_ID)")
    except ValueError as e:
        guild_id = None
        errors.append(str(e))
    try:
        timeout_ms = cfg_int(cfg, "probe_timeout_ms", default=DEFAULT_PROBE_TIMEOUT_MS)
        if timeout_ms is not None and timeout_ms <= 0:
            errors.append("probe_timeout_ms must be positive")
    except ValueError as e:
        errors.append(str(e))

    if errors:
        print(f"{Colors.RED}[ConfigCheck] FAILED{Colors.RESET}")
        for e in errors:
            print(f"- {e}")
        return 2
    print(f"{Colors.GREEN}[ConfigCheck] OK{Colors.RESET}")
    print(f"- config: {config_path}")
    print(f"- secrets: {secrets_path}{'' if secrets_path.exists() else ' (missing, using env)'}")
    print(f"- guild_id: {guild_id}")
    print(f"- bot_token: {mask_secret(token)}")
    print(f"- db_passwd: {mask_secret(passwd)}")
    return 0


class PeteMCBot:
    """Main bot class: wires config, store, launcher and dispatcher into discord.py"""

    def __init__(self, base_path: Path = BASE_DIR):
        self.base_path = base_path
        self.config: Dict[str, Any] = {}
        self.load_config()

        self.token = cfg_str(self.config, "bot_token", "DISCORD_TOKEN")
        if is_placeholder_secret(self.token):
            print(f"{Colors.RED}[Config] ERROR: 'bot_token' is required in config.secrets.json (or DISCORD_TOKEN){Colors.RESET}")
            sys.exit(1)

        self.guild_id: Optional[int] = cfg_int(self.config, "guild_id", "GUILD_ID")
        if self.guild_id is None:
            print(f"{Colors.YELLOW}[Config] guild_id not set; commands will be registered globally{Colors.RESET}")

        self.store = self._open_store()

        launch_cwd = cfg_str(self.config, "launch_cwd")
        timeout_ms = cfg_int(self.config, "probe_timeout_ms", default=DEFAULT_PROBE_TIMEOUT_MS)
        self.dispatcher = CommandDispatcher(
            store=self.store,
            launcher=ProcessLauncher(cwd=_resolve_path(self.base_path, launch_cwd) if launch_cwd else None),
            timeout=timeout_ms / 1000.0,
        )

        # Slash commands only; no privileged intents needed.
        self.bot = commands.Bot(command_prefix="!", intents=discord.Intents.none(), help_command=None)
        self._setup_events()
        self._setup_commands()

    def load_config(self) -> None:
        """Load configuration from config.json + config.secrets.json (server-only)."""
        try:
            self.config, _, secrets_path = load_config_with_secrets(self.base_path)
        except FileNotFoundError:
            print(f"{Colors.YELLOW}[Config] config.json not found, using defaults + environment{Colors.RESET}")
            self.config = {}
            return
        if not secrets_path.exists():
            print(f"{Colors.YELLOW}[Config] Missing config.secrets.json (server-only): {secrets_path}{Colors.RESET}")
        print(f"{Colors.GREEN}[Config] Loaded configuration{Colors.RESET}")

    def _open_store(self) -> EncryptedKVStore:
        passwd = cfg_str(self.config, "db_passwd", "DB_PASSWD")
        if is_placeholder_secret(passwd):
            print(f"{Colors.RED}[Config] ERROR: 'db_passwd' is required in config.secrets.json (or DB_PASSWD){Colors.RESET}")
            sys.exit(1)
        store_path = _resolve_path(self.base_path, cfg_str(self.config, "store_path") or DEFAULT_STORE_PATH)
        try:
            store = EncryptedKVStore.open(store_path, passwd)
        except StoreError as e:
            print(f"{Colors.RED}[Store] ERROR: {e}{Colors.RESET}")
            sys.exit(1)
        print(f"{Colors.GREEN}[Store] Using {store_path}{Colors.RESET}")
        return store

    async def _respond(self, interaction: discord.Interaction, content: str) -> None:
        try:
            await interaction.response.send_message(content)
        except discord.HTTPException as e:
            log.warning("Cannot respond to slash command: %s", e)

    def _setup_events(self) -> None:
        @self.bot.event
        async def on_ready():
            print(f"\n{Colors.CYAN}{'='*60}{Colors.RESET}")
            print(f"{Colors.BOLD}  ⛏️  PeteMC Bot{Colors.RESET}")
            print(f"{Colors.CYAN}{'='*60}{Colors.RESET}")
            print(f"{Colors.GREEN}[Bot] Ready as {self.bot.user}{Colors.RESET}")

            guild = discord.Object(id=self.guild_id) if self.guild_id else None
            try:
                synced = await self.bot.tree.sync(guild=guild)
                where = f"guild {self.guild_id}" if guild else "globally"
                print(f"{Colors.GREEN}[Commands] Synced {len(synced)} slash command(s) {where}{Colors.RESET}")
                for cmd in synced:
                    print(f"{Colors.GREEN}   • /{cmd.name}{Colors.RESET}")
            except discord.HTTPException as e:
                print(f"{Colors.RED}[Commands] HTTP Error during sync: {e.status} - {e.text}{Colors.RESET}")
            print(f"{Colors.CYAN}{'='*60}{Colors.RESET}\n")

    def _setup_commands(self) -> None:
        """Setup slash commands"""
        guild = discord.Object(id=self.guild_id) if self.guild_id else None
        admin_only = app_commands.default_permissions(administrator=True)

        @self.bot.tree.command(
            name="status",
            description="Gets status of the default server or an alternate if given",
            guild=guild,
        )
        @app_commands.describe(address="The address to check if specified, otherwise the default address will be used")
        async def status_command(interaction: discord.Interaction, address: Optional[str] = None):
            content = await self.dispatcher.dispatch("status", {"address": address})
            await self._respond(interaction, content)

        @self.bot.tree.command(name="set_address", description="Sets the default server address", guild=guild)
        @app_commands.describe(address="The address")
        @admin_only
        async def set_address_command(interaction: discord.Interaction, address: str):
            content = await self.dispatcher.dispatch("set_address", {"address": address})
            await self._respond(interaction, content)

        @self.bot.tree.command(name="start_server", description="Starts the server if it is not running", guild=guild)
        async def start_server_command(interaction: discord.Interaction):
            content = await self.dispatcher.dispatch("start_server")
            await self._respond(interaction, content)

        @self.bot.tree.command(name="set_start_cmd", description="Sets the command used to start the server", guild=guild)
        @app_commands.describe(command="The command line to run")
        @admin_only
        async def set_start_cmd_command(interaction: discord.Interaction, command: str):
            content = await self.dispatcher.dispatch("set_start_cmd", {"command": command})
            await self._respond(interaction, content)

    def run(self) -> None:
        """Start the bot"""
        try:
            self.bot.run(self.token, log_handler=None)
        except KeyboardInterrupt:
            print(f"\n{Colors.YELLOW}[Bot] Shutting down...{Colors.RESET}")
        except discord.LoginFailure as e:
            print(f"{Colors.RED}[Bot] Login failed: {e}{Colors.RESET}")
            sys.exit(1)


def main(argv: Optional[list] = None) -> None:
    import argparse
    parser = argparse.ArgumentParser(add_help=True)
    parser.add_argument("--check-config", action="store_true", help="Validate config + secrets and exit (no Discord connection).")
    args = parser.parse_args(argv)

    _setup_logging()
    if args.check_config:
        raise SystemExit(check_config())

    PeteMCBot().run()


if __name__ == "__main__":
    main()
