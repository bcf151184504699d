"""
Encrypted key/value config store.

- JSON file on disk: {"version": 1, "salt": <b64>, "entries": {key: <fernet token>}}
- Values are encrypted with a Fernet key derived from a passphrase (PBKDF2-SHA256)
- Atomic writes (tmp + os.replace) behind an asyncio lock; every put is committed
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import StoreError

log = logging.getLogger("petemc.store")

STORE_VERSION = 1
KDF_ITERATIONS = 390_000
SALT_BYTES = 16


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def derive_key(passphrase: str, salt: bytes, iterations: int = KDF_ITERATIONS) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=iterations)
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8")))


class EncryptedKVStore:
    """Durable string -> string mapping, encrypted at rest.

    Use EncryptedKVStore.open(path, passphrase); the file is created on first
    open. Values are decrypted on every get, so a wrong passphrase surfaces as
    StoreError at read time.
    """

    def __init__(self, path: Path, fernet: Fernet, data: Dict[str, Any]):
        self.path = path
        self._fernet = fernet
        self._data = data
        self._lock = asyncio.Lock()

    @classmethod
    def open(cls, path: Path, passphrase: str, iterations: int = KDF_ITERATIONS) -> "EncryptedKVStore":
        if not passphrase:
            raise StoreError("store passphrase is empty")
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.exists():
                data = _read_json(path)
                if not isinstance(data, dict) or not isinstance(data.get("entries"), dict):
                    raise StoreError(f"invalid store file: {path}")
                salt = base64.b64decode(data["salt"])
            else:
                salt = os.urandom(SALT_BYTES)
                data = {
                    "version": STORE_VERSION,
                    "salt": base64.b64encode(salt).decode("ascii"),
                    "entries": {},
                }
                _write_json_atomic(path, data)
                log.info("Created new config store: %s", path)
        except (OSError, ValueError, KeyError) as e:
            raise StoreError(f"failed to open store {path}: {e}") from e

        fernet = Fernet(derive_key(passphrase, salt, iterations))
        return cls(path, fernet, data)

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return key in self._data["entries"]

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            token = self._data["entries"].get(key)
        if token is None:
            return None
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise StoreError(f"cannot decrypt '{key}' (wrong passphrase or corrupt store)") from e

    async def put(self, key: str, value: str) -> None:
        token = self._fernet.encrypt(value.encode("utf-8")).decode("ascii")
        async with self._lock:
            entries = dict(self._data["entries"])
            entries[key] = token
            updated = dict(self._data, entries=entries)
            try:
                _write_json_atomic(self.path, updated)
            except OSError as e:
                raise StoreError(f"failed to write {self.path}: {e}") from e
            self._data = updated
        log.debug("Stored key '%s'", key)
