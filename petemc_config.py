from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv


def _deep_merge_dict(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge overlay into base (in place) and return base.

    - Dict values are merged recursively
    - Other types overwrite
    """
    for k, v in overlay.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge_dict(base[k], v)  # type: ignore[index]
        else:
            base[k] = v
    return base


def load_json(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_config_with_secrets(
    base_dir: Path,
    config_name: str = "config.json",
    secrets_name: str = "config.secrets.json",
) -> Tuple[Dict[str, Any], Path, Path]:
    """Load config.json and merge config.secrets.json on top.

    A `.env` file in base_dir (if any) is loaded into the process environment
    first so env fallbacks (see cfg_str / cfg_int) can see it.

    Returns: (merged_config, config_path, secrets_path)
    """
    config_path = base_dir / config_name
    secrets_path = base_dir / secrets_name

    load_dotenv(base_dir / ".env")

    if not config_path.exists():
        raise FileNotFoundError(f"Missing config file: {config_path}")

    config = load_json(config_path)
    if not isinstance(config, dict):
        raise ValueError(f"Invalid config file (expected JSON object): {config_path}")

    if not secrets_path.exists():
        # Caller is expected to fail fast with a clear message.
        return config, config_path, secrets_path

    secrets = load_json(secrets_path)
    if not isinstance(secrets, dict):
        raise ValueError(f"Invalid secrets file (expected JSON object): {secrets_path}")

    _deep_merge_dict(config, secrets)
    return config, config_path, secrets_path


def cfg_str(cfg: Dict[str, Any], key: str, env_key: str = "") -> str:
    """Config value as a stripped string, falling back to an env var."""
    v = str((cfg or {}).get(key) or "").strip()
    if v and not is_placeholder_secret(v):
        return v
    if env_key:
        return (os.getenv(env_key, "") or "").strip()
    return ""


def cfg_int(cfg: Dict[str, Any], key: str, env_key: str = "", default: Optional[int] = None) -> Optional[int]:
    raw = cfg_str(cfg, key, env_key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer; got: {raw}")


def is_placeholder_secret(value: Any) -> bool:
    """Return True if the provided secret looks like a template/placeholder value."""
    if value is None:
        return True
    s = str(value).strip()
    if not s:
        return True
    upper = s.upper()
    if upper.startswith("PUT_") or upper.endswith("_HERE"):
        return True
    if upper in {"CHANGEME", "REPLACE_ME", "YOUR_TOKEN_HERE"}:
        return True
    return False


def mask_secret(value: Any, show_last: int = 4) -> str:
    """Mask a secret for printing (never output full tokens)."""
    if value is None:
        return "<missing>"
    s = str(value)
    if not s:
        return "<missing>"
    if len(s) <= show_last:
        return "*" * len(s)
    return ("*" * (len(s) - show_last)) + s[-show_last:]
