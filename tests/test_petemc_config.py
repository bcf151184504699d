from __future__ import annotations

import json

import pytest

from petemc_config import cfg_int, cfg_str, is_placeholder_secret, load_config_with_secrets, mask_secret


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")


def test_secrets_are_deep_merged(tmp_path):
    _write(tmp_path / "config.json", {"guild_id": 1, "nested": {"a": 1, "b": 2}})
    _write(tmp_path / "config.secrets.json", {"bot_token": "abc", "nested": {"b": 3}})
    cfg, config_path, secrets_path = load_config_with_secrets(tmp_path)
    assert cfg == {"guild_id": 1, "nested": {"a": 1, "b": 3}, "bot_token": "abc"}
    assert config_path.name == "config.json"
    assert secrets_path.exists()


def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config_with_secrets(tmp_path)


def test_missing_secrets_is_tolerated(tmp_path):
    _write(tmp_path / "config.json", {"guild_id": 1})
    cfg, _, secrets_path = load_config_with_secrets(tmp_path)
    assert cfg == {"guild_id": 1}
    assert not secrets_path.exists()


def test_env_fallback_and_placeholders(monkeypatch):
    monkeypatch.setenv("DB_PASSWD", "from-env")
    assert cfg_str({"db_passwd": "PUT_PASSWORD_HERE"}, "db_passwd", "DB_PASSWD") == "from-env"
    assert cfg_str({"db_passwd": "real"}, "db_passwd", "DB_PASSWD") == "real"
    monkeypatch.setenv("GUILD_ID", "1234")
    assert cfg_int({}, "guild_id", "GUILD_ID") == 1234
    assert cfg_int({}, "probe_timeout_ms", default=250) == 250
    with pytest.raises(ValueError):
        cfg_int({"guild_id": "abc"}, "guild_id")


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    _write(tmp_path / "config.json", {})
    (tmp_path / ".env").write_text("DISCORD_TOKEN=token-from-dotenv\n", encoding="utf-8")
    cfg, _, _ = load_config_with_secrets(tmp_path)
    try:
        assert cfg_str(cfg, "bot_token", "DISCORD_TOKEN") == "token-from-dotenv"
    finally:
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)


@pytest.mark.parametrize("value", [None, "", "  ", "PUT_TOKEN_HERE", "changeme", "YOUR_TOKEN_HERE"])
def test_placeholders(value):
    assert is_placeholder_secret(value)


def test_mask_secret():
    assert mask_secret("abcdefgh") == "****efgh"
    assert mask_secret("abc") == "***"
    assert mask_secret(None) == "<missing>"
