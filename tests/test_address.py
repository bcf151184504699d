from __future__ import annotations

import pytest

from PeteMCBot.address import DEFAULT_PORT, ServerAddress, parse_address
from PeteMCBot.errors import InvalidAddress


@pytest.mark.parametrize("raw", ["localhost", "mc.example.org", "10.0.0.5"])
def test_host_only_has_no_port(raw):
    assert parse_address(raw) == ServerAddress(host=raw, port=None)


def test_host_and_port():
    assert parse_address("mc.example.org:25570") == ServerAddress("mc.example.org", 25570)


@pytest.mark.parametrize("port_text", ["abc", "", "0", "65536", "-1", "12.5", "²", "٣٠"])
def test_bad_port_falls_back_to_default(port_text):
    addr = parse_address(f"mc.example.org:{port_text}")
    assert addr.host == "mc.example.org"
    assert addr.port is None
    assert addr.effective_port == DEFAULT_PORT


def test_extra_colon_segments_are_ignored():
    assert parse_address("host:1234:junk:more") == ServerAddress("host", 1234)


def test_surrounding_whitespace_is_stripped():
    assert parse_address("  play.example.net:25566 \n") == ServerAddress("play.example.net", 25566)


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_empty_address_is_invalid(raw):
    with pytest.raises(InvalidAddress):
        parse_address(raw)


def test_missing_host_is_invalid():
    with pytest.raises(InvalidAddress):
        parse_address(":25565")


def test_str_round_trips_display_form():
    assert str(ServerAddress("a.b")) == "a.b"
    assert str(ServerAddress("a.b", 1)) == "a.b:1"
