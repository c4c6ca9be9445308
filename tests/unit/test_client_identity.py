"""
Unit tests for client IP and user agent resolution.
"""

import ipaddress

import pytest
from starlette.datastructures import Headers

from shared.network.client_identity import (
    parse_ip,
    resolve_client_ip,
    resolve_client_user_agent,
)


def headers(**values) -> Headers:
    return Headers(headers={k.replace("_", "-"): v for k, v in values.items()})


class TestResolveClientIP:
    """Priority: X-Forwarded-For, X-Real-IP, peer address."""

    def test_forwarded_for_first_entry_wins(self):
        result = resolve_client_ip(
            headers(x_forwarded_for=" 8.8.8.8 , 10.0.0.1", x_real_ip="1.1.1.1"),
            "127.0.0.1",
        )
        assert result == ipaddress.ip_address("8.8.8.8")

    def test_unparseable_forwarded_for_falls_through_to_real_ip(self):
        result = resolve_client_ip(
            headers(x_forwarded_for="unknown, 8.8.8.8", x_real_ip=" 1.1.1.1 "),
            "127.0.0.1",
        )
        assert result == ipaddress.ip_address("1.1.1.1")

    def test_peer_address_used_without_proxy_headers(self):
        assert resolve_client_ip(headers(), "203.0.113.9") == ipaddress.ip_address("203.0.113.9")

    def test_peer_address_with_port(self):
        assert resolve_client_ip(headers(), "203.0.113.9:51234") == ipaddress.ip_address("203.0.113.9")

    @pytest.mark.parametrize("peer, expected", [
        ("[2001:db8::1]:443", "2001:db8::1"),
        ("2001:db8::1", "2001:db8::1"),
        ("::1", "::1"),
    ])
    def test_ipv6_peer_addresses(self, peer, expected):
        assert resolve_client_ip(headers(), peer) == ipaddress.ip_address(expected)

    def test_invalid_everything_returns_none(self):
        result = resolve_client_ip(
            headers(x_forwarded_for="garbage", x_real_ip="also-garbage"),
            "testclient",
        )
        assert result is None

    def test_missing_peer_returns_none(self):
        assert resolve_client_ip(headers(), None) is None

    def test_parse_ip_rejects_empty(self):
        assert parse_ip("") is None
        assert parse_ip(None) is None


class TestResolveClientUserAgent:

    def test_client_ua_override_wins(self):
        result = resolve_client_user_agent(headers(x_client_ua="aria2/1.36", user_agent="nginx"))
        assert result == "aria2/1.36"

    def test_falls_back_to_user_agent(self):
        assert resolve_client_user_agent(headers(user_agent="Mozilla/5.0")) == "Mozilla/5.0"

    def test_empty_when_absent(self):
        assert resolve_client_user_agent(headers()) == ""
