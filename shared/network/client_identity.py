"""
Client identity helpers.

Resolve the caller's real IP address and user agent when running behind one or
more reverse proxies. Forwarding headers are trusted as sent.
"""

import ipaddress
from typing import Mapping, Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def parse_ip(value: Optional[str]) -> Optional[IPAddress]:
    """Parse an IP literal, returning None when it is not one."""
    if not value:
        return None
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError:
        return None


def _split_host_port(address: str) -> Optional[str]:
    """Return the host part of ``host:port`` or ``[v6]:port``."""
    if address.startswith("["):
        end = address.find("]")
        if end == -1 or not address[end + 1:].startswith(":"):
            return None
        return address[1:end]
    host, sep, port = address.rpartition(":")
    if not sep or ":" in host or not port.isdigit():
        return None
    return host


def resolve_client_ip(headers: Mapping[str, str], peer_address: Optional[str]) -> Optional[IPAddress]:
    """
    Resolve the client IP.

    Priority:
      1. First entry of X-Forwarded-For
      2. X-Real-IP
      3. Host part of the transport peer address
      4. The peer address itself, which may not parse (None)
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        ip = parse_ip(forwarded_for.split(",")[0])
        if ip is not None:
            return ip

    real_ip = headers.get("x-real-ip")
    if real_ip:
        ip = parse_ip(real_ip)
        if ip is not None:
            return ip

    if not peer_address:
        return None

    host = _split_host_port(peer_address)
    if host is not None:
        return parse_ip(host)

    return parse_ip(peer_address)


def resolve_client_user_agent(headers: Mapping[str, str]) -> str:
    """Prefer the X-Client-UA override, else User-Agent."""
    return headers.get("x-client-ua") or headers.get("user-agent") or ""
