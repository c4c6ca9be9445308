"""
Upstream and GeoIP fakes shared by the unit tests.
"""

from typing import Callable, Dict, List, Optional
from unittest.mock import Mock

import geoip2.errors
import httpx

from gateway.link_client import LinkClient
from gateway.streaming_proxy import StreamingProxy

TEST_TOKEN = "openlist-test-token"
UPSTREAM_ADDRESS = "http://openlist.test"


class FakeGeoReader:
    """Stands in for ``geoip2.database.Reader``; maps IP strings to country codes."""

    def __init__(self, countries: Dict[str, str]):
        self.countries = countries
        self.lookups: List[str] = []
        self.closed = False

    def country(self, ip: str):
        self.lookups.append(ip)
        if ip not in self.countries:
            raise geoip2.errors.AddressNotFoundError(f"The address {ip} is not in the database.")
        record = Mock()
        record.country.iso_code = self.countries[ip]
        return record

    def close(self):
        self.closed = True


class UpstreamRecorder:
    """MockTransport handler that records requests and delegates the reply."""

    def __init__(self, reply: Callable[[httpx.Request], httpx.Response]):
        self.reply = reply
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)


class ChunkStream(httpx.AsyncByteStream):
    """Response body yielding fixed chunks, optionally failing afterwards."""

    def __init__(self, chunks: List[bytes], error: Optional[Exception] = None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True


def link_reply(url: str = "//cdn.example/a.mkv", header: Optional[Dict[str, List[str]]] = None,
               code: int = 200, message: str = "success"):
    """Build a link-service reply function for ``UpstreamRecorder``."""
    def reply(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "code": code,
            "message": message,
            "data": {"url": url, "header": header or {}} if code == 200 else None,
        })
    return reply


def make_link_client(recorder: UpstreamRecorder, **kwargs) -> LinkClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return LinkClient(f"{UPSTREAM_ADDRESS}/api/fs/link", TEST_TOKEN, http_client=http_client, **kwargs)


def make_proxy(recorder: UpstreamRecorder, **kwargs) -> StreamingProxy:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return StreamingProxy(http_client=http_client, **kwargs)
