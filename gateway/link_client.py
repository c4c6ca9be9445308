"""
OpenList link resolution client.

Calls the upstream ``/api/fs/link`` endpoint to turn a file path into a
time-limited download URL plus the headers upstream wants sent with it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ValidationError

from gateway.errors import UpstreamBusinessError, UpstreamTransportError

logger = logging.getLogger(__name__)

SUCCESS_CODE = 200
LINK_TIMEOUT = 120.0


class LinkData(BaseModel):
    url: str = ""
    header: Optional[Dict[str, List[str]]] = None


class LinkEnvelope(BaseModel):
    code: int
    message: Optional[str] = ""
    data: Optional[LinkData] = None


@dataclass(frozen=True)
class ResolvedLink:
    """A resolved upstream URL; consumed once, never cached."""

    url: str
    upstream_headers: Tuple[Tuple[str, str], ...] = ()


def normalize_link_url(url: str) -> str:
    """Prefix scheme-less (protocol-relative) URLs with ``http:``."""
    if not urlsplit(url).scheme:
        return f"http:{url}"
    return url


class LinkClient:
    """
    HTTP client for the upstream link service.

    One POST per call, no retries. Every failure that is not an upstream
    business error surfaces as ``UpstreamTransportError``.
    """

    def __init__(self, link_endpoint: str, token: str,
                 http_client: Optional[httpx.AsyncClient] = None,
                 timeout: float = LINK_TIMEOUT):
        """
        Initialize link client.

        Args:
            link_endpoint: Full URL of the link resolution endpoint
            token: Value sent in the Authorization header
            http_client: Optional preconfigured client (tests inject a mock transport)
            timeout: Overall bound for one resolution
        """
        self.link_endpoint = link_endpoint
        self._token = token
        self._timeout = timeout
        self._http_client = http_client or self._create_http_client()

    def _create_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=True
        )

    def get_http_client(self) -> httpx.AsyncClient:
        """Get the HTTP client for testing."""
        return self._http_client

    async def _fetch_envelope(self, path: str) -> LinkEnvelope:
        response = await self._http_client.post(
            self.link_endpoint,
            json={"path": path},
            headers={"Authorization": self._token},
        )
        # Upstream business errors arrive in the envelope, the HTTP status is ignored
        return LinkEnvelope.model_validate_json(response.content)

    async def resolve(self, path: str) -> ResolvedLink:
        """
        Resolve ``path`` to a download link.

        Raises:
            UpstreamBusinessError: upstream answered with a non-success code
            UpstreamTransportError: network failure, timeout or undecodable reply
        """
        try:
            envelope = await asyncio.wait_for(self._fetch_envelope(path), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(f"Link resolution timed out for {path}")
            raise UpstreamTransportError(f"link resolution timed out after {self._timeout:g}s")
        except httpx.HTTPError as e:
            logger.error(f"Link resolution failed for {path}: {e}")
            raise UpstreamTransportError(str(e) or e.__class__.__name__)
        except ValidationError as e:
            logger.error(f"Undecodable link response for {path}: {e}")
            raise UpstreamTransportError(f"invalid link response: {e.errors()[0]['msg']}")

        if envelope.code != SUCCESS_CODE:
            raise UpstreamBusinessError(envelope.code, envelope.message or "")

        data = envelope.data or LinkData()
        if not data.url:
            raise UpstreamTransportError("link service returned an empty url")

        try:
            url = normalize_link_url(data.url)
            scheme = urlsplit(url).scheme.lower()
        except ValueError as e:
            logger.error(f"Malformed link url for {path}: {data.url!r}: {e}")
            raise UpstreamTransportError(f"invalid link url: {data.url}")
        if scheme not in ("http", "https"):
            raise UpstreamTransportError(f"unsupported link scheme: {url}")

        headers = tuple(
            (name, value)
            for name, values in (data.header or {}).items()
            for value in values
        )

        return ResolvedLink(url=url, upstream_headers=headers)

    async def cleanup(self):
        """Close the underlying HTTP client."""
        if not self._http_client.is_closed:
            await self._http_client.aclose()
