"""
Streaming reverse proxy for resolved download links.

Forwards the caller's GET/HEAD to the resolved upstream URL and relays the
status, headers and body back. Bodies are copied through a fixed-size buffer
so memory use does not depend on file size.
"""

import logging
from typing import AsyncIterator, Iterable, List, Optional, Set, Tuple

import anyio
import httpx
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response, StreamingResponse

from gateway.access_request import AccessRequest
from gateway.errors import InternalRequestBuildError, UpstreamTransportError
from gateway.link_client import ResolvedLink
from gateway.responses import CORS_HEADERS, apply_cors_headers

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 256 * 1024

HOP_BY_HOP_HEADERS = (
    "Connection",
    "Proxy-Connection",
    "Keep-Alive",
    "Proxy-Authenticate",
    "Proxy-Authorization",
    "TE",
    "Trailer",
    "Transfer-Encoding",
    "Upgrade",
)

# Never relayed from upstream; CORS is always set by the gateway itself
FILTERED_RESPONSE_HEADERS = frozenset(
    name.lower() for name in ("Set-Cookie", *CORS_HEADERS)
)


def hop_by_hop_names(connection_values: Iterable[str]) -> Set[str]:
    """Lower-cased hop-by-hop names, including any listed in ``Connection``."""
    names = {name.lower() for name in HOP_BY_HOP_HEADERS}
    for value in connection_values:
        names.update(token.strip().lower() for token in value.split(",") if token.strip())
    return names


def delete_hop_by_hop(headers: MutableHeaders) -> None:
    """Remove hop-by-hop headers from an outbound header set."""
    for name in hop_by_hop_names(headers.getlist("connection")):
        if name in headers:
            del headers[name]


def merge_upstream_headers(headers: MutableHeaders, upstream_headers: Iterable[Tuple[str, str]]) -> None:
    """Add upstream-suggested headers whose name the caller did not send."""
    caller_defined = {name for name, value in headers.items() if value}
    for name, value in upstream_headers:
        if name.lower() in caller_defined:
            continue
        headers.append(name, value)


def build_outbound_headers(inbound: Headers, link: ResolvedLink) -> MutableHeaders:
    """
    Headers for the upstream fetch.

    Starts from the caller's headers (Range, If-Range, conditionals, UA are kept
    verbatim), fills in upstream-suggested ones without overriding, then strips
    hop-by-hop headers.
    """
    headers = inbound.mutablecopy()
    if "host" in headers:
        del headers["host"]
    merge_upstream_headers(headers, link.upstream_headers)
    delete_hop_by_hop(headers)
    if "accept-encoding" not in headers:
        # Body is relayed raw, so only ask for encodings the caller accepts
        headers["accept-encoding"] = "identity"
    return headers


def response_header_items(upstream_headers: httpx.Headers) -> List[Tuple[str, str]]:
    """Upstream response headers the caller may see."""
    skipped = hop_by_hop_names(upstream_headers.get_list("connection")) | FILTERED_RESPONSE_HEADERS
    return [
        (name, value)
        for name, value in upstream_headers.multi_items()
        if name.lower() not in skipped
    ]


class StreamingProxy:
    """
    Core streaming proxy for resolved links.

    Executes the upstream request once (no retries) and streams the reply.
    """

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None,
                 buffer_size: int = COPY_BUFFER_SIZE):
        """
        Initialize streaming proxy.

        Args:
            http_client: Optional preconfigured client (tests inject a mock transport)
            buffer_size: Size of the body copy buffer in bytes
        """
        self._buffer_size = buffer_size
        self._http_client = http_client or self._create_http_client()

        logger.info("StreamingProxy initialized successfully")

    def _create_http_client(self) -> httpx.AsyncClient:
        """Create HTTP client for large file fetches."""
        timeout = httpx.Timeout(
            connect=10.0,   # Connection timeout
            read=120.0,     # Between chunks, not whole-body
            write=30.0,
            pool=10.0
        )

        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True
        )

    def get_http_client(self) -> httpx.AsyncClient:
        """Get the configured HTTP client for testing."""
        return self._http_client

    def _build_request(self, access: AccessRequest, link: ResolvedLink) -> httpx.Request:
        try:
            headers = build_outbound_headers(access.headers, link)
            return self._http_client.build_request(
                access.method,
                link.url,
                headers=headers.items(),
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise InternalRequestBuildError(str(e))

    async def forward(self, access: AccessRequest, link: ResolvedLink) -> Response:
        """
        Proxy ``access`` to ``link.url``.

        Returns:
            A response carrying the upstream status and filtered headers; GET
            responses stream the body, HEAD responses never have one.

        Raises:
            InternalRequestBuildError: the outbound request could not be built
            UpstreamTransportError: the upstream round-trip failed
        """
        request = self._build_request(access, link)

        try:
            upstream = await self._http_client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"Proxy error for {access.method} {link.url}: {e}")
            raise UpstreamTransportError(str(e) or e.__class__.__name__)

        if access.method == "HEAD":
            await upstream.aclose()
            response = Response(status_code=upstream.status_code)
        else:
            response = StreamingResponse(
                self._stream_body(upstream, access.path),
                status_code=upstream.status_code,
            )

        response.raw_headers = []
        for name, value in response_header_items(upstream.headers):
            response.headers.append(name, value)
        return apply_cors_headers(response)

    async def _stream_body(self, upstream: httpx.Response, path: str) -> AsyncIterator[bytes]:
        """Relay raw upstream bytes; a broken copy is logged, never rewritten."""
        total_bytes = 0
        try:
            async for chunk in upstream.aiter_raw(chunk_size=self._buffer_size):
                total_bytes += len(chunk)
                yield chunk
        except httpx.HTTPError as e:
            logger.warning(f"Upstream read failed for {path} after {total_bytes} bytes: {e}")
        except (anyio.get_cancelled_exc_class(), GeneratorExit):
            logger.warning(f"Copy to client aborted for {path} after {total_bytes} bytes")
            raise
        finally:
            with anyio.CancelScope(shield=True):
                await upstream.aclose()

    async def cleanup(self):
        """Clean up resources and close connections."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
        logger.info("StreamingProxy cleanup completed")
