"""
Download endpoint.

Every path is a file path on the upstream listing service. Requests are
verified, resolved to an upstream link, then either redirected to it or
streamed through the gateway.
"""

import logging

import httpx
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from gateway.access_request import AccessRequest
from gateway.dependencies import get_services
from gateway.errors import InvalidSignature, MethodNotAllowed, UpstreamTransportError
from gateway.responses import apply_cors_headers
from gateway.routing_policy import RoutingDecision, decide
from shared.auth.sign_service import SignatureError
from shared.network.client_identity import resolve_client_ip

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD")


class CatchAllRoute(Route):
    """Route that hands every HTTP method to its endpoint."""

    def __init__(self, path: str, endpoint, **kwargs):
        super().__init__(path, endpoint, **kwargs)
        # Function endpoints default to GET/HEAD; method checks live in the handler
        self.methods = None


def _redirect(url: str) -> Response:
    try:
        location = url if url.isascii() else str(httpx.URL(url))
    except httpx.InvalidURL as e:
        raise UpstreamTransportError(f"invalid link url: {url} ({e})")
    response = Response(status_code=302, headers={"Location": location})
    return apply_cors_headers(response)


async def download(request: Request) -> Response:
    """Handle one download request from preflight to terminal response."""
    if request.method == "OPTIONS":
        return apply_cors_headers(Response(status_code=204))

    if request.method not in ALLOWED_METHODS:
        raise MethodNotAllowed()

    services = get_services(request)
    access = AccessRequest.from_request(request)

    if not services.settings.disable_sign:
        try:
            services.sign_service.verify(access.path, access.sign)
        except SignatureError as e:
            raise InvalidSignature(str(e))

    client_ip = resolve_client_ip(access.headers, access.client_address)
    is_domestic = services.geo_classifier.is_domestic(client_ip)
    if not is_domestic:
        logger.info(f"Non-domestic request sent direct: {client_ip}")

    link = await services.link_client.resolve(access.path)

    logger.debug(f"Client user agent: {access.client_user_agent!r}")
    if decide(access.client_user_agent, is_domestic) is RoutingDecision.DIRECT:
        return _redirect(link.url)

    logger.info(f"Proxy to: {link.url}")
    return await services.proxy.forward(access, link)
