"""
Response helpers shared by every terminal path of the gateway.
"""

import logging

from starlette.requests import Request
from starlette.responses import Response, JSONResponse

from gateway.errors import GatewayError

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,HEAD,OPTIONS",
    "Access-Control-Allow-Headers": "Range,Content-Type,Authorization",
    "Access-Control-Expose-Headers": "Content-Length,Content-Range,Accept-Ranges",
}


def apply_cors_headers(response: Response) -> Response:
    """Set the gateway's CORS headers, replacing any existing values."""
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    return response


def error_response(status_code: int, code: int, msg: str) -> JSONResponse:
    """JSON ``{code, msg}`` envelope with CORS headers."""
    response = JSONResponse(content={"code": code, "msg": msg}, status_code=status_code)
    return apply_cors_headers(response)


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """FastAPI exception handler for the gateway error taxonomy."""
    if exc.http_status >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return error_response(exc.http_status, exc.code, exc.message)
