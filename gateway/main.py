"""
OpenList download gateway - FastAPI application and command line entry point.
"""
import argparse
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI

from gateway.dependencies import build_services, get_settings
from gateway.endpoints.download import CatchAllRoute, download
from gateway.errors import GatewayError
from gateway.link_client import LinkClient
from gateway.responses import gateway_error_handler
from gateway.streaming_proxy import StreamingProxy
from shared.config.config_manager import ConfigManager, ConfigValidationError, GatewaySettings
from shared.network.geo_classifier import GeoClassifier

logger = logging.getLogger(__name__)

VERSION = os.getenv("GATEWAY_VERSION", "dev")


def create_app(
    settings: Optional[GatewaySettings] = None,
    geo_classifier: Optional[GeoClassifier] = None,
    link_client: Optional[LinkClient] = None,
    proxy: Optional[StreamingProxy] = None
) -> FastAPI:
    """Create the gateway application."""
    settings = settings or get_settings()
    services = build_services(
        settings,
        geo_classifier=geo_classifier,
        link_client=link_client,
        proxy=proxy,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle events."""
        # Startup: the geo database is opened once before traffic
        services.geo_classifier.load(settings.geoip_db)
        if settings.disable_sign:
            logger.warning("Signature verification is disabled")

        yield

        # Shutdown
        await services.cleanup()

    app = FastAPI(
        title="OpenList Download Gateway",
        version=VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.services = services
    app.add_exception_handler(GatewayError, gateway_error_handler)
    # Every method reaches the handler so unsupported ones get the JSON 405
    app.router.routes.append(CatchAllRoute("/{file_path:path}", download, include_in_schema=False))
    return app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openlist-proxy",
        description="Download gateway for an OpenList server",
    )
    parser.add_argument("--port", type=int, help="the proxy port (default 5243)")
    parser.add_argument("--host", help="listen address (default 0.0.0.0)")
    parser.add_argument("--https", action="store_true", default=None, help="use https protocol")
    parser.add_argument("--cert", dest="cert_file", help="cert file (default server.crt)")
    parser.add_argument("--key", dest="key_file", help="key file (default server.key)")
    parser.add_argument("--address", help="openlist address")
    parser.add_argument("--token", help="openlist token")
    parser.add_argument("--disable-sign", action="store_true", default=None,
                        help="disable signature verification")
    parser.add_argument("--geoip-db", help="GeoIP country database (default GeoLite2-Country.mmdb)")
    parser.add_argument("--domestic-country", help="country code served by proxy (default CN)")
    parser.add_argument("--version", action="store_true", help="show version and exit")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"Version: {VERSION}")
        return 0

    overrides = vars(args).copy()
    overrides.pop("version")
    try:
        settings = ConfigManager(overrides=overrides).get_settings()
    except ConfigValidationError as e:
        logger.error(str(e))
        parser.print_usage(sys.stderr)
        return 1

    import uvicorn

    logger.info(f"OpenList-Proxy - {VERSION}")
    logger.info(f"listen and serve on {settings.host}:{settings.port} (https={settings.https})")

    ssl_options = {}
    if settings.https:
        ssl_options = {"ssl_certfile": settings.cert_file, "ssl_keyfile": settings.key_file}

    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, **ssl_options)
    return 0


if __name__ == "__main__":
    sys.exit(main())
