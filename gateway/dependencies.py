"""
Dependency injection for the download gateway.

Everything shared across requests is built once from ``GatewaySettings`` and
stored on ``app.state``; handlers reach it through ``get_services``.
"""

from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request

from gateway.link_client import LinkClient
from gateway.streaming_proxy import StreamingProxy
from shared.auth.sign_service import HMACSignService
from shared.config.config_manager import ConfigManager, GatewaySettings
from shared.network.geo_classifier import GeoClassifier


@dataclass
class GatewayServices:
    settings: GatewaySettings
    sign_service: HMACSignService
    geo_classifier: GeoClassifier
    link_client: LinkClient
    proxy: StreamingProxy

    async def cleanup(self):
        await self.link_client.cleanup()
        await self.proxy.cleanup()
        self.geo_classifier.close()


def get_settings(config_manager: Optional[ConfigManager] = None) -> GatewaySettings:
    """Load settings from env files and the environment."""
    config_manager = config_manager or ConfigManager()
    return config_manager.get_settings()


def build_services(
    settings: GatewaySettings,
    geo_classifier: Optional[GeoClassifier] = None,
    link_client: Optional[LinkClient] = None,
    proxy: Optional[StreamingProxy] = None
) -> GatewayServices:
    """
    Build the gateway services with optional injected collaborators.

    Args:
        settings: Validated gateway settings
        geo_classifier: Classifier to use instead of one loaded from ``settings.geoip_db``
        link_client: Link client to use instead of one talking to ``settings.address``
        proxy: Streaming proxy to use instead of a default one

    Returns:
        GatewayServices container
    """
    return GatewayServices(
        settings=settings,
        sign_service=HMACSignService(settings.secret),
        geo_classifier=geo_classifier or GeoClassifier(settings.domestic_country),
        link_client=link_client or LinkClient(settings.link_endpoint, settings.token),
        proxy=proxy or StreamingProxy(),
    )


def get_services(request: Request) -> GatewayServices:
    """Services attached to the running application."""
    return request.app.state.services
