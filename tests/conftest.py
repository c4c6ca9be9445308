"""
Shared test fixtures for the download gateway.

Provides:
1. Settings with a known token (the signing secret)
2. A fake GeoIP reader so no database file is needed
"""

import logging

import pytest

from shared.auth.sign_service import HMACSignService
from shared.config.config_manager import GatewaySettings
from shared.network.geo_classifier import GeoClassifier
from tests.helpers import FakeGeoReader, TEST_TOKEN, UPSTREAM_ADDRESS

logging.basicConfig(level=logging.INFO)


@pytest.fixture
def settings():
    return GatewaySettings(address=UPSTREAM_ADDRESS, token=TEST_TOKEN)


@pytest.fixture
def sign_service():
    return HMACSignService(TEST_TOKEN.encode("utf-8"))


@pytest.fixture
def geo_reader():
    return FakeGeoReader({
        "114.114.114.114": "CN",
        "8.8.8.8": "US",
        "2001:4860:4860::8888": "US",
    })


@pytest.fixture
def geo_classifier(geo_reader):
    return GeoClassifier("CN", reader=geo_reader)
