"""
Geographic classification of client IP addresses.

Wraps a MaxMind country database. Lookups fail closed: when the address is
missing, the database is not loaded, or the lookup errors, the caller is
treated as domestic.
"""

import logging
import threading
from typing import Union

import geoip2.database
import geoip2.errors
from maxminddb import InvalidDatabaseError

from shared.network.client_identity import IPAddress, parse_ip

logger = logging.getLogger(__name__)


class GeoClassifier:
    """Domestic / foreign classification backed by a read-only GeoIP reader."""

    def __init__(self, domestic_country: str = "CN", reader=None):
        """
        Initialize the classifier.

        Args:
            domestic_country: ISO country code considered domestic
            reader: Pre-opened reader exposing ``country(ip)`` (mainly for tests)
        """
        self.domestic_country = domestic_country.upper()
        self._reader = reader
        self._loaded = reader is not None
        self._load_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._reader is not None

    def load(self, db_path: str) -> bool:
        """
        Open the database once. Later calls are no-ops.

        Returns:
            True if a database is available after the call
        """
        with self._load_lock:
            if self._loaded:
                return self._reader is not None
            self._loaded = True
            try:
                self._reader = geoip2.database.Reader(db_path)
            except (OSError, ValueError, InvalidDatabaseError) as e:
                logger.error(f"Failed to load GeoIP database {db_path}: {e}")
                return False
            logger.info(f"GeoIP database loaded: {db_path}")
            return True

    def is_domestic(self, ip: Union[IPAddress, str, None]) -> bool:
        """True unless the database positively places ``ip`` outside the domestic country."""
        if isinstance(ip, str):
            ip = parse_ip(ip)
        if ip is None or self._reader is None:
            return True
        try:
            record = self._reader.country(str(ip))
        except (geoip2.errors.GeoIP2Error, InvalidDatabaseError, TypeError, ValueError) as e:
            logger.debug(f"GeoIP lookup failed for {ip}: {e}")
            return True
        return record.country.iso_code == self.domestic_country

    def close(self):
        if self._reader is not None:
            self._reader.close()
            self._reader = None
