"""
HMAC sign service for download links.

Signs and verifies ``path`` strings with the shared token. A signature has the
form ``<urlsafe-base64 HMAC-SHA256>:<expire>``; ``expire`` is a Unix timestamp
and ``0`` means the signature never expires.
"""

import base64
import hashlib
import hmac
import logging
import time
from typing import Optional


logger = logging.getLogger(__name__)


class SignatureError(Exception):
    """Raised when a signature cannot be verified."""
    pass


class ExpireMissingError(SignatureError):
    def __init__(self):
        super().__init__("expire missing")


class ExpireInvalidError(SignatureError):
    def __init__(self):
        super().__init__("expire invalid")


class SignExpiredError(SignatureError):
    def __init__(self):
        super().__init__("sign expired")


class SignInvalidError(SignatureError):
    def __init__(self):
        super().__init__("sign invalid")


class HMACSignService:
    """Stateless signer keyed by a single secret."""

    def __init__(self, secret_key: bytes):
        """
        Initialize sign service.

        Args:
            secret_key: Shared secret used as the HMAC key
        """
        if not secret_key:
            raise ValueError("sign secret must be configured")
        if isinstance(secret_key, str):
            secret_key = secret_key.encode("utf-8")
        self._secret_key = bytes(secret_key)

    def sign(self, data: str, expire: int = 0) -> str:
        """
        Produce a signature for ``data`` valid until ``expire``.

        Args:
            data: The exact path string to sign
            expire: Unix timestamp, 0 for no expiry

        Returns:
            Signature token suitable for the ``sign`` query parameter
        """
        expire_stamp = str(int(expire))
        digest = hmac.new(
            self._secret_key,
            f"{data}:{expire_stamp}".encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return f"{base64.urlsafe_b64encode(digest).decode('ascii')}:{expire_stamp}"

    def verify(self, data: str, signature: Optional[str], now: Optional[float] = None) -> None:
        """
        Verify ``signature`` against ``data``.

        Raises:
            SignatureError: if the signature is missing, malformed, expired or wrong
        """
        signature = signature or ""
        expire_part = signature.split(":")[-1]
        if not expire_part:
            raise ExpireMissingError()

        try:
            expire = int(expire_part)
        except ValueError:
            raise ExpireInvalidError()

        current = time.time() if now is None else now
        if expire != 0 and expire < int(current):
            raise SignExpiredError()

        expected = self.sign(data, expire)
        if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
            raise SignInvalidError()
