"""Request signing module for the download gateway."""

from .sign_service import (
    HMACSignService,
    SignatureError,
    ExpireMissingError,
    ExpireInvalidError,
    SignExpiredError,
    SignInvalidError,
)

__all__ = [
    "HMACSignService",
    "SignatureError",
    "ExpireMissingError",
    "ExpireInvalidError",
    "SignExpiredError",
    "SignInvalidError",
]
