"""
Futuur HMAC-SHA512 request signing.

Every request carries three headers:
  - Key:       public key, as issued
  - Timestamp: unix seconds, also folded into the signed parameters
  - HMAC:      hex(HMAC_SHA512(private_key, canonical_params))

canonical_params is built by client.canonical from Key + Timestamp + query
params + body params.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from client.canonical import TIMESTAMP_PARAM, build_auth_meta, canonical_string, merge_params
from client.errors import ConfigurationError, EncodingError

logger = logging.getLogger(__name__)

KEY_HEADER = "Key"
TIMESTAMP_HEADER = "Timestamp"
HMAC_HEADER = "HMAC"


def sign(canonical: str, secret_key: str) -> str:
    """
    HMAC-SHA512 of the canonical string, as 128 lowercase hex chars.

    Raises:
        ConfigurationError: if secret_key is empty or None.
    """
    if not secret_key:
        raise ConfigurationError("Cannot sign with an empty private key")
    return hmac.new(
        secret_key.encode("utf-8"),
        canonical.encode("utf-8"),
        hashlib.sha512,
    ).hexdigest()


@dataclass(frozen=True)
class SignatureData:
    hmac: str
    timestamp: str
    canonical: str


@dataclass(frozen=True)
class FutuurAuth:
    """Public/private key pair plus the clock used to stamp requests."""

    public_key: str
    private_key: str = field(repr=False)
    clock: Callable[[], float] = field(default=time.time, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.public_key:
            raise ConfigurationError("Futuur public key is required")
        if not self.private_key:
            raise ConfigurationError("Futuur private key is required")

    def now(self) -> int:
        return int(self.clock())

    def build_signature(self, params: Mapping[str, Any]) -> SignatureData:
        """Sign an already-merged parameter set (must include Timestamp)."""
        if params.get(TIMESTAMP_PARAM) is None:
            raise EncodingError("Signed parameters must include a Timestamp")
        canonical = canonical_string(params)
        digest = sign(canonical, self.private_key)
        logger.debug("Signed canonical params: %s", canonical)
        return SignatureData(
            hmac=digest,
            timestamp=str(params[TIMESTAMP_PARAM]),
            canonical=canonical,
        )

    def sign_request(
        self,
        query: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
        timestamp: int | None = None,
    ) -> dict[str, str]:
        """
        Generate authentication headers for a Futuur API request.

        Args:
            query: Query string parameters
            body: Decoded JSON body parameters (body wins over query on collision)
            timestamp: Unix seconds (read from the clock if None)

        Returns:
            Dict of headers to add to the request.
        """
        if timestamp is None:
            timestamp = self.now()

        params = merge_params(build_auth_meta(self.public_key, timestamp), query, body)
        return self.headers(self.build_signature(params))

    def headers(self, signature: SignatureData) -> dict[str, str]:
        return {
            KEY_HEADER: self.public_key,
            TIMESTAMP_HEADER: signature.timestamp,
            HMAC_HEADER: signature.hmac,
        }
