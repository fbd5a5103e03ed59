"""
Exception hierarchy for the Futuur client.

Signing-stage errors (ConfigurationError, EncodingError) are raised before any
bytes leave the process. TransportError wraps whatever httpx raised once the
request was on the wire.
"""

from __future__ import annotations

import httpx


class FutuurError(Exception):
    """Base class for all client errors."""


class ConfigurationError(FutuurError):
    """Missing or empty credential. Nothing can be signed."""


class EncodingError(FutuurError):
    """A parameter has no stable text form and cannot be signed."""


class TransportError(FutuurError):
    """
    Network failure, timeout, non-2xx status, or an unparseable success body.

    The underlying exception is chained as __cause__; the request and,
    when the server answered, the response are attached for diagnostics.
    """

    def __init__(
        self,
        message: str,
        request: httpx.Request | None = None,
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.response = response

    @property
    def status_code(self) -> int | None:
        if self.response is None:
            return None
        return self.response.status_code
