"""
Request/response middleware that signs every outgoing Futuur request.

Registered on the httpx.AsyncClient as event hooks:
  - on_request:  read query + body, sign, set Key/Timestamp/HMAC headers
  - on_response: pass 2xx through, log and raise on anything else

Signing never awaits and never touches the query string or body bytes; only
headers are added. Nothing is retried.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from client.errors import EncodingError
from client.futuur_auth import HMAC_HEADER, FutuurAuth

logger = logging.getLogger(__name__)

_REDACTED = "<redacted>"


def query_params(request: httpx.Request) -> dict[str, str]:
    """Query string of the outgoing request as a flat mapping."""
    params: dict[str, str] = {}
    for key, value in request.url.params.multi_items():
        if key in params:
            raise EncodingError(f"Query parameter '{key}' repeated; cannot sign")
        params[key] = value
    return params


def body_params(request: httpx.Request) -> dict[str, Any] | None:
    """
    Decode the serialized body back into parameters for signing.

    Returns None for an empty body. The request content itself is left as is.
    """
    try:
        content = request.content
    except httpx.RequestNotRead as e:
        raise EncodingError("Streaming request bodies cannot be signed") from e
    if not content:
        return None

    try:
        decoded = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EncodingError(f"Request body is not valid JSON: {e}") from e
    if not isinstance(decoded, dict):
        raise EncodingError(
            f"Request body must be a JSON object, got {type(decoded).__name__}"
        )
    for key, value in decoded.items():
        if isinstance(value, (dict, list)):
            raise EncodingError(f"Body parameter '{key}' is nested; cannot sign")
    return decoded


def redact_headers(headers: httpx.Headers) -> dict[str, str]:
    redacted = dict(headers)
    for name in list(redacted):
        if name.lower() == HMAC_HEADER.lower():
            redacted[name] = _REDACTED
    return redacted


def _response_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


def log_failure(
    request: httpx.Request | None,
    response: httpx.Response | None = None,
    error: Exception | None = None,
) -> None:
    """Record a failed call with enough context to debug it offline."""
    context: dict[str, Any] = {}
    if request is not None:
        context["method"] = request.method
        context["url"] = str(request.url)
        context["headers"] = redact_headers(request.headers)
    if response is not None:
        context["status_code"] = response.status_code
        context["response"] = _response_payload(response)
    if error is not None:
        context["error"] = f"{type(error).__name__}: {error}"

    logger.error(
        "Request failed: %s %s -> %s",
        context.get("method", "?"),
        context.get("url", "?"),
        context.get("status_code") or context.get("error", "unknown error"),
        extra={"context": context},
    )


class SigningPipeline:
    """Outbound signing and inbound failure surfacing for one client."""

    def __init__(self, auth: FutuurAuth) -> None:
        self._auth = auth

    def sign(self, request: httpx.Request) -> httpx.Request:
        headers = self._auth.sign_request(
            query=query_params(request),
            body=body_params(request),
        )
        request.headers.update(headers)
        return request

    async def on_request(self, request: httpx.Request) -> None:
        self.sign(request)

    async def on_response(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        await response.aread()
        log_failure(response.request, response=response)
        response.raise_for_status()

    @property
    def event_hooks(self) -> dict[str, list]:
        return {"request": [self.on_request], "response": [self.on_response]}
