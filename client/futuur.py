"""
Futuur REST API v1 client. Async, signed with HMAC-SHA512 on every request.

Endpoints return decoded JSON; no response models are imposed here.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Iterable, Mapping

import httpx

from client.canonical import stringify_value
from client.errors import ConfigurationError, TransportError
from client.futuur_auth import FutuurAuth
from client.pipeline import SigningPipeline, log_failure
from config import Config

logger = logging.getLogger(__name__)

BASE_URL = "https://api.futuur.com/api/v1"
DEFAULT_TIMEOUT_MS = 10_000

_CURRENCY_MODES = ("play_money", "real_money")
_POSITIONS = ("l", "s")


def _check_choice(value: str | None, choices: tuple[str, ...], name: str) -> None:
    if value is not None and value not in choices:
        raise ValueError(f"{name} must be one of {choices}, got {value!r}")


def _query(params: Mapping[str, Any] | None) -> dict[str, str] | None:
    """
    Drop None values and stringify the rest with the signing rule, so the
    query string on the wire is exactly what gets signed.
    """
    if not params:
        return None
    query = {
        key: stringify_value(value, context=f"parameter '{key}'")
        for key, value in params.items()
        if value is not None
    }
    return query or None


def _body(params: Mapping[str, Any]) -> dict[str, Any] | None:
    """
    Drop None values. The rest keep their JSON type but must have a signable
    text form, so a bad body value fails like a bad query value.
    """
    body = {key: value for key, value in params.items() if value is not None}
    for key, value in body.items():
        stringify_value(value, context=f"body field '{key}'")
    return body or None


def _join(values: Iterable[int | str] | None) -> str | None:
    if values is None:
        return None
    return ",".join(stringify_value(v, context="list item") for v in values)


class FutuurClient:
    """
    Futuur REST API client.

    Owns its base URL, timeout and credentials; nothing is shared between
    instances. Use as an async context manager or call aclose().
    """

    def __init__(
        self,
        public_key: str,
        private_key: str,
        timeout_ms: int | None = None,
        host: str = BASE_URL,
        clock: Callable[[], float] = time.time,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth = FutuurAuth(public_key=public_key, private_key=private_key, clock=clock)
        self._pipeline = SigningPipeline(self._auth)
        self._host = host.rstrip("/")
        self._timeout_ms = DEFAULT_TIMEOUT_MS if timeout_ms is None else timeout_ms
        if self._timeout_ms <= 0:
            raise ConfigurationError(f"timeout_ms must be positive, got {self._timeout_ms}")
        self._http = httpx.AsyncClient(
            base_url=self._host,
            timeout=self._timeout_ms / 1000.0,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            event_hooks=self._pipeline.event_hooks,
            transport=transport,
        )

    @classmethod
    def from_config(cls, cfg: Config, **kwargs) -> FutuurClient:
        return cls(
            public_key=cfg.futuur_public_key,
            private_key=cfg.futuur_private_key,
            timeout_ms=cfg.futuur_timeout_ms,
            host=cfg.futuur_host,
            **kwargs,
        )

    @property
    def auth(self) -> FutuurAuth:
        return self._auth

    @property
    def host(self) -> str:
        return self._host

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> FutuurClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        """Make a signed request and return the decoded JSON. Never retries."""
        try:
            resp = await self._http.request(method, path, params=_query(params), json=body)
        except httpx.HTTPStatusError as e:
            # already logged by the response hook
            raise TransportError(
                f"Futuur {method} {path} returned {e.response.status_code}",
                request=e.request,
                response=e.response,
            ) from e
        except httpx.RequestError as e:
            log_failure(e.request, error=e)
            raise TransportError(
                f"Futuur {method} {path} failed: {e}",
                request=e.request,
            ) from e

        logger.debug("Futuur %s %s -> %d", method, path, resp.status_code)
        if not resp.content:
            return None
        try:
            return resp.json()
        except json.JSONDecodeError as e:
            log_failure(resp.request, response=resp, error=e)
            raise TransportError(
                f"Futuur {method} {path} returned a non-JSON body",
                request=resp.request,
                response=resp,
            ) from e

    # -- Account --

    async def me(self) -> dict:
        """Information about the authenticated user."""
        return await self._request("GET", "/me")

    # -- Categories --

    async def category_list(self, limit: int | None = None, offset: int | None = None) -> dict:
        """Paginated list of categories."""
        return await self._request("GET", "/categories", {"limit": limit, "offset": offset})

    async def category_detail(self, id: int | str) -> dict:
        return await self._request("GET", f"/categories/{id}")

    async def root_categories(self) -> list:
        return await self._request("GET", "/categories/root")

    async def root_categories_and_main_children(self, currency_mode: str) -> list:
        _check_choice(currency_mode, _CURRENCY_MODES, "currency_mode")
        return await self._request(
            "GET",
            "/categories/root_and_main_children",
            {"currency_mode": currency_mode},
        )

    # -- Markets --

    async def market_list(
        self,
        categories: Iterable[int] | None = None,
        currency_mode: str | None = None,
        hide_my_bets: bool | None = None,
        limit: int | None = None,
        live: bool | None = None,
        offset: int | None = None,
        only_markets_i_follow: bool | None = None,
        ordering: str | None = None,
        resolved_only: bool | None = None,
        search: str | None = None,
        tag: str | None = None,
    ) -> dict:
        """Paginated list of markets. `categories` is sent comma-separated."""
        _check_choice(currency_mode, _CURRENCY_MODES, "currency_mode")
        params = {
            "categories": _join(categories),
            "currency_mode": currency_mode,
            "hide_my_bets": hide_my_bets,
            "limit": limit,
            "live": live,
            "offset": offset,
            "only_markets_i_follow": only_markets_i_follow,
            "ordering": ordering,
            "resolved_only": resolved_only,
            "search": search,
            "tag": tag,
        }
        return await self._request("GET", "/markets", params)

    async def market_detail(self, id: int | str) -> dict:
        return await self._request("GET", f"/markets/{id}")

    async def related_markets(self, id: int | str) -> list:
        return await self._request("GET", f"/markets/{id}/related_markets")

    async def suggest_market(
        self,
        category: str,
        title: str,
        description: str,
        end_bet_date: str,
        outcomes: list[Mapping[str, Any]],
    ) -> dict:
        """
        Suggest a new market. Sent as query params with no body.

        `outcomes` ({"title", "price"} pairs) has no flat form, so it travels
        as compact JSON text and is signed as that text.
        """
        params = {
            "category": category,
            "title": title,
            "description": description,
            "end_bet_date": end_bet_date,
            "outcomes": json.dumps(list(outcomes), separators=(",", ":")),
        }
        return await self._request("POST", "/markets/suggest_market", params)

    # -- Bets --

    async def betting_list(
        self,
        active: bool | None = None,
        currency_mode: str | None = None,
        following: bool | None = None,
        limit: int | None = None,
        offset: int | None = None,
        past_bets: bool | None = None,
        question: int | None = None,
        user: int | None = None,
        status: str | None = None,
    ) -> dict:
        """Paginated list of your bets."""
        _check_choice(currency_mode, _CURRENCY_MODES, "currency_mode")
        params = {
            "active": active,
            "currency_mode": currency_mode,
            "following": following,
            "limit": limit,
            "offset": offset,
            "past_bets": past_bets,
            "question": question,
            "user": user,
            "status": status,
        }
        return await self._request("GET", "/bets", params)

    async def bet_detail(self, id: int | str) -> dict:
        return await self._request("GET", f"/bets/{id}")

    async def get_partial_amount_on_sell(
        self,
        id: int | str,
        amount: float | None = None,
        shares: float | None = None,
    ) -> dict:
        """Quote for selling part of a position, by amount or by shares."""
        return await self._request(
            "GET",
            f"/bets/{id}/get_partial_amount_on_sell",
            {"amount": amount, "shares": shares},
        )

    async def current_rates(self) -> dict:
        """Latest currency rates, keyed by currency."""
        return await self._request("GET", "/bets/rates")

    async def purchase(
        self,
        outcome: int,
        shares: float,
        amount: float | None = None,
        currency: str | None = None,
        position: str | None = None,
    ) -> dict:
        """
        Bet on a market by purchasing an outcome position.

        position: 'l' (long, in favor of the outcome) or 's' (short).
        """
        _check_choice(position, _POSITIONS, "position")
        body = _body({
            "outcome": outcome,
            "amount": amount,
            "shares": shares,
            "currency": currency,
            "position": position,
        })
        return await self._request("POST", "/bets/", body=body)

    async def sell(
        self,
        id: int | str,
        amount: float | None = None,
        shares: float | None = None,
    ) -> dict:
        """Sell a position. With neither amount nor shares the whole position goes."""
        body = _body({"amount": amount, "shares": shares})
        return await self._request("PATCH", f"/bets/{id}", body=body)
