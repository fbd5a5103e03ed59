#!/usr/bin/env python3
"""
Futuur API command line.

Usage:
  uv run python run.py sign --query limit=5 --query offset=0   # offline, prints canonical string + headers
  uv run python run.py sign --body '{"outcome": 12, "shares": 3}' --timestamp 1700000000
  uv run python run.py me
  uv run python run.py rates
  uv run python run.py markets --limit 10
  uv run python run.py bets --limit 10 --offset 20

Credentials come from FUTUUR_PUBLIC_KEY / FUTUUR_PRIVATE_KEY (or .env).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from client.canonical import build_auth_meta, merge_params
from client.errors import FutuurError
from client.futuur import FutuurClient
from client.futuur_auth import FutuurAuth
from config import Config, has_credentials, load_config
from monitor.logger import setup_logging

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_NO_CREDENTIALS = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Futuur API client")
    parser.add_argument("--log-level", type=str, default=None, help="Console log level (default: LOG_LEVEL or INFO)")
    parser.add_argument("--json-log", type=str, default=None, help="Path to JSON log file for machine-readable output")
    parser.add_argument("--log-dir", type=str, default=None, help="Directory for the verbose debug log (default: ./logs)")
    sub = parser.add_subparsers(dest="command", required=True)

    sign = sub.add_parser("sign", help="Print the canonical string and auth headers without sending anything")
    sign.add_argument("--query", action="append", default=[], metavar="KEY=VALUE", help="Query parameter (repeatable)")
    sign.add_argument("--body", type=str, default=None, help="JSON object body")
    sign.add_argument("--timestamp", type=int, default=None, help="Unix seconds to sign with (default: now)")

    sub.add_parser("me", help="Show the authenticated user")
    sub.add_parser("rates", help="Show current currency rates")

    markets = sub.add_parser("markets", help="List markets")
    markets.add_argument("--limit", type=int, default=None)
    markets.add_argument("--offset", type=int, default=None)

    bets = sub.add_parser("bets", help="List your bets")
    bets.add_argument("--limit", type=int, default=None)
    bets.add_argument("--offset", type=int, default=None)

    return parser.parse_args(argv)


def _parse_query(pairs: list[str]) -> dict[str, str]:
    query: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        query[key] = value
    return query


def sign_command(cfg: Config, args: argparse.Namespace) -> dict:
    """Offline signature: what the pipeline would attach to this request."""
    auth = FutuurAuth(public_key=cfg.futuur_public_key, private_key=cfg.futuur_private_key)
    query = _parse_query(args.query)
    body = json.loads(args.body) if args.body else None
    if body is not None and not isinstance(body, dict):
        raise ValueError("--body must be a JSON object")

    timestamp = args.timestamp if args.timestamp is not None else auth.now()
    params = merge_params(build_auth_meta(auth.public_key, timestamp), query, body)
    signature = auth.build_signature(params)
    return {
        "canonical": signature.canonical,
        "headers": auth.headers(signature),
    }


async def api_command(cfg: Config, args: argparse.Namespace):
    async with FutuurClient.from_config(cfg) as client:
        if args.command == "me":
            return await client.me()
        if args.command == "rates":
            return await client.current_rates()
        if args.command == "markets":
            return await client.market_list(limit=args.limit, offset=args.offset)
        if args.command == "bets":
            return await client.betting_list(limit=args.limit, offset=args.offset)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config()
    log_path = setup_logging(args.log_level or cfg.log_level, json_log_file=args.json_log, log_dir=args.log_dir)
    logger.debug("Log file: %s", log_path)

    if not has_credentials(cfg):
        logger.error("FUTUUR_PUBLIC_KEY and FUTUUR_PRIVATE_KEY are required.")
        return EXIT_NO_CREDENTIALS

    try:
        if args.command == "sign":
            result = sign_command(cfg, args)
        else:
            result = asyncio.run(api_command(cfg, args))
    except FutuurError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return EXIT_ERROR
    except ValueError as e:
        logger.error("Invalid input: %s", e)
        return EXIT_ERROR

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
