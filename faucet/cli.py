"""Command line entry point: ``faucet --private-key ... --faucet-address ...``."""

import argparse
import os
from typing import List, Optional

import uvicorn

from faucet.config import get_settings

_VERBOSITY_LEVELS = ["WARNING", "INFO", "DEBUG"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="faucet", description="Account bootstrap faucet service")
    parser.add_argument("--private-key", help="Hex key that signs faucet transactions (env FAUCET_PRIVATE_KEY)")
    parser.add_argument("--rpc-url", help="EVM JSON-RPC URL (env FAUCET_RPC_URL)")
    parser.add_argument("--faucet-address", help="Faucet contract address (env FAUCET_FAUCET_ADDRESS)")
    parser.add_argument("--token-address", help="Token contract address (env FAUCET_TOKEN_ADDRESS)")
    parser.add_argument("--database-url", help="Drip ledger database URL (env FAUCET_DATABASE_URL)")
    parser.add_argument("--host", help="Listen host (env FAUCET_HOST)")
    parser.add_argument("--port", type=int, help="Listen port (env FAUCET_PORT)")
    parser.add_argument("-v", "--verbosity", action="count", default=0, help="Repeat for more verbose logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Silence logging")
    return parser


def apply_args(args: argparse.Namespace) -> None:
    """Push explicit flags into the environment so Settings picks them up."""
    overrides = {
        "FAUCET_PRIVATE_KEY": args.private_key,
        "FAUCET_RPC_URL": args.rpc_url,
        "FAUCET_FAUCET_ADDRESS": args.faucet_address,
        "FAUCET_TOKEN_ADDRESS": args.token_address,
        "FAUCET_DATABASE_URL": args.database_url,
        "FAUCET_HOST": args.host,
        "FAUCET_PORT": None if args.port is None else str(args.port),
    }
    if args.quiet:
        overrides["FAUCET_LOG_LEVEL"] = "CRITICAL"
    elif args.verbosity:
        overrides["FAUCET_LOG_LEVEL"] = _VERBOSITY_LEVELS[min(args.verbosity, len(_VERBOSITY_LEVELS) - 1)]

    for key, value in overrides.items():
        if value is not None:
            os.environ[key] = value
    get_settings.cache_clear()


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    apply_args(args)
    settings = get_settings()
    uvicorn.run("faucet.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
