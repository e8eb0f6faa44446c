#!/usr/bin/env python3
"""
Probe the remote cache tier from a workstation or CI job.

Builds a ``ResilientCache`` from the same environment variables the service
reads (overridable on the command line), runs its health check and prints
the result as JSON. Exits non-zero when the remote tier is unhealthy.
"""

import argparse
import asyncio
import json
from typing import Optional, Sequence

from service_cache.app.cache import CacheConfig, ResilientCache


async def probe(config: CacheConfig) -> dict:
    """Run one health check and return the report."""
    async with ResilientCache(config) as cache:
        health = await cache.health_check()
    return {
        "remote_configured": config.is_configured,
        "timeout_ms": config.timeout_ms,
        "max_retries": config.max_retries,
        **health.model_dump(exclude_none=True),
    }


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check remote cache tier health.")
    parser.add_argument("--endpoint", default=None, help="Redis URL (defaults to ENDPOINT_URL/REDIS_URL)")
    parser.add_argument("--credential", default=None, help="Redis password (defaults to CREDENTIAL/REDIS_TOKEN)")
    parser.add_argument("--timeout-ms", type=int, default=None, help="Per-attempt timeout in milliseconds")
    parser.add_argument("--max-retries", type=int, default=None, help="Retries after the first attempt")
    parser.add_argument("--retry-delay-ms", type=int, default=None, help="Base linear backoff in milliseconds")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CacheConfig:
    """Apply explicit flags on top of the environment-resolved settings."""
    overrides = {
        "endpoint": args.endpoint,
        "credential": args.credential,
        "timeout_ms": args.timeout_ms,
        "max_retries": args.max_retries,
        "retry_delay_ms": args.retry_delay_ms,
    }
    return CacheConfig(**{name: value for name, value in overrides.items() if value is not None})


def main() -> int:
    config = build_config(parse_args())

    try:
        report = asyncio.run(probe(config))
    except KeyboardInterrupt:
        return 130

    print(json.dumps(report, indent=2))
    return 0 if report["status"] == "healthy" else 1


if __name__ == "__main__":
    raise SystemExit(main())
