"""Probe command: run governed requests against a live API."""

import asyncio
import json
from collections import Counter
from typing import Any, Dict, Optional

import click
from rich.console import Console

from ...errors import (
    BlockedEndpointError,
    RateLimitExceededError,
    ThrottledError,
    TransportError,
)
from ...governor import RequestGovernor
from ..app import load_config
from ..display import outcome_table, stats_table

console = Console()


@click.command()
@click.argument("url")
@click.option("--method", "-X", default="GET", help="HTTP method")
@click.option("--body", "-d", default=None, help="JSON request body")
@click.option("--repeat", "-n", type=int, default=1, help="Number of sequential rounds")
@click.option("--concurrency", "-j", type=int, default=1, help="Identical calls per round")
@click.option("--base-url", default=None, help="Override transport base URL")
@click.option("--no-cache", is_flag=True, help="Bypass the response cache")
@click.pass_context
def probe(
    ctx: click.Context,
    url: str,
    method: str,
    body: Optional[str],
    repeat: int,
    concurrency: int,
    base_url: Optional[str],
    no_cache: bool,
) -> None:
    """Issue governed requests and report how each was resolved.

    Examples:

        bookhub-governor probe /api/books

        bookhub-governor probe /api/books -n 3 -j 10

        bookhub-governor probe /api/chats/abc/messages -X POST -d '{"text": "hi"}'
    """
    cfg = load_config(ctx)
    if base_url:
        cfg.base_url = base_url
    try:
        payload = json.loads(body) if body else None
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"--body is not valid JSON: {e}")

    outcomes = asyncio.run(_probe_async(cfg, url, method, payload, repeat, concurrency, no_cache))
    console.print(outcome_table(outcomes))


async def _probe_async(
    cfg: Any,
    url: str,
    method: str,
    payload: Any,
    repeat: int,
    concurrency: int,
    no_cache: bool,
) -> Dict[str, int]:
    outcomes: Counter = Counter()
    async with RequestGovernor(cfg) as governor:
        for _ in range(repeat):
            results = await asyncio.gather(
                *(governor.fetch(method, url, payload, use_cache=not no_cache)
                  for _ in range(concurrency)),
                return_exceptions=True,
            )
            for result in results:
                outcomes[_classify(result)] += 1
        console.print(stats_table(governor.get_stats()))
    return dict(outcomes)


def _classify(result: Any) -> str:
    if isinstance(result, BlockedEndpointError):
        return "blocked"
    if isinstance(result, RateLimitExceededError):
        return "rate_limited"
    if isinstance(result, ThrottledError):
        return "throttled"
    if isinstance(result, TransportError):
        return f"transport_error ({result.status_code or 'network'})"
    if isinstance(result, BaseException):
        return f"error ({type(result).__name__})"
    return "ok"
