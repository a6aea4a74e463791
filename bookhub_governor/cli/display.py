"""Rich renderables for governor state."""

from typing import Dict

from rich.table import Table

from ..config import GovernorConfig
from ..types import GovernorStats


def config_table(config: GovernorConfig) -> Table:
    table = Table(title="Governor configuration")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value")

    table.add_row("default_ttl", f"{config.default_ttl:g}s")
    table.add_row("max_cache_entries", str(config.max_cache_entries or "unbounded"))
    table.add_row("sweep_interval", f"{config.sweep_interval:g}s")
    table.add_row("min_interval", f"{config.min_interval:g}s")
    table.add_row("throttle_mode", config.throttle_mode.value)
    table.add_row("rate window", f"{config.max_requests_per_window} / {config.window:g}s")
    table.add_row("cache_methods", ", ".join(config.cache_methods))
    table.add_row("base_url", config.base_url)
    table.add_row("timeouts", f"{config.request_timeout:g}s (upload {config.upload_timeout:g}s)")
    for prefix, seconds in config.endpoint_intervals:
        table.add_row(f"interval {prefix}", f"{seconds:g}s")
    for prefix in config.skip_deduplication_for:
        table.add_row("skip dedup", prefix)
    return table


def outcome_table(counts: Dict[str, int], title: str = "Outcomes") -> Table:
    table = Table(title=title)
    table.add_column("Outcome", style="cyan")
    table.add_column("Count", justify="right")
    for outcome, count in sorted(counts.items()):
        table.add_row(outcome, str(count))
    return table


def stats_table(stats: GovernorStats) -> Table:
    table = Table(title="Governor state")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("pending requests", str(stats.pending_requests))
    table.add_row("cached entries", str(stats.cached_entries))
    table.add_row("blocked endpoints", str(len(stats.blocked_endpoints)))
    for endpoint, count in sorted(stats.endpoint_counts.items()):
        table.add_row(f"window {endpoint}", str(count))
    return table
