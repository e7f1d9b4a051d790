"""
Rich console utilities for dual-mode CLI output.

Provides terminal output for humans and structured JSON for automation.
All output functions adapt to the global output_mode setting.

This module provides:
- OutputMode: Class to manage output format (text/json/quiet)
- Context manager: spinner()
- Output functions: success(), error(), warning(), info()
- Display functions: print_banner(), print_sov_table(), print_trend_table(),
  print_breakdown_table(), print_analysis_summary()

Human Mode (--format text):
    - Rich spinners and colored tables
    - Panels and banners

Agent Mode (--format json):
    - Structured JSON output to stdout
    - No ANSI codes or spinners

Quiet Mode (--quiet):
    - Tab-separated values
    - No decorations

Examples:
    >>> output_mode.format = "text"
    >>> with spinner("Loading..."):
    ...     config = load_config("project.yaml")
    >>> success("Config loaded successfully")

    >>> output_mode.format = "json"
    >>> success("Config loaded")  # Buffers to JSON
    >>> output_mode.flush_json()   # Outputs JSON to stdout
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from beacon_sov.analytics.aggregator import (
        AggregateResult,
        QueryBreakdown,
        ShareSummary,
        TrendBucket,
    )


class OutputMode:
    """
    Output mode configuration for dual-mode CLI.

    Attributes:
        format: Output format - "text" (human) or "json" (agent)
        quiet: If True, print tab-separated values only
        _json_buffer: Internal buffer for JSON output in agent mode

    Examples:
        >>> mode = OutputMode()
        >>> mode.is_human()
        True
        >>> mode.format = "json"
        >>> mode.is_agent()
        True
    """

    def __init__(self, format_type: str = "text", quiet: bool = False):
        """
        Initialize output mode.

        Raises:
            ValueError: If format_type is not "text" or "json"
        """
        if format_type not in ["text", "json"]:
            raise ValueError(f"Invalid format: {format_type}. Must be 'text' or 'json'")

        self.format = format_type
        self.quiet = quiet
        self._json_buffer: dict[str, Any] = {}

    def is_human(self) -> bool:
        """True if format is "text"."""
        return self.format == "text"

    def is_agent(self) -> bool:
        """True if format is "json"."""
        return self.format == "json"

    def add_json(self, key: str, value: Any) -> None:
        """
        Add key-value pair to JSON buffer.

        Used in agent mode to accumulate structured data before final output
        via flush_json().
        """
        self._json_buffer[key] = value

    def flush_json(self) -> None:
        """
        Output buffered JSON to stdout and clear buffer.

        Only outputs in agent mode. In human mode, this is a no-op.
        """
        if self.is_agent() and self._json_buffer:
            json.dump(self._json_buffer, sys.stdout, indent=2)
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._json_buffer.clear()

    def reset(self) -> None:
        """Restore defaults and drop any buffered JSON."""
        self.format = "text"
        self.quiet = False
        self._json_buffer.clear()


# Global output mode instance (set by CLI flags)
output_mode = OutputMode()

# Global Rich console instances for human mode
console = Console()  # stdout
console_err = Console(stderr=True)  # stderr


@contextmanager
def spinner(message: str):
    """
    Context manager for showing a spinner during operations.

    Silent in agent and quiet modes.

    Examples:
        >>> with spinner("Loading config..."):
        ...     config = load_config("project.yaml")
    """
    if output_mode.is_human() and not output_mode.quiet:
        with console.status(f"[bold blue]{message}", spinner="dots") as status:
            yield status
    else:
        yield None


def success(message: str) -> None:
    """
    Print a success message.

    Human mode: Green checkmark with message
    Agent mode: Buffer to JSON
    Quiet mode: Silent
    """
    if output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)
    elif not output_mode.quiet:
        console.print(f"[green]✓[/green] {message}")


def error(message: str) -> None:
    """
    Print an error message.

    Human and quiet modes: Red X with message to stderr
    Agent mode: Buffer to JSON
    """
    if output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)
    else:
        console_err.print(f"[red]✗[/red] {message}", style="red")


def warning(message: str) -> None:
    """
    Print a warning message.

    Agent mode collects warnings into a "warnings" list.
    """
    if output_mode.is_agent():
        output_mode._json_buffer.setdefault("warnings", []).append(message)
    elif not output_mode.quiet:
        console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")


def info(message: str) -> None:
    """Print an info message (human mode only)."""
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def print_banner(version: str) -> None:
    """
    Print a startup banner.

    Silent in agent and quiet modes.
    """
    if not output_mode.is_human() or output_mode.quiet:
        return

    banner = f"""
[bold cyan]╔{"═" * 39}╗
║   BeaconSOV v{version:<24} ║
║   AI answer share-of-voice tracker    ║
╚{"═" * 39}╝[/bold cyan]
"""

    console.print(banner)


def _sov_table(title: str, results: list[AggregateResult]) -> Table:
    table = Table(title=title, box=box.ROUNDED)

    table.add_column("Rank", justify="right", style="bold")
    table.add_column("Brand", style="cyan", no_wrap=True)
    table.add_column("Type", justify="center")
    table.add_column("Mentions", justify="right")
    table.add_column("Recommended", justify="right")
    table.add_column("SOV", justify="right", style="green")
    table.add_column("Rec. SOV", justify="right", style="magenta")

    for result in results:
        kind = "[dim]competitor[/dim]" if result.is_competitor else "[bold]own[/bold]"
        table.add_row(
            str(result.rank),
            result.brand_name,
            kind,
            str(result.mention_count),
            str(result.recommend_count),
            f"{result.sov_percent:.1f}%",
            f"{result.recommend_sov_percent:.1f}%",
        )

    return table


def print_sov_table(
    results: list[AggregateResult], summary: ShareSummary | None = None
) -> None:
    """
    Print share-of-voice results, one row per brand in rank order.

    Human mode: Rich table, followed by an own-vs-competitor line
    Agent mode: Buffer as "results" (and "summary") JSON
    Quiet mode: rank, brand_id, mentions, recommended, sov tab-separated
    """
    if output_mode.is_agent():
        output_mode.add_json("results", [asdict(r) for r in results])
        if summary is not None:
            output_mode.add_json("summary", asdict(summary))
        return

    if output_mode.quiet:
        for r in results:
            print(
                f"{r.rank}\t{r.brand_id}\t{r.mention_count}\t"
                f"{r.recommend_count}\t{r.sov_percent:.2f}"
            )
        return

    console.print(_sov_table("Share of Voice", results))

    if summary is not None:
        console.print(
            f"Own brands: [bold]{summary.own_sov_percent:.1f}%[/bold] "
            f"({summary.own_mentions} mentions) • "
            f"Competitors: {summary.competitor_sov_percent:.1f}% "
            f"({summary.competitor_mentions} mentions)"
        )


def print_trend_table(buckets: list[TrendBucket]) -> None:
    """
    Print share of voice per time bucket.

    Human mode: One row per bucket, one column per brand (SOV %)
    Agent mode: Buffer as "buckets" JSON
    Quiet mode: bucket, brand_id, mentions, sov tab-separated
    """
    if output_mode.is_agent():
        output_mode.add_json(
            "buckets",
            [
                {
                    "bucket": bucket.bucket_key,
                    "results": [asdict(r) for r in bucket.results],
                }
                for bucket in buckets
            ],
        )
        return

    if output_mode.quiet:
        for bucket in buckets:
            for r in bucket.results:
                print(
                    f"{bucket.bucket_key}\t{r.brand_id}\t"
                    f"{r.mention_count}\t{r.sov_percent:.2f}"
                )
        return

    if not buckets:
        console.print("[dim]No responses in range[/dim]")
        return

    # Rank differs per bucket, so columns are keyed by brand id
    brand_columns = sorted(buckets[0].results, key=lambda r: r.brand_id)
    table = Table(title="Share of Voice Trend", box=box.ROUNDED)
    table.add_column("Period", style="cyan", no_wrap=True)
    for r in brand_columns:
        table.add_column(r.brand_name, justify="right")

    for bucket in buckets:
        by_id = {r.brand_id: r for r in bucket.results}
        table.add_row(
            bucket.bucket_key,
            *(f"{by_id[r.brand_id].sov_percent:.1f}%" for r in brand_columns),
        )

    console.print(table)


def print_breakdown_table(breakdowns: list[QueryBreakdown]) -> None:
    """
    Print per-query mention statistics.

    Human mode: One row per query with own SOV and the leading brand
    Agent mode: Buffer as "queries" JSON
    Quiet mode: query_id, responses, own sov, leader tab-separated
    """
    if output_mode.is_agent():
        output_mode.add_json("queries", [asdict(b) for b in breakdowns])
        return

    if output_mode.quiet:
        for b in breakdowns:
            print(
                f"{b.query_id}\t{b.response_count}\t{b.own_sov_percent:.2f}\t"
                f"{b.leader_brand_id or ''}"
            )
        return

    table = Table(title="Query Breakdown", box=box.ROUNDED)
    table.add_column("Query", style="cyan")
    table.add_column("Tags", style="dim")
    table.add_column("Responses", justify="right")
    table.add_column("Own SOV", justify="right", style="green")
    table.add_column("Leader", justify="left")

    for b in breakdowns:
        leader = "-"
        if b.leader_brand_id is not None:
            names = {s.brand_id: s.brand_name for s in b.brands}
            leader = f"{names[b.leader_brand_id]} ({b.leader_sov_percent:.1f}%)"
        table.add_row(
            b.query_text,
            ", ".join(b.tags),
            str(b.response_count),
            f"{b.own_sov_percent:.1f}%",
            leader,
        )

    console.print(table)


def print_analysis_summary(result: dict) -> None:
    """
    Print the outcome of an analysis run.

    Human mode: Rich panel (green if every query was fetched, yellow if
    some failed, red if none succeeded)
    Agent mode: Flush all buffered JSON including the run stats
    Quiet mode: run_id, analyzed, total, responses, mentions tab-separated
    """
    analyzed = result.get("analyzed_queries", 0)
    total = result.get("total_queries", 0)

    if output_mode.is_agent():
        for key, value in result.items():
            output_mode.add_json(key, value)
        output_mode.flush_json()
        return

    if output_mode.quiet:
        print(
            f"{result.get('run_id', '')}\t{analyzed}\t{total}\t"
            f"{result.get('responses', 0)}\t{result.get('mentions', 0)}"
        )
        return

    summary_text = f"""
[bold]Run ID:[/bold] {result.get("run_id", "-")}
[bold]Queries:[/bold] {analyzed}/{total} analyzed
[bold]Responses:[/bold] {result.get("responses", 0)} stored, {result.get("skipped_empty", 0)} empty skipped
[bold]Mentions:[/bold] {result.get("mentions", 0)} ({result.get("recommendations", 0)} recommended)
"""

    if analyzed == total:
        border_style = "green"
        title = "[bold green]✓ Analysis Completed Successfully[/bold green]"
    elif analyzed > 0:
        border_style = "yellow"
        title = "[bold yellow]⚠ Analysis Completed with Partial Failures[/bold yellow]"
    else:
        border_style = "red"
        title = "[bold red]✗ Analysis Failed[/bold red]"

    console.print(
        Panel(
            summary_text.strip(),
            title=title,
            border_style=border_style,
            box=box.ROUNDED,
        )
    )

    for err in result.get("errors", []):
        console_err.print(
            f"[red]✗[/red] {err['query_id']}: {err['error_message']}"
        )
