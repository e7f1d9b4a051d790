"""
CLI entrypoint for BeaconSOV.

Provides a dual-mode command-line interface with:
- Human-friendly output: Rich spinners, tables, colored text
- Agent-friendly output: Structured JSON for automation
- Quiet mode: Tab-separated minimal output for shell scripts

Commands:
    validate: Validate a project configuration
    analyze: Fetch responses, detect mentions and store facts
    reanalyze: Re-run detection over stored responses
    report: Share of voice per brand
    trend: Share of voice per day, week or month
    breakdown: Per-query mention statistics
    export: Export mention facts or share of voice to CSV/JSON

Exit codes:
    0: Success
    1: Configuration error (invalid YAML, bad filter, missing responses file)
    2: Database error (cannot create/access SQLite)
    3: Partial failure (some queries failed, but run completed)
    4: Complete failure (no queries succeeded)

Examples:
    beacon-sov analyze --config project.yaml --responses responses.yaml
    beacon-sov report --config project.yaml --provider openai --tag crm
    beacon-sov trend --config project.yaml --granularity monthly --format json
"""

from datetime import date
from pathlib import Path
from typing import NoReturn

import typer
from rich.traceback import install as install_rich_traceback

from beacon_sov.analytics.aggregator import (
    SOVFilter,
    aggregate,
    aggregate_trend,
    query_breakdown,
    summarize_share,
)
from beacon_sov.config.constants import GRANULARITIES
from beacon_sov.config.loader import load_config
from beacon_sov.config.schema import ProjectConfig
from beacon_sov.exceptions import (
    AggregationError,
    ConfigFileNotFoundError,
    ConfigValidationError,
    DatabaseError,
    MentionDetectionError,
    ResponseSourceError,
)
from beacon_sov.runner import reanalyze as reanalyze_project
from beacon_sov.runner import run_analysis
from beacon_sov.sources import FileResponseSource, MockResponseSource
from beacon_sov.storage.repository import SQLiteMentionFactStore
from beacon_sov.utils.console import (
    error,
    info,
    output_mode,
    print_analysis_summary,
    print_banner,
    print_breakdown_table,
    print_sov_table,
    print_trend_table,
    spinner,
    success,
    warning,
)
from beacon_sov.utils.logging import setup_logging

# Install Rich tracebacks for better error messages
install_rich_traceback(show_locals=False)

# Exit codes
EXIT_SUCCESS = 0  # All queries successful
EXIT_CONFIG_ERROR = 1  # Config validation failed
EXIT_DB_ERROR = 2  # Database initialization or access failed
EXIT_PARTIAL_FAILURE = 3  # Some queries failed
EXIT_COMPLETE_FAILURE = 4  # All queries failed

app = typer.Typer(
    name="beacon-sov",
    help="Track brand share of voice in AI assistant answers",
    add_completion=False,
)

CONFIG_OPTION = typer.Option(
    ..., "--config", "-c", help="Path to YAML project configuration", dir_okay=False
)
FORMAT_OPTION = typer.Option(
    "text",
    "--format",
    "-f",
    help="Output format: 'text' (human-friendly) or 'json' (machine-readable)",
)
QUIET_OPTION = typer.Option(
    False, "--quiet", "-q", help="Minimal output (tab-separated values)"
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
PROVIDER_OPTION = typer.Option(None, "--provider", help="Only count this provider")
TAG_OPTION = typer.Option(
    None, "--tag", help="Only count queries carrying any of these tags (repeatable)"
)
CATEGORY_OPTION = typer.Option(
    None, "--category", help="Only count queries in these categories (repeatable)"
)
SINCE_OPTION = typer.Option(
    None, "--since", help="First UTC date to include (YYYY-MM-DD)"
)
UNTIL_OPTION = typer.Option(
    None, "--until", help="Last UTC date to include (YYYY-MM-DD)"
)


def _configure_output(format: str, quiet: bool, verbose: bool) -> None:
    """Apply output flags and set up logging to match."""
    if format not in ("text", "json"):
        raise typer.BadParameter(
            f"Invalid format: {format}. Must be 'text' or 'json'",
            param_hint="--format",
        )

    output_mode.format = format
    output_mode.quiet = quiet

    # JSON logs would interleave with human output; keep them for -v only
    setup_logging(verbose=verbose, quiet_logs=output_mode.is_human())


def _fail(message: str, exit_code: int) -> NoReturn:
    error(message)
    output_mode.flush_json()
    raise typer.Exit(exit_code)


def _load_project(config: Path) -> ProjectConfig:
    try:
        with spinner("Loading configuration..."):
            project = load_config(config)
    except ConfigFileNotFoundError as e:
        _fail(f"Configuration file not found: {e}", EXIT_CONFIG_ERROR)
    except ConfigValidationError as e:
        _fail(f"Configuration validation failed: {e}", EXIT_CONFIG_ERROR)

    return project


def _open_store(project: ProjectConfig) -> SQLiteMentionFactStore:
    try:
        with spinner("Opening database..."):
            return SQLiteMentionFactStore(project.run_settings.sqlite_db_path)
    except DatabaseError as e:
        _fail(f"Failed to initialize database: {e}", EXIT_DB_ERROR)


def _parse_date(value: str | None, option: str) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        _fail(f"Invalid {option} date '{value}': expected YYYY-MM-DD", EXIT_CONFIG_ERROR)


def _build_filter(
    provider: str | None,
    tags: list[str] | None,
    categories: list[str] | None,
    since: str | None,
    until: str | None,
) -> SOVFilter:
    try:
        return SOVFilter(
            provider=provider.strip().lower() if provider else None,
            tags=tuple(tags or ()),
            categories=tuple(categories or ()),
            date_from=_parse_date(since, "--since"),
            date_to=_parse_date(until, "--until"),
        )
    except AggregationError as e:
        _fail(str(e), EXIT_CONFIG_ERROR)


def _load_facts(project: ProjectConfig):
    store = _open_store(project)
    try:
        with spinner("Loading mention facts..."):
            return store.get_scoped_facts(project.project_id)
    except DatabaseError as e:
        _fail(f"Failed to read mention facts: {e}", EXIT_DB_ERROR)


@app.command()
def validate(
    config: Path = CONFIG_OPTION,
    format: str = FORMAT_OPTION,
    quiet: bool = QUIET_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Validate a project configuration without analyzing anything.

    Checks YAML syntax, required fields, duplicate brand and query ids, and
    detection settings.

    Examples:
      beacon-sov validate --config project.yaml
      beacon-sov validate --config project.yaml --format json
    """
    _configure_output(format, quiet, verbose)
    project = _load_project(config)

    brands = project.tracked_brands()
    competitors = sum(1 for brand in brands if brand.is_competitor)

    success("Configuration is valid")
    info(f"Project: {project.project_id}")
    info(f"Brands: {len(brands) - competitors} own, {competitors} competitors")
    info(
        f"Queries: {len(project.active_queries())} active "
        f"of {len(project.tracked_queries())}"
    )

    if output_mode.is_agent():
        output_mode.add_json("valid", True)
        output_mode.add_json("project_id", project.project_id)
        output_mode.add_json("own_brands_count", len(brands) - competitors)
        output_mode.add_json("competitor_brands_count", competitors)
        output_mode.add_json("queries_count", len(project.tracked_queries()))
        output_mode.add_json("active_queries_count", len(project.active_queries()))
        output_mode.flush_json()
    elif output_mode.quiet:
        print(f"{project.project_id}\tvalid")

    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def analyze(
    config: Path = CONFIG_OPTION,
    responses: Path = typer.Option(
        None,
        "--responses",
        "-r",
        help="YAML/JSON file of fetched responses keyed by query id",
        dir_okay=False,
    ),
    mock: bool = typer.Option(
        False, "--mock", help="Use canned answers instead of a responses file"
    ),
    format: str = FORMAT_OPTION,
    quiet: bool = QUIET_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Fetch responses for every active query, detect mentions and store facts.

    Exit codes:
      0: All active queries analyzed
      1: Configuration error
      2: Database error
      3: Partial failure (some queries could not be fetched)
      4: Complete failure (no query could be fetched, or detection failed)

    Examples:
      beacon-sov analyze --config project.yaml --responses responses.yaml
      beacon-sov analyze --config project.yaml --mock --format json
    """
    _configure_output(format, quiet, verbose)
    print_banner(_read_version())

    if mock == (responses is not None):
        _fail("Pass exactly one of --responses or --mock", EXIT_CONFIG_ERROR)

    project = _load_project(config)
    success(
        f"Loaded {len(project.brands)} brands, "
        f"{len(project.active_queries())} active queries"
    )

    if mock:
        source = MockResponseSource()
        warning("Using mock responses; results are for demonstration only")
    else:
        try:
            source = FileResponseSource(responses)
        except ResponseSourceError as e:
            _fail(f"Failed to load responses: {e}", EXIT_CONFIG_ERROR)

    store = _open_store(project)

    try:
        with spinner("Analyzing responses..."):
            result = run_analysis(project, source, store)
    except DatabaseError as e:
        _fail(f"Database error during analysis: {e}", EXIT_DB_ERROR)
    except MentionDetectionError as e:
        _fail(f"Mention detection failed: {e}", EXIT_COMPLETE_FAILURE)

    print_analysis_summary(result)

    if result["total_queries"] and result["analyzed_queries"] == 0:
        raise typer.Exit(EXIT_COMPLETE_FAILURE)
    if result["analyzed_queries"] < result["total_queries"]:
        raise typer.Exit(EXIT_PARTIAL_FAILURE)
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def reanalyze(
    config: Path = CONFIG_OPTION,
    format: str = FORMAT_OPTION,
    quiet: bool = QUIET_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Re-run mention detection over all stored responses.

    Use after changing brands, aliases or recommendation phrases. Stored
    responses are untouched; mention facts are overwritten.
    """
    _configure_output(format, quiet, verbose)
    project = _load_project(config)
    store = _open_store(project)

    try:
        with spinner("Re-analyzing stored responses..."):
            result = reanalyze_project(project, store)
    except DatabaseError as e:
        _fail(f"Database error during re-analysis: {e}", EXIT_DB_ERROR)
    except MentionDetectionError as e:
        _fail(f"Mention detection failed: {e}", EXIT_COMPLETE_FAILURE)

    success(
        f"Re-analyzed {result['responses']} responses: "
        f"{result['mentions']} mentions, {result['recommendations']} recommended"
    )

    if output_mode.is_agent():
        for key, value in result.items():
            output_mode.add_json(key, value)
        output_mode.flush_json()
    elif output_mode.quiet:
        print(f"{result['responses']}\t{result['mentions']}\t{result['recommendations']}")

    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def report(
    config: Path = CONFIG_OPTION,
    provider: str = PROVIDER_OPTION,
    tag: list[str] = TAG_OPTION,
    category: list[str] = CATEGORY_OPTION,
    since: str = SINCE_OPTION,
    until: str = UNTIL_OPTION,
    format: str = FORMAT_OPTION,
    quiet: bool = QUIET_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Show share of voice per brand, ranked.

    Examples:
      beacon-sov report --config project.yaml
      beacon-sov report --config project.yaml --provider openai --tag crm
      beacon-sov report --config project.yaml --since 2025-01-01 --format json
    """
    _configure_output(format, quiet, verbose)
    project = _load_project(config)
    sov_filter = _build_filter(provider, tag, category, since, until)
    facts = _load_facts(project)

    results = aggregate(facts, project.tracked_brands(), sov_filter)
    summary = summarize_share(results)

    if summary.total_mentions == 0:
        warning("No brand mentions match the selected filters")

    print_sov_table(results, summary)
    output_mode.flush_json()
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def trend(
    config: Path = CONFIG_OPTION,
    granularity: str = typer.Option(
        "weekly", "--granularity", "-g", help="daily, weekly or monthly"
    ),
    fill_gaps: bool = typer.Option(
        False, "--fill-gaps", help="Include empty periods between observed ones"
    ),
    provider: str = PROVIDER_OPTION,
    tag: list[str] = TAG_OPTION,
    category: list[str] = CATEGORY_OPTION,
    since: str = SINCE_OPTION,
    until: str = UNTIL_OPTION,
    format: str = FORMAT_OPTION,
    quiet: bool = QUIET_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Show share of voice per day, week (Sunday start) or month.

    Examples:
      beacon-sov trend --config project.yaml --granularity daily
      beacon-sov trend --config project.yaml --granularity monthly --fill-gaps
    """
    _configure_output(format, quiet, verbose)
    if granularity not in GRANULARITIES:
        _fail(
            f"Invalid granularity '{granularity}'. "
            f"Must be one of: {', '.join(GRANULARITIES)}",
            EXIT_CONFIG_ERROR,
        )

    project = _load_project(config)
    sov_filter = _build_filter(provider, tag, category, since, until)
    facts = _load_facts(project)

    buckets = aggregate_trend(
        facts,
        project.tracked_brands(),
        granularity=granularity,
        sov_filter=sov_filter,
        fill_gaps=fill_gaps,
    )

    if output_mode.is_agent():
        output_mode.add_json("granularity", granularity)
    print_trend_table(buckets)
    output_mode.flush_json()
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def breakdown(
    config: Path = CONFIG_OPTION,
    provider: str = PROVIDER_OPTION,
    tag: list[str] = TAG_OPTION,
    category: list[str] = CATEGORY_OPTION,
    since: str = SINCE_OPTION,
    until: str = UNTIL_OPTION,
    format: str = FORMAT_OPTION,
    quiet: bool = QUIET_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Show mention statistics per tracked query.

    For each query: how many responses were analyzed, which brands were
    mentioned by which providers, our share of voice and the leading brand.
    """
    _configure_output(format, quiet, verbose)
    project = _load_project(config)
    sov_filter = _build_filter(provider, tag, category, since, until)
    facts = _load_facts(project)

    breakdowns = query_breakdown(
        facts, project.tracked_brands(), project.tracked_queries(), sov_filter
    )

    print_breakdown_table(breakdowns)
    output_mode.flush_json()
    raise typer.Exit(EXIT_SUCCESS)


export_app = typer.Typer(help="Export data to CSV or JSON")
app.add_typer(export_app, name="export")


def _check_export_path(output: Path) -> str:
    file_ext = output.suffix.lower()
    if file_ext not in [".csv", ".json"]:
        _fail("Output file must have .csv or .json extension", EXIT_CONFIG_ERROR)
    return file_ext


@export_app.command("facts")
def export_facts(
    config: Path = CONFIG_OPTION,
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output file path (extension determines format: .csv or .json)",
    ),
    format: str = FORMAT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Export every mention fact of the project (one row per response and brand).

    Examples:
      beacon-sov export facts --config project.yaml --output facts.csv
    """
    from beacon_sov.storage.exporter import export_facts_csv, export_facts_json

    _configure_output(format, False, verbose)
    file_ext = _check_export_path(output)
    project = _load_project(config)
    facts = _load_facts(project)

    try:
        with spinner(f"Exporting mention facts to {output}..."):
            if file_ext == ".csv":
                count = export_facts_csv(str(output), facts, project.tracked_brands())
            else:
                count = export_facts_json(str(output), facts, project.tracked_brands())
    except OSError as e:
        _fail(f"Export failed: {e}", EXIT_DB_ERROR)

    success(f"Exported {count} mention facts to {output}")
    output_mode.flush_json()
    raise typer.Exit(EXIT_SUCCESS)


@export_app.command("sov")
def export_sov(
    config: Path = CONFIG_OPTION,
    output: Path = typer.Option(
        ...,
        "--output",
        "-o",
        help="Output file path (extension determines format: .csv or .json)",
    ),
    provider: str = PROVIDER_OPTION,
    tag: list[str] = TAG_OPTION,
    category: list[str] = CATEGORY_OPTION,
    since: str = SINCE_OPTION,
    until: str = UNTIL_OPTION,
    format: str = FORMAT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Export ranked share of voice per brand, with the same filters as report.

    Examples:
      beacon-sov export sov --config project.yaml --output sov.json --tag crm
    """
    from beacon_sov.storage.exporter import export_sov_csv, export_sov_json

    _configure_output(format, False, verbose)
    file_ext = _check_export_path(output)
    project = _load_project(config)
    sov_filter = _build_filter(provider, tag, category, since, until)
    facts = _load_facts(project)

    results = aggregate(facts, project.tracked_brands(), sov_filter)

    try:
        with spinner(f"Exporting share of voice to {output}..."):
            if file_ext == ".csv":
                count = export_sov_csv(str(output), results)
            else:
                count = export_sov_json(str(output), results)
    except OSError as e:
        _fail(f"Export failed: {e}", EXIT_DB_ERROR)

    success(f"Exported {count} brand rows to {output}")
    output_mode.flush_json()
    raise typer.Exit(EXIT_SUCCESS)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
):
    """
    BeaconSOV - Track brand share of voice in AI assistant answers.

    Detects which tracked brands each AI provider mentions and recommends
    for your queries, then reports share of voice by provider, tag,
    category and time.

    Use 'beacon-sov COMMAND --help' for detailed command documentation.
    """
    if version:
        from rich.console import Console

        console = Console()
        console.print(f"[bold cyan]beacon-sov[/bold cyan] version {_read_version()}")
        raise typer.Exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        from rich.console import Console

        console = Console()
        console.print("[yellow]Use --help to see available commands[/yellow]")
        console.print()
        console.print("Quick start:")
        console.print("  beacon-sov analyze --config project.yaml --mock")
        console.print("  beacon-sov report --config project.yaml")


def _read_version() -> str:
    """Read version from installed package metadata."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("beacon-sov")
    except PackageNotFoundError:
        return "0.1.0"


if __name__ == "__main__":
    app()
