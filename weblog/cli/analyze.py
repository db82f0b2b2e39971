# ==============================================================================
# Analyze and Sessions Commands
# ==============================================================================
"""
Session analytics commands for the weblog CLI.

Runs the session engine over an input file and displays session counts,
average duration, distinct URL counts and the most engaged clients.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from weblog.cli.shared import (
    BOX_WIDTH,
    C,
    I,
    _box_bottom,
    _box_header,
    _box_line,
    _empty_line,
    _section_header_plain,
    _status_line,
    format_average,
    format_minute,
)
from weblog.core.errors import WeblogError
from weblog.core.models import Event, SessionReport
from weblog.engine import EXECUTORS, SessionEngine
from weblog.ingest import INPUT_FORMATS, ParseStats, load_events, write_session_metrics_csv
from weblog.utils.config import get_settings

logger = logging.getLogger(__name__)


# ==============================================================================
# Helpers
# ==============================================================================


def _resolve_input(path: Optional[Path], input_format: Optional[str]) -> tuple[Path, str]:
    """Fill in path and format from settings when not given on the command line."""
    settings = get_settings()
    path = path or settings.input.data_file_path
    input_format = input_format or settings.input.format

    if input_format not in INPUT_FORMATS:
        raise typer.BadParameter(
            f"must be one of {', '.join(INPUT_FORMATS)}", param_hint="'--format'"
        )
    if not path.exists():
        print(f"\n{C.BRIGHT_RED}{I.CROSS} Input file not found: {path}{C.RESET}\n")
        raise typer.Exit(1)
    return path, input_format


def _client_of(record: Any) -> Optional[str]:
    if isinstance(record, Event):
        return record.client_id
    return record.get("client_id")


def _run(records, **overrides) -> SessionReport:
    """Run the engine, turning engine errors into a failed exit."""
    executor = overrides.get("executor")
    if executor is not None and executor not in EXECUTORS:
        raise typer.BadParameter(
            f"must be one of {', '.join(EXECUTORS)}", param_hint="'--executor'"
        )
    try:
        engine = SessionEngine.from_settings(**overrides)
        return engine.run(records)
    except WeblogError as e:
        logger.error("Analysis aborted: %s", e)
        print(f"\n{C.BRIGHT_RED}{I.CROSS} Analysis aborted: {type(e).__name__}: {e}{C.RESET}\n")
        raise typer.Exit(1)


def _average_distinct_urls(report: SessionReport) -> Optional[float]:
    if not report.sessions:
        return None
    return sum(s.distinct_url_count for s in report.sessions) / len(report.sessions)


def _print_skipped(report: SessionReport, rejected_lines: Optional[int], W: int) -> None:
    if not report.failures and not report.rejected_records and not rejected_lines:
        return
    print(_section_header_plain("Skipped", W))
    if rejected_lines:
        print(_box_line(f"  {'Unparseable log lines':<28}{rejected_lines:>12,}", W))
    if report.rejected_records:
        print(_box_line(f"  {'Records without client':<28}{report.rejected_records:>12,}", W))
    for failure in report.failures:
        print(_box_line(f"  {C.BRIGHT_YELLOW}{I.WARN}{C.RESET} {failure.client_id:<26}{failure.error}", W))


# ==============================================================================
# Commands
# ==============================================================================


def analyze(
    path: Annotated[
        Optional[Path], typer.Argument(help="Input file (defaults to INPUT_DATA_FILE)")
    ] = None,
    input_format: Annotated[
        Optional[str], typer.Option("--format", "-f", help="Input format: elb or csv")
    ] = None,
    gap: Annotated[
        Optional[int], typer.Option("--gap", "-g", min=1, help="Idle gap in minutes that starts a session")
    ] = None,
    top: Annotated[
        Optional[int], typer.Option("--top", "-t", min=0, help="Number of most engaged clients")
    ] = None,
    strict: Annotated[
        Optional[bool],
        typer.Option("--strict/--lenient", help="Abort on the first invalid event"),
    ] = None,
    executor: Annotated[
        Optional[str], typer.Option("--executor", "-e", help="serial, thread or process")
    ] = None,
    workers: Annotated[
        Optional[int], typer.Option("--workers", "-w", min=1, help="Number of workers")
    ] = None,
    timeout: Annotated[
        Optional[float], typer.Option("--timeout", help="Timeout for the whole batch in seconds")
    ] = None,
    sessions_out: Annotated[
        Optional[Path], typer.Option("--sessions-out", help="Write per-session metrics to CSV")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
    ] = False,
) -> None:
    """Analyze sessions in an access log.

    Segments each client's requests into sessions (a new session starts
    after an idle gap of at least --gap minutes) and reports:
    - Total sessions and average session duration
    - Distinct URLs per session
    - Most engaged clients (longest single session)

    Examples:
        weblog analyze data/sample.log
        weblog analyze events.csv --format csv --gap 30 --top 5
        weblog analyze data/sample.log --json --sessions-out sessions.csv
    """
    path, input_format = _resolve_input(path, input_format)

    stats = ParseStats()
    report = _run(
        load_events(path, input_format, stats),
        gap_threshold=gap,
        top_k=top,
        strict=strict,
        executor=executor,
        max_workers=workers,
        batch_timeout_seconds=timeout,
    )
    # Only ELB logs are cleaned line by line
    rejected_lines = stats.rejected if input_format == "elb" else None

    if sessions_out is not None:
        write_session_metrics_csv([s.model_dump() for s in report.sessions], sessions_out)

    if json_output:
        summary = {"input": str(path), "format": input_format}
        summary.update(report.to_summary())
        summary["average_distinct_urls"] = _average_distinct_urls(report)
        summary["rejected_lines"] = rejected_lines
        print(json.dumps(summary, indent=2))
        return

    W = BOX_WIDTH
    avg_urls = _average_distinct_urls(report)

    print()
    print(_box_header("WEBLOG SESSIONS", W))
    print(_empty_line(W))
    print(_box_line(f"  {'Input':<28}{path.name} ({input_format})", W))
    print(_box_line(f"  {'Idle gap':<28}{report.gap_threshold} min", W))
    print(_empty_line(W))

    print(_section_header_plain("Totals", W))
    print(_box_line(f"  {'Events':<28}{report.total_events:>12,}", W))
    print(_box_line(f"  {'Clients':<28}{report.total_clients:>12,}", W))
    print(_box_line(f"  {'Sessions':<28}{report.total_sessions:>12,}", W))
    print(_box_line(f"  {'Avg session duration':<28}{format_average(report.average_duration):>12}", W))
    avg_urls_text = "n/a" if avg_urls is None else f"{avg_urls:.2f}"
    print(_box_line(f"  {'Avg distinct URLs':<28}{avg_urls_text:>12}", W))
    print(_empty_line(W))

    print(_section_header_plain("Most Engaged Clients", W))
    if report.most_engaged:
        print(_box_line(f"  {'#':>3}  {'Client':<30}{'Longest':>10}{'Sessions':>10}", W))
        for rank, client in enumerate(report.most_engaged, start=1):
            longest = f"{client.max_duration} min"
            print(
                _box_line(
                    f"  {rank:>3}  {client.client_id:<30}{longest:>10}{client.session_count:>10,}",
                    W,
                )
            )
    else:
        print(_box_line(f"  {C.DIM}No sessions{C.RESET}", W))
    print(_empty_line(W))

    _print_skipped(report, rejected_lines, W)
    print(_box_bottom(W))

    if sessions_out is not None:
        print(_status_line(f"Wrote {report.total_sessions:,} sessions to {sessions_out}", True))
    print()


def sessions(
    client_id: Annotated[str, typer.Argument(help="Client to show (IP address)")],
    path: Annotated[
        Optional[Path], typer.Argument(help="Input file (defaults to INPUT_DATA_FILE)")
    ] = None,
    input_format: Annotated[
        Optional[str], typer.Option("--format", "-f", help="Input format: elb or csv")
    ] = None,
    gap: Annotated[
        Optional[int], typer.Option("--gap", "-g", min=1, help="Idle gap in minutes that starts a session")
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output as JSON for scripting")
    ] = False,
) -> None:
    """Show the sessions of one client.

    Only the client's own events are read into the engine; other clients
    never affect a client's sessions.

    Examples:
        weblog sessions 203.99.198.151 data/sample.log
        weblog sessions 10.0.0.1 events.csv --format csv --json
    """
    path, input_format = _resolve_input(path, input_format)

    records = (r for r in load_events(path, input_format) if _client_of(r) == client_id)
    report = _run(records, gap_threshold=gap, executor="serial", strict=False)

    client_sessions = report.sessions_for(client_id)
    failure = next((f for f in report.failures if f.client_id == client_id), None)

    if json_output:
        print(
            json.dumps(
                {
                    "client_id": client_id,
                    "gap_threshold": report.gap_threshold,
                    "sessions": [s.model_dump() for s in client_sessions],
                    "failure": failure.model_dump() if failure else None,
                },
                indent=2,
            )
        )
        if not client_sessions:
            raise typer.Exit(1)
        return

    if failure is not None:
        print(f"\n{C.BRIGHT_RED}{I.CROSS} Client {client_id} skipped: {failure.error}: {failure.message}{C.RESET}\n")
        raise typer.Exit(1)
    if not client_sessions:
        print(f"\n{C.BRIGHT_RED}{I.CROSS} No events for client {client_id}{C.RESET}\n")
        raise typer.Exit(1)

    W = BOX_WIDTH
    print()
    print(_box_header(f"SESSIONS {client_id}", W))
    print(_empty_line(W))
    print(_box_line(f"  {'ID':>4}  {'Start':<22}{'Duration':>10}{'Events':>10}{'URLs':>10}", W))
    for s in client_sessions:
        duration = f"{s.duration} min"
        print(
            _box_line(
                f"  {s.session_id:>4}  {format_minute(s.start):<22}{duration:>10}"
                f"{s.event_count:>10,}{s.distinct_url_count:>10,}",
                W,
            )
        )
    print(_empty_line(W))
    print(_box_bottom(W))
    print()
