# ==============================================================================
# Event Ingest
# ==============================================================================
"""
Readers that produce engine input from files.

- elb: raw AWS ELB access logs (tokenize, clean, parse timestamps)
- csv: already-cleaned events (client_id, timestamp, url)
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

from weblog.ingest.csv_events import read_events_csv, write_session_metrics_csv
from weblog.ingest.elb import ParseStats, parse_elb_line, read_elb_log

INPUT_FORMATS = ("elb", "csv")


def load_events(path: Path, fmt: str = "elb", stats: ParseStats | None = None) -> Iterator[Any]:
    """
    Open an input file in the given format.

    Args:
        path: Input file path
        fmt: "elb" or "csv"
        stats: Optional line counters, filled while an ELB log is read

    Returns:
        Iterator of Event instances (elb) or row dicts (csv)
    """
    if fmt == "elb":
        return read_elb_log(path, stats)
    if fmt == "csv":
        return read_events_csv(path)
    raise ValueError(f"Unknown input format {fmt!r} (expected one of {', '.join(INPUT_FORMATS)})")


__all__ = [
    "INPUT_FORMATS",
    "ParseStats",
    "load_events",
    "parse_elb_line",
    "read_elb_log",
    "read_events_csv",
    "write_session_metrics_csv",
]
