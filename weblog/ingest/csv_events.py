# ==============================================================================
# Pre-parsed Event CSV Reader
# ==============================================================================
"""
Reads events that were already cleaned upstream from a CSV file.

Expected columns: client_id, timestamp (minutes since epoch), url.
Every column is read as text and rows are yielded as plain dicts. The engine
validates them, so a bad row only affects its own client.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

import polars as pl

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("client_id", "timestamp", "url")


def read_events_csv(filepath: Path, limit: int | None = None) -> Iterator[dict]:
    """
    Read event rows from CSV using Polars.

    Args:
        filepath: Path to the events CSV file
        limit: Maximum number of rows to read (None for all)

    Yields:
        Dicts with client_id, timestamp and url keys

    Raises:
        ValueError: If a required column is missing
    """
    df = pl.read_csv(filepath, infer_schema=False)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns in {filepath}: {', '.join(missing)}")

    df = df.select(REQUIRED_COLUMNS)
    if limit:
        df = df.head(limit)

    logger.info("Read %s | %d rows", filepath, df.height)

    for row in df.iter_rows(named=True):
        yield {
            "client_id": row["client_id"],
            "timestamp": row["timestamp"],
            "url": row["url"],
        }


def write_session_metrics_csv(rows: list[dict], filepath: Path) -> int:
    """
    Write per-session metric rows to CSV.

    Returns:
        Number of rows written
    """
    columns = [
        "client_id",
        "session_id",
        "start",
        "end",
        "duration",
        "event_count",
        "distinct_url_count",
    ]
    df = pl.DataFrame(rows, schema={c: (pl.Utf8 if c == "client_id" else pl.Int64) for c in columns})
    df.write_csv(filepath)
    logger.info("Wrote %d session rows to %s", df.height, filepath)
    return df.height
