# ==============================================================================
# ELB Access Log Reader
# ==============================================================================
"""
Turns AWS Elastic Load Balancer access-log lines into events.

A well-formed line has 15 fields, either double-quoted strings or runs of
non-space characters:

    0  timestamp (ISO 8601)        8  backend_status_code
    1  elb name                    9  received_bytes
    2  client:port                10  sent_bytes
    3  backend:port               11  "METHOD URL PROTOCOL"
    4  request_processing_time    12  "user agent"
    5  backend_processing_time    13  ssl_cipher
    6  response_processing_time   14  ssl_protocol
    7  elb_status_code

Lines with a different field count, or that were not served by a backend
(backend_processing_time of -1), are rejected.
"""

import gzip
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import ValidationError

from weblog.core.errors import InvalidRecordError
from weblog.core.models import Event

logger = logging.getLogger(__name__)

FIELD_PATTERN = re.compile(r'("[^"]*")|([^\s]+)')
FIELD_COUNT = 15

TIMESTAMP_FIELD = 0
CLIENT_FIELD = 2
BACKEND_TIME_FIELD = 5
REQUEST_FIELD = 11

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MINUTE = timedelta(minutes=1)


@dataclass
class ParseStats:
    """Counters for one pass over a log file."""

    lines: int = 0
    accepted: int = 0
    rejected: int = 0


def tokenize(line: str) -> list[str]:
    """Split a log line into quoted strings and space-free tokens."""
    return [m.group(0) for m in FIELD_PATTERN.finditer(line)]


def to_epoch_minutes(value: str) -> int:
    """
    Convert an ISO 8601 timestamp to whole minutes since the Unix epoch.

    Timestamps without an offset are taken as UTC. Seconds are dropped.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (parsed - EPOCH) // ONE_MINUTE


def parse_elb_line(line: str) -> Event:
    """
    Parse one access-log line.

    Args:
        line: Raw log line

    Returns:
        Event with minute timestamp, client address without port, and URL

    Raises:
        InvalidRecordError: If the line is malformed or was not served
    """
    fields = tokenize(line)
    if len(fields) != FIELD_COUNT:
        raise InvalidRecordError(f"Expected {FIELD_COUNT} fields, got {len(fields)}")

    try:
        backend_time = float(fields[BACKEND_TIME_FIELD])
    except ValueError as e:
        raise InvalidRecordError(f"Bad backend processing time {fields[BACKEND_TIME_FIELD]!r}") from e
    if backend_time <= 0:
        raise InvalidRecordError("Request was not served by a backend")

    try:
        timestamp = to_epoch_minutes(fields[TIMESTAMP_FIELD])
    except ValueError as e:
        raise InvalidRecordError(f"Bad timestamp {fields[TIMESTAMP_FIELD]!r}") from e

    client_id = fields[CLIENT_FIELD].split(":")[0]

    request = fields[REQUEST_FIELD].strip('"').split(" ")
    if len(request) < 2:
        raise InvalidRecordError(f"No URL in request {fields[REQUEST_FIELD]!r}")
    url = request[1]

    try:
        return Event(timestamp=timestamp, client_id=client_id, url=url)
    except ValidationError as e:
        raise InvalidRecordError(f"Invalid event: {e.error_count()} validation error(s)") from e


def _open_log(path: Path):
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8", errors="replace")
    return open(path, encoding="utf-8", errors="replace")


def read_elb_log(path: Path, stats: ParseStats | None = None) -> Iterator[Event]:
    """
    Stream events from a plain or gzip-compressed ELB log file.

    Invalid lines are skipped and counted.

    Args:
        path: Log file path (".gz" files are decompressed on the fly)
        stats: Optional counters, updated while iterating

    Yields:
        One Event per valid line
    """
    stats = stats if stats is not None else ParseStats()

    with _open_log(Path(path)) as f:
        for line in f:
            line = line.rstrip("\n")
            if not line.strip():
                continue
            stats.lines += 1
            try:
                event = parse_elb_line(line)
            except InvalidRecordError as e:
                stats.rejected += 1
                logger.debug("Line %d rejected: %s", stats.lines, e)
                continue
            stats.accepted += 1
            yield event

    logger.info(
        "Read %s | %d lines | %d events | %d rejected",
        path,
        stats.lines,
        stats.accepted,
        stats.rejected,
    )
