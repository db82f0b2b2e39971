# ==============================================================================
# Session Engine - Scatter/Gather over Client Groups
# ==============================================================================
"""
Batch pipeline that turns an event stream into a SessionReport.

The run is a classic scatter/gather:

    1. validate   - coerce records to Event, reject malformed ones
    2. group      - partition events by client_id
    3. sessionize - per client: sessionize + per-session/per-client metrics
    4. gather     - global average duration and client ranking

Step 3 runs on a concurrent.futures executor; client groups share no state.
Step 4 only starts after every group has finished.

Usage:
    engine = SessionEngine.from_settings()
    report = engine.run(events)
"""

import concurrent.futures
import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from pydantic import ValidationError

from weblog.core.aggregator import average_duration, summarize_client, summarize_sessions
from weblog.core.errors import BatchTimeoutError, InvalidEventError, WeblogError
from weblog.core.grouper import group_by_client
from weblog.core.models import ClientMetrics, Event, GroupFailure, SessionMetrics, SessionReport
from weblog.core.ranker import rank_clients
from weblog.core.sessionizer import DEFAULT_GAP_THRESHOLD, Sessionizer
from weblog.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)

EXECUTORS = ("serial", "thread", "process")

GroupResult = tuple[list[SessionMetrics], Optional[ClientMetrics]]


def coerce_event(record: Any) -> Event:
    """
    Turn one input record into a validated Event.

    Accepts Event instances (re-checked, since model_construct() skips
    validation) and mappings with client_id, timestamp and url keys.

    Raises:
        InvalidEventError: With client_id set when the record names a client
    """
    if isinstance(record, Event):
        client_id = getattr(record, "client_id", None)
        timestamp = getattr(record, "timestamp", None)
        if not isinstance(client_id, str) or not client_id:
            raise InvalidEventError(f"Empty client id in {record!r}")
        if not isinstance(timestamp, int) or isinstance(timestamp, bool) or timestamp < 0:
            raise InvalidEventError(
                f"Invalid timestamp {timestamp!r} for client {client_id!r}", client_id=client_id
            )
        return record

    if isinstance(record, Mapping):
        try:
            return Event.model_validate(dict(record))
        except ValidationError as e:
            client_id = record.get("client_id")
            if not isinstance(client_id, str) or not client_id:
                client_id = None
            raise InvalidEventError(
                f"Invalid event for client {client_id!r}: {e.error_count()} validation error(s)",
                client_id=client_id,
            ) from e

    raise InvalidEventError(f"Unsupported record type {type(record).__name__}")


def process_group(client_id: str, events: list[Event], gap_threshold: int) -> GroupResult:
    """
    Sessionize one client and reduce its sessions to metrics.

    Module-level so it can be pickled to ProcessPoolExecutor workers.
    Sessions are dropped once their metrics are computed.
    """
    sessions = Sessionizer(gap_threshold).sessionize(client_id, events)
    session_metrics = summarize_sessions(sessions)
    return session_metrics, summarize_client(client_id, session_metrics)


def _failure(client_id: str, error: Exception) -> GroupFailure:
    return GroupFailure(client_id=client_id, error=type(error).__name__, message=str(error))


class SessionEngine:
    """
    Runs the full sessionization batch.

    Per-client failures are isolated: the failing client is reported in
    SessionReport.failures and every other client is processed normally.
    In strict mode the first failure aborts the run instead.
    """

    def __init__(
        self,
        gap_threshold: int = DEFAULT_GAP_THRESHOLD,
        executor: str = "thread",
        max_workers: Optional[int] = None,
        strict: bool = False,
        batch_timeout_seconds: Optional[float] = None,
        top_k: Optional[int] = 10,
    ):
        """
        Initialize engine.

        Args:
            gap_threshold: Idle gap in minutes that starts a new session
            executor: "serial", "thread" or "process"
            max_workers: Worker count for thread/process executors
            strict: Abort on the first invalid record or failed group
            batch_timeout_seconds: Timeout for the whole batch (None for no limit)
            top_k: Number of most engaged clients in the report (None for all)
        """
        if executor not in EXECUTORS:
            raise ValueError(f"executor must be one of {', '.join(EXECUTORS)}")
        if top_k is not None and top_k < 0:
            raise ValueError("top_k must be non-negative")

        # Fail fast on a bad threshold instead of once per group
        Sessionizer(gap_threshold)

        self.gap_threshold = gap_threshold
        self.executor = executor
        self.max_workers = max_workers
        self.strict = strict
        self.batch_timeout_seconds = batch_timeout_seconds
        self.top_k = top_k

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "SessionEngine":
        """
        Build an engine from application settings.

        Keyword overrides with a None value are ignored, so CLI options that
        were not given fall back to the settings.
        """
        settings = settings or get_settings()
        kwargs = {
            "gap_threshold": settings.session.gap_threshold,
            "executor": settings.engine.executor,
            "max_workers": settings.engine.max_workers,
            "strict": settings.engine.strict,
            "batch_timeout_seconds": settings.engine.batch_timeout_seconds,
            "top_k": settings.engine.top_k,
        }
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)

    # ==========================================================================
    # Pipeline
    # ==========================================================================

    def run(self, records: Iterable[Any]) -> SessionReport:
        """
        Run the batch over all records.

        Args:
            records: Event instances or mappings, in any order

        Returns:
            SessionReport with per-session metrics, ranked clients, the
            global average (None if there are no sessions) and failures

        Raises:
            InvalidEventError, EmptyInputError: In strict mode
            BatchTimeoutError: If the batch exceeds batch_timeout_seconds
        """
        started = time.monotonic()

        events, failures, rejected = self._validate(records)
        validated = time.monotonic()

        groups = group_by_client(events)
        for client_id in failures:
            groups.pop(client_id, None)
        grouped = time.monotonic()

        deadline = None
        if self.batch_timeout_seconds is not None:
            deadline = started + self.batch_timeout_seconds
        results, group_failures = self._scatter(groups, deadline)
        failures.update(group_failures)
        sessionized = time.monotonic()

        report = self._gather(results, failures, rejected)
        finished = time.monotonic()

        logger.info(
            "Stage timings | validate %.1fms | group %.1fms | sessionize %.1fms | gather %.1fms",
            (validated - started) * 1000,
            (grouped - validated) * 1000,
            (sessionized - grouped) * 1000,
            (finished - sessionized) * 1000,
        )
        logger.info(
            "Engine completed | %d events | %d clients | %d sessions | %d failed groups | "
            "%d rejected records | %s executor",
            report.total_events,
            report.total_clients,
            report.total_sessions,
            len(report.failures),
            report.rejected_records,
            self.executor,
        )
        return report

    def _validate(self, records: Iterable[Any]) -> tuple[list[Event], dict[str, GroupFailure], int]:
        """Coerce records to events, collecting per-client failures."""
        events: list[Event] = []
        failures: dict[str, GroupFailure] = {}
        rejected = 0

        for record in records:
            try:
                events.append(coerce_event(record))
            except InvalidEventError as e:
                if self.strict:
                    raise
                if e.client_id is None:
                    rejected += 1
                    logger.debug("Rejected record without client id: %s", e)
                elif e.client_id not in failures:
                    failures[e.client_id] = _failure(e.client_id, e)
                    logger.warning("Skipping client %s: %s", e.client_id, e)

        if rejected:
            logger.warning("Rejected %d records without a usable client id", rejected)
        return events, failures, rejected

    def _scatter(
        self, groups: dict[str, list[Event]], deadline: Optional[float]
    ) -> tuple[dict[str, GroupResult], dict[str, GroupFailure]]:
        """Process every client group on the configured executor."""
        if self.executor == "serial":
            return self._scatter_serial(groups, deadline)

        pool_cls = (
            concurrent.futures.ProcessPoolExecutor
            if self.executor == "process"
            else concurrent.futures.ThreadPoolExecutor
        )
        results: dict[str, GroupResult] = {}
        failures: dict[str, GroupFailure] = {}

        pool = pool_cls(max_workers=self.max_workers)
        try:
            futures = {
                pool.submit(process_group, client_id, events, self.gap_threshold): client_id
                for client_id, events in groups.items()
            }
            timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                for future in concurrent.futures.as_completed(futures, timeout=timeout):
                    client_id = futures[future]
                    try:
                        results[client_id] = future.result()
                    except WeblogError as e:
                        if self.strict:
                            raise
                        failures[client_id] = _failure(client_id, e)
                        logger.warning("Skipping client %s: %s", client_id, e)
            except concurrent.futures.TimeoutError as e:
                raise BatchTimeoutError(
                    f"Batch did not finish within {self.batch_timeout_seconds}s "
                    f"({len(results) + len(failures)}/{len(futures)} groups done)"
                ) from e
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return results, failures

    def _scatter_serial(
        self, groups: dict[str, list[Event]], deadline: Optional[float]
    ) -> tuple[dict[str, GroupResult], dict[str, GroupFailure]]:
        results: dict[str, GroupResult] = {}
        failures: dict[str, GroupFailure] = {}

        for client_id, events in groups.items():
            if deadline is not None and time.monotonic() > deadline:
                raise BatchTimeoutError(
                    f"Batch did not finish within {self.batch_timeout_seconds}s "
                    f"({len(results) + len(failures)}/{len(groups)} groups done)"
                )
            try:
                results[client_id] = process_group(client_id, events, self.gap_threshold)
            except WeblogError as e:
                if self.strict:
                    raise
                failures[client_id] = _failure(client_id, e)
                logger.warning("Skipping client %s: %s", client_id, e)

        return results, failures

    def _gather(
        self,
        results: dict[str, GroupResult],
        failures: dict[str, GroupFailure],
        rejected: int,
    ) -> SessionReport:
        """Combine per-client results into the global report."""
        sessions: list[SessionMetrics] = []
        clients: list[ClientMetrics] = []
        processed_events = 0

        for client_id in sorted(results):
            session_metrics, client_metrics = results[client_id]
            sessions.extend(session_metrics)
            processed_events += sum(m.event_count for m in session_metrics)
            if client_metrics is not None:
                clients.append(client_metrics)

        return SessionReport(
            gap_threshold=self.gap_threshold,
            total_events=processed_events,
            total_sessions=len(sessions),
            average_duration=average_duration(sessions),
            sessions=sessions,
            clients=rank_clients(clients),
            most_engaged=rank_clients(clients, self.top_k),
            failures=[failures[c] for c in sorted(failures)],
            rejected_records=rejected,
        )
