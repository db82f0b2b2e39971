# ==============================================================================
# Core Domain Logic
# ==============================================================================
"""
Pure domain logic with no external dependencies.

This module contains:
- Domain models (Event, Session, SessionMetrics, ClientMetrics)
- Grouping, session segmentation, aggregation and ranking

All code here is free of I/O and easily unit-testable.
"""

from weblog.core.aggregator import (
    average_duration,
    summarize_client,
    summarize_session,
    summarize_sessions,
)
from weblog.core.errors import (
    BatchTimeoutError,
    EmptyInputError,
    InvalidEventError,
    InvalidRecordError,
    WeblogError,
)
from weblog.core.grouper import group_by_client
from weblog.core.models import (
    ClientMetrics,
    Event,
    GroupFailure,
    Session,
    SessionMetrics,
    SessionReport,
)
from weblog.core.ranker import rank_clients
from weblog.core.sessionizer import DEFAULT_GAP_THRESHOLD, Sessionizer

__all__ = [
    # Models
    "ClientMetrics",
    "Event",
    "GroupFailure",
    "Session",
    "SessionMetrics",
    "SessionReport",
    # Errors
    "BatchTimeoutError",
    "EmptyInputError",
    "InvalidEventError",
    "InvalidRecordError",
    "WeblogError",
    # Operations
    "DEFAULT_GAP_THRESHOLD",
    "Sessionizer",
    "average_duration",
    "group_by_client",
    "rank_clients",
    "summarize_client",
    "summarize_session",
    "summarize_sessions",
]
