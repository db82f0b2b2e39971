# ==============================================================================
# Weblog Domain Models
# ==============================================================================
"""
Pydantic models for access-log events, sessions and derived metrics.

These models are used for:
- Validating event records at the engine boundary
- Carrying sessions from the sessionizer to the aggregator
- Serializing the final report (JSON output, CSV export)

This module is part of the core domain layer and has no external dependencies
beyond Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """
    Represents a single cleaned access-log record.

    Attributes:
        timestamp: Minutes since the Unix epoch (sub-minute precision dropped)
        client_id: Client identity used for grouping (IP address without port)
        url: Requested resource, only used for distinct counting
    """

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., ge=0, description="Minutes since the Unix epoch")
    client_id: str = Field(..., min_length=1, description="Client identifier")
    url: str = Field(..., description="Requested URL")


class Session(BaseModel):
    """
    Represents one client browsing session.

    A session is a maximal run of a client's time-ordered events with no
    internal gap of at least the idle threshold.

    Attributes:
        client_id: Owning client
        session_id: Per-client session number, 0 for the client's first session
        events: Events in this session, ordered by timestamp
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., description="Client identifier")
    session_id: int = Field(..., ge=0, description="Session number within the client")
    events: tuple[Event, ...] = Field(..., min_length=1, description="Events in this session")

    @property
    def start(self) -> int:
        """Minute of the first event."""
        return min(e.timestamp for e in self.events)

    @property
    def end(self) -> int:
        """Minute of the last event."""
        return max(e.timestamp for e in self.events)

    @property
    def duration(self) -> int:
        """Session duration in minutes (0 for a single-event session)."""
        return self.end - self.start

    @property
    def event_count(self) -> int:
        """Total number of events in session."""
        return len(self.events)

    @property
    def distinct_url_count(self) -> int:
        """Number of unique URLs requested in session."""
        return len({e.url for e in self.events})


class SessionMetrics(BaseModel):
    """Per-session aggregates."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    session_id: int
    duration: int = Field(..., ge=0, description="max(timestamp) - min(timestamp), minutes")
    distinct_url_count: int = Field(..., ge=1)
    event_count: int = Field(..., ge=1)
    start: int = Field(..., ge=0, description="Minute of the first event")
    end: int = Field(..., ge=0, description="Minute of the last event")


class ClientMetrics(BaseModel):
    """Per-client aggregates."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    max_duration: int = Field(..., ge=0, description="Longest session duration, minutes")
    session_count: int = Field(..., ge=1)


class GroupFailure(BaseModel):
    """A client group skipped because its events could not be processed."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    error: str = Field(..., description="Exception class name")
    message: str


class SessionReport(BaseModel):
    """
    Result of one engine run.

    average_duration is None when there are no sessions at all, which is
    distinct from an average of zero.
    """

    gap_threshold: int
    total_events: int = 0
    total_sessions: int = 0
    average_duration: float | None = None
    sessions: list[SessionMetrics] = Field(default_factory=list)
    clients: list[ClientMetrics] = Field(default_factory=list)
    most_engaged: list[ClientMetrics] = Field(default_factory=list)
    failures: list[GroupFailure] = Field(default_factory=list)
    rejected_records: int = 0

    @property
    def total_clients(self) -> int:
        """Number of clients with at least one session."""
        return len(self.clients)

    def sessions_for(self, client_id: str) -> list[SessionMetrics]:
        """Session metrics for one client, in session id order."""
        return sorted(
            (s for s in self.sessions if s.client_id == client_id),
            key=lambda s: s.session_id,
        )

    def to_summary(self) -> dict:
        """Summary dict for JSON output (per-session rows omitted)."""
        return {
            "gap_threshold": self.gap_threshold,
            "total_events": self.total_events,
            "total_sessions": self.total_sessions,
            "total_clients": self.total_clients,
            "average_duration": self.average_duration,
            "most_engaged": [c.model_dump() for c in self.most_engaged],
            "failures": [f.model_dump() for f in self.failures],
            "rejected_records": self.rejected_records,
        }
