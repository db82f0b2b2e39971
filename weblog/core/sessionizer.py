# ==============================================================================
# Sessionizer - Pure Domain Logic
# ==============================================================================
"""
Idle-gap session segmentation for one client's events.

This module contains the domain logic for session detection:
- Stable time ordering of a client's events
- Boundary detection with the inclusive idle-gap rule
- Per-client session numbering (a running count of boundaries)
- Building immutable Session objects

No state is shared between calls, so one Sessionizer can be used for many
clients concurrently.
"""

from collections.abc import Iterable, Iterator

from weblog.core.errors import EmptyInputError, InvalidEventError
from weblog.core.models import Event, Session

DEFAULT_GAP_THRESHOLD = 15


class Sessionizer:
    """
    Splits a client's events into sessions.

    Events are sorted by timestamp (stable, so ties keep arrival order) and
    scanned once. An event that arrives gap_threshold or more minutes after
    the previous event starts a new session; the session id is the number of
    such boundaries seen so far.
    """

    def __init__(self, gap_threshold: int = DEFAULT_GAP_THRESHOLD):
        """
        Initialize sessionizer.

        Args:
            gap_threshold: Minimum idle gap, in minutes, that starts a new
                           session. An event exactly this far after the
                           previous one opens a new session.
        """
        if isinstance(gap_threshold, bool) or not isinstance(gap_threshold, int):
            raise TypeError("gap_threshold must be an integer")
        if gap_threshold <= 0:
            raise ValueError("gap_threshold must be positive")
        self.gap_threshold = gap_threshold

    def is_boundary(self, previous_timestamp: int | None, timestamp: int) -> bool:
        """
        Check whether an event starts a new session.

        Args:
            previous_timestamp: Timestamp of the client's previous event, or
                                None for the client's first event
            timestamp: Timestamp of the current event

        Returns:
            True if the gap reaches the threshold
        """
        if previous_timestamp is None:
            return False
        return timestamp - previous_timestamp >= self.gap_threshold

    def label(self, events: Iterable[Event]) -> Iterator[tuple[Event, int]]:
        """
        Label each event with its session id.

        Args:
            events: One client's events, in any order

        Yields:
            (event, session_id) pairs in time order

        Raises:
            InvalidEventError: If an event has a missing or negative timestamp
        """
        ordered = sorted(events, key=_checked_timestamp)

        session_id = 0
        previous = None
        for event in ordered:
            if self.is_boundary(previous, event.timestamp):
                session_id += 1
            previous = event.timestamp
            yield event, session_id

    def sessionize(self, client_id: str, events: Iterable[Event]) -> list[Session]:
        """
        Build the sessions of one client.

        Args:
            client_id: Client the events belong to
            events: That client's events, in any order

        Returns:
            Sessions ordered by session id, covering every event exactly once

        Raises:
            EmptyInputError: If there are no events
            InvalidEventError: If an event is malformed or belongs to another client
        """
        events = list(events)
        if not events:
            raise EmptyInputError(f"No events for client {client_id!r}")

        for event in events:
            if event.client_id != client_id:
                raise InvalidEventError(
                    f"Event for client {event.client_id!r} in group {client_id!r}",
                    client_id=client_id,
                )

        sessions: list[Session] = []
        current: list[Event] = []
        current_id = 0
        for event, session_id in self.label(events):
            if session_id != current_id:
                sessions.append(Session(client_id=client_id, session_id=current_id, events=current))
                current = []
                current_id = session_id
            current.append(event)
        sessions.append(Session(client_id=client_id, session_id=current_id, events=current))
        return sessions


def _checked_timestamp(event: Event) -> int:
    # Events built with model_construct() skip pydantic validation
    timestamp = getattr(event, "timestamp", None)
    if not isinstance(timestamp, int) or isinstance(timestamp, bool) or timestamp < 0:
        raise InvalidEventError(
            f"Invalid timestamp {timestamp!r} for client {getattr(event, 'client_id', None)!r}",
            client_id=getattr(event, "client_id", None),
        )
    return timestamp
