# ==============================================================================
# Session Aggregator
# ==============================================================================
"""
Per-session, per-client and global reductions over sessions.

All functions are pure. Per-session metrics only depend on the set of
events in the session (extremes and distinct URLs), never on their order.
"""

from collections.abc import Iterable

from weblog.core.models import ClientMetrics, Session, SessionMetrics


def summarize_session(session: Session) -> SessionMetrics:
    """Compute duration and distinct URL count for one session."""
    start = session.start
    end = session.end
    return SessionMetrics(
        client_id=session.client_id,
        session_id=session.session_id,
        duration=end - start,
        distinct_url_count=session.distinct_url_count,
        event_count=session.event_count,
        start=start,
        end=end,
    )


def summarize_sessions(sessions: Iterable[Session]) -> list[SessionMetrics]:
    return [summarize_session(s) for s in sessions]


def summarize_client(
    client_id: str, session_metrics: Iterable[SessionMetrics]
) -> ClientMetrics | None:
    """
    Reduce one client's session metrics to its longest session.

    Args:
        client_id: Client to summarize
        session_metrics: That client's session metrics

    Returns:
        ClientMetrics, or None when the client has no sessions (such a
        client is left out of the ranking)

    Raises:
        ValueError: If a metric belongs to a different client
    """
    max_duration = None
    count = 0
    for metrics in session_metrics:
        if metrics.client_id != client_id:
            raise ValueError(
                f"Session {metrics.session_id} of {metrics.client_id!r} "
                f"passed to summary of {client_id!r}"
            )
        count += 1
        if max_duration is None or metrics.duration > max_duration:
            max_duration = metrics.duration

    if max_duration is None:
        return None
    return ClientMetrics(client_id=client_id, max_duration=max_duration, session_count=count)


def average_duration(session_metrics: Iterable[SessionMetrics]) -> float | None:
    """
    Simple mean session duration over all sessions of all clients.

    Returns None when there are no sessions; the average is undefined then,
    not zero.
    """
    total = 0
    count = 0
    for metrics in session_metrics:
        total += metrics.duration
        count += 1
    if count == 0:
        return None
    return total / count
