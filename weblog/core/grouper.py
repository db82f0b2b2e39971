# ==============================================================================
# Client Grouper
# ==============================================================================
"""
Partition an event stream by client identifier.

This is the scatter key for the engine: each resulting group can be
sessionized independently of every other group.
"""

from collections import defaultdict
from collections.abc import Iterable

from weblog.core.models import Event


def group_by_client(events: Iterable[Event]) -> dict[str, list[Event]]:
    """
    Group events by client_id.

    No event is dropped or duplicated. Within a group, events keep their
    arrival order; time ordering is left to the sessionizer.

    Args:
        events: Any iterable of events, in any order

    Returns:
        Dict mapping client_id to that client's events
    """
    groups: dict[str, list[Event]] = defaultdict(list)
    for event in events:
        groups[event.client_id].append(event)
    return dict(groups)
