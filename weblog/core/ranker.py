# ==============================================================================
# Client Ranker
# ==============================================================================
"""
Orders clients by their longest session ("most engaged" clients).
"""

from collections.abc import Iterable
from typing import Optional

from weblog.core.models import ClientMetrics


def rank_clients(
    metrics: Iterable[ClientMetrics], top_k: Optional[int] = None
) -> list[ClientMetrics]:
    """
    Rank clients by max session duration.

    Sorted by max_duration descending; ties are broken by client_id
    ascending so the order is reproducible.

    Args:
        metrics: Per-client metrics (not modified)
        top_k: Keep only the first top_k entries (None keeps all)

    Returns:
        New list in ranking order
    """
    if top_k is not None and top_k < 0:
        raise ValueError("top_k must be non-negative")

    ranked = sorted(metrics, key=lambda m: (-m.max_duration, m.client_id))
    if top_k is not None:
        return ranked[:top_k]
    return ranked
