"""Partitioning of encoded events into request-sized batches"""
from typing import Iterator, List, Sequence, TypeVar

# Insights API rejects requests carrying more events than this
PROTOCOL_MAX = 1000

T = TypeVar("T")


def effective_batch_size(configured: int) -> int:
    """Configured batch size capped at the protocol maximum"""
    if configured < 1:
        raise ValueError(f"batch size must be positive, got {configured}")
    return min(configured, PROTOCOL_MAX)


def partition(events: Sequence[T], batch_size: int) -> Iterator[List[T]]:
    """Slice events from the front into batches of at most effective_batch_size(batch_size).

    Order is preserved and only the last batch may be shorter. Empty input
    yields nothing.
    """
    limit = effective_batch_size(batch_size)
    for start in range(0, len(events), limit):
        yield list(events[start:start + limit])
