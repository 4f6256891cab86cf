"""Position arithmetic for a phone's queue.

Pure functions over lists of entries; persistence lives in the engine.
Positions are always recomputed from rank, so the result of a move is
the contiguous range 1..N even when the stored positions were not.
"""

from collections.abc import Iterable

from wppqueue.domain import Direction, QueueEntry


def sort_entries(entries: Iterable[QueueEntry]) -> list[QueueEntry]:
    """Order active entries by position, oldest first on ties."""
    return sorted(
        (e for e in entries if e.active),
        key=lambda e: (e.position, e.created_at),
    )


def next_position(entries: Iterable[QueueEntry]) -> int:
    """Position for a newly enqueued entry: one past the highest active."""
    positions = [e.position for e in entries if e.active]
    return max(positions) + 1 if positions else 1


def reordered(entries: list[QueueEntry], index: int, direction: Direction) -> list[QueueEntry] | None:
    """Return the new order after moving `entries[index]`, or None for a no-op."""
    last = len(entries) - 1
    order = list(entries)

    if direction == Direction.UP:
        if index <= 0:
            return None
        order[index - 1], order[index] = order[index], order[index - 1]
    elif direction == Direction.DOWN:
        if index >= last:
            return None
        order[index], order[index + 1] = order[index + 1], order[index]
    elif direction == Direction.TOP:
        if index <= 0:
            return None
        order.insert(0, order.pop(index))
    elif direction == Direction.BOTTOM:
        if index >= last:
            return None
        order.append(order.pop(index))
    else:
        raise ValueError(f"Unknown direction: {direction}")

    return order


def plan_move(
    entries: Iterable[QueueEntry], entry_id: str, direction: Direction
) -> dict[str, int]:
    """Compute the position updates needed to move one entry.

    Returns a mapping of entry id to new position, holding only the
    entries whose position changes. An empty mapping means the move is a
    no-op (already at the boundary it is moving towards).

    Raises:
        KeyError: If `entry_id` is not among the active entries.
    """
    ordered = sort_entries(entries)
    index = next((i for i, e in enumerate(ordered) if e.id == entry_id), None)
    if index is None:
        raise KeyError(entry_id)

    order = reordered(ordered, index, direction)
    if order is None:
        return {}

    return {
        entry.id: rank
        for rank, entry in enumerate(order, start=1)
        if entry.position != rank
    }
