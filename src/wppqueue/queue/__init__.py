"""Per-phone queue ordering."""

from wppqueue.queue.engine import QueueEngine
from wppqueue.queue.ordering import next_position, plan_move, sort_entries

__all__ = ["QueueEngine", "next_position", "plan_move", "sort_entries"]
