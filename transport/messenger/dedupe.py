"""
Inbound message de-duplication.

Messenger redelivers events it believes were not acknowledged. Remembering
the most recent message ids makes a redelivered message a no-op.
"""

from collections import OrderedDict
from typing import Optional


class MessageDeduplicator:
    """Bounded LRU of recently seen message ids."""

    def __init__(self, capacity: int = 1024):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._seen: "OrderedDict[str, None]" = OrderedDict()

    def seen(self, message_id: Optional[str]) -> bool:
        """
        Record message_id and report whether it was already recorded.

        Messages without an id are never considered duplicates.
        """
        if not message_id:
            return False
        if message_id in self._seen:
            self._seen.move_to_end(message_id)
            return True
        self._seen[message_id] = None
        if len(self._seen) > self.capacity:
            self._seen.popitem(last=False)
        return False

    def __len__(self) -> int:
        return len(self._seen)
