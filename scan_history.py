from collections import deque


class ScanHistory:
    """Most recent scan results, oldest first, capped at ``capacity``.

    Pushing past capacity drops the oldest entry.
    """

    def __init__(self, capacity: int = 5):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items = deque(maxlen=capacity)

    def push(self, result: dict):
        self._items.append(result)

    def items(self) -> list:
        return list(self._items)

    def clear(self):
        self._items.clear()

    def __len__(self):
        return len(self._items)

    def __bool__(self):
        return bool(self._items)
