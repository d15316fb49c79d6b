"""Pixel coordinates and a FIFO queue that remembers what it has seen."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass


@dataclass(frozen=True)
class PixelCoord:
    """A (row, col) position in an image."""

    row: int = 0
    col: int = 0

    def __add__(self, other: "PixelCoord") -> "PixelCoord":
        if not isinstance(other, PixelCoord):
            return NotImplemented
        return PixelCoord(self.row + other.row, self.col + other.col)


class HashQueue:
    """FIFO queue of pixels whose membership test covers everything ever pushed."""

    def __init__(self):
        self._queue: deque[PixelCoord] = deque()
        self._seen: set[PixelCoord] = set()

    def push(self, coord: PixelCoord) -> None:
        self._seen.add(coord)
        self._queue.append(coord)

    def pop(self) -> PixelCoord:
        """Remove and return the front element."""
        if not self._queue:
            raise IndexError("pop from an empty HashQueue")
        return self._queue.popleft()

    def front(self) -> PixelCoord:
        if not self._queue:
            raise IndexError("front of an empty HashQueue")
        return self._queue[0]

    def __contains__(self, coord: object) -> bool:
        return coord in self._seen

    def __len__(self) -> int:
        return len(self._queue)