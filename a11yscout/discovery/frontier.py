"""Priority-ordered crawl frontier."""

import heapq
import itertools
from dataclasses import dataclass


@dataclass
class Candidate:
    """A page proposed for crawling."""

    url: str
    priority: int
    depth: int


class Frontier:
    """Work queue popping the lowest priority value first.

    Equal priorities come out in the order they were pushed.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[int, int, Candidate]] = []
        self._counter = itertools.count()

    def push(self, candidate: Candidate) -> None:
        heapq.heappush(self._heap, (candidate.priority, next(self._counter), candidate))

    def pop(self) -> Candidate | None:
        if not self._heap:
            return None
        return heapq.heappop(self._heap)[2]

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def urls(self) -> list[str]:
        """URLs currently queued, in no particular order."""
        return [entry[2].url for entry in self._heap]
