"""Memoization of rendered chart images."""

import logging
from typing import Callable

from cachetools import LRUCache

logger = logging.getLogger(__name__)


class ChartCache:
    """LRU cache of PNG bytes keyed by (run_id, chart name).

    A run_id is never reused, so entries never go stale; old runs simply
    fall out of the LRU.
    """

    def __init__(self, maxsize: int = 32):
        self._memory: LRUCache = LRUCache(maxsize=maxsize)
        self.hits = 0
        self.misses = 0

    def get_or_render(self, run_id: str, chart: str, render: Callable[[], bytes]) -> bytes:
        key = (run_id, chart)
        png = self._memory.get(key)
        if png is not None:
            self.hits += 1
            return png

        self.misses += 1
        logger.debug(f"Chart cache miss: {chart} for run {run_id}")
        png = render()
        self._memory[key] = png
        return png

    def clear(self) -> None:
        self._memory.clear()

    def __len__(self) -> int:
        return len(self._memory)
