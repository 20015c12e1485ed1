"""In-process checkpoint storage with eviction.

LangGraph's InMemorySaver keeps every thread for the life of the process.
EvictingMemorySaver drops threads that have not been written for a while
and caps the number of threads held at once, oldest first.
"""

import logging
from collections import OrderedDict
from collections.abc import Callable
from threading import Lock
from time import monotonic

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import ChannelVersions, Checkpoint, CheckpointMetadata
from langgraph.checkpoint.memory import InMemorySaver

logger = logging.getLogger(__name__)


class EvictingMemorySaver(InMemorySaver):
    """InMemorySaver with TTL and capacity based eviction per thread."""

    def __init__(
        self,
        ttl_seconds: float | None = 3600.0,
        max_threads: int | None = 1000,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        """Initialize the saver.

        Args:
            ttl_seconds: Evict threads not written for this long (None disables)
            max_threads: Keep at most this many threads (None disables)
            clock: Monotonic time source, injectable for tests
        """
        super().__init__()
        self.ttl_seconds = ttl_seconds
        self.max_threads = max_threads
        self._clock = clock
        self._last_used: OrderedDict[str, float] = OrderedDict()
        self._lock = Lock()

    @property
    def thread_ids(self) -> list[str]:
        """Tracked threads, least recently written first."""
        with self._lock:
            return list(self._last_used)

    def put(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        result = super().put(config, checkpoint, metadata, new_versions)
        self._touch(config["configurable"]["thread_id"])
        return result

    def delete_thread(self, thread_id: str) -> None:
        with self._lock:
            self._last_used.pop(thread_id, None)
        super().delete_thread(thread_id)

    def evict_expired(self) -> list[str]:
        """Evict threads past their TTL and over capacity.

        Returns:
            IDs of the evicted threads
        """
        with self._lock:
            evicted = self._collect_evictions(self._clock())
        for thread_id in evicted:
            super().delete_thread(thread_id)
        if evicted:
            logger.info(f"Evicted {len(evicted)} checkpoint thread(s)")
        return evicted

    def _touch(self, thread_id: str) -> None:
        with self._lock:
            self._last_used[thread_id] = self._clock()
            self._last_used.move_to_end(thread_id)
        self.evict_expired()

    def _collect_evictions(self, now: float) -> list[str]:
        evicted: list[str] = []
        if self.ttl_seconds is not None:
            while self._last_used:
                thread_id, last_used = next(iter(self._last_used.items()))
                if now - last_used < self.ttl_seconds:
                    break
                self._last_used.popitem(last=False)
                evicted.append(thread_id)
        if self.max_threads is not None:
            while len(self._last_used) > self.max_threads:
                thread_id, _ = self._last_used.popitem(last=False)
                evicted.append(thread_id)
        return evicted
