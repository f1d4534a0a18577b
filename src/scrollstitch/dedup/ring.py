"""
Region Ring
===========

Fixed-size ring buffer of covered-region records.

Design Rules:
    - Storage is allocated once: `capacity + batch` slots
    - Inserting into a full ring drops the oldest `batch` entries first
      (amortized batch eviction, not per-insert LRU)
    - Iteration is oldest-first
    - Does NOT inspect or modify the records it holds
"""

import logging
from typing import Generic, Iterator, List, Optional, TypeVar


logger = logging.getLogger(__name__)


T = TypeVar("T")


class RegionRing(Generic[T]):
    """
    Bounded history with batch eviction.

    Attributes:
        capacity: Nominal number of records kept after a cleanup
        batch: Slack slots above `capacity`; also the eviction batch size
        evicted_count: Records dropped since creation or the last clear

    Example:
        ring = RegionRing(capacity=200, batch=20)

        for region in regions:
            ring.push(region)

        for region in ring:  # oldest first
            ...
    """

    def __init__(self, capacity: int = 200, batch: int = 20) -> None:
        """
        Initialize ring.

        Args:
            capacity: Records kept after a cleanup pass. Must be >= 1.
            batch: Extra slots, dropped together when the ring fills. Must be >= 1.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if batch < 1:
            raise ValueError("batch must be >= 1")

        self._capacity = capacity
        self._batch = batch
        self._slots: List[Optional[T]] = [None] * (capacity + batch)
        self._head: int = 0
        self._count: int = 0
        self._evicted_count: int = 0
        self._total_pushed: int = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def batch(self) -> int:
        return self._batch

    @property
    def slots(self) -> int:
        """Hard upper bound on held records."""
        return len(self._slots)

    @property
    def evicted_count(self) -> int:
        return self._evicted_count

    @property
    def total_pushed(self) -> int:
        return self._total_pushed

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[T]:
        size = len(self._slots)
        for i in range(self._count):
            item = self._slots[(self._head + i) % size]
            if item is not None:
                yield item

    def is_full(self) -> bool:
        return self._count == len(self._slots)

    def push(self, item: T) -> int:
        """
        Append a record, evicting a batch first when the ring is full.

        Args:
            item: Record to store

        Returns:
            Number of records evicted by this push
        """
        self._total_pushed += 1

        evicted = 0
        if self.is_full():
            evicted = self.drop_oldest(self._count - self._capacity)
            logger.debug(f"Region ring full, evicted {evicted} oldest records")

        size = len(self._slots)
        self._slots[(self._head + self._count) % size] = item
        self._count += 1
        return evicted

    def drop_oldest(self, n: int) -> int:
        """
        Remove up to `n` oldest records.

        Returns:
            Number of records removed
        """
        n = max(0, min(n, self._count))
        size = len(self._slots)
        for _ in range(n):
            self._slots[self._head] = None
            self._head = (self._head + 1) % size
        self._count -= n
        self._evicted_count += n
        return n

    def cleanup(self) -> int:
        """
        Capacity cleanup pass.

        When more than `capacity` records are held, drops the excess plus
        one batch.

        Returns:
            Number of records removed
        """
        if self._count <= self._capacity:
            return 0
        removed = self.drop_oldest(self._count - self._capacity + self._batch)
        logger.info(f"Region ring cleanup removed {removed} records, {self._count} left")
        return removed

    def newest(self) -> Optional[T]:
        if self._count == 0:
            return None
        return self._slots[(self._head + self._count - 1) % len(self._slots)]

    def clear(self) -> int:
        """
        Remove all records.

        Returns:
            Number of records cleared
        """
        cleared = self._count
        self._slots = [None] * len(self._slots)
        self._head = 0
        self._count = 0
        self._evicted_count = 0
        self._total_pushed = 0
        return cleared

    def metrics(self) -> dict:
        """
        Get ring metrics for observability.

        Returns:
            Dict with size, capacity, slots, evicted_count, total_pushed
        """
        return {
            "size": self._count,
            "capacity": self._capacity,
            "slots": len(self._slots),
            "evicted_count": self._evicted_count,
            "total_pushed": self._total_pushed,
        }
