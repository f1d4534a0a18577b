"""
Region Ring Tests
=================

Tests for the fixed-size history used by the duplicate tracker.
"""

import pytest

from scrollstitch.dedup.ring import RegionRing


class TestRegionRing:
    """Tests for RegionRing."""

    def test_iterates_oldest_first(self):
        ring = RegionRing(capacity=5, batch=2)
        for i in range(4):
            ring.push(i)
        assert list(ring) == [0, 1, 2, 3]
        assert ring.newest() == 3

    def test_batch_eviction_when_full(self):
        ring = RegionRing(capacity=200, batch=20)
        for i in range(200 + 25):
            ring.push(i)

        assert len(ring) == 205
        items = list(ring)
        assert items[0] == 20
        assert items[-1] == 224
        assert ring.evicted_count == 20

    def test_never_exceeds_slot_count(self):
        ring = RegionRing(capacity=10, batch=3)
        for i in range(100):
            ring.push(i)
            assert len(ring) <= ring.slots == 13

    def test_push_reports_evictions(self):
        ring = RegionRing(capacity=3, batch=2)
        evictions = [ring.push(i) for i in range(6)]
        assert evictions == [0, 0, 0, 0, 0, 2]

    def test_cleanup_trims_excess_plus_batch(self):
        ring = RegionRing(capacity=200, batch=20)
        for i in range(205):
            ring.push(i)

        assert ring.cleanup() == 25
        assert len(ring) == 180
        assert list(ring)[0] == 45

    def test_cleanup_within_capacity_is_noop(self):
        ring = RegionRing(capacity=10, batch=3)
        for i in range(10):
            ring.push(i)
        assert ring.cleanup() == 0
        assert len(ring) == 10

    def test_wraps_around(self):
        ring = RegionRing(capacity=3, batch=1)
        for i in range(10):
            ring.push(i)
        items = list(ring)
        assert items == sorted(items)
        assert items[-1] == 9

    def test_iteration_matches_len_after_eviction(self):
        ring = RegionRing(capacity=4, batch=2)
        for i in range(13):
            ring.push(i)
        ring.cleanup()

        items = list(ring)
        assert len(items) == len(ring)
        assert None not in items
        assert items[-1] == 12

    def test_clear(self):
        ring = RegionRing(capacity=3, batch=1)
        for i in range(5):
            ring.push(i)
        assert ring.clear() == 4
        assert len(ring) == 0
        assert list(ring) == []
        assert ring.newest() is None

    def test_metrics(self):
        ring = RegionRing(capacity=3, batch=1)
        ring.push("a")
        metrics = ring.metrics()
        assert metrics["size"] == 1
        assert metrics["capacity"] == 3
        assert metrics["slots"] == 4
        assert metrics["total_pushed"] == 1

    @pytest.mark.parametrize("capacity,batch", [(0, 1), (1, 0)])
    def test_invalid_arguments(self, capacity, batch):
        with pytest.raises(ValueError):
            RegionRing(capacity=capacity, batch=batch)
