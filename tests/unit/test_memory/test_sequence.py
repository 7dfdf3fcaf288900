"""Test SequenceAllocator — per-timestamp counters with time-based eviction."""

import pytest

from openmemory.memory.sequence import SequenceAllocator


@pytest.fixture
def allocator(clock) -> SequenceAllocator:
    return SequenceAllocator(clock=clock)


class TestAllocate:
    """Test sequence numbering for repeated timestamps."""

    def test_first_allocation_is_zero(self, allocator) -> None:
        """A new timestamp starts at 0."""
        assert allocator.allocate(1_700_000_000) == 0

    def test_quick_succession_counts_up(self, allocator) -> None:
        """Repeated calls for one timestamp return 0, 1, 2, ..."""
        results = [allocator.allocate(42) for _ in range(5)]
        assert results == [0, 1, 2, 3, 4]

    def test_timestamps_are_independent(self, allocator) -> None:
        """Each timestamp has its own counter."""
        assert allocator.allocate(1) == 0
        assert allocator.allocate(2) == 0
        assert allocator.allocate(1) == 1
        assert allocator.allocate(2) == 1

    def test_wraps_after_cap(self, allocator) -> None:
        """The 1001st call for one timestamp wraps back to 0."""
        results = [allocator.allocate(7) for _ in range(1000)]
        assert results == list(range(1000))
        assert allocator.allocate(7) == 0
        assert allocator.allocate(7) == 1

    def test_custom_cap(self, clock) -> None:
        """The cap is configurable."""
        allocator = SequenceAllocator(cap=3, clock=clock)
        assert [allocator.allocate(5) for _ in range(5)] == [0, 1, 2, 0, 1]

    def test_non_positive_cap_rejected(self) -> None:
        """A zero cap is a configuration error."""
        with pytest.raises(ValueError):
            SequenceAllocator(cap=0)


class TestEviction:
    """Test the idle-time eviction driven by the injected clock."""

    def test_counter_survives_within_window(self, allocator, clock) -> None:
        """Exactly 10 seconds idle is not yet stale."""
        allocator.allocate(9)
        clock.advance(10.0)
        assert allocator.allocate(9) == 1

    def test_counter_evicted_after_window(self, allocator, clock) -> None:
        """More than 10 seconds idle restarts the count at 0."""
        allocator.allocate(9)
        allocator.allocate(9)
        clock.advance(10.5)
        assert allocator.allocate(9) == 0

    def test_eviction_sweeps_other_timestamps(self, allocator, clock) -> None:
        """Any allocation clears every stale counter."""
        allocator.allocate(1)
        allocator.allocate(2)
        assert len(allocator) == 2

        clock.advance(11.0)
        allocator.allocate(3)
        assert len(allocator) == 1

    def test_activity_refreshes_counter(self, allocator, clock) -> None:
        """Each allocation resets the idle time of its counter."""
        allocator.allocate(4)
        clock.advance(8.0)
        allocator.allocate(4)
        clock.advance(8.0)
        assert allocator.allocate(4) == 2

    def test_custom_eviction_window(self, clock) -> None:
        """The eviction window is configurable."""
        allocator = SequenceAllocator(eviction_seconds=1.0, clock=clock)
        allocator.allocate(3)
        clock.advance(1.5)
        assert allocator.allocate(3) == 0
