"""Tests for the concurrency governor."""

import asyncio

import pytest

from lanscan.services.governor import ConcurrencyGovernor
from lanscan.services.timeouts import ProbeCancelled


class TestGovernorInit:
    """Tests for ConcurrencyGovernor construction."""

    def test_rejects_zero_limits(self):
        """Test limits below one are rejected."""
        with pytest.raises(ValueError):
            ConcurrencyGovernor(0)
        with pytest.raises(ValueError):
            ConcurrencyGovernor(4, max_ports=0)

    def test_initial_counters(self):
        """Test counters start at zero."""
        governor = ConcurrencyGovernor(4)
        assert governor.snapshot() == {
            "launched": 0,
            "in_flight": 0,
            "completed": 0,
            "peak_in_flight": 0,
        }


class TestGovernorCounters:
    """Tests for launch and finish bookkeeping."""

    def test_launch_and_finish(self):
        """Test counters track launches and completions."""
        launched = []
        governor = ConcurrencyGovernor(4, on_launch=launched.append)
        governor.launch("10.0.0.1")
        governor.launch("10.0.0.2")
        assert governor.in_flight == 2
        assert governor.peak_in_flight == 2
        assert governor.finish() == 1
        assert governor.finish(counted=False) == 1
        assert governor.in_flight == 0
        assert governor.launched == 2
        assert governor.peak_in_flight == 2
        assert launched == ["10.0.0.1", "10.0.0.2"]

    def test_port_limiter_per_host(self):
        """Test each host gets its own port semaphore."""
        governor = ConcurrencyGovernor(4, max_ports=3)
        first = governor.port_limiter()
        second = governor.port_limiter()
        assert first is not second
        assert first._value == 3


class TestGovernorAcquire:
    """Tests for acquiring host slots."""

    @pytest.mark.asyncio
    async def test_acquire_and_release(self):
        """Test a slot can be reused after release."""
        governor = ConcurrencyGovernor(1)
        await governor.acquire()
        governor.release()
        await asyncio.wait_for(governor.acquire(asyncio.Event()), timeout=1.0)

    @pytest.mark.asyncio
    async def test_blocks_when_full(self):
        """Test acquiring beyond the limit waits for a release."""
        governor = ConcurrencyGovernor(1)
        await governor.acquire()
        waiter = asyncio.create_task(governor.acquire(asyncio.Event()))
        await asyncio.sleep(0.01)
        assert not waiter.done()
        governor.release()
        await asyncio.wait_for(waiter, timeout=1.0)

    @pytest.mark.asyncio
    async def test_cancelled_before_acquire(self):
        """Test a set event refuses new slots."""
        governor = ConcurrencyGovernor(1)
        event = asyncio.Event()
        event.set()
        with pytest.raises(ProbeCancelled):
            await governor.acquire(event)

    @pytest.mark.asyncio
    async def test_cancelled_while_waiting(self):
        """Test cancellation wakes a waiting acquirer without taking a slot."""
        governor = ConcurrencyGovernor(1)
        await governor.acquire()
        event = asyncio.Event()
        waiter = asyncio.create_task(governor.acquire(event))
        await asyncio.sleep(0.01)
        event.set()
        with pytest.raises(ProbeCancelled):
            await asyncio.wait_for(waiter, timeout=1.0)

        governor.release()
        # The slot released above is still free
        await asyncio.wait_for(governor.acquire(), timeout=1.0)
