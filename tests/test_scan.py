"""
Tests for the scan pulse buffer, scheduler and phase mapping.

Run tests:
    pytest tests/test_scan.py -v
"""

import asyncio
import logging

import numpy as np
import pytest

from gridscan.animation.scan import (
    MAX_SCANS,
    SCAN_SENTINEL,
    ScanBuffer,
    ScanDirection,
    ScanScheduler,
    apply_direction,
    scan_phase,
)


def assert_single_pulse(buffer: ScanBuffer, now: float) -> None:
    """Exactly slot 0 holds a timestamp no later than now; the rest are sentinels."""
    assert buffer.count == 1
    assert np.isfinite(buffer.starts[0])
    assert buffer.starts[0] <= now
    assert np.all(buffer.starts[1:] == SCAN_SENTINEL)


class TestScanBuffer:

    def test_initial_state(self):
        buffer = ScanBuffer()
        assert len(buffer.starts) == MAX_SCANS
        assert np.all(buffer.starts == SCAN_SENTINEL)
        assert buffer.count == MAX_SCANS
        assert buffer.direction == ScanDirection.PINGPONG

    def test_clear(self):
        buffer = ScanBuffer()
        buffer.starts[:] = 3.0
        buffer.clear()
        assert np.all(buffer.starts == SCAN_SENTINEL)


class TestScanScheduler:

    def test_trigger_leaves_single_pulse(self):
        buffer = ScanBuffer()
        buffer.starts[:] = 1.0
        scheduler = ScanScheduler(buffer)
        scheduler.trigger(2.5)
        assert_single_pulse(buffer, 2.5)
        assert buffer.starts[0] == 2.5

    def test_directions_alternate(self):
        scheduler = ScanScheduler(ScanBuffer())
        directions = [scheduler.trigger(float(i)) for i in range(6)]
        assert directions == [
            ScanDirection.FORWARD,
            ScanDirection.BACKWARD,
        ] * 3
        assert scheduler.cycles == 6

    def test_pingpong_never_selected(self):
        scheduler = ScanScheduler(ScanBuffer())
        for i in range(10):
            assert scheduler.trigger(float(i)) != ScanDirection.PINGPONG

    def test_advance_follows_schedule(self):
        buffer = ScanBuffer()
        scheduler = ScanScheduler(buffer, period=5.0, initial_delay=0.1)

        assert scheduler.advance(0.05) == 0
        assert scheduler.cycles == 0

        assert scheduler.advance(0.1) == 1
        assert_single_pulse(buffer, 0.1)
        assert buffer.starts[0] == pytest.approx(0.1)
        assert buffer.direction == ScanDirection.FORWARD

        assert scheduler.advance(5.0) == 0

        assert scheduler.advance(5.1) == 1
        assert buffer.starts[0] == pytest.approx(5.1)
        assert buffer.direction == ScanDirection.BACKWARD

    def test_advance_catches_up(self):
        buffer = ScanBuffer()
        scheduler = ScanScheduler(buffer, period=5.0, initial_delay=0.1)
        assert scheduler.advance(20.2) == 5
        assert buffer.starts[0] == pytest.approx(20.1)
        assert_single_pulse(buffer, 20.2)

    def test_on_reset_called(self):
        calls = []
        scheduler = ScanScheduler(ScanBuffer(), on_reset=lambda t, d: calls.append((t, d)))
        scheduler.trigger(1.0)
        assert calls == [(1.0, ScanDirection.FORWARD)]

    def test_on_reset_error_is_logged(self, caplog):
        def broken(t, d):
            raise RuntimeError("boom")

        buffer = ScanBuffer()
        scheduler = ScanScheduler(buffer, on_reset=broken)
        with caplog.at_level(logging.ERROR):
            scheduler.trigger(1.0)
        assert "boom" in caplog.text
        assert_single_pulse(buffer, 1.0)

    @pytest.mark.asyncio
    async def test_timer_on_event_loop(self):
        loop = asyncio.get_running_loop()
        buffer = ScanBuffer()
        scheduler = ScanScheduler(buffer, period=0.02, initial_delay=0.01)

        scheduler.start(loop.time)
        assert scheduler.running
        await asyncio.sleep(0.1)
        assert scheduler.cycles >= 2
        assert_single_pulse(buffer, loop.time())

        scheduler.stop()
        assert not scheduler.running
        cycles = scheduler.cycles
        await asyncio.sleep(0.05)
        assert scheduler.cycles == cycles


class TestPhase:

    @pytest.mark.parametrize("t_active, expected", [
        (-1.0, 0.0),
        (0.0, 0.0),
        (2.0, 0.5),
        (4.0, 1.0),
        (10.0, 1.0),
    ])
    def test_phase_clamped(self, t_active, expected):
        assert scan_phase(t_active, 4.0) == pytest.approx(expected)

    def test_duration_floor(self):
        assert scan_phase(0.025, 0.0) == pytest.approx(0.5)

    def test_forward_is_identity(self):
        assert apply_direction(0.3, ScanDirection.FORWARD) == pytest.approx(0.3)

    def test_backward_reflects(self):
        assert apply_direction(0.3, ScanDirection.BACKWARD) == pytest.approx(0.7)

    @pytest.mark.parametrize("phase, expected", [
        (0.0, 0.0),
        (0.25, 0.5),
        (0.5, 1.0),
        (0.75, 0.5),
        (1.0, 0.0),
    ])
    def test_pingpong_folds(self, phase, expected):
        assert apply_direction(phase, ScanDirection.PINGPONG) == pytest.approx(expected)

    def test_pingpong_array(self):
        phases = np.array([0.25, 0.75])
        np.testing.assert_allclose(apply_direction(phases, ScanDirection.PINGPONG), [0.5, 0.5])


class TestScanDirection:

    @pytest.mark.parametrize("name, expected", [
        ("forward", ScanDirection.FORWARD),
        ("Backward", ScanDirection.BACKWARD),
        ("pingpong", ScanDirection.PINGPONG),
        ("ping-pong", ScanDirection.PINGPONG),
    ])
    def test_from_name(self, name, expected):
        assert ScanDirection.from_name(name) == expected

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            ScanDirection.from_name("sideways")
