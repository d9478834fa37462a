"""
Tests for the vectorized fragment program.

Run tests:
    pytest tests/test_shader.py -v
"""

import numpy as np
import pytest

from gridscan.animation.scan import ScanDirection
from gridscan.graphics.shader import frag_coords, fwidth, scan_envelope, shade
from gridscan.graphics.uniforms import GridScanConfig, build_uniforms

WIDTH, HEIGHT = 96, 54


def make_uniforms(**overrides):
    config = GridScanConfig().with_overrides(**overrides)
    return build_uniforms(config, (WIDTH, HEIGHT, 1.0))


def single_pulse(u, start: float, direction: ScanDirection = ScanDirection.FORWARD):
    u.scan_starts[0] = start
    u.scan_count = 1
    u.scan_direction = int(direction)
    return u


class TestCoordinates:

    def test_row_zero_is_top(self):
        coords = frag_coords(4, 2, (4.0, 2.0, 1.0))
        assert coords.y[0, 0] > coords.y[1, 0]
        assert coords.x[0, 0] < coords.x[0, 1]

    def test_resolution_space_is_independent_of_target(self):
        # A 2x target covers the same resolution span
        small = frag_coords(4, 2, (4.0, 2.0, 2.0))
        large = frag_coords(8, 4, (4.0, 2.0, 2.0))
        assert small.x.max() < 4.0
        assert large.x.max() < 4.0
        assert large.device_x.max() == pytest.approx(7.5)

    def test_fwidth_of_linear_ramp(self):
        ramp = np.tile(np.arange(5, dtype=np.float64), (3, 1))
        np.testing.assert_allclose(fwidth(ramp), 1.0)


class TestShade:

    def test_output_shape_and_range(self):
        out = shade(make_uniforms(), WIDTH, HEIGHT)
        assert out.rgb.shape == (HEIGHT, WIDTH, 3)
        assert out.alpha.shape == (HEIGHT, WIDTH)
        assert np.all(np.isfinite(out.rgb))
        assert np.all((out.rgb >= 0.0) & (out.rgb <= 1.0))
        assert np.all((out.alpha >= 0.0) & (out.alpha <= 1.0))

    def test_grid_is_visible(self):
        out = shade(make_uniforms(), WIDTH, HEIGHT)
        assert out.alpha.max() > 0.5

    def test_ray_without_hit_is_transparent(self):
        # A 1x1 target samples the exact center ray, parallel to every plane
        u = build_uniforms(GridScanConfig(), (1.0, 1.0, 1.0))
        out = shade(u, 1, 1)
        assert out.alpha[0, 0] == 0.0

    def test_out_of_range_inputs_are_clamped(self):
        u = make_uniforms(
            line_thickness=-1.0,
            line_jitter=5.0,
            scan_opacity=3.0,
            phase_taper=2.0,
            scan_duration=0.0,
            scan_delay=-4.0,
            scan_glow=0.0,
            grid_scale=0.0,
        )
        u.skew = (5.0, -5.0)
        single_pulse(u, 0.0)
        u.time = 0.01
        out = shade(u, WIDTH, HEIGHT)
        assert np.all(np.isfinite(out.rgb))
        assert np.all(np.isfinite(out.alpha))
        assert np.all((out.alpha >= 0.0) & (out.alpha <= 1.0))

    def test_dashed_lines_cover_less(self):
        kwargs = dict(bloom_intensity=0.0, scan_opacity=0.0, line_jitter=0.0)
        solid = shade(make_uniforms(line_style="solid", **kwargs), WIDTH, HEIGHT).alpha
        dashed = shade(make_uniforms(line_style="dashed", **kwargs), WIDTH, HEIGHT).alpha
        dotted = shade(make_uniforms(line_style="dotted", **kwargs), WIDTH, HEIGHT).alpha
        assert np.all(dashed <= solid + 1e-9)
        assert np.all(dotted <= solid + 1e-9)
        assert dashed.sum() < solid.sum()
        assert dotted.sum() < solid.sum()

    def test_active_pulse_adds_light(self):
        idle = make_uniforms(bloom_intensity=0.0)
        idle.scan_count = 0
        idle.time = 2.0

        active = single_pulse(make_uniforms(bloom_intensity=0.0), 0.0)
        active.time = 2.0

        idle_out = shade(idle, WIDTH, HEIGHT)
        active_out = shade(active, WIDTH, HEIGHT)
        assert active_out.alpha.sum() > idle_out.alpha.sum()

    def test_sentinel_slots_contribute_nothing(self):
        base = make_uniforms()
        base.scan_count = 0
        base.time = 2.0
        sentinel = make_uniforms()
        sentinel.time = 2.0  # all eight slots hold the sentinel

        np.testing.assert_allclose(
            shade(sentinel, WIDTH, HEIGHT).alpha,
            shade(base, WIDTH, HEIGHT).alpha,
            atol=1e-12,
        )


class TestScanEnvelope:
    """Pulse position and temporal window over its lifetime."""

    def test_pulse_starts_at_near_end_faded_in(self):
        u = single_pulse(make_uniforms(), 0.1)
        u.time = 0.1
        [(z, window)] = scan_envelope(u)
        assert z == pytest.approx(0.0)
        assert window == pytest.approx(0.0)

    def test_pulse_midway_is_full_strength(self):
        u = single_pulse(make_uniforms(), 0.1)
        u.time = 2.1
        [(z, window)] = scan_envelope(u)
        assert z == pytest.approx(1.0)
        assert window == pytest.approx(1.0)

    def test_pulse_ends_faded_out(self):
        u = single_pulse(make_uniforms(), 0.1)
        u.time = 4.1
        [(z, window)] = scan_envelope(u)
        assert z == pytest.approx(2.0, abs=1e-6)
        assert window == pytest.approx(0.0, abs=1e-6)

    def test_backward_pulse_travels_from_far_end(self):
        u = single_pulse(make_uniforms(), 5.1, ScanDirection.BACKWARD)
        u.time = 5.1 + 1.0
        [(z, _)] = scan_envelope(u)
        assert z == pytest.approx(1.5)

    def test_future_start_is_clamped(self):
        u = single_pulse(make_uniforms(), 10.0)
        u.time = 1.0
        [(z, window)] = scan_envelope(u)
        assert z == 0.0
        assert window == 0.0

    def test_delay_shifts_the_pulse(self):
        u = single_pulse(make_uniforms(scan_delay=1.0), 0.0)
        u.time = 1.0
        [(z, _)] = scan_envelope(u)
        assert z == pytest.approx(0.0)

    def test_count_limits_pulses(self):
        u = make_uniforms()
        u.scan_count = 3
        assert len(scan_envelope(u)) == 3
