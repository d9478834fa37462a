"""Grid scan fragment program, evaluated for a whole frame with numpy.

The program is a pure function of (pixel position, resolution, time,
uniforms) -> (linear rgb, alpha). Rays leave the origin through each pixel,
hit the nearest of four planes forming an open box (floor/ceiling at
y = +-0.2, walls at x = +-0.5) and paint antialiased grid lines on it, plus
Gaussian scan bands travelling along depth.

Arrays are (height, width) with row 0 at the top of the image; the program
itself works in y-up coordinates like a GPU fragment shader.
"""

from typing import NamedTuple

import numpy as np
from numpy.typing import NDArray

from gridscan.animation.easing import fract, smoothstep, smoother01
from gridscan.animation.scan import apply_direction, scan_phase
from gridscan.graphics.uniforms import LineStyle, UniformSet

FloatArray = NDArray[np.float64]

NO_HIT = 1e20
FADE_STRENGTH = 2.0
SCAN_Z_MAX = 2.0
SKEW_LIMIT = 0.7

DASH_REPEAT = 4.0
DASH_DUTY = 0.5
DOT_REPEAT = 6.0
DOT_WIDTH = 0.18

# (axis, position) for each plane: axis 1 is y (floor/ceiling), 0 is x (walls)
PLANES = ((1, -0.2), (1, 0.2), (0, -0.5), (0, 0.5))


class FragmentOutput(NamedTuple):
    """Result of shading one frame."""

    rgb: FloatArray
    alpha: FloatArray


class FragCoords(NamedTuple):
    """Pixel positions for one render target.

    ``x``/``y`` are in resolution space (CSS pixels, y up); ``device_x`` and
    ``device_y`` are target pixel centers, the equivalent of gl_FragCoord.
    """

    x: FloatArray
    y: FloatArray
    device_x: FloatArray
    device_y: FloatArray


def frag_coords(width: int, height: int, resolution: tuple[float, float, float]) -> FragCoords:
    """Build coordinate grids for a ``width`` x ``height`` target."""
    cols = np.arange(width, dtype=np.float64) + 0.5
    rows = height - (np.arange(height, dtype=np.float64) + 0.5)
    device_x, device_y = np.meshgrid(cols, rows)
    u = device_x / width
    v = device_y / height
    return FragCoords(u * resolution[0], v * resolution[1], device_x, device_y)


def fwidth(a: FloatArray) -> FloatArray:
    """Screen-space derivative estimate: |d/dx| + |d/dy| by forward differences."""
    dx = np.empty_like(a)
    dy = np.empty_like(a)
    if a.shape[1] > 1:
        dx[:, :-1] = a[:, 1:] - a[:, :-1]
        dx[:, -1] = dx[:, -2]
    else:
        dx.fill(0.0)
    if a.shape[0] > 1:
        dy[:-1, :] = a[1:, :] - a[:-1, :]
        dy[-1, :] = dy[-2, :]
    else:
        dy.fill(0.0)
    return np.abs(dx) + np.abs(dy)


class LineField(NamedTuple):
    """Line mask plus the distances and widths it was built from."""

    mask: FloatArray
    ax: FloatArray
    ay: FloatArray
    tx: FloatArray
    ty: FloatArray
    wx: FloatArray
    wy: FloatArray


def _line_mask(
    grid_u: FloatArray,
    grid_v: FloatArray,
    half_px: float,
    style: int,
) -> LineField:
    """Antialiased grid lines on a UV field, with dash/dot masking."""
    fx = fract(grid_u)
    fy = fract(grid_v)
    ax = np.minimum(fx, 1.0 - fx)
    ay = np.minimum(fy, 1.0 - fy)
    wx = fwidth(grid_u)
    wy = fwidth(grid_v)

    tx = half_px * wx
    ty = half_px * wy

    line_x = 1.0 - smoothstep(tx, tx + wx, ax)
    line_y = 1.0 - smoothstep(ty, ty + wy, ay)

    if style == LineStyle.DASHED:
        dash_y = (fract(grid_v * DASH_REPEAT) <= DASH_DUTY).astype(np.float64)
        dash_x = (fract(grid_u * DASH_REPEAT) <= DASH_DUTY).astype(np.float64)
        line_x = line_x * dash_y
        line_y = line_y * dash_x
    elif style == LineStyle.DOTTED:
        cy = np.abs(fract(grid_v * DOT_REPEAT) - 0.5)
        cx = np.abs(fract(grid_u * DOT_REPEAT) - 0.5)
        dot_y = 1.0 - smoothstep(DOT_WIDTH, DOT_WIDTH + fwidth(grid_v * DOT_REPEAT), cy)
        dot_x = 1.0 - smoothstep(DOT_WIDTH, DOT_WIDTH + fwidth(grid_u * DOT_REPEAT), cx)
        line_x = line_x * dot_y
        line_y = line_y * dot_x

    return LineField(np.maximum(line_x, line_y), ax, ay, tx, ty, wx, wy)


def _hash_noise(device_x: FloatArray, device_y: FloatArray, time: float) -> FloatArray:
    """Classic sin-dot hash, 0..1 per pixel and frame."""
    offset = time * 123.4
    dot = (device_x + offset) * 12.9898 + (device_y + offset) * 78.233
    return fract(np.sin(dot) * 43758.5453123)


def scan_envelope(u: UniformSet) -> list[tuple[float, float]]:
    """Per active pulse: (band depth position, temporal window weight).

    The window fades each pulse in and out with a quintic head/tail taper;
    the taper is clamped below 0.5 so head and tail never overlap.
    """
    duration = max(0.05, u.scan_duration)
    delay = max(0.0, u.scan_delay)
    taper = float(np.clip(u.phase_taper, 0.0, 0.49))

    pulses = []
    count = int(min(u.scan_count, len(u.scan_starts)))
    for i in range(max(0, count)):
        t_active = u.time - float(u.scan_starts[i]) - delay
        phase = apply_direction(scan_phase(t_active, duration), u.scan_direction)
        head = smoother01(0.0, taper, phase)
        tail = 1.0 - smoother01(1.0 - taper, 1.0, phase)
        pulses.append((float(phase) * SCAN_Z_MAX, float(head * tail)))
    return pulses


def shade(u: UniformSet, width: int, height: int) -> FragmentOutput:
    """Run the fragment program over a ``width`` x ``height`` target."""
    coords = frag_coords(width, height, u.resolution)
    res_x, res_y = u.resolution[0], max(u.resolution[1], 1e-6)

    px = (2.0 * coords.x - res_x) / res_y
    py = (2.0 * coords.y - res_y) / res_y
    norm = np.sqrt(px * px + py * py + 4.0)
    rx, ry, rz = px / norm, py / norm, 2.0 / norm

    c_r, s_r = np.cos(u.tilt), np.sin(u.tilt)
    rx, ry = c_r * rx + s_r * ry, -s_r * rx + c_r * ry

    c_y, s_y = np.cos(u.yaw), np.sin(u.yaw)
    rx, rz = c_y * rx + s_y * rz, -s_y * rx + c_y * rz

    skew_x, skew_y = np.clip(u.skew, -SKEW_LIMIT, SKEW_LIMIT)
    rx = rx + skew_x * rz
    ry = ry + skew_y * rz

    grid_scale = max(1e-5, u.grid_scale)

    # Nearest positive intersection over the four planes
    min_t = np.full(rx.shape, NO_HIT)
    hit_is_y = np.ones(rx.shape)
    grid_u = np.zeros(rx.shape)
    grid_v = np.zeros(rx.shape)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for axis, pos in PLANES:
            den = ry if axis == 1 else rx
            t = pos / den
            hx, hy, hz = rx * t, ry * t, rz * t
            boost = smoothstep(0.0, 3.0, hz) * 0.15
            hx = hx + skew_x * boost
            hy = hy + skew_y * boost
            use = np.isfinite(t) & (t > 0.0) & (t < min_t)
            if axis == 1:
                cand_u, cand_v = hx, hz
            else:
                cand_u, cand_v = hz, hy
            grid_u = np.where(use, cand_u / grid_scale, grid_u)
            grid_v = np.where(use, cand_v / grid_scale, grid_v)
            min_t = np.where(use, t, min_t)
            hit_is_y = np.where(use, float(axis == 1), hit_is_y)

    hit_valid = min_t < NO_HIT
    t_hit = np.where(hit_valid, min_t, 0.0)
    hit_x, hit_y, hit_z = rx * t_hit, ry * t_hit, rz * t_hit
    dist = np.where(hit_valid, np.sqrt(hit_x ** 2 + hit_y ** 2 + hit_z ** 2), NO_HIT)

    jitter = float(np.clip(u.line_jitter, 0.0, 1.0))
    if jitter > 0.0:
        j_u = np.sin(grid_v * 2.7 + u.time * 1.8) * 0.15 * jitter
        j_v = np.cos(grid_u * 2.3 - u.time * 1.6) * 0.15 * jitter
        grid_u, grid_v = grid_u + j_u, grid_v + j_v

    half_px = max(0.0, u.line_thickness) * 0.5
    style = int(u.line_style)
    primary = _line_mask(grid_u, grid_v, half_px, style)

    # Unskewed copy of the grid with its own jitter, kept only near box edges
    is_y = hit_is_y > 0.5
    grid2_u = np.where(is_y, hit_x, hit_z) / grid_scale
    grid2_v = np.where(is_y, hit_z, hit_y) / grid_scale
    if jitter > 0.0:
        j2_u = np.cos(grid2_v * 2.1 - u.time * 1.4) * 0.15 * jitter
        j2_v = np.sin(grid2_u * 2.5 + u.time * 1.7) * 0.15 * jitter
        grid2_u, grid2_v = grid2_u + j2_u, grid2_v + j2_v
    alt = _line_mask(grid2_u, grid2_v, half_px, style).mask

    edge_x = np.minimum(np.abs(hit_x + 0.5), np.abs(hit_x - 0.5))
    edge_y = np.minimum(np.abs(hit_y + 0.2), np.abs(hit_y - 0.2))
    edge_dist = np.where(is_y, edge_x, edge_y)
    alt = alt * (1.0 - smoothstep(grid_scale * 0.5, grid_scale * 2.0, edge_dist))

    line_mask = np.maximum(primary.mask, alt) * hit_valid
    fade = np.exp(-dist * FADE_STRENGTH)

    # Scan bands along depth
    widen = max(0.1, u.scan_glow)
    sigma = max(0.001, 0.18 * widen * u.scan_softness)
    sigma_aura = sigma * 2.0
    opacity = float(np.clip(u.scan_opacity, 0.0, 1.0))

    pulse = np.zeros(rx.shape)
    aura = np.zeros(rx.shape)
    for scan_z, window in scan_envelope(u):
        if window <= 0.0:
            continue
        dz2 = (hit_z - scan_z) ** 2
        pulse += np.exp(-0.5 * dz2 / (sigma * sigma)) * window * opacity
        aura += np.exp(-0.5 * dz2 / (sigma_aura * sigma_aura)) * 0.25 * window * opacity
    pulse *= hit_valid
    aura *= hit_valid

    lines_color = np.asarray(u.lines_color, dtype=np.float64)
    scan_color = np.asarray(u.scan_color, dtype=np.float64)
    rgb = (
        lines_color * (line_mask * fade)[..., None]
        + scan_color * pulse[..., None]
        + scan_color * aura[..., None]
    )

    noise = _hash_noise(coords.device_x, coords.device_y, u.time)
    rgb = rgb + ((noise - 0.5) * u.noise)[..., None]
    rgb = np.clip(rgb, 0.0, 1.0)

    alpha = np.clip(np.maximum(line_mask, pulse), 0.0, 1.0)
    gx = 1.0 - smoothstep(primary.tx * 2.0, (primary.tx + primary.wx) * 2.0, primary.ax)
    gy = 1.0 - smoothstep(primary.ty * 2.0, (primary.ty + primary.wy) * 2.0, primary.ay)
    halo = np.maximum(gx, gy) * fade * hit_valid
    alpha = np.maximum(alpha, halo * float(np.clip(u.bloom_opacity, 0.0, 1.0)))

    return FragmentOutput(rgb=rgb, alpha=alpha)
