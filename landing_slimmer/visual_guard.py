"""
Visual Guard
------------
Render the original and the slimmed document at several viewport sizes,
take full-page screenshots and count differing pixels per viewport. The run
is accepted only when every viewport stays within the pixel budget.

Playwright, Pillow and numpy are optional; when any of them is missing the
guard is skipped with a warning instead of failing the run.
"""

import os
from pathlib import Path

from landing_slimmer.config import DEFAULT_DIFF_THRESHOLD, DEFAULT_MAX_DIFF_PIXELS
from landing_slimmer.log import get_logger
from landing_slimmer.models import DiffResult, GuardReport, Outcome

log = get_logger("visual_guard")

INSTALL_HINT = "pip install 'landing-slimmer[visual]' && playwright install chromium"

# Largest possible YIQ delta between two pixels
MAX_YIQ_DELTA = 35215

# Scan order of the 3x3 neighbourhood, column by column
NEIGHBOUR_OFFSETS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]

ORIGINAL_TMP = ".orig__tmp.html"
SLIM_TMP = ".slim__tmp.html"


class RendererUnavailable(Exception):
    """The optional rendering or raster stack is not installed or cannot start."""


def load_raster_stack():
    try:
        import numpy as np
        from PIL import Image
    except ImportError as e:
        raise RendererUnavailable(f"Pillow/numpy not installed ({e})") from e
    return np, Image


class PlaywrightRenderer:
    """One Chromium session shared by every viewport of a guard run."""

    def __init__(self):
        self._playwright = None
        self._browser = None
        self._page = None

    async def __aenter__(self):
        try:
            from playwright.async_api import Error as PlaywrightError
            from playwright.async_api import async_playwright
        except ImportError as e:
            raise RendererUnavailable(f"playwright not installed ({e})") from e

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch()
        except PlaywrightError as e:
            await self._playwright.stop()
            raise RendererUnavailable(f"Chromium could not be launched: {e}") from e
        try:
            self._page = await self._browser.new_page()
        except BaseException:
            # __aexit__ is not called when __aenter__ fails
            await self._close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self._close()

    async def _close(self):
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()

    async def snapshot(self, html_path, viewport, png_path):
        """Full-page screenshot of a local file at the given viewport"""
        width, height = viewport
        await self._page.set_viewport_size({"width": width, "height": height})
        await self._page.goto(Path(html_path).resolve().as_uri(), wait_until="networkidle")
        await self._page.screenshot(path=str(png_path), full_page=True)
        return png_path


def _to_rgb(rgba):
    """Blend RGBA pixels onto white"""
    alpha = rgba[..., 3:4] / 255.0
    return 255.0 + (rgba[..., :3] - 255.0) * alpha


def _yiq(rgb):
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    y = r * 0.29889531 + g * 0.58662247 + b * 0.11448223
    i = r * 0.59597799 - g * 0.27417610 - b * 0.32180189
    q = r * 0.21147017 - g * 0.52261711 + b * 0.31114694
    return y, i, q


def _neighbours(np, shape, ys, xs):
    """Coordinates of the 8 neighbours of each pixel, clipped, plus an in-bounds mask"""
    height, width = shape
    dx = np.array([o[0] for o in NEIGHBOUR_OFFSETS])
    dy = np.array([o[1] for o in NEIGHBOUR_OFFSETS])
    nx = xs[:, None] + dx
    ny = ys[:, None] + dy
    valid = (nx >= 0) & (nx < width) & (ny >= 0) & (ny < height)
    return np.clip(ny, 0, height - 1), np.clip(nx, 0, width - 1), valid


def _on_edge(shape, ys, xs):
    height, width = shape
    return (xs == 0) | (xs == width - 1) | (ys == 0) | (ys == height - 1)


def _has_many_siblings(np, rgba, ys, xs):
    """More than two identical neighbours (a border counts as one)"""
    ny, nx, valid = _neighbours(np, rgba.shape[:2], ys, xs)
    same = np.all(rgba[ny, nx] == rgba[ys, xs][:, None, :], axis=2) & valid
    return _on_edge(rgba.shape[:2], ys, xs).astype(int) + same.sum(axis=1) > 2


def _antialiased(np, luma, rgba, other_rgba, ys, xs):
    """Which of the given pixels look like anti-aliasing in rgba.

    Same test as pixelmatch: at most two neighbours of equal brightness,
    both a darker and a brighter neighbour, and the darkest or the brightest
    of them sits in a flat area in both images.
    """
    shape = luma.shape
    rows = np.arange(len(ys))
    ny, nx, valid = _neighbours(np, shape, ys, xs)
    delta = luma[ys, xs][:, None] - luma[ny, nx]

    zeroes = _on_edge(shape, ys, xs).astype(int) + ((delta == 0) & valid).sum(axis=1)
    darker = np.where(valid & (delta < 0), delta, 0.0)
    brighter = np.where(valid & (delta > 0), delta, 0.0)
    min_idx = darker.argmin(axis=1)
    max_idx = brighter.argmax(axis=1)
    min_y, min_x = ny[rows, min_idx], nx[rows, min_idx]
    max_y, max_x = ny[rows, max_idx], nx[rows, max_idx]

    flat_min = _has_many_siblings(np, rgba, min_y, min_x) & _has_many_siblings(np, other_rgba, min_y, min_x)
    flat_max = _has_many_siblings(np, rgba, max_y, max_x) & _has_many_siblings(np, other_rgba, max_y, max_x)
    return (zeroes <= 2) & (darker.min(axis=1) < 0) & (brighter.max(axis=1) > 0) & (flat_min | flat_max)


def count_diff_pixels(before_path, after_path, threshold=DEFAULT_DIFF_THRESHOLD, diff_path=None,
                      include_aa=False):
    """Count pixels whose perceptual colour delta exceeds the threshold.

    Anti-aliased pixels (text and shape edges shifted by sub-pixel rendering)
    are not counted unless include_aa is set. Pixels present in only one of
    the screenshots (different page heights or widths) all count as
    different. When diff_path is given, a diff image is written there:
    changed pixels in red, anti-aliased ones in yellow, over a faded copy of
    the original.
    """
    np, Image = load_raster_stack()

    with Image.open(before_path) as img:
        before = np.asarray(img.convert("RGBA"), dtype=np.float64)
    with Image.open(after_path) as img:
        after = np.asarray(img.convert("RGBA"), dtype=np.float64)

    height = min(before.shape[0], after.shape[0])
    width = min(before.shape[1], after.shape[1])
    overlap = width * height
    extra = (before.shape[0] * before.shape[1] - overlap) + (after.shape[0] * after.shape[1] - overlap)

    before = before[:height, :width]
    after = after[:height, :width]
    y1, i1, q1 = _yiq(_to_rgb(before))
    y2, i2, q2 = _yiq(_to_rgb(after))
    delta = 0.5053 * (y1 - y2) ** 2 + 0.299 * (i1 - i2) ** 2 + 0.1957 * (q1 - q2) ** 2
    changed = delta > MAX_YIQ_DELTA * threshold * threshold

    aa = np.zeros_like(changed)
    if not include_aa and changed.any():
        ys, xs = np.nonzero(changed)
        smoothed = _antialiased(np, y1, before, after, ys, xs) | _antialiased(np, y2, after, before, ys, xs)
        aa[ys[smoothed], xs[smoothed]] = True
        changed &= ~aa

    if diff_path:
        gray = 255.0 + (y1 - 255.0) * 0.1
        diff = np.repeat(gray[..., None], 3, axis=2)
        diff[aa] = (255, 255, 0)
        diff[changed] = (255, 0, 0)
        Image.fromarray(diff.clip(0, 255).astype(np.uint8), "RGB").save(diff_path)

    return int(np.count_nonzero(changed)) + extra


async def run_visual_guard(original_html, slim_html, viewports,
                           budget=DEFAULT_MAX_DIFF_PIXELS,
                           threshold=DEFAULT_DIFF_THRESHOLD,
                           workdir=".", renderer=None):
    """Compare both documents at every viewport and return a GuardReport"""
    try:
        load_raster_stack()
    except RendererUnavailable as e:
        return _skipped(budget, e)

    renderer = renderer or PlaywrightRenderer()
    original_path = os.path.join(workdir, ORIGINAL_TMP)
    slim_path = os.path.join(workdir, SLIM_TMP)
    with open(original_path, 'w', encoding='utf-8') as f:
        f.write(original_html)
    with open(slim_path, 'w', encoding='utf-8') as f:
        f.write(slim_html)

    results = []
    try:
        async with renderer:
            # Every viewport is rendered before deciding
            for viewport in viewports:
                label = f"{viewport[0]}x{viewport[1]}"
                before = await renderer.snapshot(original_path, viewport, _png_path(original_path, label))
                after = await renderer.snapshot(slim_path, viewport, _png_path(slim_path, label))
                diff_path = os.path.join(workdir, f"diff.{label}.png")
                diff_pixels = count_diff_pixels(before, after, threshold, diff_path)
                results.append(DiffResult(viewport, diff_pixels, diff_path))
                log.info("Viewport %s pixel diff: %d", label, diff_pixels)
    except RendererUnavailable as e:
        return _skipped(budget, e)

    report = GuardReport(Outcome.OK, budget, results)
    if report.worst > budget:
        report.outcome = Outcome.FAILED
        over = ", ".join(f"{r.label}: {r.diff_pixels}" for r in results if r.diff_pixels > budget)
        report.message = f"Pixel diff above budget of {budget} ({over})"
    return report


def _png_path(html_path, label):
    return f"{os.path.splitext(html_path)[0]}.{label}.png"


def _skipped(budget, error):
    message = f"Visual guard requested but unavailable: {error}. Install with: {INSTALL_HINT}, or use --no-visual."
    log.warning(message)
    return GuardReport(Outcome.SKIPPED, budget, message=message)
