"""Neighborhood-tolerant image comparison.

Principle of operation:
    For each pixel of image A (except the outermost ring), compare it with
    the 3×3 neighborhood around the same position in image B and keep the
    smallest difference. Repeat with A and B swapped, and take the larger of
    the two results at each position.

Any feature, such as the edge of a shape, may therefore move by up to one
pixel in any direction as long as its color is unchanged. Running both
directions ensures every color in each image also appears near the same
place in the other one, so a 1-pixel feature cannot silently vanish.

Not handled:
    - displacement of more than one pixel
    - antialiasing, which changes edge colors with sub-pixel position
    - noisy images (halftone, dithering)

Use a Threshold to decide how many remaining differences are acceptable.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from rendiff.histogram import NUM_BINS, Histogram
from rendiff.image import RgbaImage
from rendiff.utils.color import rgba_to_luma
from rendiff.visualize import visualize

logger = logging.getLogger(__name__)

# Neighborhood radius in pixels (3×3)
RADIUS = 1


@dataclass(frozen=True)
class Difference:
    """Result of diff().

    Attributes
    ----------
    histogram : Histogram
        Magnitudes of the detected differences
    diff_image : RgbaImage or None
        Image for human viewing of which pixels differ, or None if the
        images had different sizes. Its content is not a stable format; it
        is 1:1 scale and 2 px smaller than the inputs in each dimension.
    """
    histogram: Histogram
    diff_image: Optional[RgbaImage]


def pixel_diff(a, b) -> np.ndarray:
    """Difference magnitude between RGBA pixels.

    Parameters
    ----------
    a, b : array_like
        uint8 pixels of shape (..., 4); broadcast against each other

    Returns
    -------
    np.ndarray
        uint8 magnitudes, shape (...)

    Notes
    -----
    Channels are differenced independently, then the RGB difference is
    converted to luma. Alpha counts as much as luma: the result is the
    maximum of the two.
    """
    a = np.asarray(a, dtype=np.int16)
    b = np.asarray(b, dtype=np.int16)
    channel_diffs = np.abs(a - b)
    color_diff = rgba_to_luma(channel_diffs)
    alpha_diff = channel_diffs[..., 3].astype(np.uint8)
    return np.maximum(color_diff, alpha_diff)


def half_diff(have: RgbaImage, want: RgbaImage) -> np.ndarray:
    """Compare each interior pixel of have against a neighborhood of want.

    Parameters
    ----------
    have, want : RgbaImage
        Images of identical dimensions

    Returns
    -------
    np.ndarray
        uint8 magnitude map of shape (max(H-2, 0), max(W-2, 0)); each entry
        is the smallest pixel_diff between have's pixel and the 3×3
        neighborhood of want centered on it

    Notes
    -----
    This is one direction of the comparison: a 1-px line present in want
    but missing from have still finds a matching color nearby for every
    pixel of have. diff() runs both directions to catch that.
    """
    if have.dimensions != want.dimensions:
        raise ValueError(
            f"half_diff needs equal sizes, got {have.dimensions} and {want.dimensions}"
        )

    width, height = have.dimensions
    out_h = max(height - 2 * RADIUS, 0)
    out_w = max(width - 2 * RADIUS, 0)
    if out_h == 0 or out_w == 0:
        return np.zeros((out_h, out_w), dtype=np.uint8)

    have_interior = have.data[RADIUS:RADIUS + out_h, RADIUS:RADIUS + out_w]

    best = np.full((out_h, out_w), 255, dtype=np.uint8)
    size = 2 * RADIUS + 1
    # One pass per neighbor offset: want shifted by (dx, dy) against have's interior
    for dy in range(size):
        for dx in range(size):
            window = want.data[dy:dy + out_h, dx:dx + out_w]
            np.minimum(best, pixel_diff(have_interior, window), out=best)
    return best


def diff(actual: RgbaImage, expected: RgbaImage) -> Difference:
    """Compare two images, counting one pixel of displacement as no difference.

    Parameters
    ----------
    actual : RgbaImage
        Image produced by the code under test
    expected : RgbaImage
        Reference image; the diff image is drawn from it

    Returns
    -------
    Difference
        Histogram of magnitudes and a diff image

    Notes
    -----
    If the sizes differ the result is the maximum difference: every pixel
    of the larger image is counted at magnitude 255 and diff_image is None.

    Images smaller than 3 px in either dimension have no interior, so the
    histogram is empty and the diff image has zero area.
    """
    if actual.dimensions != expected.dimensions:
        logger.debug(
            f"Size mismatch: actual {actual.width}x{actual.height}, "
            f"expected {expected.width}x{expected.height}"
        )
        counts = [0] * NUM_BINS
        counts[NUM_BINS - 1] = max(len(actual), len(expected))
        return Difference(histogram=Histogram(counts), diff_image=None)

    hd1 = half_diff(expected, actual)
    hd2 = half_diff(actual, expected)

    # Both directions must be small for the result to be small
    combined = np.maximum(hd1, hd2)

    histogram = Histogram.from_magnitudes(combined)

    if combined.size == 0:
        logger.warning(
            f"Images of {actual.width}x{actual.height} have no interior pixels; "
            "nothing was compared"
        )
        empty = np.zeros(combined.shape + (4,), dtype=np.uint8)
        return Difference(histogram=histogram, diff_image=RgbaImage(empty))

    logger.debug(f"Compared {combined.size} pixels: {histogram}")

    return Difference(
        histogram=histogram,
        diff_image=visualize(expected, combined, histogram),
    )
