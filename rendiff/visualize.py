"""Human-viewable rendering of a diff.

The reference image is drawn dim in the red channel for spatial context,
and the difference magnitudes are stretched so the largest one observed is
full-intensity cyan. Only the output size and "bigger difference, brighter
pixel" are stable; the exact colors may change.
"""

import numpy as np

from rendiff.histogram import Histogram
from rendiff.image import RgbaImage
from rendiff.utils.color import rgba_to_luma


def visualize(
    reference: RgbaImage,
    raw_diff: np.ndarray,
    histogram: Histogram
) -> RgbaImage:
    """Render magnitudes over a dimmed copy of the reference image.

    Parameters
    ----------
    reference : RgbaImage
        Image the diff was computed against, 2 px larger than raw_diff in
        each dimension
    raw_diff : np.ndarray
        uint8 magnitude map, shape (H-2, W-2)
    histogram : Histogram
        Histogram of raw_diff, used for contrast scaling

    Returns
    -------
    RgbaImage
        Same size as raw_diff

    Raises
    ------
    ValueError
        If reference and raw_diff sizes don't line up
    """
    h, w = raw_diff.shape
    if (reference.height, reference.width) != (h + 2, w + 2):
        raise ValueError(
            f"Reference {reference.width}x{reference.height} doesn't match "
            f"diff map {w}x{h} plus 1 px border"
        )

    reference_luma = rgba_to_luma(reference.data[1:h + 1, 1:w + 1])

    max_difference = histogram.max_difference()
    if max_difference == 0:
        amplified = np.zeros((h, w), dtype=np.uint8)
    else:
        amplified = (raw_diff.astype(np.float64) / max_difference * 255.0).astype(np.uint8)

    out = np.empty((h, w, 4), dtype=np.uint8)
    out[..., 0] = reference_luma // 3
    out[..., 1] = amplified
    out[..., 2] = amplified
    out[..., 3] = 255
    return RgbaImage(out)
