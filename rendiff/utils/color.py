"""Luma calculation for 8-bit RGBA pixels.

Provides:
    - rgba_to_luma(): legacy integer luma of 8-bit RGB values

Used by:
    - diff: converting per-channel differences to a single magnitude
    - visualize: dimmed reference image underneath the highlighted differences

This is the only place the luma weighting lives. A linear-light variant
(decode sRGB, weight, re-encode) should be added beside it, not patched in.
"""

import numpy as np

# Rec. 709 weights scaled by 10000
LUMA_WEIGHTS = (2126, 7152, 722)
LUMA_SCALE = 10000


def rgba_to_luma(pixels) -> np.ndarray:
    """Convert 8-bit RGBA values to 8-bit luma.

    Parameters
    ----------
    pixels : array_like
        uint8 values of shape (..., 4) or (..., 3); alpha is ignored

    Returns
    -------
    np.ndarray
        uint8 luma, shape (...)

    Notes
    -----
    Weighted sum on the encoded values: Y' = (2126*R + 7152*G + 722*B) // 10000.
    sRGB values are non-linear, so this yields luma rather than luminance and
    under-counts brightness differences. Kept for compatibility with existing
    thresholds.
    """
    px = np.asarray(pixels, dtype=np.uint32)
    wr, wg, wb = LUMA_WEIGHTS
    luma = (wr * px[..., 0] + wg * px[..., 1] + wb * px[..., 2]) // LUMA_SCALE
    return luma.astype(np.uint8)
