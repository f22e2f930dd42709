"""rendiff: image comparison for renderer test cases.

Compares images of the same scene rendered by different algorithms, drivers
or hardware, tolerating small "rounding errors" in color or in spatial
position (up to one pixel), while still catching real regressions.

Architecture layers (one-way dependency):
    cli, golden → interop → {diff, visualize} → {histogram, threshold, image} → utils/

Key invariants:
    - Images are 8-bit RGBA, row-major, (height, width, 4)
    - The one-pixel border is never compared; outputs shrink by 2 px per axis
    - Differently sized images are maximally different, never an error
    - Core functions are pure: no file paths, no global state

Usage:
    from rendiff import Threshold, diff
    from rendiff.interop import open_image

    difference = diff(open_image("actual.png"), open_image("expected.png"))
    assert Threshold.no_bigger_than(2).allows(difference.histogram), difference.histogram
"""

from rendiff.diff import Difference, diff, half_diff, pixel_diff
from rendiff.histogram import Histogram
from rendiff.image import RgbaImage
from rendiff.threshold import UNLIMITED, Threshold

__version__ = "0.2.0"

__all__ = [
    'Difference',
    'Histogram',
    'RgbaImage',
    'Threshold',
    'UNLIMITED',
    'diff',
    'half_diff',
    'pixel_diff',
]
