"""Pass/fail policy for difference histograms.

A Threshold is a set of bands. Each band (level, allowance) means "there
may be up to <allowance> differences with magnitude in (previous level,
level]". Differences of magnitude 0 are always accepted, and any
difference above the highest level is always rejected.

Bands are checked independently in ascending order: unused allowance in a
higher band does not absorb overflow from a lower band. Callers rely on
this stricter accounting, so don't turn it into a cumulative model.

Usage:
    from rendiff import Threshold, diff
    from rendiff.threshold import UNLIMITED

    strict = Threshold.no_bigger_than(0)          # exact match
    tolerant = Threshold([(8, UNLIMITED), (64, 10)])  # noise ok, few big ones
    tolerant.allows(diff(actual, expected).histogram)
"""

import logging
import numbers
import sys
from typing import Iterable, Mapping, Tuple, Union

from rendiff.histogram import NUM_BINS, Histogram

logger = logging.getLogger(__name__)

# Allowance that never rejects
UNLIMITED = sys.maxsize


class Threshold:
    """Bound on the pixel differences observed in a Difference.

    Parameters
    ----------
    bands : Mapping[int, int] or Iterable[Tuple[int, int]]
        (magnitude, allowance) entries. Magnitudes in [1, 255], allowances
        non-negative (UNLIMITED for no limit). A repeated magnitude keeps
        its last allowance.

    Raises
    ------
    ValueError
        If a magnitude is 0 (it would have no effect) or out of range, or an
        allowance is negative
    """

    __slots__ = ('_bands',)

    def __init__(self, bands: Union[Mapping[int, int], Iterable[Tuple[int, int]]] = ()):
        if isinstance(bands, Mapping):
            bands = bands.items()

        table = {}
        for entry in bands:
            level, allowance = entry
            if isinstance(level, bool) or not isinstance(level, numbers.Integral):
                raise ValueError(f"Threshold magnitude must be an int, got {level!r}")
            if isinstance(allowance, bool) or not isinstance(allowance, numbers.Integral):
                raise ValueError(f"Threshold allowance must be an int, got {allowance!r}")
            level, allowance = int(level), int(allowance)
            if level == 0:
                raise ValueError(
                    f"putting 0 ({entry!r}) in Threshold is redundant: "
                    "differences of 0 are always accepted"
                )
            if not 0 < level < NUM_BINS:
                raise ValueError(f"Threshold magnitude must be in [1, 255], got {level}")
            if allowance < 0:
                raise ValueError(f"Threshold allowance must be non-negative, got {allowance}")
            table[level] = allowance

        self._bands = tuple(sorted(table.items()))

    @classmethod
    def no_bigger_than(cls, level: int) -> 'Threshold':
        """Allow any number of differences not exceeding level."""
        if not 0 <= level < NUM_BINS:
            raise ValueError(f"Threshold level must be in [0, 255], got {level}")
        if level == 0:
            return cls()
        return cls([(level, UNLIMITED)])

    @classmethod
    def coerce(cls, value) -> 'Threshold':
        """Build a Threshold from a level, a band collection, or a Threshold."""
        if isinstance(value, Threshold):
            return value
        if isinstance(value, numbers.Integral) and not isinstance(value, bool):
            return cls.no_bigger_than(int(value))
        return cls(value)

    @property
    def bands(self) -> Tuple[Tuple[int, int], ...]:
        """(level, allowance) pairs in ascending level order."""
        return self._bands

    def allows(self, histogram: Histogram) -> bool:
        """Return whether the histogram's differences are within this threshold."""
        # Bin 0 is never counted
        checked_up_to = 1
        for level, allowance in self._bands:
            # Inclusive of level itself
            new_checked_up_to = level + 1
            new_differences = histogram.count_in(checked_up_to, new_checked_up_to)
            if new_differences > allowance:
                logger.debug(
                    f"Rejected: {new_differences} differences in "
                    f"Δ{checked_up_to}..Δ{level}, allowed {allowance}"
                )
                return False
            checked_up_to = new_checked_up_to

        remaining = histogram.count_in(checked_up_to, NUM_BINS)
        if remaining > 0:
            logger.debug(f"Rejected: {remaining} differences above Δ{checked_up_to - 1}")
            return False

        return True

    def __eq__(self, other) -> bool:
        if not isinstance(other, Threshold):
            return NotImplemented
        return self._bands == other._bands

    def __hash__(self) -> int:
        return hash(self._bands)

    def __repr__(self) -> str:
        entries = ', '.join(
            f"{level}: {'unlimited' if allowance == UNLIMITED else allowance}"
            for level, allowance in self._bands
        )
        return f"Threshold({{{entries}}})"
