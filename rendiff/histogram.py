"""Histogram of pixel difference magnitudes.

A Histogram has 256 bins, one per magnitude. Bin 0 counts positions that
were considered equal. No meaning, units or linearity is attached to the
magnitudes beyond their order and that 0 is no difference.

Obtain one from diff() and check it against a Threshold.
"""

from typing import Dict, Iterable, Iterator, Mapping, Tuple

import numpy as np

NUM_BINS = 256


class Histogram:
    """Immutable table of 256 counts indexed by difference magnitude.

    Parameters
    ----------
    counts : Iterable[int], optional
        Exactly 256 non-negative counts; all zero if omitted

    Raises
    ------
    ValueError
        If there aren't 256 counts or any count is negative

    Examples
    --------
    >>> h = Histogram.from_counts({0: 1000, 10: 5, 50: 1})
    >>> h.max_difference()
    50
    >>> h
    Histogram(Δ10 ×5, Δ50 ×1)
    """

    __slots__ = ('_counts',)

    def __init__(self, counts: Iterable[int] = ()):
        counts = tuple(int(c) for c in counts)
        if not counts:
            counts = (0,) * NUM_BINS
        if len(counts) != NUM_BINS:
            raise ValueError(f"Histogram needs {NUM_BINS} counts, got {len(counts)}")
        if any(c < 0 for c in counts):
            raise ValueError("Histogram counts must be non-negative")
        self._counts = counts

    @classmethod
    def from_counts(cls, counts: Mapping[int, int]) -> 'Histogram':
        """Create histogram from a sparse {magnitude: count} mapping."""
        table = [0] * NUM_BINS
        for magnitude, count in counts.items():
            if not 0 <= magnitude < NUM_BINS:
                raise ValueError(f"Magnitude must be in [0, 255], got {magnitude}")
            table[magnitude] = count
        return cls(table)

    @classmethod
    def from_magnitudes(cls, magnitudes: np.ndarray) -> 'Histogram':
        """Count the occurrences of each value in a uint8 magnitude map."""
        flat = np.asarray(magnitudes, dtype=np.uint8).ravel()
        return cls(np.bincount(flat, minlength=NUM_BINS).tolist())

    @property
    def counts(self) -> Tuple[int, ...]:
        return self._counts

    def max_difference(self) -> int:
        """Return the highest magnitude with a nonzero count, or 0 if empty."""
        for magnitude in range(NUM_BINS - 1, -1, -1):
            if self._counts[magnitude]:
                return magnitude
        return 0

    def total(self) -> int:
        """Number of compared positions."""
        return sum(self._counts)

    def count_in(self, low: int, high: int) -> int:
        """Sum of counts for magnitudes in [low, high)."""
        return sum(self._counts[low:high])

    def nonzero(self, verbose: bool = False) -> Iterator[Tuple[int, int]]:
        """Yield (magnitude, count) for nonzero bins, skipping Δ0 unless verbose."""
        for magnitude, count in enumerate(self._counts):
            if count > 0 and (magnitude > 0 or verbose):
                yield magnitude, count

    def to_dict(self, verbose: bool = False) -> Dict[int, int]:
        return dict(self.nonzero(verbose))

    def format(self, verbose: bool = False) -> str:
        """Render as "Histogram(Δ10 ×5, Δ50 ×1)".

        The Δ0 bin dominates any real comparison and says nothing about
        whether it passes, so it is shown only when verbose is set.
        """
        entries = ', '.join(f"Δ{m} ×{c}" for m, c in self.nonzero(verbose))
        return f"Histogram({entries})"

    def __repr__(self) -> str:
        return self.format()

    def __getitem__(self, magnitude):
        return self._counts[magnitude]

    def __len__(self) -> int:
        return NUM_BINS

    def __iter__(self) -> Iterator[int]:
        return iter(self._counts)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Histogram):
            return NotImplemented
        return self._counts == other._counts

    def __hash__(self) -> int:
        return hash(self._counts)


Histogram.ZERO = Histogram()
