"""RGBA image buffer consumed by the diff algorithm.

The core only needs width, height and a row-major sequence of 8-bit RGBA
pixels. RgbaImage wraps a read-only numpy array of shape (height, width, 4)
and checks the exact-size contract on construction. Decoding files is the
job of rendiff.interop.

Usage:
    from rendiff.image import RgbaImage

    img = RgbaImage.from_raw(2, 1, [0, 0, 0, 255, 255, 255, 255, 255])
    img = RgbaImage.from_fn(4, 4, lambda x, y: (x * 60, y * 60, 0, 255))
    img.pixel(1, 0)  # → (255, 255, 255, 255)
"""

from typing import Callable, Sequence, Tuple

import numpy as np

Pixel = Tuple[int, int, int, int]


class RgbaImage:
    """Immutable 8-bit RGBA image.

    Parameters
    ----------
    data : array_like
        Pixel values of shape (height, width, 4), each in [0, 255]

    Raises
    ------
    ValueError
        If the array is not (H, W, 4) or holds values outside [0, 255]
    """

    __slots__ = ('_data',)

    def __init__(self, data):
        arr = np.asarray(data)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Expected pixel array of shape (H, W, 4), got {arr.shape}")
        if arr.dtype != np.uint8:
            if arr.size and (arr.min() < 0 or arr.max() > 255):
                raise ValueError(
                    f"Pixel values must be in [0, 255], got range [{arr.min()}, {arr.max()}]"
                )
            arr = arr.astype(np.uint8)
        else:
            arr = arr.copy()
        arr.setflags(write=False)
        self._data = arr

    @classmethod
    def from_raw(cls, width: int, height: int, buffer) -> 'RgbaImage':
        """Create image from a flat row-major buffer.

        Parameters
        ----------
        width, height : int
            Image dimensions in pixels
        buffer : array_like
            Either width*height*4 channel values or width*height pixels of
            4 channels each

        Raises
        ------
        ValueError
            If the buffer size doesn't match the dimensions
        """
        if width < 0 or height < 0:
            raise ValueError(f"Dimensions must be non-negative, got {width}x{height}")
        arr = np.asarray(buffer)
        expected = width * height * 4
        if arr.size != expected:
            raise ValueError(
                f"Buffer of {arr.size} values doesn't match {width}x{height} RGBA "
                f"(expected {expected})"
            )
        return cls(arr.reshape(height, width, 4))

    @classmethod
    def from_fn(
        cls,
        width: int,
        height: int,
        fn: Callable[[int, int], Sequence[int]]
    ) -> 'RgbaImage':
        """Create image by calling fn(x, y) → (r, g, b, a) for each pixel."""
        arr = np.zeros((height, width, 4), dtype=np.uint8)
        for y in range(height):
            for x in range(width):
                arr[y, x] = fn(x, y)
        return cls(arr)

    @classmethod
    def filled(cls, width: int, height: int, pixel: Sequence[int]) -> 'RgbaImage':
        """Create image with every pixel set to the same value."""
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[...] = pixel
        return cls(arr)

    @property
    def data(self) -> np.ndarray:
        """Read-only (height, width, 4) uint8 array."""
        return self._data

    @property
    def width(self) -> int:
        return self._data.shape[1]

    @property
    def height(self) -> int:
        return self._data.shape[0]

    @property
    def dimensions(self) -> Tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    @property
    def pixels(self) -> np.ndarray:
        """Flat row-major (width*height, 4) view of the pixels."""
        return self._data.reshape(-1, 4)

    def __len__(self) -> int:
        """Number of pixels."""
        return self.width * self.height

    def pixel(self, x: int, y: int) -> Pixel:
        r, g, b, a = self._data[y, x]
        return (int(r), int(g), int(b), int(a))

    def with_pixel(self, x: int, y: int, value: Sequence[int]) -> 'RgbaImage':
        """Return a copy with one pixel replaced."""
        arr = self._data.copy()
        arr[y, x] = value
        return RgbaImage(arr)

    def __eq__(self, other) -> bool:
        if not isinstance(other, RgbaImage):
            return NotImplemented
        return (
            self._data.shape == other._data.shape
            and bool(np.array_equal(self._data, other._data))
        )

    def __hash__(self) -> int:
        return hash((self._data.shape, self._data.tobytes()))

    def __repr__(self) -> str:
        return f"RgbaImage({self.width}x{self.height})"
