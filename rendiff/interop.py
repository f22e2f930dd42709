"""Conversion between Pillow images and RgbaImage.

Provides:
    - from_pil(): Pillow image → RgbaImage (any mode, converted to RGBA)
    - to_pil(): RgbaImage → Pillow RGBA image with identical bytes
    - open_image(): decode a file into an RgbaImage
    - save_image(): encode an RgbaImage atomically (format from extension)

Modes that convert to RGBA without losing information (1, L, LA, P, PA,
RGB, RGBA) are converted silently. Anything else (16-bit, float, CMYK,
YCbCr, ...) is converted with a warning, since the comparison then sees
8-bit RGBA values rather than the original samples.

High-bit-depth grayscale (I;16*, I, F) is scaled down to 8 bits, not
clipped: 16-bit 0..65535 maps onto 0..255 and float 0.0..1.0 onto 0..255.
Pillow's own convert() would clip every sample above 255 to white.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from rendiff.image import RgbaImage
from rendiff.utils import fs

logger = logging.getLogger(__name__)

LOSSLESS_MODES = frozenset({'1', 'L', 'LA', 'P', 'PA', 'RGB', 'RGBA'})
# Single-channel modes whose samples are wider than 8 bits
HIGH_BIT_DEPTH_MODES = frozenset({'I;16', 'I;16L', 'I;16B', 'I;16N', 'I', 'F'})


def _scale_to_8bit(img: Image.Image) -> np.ndarray:
    """Scale a high-bit-depth grayscale image to uint8 samples of shape (H, W).

    Notes
    -----
    'I' is treated as 16-bit, which is what Pillow decodes 16-bit PNG and
    TIFF files to; values outside 0..65535 are clipped.
    """
    samples = np.asarray(img)
    if img.mode == 'F':
        scaled = np.rint(np.clip(samples, 0.0, 1.0) * 255.0)
    else:
        wide = np.clip(samples.astype(np.int64), 0, 65535)
        scaled = (wide * 255 + 32767) // 65535
    return scaled.astype(np.uint8)


def from_pil(img: Image.Image, description: str = "image") -> RgbaImage:
    """Convert a Pillow image to RgbaImage.

    Parameters
    ----------
    img : PIL.Image.Image
        Image in any mode
    description : str
        Name used in the lossy-conversion warning

    Returns
    -------
    RgbaImage
    """
    if img.mode == 'RGBA':
        return RgbaImage(np.asarray(img, dtype=np.uint8))

    if img.mode not in LOSSLESS_MODES:
        logger.warning(f"Converting {description} from mode {img.mode} to RGBA8, which is lossy")

    if img.mode in HIGH_BIT_DEPTH_MODES:
        gray = _scale_to_8bit(img)
        rgba = np.empty(gray.shape + (4,), dtype=np.uint8)
        rgba[..., :3] = gray[..., np.newaxis]
        rgba[..., 3] = 255
        return RgbaImage(rgba)

    return RgbaImage(np.asarray(img.convert('RGBA'), dtype=np.uint8))


def to_pil(image: RgbaImage) -> Image.Image:
    """Convert RgbaImage to a Pillow RGBA image with identical pixel bytes."""
    return Image.frombytes('RGBA', (image.width, image.height), image.data.tobytes())


def open_image(path: Union[str, Path], description: str = "image") -> RgbaImage:
    """Decode an image file into an RgbaImage.

    Parameters
    ----------
    path : Union[str, Path]
        Image file (any format Pillow can read)
    description : str
        Role of the file ("actual image", "expected image"), used in messages

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist
    ValueError
        If the file can't be decoded
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Failed to open {description} '{path}': file not found")

    try:
        with Image.open(path) as img:
            img.load()
            logger.debug(f"Loaded {description} {path}: {img.size[0]}x{img.size[1]} {img.mode}")
            return from_pil(img, description=f"{description} '{path}'")
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Failed to open {description} '{path}': {e}") from e


def save_image(image: RgbaImage, path: Union[str, Path]) -> None:
    """Encode an RgbaImage atomically; format is chosen by file extension."""
    fs.atomic_save_image(image.data, path)
    logger.debug(f"Saved {image.width}x{image.height} image to {path}")
