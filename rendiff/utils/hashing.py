"""SHA-256 hashing for golden-suite provenance.

Provides:
    - sha256_file(): Hash file contents (encoded images, configs)
    - sha256_image(): Hash decoded pixel buffers

The report records both: a re-encoded PNG changes its file hash but keeps
its pixel hash, which tells "same picture" apart from "same file".

Usage:
    from rendiff.utils import hashing
    digest = hashing.sha256_file("golden/robot-exp.png")
"""

import hashlib
from pathlib import Path
from typing import Union


def sha256_file(path: Union[str, Path], chunk_size: int = 1 << 20) -> str:
    """Compute SHA-256 hash of file contents.

    Parameters
    ----------
    path : Union[str, Path]
        File path
    chunk_size : int
        Read chunk size in bytes, default 1 MB

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sha256 = hashlib.sha256()

    with open(path, 'rb') as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            sha256.update(chunk)

    return sha256.hexdigest()


def sha256_image(image) -> str:
    """Compute SHA-256 hash of an RgbaImage's dimensions and pixels.

    Parameters
    ----------
    image : RgbaImage
        Decoded image

    Returns
    -------
    str
        SHA-256 hex digest (64 characters)

    Notes
    -----
    Dimensions are hashed first so that a 2x8 and a 4x4 image with the same
    bytes hash differently.
    """
    sha256 = hashlib.sha256()
    sha256.update(f"{image.width}x{image.height}:".encode('ascii'))
    sha256.update(image.data.tobytes())
    return sha256.hexdigest()
