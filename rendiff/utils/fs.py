"""Atomic filesystem operations for diff images, reports and YAML configs.

Provides:
    - Atomic writes: tmp file → fsync → rename (prevents partial reads)
    - Image save via Pillow (format chosen by file extension)
    - YAML load/save
    - Directory creation with exist_ok semantics

CI jobs pick up diff images and reports as soon as they appear, so every
artifact is written atomically.

Usage:
    from rendiff.utils import fs
    fs.atomic_save_image(rgba_array, out_dir / "robot-diff.png")
    fs.atomic_yaml_dump(report, out_dir / "report.yaml")
"""

import io
import os
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np
import yaml
from PIL import Image


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(path: Union[str, Path], data: bytes) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write

    Raises
    ------
    RuntimeError
        If the write or rename fails (tmp file is removed)
    """
    path = Path(path)
    ensure_dir(path.parent)

    # Same directory so the rename stays on one filesystem
    tmp_path = path.with_suffix(path.suffix + ".tmp")

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_save_image(img: np.ndarray, path: Union[str, Path]) -> None:
    """Save image atomically (prevents partial reads).

    Parameters
    ----------
    img : np.ndarray
        uint8 image data of shape (H, W, 4), (H, W, 3) or (H, W)
    path : Union[str, Path]
        Target file path (extension determines format)

    Raises
    ------
    ValueError
        If the array is not uint8, has an unsupported shape or zero area,
        or the extension has no known format
    RuntimeError
        If encoding or writing fails
    """
    path = Path(path)

    if img.dtype != np.uint8:
        raise ValueError(f"Expected uint8 image array, got {img.dtype}")
    if not (img.ndim == 2 or (img.ndim == 3 and img.shape[2] in (3, 4))):
        raise ValueError(f"Unsupported image shape: {img.shape}")
    if 0 in img.shape[:2]:
        raise ValueError(f"Cannot save an image with zero area: {img.shape}")
    # (H, W, 4) → RGBA, (H, W, 3) → RGB, (H, W) → L
    pil_img = Image.fromarray(np.ascontiguousarray(img))

    # Format from the real suffix, not the tmp one
    fmt = Image.registered_extensions().get(path.suffix.lower())
    if fmt is None:
        raise ValueError(f"Unknown image format for extension '{path.suffix}': {path}")

    buf = io.BytesIO()
    try:
        pil_img.save(buf, format=fmt)
    except (OSError, ValueError, KeyError) as e:
        raise RuntimeError(f"Failed to encode image {path}: {e}") from e

    atomic_write_bytes(path, buf.getvalue())


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically.

    Parameters
    ----------
    obj : Any
        Python object (dict, list, primitives)
    path : Union[str, Path]
        Target YAML file path

    Notes
    -----
    Uses PyYAML safe_dump; key order is preserved.
    """
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_bytes(path, yaml_str.encode('utf-8'))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
