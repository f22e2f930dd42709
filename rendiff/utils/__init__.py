"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Luma of 8-bit pixels (color)
    - Atomic I/O and YAML (fs)
    - Hashing for report provenance (hashing)
    - Unified logging (logging_config)

Nothing here imports from the rest of rendiff. `fs` pulls in Pillow and
PyYAML, so it is imported explicitly by the modules that write files:
    from rendiff.utils import fs
    from rendiff.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import hashing
from . import logging_config

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'hashing',
    'logging_config',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
