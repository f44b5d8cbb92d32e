# gap_pad/__init__.py

__version__ = "0.1.0"

from .buffer import (
    Buffer,
    Direction,
    InvariantViolation,
    TextObject,
)
from .config import deep_merge, load_config
from .editor import Editor
from .logs import setup_logging
from .controller import main

__all__ = [
    'Buffer',
    'Direction',
    'InvariantViolation',
    'TextObject',
    'Editor',
    'deep_merge',
    'load_config',
    'setup_logging',
    'main'
]
