from .loader import load_registry
from .types import (
    Artifact,
    ConfigError,
    DuplicateTaskError,
    MissingTaskError,
    Phony,
    Task,
    TaskRegistry,
    UnknownTaskError,
    UnsupportedConfigFormatError,
)

__all__ = [
    "load_registry",
    "Artifact",
    "Phony",
    "Task",
    "TaskRegistry",
    "ConfigError",
    "UnsupportedConfigFormatError",
    "DuplicateTaskError",
    "UnknownTaskError",
    "MissingTaskError",
]
