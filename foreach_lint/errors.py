# foreach_lint/errors.py
"""
Error types for foreach-lint.

Hierarchy
─────────
  ForEachLintError (base)
  ├── UnsupportedSourceError  - unknown file suffix or dialect name
  └── SourceReadError         - file cannot be read or decoded

A loop whose header is not in canonical form is *not* an error: the
analyzer skips it silently.  These exceptions only cover the seams where
source text enters the tool.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class ForEachLintError(Exception):
    """Base class for every error raised by foreach-lint."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None) -> None:
        self.path = str(path) if path is not None else ""
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.path:
            return f"{self.path}: {msg}"
        return msg


class UnsupportedSourceError(ForEachLintError):
    """The file suffix or requested dialect has no grammar."""


class SourceReadError(ForEachLintError):
    """The source file could not be read or is not valid UTF-8."""


__all__ = [
    "ForEachLintError",
    "UnsupportedSourceError",
    "SourceReadError",
]
