"""Exception hierarchy shared by the generator stages."""

from __future__ import annotations

from typing import Optional


class GeneratorError(Exception):
    """Base class for fatal generator failures."""


class ConfigError(GeneratorError):
    """Raised when the run configuration is invalid."""


class RegisterInitError(GeneratorError):
    """Raised when the register catalog cannot be constructed."""


class ParseError(GeneratorError):
    """Raised for malformed instruction input.

    ``line_number`` is 1-based and ``None`` when the failure is not tied to a
    particular line (an unreadable or empty file).
    """

    def __init__(self, message: str, line_number: Optional[int] = None) -> None:
        self.message = message
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class OutputError(GeneratorError):
    """Raised when the processor module cannot be written."""
