"""
Exceptions raised by the retirement projection engine.

Undefined ratios, "no gap" and "on track" outcomes are never raised; they are
returned as result variants. Exceptions are reserved for invalid input and
broken configuration.
"""

from typing import Any, Optional


class RetirementEngineError(Exception):
    """Base exception for engine errors."""


class OutOfDomainInputError(RetirementEngineError, ValueError):
    """Raised when an input value is outside the domain an operation accepts."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class ConfigurationError(RetirementEngineError):
    """Raised when lookup tables or assumptions are missing or malformed."""
