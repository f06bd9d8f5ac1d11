"""Retirement financial projection engine."""

from .config import Assumptions, Settings, get_settings
from .engine import ProjectionEngine, create_engine
from .errors import ConfigurationError, OutOfDomainInputError, RetirementEngineError
from .models.money import Money

__all__ = [
    "Assumptions",
    "ConfigurationError",
    "Money",
    "OutOfDomainInputError",
    "ProjectionEngine",
    "RetirementEngineError",
    "Settings",
    "create_engine",
    "get_settings",
]
