"""
Core infrastructure for reprogistry: models, interfaces, settings,
exceptions and the dependency injection container.
"""

from .bootstrap import bootstrap, is_initialized, reset
from .container import ServiceContainer, get_container
from .settings import ReprogistrySettings, load_settings

__all__ = [
    "ReprogistrySettings",
    "ServiceContainer",
    "bootstrap",
    "get_container",
    "is_initialized",
    "load_settings",
    "reset",
]
