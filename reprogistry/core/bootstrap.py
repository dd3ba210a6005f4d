"""
Application bootstrap for reprogistry.

Initializes the DI container with all services.
This module should be called once at application startup.
"""

from .container import ServiceContainer, get_container
from .interfaces.logger import ILogger
from .interfaces.presenter import IPresenter
from .interfaces.runner import ICommandRunner
from .interfaces.store import IHistoryStore
from .settings import ReprogistrySettings

_initialized = False


def bootstrap(settings: ReprogistrySettings) -> ServiceContainer:
    """
    Bootstrap the reprogistry application.

    Registers the logger, presenter, command runner and history store
    configured by `settings`.

    Returns:
        Initialized ServiceContainer
    """
    global _initialized

    container = get_container()

    if _initialized:
        return container

    _register_core_services(container, settings)

    _initialized = True
    return container


def _register_core_services(container: ServiceContainer, settings: ReprogistrySettings) -> None:
    """Register core application services."""
    from ..presenters.console import ConsolePresenter
    from ..services.cache.store import JsonFileHistoryStore
    from ..services.logging import ReprogistryLogger
    from ..services.process import SubprocessRunner

    container.register_singleton(IPresenter, implementation=ConsolePresenter())  # type: ignore[type-abstract]

    def create_logger() -> ILogger:
        return ReprogistryLogger(
            level=settings.logging.level,
            console_enabled=settings.logging.console,
            file_enabled=settings.logging.file,
        )

    container.register_singleton(ILogger, factory=create_logger)  # type: ignore[type-abstract]
    container.register_singleton(ICommandRunner, factory=SubprocessRunner)  # type: ignore[type-abstract]
    container.register_singleton(  # type: ignore[type-abstract]
        IHistoryStore,
        factory=lambda: JsonFileHistoryStore(settings.paths.results_dir),
    )


def reset() -> None:
    """
    Reset the application state.

    Useful for testing to ensure clean state between tests.
    """
    global _initialized
    ServiceContainer.reset()
    _initialized = False


def is_initialized() -> bool:
    """Check if the application has been bootstrapped."""
    return _initialized
