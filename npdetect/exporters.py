"""Registry of pluggable exporters and the factories that create them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol


class Exporter(Protocol):
    """Anything that can receive problem statuses."""

    def export_problems(self, status: Any) -> None:
        ...


@dataclass(frozen=True)
class ExporterHandler:
    """How to build one kind of exporter.

    ``create_exporter`` is called with ``options`` and returns an exporter,
    or ``None`` when the exporter is not configured.  ``options`` may provide
    ``add_arguments(parser)`` and ``apply_arguments(namespace)`` so that the
    exporter can take part in command line parsing.
    """

    create_exporter: Callable[[Any], Any]
    options: Any = None


class ExporterNotFoundError(LookupError):
    """Raised when no handler is registered for an exporter type."""

    def __init__(self, exporter_type: str) -> None:
        super().__init__(f"Exporter handler for {exporter_type} does not exist")
        self.exporter_type = exporter_type


class ExporterRegistry:
    """A mapping of exporter type names to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, ExporterHandler] = {}

    def register(self, exporter_type: str, handler: ExporterHandler) -> None:
        """Register ``handler`` for ``exporter_type``, replacing any earlier one."""
        self._handlers[exporter_type] = handler

    def names(self) -> list[str]:
        """Return every registered exporter type."""
        return list(self._handlers)

    def handler(self, exporter_type: str) -> ExporterHandler:
        """Return the handler for ``exporter_type``."""
        try:
            return self._handlers[exporter_type]
        except KeyError:
            raise ExporterNotFoundError(exporter_type) from None

    def create_exporters(self) -> list[Any]:
        """Create every configured exporter, skipping those that decline."""
        created = (
            handler.create_exporter(handler.options)
            for handler in self._handlers.values()
        )
        return [exporter for exporter in created if exporter is not None]

    def __contains__(self, exporter_type: object) -> bool:
        return exporter_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


_default_registry = ExporterRegistry()


def register(exporter_type: str, handler: ExporterHandler) -> None:
    """Register an exporter handler in the default registry."""
    _default_registry.register(exporter_type, handler)


def exporter_names() -> list[str]:
    """Return the exporter types known to the default registry."""
    return _default_registry.names()


def get_exporter_handler(exporter_type: str) -> ExporterHandler:
    """Return a handler from the default registry."""
    return _default_registry.handler(exporter_type)


def new_exporters() -> list[Any]:
    """Create all exporters configured in the default registry."""
    return _default_registry.create_exporters()