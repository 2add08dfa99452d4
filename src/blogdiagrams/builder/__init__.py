"""Backend registry exposing the builders used to render diagrams."""

from __future__ import annotations

from typing import TYPE_CHECKING

from blogdiagrams.core.exceptions import UnknownBackendError

from .base import (
    BuildOutcome,
    BuildRequest,
    Built,
    CachedBuilder,
    DiagramBuilder,
    InterpretFailure,
    ParseFailure,
    Skipped,
)
from .ghc import CAIRO, RASTERIFIC, GhcDiagramsBuilder, HaskellBackend


if TYPE_CHECKING:
    from blogdiagrams.core.config import BackendConfig


class BackendRegistry:
    """Registry storing the Haskell rendering backends known to the filter."""

    def __init__(self) -> None:
        self._backends: dict[str, HaskellBackend] = {}

    def register(self, backend: HaskellBackend) -> None:
        """Register a backend under its name, replacing any previous entry."""
        self._backends[backend.name] = backend

    def get(self, name: str) -> HaskellBackend:
        """Return a registered backend or raise :class:`UnknownBackendError`."""
        try:
            return self._backends[name]
        except KeyError as exc:
            known = ", ".join(sorted(self._backends)) or "none"
            raise UnknownBackendError(
                f"No diagrams backend registered for '{name}' (known: {known})"
            ) from exc

    def is_registered(self, name: str) -> bool:
        """Return True when a backend has been registered under the given name."""
        return name in self._backends


registry = BackendRegistry()

# Built-in backends
registry.register(CAIRO)
registry.register(RASTERIFIC)


def register_backend(backend: HaskellBackend) -> None:
    """Expose a helper to register additional backends."""
    registry.register(backend)


def has_backend(name: str) -> bool:
    """Return True when a backend is currently registered."""
    return registry.is_registered(name)


def create_builder(config: BackendConfig) -> GhcDiagramsBuilder:
    """Instantiate the builder described by a backend configuration."""
    backend = registry.get(config.name)
    return GhcDiagramsBuilder(backend, command=config.command, timeout=config.timeout)


__all__ = [
    "CAIRO",
    "RASTERIFIC",
    "BackendRegistry",
    "BuildOutcome",
    "BuildRequest",
    "Built",
    "CachedBuilder",
    "DiagramBuilder",
    "GhcDiagramsBuilder",
    "HaskellBackend",
    "InterpretFailure",
    "ParseFailure",
    "Skipped",
    "create_builder",
    "has_backend",
    "register_backend",
]
