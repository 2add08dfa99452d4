"""Render diagrams embedded in pandoc documents."""

from __future__ import annotations

from blogdiagrams.builder import (
    BuildRequest,
    DiagramBuilder,
    GhcDiagramsBuilder,
    HaskellBackend,
    create_builder,
    register_backend,
)
from blogdiagrams.core.config import BackendConfig, DiagramsConfig
from blogdiagrams.core.definitions import collect_definitions
from blogdiagrams.core.diagnostics import (
    ConsoleEmitter,
    DiagnosticEmitter,
    LoggingEmitter,
    NullEmitter,
)
from blogdiagrams.core.exceptions import (
    BuilderExecutionError,
    ConfigurationError,
    DiagramsError,
    UnknownBackendError,
)
from blogdiagrams.core.render import RenderFailure, RenderOutcome, RenderSuccess, render_diagram
from blogdiagrams.core.size import SizeSpec
from blogdiagrams.core.tags import effective_tags, untag
from blogdiagrams.transforms import (
    DEFAULT_TRANSFORMS,
    DiagramContext,
    Transform,
    diagrams_inline_xf,
    diagrams_xf,
    run_transforms,
)
from blogdiagrams.version import get_version


__version__ = get_version()

__all__ = [
    "DEFAULT_TRANSFORMS",
    "BackendConfig",
    "BuildRequest",
    "BuilderExecutionError",
    "ConfigurationError",
    "ConsoleEmitter",
    "DiagnosticEmitter",
    "DiagramBuilder",
    "DiagramContext",
    "DiagramsConfig",
    "DiagramsError",
    "GhcDiagramsBuilder",
    "HaskellBackend",
    "LoggingEmitter",
    "NullEmitter",
    "RenderFailure",
    "RenderOutcome",
    "RenderSuccess",
    "SizeSpec",
    "Transform",
    "UnknownBackendError",
    "__version__",
    "collect_definitions",
    "create_builder",
    "diagrams_inline_xf",
    "diagrams_xf",
    "effective_tags",
    "get_version",
    "register_backend",
    "render_diagram",
    "run_transforms",
    "untag",
]
