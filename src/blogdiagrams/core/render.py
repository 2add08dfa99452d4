"""Render delegate shared by the block and inline transforms.

Every diagram goes through :func:`render_diagram`, which hands the request to
a builder and reduces the builder outcome to a :class:`RenderSuccess` carrying
the image path or a :class:`RenderFailure` carrying a message meant to be
shown next to the offending source.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from blogdiagrams.builder.base import (
    BuildRequest,
    Built,
    DiagramBuilder,
    InterpretFailure,
    ParseFailure,
    Skipped,
)

from .config import DEFAULT_IMAGE_DIR
from .diagnostics import DiagnosticEmitter, ensure_emitter, record_event
from .size import SizeSpec


@dataclass(frozen=True, slots=True)
class RenderSuccess:
    """The diagram is available at ``path``."""

    path: Path


@dataclass(frozen=True, slots=True)
class RenderFailure:
    """The diagram could not be rendered; ``message`` explains why."""

    message: str


RenderOutcome = RenderSuccess | RenderFailure


def postprocess_step(pad_factor: float) -> str:
    """Return the expression centring a diagram and padding it by ``pad_factor``."""
    return f"pad {pad_factor!r} . centerXY"


def render_diagram(
    declarations: Sequence[str],
    expression: str,
    *,
    autopad: bool,
    size: SizeSpec,
    builder: DiagramBuilder,
    output_dir: Path | str | None = None,
    default_dir: Path | str = DEFAULT_IMAGE_DIR,
    emitter: DiagnosticEmitter | None = None,
    pad_factor: float = 1.1,
    image_suffix: str = ".png",
) -> RenderOutcome:
    """Compile ``expression`` with ``declarations`` in scope and render it.

    The output directory (``default_dir`` unless ``output_dir`` is given) is
    created first. Parse and interpreter failures are reported once through
    ``emitter`` and returned as :class:`RenderFailure`; cached and fresh
    builds both yield :class:`RenderSuccess` with ``<dir>/<hash><suffix>``.
    """
    emitter = ensure_emitter(emitter)
    directory = Path(output_dir) if output_dir is not None else Path(default_dir)
    directory.mkdir(parents=True, exist_ok=True)

    def target_for(digest: str) -> Path:
        return directory / f"{digest}{image_suffix}"

    request = BuildRequest(
        declarations=tuple(declarations),
        expression=expression,
        size=size,
        imports=(builder.backend_module,) if builder.backend_module else (),
        postprocess=postprocess_step(pad_factor) if autopad else None,
    )
    outcome = builder.build(request, cache_dir=directory, target_for=target_for)

    match outcome:
        case ParseFailure(message=detail):
            return _failure(emitter, "parse", expression, f"\nParse error:\n{detail}")
        case InterpretFailure(message=detail):
            return _failure(emitter, "interpreter", expression, f"\nInterpreter error:\n{detail}")
        case Skipped(hash=digest):
            path = target_for(digest)
            record_event(emitter, "diagram_cached", {"path": str(path), "hash": digest})
            return RenderSuccess(path)
        case Built(hash=digest):
            path = target_for(digest)
            outcome.write(path)
            record_event(emitter, "diagram_rendered", {"path": str(path), "hash": digest})
            return RenderSuccess(path)
        case _:
            raise TypeError(f"Unexpected build outcome: {outcome!r}")


def _failure(
    emitter: DiagnosticEmitter, kind: str, expression: str, message: str
) -> RenderFailure:
    emitter.error(message)
    record_event(emitter, "diagram_failed", {"kind": kind, "expression": expression})
    return RenderFailure(message)


__all__ = [
    "RenderFailure",
    "RenderOutcome",
    "RenderSuccess",
    "postprocess_step",
    "render_diagram",
]
