"""Document transforms replacing diagram code with rendered images.

Two transforms are provided:

``diagrams_inline_xf``
: replaces inline code spans with class ``dia`` by images of the expression
  they contain. Definition blocks stay in the document.

``diagrams_xf``
: replaces code blocks tagged ``dia`` by an image of the ``dia`` value they
  define, and deletes every block tagged ``dia-def``.

Both passes evaluate diagrams with the bodies of all ``dia-def`` blocks in
scope. Because the block pass deletes those blocks, the inline pass must run
first; :data:`DEFAULT_TRANSFORMS` encodes that order.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import panflute as pf

from blogdiagrams.builder import DiagramBuilder, create_builder
from blogdiagrams.core.config import DiagramsConfig
from blogdiagrams.core.definitions import collect_definitions
from blogdiagrams.core.diagnostics import DiagnosticEmitter, LoggingEmitter, record_event
from blogdiagrams.core.render import RenderFailure, RenderOutcome, RenderSuccess, render_diagram
from blogdiagrams.core.size import SizeSpec
from blogdiagrams.core.tags import effective_tags, untag


@dataclass
class DiagramContext:
    """Configuration and collaborators shared by the transforms of a document."""

    config: DiagramsConfig
    builder: DiagramBuilder
    emitter: DiagnosticEmitter

    @classmethod
    def from_document(
        cls,
        doc: pf.Doc,
        *,
        builder: DiagramBuilder | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> DiagramContext:
        """Build a context from the metadata of ``doc``."""
        config = DiagramsConfig.from_metadata(doc)
        return cls(
            config=config,
            builder=builder if builder is not None else create_builder(config.backend),
            emitter=emitter if emitter is not None else LoggingEmitter(),
        )

    def render(
        self,
        declarations: Sequence[str],
        expression: str,
        *,
        autopad: bool,
        size: SizeSpec,
        output_dir: Path | None = None,
    ) -> RenderOutcome:
        """Render through the configured builder and emitter."""
        return render_diagram(
            declarations,
            expression,
            autopad=autopad,
            size=size,
            builder=self.builder,
            output_dir=output_dir,
            default_dir=self.config.image_dir,
            emitter=self.emitter,
            pad_factor=self.config.pad_factor,
            image_suffix=self.config.image_suffix,
        )


def transform_block_diagrams(doc: pf.Doc, context: DiagramContext) -> pf.Doc:
    """Render ``dia`` code blocks and delete ``dia-def`` blocks."""
    config = context.config
    definitions = collect_definitions(doc, marker=config.definition_class)

    def action(element: pf.Element, _doc: pf.Doc | None) -> Any:
        if not isinstance(element, pf.CodeBlock):
            return None
        tag, source = untag(element.text)
        tags = effective_tags(element.classes, tag)
        if config.definition_class in tags:
            return []
        if config.diagram_class not in tags:
            return None

        declarations = [source, *definitions]
        size = SizeSpec.from_attributes(element.attributes)
        outcome = context.render(declarations, config.diagram_name, autopad=True, size=size)
        match outcome:
            case RenderFailure(message=message):
                return pf.CodeBlock(
                    element.text + message,
                    identifier=element.identifier,
                    classes=list(element.classes),
                    attributes=dict(element.attributes),
                )
            case RenderSuccess(path=path):
                _render_extra_copy(context, declarations)
                return pf.Para(pf.Image(url=path.as_posix()))
        return None

    return doc.walk(action)


def _render_extra_copy(context: DiagramContext, declarations: Sequence[str]) -> None:
    extra = context.config.extra_copy
    if extra is None:
        return
    directory, size = extra
    outcome = context.render(
        declarations,
        context.config.diagram_name,
        autopad=True,
        size=size,
        output_dir=directory,
    )
    path = str(outcome.path) if isinstance(outcome, RenderSuccess) else None
    record_event(context.emitter, "diagram_extra_copy", {"path": path})


def transform_inline_diagrams(doc: pf.Doc, context: DiagramContext) -> pf.Doc:
    """Render inline code spans tagged ``dia`` as inline images."""
    config = context.config
    definitions = collect_definitions(doc, marker=config.definition_class)

    def action(element: pf.Element, _doc: pf.Doc | None) -> Any:
        if not isinstance(element, pf.Code) or config.diagram_class not in element.classes:
            return None

        size = SizeSpec.from_attributes(element.attributes)
        outcome = context.render(definitions, element.text, autopad=False, size=size)
        match outcome:
            case RenderFailure(message=message):
                return pf.Code(
                    element.text + message,
                    identifier=element.identifier,
                    classes=list(element.classes),
                    attributes=dict(element.attributes),
                )
            case RenderSuccess(path=path):
                return pf.Image(url=path.as_posix())
        return None

    return doc.walk(action)


def _always(_config: DiagramsConfig) -> bool:
    return True


@dataclass(frozen=True)
class Transform:
    """A named document transform that can be switched off by configuration."""

    name: str
    apply: Callable[[pf.Doc, DiagramContext], pf.Doc]
    enabled: Callable[[DiagramsConfig], bool] = _always

    def __call__(self, doc: pf.Doc, context: DiagramContext) -> pf.Doc:
        if not self.enabled(context.config):
            return doc
        return self.apply(doc, context)


diagrams_inline_xf = Transform(
    "diagrams-inline", transform_inline_diagrams, lambda config: config.inline
)
diagrams_xf = Transform("diagrams", transform_block_diagrams, lambda config: config.blocks)

DEFAULT_TRANSFORMS: tuple[Transform, ...] = (diagrams_inline_xf, diagrams_xf)


def run_transforms(
    doc: pf.Doc,
    transforms: Sequence[Transform] = DEFAULT_TRANSFORMS,
    *,
    context: DiagramContext | None = None,
) -> pf.Doc:
    """Apply ``transforms`` in order, building a context from metadata if needed."""
    if context is None:
        context = DiagramContext.from_document(doc)
    for transform in transforms:
        doc = transform(doc, context)
    return doc


__all__ = [
    "DEFAULT_TRANSFORMS",
    "DiagramContext",
    "Transform",
    "diagrams_inline_xf",
    "diagrams_xf",
    "run_transforms",
    "transform_block_diagrams",
    "transform_inline_diagrams",
]
