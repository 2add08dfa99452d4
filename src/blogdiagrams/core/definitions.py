"""Collection of the definition blocks shared by every diagram of a document."""

from __future__ import annotations

from typing import Any

import panflute as pf

from .tags import DEFINITION_CLASS, effective_tags, untag


def definition_source(element: Any, marker: str = DEFINITION_CLASS) -> str | None:
    """Return the body of ``element`` when it is a definition block, else None."""
    if not isinstance(element, pf.CodeBlock):
        return None
    tag, source = untag(element.text)
    if marker in effective_tags(element.classes, tag):
        return source
    return None


def collect_definitions(doc: pf.Element, *, marker: str = DEFINITION_CLASS) -> list[str]:
    """Return the bodies of all definition blocks in document order.

    The tree is only read; the returned list is a snapshot taken before any
    transform touches the document.
    """
    found: list[str] = []

    def collect(element: pf.Element, _doc: pf.Doc | None) -> None:
        source = definition_source(element, marker)
        if source is not None:
            found.append(source)

    doc.walk(collect)
    return found


__all__ = ["collect_definitions", "definition_source"]
