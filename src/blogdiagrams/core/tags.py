"""Tag detection for code blocks and inline code spans.

Besides the classes declared on a code element (```` ```{.dia} ````), a block
may name its tag on its first line, wrapped in brackets::

    [dia]
    dia = circle 1 # fc blue

The bracketed line is stripped from the body before it is evaluated.
"""

from __future__ import annotations

from collections.abc import Iterable
import re


DIAGRAM_CLASS = "dia"
DEFINITION_CLASS = "dia-def"

_TAG_LINE = re.compile(r"\A\[([^\[\]]*)\][ \t]*\r?\n")


def untag(text: str) -> tuple[str | None, str]:
    """Split an embedded ``[tag]`` first line from a code body.

    Returns the tag and the remaining text, or ``(None, text)`` when the first
    line does not follow the convention.
    """
    match = _TAG_LINE.match(text)
    if match is None:
        return None, text
    return match.group(1), text[match.end() :]


def effective_tags(classes: Iterable[str], tag: str | None) -> list[str]:
    """Return the declared classes with the embedded tag prepended."""
    tags = list(classes)
    if tag is not None:
        tags.insert(0, tag)
    return tags


__all__ = ["DEFINITION_CLASS", "DIAGRAM_CLASS", "effective_tags", "untag"]
