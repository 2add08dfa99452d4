"""Custom exception hierarchy for the diagram rendering filter."""

from __future__ import annotations


class DiagramsError(RuntimeError):
    """Base exception for diagram rendering failures."""


class BuilderExecutionError(DiagramsError):
    """Raised when the external diagram builder cannot run to completion."""


class UnknownBackendError(DiagramsError):
    """Raised when no rendering backend is registered under a name."""


class ConfigurationError(DiagramsError):
    """Raised when document metadata holds an invalid diagrams configuration."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


__all__ = [
    "BuilderExecutionError",
    "ConfigurationError",
    "DiagramsError",
    "UnknownBackendError",
    "exception_messages",
]
