"""Diagnostic abstractions shared by the render delegate and the transforms.

Pandoc reads the transformed document from standard output, so every emitter
defined here writes to standard error or to the logging system, never to
standard output.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
import sys
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .exceptions import exception_messages


if TYPE_CHECKING:
    from rich.console import Console


logger = logging.getLogger(__name__)

# Events that accompany an error already reported through ``error``.
_ERROR_EVENTS = frozenset({"diagram_failed"})


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message and name not in _ERROR_EVENTS:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


class ConsoleEmitter:
    """Emitter rendering diagnostics on standard error with Rich.

    Warnings and errors are always printed. Structured events are only shown
    once ``verbosity`` is at least one; events echoing an error need two.
    """

    def __init__(self, *, verbosity: int = 0, debug_enabled: bool = False) -> None:
        self.verbosity = max(0, verbosity)
        self.debug_enabled = debug_enabled
        self._console: Console | None = None

    @property
    def console(self) -> Console:
        """Return a lazily instantiated stderr console."""
        from rich.console import Console

        current = getattr(self._console, "file", None)
        if self._console is None or current is not sys.stderr:
            self._console = Console(file=sys.stderr, highlight=False)
        return self._console

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self._render("warning", message, exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._render("error", message, exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        if self.verbosity < 1:
            return
        if name in _ERROR_EVENTS and self.verbosity < 2:
            return
        message = format_event_message(name, payload)
        if message is None:
            if self.verbosity < 2:
                return
            message = f"{name}: {dict(payload)}"
        self.console.log(message, markup=False)

    def _render(self, level: str, message: str, exc: BaseException | None) -> None:
        from rich.text import Text

        style = "red" if level == "error" else "yellow"
        text = Text.assemble((f"{level}: ", f"bold {style}"), (message.strip("\n"), style))
        if exc is not None and self.debug_enabled:
            text.append(f"\ntype: {type(exc).__name__}", style=style)
            chain = exception_messages(exc)[1:]
            if chain:
                text.append("\ncaused by:", style=style)
                for entry in chain:
                    text.append(f"\n  {entry}", style=style)
        self.console.print(text)


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)

    if name == "diagram_rendered":
        return f"Rendered diagram: {data.get('path') or '<unknown>'}"

    if name == "diagram_cached":
        return f"Reusing cached diagram: {data.get('path') or '<unknown>'}"

    if name == "diagram_extra_copy":
        path = data.get("path")
        if path:
            return f"Rendered extra sized copy: {path}"
        return "Extra sized copy failed"

    if name == "diagram_failed":
        kind = data.get("kind") or "build"
        return f"Diagram {kind} failure for expression '{data.get('expression', '')}'"

    return None


def ensure_emitter(emitter: DiagnosticEmitter | None) -> DiagnosticEmitter:
    """Return a usable emitter, defaulting to the null implementation."""
    return emitter if emitter is not None else NullEmitter()


def record_event(
    emitter: DiagnosticEmitter | None,
    event: str,
    payload: Mapping[str, Any],
) -> None:
    """Forward a structured diagnostic event."""
    ensure_emitter(emitter).event(event, payload)


__all__ = [
    "ConsoleEmitter",
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "ensure_emitter",
    "format_event_message",
    "record_event",
]
