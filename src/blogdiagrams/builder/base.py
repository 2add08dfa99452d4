"""Primitives shared by diagram builders.

A builder receives a :class:`BuildRequest` and answers with one of four
outcomes: the source failed to parse, it failed to evaluate, an image for the
same inputs already exists (:class:`Skipped`), or a fresh image is ready to be
written (:class:`Built`). Callers pick the file name from the reported hash,
so identical requests always land on the same file.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from hashlib import sha256
import json
from pathlib import Path
from typing import Any, Protocol

from blogdiagrams.core.size import SizeSpec


@dataclass(frozen=True, slots=True)
class BuildRequest:
    """Everything that influences a rendered diagram."""

    declarations: tuple[str, ...]
    expression: str
    size: SizeSpec = field(default_factory=SizeSpec)
    imports: tuple[str, ...] = ()
    postprocess: str | None = None


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """The declarations or the expression are not syntactically valid."""

    message: str


@dataclass(frozen=True, slots=True)
class InterpretFailure:
    """The source parsed but could not be type-checked, loaded or evaluated."""

    message: str


@dataclass(frozen=True, slots=True)
class Skipped:
    """An image for the same inputs is already present on disk."""

    hash: str


@dataclass(frozen=True, slots=True)
class Built:
    """A fresh image was rendered; ``write`` stores it at the given path."""

    hash: str
    write: Callable[[Path], None] = field(repr=False, compare=False)


BuildOutcome = ParseFailure | InterpretFailure | Skipped | Built


class DiagramBuilder(Protocol):
    """Protocol implemented by concrete diagram builders."""

    backend_module: str

    def build(
        self,
        request: BuildRequest,
        *,
        cache_dir: Path,
        target_for: Callable[[str], Path],
    ) -> BuildOutcome: ...


class CachedBuilder:
    """Base class adding content-addressed caching to a builder.

    Sub-classes implement :meth:`_compile`. The cache key covers every field
    of the request plus the builder ``namespace``, so switching backends or
    post-processing steps never reuses a stale image.
    """

    namespace: str = "diagrams"
    backend_module: str = ""

    def build(
        self,
        request: BuildRequest,
        *,
        cache_dir: Path,
        target_for: Callable[[str], Path],
    ) -> BuildOutcome:
        """Return a cached outcome when possible, otherwise compile the request."""
        cache_key = self.cache_key(request)
        if Path(target_for(cache_key)).exists():
            return Skipped(cache_key)

        work_dir = Path(cache_dir) / ".cache" / self.namespace / cache_key
        work_dir.mkdir(parents=True, exist_ok=True)
        return self._compile(request, cache_key=cache_key, work_dir=work_dir)

    # --------------------------------------------------------------------- helpers

    def _compile(
        self,
        request: BuildRequest,
        *,
        cache_key: str,
        work_dir: Path,
    ) -> BuildOutcome:
        """Sub-classes must implement actual compilation logic."""
        raise NotImplementedError

    def cache_key(self, request: BuildRequest) -> str:
        """Return the hex digest identifying ``request`` for this builder."""
        digest = sha256()
        digest.update(self.namespace.encode("utf-8"))
        digest.update(b"\0")
        digest.update(self._serialise_request(request))
        return digest.hexdigest()

    def _serialise_request(self, request: BuildRequest) -> bytes:
        payload: dict[str, Any] = {
            "declarations": list(request.declarations),
            "expression": request.expression,
            "size": request.size.as_dict(),
            "imports": list(request.imports),
            "postprocess": request.postprocess,
        }
        return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


__all__ = [
    "BuildOutcome",
    "BuildRequest",
    "Built",
    "CachedBuilder",
    "DiagramBuilder",
    "InterpretFailure",
    "ParseFailure",
    "Skipped",
]
