"""Builder evaluating diagrams with a Haskell interpreter.

The request is turned into a small ``Main`` module that imports
``Diagrams.Prelude`` and the backend, splices the declarations in (hoisting any
LANGUAGE pragmas and imports they carry into the module header), and renders
the expression with the backend's render function. The module is executed
with ``runghc`` (or any compatible command such as ``stack runghc --``).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import json
from pathlib import Path
import re
import shutil
import subprocess
import textwrap

from blogdiagrams.core.exceptions import BuilderExecutionError
from blogdiagrams.core.size import SizeSpec

from .base import BuildOutcome, BuildRequest, Built, CachedBuilder, InterpretFailure, ParseFailure


_PARSE_ERROR = re.compile(r"\b(?:parse|lexical) error\b", re.IGNORECASE)
_LANGUAGE_PRAGMA = re.compile(r"^\{-#\s*LANGUAGE\s+(.*?)\s*#-\}\s*$", re.IGNORECASE)

_PRAGMAS = ("NoMonomorphismRestriction", "FlexibleContexts", "TypeFamilies")

SOURCE_NAME = "Diagram.hs"
OUTPUT_NAME = "diagram.png"
RESULT_BINDING = "renderedDiagram'"


@dataclass(frozen=True, slots=True)
class HaskellBackend:
    """A diagrams rendering backend reachable from generated Haskell code."""

    name: str
    module: str
    render_function: str


CAIRO = HaskellBackend("cairo", "Diagrams.Backend.Cairo", "renderCairo")
RASTERIFIC = HaskellBackend("rasterific", "Diagrams.Backend.Rasterific", "renderRasterific")


def haskell_size(size: SizeSpec) -> str:
    """Return the ``mkSizeSpec2D`` call matching ``size``."""

    def dimension(value: float | None) -> str:
        return "Nothing" if value is None else f"(Just ({value!r}))"

    return f"(mkSizeSpec2D {dimension(size.width)} {dimension(size.height)})"


def _indent(text: str) -> str:
    return textwrap.indent(text.strip("\n"), "    ", lambda _line: True)


def split_module_header(declaration: str) -> tuple[list[str], list[str], str]:
    """Separate LANGUAGE pragmas and imports from the bindings of ``declaration``.

    Returns the extension names, the import statements (continuation lines of a
    multi-line import are kept with it) and the remaining source. Only lines
    starting in the first column are considered.
    """
    extensions: list[str] = []
    imports: list[str] = []
    body: list[str] = []
    in_import = False
    for line in declaration.splitlines():
        if in_import and line[:1].isspace():
            imports[-1] += "\n" + line
            continue
        in_import = False
        pragma = _LANGUAGE_PRAGMA.match(line)
        if pragma is not None:
            extensions += [name.strip() for name in pragma.group(1).split(",") if name.strip()]
        elif line.startswith("import") and line[6:7] in ("", " ", "\t"):
            imports.append(line.rstrip())
            in_import = True
        else:
            body.append(line)
    return extensions, imports, "\n".join(body).strip("\n")


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _classify_failure(detail: str) -> BuildOutcome:
    if _PARSE_ERROR.search(detail):
        return ParseFailure(detail)
    return InterpretFailure(detail)


def _run_cli(
    command: Sequence[str], *, cwd: Path, timeout: float | None
) -> subprocess.CompletedProcess[str]:
    """Execute the interpreter, raising a builder error when it cannot run."""
    try:
        return subprocess.run(
            list(command),
            check=False,
            capture_output=True,
            text=True,
            cwd=cwd,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise BuilderExecutionError(
            f"{command[0]} did not finish within {timeout} seconds"
        ) from exc
    except OSError as exc:
        raise BuilderExecutionError(f"Failed to execute {command[0]}: {exc}") from exc


class GhcDiagramsBuilder(CachedBuilder):
    """Compile and render diagrams by running a generated Haskell program."""

    def __init__(
        self,
        backend: HaskellBackend = CAIRO,
        *,
        command: Sequence[str] = ("runghc",),
        timeout: float | None = None,
    ) -> None:
        if not command:
            raise ValueError("command must name an interpreter")
        self.backend = backend
        self.command = tuple(command)
        self.timeout = timeout

    @property
    def namespace(self) -> str:  # type: ignore[override]
        return f"ghc-{self.backend.name}"

    @property
    def backend_module(self) -> str:  # type: ignore[override]
        return self.backend.module

    def generate_source(self, request: BuildRequest, output_name: str = OUTPUT_NAME) -> str:
        """Return the Haskell module rendering ``request`` to ``output_name``."""
        extensions = list(_PRAGMAS)
        imports = ["import Diagrams.Prelude", *(f"import {module}" for module in request.imports)]
        bodies: list[str] = []
        for declaration in request.declarations:
            found_extensions, found_imports, body = split_module_header(declaration)
            extensions += found_extensions
            imports += found_imports
            if body:
                bodies.append(body)

        lines = [f"{{-# LANGUAGE {pragma} #-}}" for pragma in _unique(extensions)]
        lines += ["module Main (main) where", "", *_unique(imports)]
        for body in bodies:
            lines += ["", body]

        # The expression may end in a line comment; close the paren on the next line.
        value = f"({request.expression.strip()}\n)"
        if request.postprocess:
            value = f"({request.postprocess})\n{value}"
        lines += [
            "",
            f"{RESULT_BINDING} :: Diagram B",
            f"{RESULT_BINDING} =",
            _indent(value),
            "",
            "main :: IO ()",
            (
                f"main = {self.backend.render_function} {json.dumps(output_name)} "
                f"{haskell_size(request.size)} {RESULT_BINDING}"
            ),
        ]
        return "\n".join(lines) + "\n"

    def _compile(
        self,
        request: BuildRequest,
        *,
        cache_key: str,
        work_dir: Path,
    ) -> BuildOutcome:
        outcome = self._evaluate(request, cache_key=cache_key, work_dir=work_dir)
        if not isinstance(outcome, Built):
            shutil.rmtree(work_dir, ignore_errors=True)
        return outcome

    def _evaluate(
        self,
        request: BuildRequest,
        *,
        cache_key: str,
        work_dir: Path,
    ) -> BuildOutcome:
        source_path = work_dir / SOURCE_NAME
        output_path = work_dir / OUTPUT_NAME
        source_path.write_text(self.generate_source(request), encoding="utf-8")
        output_path.unlink(missing_ok=True)

        try:
            result = _run_cli([*self.command, SOURCE_NAME], cwd=work_dir, timeout=self.timeout)
        except BuilderExecutionError as exc:
            return InterpretFailure(str(exc))

        if result.returncode != 0:
            detail = (result.stderr or "").strip() or (result.stdout or "").strip()
            if not detail:
                detail = f"{self.command[0]} exited with status {result.returncode}"
            return _classify_failure(detail)

        if not output_path.exists():
            return InterpretFailure(f"{self.command[0]} finished without writing {OUTPUT_NAME}")

        def write(target: Path) -> None:
            target = Path(target)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(output_path), str(target))
            shutil.rmtree(work_dir, ignore_errors=True)

        return Built(cache_key, write)


__all__ = [
    "CAIRO",
    "RASTERIFIC",
    "GhcDiagramsBuilder",
    "HaskellBackend",
    "haskell_size",
    "split_module_header",
]
