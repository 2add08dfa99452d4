from __future__ import annotations

import base64
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import panflute as pf
import pytest

from blogdiagrams.builder.base import BuildOutcome, BuildRequest, Built, CachedBuilder
from blogdiagrams.core.config import DiagramsConfig
from blogdiagrams.transforms import DiagramContext


PNG_BYTES = base64.b64decode(
    b"iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/x8AAwMCAOm/pUUAAAAASUVORK5CYII="
)


class FakeBuilder(CachedBuilder):
    """Builder answering from a table of canned failures instead of running GHC."""

    namespace = "fake"
    backend_module = "Diagrams.Backend.Fake"

    def __init__(self, failures: Mapping[str, BuildOutcome] | None = None) -> None:
        self.failures = dict(failures or {})
        self.requests: list[BuildRequest] = []
        self.compiled: list[BuildRequest] = []

    def build(
        self,
        request: BuildRequest,
        *,
        cache_dir: Path,
        target_for: Callable[[str], Path],
    ) -> BuildOutcome:
        self.requests.append(request)
        return super().build(request, cache_dir=cache_dir, target_for=target_for)

    def _compile(self, request: BuildRequest, *, cache_key: str, work_dir: Path) -> BuildOutcome:
        self.compiled.append(request)
        sources = (request.expression, *request.declarations)
        for needle, outcome in self.failures.items():
            if any(needle in source for source in sources):
                return outcome

        def write(target: Path) -> None:
            target.write_bytes(PNG_BYTES)

        return Built(cache_key, write)


class RecordingEmitter:
    """Emitter keeping every diagnostic in memory."""

    debug_enabled = False

    def __init__(self) -> None:
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warnings.append(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.errors.append(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


@pytest.fixture
def builder() -> FakeBuilder:
    return FakeBuilder()


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def image_dir(tmp_path: Path) -> Path:
    return tmp_path / "diagrams"


@pytest.fixture
def make_context(
    builder: FakeBuilder, emitter: RecordingEmitter, image_dir: Path
) -> Callable[..., DiagramContext]:
    def factory(**overrides: Any) -> DiagramContext:
        config = DiagramsConfig.from_mapping({"image_dir": image_dir, **overrides})
        return DiagramContext(config=config, builder=builder, emitter=emitter)

    return factory


def _to_meta(value: Any) -> pf.MetaValue:
    if isinstance(value, bool):
        return pf.MetaBool(value)
    if isinstance(value, Mapping):
        return pf.MetaMap(*((key, _to_meta(item)) for key, item in value.items()))
    if isinstance(value, (list, tuple)):
        return pf.MetaList(*(_to_meta(item) for item in value))
    return pf.MetaString(str(value))


@pytest.fixture
def make_doc() -> Callable[..., pf.Doc]:
    def factory(*blocks: pf.Block, metadata: Mapping[str, Any] | None = None) -> pf.Doc:
        return pf.Doc(*blocks, metadata=_to_meta(metadata or {}))

    return factory
