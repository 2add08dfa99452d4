"""Configuration models read from pandoc document metadata.

DiagramsConfig

`image_dir` (`Path`)
: Directory receiving rendered images and the builder cache. Relative paths
  are resolved against the working directory pandoc runs in.

`image_suffix` (`str`)
: Extension of the generated images.

`diagram_class` / `definition_class` (`str`)
: Classes tagging diagram code and definition blocks (`dia` / `dia-def`).

`diagram_name` (`str`)
: Identifier evaluated for diagram blocks. A block must bind this name.

`pad_factor` (`float`)
: Scale applied by the padding step added to block diagrams.

`inline` / `blocks` (`bool`)
: Toggle the inline and block passes independently.

`verbosity` (`int`)
: Amount of progress information written to standard error.

`extra_image_dir` (`Path | None`, metadata key `imgdir`)
: Directory receiving an additional copy of every block diagram.

`extra_size` (`SizeSpec | None`, metadata key `imgsize`)
: Size of that additional copy, written `<width>x<height>`. Malformed values
  disable the extra copy instead of failing.

`backend` (`BackendConfig`)
: Builder selection: backend `name`, interpreter `command` and `timeout`.

Only `imgdir` and `imgsize` are read from top-level metadata keys; every other
setting lives under a `diagrams` mapping::

    ---
    imgdir: static/thumbs
    imgsize: 200x150
    diagrams:
      backend:
        name: rasterific
        command: stack runghc --
    ---
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
import shlex
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError
from .size import SizeSpec, parse_image_size
from .tags import DEFINITION_CLASS, DIAGRAM_CLASS


DEFAULT_IMAGE_DIR = Path("diagrams")


class BackendConfig(BaseModel):
    """Selection of the external builder used to evaluate diagrams."""

    model_config = ConfigDict(extra="forbid")

    name: str = "cairo"
    command: list[str] = Field(default_factory=lambda: ["runghc"])
    timeout: float | None = Field(default=None, gt=0)

    @field_validator("command", mode="before")
    @classmethod
    def split_command(cls, value: Any) -> Any:
        """Accept a shell-style command string as well as an argument list."""
        if isinstance(value, str):
            return shlex.split(value)
        return value

    @field_validator("command")
    @classmethod
    def require_program(cls, value: list[str]) -> list[str]:
        """Reject empty commands."""
        if not value:
            raise ValueError("backend command must name a program")
        return value


class DiagramsConfig(BaseModel):
    """Settings for the diagram transforms of a single document."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    image_dir: Path = DEFAULT_IMAGE_DIR
    image_suffix: str = ".png"
    diagram_class: str = DIAGRAM_CLASS
    definition_class: str = DEFINITION_CLASS
    diagram_name: str = "dia"
    pad_factor: float = Field(default=1.1, gt=0)
    inline: bool = True
    blocks: bool = True
    verbosity: int = Field(default=0, ge=0)
    extra_image_dir: Path | None = Field(default=None, alias="imgdir")
    extra_size: SizeSpec | None = Field(default=None, alias="imgsize")
    backend: BackendConfig = Field(default_factory=BackendConfig)

    @field_validator("image_suffix")
    @classmethod
    def normalise_suffix(cls, value: str) -> str:
        """Ensure the suffix carries its leading dot."""
        candidate = value.strip()
        if not candidate.strip("."):
            raise ValueError("image suffix must not be empty")
        return candidate if candidate.startswith(".") else f".{candidate}"

    @field_validator("extra_image_dir", mode="before")
    @classmethod
    def blank_directory(cls, value: Any) -> Any:
        """Treat an empty ``imgdir`` as unset."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("extra_size", mode="before")
    @classmethod
    def parse_extra_size(cls, value: Any) -> Any:
        """Parse ``imgsize`` strings, dropping malformed values silently."""
        if value is None or isinstance(value, SizeSpec):
            return value
        return parse_image_size(value)

    @property
    def extra_copy(self) -> tuple[Path, SizeSpec] | None:
        """Return the directory and size of the extra copy when both are set."""
        if self.extra_image_dir is None or self.extra_size is None:
            return None
        return self.extra_image_dir, self.extra_size

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> DiagramsConfig:
        """Validate a raw mapping, raising :class:`ConfigurationError` on failure."""
        try:
            return cls.model_validate(dict(data or {}))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid diagrams configuration: {exc}") from exc

    @classmethod
    def from_metadata(cls, doc: Any) -> DiagramsConfig:
        """Build the configuration from the metadata of a panflute document."""
        section = doc.get_metadata("diagrams", default=None)
        if section is None:
            data: dict[str, Any] = {}
        elif isinstance(section, Mapping):
            data = dict(section)
        else:
            raise ConfigurationError("The 'diagrams' metadata entry must be a mapping.")
        for key in ("imgdir", "imgsize"):
            value = doc.get_metadata(key, default=None)
            if value is not None:
                data.setdefault(key, value)
        return cls.from_mapping(data)


__all__ = ["DEFAULT_IMAGE_DIR", "BackendConfig", "DiagramsConfig"]
