"""Output size specifications parsed from code attributes and metadata."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import math
import re
from typing import Any


_NUMBER = r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"
_DIMENSION_PATTERN = re.compile(rf"^\s*({_NUMBER})\s*$")
_IMAGE_SIZE_PATTERN = re.compile(rf"^\s*({_NUMBER})\s*[xX]\s*({_NUMBER})\s*$")


@dataclass(frozen=True)
class SizeSpec:
    """Requested output size; a missing dimension is left unconstrained."""

    width: float | None = None
    height: float | None = None

    @property
    def is_unconstrained(self) -> bool:
        """Return True when neither dimension is set."""
        return self.width is None and self.height is None

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, Any] | None) -> SizeSpec:
        """Build a size from the ``width`` / ``height`` keys of a code attribute map."""
        if not attributes:
            return cls()
        return cls(
            width=parse_dimension(attributes.get("width")),
            height=parse_dimension(attributes.get("height")),
        )

    def as_dict(self) -> dict[str, float | None]:
        """Return a JSON friendly representation."""
        return {"width": self.width, "height": self.height}


def parse_dimension(value: Any) -> float | None:
    """Return a positive finite dimension, or None when the value does not parse."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _DIMENSION_PATTERN.match(str(value))
        if match is None:
            return None
        number = float(match.group(1))
    # Zero or negative sizes are treated as absent rather than passed to mkSizeSpec2D.
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def parse_image_size(value: Any) -> SizeSpec | None:
    """Parse an ``<width>x<height>`` string; malformed values yield None."""
    if value is None:
        return None
    match = _IMAGE_SIZE_PATTERN.match(str(value))
    if match is None:
        return None
    width = parse_dimension(match.group(1))
    height = parse_dimension(match.group(2))
    if width is None or height is None:
        return None
    return SizeSpec(width=width, height=height)


__all__ = ["SizeSpec", "parse_dimension", "parse_image_size"]
