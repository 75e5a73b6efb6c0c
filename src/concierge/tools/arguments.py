"""Typed extraction of model-supplied tool arguments."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ArgKind(StrEnum):
    STRING = "string"
    INTEGER = "integer"
    STRUCTURED = "structured"


@dataclass(frozen=True)
class ArgSpec:
    """Expected shape of one tool argument.

    Optional arguments fall back to `default` when missing or mistyped.
    Required arguments are never replaced: a mistyped value is forwarded as is
    and a missing one as None, leaving rejection to the external operation.
    """

    name: str
    kind: ArgKind
    required: bool = False
    default: Any = None

    def extract(self, arguments: Mapping[str, Any]) -> Any:
        if self.name not in arguments:
            return None if self.required else self.default
        raw = arguments[self.name]
        coerced = coerce(self.kind, raw)
        if coerced is not None:
            return coerced
        return raw if self.required else self.default


def coerce(kind: ArgKind, value: Any) -> Any:
    """Return `value` as `kind`, or None when it does not fit."""
    match kind:
        case ArgKind.STRING:
            return value if isinstance(value, str) else None
        case ArgKind.INTEGER:
            if isinstance(value, bool):
                return None
            if isinstance(value, int):
                return value
            # Models emit JSON numbers, which arrive as floats.
            if isinstance(value, float) and value.is_integer():
                return int(value)
            return None
        case ArgKind.STRUCTURED:
            return value if isinstance(value, Mapping | list) else None


def extract_all(specs: tuple[ArgSpec, ...], arguments: Mapping[str, Any]) -> dict[str, Any]:
    return {spec.name: spec.extract(arguments) for spec in specs}
