"""Bus envelope models."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Self


def _decode_fields(data: bytes, *names: str) -> dict[str, str]:
    payload: Any = json.loads(data.decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("envelope must be a JSON object")
    fields: dict[str, str] = {}
    for name in names:
        value = payload.get(name)
        if not isinstance(value, str):
            raise ValueError(f"envelope field {name!r} must be a string")
        fields[name] = value
    return fields


@dataclass(frozen=True)
class InboundEnvelope:
    """A user message waiting to be processed."""

    user_id: str
    text: str

    def encode(self) -> bytes:
        return json.dumps(asdict(self), ensure_ascii=False).encode("utf-8")

    @classmethod
    def decode(cls, data: bytes) -> Self:
        return cls(**_decode_fields(data, "user_id", "text"))


@dataclass(frozen=True)
class OutboundEnvelope:
    """A response addressed to one user."""

    user_id: str
    text: str

    def encode(self) -> bytes:
        return json.dumps(asdict(self), ensure_ascii=False).encode("utf-8")

    @classmethod
    def decode(cls, data: bytes) -> Self:
        return cls(**_decode_fields(data, "user_id", "text"))
