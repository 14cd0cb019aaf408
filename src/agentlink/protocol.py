"""Line protocol spoken with the worker process.

Transport: newline-delimited JSON over the worker's stdio.
- agentlink -> worker (stdin): ``{"type": "input", "text": ...}``
- worker -> agentlink (stdout): ``ready``, ``output`` and ``error`` messages

Text fields may contain newlines. JSON escapes them, so a bare ``\\n`` is
always a frame delimiter and every line holds exactly one document.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar

from agentlink.errors import DecodeError

DISCRIMINANT = "type"
DISCRIMINANT_ALIAS = "kind"


@dataclass(frozen=True)
class InputMessage:
    """One user request forwarded to the worker."""

    kind: ClassVar[str] = "input"

    text: str


@dataclass(frozen=True)
class Ready:
    kind: ClassVar[str] = "ready"


@dataclass(frozen=True)
class Output:
    kind: ClassVar[str] = "output"

    text: str | None = None


@dataclass(frozen=True)
class WorkerError:
    kind: ClassVar[str] = "error"

    message: str | None = None


@dataclass(frozen=True)
class Unknown:
    """Any message kind this client does not understand."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)


InboundMessage = Ready | Output | WorkerError | Unknown


def encode(message: InputMessage) -> str:
    """Serialize ``message`` to a single frame, without the line terminator."""
    line = json.dumps(
        {DISCRIMINANT: message.kind, "text": message.text},
        ensure_ascii=False,
        separators=(",", ":"),
    )
    if "\n" in line:
        raise AssertionError("encoded frame contains a raw newline")
    return line


def decode(line: str) -> InboundMessage:
    """Parse one worker line into a typed inbound message.

    Optional fields that are missing (or ``null``) decode to ``None`` so an
    output without text stays distinguishable from an empty one.

    Raises:
        DecodeError: If the line is not a JSON object with a string message type,
            or an optional field has the wrong type.
    """
    payload = _load_object(line)
    kind = _discriminant(payload)
    if kind == Ready.kind:
        return Ready()
    if kind == Output.kind:
        return Output(text=_optional_str(payload, "text"))
    if kind == WorkerError.kind:
        return WorkerError(message=_optional_str(payload, "message"))
    return Unknown(kind=kind, payload=payload)


def decode_input(line: str) -> InputMessage:
    """Parse a request frame the way the worker side reads it."""
    payload = _load_object(line)
    kind = _discriminant(payload)
    if kind != InputMessage.kind:
        raise DecodeError(f"expected input message, got: {kind}")
    text = payload.get("text")
    if not isinstance(text, str):
        raise DecodeError("input message requires a string 'text' field")
    return InputMessage(text=text)


def _load_object(line: str) -> dict[str, Any]:
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as exc:
        raise DecodeError(str(exc)) from exc
    if not isinstance(payload, dict):
        raise DecodeError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def _discriminant(payload: dict[str, Any]) -> str:
    kind = payload.get(DISCRIMINANT)
    if kind is None:
        kind = payload.get(DISCRIMINANT_ALIAS)
    if not isinstance(kind, str) or not kind:
        raise DecodeError(f"missing field `{DISCRIMINANT}`")
    return kind


def _optional_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise DecodeError(f"field `{key}` must be a string")
    return value
