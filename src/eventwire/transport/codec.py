"""JSON codec used at the transport boundary."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError as ModelValidationError

from eventwire.contracts.messages import Envelope, InboundMessage
from eventwire.core.errors import CodecError


class JsonCodec:
    """Strict JSON encoding: no NaN/Infinity, no cycles, no custom objects.

    Only values that come back unchanged are accepted. Tuples and dicts
    with non-string keys would be silently rewritten by JSON, so they are
    rejected as well.
    """

    def serialize(self, value: Any) -> str:
        try:
            _check_representable(value, set())
            return json.dumps(value, allow_nan=False, separators=(",", ":"))
        except (TypeError, ValueError, RecursionError) as exc:
            raise CodecError(f"value is not encodable: {exc}") from exc

    def deserialize(self, text: str | bytes) -> Any:
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise CodecError(f"payload is not valid UTF-8: {exc}") from exc
        if not isinstance(text, str):
            raise CodecError(f"expected text to decode, got {type(text).__name__}")
        try:
            return json.loads(text, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as exc:
            raise CodecError(f"malformed payload: {exc}") from exc

    def encode_envelope(self, envelope: Envelope) -> str:
        return self.serialize(envelope.to_wire())

    def decode_envelope(self, text: str | bytes) -> Envelope:
        data = self.deserialize(text)
        if not isinstance(data, dict):
            raise CodecError(f"envelope must be an object, got {type(data).__name__}")
        try:
            return Envelope.model_validate(data)
        except ModelValidationError as exc:
            raise CodecError(f"invalid envelope: {exc}") from exc


def to_inbound(envelope: Envelope) -> InboundMessage:
    return InboundMessage(
        event=envelope.event,
        source=envelope.source,
        args=tuple(envelope.args),
        delivery=envelope.delivery,
    )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not allowed")


def _check_representable(value: Any, active: set[int]) -> None:
    if isinstance(value, tuple):
        raise CodecError("tuples are not encodable, use a list")
    if not isinstance(value, (dict, list)):
        return
    marker = id(value)
    if marker in active:
        raise CodecError("value is not encodable: circular reference detected")
    active.add(marker)
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise CodecError(f"object keys must be strings, got {type(key).__name__}")
            _check_representable(item, active)
    else:
        for item in value:
            _check_representable(item, active)
    active.discard(marker)
