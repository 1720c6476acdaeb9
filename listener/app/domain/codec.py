"""Event codec: event envelope <-> delivery body.

Wire format is a compact JSON object `{"data": <payload>, "event": "<name>"}`
with sorted keys, so equal events always encode to equal bytes. The payload
representation is the only thing that varies between codecs:

- JsonEventCodec: `data` is any JSON value.
- BytesEventCodec: `data` is the base64 text of a raw byte payload.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Generic

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from listener.app.domain.errors import DecodeError, EncodeError
from listener.app.domain.models import Event, PayloadT

CONTENT_TYPE = "application/json"


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    event: StrictStr = Field(..., min_length=1)
    data: Any = None


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


def _check_json_value(value: Any) -> None:
    # only types that decode back to an equal value are accepted
    if value is None or isinstance(value, (bool, int, float, str)):
        return
    if isinstance(value, list):
        for item in value:
            _check_json_value(item)
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"object keys must be str, got {type(key).__name__}")
            _check_json_value(item)
        return
    raise TypeError(f"{type(value).__name__} is not a JSON value")


class EventCodec(Generic[PayloadT]):
    """Base codec; subclasses map the payload to and from its JSON form."""

    payload_format: str = ""

    def encode(self, event: Event[PayloadT]) -> bytes:
        try:
            data = self._dump_payload(event.payload)
            return json.dumps(
                {"event": event.name, "data": data},
                separators=(",", ":"),
                sort_keys=True,
                allow_nan=False,
                ensure_ascii=False,
            ).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"failed to marshal event {event.name!r}: {exc}") from exc

    def decode(self, data: bytes) -> Event[PayloadT]:
        try:
            raw = json.loads(bytes(data).decode("utf-8"), parse_constant=_reject_constant)
            envelope = _Envelope.model_validate(raw)
        except (ValueError, RecursionError, ValidationError) as exc:
            raise DecodeError(f"failed to unmarshal event envelope: {exc}") from exc
        try:
            payload = self._load_payload(envelope.data)
        except (TypeError, ValueError) as exc:
            raise DecodeError(
                f"failed to unmarshal payload of event {envelope.event!r}: {exc}"
            ) from exc
        return Event(name=envelope.event, payload=payload)

    def _dump_payload(self, payload: PayloadT) -> Any:
        raise NotImplementedError

    def _load_payload(self, data: Any) -> PayloadT:
        raise NotImplementedError


class JsonEventCodec(EventCodec[Any]):
    payload_format = "json"

    def _dump_payload(self, payload: Any) -> Any:
        _check_json_value(payload)
        return payload

    def _load_payload(self, data: Any) -> Any:
        return data


class BytesEventCodec(EventCodec[bytes]):
    payload_format = "bytes"

    def _dump_payload(self, payload: bytes) -> str:
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise TypeError(f"bytes payload expected, got {type(payload).__name__}")
        return base64.b64encode(bytes(payload)).decode("ascii")

    def _load_payload(self, data: Any) -> bytes:
        if data is None:
            return b""
        if not isinstance(data, str):
            raise TypeError(f"base64 string expected, got {type(data).__name__}")
        try:
            return base64.b64decode(data, validate=True)
        except binascii.Error as exc:
            raise ValueError(f"malformed base64 data: {exc}") from exc


def create_codec(payload_format: str) -> EventCodec[Any]:
    fmt = payload_format.strip().lower()

    if fmt == JsonEventCodec.payload_format:
        return JsonEventCodec()

    if fmt == BytesEventCodec.payload_format:
        return BytesEventCodec()

    raise ValueError(f"Unsupported payload format: {payload_format}")
