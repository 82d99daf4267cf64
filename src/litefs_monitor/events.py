"""Event types published on a LiteFS node's event stream.

The node streams one JSON object per line from ``GET /events``:

    {"type":"init","data":{"isPrimary":true,"hostname":"node-1"}}
    {"type":"tx","db":"db","data":{"txID":"0000000000000027",...}}
    {"type":"primaryChange","data":{"isPrimary":false,"hostname":"node-2"}}

Decoding is two-pass: the envelope is parsed first and ``data`` is then
validated against the payload model selected by ``type``. Unknown types
decode with no payload so newer nodes do not break older consumers.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, Strict, ValidationError, model_validator

from litefs_monitor.errors import DecodeError, StreamEndedError, TruncatedStreamError

U32_MAX = 2**32 - 1


class EventType(str, Enum):
    """Known values of the ``type`` field."""

    INIT = "init"
    TX = "tx"
    PRIMARY_CHANGE = "primaryChange"


class _WireModel(BaseModel):
    # Strict: "isPrimary": "yes" must not read as a primary
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore", strict=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # A null field keeps its zero value
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class InitEventData(_WireModel):
    """Sent once when a subscription is (re)established."""

    is_primary: bool = Field(default=False, alias="isPrimary")
    hostname: str = ""


class TxEventData(_WireModel):
    """Sent for every transaction committed to a database."""

    txid: str = Field(default="", alias="txID")
    post_apply_checksum: str = Field(default="", alias="postApplyChecksum")
    page_size: int = Field(default=0, ge=0, le=U32_MAX, alias="pageSize")
    commit: int = Field(default=0, ge=0, le=U32_MAX)
    timestamp: Annotated[datetime, Strict(False)] | None = None  # parsed from RFC 3339 text


class PrimaryChangeEventData(_WireModel):
    """Sent whenever cluster leadership changes."""

    is_primary: bool = Field(default=False, alias="isPrimary")
    hostname: str = ""


EventData = InitEventData | TxEventData | PrimaryChangeEventData

_DATA_MODELS: dict[str, type[_WireModel]] = {
    EventType.INIT.value: InitEventData,
    EventType.TX.value: TxEventData,
    EventType.PRIMARY_CHANGE.value: PrimaryChangeEventData,
}


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = ""
    db: str | None = None
    data: Any = None


@dataclass(frozen=True, slots=True)
class Event:
    """A single event read from the stream.

    ``type`` keeps the raw wire value, so events of a kind this library does
    not know about are still visible to callers (with ``data`` set to None).
    """

    type: str
    db: str | None = None
    data: EventData | None = None

    @property
    def is_known(self) -> bool:
        return self.type in _DATA_MODELS

    def to_dict(self) -> dict[str, Any]:
        """Re-encode the event in its wire shape."""
        out: dict[str, Any] = {"type": self.type}
        if self.db:
            out["db"] = self.db
        if self.data is not None:
            out["data"] = self.data.to_dict()
        return out


def decode_event(line: bytes | str) -> Event:
    """Decode one line of the event stream.

    A known event whose ``data`` is null decodes with no payload, and null
    payload fields keep their zero values. A missing ``data`` is an error.

    Raises:
        DecodeError: If the line is not JSON, or the payload of a known event
            type is missing or has the wrong shape (including wrongly-typed
            fields, which are never coerced).
    """
    try:
        raw = orjson.loads(line)
    except orjson.JSONDecodeError as e:
        raise DecodeError(f"invalid event JSON: {e}") from e

    try:
        envelope = _Envelope.model_validate(raw)
    except ValidationError as e:
        raise DecodeError(f"invalid event envelope: {e}") from e

    model = _DATA_MODELS.get(envelope.type)
    if model is None:
        return Event(type=envelope.type, db=envelope.db)

    if envelope.data is None:
        if "data" in envelope.model_fields_set:
            # "data": null is a known event with no payload
            return Event(type=envelope.type, db=envelope.db)
        raise DecodeError(f"{envelope.type} event without data")

    try:
        data = model.model_validate(envelope.data)
    except ValidationError as e:
        raise DecodeError(f"invalid {envelope.type} event data: {e}") from e

    return Event(type=envelope.type, db=envelope.db, data=data)  # type: ignore[arg-type]


class EventDecoder:
    """Incrementally decodes newline-delimited events from a byte stream.

    The decoder is a cursor over a single response body; once it raises, the
    body should be discarded.
    """

    def __init__(self, chunks: AsyncIterable[bytes]):
        self._chunks: AsyncIterator[bytes] = aiter(chunks)
        self._buffer = bytearray()
        self._eof = False

    async def next_event(self) -> Event:
        """Return the next event from the stream.

        Raises:
            DecodeError: A complete line is not a valid event.
            TruncatedStreamError: The stream ended in the middle of an event.
            StreamEndedError: The stream ended cleanly between events.
        """
        while True:
            newline = self._buffer.find(b"\n")
            if newline >= 0:
                line = bytes(self._buffer[:newline])
                del self._buffer[: newline + 1]
                if line.strip():
                    return decode_event(line)
                continue

            if self._eof:
                raise StreamEndedError("EOF")

            try:
                chunk = await anext(self._chunks)
            except StopAsyncIteration:
                self._eof = True
                return self._decode_tail()

            self._buffer.extend(chunk)

    def _decode_tail(self) -> Event:
        tail = bytes(self._buffer).strip()
        self._buffer.clear()
        if not tail:
            raise StreamEndedError("EOF")

        # A final object without a trailing newline is still an event.
        try:
            return decode_event(tail)
        except DecodeError as e:
            raise TruncatedStreamError("unexpected EOF") from e
