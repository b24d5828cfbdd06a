"""Request Decoder — strict JSON body decoding with precise failure classification.

Invariants:
    - Size limit checked before any parsing; a body of exactly max_bytes is accepted
    - Exactly one top-level JSON value; trailing non-whitespace is "multiple objects"
    - Only the first offending member in document order is reported, whatever its kind
    - Positions in messages are byte offsets into the raw body
    - Only fields declared on the target schema are populated

Design Decisions:
    - Pydantic schema (extra="forbid", strict=True) is the single authority on fields and
      types; this module only maps ValidationError entries to decode error kinds
    - json.JSONDecoder.raw_decode over json.loads: yields the end index needed to detect
      trailing values and to locate offending members
"""

import json
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from speedster.core.domain_types import MAX_BODY_BYTES
from speedster.core.errors import DecodeErrorKind, MalformedRequestError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# RFC 8259 insignificant whitespace
_WHITESPACE = re.compile(r"[ \t\n\r]*")


class _NonStandardConstant(ValueError):
    """NaN / Infinity literals are not JSON."""


def _reject_constant(name: str) -> Any:
    raise _NonStandardConstant(name)


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def decode_json_body(
    body: bytes, schema: type[SchemaT], max_bytes: int = MAX_BODY_BYTES,
) -> SchemaT:
    """Decode a raw request body into ``schema``.

    Raises:
        MalformedRequestError: classified by ``kind``; ``http_status`` is 413 for
            oversized bodies and 400 otherwise.
    """
    if len(body) > max_bytes:
        raise body_too_large(max_bytes)

    text = body.decode("utf-8", errors="replace")
    start = _WHITESPACE.match(text).end()
    if start == len(text):
        raise MalformedRequestError(
            DecodeErrorKind.EMPTY_BODY, "Request body must not be empty",
        )

    value, end = _parse_first_value(text, start)
    instance = _validate(value, schema, text, start, end)

    if _WHITESPACE.match(text, end).end() != len(text):
        raise MalformedRequestError(
            DecodeErrorKind.MULTIPLE_OBJECTS,
            "Request body must only contain a single JSON object",
        )
    return instance


def body_too_large(max_bytes: int = MAX_BODY_BYTES) -> MalformedRequestError:
    return MalformedRequestError(
        DecodeErrorKind.TOO_LARGE,
        f"Request body must not be larger than {_format_limit(max_bytes)}",
        http_status=413,
    )


def _parse_first_value(text: str, start: int) -> tuple[Any, int]:
    try:
        return _DECODER.raw_decode(text, start)
    except json.JSONDecodeError as exc:
        if exc.pos >= len(text) or exc.msg.startswith("Unterminated string"):
            # ran out of input mid-structure
            raise MalformedRequestError(
                DecodeErrorKind.MALFORMED_JSON,
                "Request body contains badly-formed JSON",
            ) from exc
        position = _byte_offset(text, exc.pos + 1)
        raise MalformedRequestError(
            DecodeErrorKind.MALFORMED_JSON,
            f"Request body contains badly-formed JSON (at position {position})",
        ) from exc
    except _NonStandardConstant as exc:
        raise MalformedRequestError(
            DecodeErrorKind.MALFORMED_JSON,
            "Request body contains badly-formed JSON",
        ) from exc


def _validate(
    value: Any, schema: type[SchemaT], text: str, start: int, end: int,
) -> SchemaT:
    if not isinstance(value, dict):
        raise MalformedRequestError(
            DecodeErrorKind.TYPE_MISMATCH,
            'Request body contains an invalid value for the "" field '
            f"(at position {_byte_offset(text, end)})",
        )

    # null leaves a declared field at its default
    declared = schema.model_fields
    payload = {
        key: item for key, item in value.items()
        if not (item is None and key in declared)
    }
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise _classify(exc, text, start) from exc


def _classify(exc: ValidationError, text: str, start: int) -> MalformedRequestError:
    offsets = _member_end_offsets(text, start)
    order = {key: index for index, key in enumerate(offsets)}

    def field_of(error: dict) -> str:
        return str(error["loc"][0]) if error["loc"] else ""

    first = min(exc.errors(), key=lambda e: order.get(field_of(e), len(order)))
    field = field_of(first)
    if first["type"] == "extra_forbidden":
        return MalformedRequestError(
            DecodeErrorKind.UNKNOWN_FIELD,
            f'Request body contains unknown field "{field}"',
        )

    position = _byte_offset(text, offsets.get(field, len(text)))
    return MalformedRequestError(
        DecodeErrorKind.TYPE_MISMATCH,
        f'Request body contains an invalid value for the "{field}" field '
        f"(at position {position})",
    )


def _member_end_offsets(text: str, start: int) -> dict[str, int]:
    """Map each top-level key to the index just past its value.

    Only called on text already accepted by raw_decode as an object at ``start``.
    """
    offsets: dict[str, int] = {}
    idx = _WHITESPACE.match(text, start + 1).end()
    if text[idx] == "}":
        return offsets
    while True:
        key, idx = _DECODER.raw_decode(text, idx)
        idx = _WHITESPACE.match(text, idx).end() + 1  # ':'
        idx = _WHITESPACE.match(text, idx).end()
        _, idx = _DECODER.raw_decode(text, idx)
        offsets[key] = idx
        idx = _WHITESPACE.match(text, idx).end()
        if text[idx] == "}":
            return offsets
        idx = _WHITESPACE.match(text, idx + 1).end()  # ','


def _byte_offset(text: str, char_index: int) -> int:
    return len(text[:char_index].encode("utf-8"))


def _format_limit(max_bytes: int) -> str:
    mebibyte = 1 << 20
    if max_bytes % mebibyte == 0:
        return f"{max_bytes // mebibyte}MB"
    return f"{max_bytes} bytes"
