"""Parse attempts and canonical encoders for body and query content.

Ambiguous string content is resolved by trying typed parsers in a fixed
order. Each parser returns a ``ParseResult`` instead of raising, so callers
can chain attempts and fall through to the next one:

    result = parse_json_object(content)
    if not result.ok:
        result = parse_form(content)

Numbers decoded from JSON are kept as ``JsonNumber`` (the literal source
text) so large integers and decimals survive a decode/encode round trip
unchanged.
"""

from __future__ import annotations

import dataclasses
import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from urllib.parse import parse_qsl, unquote_plus, urlencode

JSON_TYPE = "application/json"
FORM_TYPE = "application/x-www-form-urlencoded"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class JsonNumber(str):
    """Numeric JSON literal kept as its source text."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"JsonNumber({str.__repr__(self)})"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a single parse attempt.

    Attributes:
        value: Parsed value when the attempt succeeded.
        error: Failure reason when it did not.
    """

    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def parse_json_object(content: str) -> ParseResult:
    """Decode a JSON object, keeping numbers as JsonNumber."""
    try:
        value = json.loads(
            content,
            parse_int=JsonNumber,
            parse_float=JsonNumber,
            parse_constant=_reject_constant,
        )
    except ValueError as e:
        return ParseResult(error=e)
    if not isinstance(value, dict):
        return ParseResult(error=ValueError("JSON value is not an object"))
    return ParseResult(value=value)


def parse_json_strings(content: str) -> ParseResult:
    """Decode a flat JSON object whose values are all strings or numbers."""
    result = parse_json_object(content)
    if not result.ok:
        return result
    for key, value in result.value.items():
        if not isinstance(value, str):
            return ParseResult(
                error=ValueError(f"JSON value for {key!r} is not a string")
            )
    return result


def parse_form(content: str) -> ParseResult:
    """Parse URL-encoded ``key=value`` pairs into an ordered list of tuples.

    Segments containing ``;`` or malformed percent escapes fail the whole
    attempt. Segments without ``=`` are kept with an empty value.
    """
    pairs: list[tuple[str, str]] = []
    for segment in content.split("&"):
        if not segment:
            continue
        if ";" in segment:
            return ParseResult(
                error=ValueError(f"invalid semicolon separator in {segment!r}")
            )
        if _BAD_ESCAPE.search(segment):
            return ParseResult(
                error=ValueError(f"invalid URL escape in {segment!r}")
            )
        key, _, value = segment.partition("=")
        pairs.append((unquote_plus(key), unquote_plus(value)))
    return ParseResult(value=pairs)


def _public_attributes(obj: Any) -> dict[str, Any]:
    try:
        attrs = vars(obj)
    except TypeError:
        raise TypeError(
            f"Object of type {type(obj).__name__} is not JSON serializable"
        ) from None
    return {k: v for k, v in attrs.items() if not k.startswith("_")}


def marshal_object(content: Any) -> ParseResult:
    """Marshal a mapping, dataclass or plain object and decode it once.

    The round trip normalizes every value to what a JSON decode yields,
    with numbers as JsonNumber.
    """
    if dataclasses.is_dataclass(content) and not isinstance(content, type):
        content = dataclasses.asdict(content)
    elif hasattr(content, "model_dump"):
        content = content.model_dump(mode="json")
    try:
        text = json.dumps(content, default=_public_attributes)
    except (TypeError, ValueError) as e:
        return ParseResult(error=e)
    return parse_json_object(text)


def encode_json(value: Any) -> str:
    """Serialize to compact ASCII JSON with sorted keys, emitting JsonNumber raw.

    Non-ASCII text is escaped, so lone surrogates decoded from input survive.
    """
    if isinstance(value, JsonNumber):
        return str(value)
    if isinstance(value, Mapping):
        items = sorted((str(k), v) for k, v in value.items())
        return "{" + ",".join(
            json.dumps(k) + ":" + encode_json(v)
            for k, v in items
        ) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(encode_json(v) for v in value) + "]"
    return json.dumps(value)


def form_values(value: Any) -> list[str]:
    """String values a structured data entry contributes to a form body.

    Lists expand to one value per string element; booleans, null and nested
    objects contribute nothing.
    """
    if isinstance(value, str):
        return [str(value)]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if isinstance(v, str)]
    return []


def encode_form(data: Mapping[str, Any]) -> str:
    """Encode structured data as a form body, keys sorted."""
    pairs = [(key, v) for key in sorted(data) for v in form_values(data[key])]
    return urlencode(pairs)


def encode_query(params: Mapping[str, Iterable[str]]) -> str:
    """Encode a multimap as a query string, keys sorted, values in order."""
    return urlencode([(key, v) for key in sorted(params) for v in params[key]])


def merge_query(existing: str, extra: Mapping[str, Iterable[str]]) -> str:
    """Add ``extra`` to an existing query string and re-encode canonically.

    Pairs already in ``existing`` are kept; unparsable pairs are dropped.
    """
    merged: dict[str, list[str]] = {}
    for key, value in parse_qsl(existing, keep_blank_values=True):
        merged.setdefault(key, []).append(value)
    for key, values in extra.items():
        merged.setdefault(key, []).extend(values)
    return encode_query(merged)
