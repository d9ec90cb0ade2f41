"""Self-describing JSON values for tool-call arguments."""

from __future__ import annotations

import json
import math
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import DecodeError


class _Value(BaseModel):
    """Common base for every dynamic value variant."""

    model_config = ConfigDict(frozen=True, strict=True)

    def to_python(self) -> Any:
        """Return the value as plain JSON-compatible Python data."""
        return encode_dynamic(self)


class StringValue(_Value):
    kind: Literal["string"] = "string"
    value: str


class IntegerValue(_Value):
    kind: Literal["integer"] = "integer"
    value: int


class FloatValue(_Value):
    kind: Literal["float"] = "float"
    value: float = Field(allow_inf_nan=False)
    """A finite float. ``inf`` and ``nan`` have no JSON encoding."""


class BooleanValue(_Value):
    kind: Literal["boolean"] = "boolean"
    value: bool


class NullValue(_Value):
    kind: Literal["null"] = "null"
    value: None = None


class ArrayValue(_Value):
    kind: Literal["array"] = "array"
    value: list[DynamicValue] = Field(default_factory=list)


class MapValue(_Value):
    kind: Literal["map"] = "map"
    value: dict[str, DynamicValue] = Field(default_factory=dict)


DynamicValue = Annotated[
    Union[
        StringValue,
        IntegerValue,
        FloatValue,
        BooleanValue,
        NullValue,
        ArrayValue,
        MapValue,
    ],
    Field(discriminator="kind"),
]

ArrayValue.model_rebuild()
MapValue.model_rebuild()


def decode_dynamic(node: Any) -> DynamicValue:
    """Convert an already-parsed JSON node into a ``DynamicValue``.

    Variants are tried in a fixed order: integer, float, string, boolean,
    null, array, map. ``bool`` is checked out of the ``int`` branch since
    Python treats it as an integer subtype.

    Args:
        node: A JSON node as produced by ``json.loads``.

    Returns:
        DynamicValue: The tagged value.

    Raises:
        DecodeError: If `node` is not a JSON value, holds a non-finite
            float, or is nested too deeply to decode.
    """
    try:
        return _decode_node(node)
    except RecursionError as e:
        raise DecodeError("Invalid JSON: nesting too deep") from e


def _decode_node(node: Any) -> DynamicValue:
    if isinstance(node, _Value):
        return node
    if isinstance(node, int) and not isinstance(node, bool):
        return IntegerValue(value=node)
    if isinstance(node, float):
        # json.loads turns out-of-range literals such as 1e999 into inf.
        if not math.isfinite(node):
            raise DecodeError(f"Number out of range: {node!r}")
        return FloatValue(value=node)
    if isinstance(node, str):
        return StringValue(value=node)
    if isinstance(node, bool):
        return BooleanValue(value=node)
    if node is None:
        return NullValue()
    if isinstance(node, (list, tuple)):
        return ArrayValue(value=[_decode_node(item) for item in node])
    if isinstance(node, dict):
        entries: dict[str, DynamicValue] = {}
        for key, item in node.items():
            if not isinstance(key, str):
                raise DecodeError(
                    f"Map keys must be strings, got {type(key).__name__}", key=str(key)
                )
            entries[key] = _decode_node(item)
        return MapValue(value=entries)
    raise DecodeError(f"Not a JSON value: {type(node).__name__}")


def encode_dynamic(value: DynamicValue) -> Any:
    """Convert a ``DynamicValue`` back into plain JSON-compatible Python data."""
    if isinstance(value, ArrayValue):
        return [encode_dynamic(item) for item in value.value]
    if isinstance(value, MapValue):
        return {key: encode_dynamic(item) for key, item in value.value.items()}
    if isinstance(value, _Value):
        return value.value
    raise TypeError(f"Expected a DynamicValue, got {type(value).__name__}")


def _reject_constant(name: str) -> Any:
    raise DecodeError(f"Invalid JSON constant: {name}")


def load_json(text: str | bytes) -> Any:
    """Parse strict JSON text (``NaN`` and ``Infinity`` are rejected).

    Raises:
        DecodeError: If `text` is not valid JSON or is nested too deeply.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise DecodeError("Invalid JSON: nesting too deep") from e


def parse_dynamic(text: str | bytes) -> DynamicValue:
    """Parse JSON text into a ``DynamicValue``."""
    return decode_dynamic(load_json(text))


def dumps_dynamic(value: DynamicValue) -> str:
    """Serialize a ``DynamicValue`` to compact JSON text."""
    return json.dumps(encode_dynamic(value), separators=(",", ":"), allow_nan=False)
