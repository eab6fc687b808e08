"""JSON value model and the recursive-descent parser that builds it."""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, TextIO

from .errors import (
    InvalidNumberFormatError,
    JsonSyntaxError,
    NumberOverflowError,
    Position,
)
from .tokenizer import JsonToken, JsonTokenizer, JsonTokenType

_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
MAX_DEPTH = 256


@dataclass(frozen=True)
class JsonValue:
    """Base of all JSON values. Positions never take part in equality."""

    position: Position | None = field(default=None, compare=False, kw_only=True)

    def to_python(self) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class JsonNull(JsonValue):
    def to_python(self) -> None:
        return None


@dataclass(frozen=True)
class JsonBoolean(JsonValue):
    value: bool

    def to_python(self) -> bool:
        return self.value


@dataclass(frozen=True)
class JsonString(JsonValue):
    value: str

    def __str__(self) -> str:
        return self.value

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class JsonNumber(JsonValue):
    """A number that keeps its source text.

    The text is validated and converted to a double on construction so that
    malformed or out-of-range numbers are reported at their own position.
    """

    raw: str
    double: float = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        if not _NUMBER_PATTERN.fullmatch(self.raw):
            raise InvalidNumberFormatError(self.raw, self.position)
        parsed = float(self.raw)
        if math.isinf(parsed):
            raise NumberOverflowError(self.raw, self.position)
        object.__setattr__(self, "double", parsed)

    @classmethod
    def from_number(cls, number: int | float, position: Position | None = None) -> "JsonNumber":
        """Build a number using locale-invariant formatting."""
        if isinstance(number, bool):
            raise TypeError("booleans are not JSON numbers")
        if isinstance(number, float) and not math.isfinite(number):
            raise ValueError(f"{number!r} cannot be represented in JSON")
        return cls(repr(number) if isinstance(number, float) else str(number), position=position)

    @property
    def is_integer(self) -> bool:
        return not any(ch in self.raw for ch in ".eE")

    def as_int(self) -> int:
        if self.is_integer:
            return int(self.raw)
        return int(self.double)

    def to_python(self) -> int | float:
        return int(self.raw) if self.is_integer else self.double


@dataclass(frozen=True)
class JsonArray(JsonValue):
    items: tuple[JsonValue, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> JsonValue:
        return self.items[index]

    def __iter__(self) -> Iterator[JsonValue]:
        return iter(self.items)

    def to_python(self) -> list:
        return [item.to_python() for item in self.items]


@dataclass(frozen=True)
class JsonObject(JsonValue):
    """An ordered JSON object with lenient typed accessors.

    Accessors return ``None`` (or the given default) when a key is absent or
    holds a different kind of value; they never raise on a mismatch.
    """

    data: dict[str, JsonValue] = field(default_factory=dict)
    key_positions: dict[str, Position] = field(default_factory=dict, compare=False, repr=False)

    @property
    def keys(self) -> list[str]:
        return list(self.data)

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def key_position(self, key: str) -> Position | None:
        return self.key_positions.get(key)

    def value(self, key: str) -> JsonValue | None:
        return self.data.get(key)

    def value_as_object(self, key: str) -> "JsonObject | None":
        value = self.data.get(key)
        return value if isinstance(value, JsonObject) else None

    def value_as_array(self, key: str) -> JsonArray | None:
        value = self.data.get(key)
        return value if isinstance(value, JsonArray) else None

    def value_as_string(self, key: str) -> str | None:
        value = self.data.get(key)
        return value.value if isinstance(value, JsonString) else None

    def value_as_number(self, key: str) -> JsonNumber | None:
        value = self.data.get(key)
        return value if isinstance(value, JsonNumber) else None

    def value_as_boolean(self, key: str, default: bool = False) -> bool:
        value = self.data.get(key)
        return value.value if isinstance(value, JsonBoolean) else default

    def value_as_nullable_boolean(self, key: str) -> bool | None:
        value = self.data.get(key)
        return value.value if isinstance(value, JsonBoolean) else None

    def value_as_string_array(self, key: str) -> list[str | None] | None:
        """Project an array of strings; non-string elements become ``None``."""
        value = self.data.get(key)
        if not isinstance(value, JsonArray):
            return None
        return [item.value if isinstance(item, JsonString) else None for item in value]

    def to_python(self) -> dict:
        return {key: value.to_python() for key, value in self.data.items()}


def from_python(data: Any) -> JsonValue:
    """Convert plain Python data (dict/list/str/number/bool/None) to values."""
    if data is None:
        return JsonNull()
    if isinstance(data, JsonValue):
        return data
    if isinstance(data, bool):
        return JsonBoolean(data)
    if isinstance(data, (int, float)):
        return JsonNumber.from_number(data)
    if isinstance(data, str):
        return JsonString(data)
    if isinstance(data, dict):
        return JsonObject({str(key): from_python(value) for key, value in data.items()})
    if isinstance(data, (list, tuple)):
        return JsonArray(tuple(from_python(item) for item in data))
    raise TypeError(f"Cannot convert {type(data).__name__} to a JSON value")


def _describe(token: JsonToken) -> str:
    if token.type is JsonTokenType.STRING:
        return f"string '{token.value}'"
    if token.type is JsonTokenType.NUMBER:
        return f"number {token.value}"
    if token.type is JsonTokenType.EOL:
        return "end of input"
    return f"'{token.type.value}'"


class JsonDeserializer:
    """Recursive-descent parser over a :class:`JsonTokenizer`."""

    def deserialize(self, reader: TextIO | str) -> JsonValue:
        tokenizer = JsonTokenizer(reader)
        value = self._read_value(tokenizer, tokenizer.read(), 0)

        tail = tokenizer.read()
        if tail.type is not JsonTokenType.EOL:
            raise JsonSyntaxError(
                f"Unexpected {_describe(tail)} after the top-level value", tail.position
            )
        return value

    def _read_value(self, tokenizer: JsonTokenizer, token: JsonToken, depth: int) -> JsonValue:
        token_type = token.type
        if token_type in (JsonTokenType.LEFT_CURLY_BRACKET, JsonTokenType.LEFT_SQUARE_BRACKET):
            if depth >= MAX_DEPTH:
                raise JsonSyntaxError("Maximum nesting depth exceeded", token.position)
            if token_type is JsonTokenType.LEFT_CURLY_BRACKET:
                return self._read_object(tokenizer, token, depth + 1)
            return self._read_array(tokenizer, token, depth + 1)
        if token_type is JsonTokenType.STRING:
            return JsonString(token.value, position=token.position)
        if token_type is JsonTokenType.NUMBER:
            return JsonNumber(token.value, position=token.position)
        if token_type is JsonTokenType.TRUE:
            return JsonBoolean(True, position=token.position)
        if token_type is JsonTokenType.FALSE:
            return JsonBoolean(False, position=token.position)
        if token_type is JsonTokenType.NULL:
            return JsonNull(position=token.position)
        raise JsonSyntaxError(f"Expected a value but found {_describe(token)}", token.position)

    def _read_object(self, tokenizer: JsonTokenizer, opening: JsonToken, depth: int) -> JsonObject:
        data: dict[str, JsonValue] = {}
        key_positions: dict[str, Position] = {}

        token = tokenizer.read()
        if token.type is JsonTokenType.RIGHT_CURLY_BRACKET:
            return JsonObject(data, key_positions, position=opening.position)

        while True:
            if token.type is not JsonTokenType.STRING:
                raise JsonSyntaxError(
                    f"Expected a property name but found {_describe(token)}", token.position
                )
            key = token.value
            key_positions[key] = token.position

            colon = tokenizer.read()
            if colon.type is not JsonTokenType.COLON:
                raise JsonSyntaxError(
                    f"Expected ':' after '{key}' but found {_describe(colon)}", colon.position
                )
            data[key] = self._read_value(tokenizer, tokenizer.read(), depth)

            token = tokenizer.read()
            if token.type is JsonTokenType.RIGHT_CURLY_BRACKET:
                return JsonObject(data, key_positions, position=opening.position)
            if token.type is not JsonTokenType.COMMA:
                raise JsonSyntaxError(
                    f"Expected ',' or '}}' but found {_describe(token)}", token.position
                )
            token = tokenizer.read()

    def _read_array(self, tokenizer: JsonTokenizer, opening: JsonToken, depth: int) -> JsonArray:
        items: list[JsonValue] = []

        token = tokenizer.read()
        if token.type is JsonTokenType.RIGHT_SQUARE_BRACKET:
            return JsonArray(tuple(items), position=opening.position)

        while True:
            items.append(self._read_value(tokenizer, token, depth))

            token = tokenizer.read()
            if token.type is JsonTokenType.RIGHT_SQUARE_BRACKET:
                return JsonArray(tuple(items), position=opening.position)
            if token.type is not JsonTokenType.COMMA:
                raise JsonSyntaxError(
                    f"Expected ',' or ']' but found {_describe(token)}", token.position
                )
            token = tokenizer.read()
            if token.type is JsonTokenType.RIGHT_SQUARE_BRACKET:
                raise JsonSyntaxError("Trailing ',' before ']'", token.position)


def parse(text: str) -> JsonValue:
    """Parse JSON text into a value tree."""
    return JsonDeserializer().deserialize(text)


def load(reader: TextIO) -> JsonValue:
    """Parse JSON from an open text stream."""
    return JsonDeserializer().deserialize(reader)
