"""Render JSON value trees back to text."""

from .values import (
    JsonArray,
    JsonBoolean,
    JsonNull,
    JsonNumber,
    JsonObject,
    JsonString,
    JsonValue,
)

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def escape_string(text: str) -> str:
    """Quote ``text`` using only escapes the tokenizer understands."""
    parts = ['"']
    for ch in text:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])
        elif ch < " " or "\ud800" <= ch <= "\udfff":
            parts.append(f"\\u{ord(ch):04x}")
        else:
            parts.append(ch)
    parts.append('"')
    return "".join(parts)


class JsonWriter:
    """Pretty-prints values with a fixed indent.

    Numbers are written from their raw text so that reading the output back
    yields the same text.
    """

    def __init__(self, indent: int = 2):
        self.indent = indent

    def write(self, value: JsonValue) -> str:
        parts: list[str] = []
        self._write(value, 0, parts)
        return "".join(parts)

    def _write(self, value: JsonValue, depth: int, parts: list[str]) -> None:
        if isinstance(value, JsonObject):
            self._write_object(value, depth, parts)
        elif isinstance(value, JsonArray):
            self._write_array(value, depth, parts)
        elif isinstance(value, JsonString):
            parts.append(escape_string(value.value))
        elif isinstance(value, JsonNumber):
            parts.append(value.raw)
        elif isinstance(value, JsonBoolean):
            parts.append("true" if value.value else "false")
        elif isinstance(value, JsonNull):
            parts.append("null")
        else:
            raise TypeError(f"Cannot write {type(value).__name__}")

    def _newline(self, depth: int) -> str:
        return "\n" + " " * (self.indent * depth)

    def _write_object(self, value: JsonObject, depth: int, parts: list[str]) -> None:
        if not value.data:
            parts.append("{}")
            return
        parts.append("{")
        for index, (key, item) in enumerate(value.data.items()):
            if index:
                parts.append(",")
            parts.append(self._newline(depth + 1))
            parts.append(escape_string(key))
            parts.append(": ")
            self._write(item, depth + 1, parts)
        parts.append(self._newline(depth))
        parts.append("}")

    def _write_array(self, value: JsonArray, depth: int, parts: list[str]) -> None:
        if not value.items:
            parts.append("[]")
            return
        parts.append("[")
        for index, item in enumerate(value.items):
            if index:
                parts.append(",")
            parts.append(self._newline(depth + 1))
            self._write(item, depth + 1, parts)
        parts.append(self._newline(depth))
        parts.append("]")


def dumps(value: JsonValue, indent: int = 2) -> str:
    return JsonWriter(indent=indent).write(value)
