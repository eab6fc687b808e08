"""JSON tokenizer that records a line/column position for every token."""

import io
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, TextIO

from .errors import (
    IllegalCharacterError,
    IllegalTrailingCharacterError,
    InvalidEscapeError,
    InvalidUnicodeEscapeError,
    Position,
    UnrecognizedLiteralError,
    UnterminatedStringError,
)


class JsonTokenType(Enum):
    """Kinds of lexical tokens."""

    LEFT_CURLY_BRACKET = "{"
    RIGHT_CURLY_BRACKET = "}"
    LEFT_SQUARE_BRACKET = "["
    RIGHT_SQUARE_BRACKET = "]"
    COLON = ":"
    COMMA = ","
    STRING = "string"
    NUMBER = "number"
    TRUE = "true"
    FALSE = "false"
    NULL = "null"
    EOL = "end of input"


@dataclass(frozen=True)
class JsonToken:
    """A token and where it starts.

    ``value`` holds the decoded text of a string token and the verbatim
    source text of a number token; it is ``None`` for everything else.
    """

    type: JsonTokenType
    position: Position
    value: str | None = None


_STRUCTURAL = {
    "{": JsonTokenType.LEFT_CURLY_BRACKET,
    "}": JsonTokenType.RIGHT_CURLY_BRACKET,
    "[": JsonTokenType.LEFT_SQUARE_BRACKET,
    "]": JsonTokenType.RIGHT_SQUARE_BRACKET,
    ":": JsonTokenType.COLON,
    ",": JsonTokenType.COMMA,
}

_LITERALS = {
    "t": ("true", JsonTokenType.TRUE),
    "f": ("false", JsonTokenType.FALSE),
    "n": ("null", JsonTokenType.NULL),
}

_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_WHITESPACE = frozenset(" \t\r\n")
_LITERAL_TERMINATORS = frozenset("}],\r\n \t")
_NUMBER_CHARS = frozenset("0123456789.eE")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _join_surrogates(text: str) -> str:
    """Combine UTF-16 surrogate pairs produced by consecutive \\u escapes."""
    if not any("\ud800" <= ch <= "\udfff" for ch in text):
        return text
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")


class JsonTokenizer:
    """Turns a character stream into JSON tokens, one ``read()`` at a time.

    The source is consumed exactly once, left to right. Once the end of input
    has been reported every further ``read()`` reports it again.
    """

    def __init__(self, reader: TextIO | str):
        if isinstance(reader, str):
            reader = io.StringIO(reader)
        self._reader = reader
        self._pending: str | None = None
        self._line = 1
        self._column = 0
        self._end: JsonToken | None = None

    def __iter__(self) -> Iterator[JsonToken]:
        """Yield tokens up to and including the end-of-input token."""
        while True:
            token = self.read()
            yield token
            if token.type is JsonTokenType.EOL:
                return

    def read(self) -> JsonToken:
        if self._end is not None:
            return self._end

        ch = self._next_char()
        while ch in _WHITESPACE:
            ch = self._next_char()

        position = self._position()
        if ch == "":
            self._end = JsonToken(JsonTokenType.EOL, position)
            return self._end

        if ch in _STRUCTURAL:
            return JsonToken(_STRUCTURAL[ch], position)
        if ch == '"':
            return JsonToken(JsonTokenType.STRING, position, self._read_string(position))
        if ch in _LITERALS:
            literal, token_type = _LITERALS[ch]
            self._read_literal(literal)
            return JsonToken(token_type, position)
        if ch == "-" or _is_digit(ch):
            return JsonToken(JsonTokenType.NUMBER, position, self._read_number(ch))

        raise IllegalCharacterError(ch, position)

    def _position(self) -> Position:
        return Position(self._line, self._column)

    def _peek(self) -> str:
        if self._pending is None:
            self._pending = self._reader.read(1)
        return self._pending

    def _next_char(self) -> str:
        """Consume one character; '' at end of input. CR is dropped."""
        while True:
            ch = self._peek()
            self._pending = None
            if ch == "\r":
                continue
            if ch == "\n":
                self._line += 1
                self._column = 0
            elif ch:
                self._column += 1
            return ch

    def _read_literal(self, literal: str) -> None:
        for expected in literal[1:]:
            if self._peek() != expected:
                raise UnrecognizedLiteralError(literal, self._position())
            self._next_char()

        tail = self._peek()
        if tail and tail not in _LITERAL_TERMINATORS:
            raise IllegalTrailingCharacterError(tail, literal, self._position())

    def _read_number(self, first: str) -> str:
        # Grammar is checked when the value is built, not here.
        chars = [first]
        while True:
            nxt = self._peek()
            if nxt and nxt in _NUMBER_CHARS:
                chars.append(self._next_char())
            elif nxt in ("+", "-") and chars[-1] in ("e", "E"):
                chars.append(self._next_char())
            else:
                return "".join(chars)

    def _read_string(self, opening: Position) -> str:
        chars: list[str] = []
        while True:
            ch = self._next_char()
            if ch in ("", "\n"):
                raise UnterminatedStringError(opening)
            if ch == '"':
                break
            if ch != "\\":
                chars.append(ch)
                continue

            escape_position = self._position()
            code = self._next_char()
            if code in ("", "\n"):
                raise UnterminatedStringError(opening)
            if code == "u":
                chars.append(self._read_unicode_escape(escape_position))
            elif code in _ESCAPES:
                chars.append(_ESCAPES[code])
            else:
                raise InvalidEscapeError("\\" + code, escape_position)

        return _join_surrogates("".join(chars))

    def _read_unicode_escape(self, position: Position) -> str:
        digits = ""
        for _ in range(4):
            ch = self._next_char()
            if ch not in _HEX_DIGITS:
                raise InvalidUnicodeEscapeError(digits + ch, position)
            digits += ch
        return chr(int(digits, 16))
