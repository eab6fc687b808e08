"""Error types raised while reading manifests, lock files and resolving graphs."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Position:
    """Line/column location in JSON source text."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


class LocksmithError(Exception):
    """Base class for every error raised by locksmith."""


class ProviderError(LocksmithError):
    """A provider failed while looking up a library.

    The graph walker treats this as an unresolved lookup for that provider
    and moves on to the next one in the chain.
    """


# JSON reading


class JsonError(LocksmithError):
    """An error tied to a location in JSON source text."""

    def __init__(self, message: str, position: Position | None = None):
        self.message = message
        self.position = position
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} ({self.position})"


class LexicalError(JsonError):
    """The tokenizer met input it cannot turn into a token."""


class IllegalCharacterError(LexicalError):
    def __init__(self, character: str, position: Position):
        self.character = character
        super().__init__(f"Illegal character {character!r}", position)


class UnterminatedStringError(LexicalError):
    def __init__(self, position: Position):
        super().__init__("Unterminated string", position)


class InvalidEscapeError(LexicalError):
    def __init__(self, sequence: str, position: Position):
        self.sequence = sequence
        super().__init__(f"Invalid escape sequence {sequence!r}", position)


class InvalidUnicodeEscapeError(LexicalError):
    def __init__(self, digits: str, position: Position):
        self.digits = digits
        super().__init__(f"Invalid unicode escape '\\u{digits}'", position)


class UnrecognizedLiteralError(LexicalError):
    def __init__(self, literal: str, position: Position):
        self.literal = literal
        super().__init__(f"Unrecognized literal, expected '{literal}'", position)


class IllegalTrailingCharacterError(LexicalError):
    def __init__(self, character: str, literal: str, position: Position):
        self.character = character
        self.literal = literal
        super().__init__(
            f"Illegal character {character!r} after literal '{literal}'", position
        )


class JsonSyntaxError(JsonError):
    """Tokens are valid but do not form a well-structured document."""


class JsonValueError(JsonError):
    """A value could not be constructed from otherwise valid tokens."""


class InvalidNumberFormatError(JsonValueError):
    def __init__(self, raw: str, position: Position | None):
        self.raw = raw
        super().__init__(f"Invalid number format '{raw}'", position)


class NumberOverflowError(JsonValueError):
    def __init__(self, raw: str, position: Position | None):
        self.raw = raw
        super().__init__(f"Number '{raw}' is out of range", position)


class InvalidVersionFormatError(JsonValueError):
    def __init__(self, text: str, position: Position | None = None, key: str | None = None):
        self.text = text
        self.key = key
        if key:
            message = f"Invalid version '{text}' for '{key}'"
        else:
            message = f"Invalid version '{text}'"
        super().__init__(message, position)


# Resolution


class ResolutionError(LocksmithError):
    """A resolution run failed as a whole."""


class DependencyNotFoundError(ResolutionError):
    def __init__(self, dependency, requirers: list):
        self.dependency = dependency
        self.requirers = list(requirers)
        chain = " -> ".join(str(r) for r in self.requirers)
        message = f"Unable to locate {dependency}"
        if chain:
            message += f" (required by {chain})"
        super().__init__(message)


class CyclicDependencyError(ResolutionError):
    def __init__(self, cycle: list):
        self.cycle = list(cycle)
        path = " -> ".join(str(identity) for identity in self.cycle)
        super().__init__(f"Cycle detected: {path}")


class VersionConflictError(ResolutionError):
    def __init__(self, name: str, constraints: list):
        self.name = name
        self.constraints = list(constraints)
        details = ", ".join(f"{requirer} requires {rng}" for requirer, rng in self.constraints)
        super().__init__(f"Version conflict for {name}: {details}")


class ResolutionCancelledError(ResolutionError):
    def __init__(self, message: str = "Resolution was cancelled"):
        super().__init__(message)


class LockedLockFileError(ResolutionError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Lock file {path} is locked but out of date with its project")
