"""Version ranges and version parsing."""

import re
from dataclasses import dataclass

from packaging.version import InvalidVersion, Version

from .errors import InvalidVersionFormatError, Position

_COMPARATOR = re.compile(r"^(>=|<=|==|>|<|=)\s*(\S.*)$")


def parse_version(
    text: str, position: Position | None = None, key: str | None = None
) -> Version:
    """Parse a single version, raising ``InvalidVersionFormatError`` on failure."""
    try:
        return Version(text.strip())
    except (InvalidVersion, AttributeError):
        raise InvalidVersionFormatError(str(text), position, key) from None


@dataclass(frozen=True)
class VersionRange:
    """A constraint over versions with optional lower and upper bounds.

    Ranges written as a bare version (``1.0``) or with explicit bounds prefer
    the lowest version that satisfies them, so they resolve to their minimum
    whenever it is available. Floating ranges (``*``, ``1.*``) prefer the
    highest satisfying version instead.
    """

    min_version: Version | None = None
    max_version: Version | None = None
    include_min: bool = True
    include_max: bool = False
    float_pattern: str | None = None

    @classmethod
    def any(cls) -> "VersionRange":
        return cls(float_pattern="*")

    @classmethod
    def exact(cls, version: Version) -> "VersionRange":
        return cls(min_version=version, max_version=version, include_min=True, include_max=True)

    @property
    def is_floating(self) -> bool:
        return self.float_pattern is not None

    @property
    def is_exact(self) -> bool:
        return (
            self.min_version is not None
            and self.min_version == self.max_version
            and self.include_min
            and self.include_max
        )

    def satisfies(self, version: Version) -> bool:
        if self.min_version is not None:
            if self.include_min:
                if version < self.min_version:
                    return False
            elif version <= self.min_version:
                return False
        if self.max_version is not None:
            if self.include_max:
                if version > self.max_version:
                    return False
            elif version >= self.max_version:
                return False
        return True

    def is_better_match(self, candidate: Version, current_best: Version | None) -> bool:
        """True when ``candidate`` should replace ``current_best`` for this range."""
        if not self.satisfies(candidate):
            return False
        if current_best is None:
            return True
        if self.is_floating:
            return candidate > current_best
        return candidate < current_best

    def __str__(self) -> str:
        if self.float_pattern is not None:
            return self.float_pattern
        if self.is_exact:
            return f"[{self.min_version}]"
        if self.max_version is None:
            return f"{'>=' if self.include_min else '>'} {self.min_version}"
        if self.min_version is None:
            return f"{'<=' if self.include_max else '<'} {self.max_version}"
        left = "[" if self.include_min else "("
        right = "]" if self.include_max else ")"
        return f"{left}{self.min_version}, {self.max_version}{right}"


def _parse_interval(text: str) -> VersionRange:
    if text[-1] not in "])":
        raise ValueError("unclosed interval")
    inner = text[1:-1]
    if "," not in inner:
        if text[0] != "[" or text[-1] != "]":
            raise ValueError("exact versions must use '[' and ']'")
        return VersionRange.exact(Version(inner.strip()))

    low, high = (part.strip() for part in inner.split(",", 1))
    min_version = Version(low) if low else None
    max_version = Version(high) if high else None
    if min_version is None and max_version is None:
        raise ValueError("interval without bounds")

    # Missing bounds take the defaults so the rendered form re-parses equal.
    include_min = text[0] == "[" if min_version is not None else True
    include_max = text[-1] == "]" and max_version is not None
    if min_version is not None and max_version is not None:
        if min_version > max_version:
            raise ValueError("empty interval")
        if min_version == max_version and not (include_min and include_max):
            raise ValueError("empty interval")
    return VersionRange(min_version, max_version, include_min, include_max)


def _parse_floating(text: str) -> VersionRange:
    prefix = text[:-1]
    if not prefix.endswith("."):
        raise ValueError("floating versions look like '1.*'")
    parts = prefix[:-1].split(".")
    if not all(part.isdigit() for part in parts):
        raise ValueError("floating prefix must be numeric")
    upper = parts[:-1] + [str(int(parts[-1]) + 1)]
    return VersionRange(
        min_version=Version(".".join(parts)),
        max_version=Version(".".join(upper)),
        include_min=True,
        include_max=False,
        float_pattern=text,
    )


def _parse_comparators(text: str) -> VersionRange:
    min_version = max_version = None
    include_min, include_max = True, False

    for clause in text.split(","):
        match = _COMPARATOR.match(clause.strip())
        if not match:
            raise ValueError(f"bad comparator {clause!r}")
        op, version = match.group(1), Version(match.group(2).strip())

        if op in (">=", ">", "==", "="):
            exclusive = op == ">"
            if min_version is None or version > min_version or (
                version == min_version and exclusive
            ):
                min_version, include_min = version, not exclusive
        if op in ("<=", "<", "==", "="):
            exclusive = op == "<"
            if max_version is None or version < max_version or (
                version == max_version and exclusive
            ):
                max_version, include_max = version, not exclusive

    return VersionRange(min_version, max_version, include_min, include_max)


def parse_version_range(
    text: str | None, position: Position | None = None, key: str | None = None
) -> VersionRange:
    """Parse range text.

    Accepted forms: empty or ``*`` (any version), ``1.0`` (at least 1.0),
    ``[1.0]``, ``[1.0, 2.0)`` style intervals, comparator lists such as
    ``>=1.0,<2.0`` and floating prefixes such as ``1.*``.

    Raises:
        InvalidVersionFormatError: the text is not a valid range
    """
    if text is None:
        return VersionRange.any()
    stripped = text.strip()
    if stripped in ("", "*"):
        return VersionRange.any()

    try:
        if stripped[0] in "[(":
            return _parse_interval(stripped)
        if stripped.endswith("*"):
            return _parse_floating(stripped)
        if stripped[0] in "<>=":
            return _parse_comparators(stripped)
        return VersionRange(min_version=Version(stripped))
    except ValueError:
        raise InvalidVersionFormatError(text, position, key) from None
