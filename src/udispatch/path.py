"""For path parameters."""
from re import compile
from urllib.parse import unquote

from attrs import frozen

from .errors import InvalidPatternError

SEPARATOR = "/"

_curly_path_pattern = compile(r"{([a-zA-Z_][a-zA-Z0-9_]*)}")
_placeholder_segment = compile(r"^{([a-zA-Z_][a-zA-Z0-9_]*)}$")


@frozen
class LiteralSegment:
    text: str


@frozen
class Placeholder:
    name: str


Segment = LiteralSegment | Placeholder


@frozen
class PathPattern:
    """A parsed route template, like `/user/{id}`."""

    raw: str
    segments: tuple[Segment, ...]

    @property
    def path_params(self) -> list[str]:
        return [s.name for s in self.segments if isinstance(s, Placeholder)]

    @property
    def specificity(self) -> tuple[int, ...]:
        """Lower sorts first; a literal beats a placeholder at the same position."""
        return tuple(0 if isinstance(s, LiteralSegment) else 1 for s in self.segments)

    @property
    def shape(self) -> str:
        """The pattern with placeholder names erased."""
        return SEPARATOR.join(
            s.text if isinstance(s, LiteralSegment) else "{}" for s in self.segments
        )

    def __str__(self) -> str:
        return self.raw


def parse_curly_path_params(path_str: str) -> list[str]:
    return _curly_path_pattern.findall(path_str)


def parse_pattern(raw: str) -> PathPattern:
    if not raw.startswith(SEPARATOR):
        raise InvalidPatternError(raw, f"must start with {SEPARATOR!r}")
    segments: list[Segment] = []
    seen: set[str] = set()
    for part in raw.split(SEPARATOR):
        if m := _placeholder_segment.match(part):
            name = m.group(1)
            if name in seen:
                raise InvalidPatternError(raw, f"placeholder {name!r} repeats")
            seen.add(name)
            segments.append(Placeholder(name))
        elif "{" in part or "}" in part:
            raise InvalidPatternError(
                raw, f"segment {part!r} must be a literal or a single placeholder"
            )
        else:
            segments.append(LiteralSegment(part))
    return PathPattern(raw, tuple(segments))


def match(pattern: PathPattern | str, path: str) -> dict[str, str] | None:
    """Match a concrete path against a pattern.

    The path is split before percent-decoding, so an encoded `/` (`%2F`) stays
    inside its segment.

    :return: The bound placeholder values, or `None` on no match.
    """
    if isinstance(pattern, str):
        pattern = parse_pattern(pattern)
    parts = path.split(SEPARATOR)
    if len(parts) != len(pattern.segments):
        return None
    res = {}
    for segment, part in zip(pattern.segments, parts):
        if isinstance(segment, Placeholder):
            res[segment.name] = unquote(part)
        elif segment.text != unquote(part):
            return None
    return res
