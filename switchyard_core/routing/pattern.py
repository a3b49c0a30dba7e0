"""Path Pattern - Route template compilation.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from switchyard_core.errors import InvalidPatternError

DEFAULT_CONSTRAINT = "[^/]+"

_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class Segment:
    """One path segment: a literal or a parameter."""

    value: str
    is_param: bool = False
    constraint: str = DEFAULT_CONSTRAINT
    optional: bool = False

    def to_regex(self) -> str:
        if not self.is_param:
            return "/" + re.escape(self.value)
        group = f"(?P<{self.value}>{self.constraint})"
        if self.optional:
            return f"(?:/{group})?"
        return "/" + group


@dataclass(frozen=True)
class CompiledPattern:
    """Compiled, immutable form of a route template.

    Supports:
    - Literal segments: /users
    - Parameters: /users/{id}
    - Constrained parameters: /users/{id:\\d+}
    - Optional parameters: /users/{id}/{tab?}
    """

    template: str
    segments: Tuple[Segment, ...]
    source: str
    regex: re.Pattern = field(repr=False, compare=False)

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(s.value for s in self.segments if s.is_param)

    @property
    def optional_params(self) -> FrozenSet[str]:
        return frozenset(s.value for s in self.segments if s.is_param and s.optional)

    @property
    def static_count(self) -> int:
        """Number of literal segments."""
        return sum(1 for s in self.segments if not s.is_param)

    @property
    def is_root(self) -> bool:
        return not self.segments

    def match(self, path: str) -> Optional[Dict[str, Optional[str]]]:
        """Match a concrete path.

        Returns:
            Dict of parameters if the whole path matches, None otherwise.
            Declared optional parameters are always present, None when
            they were not supplied.
        """
        m = self.regex.fullmatch(path)
        if m is None:
            return None
        # Non-participating groups come back as None, so optional keys stay present
        return m.groupdict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompiledPattern":
        """Rebuild a pattern from to_dict() output."""
        try:
            segments = tuple(Segment(**s) for s in data["segments"])
            return cls(
                template=data["template"],
                segments=segments,
                source=data["source"],
                regex=re.compile(data["source"]),
            )
        except (KeyError, TypeError, re.error) as e:
            raise InvalidPatternError(str(data.get("template", "")), f"bad cached pattern: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Data-only description, suitable for caching."""
        return {
            "template": self.template,
            "source": self.source,
            "segments": [
                {
                    "value": s.value,
                    "is_param": s.is_param,
                    "constraint": s.constraint,
                    "optional": s.optional,
                }
                for s in self.segments
            ],
        }


def split_template(template: str) -> List[str]:
    """Split a template on "/" outside of braces, dropping empty parts."""
    parts: List[str] = []
    current: List[str] = []
    depth = 0

    for char in template:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                raise InvalidPatternError(template, "unbalanced '}'")
        if char == "/" and depth == 0:
            if current:
                parts.append("".join(current))
            current = []
            continue
        current.append(char)

    if depth != 0:
        raise InvalidPatternError(template, "unbalanced '{'")
    if current:
        parts.append("".join(current))
    return parts


class PathCompiler:
    """Compiles route templates into CompiledPattern objects.

    Compilation has no side effects; results are memoised per template.
    """

    def __init__(self):
        self._cache: Dict[str, CompiledPattern] = {}
        self._lock = threading.Lock()

    def compile(self, template: str) -> CompiledPattern:
        """Compile a template (cached)."""
        cached = self._cache.get(template)
        if cached is not None:
            return cached

        compiled = self._compile(template)
        with self._lock:
            self._cache[template] = compiled
        return compiled

    def _compile(self, template: str) -> CompiledPattern:
        segments = tuple(
            self._parse_segment(template, part) for part in split_template(template)
        )

        seen = set()
        for segment in segments:
            if segment.is_param:
                if segment.value in seen:
                    raise InvalidPatternError(
                        template, f"duplicate parameter {segment.value!r}"
                    )
                seen.add(segment.value)

        if not segments:
            source = "/"
        else:
            source = "".join(s.to_regex() for s in segments)
            if all(s.is_param and s.optional for s in segments):
                # Every segment may be omitted, so the root path must match too
                source = f"(?:{source}|/)"

        try:
            regex = re.compile(source)
        except re.error as e:
            raise InvalidPatternError(template, f"bad constraint regex: {e}") from e

        return CompiledPattern(
            template=template,
            segments=segments,
            source=source,
            regex=regex,
        )

    def _parse_segment(self, template: str, part: str) -> Segment:
        if not (part.startswith("{") and part.endswith("}")):
            if "{" in part or "}" in part:
                raise InvalidPatternError(
                    template, f"segment {part!r} mixes literal text and a parameter"
                )
            return Segment(value=part)

        inner = part[1:-1]
        if ":" in inner:
            name, constraint = inner.split(":", 1)
            if not constraint:
                raise InvalidPatternError(template, f"empty constraint in {part!r}")
        else:
            name, constraint = inner, DEFAULT_CONSTRAINT

        optional = name.endswith("?")
        if optional:
            name = name[:-1]

        if not _PARAM_NAME.match(name):
            raise InvalidPatternError(template, f"invalid parameter name {name!r}")

        try:
            re.compile(constraint)
        except re.error as e:
            raise InvalidPatternError(
                template, f"bad constraint regex for {name!r}: {e}"
            ) from e

        return Segment(value=name, is_param=True, constraint=constraint, optional=optional)


_default_compiler = PathCompiler()


def compile_pattern(template: str) -> CompiledPattern:
    """Compile a route template with the shared compiler."""
    return _default_compiler.compile(template)


def placeholder_name(placeholder: str) -> Tuple[str, bool]:
    """Return (name, optional) for a "{...}" placeholder body."""
    name = placeholder.split(":", 1)[0]
    if name.endswith("?"):
        return name[:-1], True
    return name, False


__all__ = [
    "DEFAULT_CONSTRAINT",
    "Segment",
    "CompiledPattern",
    "PathCompiler",
    "compile_pattern",
    "split_template",
    "placeholder_name",
]
