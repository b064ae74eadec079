"""
String templates with `${...}` placeholders.

A template is compiled once, when an endpoint is registered, and rendered once
per call against that call's argument array and variable scope.

Placeholder forms:
    ${0}                positional argument
    ${name}             named variable (call scope, then configuration)
    ${user.name}        attribute or mapping-key access on the resolved value
    ${headers['X-Id']}  subscript access; integer subscripts are allowed too
    ${token?}           optional: renders "" when the name cannot be resolved
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .exceptions import TemplateResolutionError, VariableNotFoundError

if TYPE_CHECKING:
    from .scope import VariableScope

_OPEN = "${"
_CLOSE = "}"

_ROOT_RE = re.compile(r"\s*(?:(?P<index>\d+)|(?P<name>[A-Za-z_]\w*))")
_ACCESSOR_RE = re.compile(
    r"""\s*(?:
        \.(?P<attr>[A-Za-z_]\w*|\d+)
        |\[\s*(?:'(?P<sq>[^']*)'|"(?P<dq>[^"]*)"|(?P<num>-?\d+))\s*\]
    )""",
    re.VERBOSE,
)


def to_text(value: Any) -> str:
    """Default textual conversion used for placeholders and scalar fields."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return str(value)


# =============================================================================
# Template Parts
# =============================================================================


@dataclass(frozen=True, slots=True)
class Accessor:
    """One `.attr` or `[key]` step applied to a resolved value."""

    key: str | int
    subscript: bool = False

    def apply(self, value: Any) -> Any:
        if self.subscript:
            return value[self.key]
        if isinstance(value, Mapping):
            return value[self.key]
        if isinstance(self.key, int):
            return value[self.key]
        return getattr(value, self.key)


@dataclass(frozen=True, slots=True)
class Placeholder:
    """A compiled `${...}` expression."""

    source: str
    index: int | None = None
    name: str | None = None
    accessors: tuple[Accessor, ...] = ()
    optional: bool = False

    def resolve(self, args: Sequence[Any], scope: VariableScope, *, required: bool) -> Any:
        if self.index is not None:
            if self.index >= len(args):
                raise TemplateResolutionError(
                    f"Placeholder ${{{self.source}}} references argument {self.index}, "
                    f"but only {len(args)} argument(s) were supplied"
                )
            value = args[self.index]
        else:
            assert self.name is not None
            try:
                value = scope.resolve(self.name)
            except VariableNotFoundError:
                if self.optional or not required:
                    return None
                raise

        for accessor in self.accessors:
            if value is None:
                return None
            try:
                value = accessor.apply(value)
            except (AttributeError, KeyError, IndexError, TypeError) as e:
                if self.optional:
                    return None
                raise TemplateResolutionError(
                    f"Cannot resolve ${{{self.source}}}: {type(e).__name__}: {e}",
                    cause=e,
                ) from e
        return value


def _parse_expression(expression: str) -> Placeholder:
    source = expression.strip()
    body = source
    optional = body.endswith("?")
    if optional:
        body = body[:-1].rstrip()

    match = _ROOT_RE.match(body)
    if match is None:
        raise TemplateResolutionError(f"Invalid placeholder expression: ${{{source}}}")

    index = int(match["index"]) if match["index"] is not None else None
    name = match["name"]
    accessors: list[Accessor] = []
    pos = match.end()
    while pos < len(body):
        step = _ACCESSOR_RE.match(body, pos)
        if step is None or step.end() == pos:
            raise TemplateResolutionError(f"Invalid placeholder expression: ${{{source}}}")
        if step["attr"] is not None:
            attr = step["attr"]
            accessors.append(Accessor(int(attr) if attr.isdigit() else attr))
        elif step["num"] is not None:
            accessors.append(Accessor(int(step["num"]), subscript=True))
        else:
            key = step["sq"] if step["sq"] is not None else step["dq"]
            accessors.append(Accessor(key, subscript=True))
        pos = step.end()
        if body[pos:].strip() == "":
            break

    return Placeholder(
        source=source,
        index=index,
        name=name,
        accessors=tuple(accessors),
        optional=optional,
    )


# =============================================================================
# Template
# =============================================================================


@dataclass(frozen=True, slots=True)
class Template:
    """A compiled template; immutable and safe to share between threads."""

    text: str
    parts: tuple[str | Placeholder, ...]

    @property
    def placeholders(self) -> tuple[Placeholder, ...]:
        return tuple(p for p in self.parts if isinstance(p, Placeholder))

    @property
    def variable_names(self) -> frozenset[str]:
        return frozenset(p.name for p in self.placeholders if p.name is not None)

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    def render(
        self,
        args: Sequence[Any],
        scope: VariableScope,
        *,
        required: bool = True,
    ) -> str:
        """
        Render the template for one call.

        Args:
            args: The call's positional argument array.
            scope: Resolves named placeholders.
            required: When False, unresolvable names render as "" instead of raising.

        Raises:
            TemplateResolutionError: Positional index out of range or a failed accessor.
            VariableNotFoundError: A required name resolves in no scope.
        """
        if len(self.parts) == 1 and isinstance(self.parts[0], str):
            return self.parts[0]
        chunks: list[str] = []
        for part in self.parts:
            if isinstance(part, str):
                chunks.append(part)
            else:
                chunks.append(to_text(part.resolve(args, scope, required=required)))
        return "".join(chunks)

    def __str__(self) -> str:
        return self.text


def _find_close(text: str, pos: int) -> int:
    """Index of the `}` closing a placeholder, skipping quoted subscript keys; -1 if none."""
    quote: str | None = None
    for i in range(pos, len(text)):
        ch = text[i]
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == _CLOSE:
            return i
    return -1


def compile_template(text: str | None) -> Template:
    """
    Compile `text` into a reusable `Template`.

    Raises:
        TemplateResolutionError: On an unterminated or invalid placeholder.
    """
    text = text or ""
    parts: list[str | Placeholder] = []
    pos = 0
    while True:
        start = text.find(_OPEN, pos)
        if start < 0:
            if pos < len(text):
                parts.append(text[pos:])
            break
        if start > pos:
            parts.append(text[pos:start])
        end = _find_close(text, start + len(_OPEN))
        if end < 0:
            raise TemplateResolutionError(f"Unterminated placeholder in template: {text!r}")
        parts.append(_parse_expression(text[start + len(_OPEN) : end]))
        pos = end + len(_CLOSE)
    return Template(text=text, parts=tuple(parts))


EMPTY_TEMPLATE = compile_template("")
