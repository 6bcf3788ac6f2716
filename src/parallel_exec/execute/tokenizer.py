"""Split a command template into literal and placeholder tokens."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class TemplateError(ValueError):
    """Command template cannot be used to build commands."""


class PlaceholderKind(str, Enum):
    INPUT = "{}"
    NO_EXTENSION = "{.}"
    BASENAME = "{/}"
    DIRNAME = "{//}"
    BASENAME_NO_EXTENSION = "{/.}"
    JOB_NUMBER = "{#}"
    JOB_TOTAL = "{##}"
    SLOT = "{%}"


@dataclass(frozen=True, slots=True)
class Literal:
    text: str


@dataclass(frozen=True, slots=True)
class Placeholder:
    kind: PlaceholderKind


Token = Literal | Placeholder

# Longest alternatives first so "{##}" never matches as "{#}".
_PLACEHOLDER_RE = re.compile(r"\{(##|#|%|//|/\.|/|\.|)\}")


def tokenize(template: str) -> tuple[Token, ...]:
    """Tokenize ``template``; a template without placeholders gets `` {}`` appended."""

    if not template.strip():
        raise TemplateError("Command template is empty.")

    tokens: list[Token] = []
    position = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        if match.start() > position:
            tokens.append(Literal(template[position : match.start()]))
        tokens.append(Placeholder(PlaceholderKind(match.group(0))))
        position = match.end()
    if position < len(template):
        tokens.append(Literal(template[position:]))

    if not any(isinstance(token, Placeholder) for token in tokens):
        tokens.append(Literal(" "))
        tokens.append(Placeholder(PlaceholderKind.INPUT))
    return tuple(tokens)
