# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for lexical facts, diagnostics and resolved issues."""

import re
from dataclasses import dataclass, field
from typing import Literal

EOF_TYPE = "EOF"

TriviaKind = Literal["comment", "whitespace", "skipped"]

_LINE_BREAK = re.compile(r"\r\n|\n|\r")


@dataclass(frozen=True)
class Trivia:
    """Represent one piece of trivia attached to a token.

    Attributes:
        kind: Trivia category; only ``comment`` trivia count as comment lines.
        line: Physical line of the trivia (1-based).
        value: Raw trivia text.
    """

    kind: TriviaKind
    line: int
    value: str = ""

    @property
    def is_comment(self) -> bool:
        return self.kind == "comment"


@dataclass(frozen=True)
class Token:
    """Represent one lexer token.

    Attributes:
        type: Lexer token type; ``EOF`` marks the end-of-stream sentinel.
        value: Literal token text, possibly spanning several physical lines.
        line: Start line (1-based).
        column: Start column (0-based).
        trivia: Trivia attached in front of the token, in source order.
    """

    type: str
    value: str
    line: int
    column: int
    trivia: tuple[Trivia, ...] = ()

    @property
    def is_eof(self) -> bool:
        return self.type == EOF_TYPE


@dataclass(frozen=True)
class TextSpan:
    """Represent a source range with 1-based lines and 0-based columns."""

    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass
class DiagnosticMessage:
    """Represent one diagnostic produced by a check.

    ``line`` is ``None`` for file or folder level diagnostics. When
    ``location`` is set, ``line`` is implied by it but both are carried.

    Attributes:
        check: Check instance that raised the diagnostic.
        text: Message template, formatted with ``args`` by ``get_text``.
        args: Template arguments.
        cost: Optional remediation cost.
        line: Primary line (1-based), or ``None``.
        location: Primary span, or ``None``.
        secondary_locations: Secondary messages, each with its own span.
    """

    check: object
    text: str
    args: tuple[object, ...] = ()
    cost: float | None = None
    line: int | None = None
    location: TextSpan | None = None
    secondary_locations: list["DiagnosticMessage"] = field(default_factory=list)

    def get_text(self) -> str:
        """Return the message text with its arguments applied."""
        if not self.args:
            return self.text
        return self.text.format(*self.args)

    def secondary(self, location: TextSpan, text: str) -> "DiagnosticMessage":
        """Attach a secondary location.

        Args:
            location: Secondary span.
            text: Message shown at the secondary span.

        Returns:
            This diagnostic, for chaining.
        """
        self.secondary_locations.append(
            DiagnosticMessage(
                check=self.check,
                text=text,
                line=location.start_line,
                location=location,
            )
        )
        return self


@dataclass(frozen=True)
class IssueLocation:
    """Represent a resolved issue location.

    ``span`` is ``None`` for a whole-file location. A line-only location
    keeps ``start_column == -1``, ``end_line == 0`` and ``end_column == -1``.
    """

    file_key: str
    message: str
    span: TextSpan | None = None

    @property
    def is_file_level(self) -> bool:
        return self.span is None

    @property
    def is_line_only(self) -> bool:
        return self.span is not None and self.span.start_column == -1


@dataclass(frozen=True)
class Issue:
    """Represent one diagnostic after location resolution.

    Attributes:
        rule_key: Rendered rule key (``repository:rule``).
        cost: Optional remediation cost.
        primary: Primary location.
        secondary: Secondary locations that passed validation.
    """

    rule_key: str
    cost: float | None
    primary: IssueLocation
    secondary: tuple[IssueLocation, ...] = ()


@dataclass(frozen=True)
class CpdToken:
    """Represent one token registered for duplicate-code detection."""

    line: int
    column: int
    end_line: int
    end_column: int
    text: str


def split_lines(text: str) -> list[str]:
    r"""Split text on ``\r\n``, ``\n`` or a lone ``\r``."""
    return _LINE_BREAK.split(text)


def token_location(token: Token) -> TextSpan:
    """Compute the span covered by a token's literal text.

    Args:
        token: Lexer token.

    Returns:
        Span from the token start to the end of its last text segment.
    """
    segments = split_lines(token.value)
    if len(segments) > 1:
        return TextSpan(
            start_line=token.line,
            start_column=token.column,
            end_line=token.line + len(segments) - 1,
            end_column=len(segments[-1]),
        )
    return TextSpan(
        start_line=token.line,
        start_column=token.column,
        end_line=token.line,
        end_column=token.column + len(token.value),
    )
