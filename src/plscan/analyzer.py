# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Collaborator interfaces consumed by the scan orchestrator."""

from collections.abc import Collection, Sequence
from dataclasses import dataclass
from typing import Literal, Protocol

from plscan.filesystem import InputFile
from plscan.model import DiagnosticMessage, Token

ScanPhase = Literal["scan", "cpd"]


class LexerError(RuntimeError):
    """Represent a lexer failure for one file."""


@dataclass(frozen=True)
class ScanError:
    """Represent a recoverable failure for one file in one scan phase."""

    file_path: str
    phase: ScanPhase
    message: str


class Lexer(Protocol):
    """Tokenize PL/SQL source text."""

    def lex(self, content: str) -> Sequence[Token]:
        """Tokenize source content.

        Args:
            content: Full file contents.

        Returns:
            Tokens in source order, terminated by an ``EOF`` sentinel.

        Raises:
            LexerError: If the content cannot be tokenized.
        """


class Scanner(Protocol):
    """Run rule checks against one file."""

    def scan_file(self, input_file: InputFile) -> Collection[DiagnosticMessage]:
        """Return the diagnostics raised for one file (possibly empty)."""


class FileSystem(Protocol):
    """Resolve file keys to input files."""

    def input_file(self, key: str) -> InputFile | None:
        """Return the input file for ``key``, or ``None`` when unknown."""
