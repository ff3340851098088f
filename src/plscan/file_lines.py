# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Per-line code and comment classification."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from plscan.analyzer import FileSystem
from plscan.model import Token, split_lines
from plscan.persistence import (
    COMMENT_LINES_DATA_KEY,
    NCLOC_DATA_KEY,
    FileLinesStore,
)

logger = logging.getLogger(__name__)


class MissingInputFileError(RuntimeError):
    """Represent a classified file that cannot be resolved to an input file."""


@dataclass(frozen=True)
class LineClassification:
    """Represent the code and comment lines of one file.

    The two sets are independent: a line holding code and a trailing
    comment belongs to both.
    """

    code_lines: frozenset[int]
    comment_lines: frozenset[int]

    def code_flags(self, file_length: int) -> list[int]:
        return [
            1 if line in self.code_lines else 0 for line in range(1, file_length + 1)
        ]

    def comment_flags(self, file_length: int) -> list[int]:
        return [
            1 if line in self.comment_lines else 0
            for line in range(1, file_length + 1)
        ]


def classify_lines(tokens: Iterable[Token]) -> LineClassification:
    r"""Classify the physical lines touched by a token stream.

    Every line a token's literal text occupies counts as code, including
    the trailing segment of a multi-line literal. Lines break on ``\r\n``,
    ``\n`` or a lone ``\r``, the same rule CPD token spans use. Only
    comment trivia count as comment lines, on the trivia's own line.

    Args:
        tokens: Tokens of one file. The ``EOF`` sentinel marks no code
            line; comments trailing the last token are attached to it and
            still count.

    Returns:
        Code and comment line sets for the file.
    """
    code_lines: set[int] = set()
    comment_lines: set[int] = set()
    for token in tokens:
        if not token.is_eof:
            segments = len(split_lines(token.value))
            code_lines.update(range(token.line, token.line + segments))
        for trivia in token.trivia:
            if trivia.is_comment:
                comment_lines.add(trivia.line)
    return LineClassification(
        code_lines=frozenset(code_lines), comment_lines=frozenset(comment_lines)
    )


class FileLinesRecorder:
    """Persist line classifications as per-line metrics."""

    def __init__(self, file_system: FileSystem, store: FileLinesStore) -> None:
        """Initialize recorder.

        Args:
            file_system: Resolves file keys to input files.
            store: Per-line metrics storage.
        """
        self._file_system = file_system
        self._store = store

    def record(
        self, file_key: str, classification: LineClassification, file_length: int
    ) -> None:
        """Write one 0/1 value per line and metric, then save.

        Lines without tokens or comment trivia are written as 0 for both
        metrics.

        Args:
            file_key: Identity of the classified file.
            classification: Line sets computed for the file.
            file_length: Total number of lines in the file.

        Raises:
            MissingInputFileError: If ``file_key`` does not resolve to an input file.
            PersistenceError: If the metrics record cannot be saved.
        """
        input_file = self._file_system.input_file(file_key)
        if input_file is None:
            raise MissingInputFileError(
                f"Input file is missing for a classified file: {file_key}"
            )
        context = self._store.create_for(input_file)
        code_flags = classification.code_flags(file_length)
        comment_flags = classification.comment_flags(file_length)
        for line in range(1, file_length + 1):
            context.set_int_value(NCLOC_DATA_KEY, line, code_flags[line - 1])
            context.set_int_value(
                COMMENT_LINES_DATA_KEY, line, comment_flags[line - 1]
            )
        context.save()
        logger.debug(
            f"File lines recorded (file_path={file_key} lines={file_length} "
            f"code={len(classification.code_lines)} "
            f"comments={len(classification.comment_lines)})"
        )
