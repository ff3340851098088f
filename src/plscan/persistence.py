# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Persistence contracts."""

import logging
from typing import Final, Protocol

from plscan.filesystem import InputFile
from plscan.model import Issue

logger = logging.getLogger(__name__)

NCLOC_DATA_KEY: Final = "ncloc_data"
COMMENT_LINES_DATA_KEY: Final = "comment_lines_data"


class PersistenceError(RuntimeError):
    """Represent a fatal persistence operation failure."""


class FileLinesContext(Protocol):
    """Collect per-line metric values for one file."""

    def set_int_value(self, metric_key: str, line: int, value: int) -> None:
        """Set one metric value for a 1-based line."""

    def save(self) -> None:
        """Persist all collected values.

        Raises:
            PersistenceError: If the write fails.
        """


class FileLinesStore(Protocol):
    def create_for(self, input_file: InputFile) -> FileLinesContext:
        """Create an empty per-line metrics record for one file."""


class IssueStore(Protocol):
    def save_issue(self, issue: Issue) -> None:
        """Persist one resolved issue.

        Raises:
            PersistenceError: If the write fails.
        """


class CpdTokenSink(Protocol):
    """Collect duplicate-detection tokens for one file."""

    def add_token(
        self, line: int, column: int, end_line: int, end_column: int, text: str
    ) -> None:
        """Register one token span and its literal text."""

    def save(self) -> None:
        """Persist all registered tokens.

        Raises:
            PersistenceError: If the write fails.
        """


class CpdTokenStore(Protocol):
    def on_file(self, input_file: InputFile) -> CpdTokenSink:
        """Create an empty token sink for one file."""
