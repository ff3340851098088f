# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Scan configuration and logging setup."""

import logging
from dataclasses import dataclass
from pathlib import Path

from rich.logging import RichHandler

from plscan.filesystem import DEFAULT_SUFFIXES
from plscan.progress import DEFAULT_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanConfig:
    """Describe all values needed for one analysis run.

    Attributes:
        root_path: Project root to analyze.
        db_path: SQLite database file receiving the results.
        suffixes: Eligible source file suffixes.
        encoding: Encoding used to read source files.
        progress_interval_seconds: Seconds between two progress log lines.
        max_workers: Worker threads used for scanner calls.
        cpd_min_tokens: Minimum token run reported as an exact duplicate.
        fuzzy_threshold: Inclusive file similarity threshold in [0.0, 1.0].
        detect_duplicates: Whether to run the duplication check after the scan.
    """

    root_path: Path
    db_path: Path
    suffixes: tuple[str, ...] = DEFAULT_SUFFIXES
    encoding: str = "utf-8"
    progress_interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    max_workers: int = 1
    cpd_min_tokens: int = 100
    fuzzy_threshold: float = 0.9
    detect_duplicates: bool = True

    def __post_init__(self) -> None:
        if not self.root_path.is_dir():
            raise ValueError(f"Path does not exist: {self.root_path}")
        if not self.db_path.parent.is_dir():
            raise ValueError(f"Parent directory does not exist: {self.db_path.parent}")
        if not self.suffixes:
            raise ValueError("suffixes must not be empty")
        if self.progress_interval_seconds <= 0:
            raise ValueError("progress_interval_seconds must be > 0")
        if self.max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        if self.cpd_min_tokens <= 0:
            raise ValueError("cpd_min_tokens must be > 0")
        if self.fuzzy_threshold < 0.0 or self.fuzzy_threshold > 1.0:
            raise ValueError("fuzzy_threshold must be between 0.0 and 1.0.")


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
