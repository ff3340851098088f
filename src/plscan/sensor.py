# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Two-pass scan orchestration: diagnostics and line metrics, then CPD tokens."""

import concurrent.futures
import logging
from collections.abc import Collection, Iterator, Sequence
from dataclasses import dataclass, field

from plscan.analyzer import Lexer, LexerError, Scanner, ScanError
from plscan.file_lines import FileLinesRecorder, classify_lines
from plscan.filesystem import InputFile
from plscan.issues import DiagnosticLocationResolver
from plscan.model import DiagnosticMessage, token_location
from plscan.persistence import CpdTokenStore
from plscan.progress import DEFAULT_INTERVAL_SECONDS, ProgressReport

logger = logging.getLogger(__name__)


@dataclass
class ScanSummary:
    """Represent counters for one orchestrated scan.

    Attributes:
        file_count: Number of input files.
        issue_count: Number of persisted issues.
        cpd_file_count: Number of files whose CPD tokens were saved.
        errors: Recoverable per-file failures.
    """

    file_count: int = 0
    issue_count: int = 0
    cpd_file_count: int = 0
    errors: list[ScanError] = field(default_factory=list)


class ScanOrchestrator:
    """Drive the scanner, resolver, line recorder and CPD token registration."""

    def __init__(
        self,
        scanner: Scanner,
        resolver: DiagnosticLocationResolver,
        lexer: Lexer,
        cpd_store: CpdTokenStore,
        file_lines: FileLinesRecorder | None = None,
        progress_interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_workers: int = 1,
    ) -> None:
        """Initialize orchestrator.

        Args:
            scanner: Rule engine producing diagnostics per file.
            resolver: Diagnostic to issue resolver.
            lexer: Lexer used for line classification and CPD tokens.
            cpd_store: Duplicate-detection token storage.
            file_lines: Per-line metrics recorder; line metrics are skipped when
                ``None``.
            progress_interval_seconds: Seconds between two progress lines.
            max_workers: Worker threads used for scanner calls.

        Raises:
            ValueError: If ``max_workers`` is not greater than zero.
        """
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        self._scanner = scanner
        self._resolver = resolver
        self._lexer = lexer
        self._cpd_store = cpd_store
        self._file_lines = file_lines
        self._progress_interval_seconds = progress_interval_seconds
        self._max_workers = max_workers

    def execute(self, files: Sequence[InputFile]) -> ScanSummary:
        """Scan every file, then register CPD tokens for every file.

        Files are processed in the given order. A scanner failure cancels
        the progress report and propagates; lexer failures are recorded per
        file and skipped.

        Args:
            files: Input files to analyze.

        Returns:
            Scan counters and recoverable errors.
        """
        summary = ScanSummary(file_count=len(files))
        progress = ProgressReport(
            interval_seconds=self._progress_interval_seconds,
            track_current_file=self._max_workers == 1,
        )
        progress.start(files)
        try:
            for input_file, messages in self._scan_all(files):
                for message in messages:
                    self._resolver.report_issue(input_file, message)
                    summary.issue_count += 1
                self._record_file_lines(input_file, summary)
                progress.next_file()
        except BaseException:
            progress.cancel()
            raise
        progress.stop()

        for input_file in files:
            try:
                self.save_cpd_tokens(input_file)
            except (LexerError, OSError, UnicodeDecodeError) as exc:
                logger.warning(
                    f"Skipping CPD tokens due to lex/read failure "
                    f"(file_path={input_file.key} error={exc})"
                )
                summary.errors.append(
                    ScanError(file_path=input_file.key, phase="cpd", message=str(exc))
                )
                continue
            summary.cpd_file_count += 1

        logger.info(
            f"Scan completed (files={summary.file_count} issues={summary.issue_count} "
            f"cpd_files={summary.cpd_file_count} errors={len(summary.errors)})"
        )
        return summary

    def save_cpd_tokens(self, input_file: InputFile) -> None:
        """Lex one file afresh and register every token for duplicate detection.

        Args:
            input_file: File to tokenize.

        Raises:
            LexerError: If the file cannot be tokenized.
            PersistenceError: If the tokens cannot be saved.
        """
        sink = self._cpd_store.on_file(input_file)
        for token in self._lexer.lex(input_file.contents):
            if token.is_eof:
                continue
            span = token_location(token)
            sink.add_token(
                span.start_line,
                span.start_column,
                span.end_line,
                span.end_column,
                token.value,
            )
        sink.save()

    def _scan_all(
        self, files: Sequence[InputFile]
    ) -> Iterator[tuple[InputFile, Collection[DiagnosticMessage]]]:
        if self._max_workers == 1:
            for input_file in files:
                yield input_file, self._scanner.scan_file(input_file)
            return

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self._max_workers
        ) as executor:
            future_to_file = {
                executor.submit(self._scanner.scan_file, input_file): input_file
                for input_file in files
            }
            for future in concurrent.futures.as_completed(future_to_file):
                yield future_to_file[future], future.result()

    def _record_file_lines(self, input_file: InputFile, summary: ScanSummary) -> None:
        if self._file_lines is None:
            return
        try:
            tokens = self._lexer.lex(input_file.contents)
        except (LexerError, OSError, UnicodeDecodeError) as exc:
            logger.warning(
                f"Skipping line metrics due to lex/read failure "
                f"(file_path={input_file.key} error={exc})"
            )
            summary.errors.append(
                ScanError(file_path=input_file.key, phase="scan", message=str(exc))
            )
            return
        self._file_lines.record(
            input_file.key, classify_lines(tokens), input_file.line_count
        )
