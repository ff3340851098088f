# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""End-to-end analysis run wiring."""

import logging
from dataclasses import dataclass

from plscan.analyzer import Lexer, Scanner
from plscan.checks import CheckRegistry
from plscan.config import ScanConfig
from plscan.database import SQLiteStore
from plscan.duplication import DuplicationChecker, DuplicationResult
from plscan.file_lines import FileLinesRecorder
from plscan.filesystem import LocalFileSystem
from plscan.issues import DiagnosticLocationResolver
from plscan.sensor import ScanOrchestrator, ScanSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """Represent the outcome of one analysis run."""

    summary: ScanSummary
    duplication: DuplicationResult | None


def run_analysis(
    config: ScanConfig,
    *,
    scanner: Scanner,
    lexer: Lexer,
    checks: CheckRegistry,
) -> AnalysisResult:
    """Analyze every eligible file under the configured root.

    Args:
        config: Run configuration.
        scanner: Rule engine producing diagnostics per file.
        lexer: PL/SQL lexer.
        checks: Registry of the checks the scanner runs.

    Returns:
        Scan counters and, when enabled, duplication findings.

    Raises:
        PersistenceError: If results cannot be stored.
    """
    file_system = LocalFileSystem(
        root=config.root_path, suffixes=config.suffixes, encoding=config.encoding
    )
    store = SQLiteStore(db_path=config.db_path)
    orchestrator = ScanOrchestrator(
        scanner=scanner,
        resolver=DiagnosticLocationResolver(checks=checks, store=store),
        lexer=lexer,
        cpd_store=store,
        file_lines=FileLinesRecorder(file_system=file_system, store=store),
        progress_interval_seconds=config.progress_interval_seconds,
        max_workers=config.max_workers,
    )
    summary = orchestrator.execute(file_system.input_files())

    duplication = None
    if config.detect_duplicates:
        duplication = DuplicationChecker(
            min_tokens=config.cpd_min_tokens,
            fuzzy_threshold=config.fuzzy_threshold,
        ).check(store.load_cpd_tokens())
    logger.info(
        f"Analysis completed (path={config.root_path} db_path={config.db_path} "
        f"files={summary.file_count} issues={summary.issue_count})"
    )
    return AnalysisResult(summary=summary, duplication=duplication)
