# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Diagnostic to issue location resolution."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from plscan.checks import CheckRegistry
from plscan.filesystem import InputFile
from plscan.model import DiagnosticMessage, Issue, IssueLocation, TextSpan
from plscan.persistence import IssueStore

logger = logging.getLogger(__name__)

NO_COLUMN = -1
NO_END_LINE = 0


@dataclass(frozen=True)
class Accepted:
    """Represent a location that passed validation."""

    location: IssueLocation


@dataclass(frozen=True)
class Rejected:
    """Represent a location refused by validation."""

    reason: str


LocationResult = Accepted | Rejected


def file_location(input_file: InputFile, message: str) -> IssueLocation:
    """Build a location covering the whole file."""
    return IssueLocation(file_key=input_file.key, message=message)


def new_location(
    input_file: InputFile,
    message: str,
    line: int,
    column: int = NO_COLUMN,
    end_line: int = NO_END_LINE,
    end_column: int = NO_COLUMN,
) -> LocationResult:
    """Validate a location against the file it points into.

    ``(line, -1, 0, -1)`` selects the whole line. Any other combination is
    a span whose endpoints must lie inside the file, with the start not
    after the end. A zero-width span marks a position.

    Args:
        input_file: File owning the location.
        message: Text shown at the location.
        line: Start line (1-based).
        column: Start column (0-based), or ``-1`` for a line location.
        end_line: End line (1-based), or ``0`` for a line location.
        end_column: End column (0-based), or ``-1`` for a line location.

    Returns:
        ``Accepted`` with the location, or ``Rejected`` with the reason.
    """
    if column == NO_COLUMN and end_line == NO_END_LINE and end_column == NO_COLUMN:
        if not 1 <= line <= input_file.line_count:
            return Rejected(
                f"line {line} is outside 1..{input_file.line_count} in {input_file.key}"
            )
        span = TextSpan(
            start_line=line,
            start_column=NO_COLUMN,
            end_line=NO_END_LINE,
            end_column=NO_COLUMN,
        )
        return Accepted(
            IssueLocation(file_key=input_file.key, message=message, span=span)
        )

    for position_line, position_column in ((line, column), (end_line, end_column)):
        problem = _check_position(input_file, position_line, position_column)
        if problem is not None:
            return Rejected(problem)
    if (line, column) > (end_line, end_column):
        return Rejected(
            f"start ({line}:{column}) is after end ({end_line}:{end_column})"
        )
    span = TextSpan(
        start_line=line, start_column=column, end_line=end_line, end_column=end_column
    )
    return Accepted(IssueLocation(file_key=input_file.key, message=message, span=span))


def _check_position(input_file: InputFile, line: int, column: int) -> str | None:
    if not 1 <= line <= input_file.line_count:
        return f"line {line} is outside 1..{input_file.line_count} in {input_file.key}"
    length = input_file.line_length(line)
    if not 0 <= column <= length:
        return f"column {column} is outside 0..{length} on line {line}"
    return None


class DiagnosticLocationResolver:
    """Turn diagnostics into persisted issues with validated locations.

    The primary location degrades from the exact span to the whole line and
    then to the whole file; it is never dropped. Secondary locations are
    kept only when their span is accepted.
    """

    def __init__(self, checks: CheckRegistry, store: IssueStore) -> None:
        """Initialize resolver.

        Args:
            checks: Registry mapping checks to rule keys.
            store: Issue storage.
        """
        self._checks = checks
        self._store = store

    def report_issue(self, input_file: InputFile, message: DiagnosticMessage) -> Issue:
        """Resolve and persist one diagnostic.

        Args:
            input_file: File the diagnostic belongs to.
            message: Diagnostic raised by a check.

        Returns:
            The persisted issue.

        Raises:
            UnknownCheckError: If the diagnostic comes from an unregistered check.
            PersistenceError: If the issue cannot be saved.
        """
        rule_key = str(self._checks.rule_key(message.check))
        text = message.get_text()
        issue = Issue(
            rule_key=rule_key,
            cost=message.cost,
            primary=self._resolve_primary(input_file, message, text, rule_key),
            secondary=tuple(self._resolve_secondary(input_file, message, rule_key)),
        )
        self._store.save_issue(issue)
        return issue

    def _resolve_primary(
        self,
        input_file: InputFile,
        message: DiagnosticMessage,
        text: str,
        rule_key: str,
    ) -> IssueLocation:
        if message.line is None:
            return file_location(input_file, text)

        line = message.line
        if message.location is not None:
            span = message.location
            result = new_location(
                input_file,
                text,
                line,
                span.start_column,
                span.end_line,
                span.end_column,
            )
            if isinstance(result, Accepted):
                return result.location
            logger.debug(
                f"Primary location rejected; using line location "
                f"(file_path={input_file.key} rule={rule_key} reason={result.reason})"
            )

        result = new_location(input_file, text, line)
        if isinstance(result, Accepted):
            return result.location
        logger.debug(
            f"Line location rejected; using file location "
            f"(file_path={input_file.key} rule={rule_key} reason={result.reason})"
        )
        return file_location(input_file, text)

    def _resolve_secondary(
        self, input_file: InputFile, message: DiagnosticMessage, rule_key: str
    ) -> Iterator[IssueLocation]:
        for secondary in message.secondary_locations:
            span = secondary.location
            if span is None:
                logger.debug(
                    f"Secondary location has no span; dropped "
                    f"(file_path={input_file.key} rule={rule_key})"
                )
                continue
            result = new_location(
                input_file,
                secondary.get_text(),
                span.start_line,
                span.start_column,
                span.end_line,
                span.end_column,
            )
            if isinstance(result, Rejected):
                logger.debug(
                    f"Secondary location rejected; dropped "
                    f"(file_path={input_file.key} rule={rule_key} "
                    f"reason={result.reason})"
                )
                continue
            yield result.location
