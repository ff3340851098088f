# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Persistence SQLite implementation for line metrics, issues and CPD tokens."""

import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path

from plscan.filesystem import InputFile
from plscan.model import CpdToken, Issue, IssueLocation, TextSpan
from plscan.persistence import PersistenceError

logger = logging.getLogger(__name__)

_Writer = Callable[[sqlite3.Connection], None]


class SQLiteFileLinesContext:
    """Buffer per-line metric values for one file until ``save``."""

    def __init__(self, store: "SQLiteStore", file_key: str) -> None:
        self._store = store
        self._file_key = file_key
        self._values: dict[tuple[str, int], int] = {}

    def set_int_value(self, metric_key: str, line: int, value: int) -> None:
        self._values[(metric_key, line)] = value

    def save(self) -> None:
        """Replace the stored metric rows of the file.

        Raises:
            PersistenceError: If the write fails.
        """
        rows = [
            (self._file_key, metric_key, line, value)
            for (metric_key, line), value in sorted(self._values.items())
        ]

        def write(connection: sqlite3.Connection) -> None:
            connection.execute(
                "DELETE FROM line_metrics WHERE file_key = ?", (self._file_key,)
            )
            connection.executemany(
                "INSERT INTO line_metrics (file_key, metric_key, line, value) "
                "VALUES (?, ?, ?, ?)",
                rows,
            )

        self._store.execute_write(
            write, context=f"line_metrics file_path={self._file_key}"
        )


class SQLiteCpdTokenSink:
    """Buffer duplicate-detection tokens for one file until ``save``."""

    def __init__(self, store: "SQLiteStore", file_key: str) -> None:
        self._store = store
        self._file_key = file_key
        self._tokens: list[CpdToken] = []

    def add_token(
        self, line: int, column: int, end_line: int, end_column: int, text: str
    ) -> None:
        self._tokens.append(
            CpdToken(
                line=line,
                column=column,
                end_line=end_line,
                end_column=end_column,
                text=text,
            )
        )

    def save(self) -> None:
        """Replace the stored tokens of the file.

        Raises:
            PersistenceError: If the write fails.
        """
        rows = [
            (
                self._file_key,
                ordinal,
                token.line,
                token.column,
                token.end_line,
                token.end_column,
                token.text,
            )
            for ordinal, token in enumerate(self._tokens)
        ]

        def write(connection: sqlite3.Connection) -> None:
            connection.execute(
                "DELETE FROM cpd_tokens WHERE file_key = ?", (self._file_key,)
            )
            connection.executemany(
                "INSERT INTO cpd_tokens ("
                "file_key, ordinal, line, start_column, end_line, end_column, text"
                ") VALUES (?, ?, ?, ?, ?, ?, ?)",
                rows,
            )

        self._store.execute_write(
            write, context=f"cpd_tokens file_path={self._file_key}"
        )


class SQLiteStore:
    """Persist analysis results to a SQLite database."""

    def __init__(self, db_path: Path) -> None:
        """Initialize persistence backend.

        Args:
            db_path: SQLite database file path.
        """
        self._db_path = db_path
        self._schema_ready = False

    def create_for(self, input_file: InputFile) -> SQLiteFileLinesContext:
        return SQLiteFileLinesContext(store=self, file_key=input_file.key)

    def on_file(self, input_file: InputFile) -> SQLiteCpdTokenSink:
        return SQLiteCpdTokenSink(store=self, file_key=input_file.key)

    def save_issue(self, issue: Issue) -> None:
        """Persist one issue and its secondary locations atomically.

        Args:
            issue: Resolved issue.

        Raises:
            PersistenceError: If schema setup or write operations fail.
        """

        def write(connection: sqlite3.Connection) -> None:
            cursor = connection.execute(
                "INSERT INTO issues (rule_key, cost) VALUES (?, ?)",
                (issue.rule_key, issue.cost),
            )
            row_id = cursor.lastrowid
            if row_id is None:
                raise sqlite3.DatabaseError("SQLite did not return an issue id.")
            locations = [("primary", 0, issue.primary)] + [
                ("secondary", ordinal, location)
                for ordinal, location in enumerate(issue.secondary)
            ]
            connection.executemany(
                "INSERT INTO issue_locations ("
                "issue_id, role, ordinal, file_key, message, "
                "start_line, start_column, end_line, end_column"
                ") VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (int(row_id), role, ordinal, *_location_row(location))
                    for role, ordinal, location in locations
                ],
            )

        self.execute_write(write, context=f"issue rule={issue.rule_key}")

    def load_line_metrics(self, file_key: str) -> dict[str, list[int]]:
        """Load per-line metric vectors of one file, ordered by line."""
        metrics: dict[str, list[int]] = {}
        for metric_key, value in self._read(
            "SELECT metric_key, value FROM line_metrics "
            "WHERE file_key = ? ORDER BY metric_key, line",
            (file_key,),
        ):
            metrics.setdefault(metric_key, []).append(value)
        return metrics

    def load_issues(self) -> list[Issue]:
        """Load all issues in insertion order."""
        issue_rows = self._read("SELECT id, rule_key, cost FROM issues ORDER BY id")
        location_rows = self._read(
            "SELECT issue_id, role, file_key, message, "
            "start_line, start_column, end_line, end_column "
            "FROM issue_locations ORDER BY issue_id, role, ordinal"
        )
        primary: dict[int, IssueLocation] = {}
        secondary: dict[int, list[IssueLocation]] = {}
        for issue_id, role, file_key, message, *span_values in location_rows:
            span = None if span_values[0] is None else TextSpan(*span_values)
            location = IssueLocation(file_key=file_key, message=message, span=span)
            if role == "primary":
                primary[issue_id] = location
            else:
                secondary.setdefault(issue_id, []).append(location)
        return [
            Issue(
                rule_key=rule_key,
                cost=cost,
                primary=primary[issue_id],
                secondary=tuple(secondary.get(issue_id, [])),
            )
            for issue_id, rule_key, cost in issue_rows
        ]

    def load_cpd_tokens(self) -> dict[str, list[CpdToken]]:
        """Load CPD tokens per file, in file key and registration order."""
        tokens: dict[str, list[CpdToken]] = {}
        for file_key, line, column, end_line, end_column, text in self._read(
            "SELECT file_key, line, start_column, end_line, end_column, text "
            "FROM cpd_tokens ORDER BY file_key, ordinal"
        ):
            tokens.setdefault(file_key, []).append(
                CpdToken(
                    line=line,
                    column=column,
                    end_line=end_line,
                    end_column=end_column,
                    text=text,
                )
            )
        return tokens

    def execute_write(self, writer: _Writer, context: str) -> None:
        """Run ``writer`` in one transaction, rolling back on failure.

        Raises:
            PersistenceError: If schema setup or the write fails.
        """
        connection = sqlite3.connect(self._db_path)
        try:
            self._ensure_schema(connection=connection)
            connection.execute("BEGIN")
            writer(connection)
            connection.commit()
        except sqlite3.DatabaseError as exc:
            connection.rollback()
            logger.warning(
                f"SQLite persistence failed (db_path={self._db_path} {context} "
                f"error={exc})"
            )
            raise PersistenceError(str(exc)) from exc
        finally:
            connection.close()

    def _read(self, query: str, params: tuple[object, ...] = ()) -> list[tuple]:
        connection = sqlite3.connect(self._db_path)
        try:
            self._ensure_schema(connection=connection)
            return connection.execute(query, params).fetchall()
        except sqlite3.DatabaseError as exc:
            logger.warning(
                f"SQLite read failed (db_path={self._db_path} error={exc})"
            )
            raise PersistenceError(str(exc)) from exc
        finally:
            connection.close()

    def _ensure_schema(self, connection: sqlite3.Connection) -> None:
        """Create required tables and indexes when missing.

        Args:
            connection: Open SQLite connection.
        """
        if self._schema_ready:
            return
        connection.execute(
            "CREATE TABLE IF NOT EXISTS line_metrics ("
            "file_key TEXT NOT NULL, "
            "metric_key TEXT NOT NULL, "
            "line INTEGER NOT NULL, "
            "value INTEGER NOT NULL, "
            "PRIMARY KEY (file_key, metric_key, line)"
            ")"
        )
        connection.execute(
            "CREATE TABLE IF NOT EXISTS issues ("
            "id INTEGER PRIMARY KEY, "
            "rule_key TEXT NOT NULL, "
            "cost REAL"
            ")"
        )
        connection.execute(
            "CREATE TABLE IF NOT EXISTS issue_locations ("
            "id INTEGER PRIMARY KEY, "
            "issue_id INTEGER NOT NULL REFERENCES issues(id), "
            "role TEXT NOT NULL, "
            "ordinal INTEGER NOT NULL, "
            "file_key TEXT NOT NULL, "
            "message TEXT NOT NULL, "
            "start_line INTEGER, "
            "start_column INTEGER, "
            "end_line INTEGER, "
            "end_column INTEGER"
            ")"
        )
        connection.execute(
            "CREATE TABLE IF NOT EXISTS cpd_tokens ("
            "file_key TEXT NOT NULL, "
            "ordinal INTEGER NOT NULL, "
            "line INTEGER NOT NULL, "
            "start_column INTEGER NOT NULL, "
            "end_line INTEGER NOT NULL, "
            "end_column INTEGER NOT NULL, "
            "text TEXT NOT NULL, "
            "PRIMARY KEY (file_key, ordinal)"
            ")"
        )
        connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_issue_locations_issue_id "
            "ON issue_locations(issue_id)"
        )
        connection.execute(
            "CREATE INDEX IF NOT EXISTS idx_issue_locations_file_key "
            "ON issue_locations(file_key)"
        )
        connection.commit()
        self._schema_ready = True


def _location_row(
    location: IssueLocation,
) -> tuple[str, str, int | None, int | None, int | None, int | None]:
    span = location.span
    if span is None:
        return (location.file_key, location.message, None, None, None, None)
    return (
        location.file_key,
        location.message,
        span.start_line,
        span.start_column,
        span.end_line,
        span.end_column,
    )
