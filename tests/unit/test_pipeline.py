# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
import re
from pathlib import Path

from plscan.checks import CheckRegistry
from plscan.config import ScanConfig
from plscan.database import SQLiteStore
from plscan.filesystem import InputFile
from plscan.model import EOF_TYPE, DiagnosticMessage, TextSpan, Token, Trivia
from plscan.persistence import COMMENT_LINES_DATA_KEY, NCLOC_DATA_KEY
from plscan.pipeline import run_analysis


class SelectStarCheck:
    RULE_KEY = "SelectAllColumns"


class _SelectStarScanner:
    """Flag every ``*`` found in a file, with a bogus span on the second hit."""

    def __init__(self, check: SelectStarCheck) -> None:
        self._check = check

    def scan_file(self, input_file: InputFile) -> list[DiagnosticMessage]:
        messages: list[DiagnosticMessage] = []
        for line_no, line in enumerate(input_file.lines, start=1):
            column = line.find("*")
            if column < 0:
                continue
            end_column = column + 1 if not messages else column - 1
            messages.append(
                DiagnosticMessage(
                    check=self._check,
                    text="Avoid SELECT *",
                    cost=5.0,
                    line=line_no,
                    location=TextSpan(line_no, column, line_no, end_column),
                )
            )
        return messages


class _WordLexer:
    def lex(self, content: str) -> list[Token]:
        tokens: list[Token] = []
        pending: list[Trivia] = []
        lines = content.split("\n")
        for line_no, line in enumerate(lines, start=1):
            code, separator, comment = line.partition("--")
            for match in re.finditer(r"\S+", code):
                tokens.append(
                    Token(
                        type="WORD",
                        value=match.group(),
                        line=line_no,
                        column=match.start(),
                        trivia=tuple(pending),
                    )
                )
                pending = []
            if separator:
                pending.append(
                    Trivia(kind="comment", line=line_no, value=separator + comment)
                )
        tokens.append(
            Token(
                type=EOF_TYPE,
                value="",
                line=len(lines),
                column=0,
                trivia=tuple(pending),
            )
        )
        return tokens


def test_ph6_run_001_run_analysis_persists_metrics_issues_and_tokens(
    tmp_path: Path, write_source
) -> None:
    project_root = tmp_path / "project"
    db_path = tmp_path / "plscan.sqlite"
    query = "-- report\nselect * from emp;\n\nselect * from dept;"
    write_source("project/report.sql", query)
    write_source("project/copy.sql", query)
    write_source("project/notes.txt", "select * from nowhere;")
    check = SelectStarCheck()

    result = run_analysis(
        ScanConfig(
            root_path=project_root,
            db_path=db_path,
            progress_interval_seconds=60,
            cpd_min_tokens=3,
            fuzzy_threshold=0.9,
        ),
        scanner=_SelectStarScanner(check),
        lexer=_WordLexer(),
        checks=CheckRegistry().add_checks("plsql", [check]),
    )

    assert result.summary.file_count == 2
    assert result.summary.issue_count == 4
    assert result.summary.cpd_file_count == 2

    store = SQLiteStore(db_path=db_path)
    assert store.load_line_metrics("report.sql") == {
        COMMENT_LINES_DATA_KEY: [1, 0, 0, 0],
        NCLOC_DATA_KEY: [0, 1, 0, 1],
    }
    issues = store.load_issues()
    assert {issue.rule_key for issue in issues} == {"plsql:SelectAllColumns"}
    copy_spans = [
        issue.primary.span for issue in issues if issue.primary.file_key == "copy.sql"
    ]
    assert copy_spans == [
        TextSpan(2, 7, 2, 8),
        TextSpan(4, -1, 0, -1),
    ]
    assert set(store.load_cpd_tokens()) == {"copy.sql", "report.sql"}

    assert result.duplication is not None
    blocks = {
        (
            block.token_count,
            frozenset(
                (occurrence.file_path, occurrence.start_line, occurrence.end_line)
                for occurrence in block.occurrences
            ),
        )
        for block in result.duplication.exact_blocks
    }
    assert (8, frozenset({("copy.sql", 2, 4), ("report.sql", 2, 4)})) in blocks
    assert len(result.duplication.fuzzy_groups) == 1


def test_ph6_run_002_run_analysis_can_skip_duplication(
    tmp_path: Path, write_source
) -> None:
    project_root = tmp_path / "project"
    write_source("project/only.sql", "select 1 from dual;")

    result = run_analysis(
        ScanConfig(
            root_path=project_root,
            db_path=tmp_path / "plscan.sqlite",
            detect_duplicates=False,
        ),
        scanner=_SelectStarScanner(SelectStarCheck()),
        lexer=_WordLexer(),
        checks=CheckRegistry(),
    )

    assert result.duplication is None
    assert result.summary.issue_count == 0
