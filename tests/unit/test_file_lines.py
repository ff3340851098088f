# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
import re
from pathlib import Path

import pytest

from plscan.file_lines import (
    FileLinesRecorder,
    LineClassification,
    MissingInputFileError,
    classify_lines,
)
from plscan.filesystem import InputFile
from plscan.model import EOF_TYPE, Token, Trivia, token_location
from plscan.persistence import COMMENT_LINES_DATA_KEY, NCLOC_DATA_KEY


class _RecordingContext:
    def __init__(self) -> None:
        self.values: list[tuple[str, int, int]] = []
        self.saved = False

    def set_int_value(self, metric_key: str, line: int, value: int) -> None:
        self.values.append((metric_key, line, value))

    def save(self) -> None:
        self.saved = True


class _RecordingStore:
    def __init__(self) -> None:
        self.contexts: dict[str, _RecordingContext] = {}

    def create_for(self, input_file: InputFile) -> _RecordingContext:
        context = _RecordingContext()
        self.contexts[input_file.key] = context
        return context


class _DictFileSystem:
    def __init__(self, files: list[InputFile]) -> None:
        self._files = {input_file.key: input_file for input_file in files}

    def input_file(self, key: str) -> InputFile | None:
        return self._files.get(key)


class _LineLexer:
    """Split on whitespace; ``--`` comments become trivia of the next token."""

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
                column=len(lines[-1]),
                trivia=tuple(pending),
            )
        )
        return tokens


def _write_input_file(tmp_path: Path, key: str, content: str) -> InputFile:
    path = tmp_path / key
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return InputFile(key=key, path=path)


def _metric(context: _RecordingContext, metric_key: str) -> list[int]:
    return [value for key, _, value in context.values if key == metric_key]


def test_ph1_lines_001_multiline_token_marks_every_line_it_occupies() -> None:
    tokens = [
        Token(type="STRING", value="'first\nsecond\nthird'", line=4, column=2),
        Token(type=EOF_TYPE, value="", line=9, column=0),
    ]

    result = classify_lines(tokens)

    assert result.code_lines == {4, 5, 6}
    assert result.comment_lines == frozenset()


def test_ph1_lines_002_comment_trivia_marks_own_line_independent_of_token() -> None:
    tokens = [
        Token(
            type="WORD",
            value="begin",
            line=3,
            column=0,
            trivia=(
                Trivia(kind="comment", line=1, value="-- header"),
                Trivia(kind="whitespace", line=2, value="\n"),
            ),
        ),
        Token(
            type="WORD",
            value="null;",
            line=3,
            column=6,
            trivia=(Trivia(kind="comment", line=3, value="/* inline */"),),
        ),
    ]

    result = classify_lines(tokens)

    assert result.code_lines == {3}
    assert result.comment_lines == {1, 3}


def test_ph1_lines_003_eof_sentinel_marks_no_code_line() -> None:
    tokens = [
        Token(type="WORD", value="x", line=1, column=0),
        Token(
            type=EOF_TYPE,
            value="",
            line=2,
            column=0,
            trivia=(Trivia(kind="comment", line=2, value="-- tail"),),
        ),
    ]

    result = classify_lines(tokens)

    assert result.code_lines == {1}
    assert result.comment_lines == {2}


def test_ph1_lines_004_flags_cover_exactly_file_length() -> None:
    classification = LineClassification(
        code_lines=frozenset({1, 3, 7}), comment_lines=frozenset({3})
    )

    assert classification.code_flags(4) == [1, 0, 1, 0]
    assert classification.comment_flags(4) == [0, 0, 1, 0]


def test_ph1_lines_005_recorder_writes_one_value_per_line_and_metric(
    tmp_path: Path,
) -> None:
    input_file = _write_input_file(tmp_path, "pkg/body.pkb", "a\nb\nc\nd\ne")
    store = _RecordingStore()
    recorder = FileLinesRecorder(
        file_system=_DictFileSystem([input_file]), store=store
    )
    classification = LineClassification(
        code_lines=frozenset({1, 2}), comment_lines=frozenset({2, 5})
    )

    recorder.record(input_file.key, classification, file_length=5)

    context = store.contexts["pkg/body.pkb"]
    assert context.saved
    assert _metric(context, NCLOC_DATA_KEY) == [1, 1, 0, 0, 0]
    assert _metric(context, COMMENT_LINES_DATA_KEY) == [0, 1, 0, 0, 1]
    assert len(context.values) == 10
    assert {value for _, _, value in context.values} <= {0, 1}


def test_ph1_lines_006_recorder_fails_when_file_cannot_be_resolved() -> None:
    recorder = FileLinesRecorder(
        file_system=_DictFileSystem([]), store=_RecordingStore()
    )

    with pytest.raises(MissingInputFileError):
        recorder.record(
            "missing.sql",
            LineClassification(code_lines=frozenset(), comment_lines=frozenset()),
            file_length=3,
        )


def test_ph1_lines_007_two_line_file_with_trailing_comment_line(
    tmp_path: Path,
) -> None:
    input_file = _write_input_file(
        tmp_path, "query.sql", "select 1 from dual;\n-- only a comment"
    )
    store = _RecordingStore()
    recorder = FileLinesRecorder(
        file_system=_DictFileSystem([input_file]), store=store
    )

    classification = classify_lines(_LineLexer().lex(input_file.contents))
    recorder.record(input_file.key, classification, input_file.line_count)

    context = store.contexts["query.sql"]
    assert _metric(context, NCLOC_DATA_KEY) == [1, 0]
    assert _metric(context, COMMENT_LINES_DATA_KEY) == [0, 1]


def test_ph1_lines_008_line_with_code_and_trailing_comment_is_both() -> None:
    tokens = _LineLexer().lex("x := 1; -- set x\ny := 2;")

    result = classify_lines(tokens)

    assert result.code_lines == {1, 2}
    assert result.comment_lines == {1}


def test_ph1_lines_009_classification_is_fresh_per_stream() -> None:
    first = classify_lines([Token(type="WORD", value="a", line=1, column=0)])
    second = classify_lines([Token(type="WORD", value="b", line=2, column=0)])

    assert first.code_lines == {1}
    assert second.code_lines == {2}


def test_ph1_lines_010_line_breaks_match_cpd_token_span() -> None:
    token = Token(type="STRING", value="'a\rb\r\nc\nd'", line=2, column=7)

    result = classify_lines([token])
    span = token_location(token)

    assert result.code_lines == {2, 3, 4, 5}
    assert span.end_line == max(result.code_lines)
