# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Input file enumeration for PL/SQL sources."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)

DEFAULT_SUFFIXES: tuple[str, ...] = (
    ".sql",
    ".pkg",
    ".pks",
    ".pkb",
    ".fun",
    ".pcd",
    ".tgg",
    ".prc",
    ".tpb",
    ".trg",
    ".typ",
    ".tab",
    ".tps",
)


@dataclass(frozen=True)
class InputFile:
    """Represent one source file selected for analysis.

    Attributes:
        key: Root-relative POSIX path; the file identity.
        path: Absolute path on disk.
        encoding: Text encoding used to read the file.
    """

    key: str
    path: Path
    encoding: str = "utf-8"

    @cached_property
    def contents(self) -> str:
        """Return the decoded file contents.

        Raises:
            OSError: If the file cannot be read.
            UnicodeDecodeError: If the file does not match its encoding.
        """
        return self.path.read_text(encoding=self.encoding)

    @cached_property
    def lines(self) -> list[str]:
        return [line.rstrip("\r") for line in self.contents.split("\n")]

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line_length(self, line: int) -> int:
        """Return the length of a 1-based line.

        Raises:
            IndexError: If ``line`` is outside the file.
        """
        if line < 1 or line > self.line_count:
            raise IndexError(f"line {line} is outside 1..{self.line_count}")
        return len(self.lines[line - 1])


class LocalFileSystem:
    """Enumerate PL/SQL files beneath a project root."""

    def __init__(
        self,
        root: Path,
        suffixes: tuple[str, ...] = DEFAULT_SUFFIXES,
        encoding: str = "utf-8",
    ) -> None:
        """Initialize the file system view.

        Args:
            root: Project root directory.
            suffixes: Eligible file suffixes, compared case-insensitively.
            encoding: Encoding assigned to every input file.

        Raises:
            ValueError: If ``suffixes`` is empty.
        """
        if not suffixes:
            raise ValueError("suffixes must not be empty")
        self._root = root
        self._suffixes = {suffix.lower() for suffix in suffixes}
        self._encoding = encoding
        self._ignore_spec: pathspec.GitIgnoreSpec | None = None

    @property
    def encoding(self) -> str:
        return self._encoding

    def input_files(self) -> list[InputFile]:
        """List eligible input files in sorted key order.

        Returns:
            Input files whose suffix is eligible and that are not ignored.
        """
        files: list[InputFile] = []
        skipped = 0
        for file_path in sorted(self._root.rglob("*")):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(self._root)
            if ".git" in relative.parts:
                continue
            if file_path.suffix.lower() not in self._suffixes:
                continue
            key = relative.as_posix()
            if self._is_ignored(key):
                skipped += 1
                continue
            files.append(self._make_input_file(key))
        logger.info(
            f"Input files enumerated (root={self._root} files={len(files)} "
            f"ignored={skipped})"
        )
        return files

    def input_file(self, key: str) -> InputFile | None:
        """Resolve a file key to its input file.

        Args:
            key: Root-relative POSIX path.

        Returns:
            The input file, or ``None`` when no eligible file has that key.
        """
        path = self._root / key
        if not path.is_file() or path.suffix.lower() not in self._suffixes:
            return None
        if self._is_ignored(key):
            return None
        return self._make_input_file(key)

    def _make_input_file(self, key: str) -> InputFile:
        return InputFile(
            key=key, path=(self._root / key).resolve(), encoding=self._encoding
        )

    def _is_ignored(self, key: str) -> bool:
        if self._ignore_spec is None:
            self._ignore_spec = _load_ignore_spec(self._root)
        return self._ignore_spec.match_file(key)


def _load_ignore_spec(root: Path) -> pathspec.GitIgnoreSpec:
    """Compile every .gitignore below ``root`` into one root-relative spec.

    Raises:
        OSError: If a .gitignore file cannot be read.
        UnicodeDecodeError: If a .gitignore file is not valid UTF-8.
    """
    patterns: list[str] = []
    for ignore_path in sorted(root.rglob(".gitignore")):
        directory = ignore_path.parent.relative_to(root)
        if ".git" in directory.parts:
            continue
        text = ignore_path.read_text(encoding="utf-8")
        patterns.extend(
            _rebase_pattern(line, directory.as_posix()) for line in text.splitlines()
        )
    return pathspec.GitIgnoreSpec.from_lines(patterns)


def _rebase_pattern(line: str, directory: str) -> str:
    """Rewrite a pattern read from ``directory``/.gitignore for the root.

    A pattern without an inner slash matches at any depth below its
    directory, so it gains a ``**/`` segment; anchored patterns are joined
    to the directory directly.
    """
    stripped = line.strip()
    if directory == "." or not stripped or stripped.startswith("#"):
        return line
    if line.startswith(("\\!", "\\#")):
        return f"{directory}/**/{line}"
    negation, pattern = ("!", line[1:]) if line.startswith("!") else ("", line)
    if "/" in pattern.rstrip("/"):
        return f"{negation}{directory}/{pattern.lstrip('/')}"
    return f"{negation}{directory}/**/{pattern}"
