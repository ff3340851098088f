# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Duplication detection over registered CPD token streams."""

import hashlib
import logging
from dataclasses import dataclass
from typing import Final

import Levenshtein

from plscan.model import CpdToken

logger = logging.getLogger(__name__)

_WINDOW_SEPARATOR: Final = "\x00"

_Start = tuple[str, int]


@dataclass(frozen=True)
class DuplicateOccurrence:
    """Represent one place where a duplicated block occurs."""

    file_path: str
    start_line: int
    end_line: int
    start_index: int


@dataclass(frozen=True)
class DuplicateBlock:
    """Represent one run of tokens repeated at two or more places."""

    group_id: int
    token_count: int
    occurrences: list[DuplicateOccurrence]


@dataclass(frozen=True)
class SimilarFile:
    """Represent one member of a fuzzy file group."""

    group_id: int
    file_path: str
    best_ratio: float
    avg_ratio: float


@dataclass(frozen=True)
class FileSimilarityGroup:
    """Represent files whose token texts are near-identical."""

    group_id: int
    members: list[SimilarFile]
    pair_count: int


@dataclass(frozen=True)
class DuplicationResult:
    """Represent duplication findings for one run."""

    exact_blocks: list[DuplicateBlock]
    fuzzy_groups: list[FileSimilarityGroup]


@dataclass(frozen=True)
class _PairEdge:
    left: str
    right: str
    ratio: float


class DuplicationChecker:
    """Find duplicated token runs and near-identical files."""

    def __init__(self, min_tokens: int = 100, fuzzy_threshold: float = 0.9) -> None:
        """Initialize checker.

        Args:
            min_tokens: Minimum run length reported as an exact duplicate.
            fuzzy_threshold: Inclusive file similarity threshold in [0.0, 1.0].

        Raises:
            ValueError: If ``min_tokens`` is not positive or the threshold is
                outside [0.0, 1.0].
        """
        if min_tokens <= 0:
            raise ValueError("min_tokens must be > 0")
        if fuzzy_threshold < 0.0 or fuzzy_threshold > 1.0:
            raise ValueError("fuzzy_threshold must be between 0.0 and 1.0.")
        self._min_tokens = min_tokens
        self._fuzzy_threshold = fuzzy_threshold

    def check(self, tokens_by_file: dict[str, list[CpdToken]]) -> DuplicationResult:
        """Compute exact blocks and fuzzy file groups.

        Args:
            tokens_by_file: Registered tokens per file, in source order.

        Returns:
            Duplication results.
        """
        result = DuplicationResult(
            exact_blocks=self._build_exact_blocks(tokens_by_file),
            fuzzy_groups=self._build_fuzzy_groups(tokens_by_file),
        )
        logger.info(
            f"Duplication check completed (files={len(tokens_by_file)} "
            f"exact_blocks={len(result.exact_blocks)} "
            f"fuzzy_groups={len(result.fuzzy_groups)})"
        )
        return result

    def _build_exact_blocks(
        self, tokens_by_file: dict[str, list[CpdToken]]
    ) -> list[DuplicateBlock]:
        """Build maximal duplicated runs from fixed-size window hashes.

        Every pair of equal windows is extended to the right as long as the
        texts agree; pairs whose preceding tokens also agree are skipped, so
        each reported run is maximal on both sides.
        """
        texts = {
            file_path: [token.text for token in tokens]
            for file_path, tokens in tokens_by_file.items()
        }
        by_hash: dict[str, list[_Start]] = {}
        for file_path in sorted(texts):
            file_texts = texts[file_path]
            for index in range(len(file_texts) - self._min_tokens + 1):
                digest = _digest(file_texts[index : index + self._min_tokens])
                by_hash.setdefault(digest, []).append((file_path, index))

        runs: dict[tuple[str, int], set[_Start]] = {}
        for starts in by_hash.values():
            for position, left in enumerate(starts):
                for right in starts[position + 1 :]:
                    if _same_text(texts, left, right, offset=-1):
                        continue
                    length = self._min_tokens
                    while _same_text(texts, left, right, offset=length):
                        length += 1
                    file_path, index = left
                    run = texts[file_path][index : index + length]
                    run_key = (_digest(run), length)
                    runs.setdefault(run_key, set()).update((left, right))

        blocks: list[DuplicateBlock] = []
        for group_id, ((_, length), starts) in enumerate(runs.items(), start=1):
            occurrences = [
                DuplicateOccurrence(
                    file_path=file_path,
                    start_line=tokens_by_file[file_path][index].line,
                    end_line=tokens_by_file[file_path][index + length - 1].end_line,
                    start_index=index,
                )
                for file_path, index in sorted(starts)
            ]
            blocks.append(
                DuplicateBlock(
                    group_id=group_id, token_count=length, occurrences=occurrences
                )
            )
        return blocks

    def _build_fuzzy_groups(
        self, tokens_by_file: dict[str, list[CpdToken]]
    ) -> list[FileSimilarityGroup]:
        """Build fuzzy groups of files by joined token text similarity."""
        joined = {
            file_path: " ".join(token.text for token in tokens)
            for file_path, tokens in tokens_by_file.items()
            if tokens
        }
        file_paths = sorted(joined)
        edges: list[_PairEdge] = []
        neighbors: dict[str, set[str]] = {file_path: set() for file_path in file_paths}
        for index, left in enumerate(file_paths):
            for right in file_paths[index + 1 :]:
                ratio = float(Levenshtein.ratio(joined[left], joined[right]))
                if ratio < self._fuzzy_threshold:
                    continue
                edges.append(_PairEdge(left=left, right=right, ratio=ratio))
                neighbors[left].add(right)
                neighbors[right].add(left)

        components: list[list[str]] = []
        visited: set[str] = set()
        for root in file_paths:
            if root in visited or not neighbors[root]:
                continue
            stack = [root]
            component: list[str] = []
            visited.add(root)
            while stack:
                current = stack.pop()
                component.append(current)
                for linked in neighbors[current]:
                    if linked in visited:
                        continue
                    visited.add(linked)
                    stack.append(linked)
            components.append(sorted(component))

        groups: list[FileSimilarityGroup] = []
        for group_id, component in enumerate(components, start=1):
            component_set = set(component)
            component_edges = [
                edge
                for edge in edges
                if edge.left in component_set and edge.right in component_set
            ]
            members: list[SimilarFile] = []
            for file_path in component:
                ratios = [
                    edge.ratio
                    for edge in component_edges
                    if file_path in (edge.left, edge.right)
                ]
                members.append(
                    SimilarFile(
                        group_id=group_id,
                        file_path=file_path,
                        best_ratio=max(ratios),
                        avg_ratio=sum(ratios) / len(ratios),
                    )
                )
            groups.append(
                FileSimilarityGroup(
                    group_id=group_id,
                    members=members,
                    pair_count=len(component_edges),
                )
            )
        return groups


def _digest(texts: list[str]) -> str:
    window = _WINDOW_SEPARATOR.join(texts)
    return hashlib.md5(window.encode("utf-8")).hexdigest()  # noqa: S324


def _same_text(
    texts: dict[str, list[str]], left: _Start, right: _Start, offset: int
) -> bool:
    """Check whether both starts have the same token text at ``offset``."""
    left_texts = texts[left[0]]
    right_texts = texts[right[0]]
    left_index = left[1] + offset
    right_index = right[1] + offset
    if min(left_index, right_index) < 0:
        return False
    if left_index >= len(left_texts) or right_index >= len(right_texts):
        return False
    return left_texts[left_index] == right_texts[right_index]
