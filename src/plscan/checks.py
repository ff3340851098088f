# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Check registration and rule key lookup."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class UnknownCheckError(LookupError):
    """Represent a diagnostic raised by a check that was never registered."""


@dataclass(frozen=True)
class RuleKey:
    """Identify one rule inside a rule repository."""

    repository: str
    rule: str

    def __str__(self) -> str:
        return f"{self.repository}:{self.rule}"


class CustomRulesDefinition(Protocol):
    """Provide checks from a third-party rule repository."""

    def repository_key(self) -> str:
        """Return the repository key for the provided checks."""

    def checks(self) -> Iterable[object]:
        """Return check instances to register."""


def rule_name(check: object) -> str:
    """Return the rule name declared by a check.

    A check declares its rule through a ``RULE_KEY`` class attribute; the
    class name is used when the attribute is missing.
    """
    declared = getattr(type(check), "RULE_KEY", None)
    if isinstance(declared, str) and declared:
        return declared
    return type(check).__name__


class CheckRegistry:
    """Map check instances to the rule keys they report under."""

    def __init__(self) -> None:
        self._checks: list[object] = []
        self._keys: dict[int, RuleKey] = {}

    def add_checks(
        self, repository_key: str, checks: Iterable[object]
    ) -> "CheckRegistry":
        """Register checks under one repository.

        Args:
            repository_key: Rule repository key.
            checks: Check instances.

        Returns:
            This registry, for chaining.

        Raises:
            ValueError: If ``repository_key`` is empty.
        """
        if not repository_key:
            raise ValueError("repository_key must not be empty")
        for check in checks:
            if id(check) in self._keys:
                logger.debug(
                    f"Check already registered (check={type(check).__name__})"
                )
                continue
            self._checks.append(check)
            self._keys[id(check)] = RuleKey(
                repository=repository_key, rule=rule_name(check)
            )
        return self

    def add_custom_checks(
        self, definitions: Iterable[CustomRulesDefinition] | None
    ) -> "CheckRegistry":
        """Register checks from custom rule definitions; ``None`` is ignored."""
        for definition in definitions or ():
            self.add_checks(definition.repository_key(), definition.checks())
        return self

    def all(self) -> list[object]:
        return list(self._checks)

    def rule_key(self, check: object) -> RuleKey:
        """Return the rule key of a registered check.

        Raises:
            UnknownCheckError: If the check was not registered.
        """
        try:
            return self._keys[id(check)]
        except KeyError:
            raise UnknownCheckError(
                f"Check is not registered: {type(check).__name__}"
            ) from None
