"""Ordered decision tables evaluated top to bottom."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

C = TypeVar("C")
O = TypeVar("O")


@dataclass(frozen=True)
class Rule(Generic[C, O]):
    """One row of a decision table: if predicate(context) then outcome."""

    name: str
    predicate: Callable[[C], bool]
    outcome: O


def first_match(rules: Sequence[Rule[C, O]], context: C) -> Rule[C, O]:
    """
    Return the first rule whose predicate holds for context.

    Tables must end with a catch-all row; a table that falls through is a
    programming error.
    """
    for rule in rules:
        if rule.predicate(context):
            return rule
    raise LookupError(f"No rule matched; table of {len(rules)} rules lacks a fallback")


def always(_: object) -> bool:
    """Catch-all predicate for the last row of a table."""
    return True
