"""
validatebag -- Outcome Aggregation

Fan-out helper for rules that evaluate many independent items (posLists,
points, URLs, ...). A submitter sees every defect of one kind in a single
pass instead of one at a time.
"""

from __future__ import annotations

from collections.abc import Iterable

from validatebag.systems.validation.types import (
    SUCCESS,
    RuleFatal,
    RuleOutcome,
    RuleViolation,
)


def number_messages(messages: Iterable[str]) -> str:
    """Render messages as "(1) first\\n(2) second" in the given order."""
    return "\n".join(f"({index}) {message}" for index, message in enumerate(messages, start=1))


def collect_results(outcomes: Iterable[RuleOutcome]) -> RuleOutcome:
    """
    Fold independently evaluated sub-outcomes into one.

    All succeed -> SUCCESS. The first RuleFatal is returned as-is and stops
    consumption of the iterable. Otherwise every RuleViolation is listed,
    numbered from 1 in evaluation order, in one composite violation.
    """
    messages: list[str] = []
    for outcome in outcomes:
        if isinstance(outcome, RuleFatal):
            return outcome
        if isinstance(outcome, RuleViolation):
            messages.append(outcome.message)
    if not messages:
        return SUCCESS
    return RuleViolation(number_messages(messages))
