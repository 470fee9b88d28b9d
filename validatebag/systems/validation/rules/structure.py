"""
validatebag -- Bag Structure Rules

Presence of mandatory directories and files, bag-info.txt element counts and
values, and text encoding of optional tag files.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime

from validatebag.systems.validation.target import TargetBag, ensure_bag_relative
from validatebag.systems.validation.types import SUCCESS, RuleCheck, RuleOutcome, violation


# ─── Files and directories ────────────────────────────────────────


def contains_dir(relative: str) -> RuleCheck:
    path = ensure_bag_relative(relative)

    def check(t: TargetBag) -> RuleOutcome:
        if not t.resolve(path).is_dir():
            return violation(f"Mandatory directory '{path}' not found in bag.")
        return SUCCESS

    return check


def contains_file(relative: str) -> RuleCheck:
    path = ensure_bag_relative(relative)

    def check(t: TargetBag) -> RuleOutcome:
        if not t.resolve(path).is_file():
            return violation(f"Mandatory file '{path}' not found in bag.")
        return SUCCESS

    return check


def contains_nothing_else_than(directory: str, allowed: Iterable[str]) -> RuleCheck:
    """
    Every file and directory below ``directory`` must be listed in ``allowed``.

    ``allowed`` holds paths relative to the bag root. A listed directory does
    not implicitly allow its contents.
    """
    base = ensure_bag_relative(directory)
    permitted = frozenset(ensure_bag_relative(p) for p in allowed)

    def check(t: TargetBag) -> RuleOutcome:
        root = t.resolve(base)
        found = sorted(p.relative_to(t.bag_dir).as_posix() for p in root.rglob("*"))
        extra = [p for p in found if p not in permitted]
        if extra:
            return violation(
                f"Directory {base} contains files or directories that are not allowed: "
                f"{', '.join(extra)}"
            )
        return SUCCESS

    return check


# ─── bag-info.txt ─────────────────────────────────────────────────


def bag_info_contains_at_most_one_of(label: str) -> RuleCheck:
    def check(t: TargetBag) -> RuleOutcome:
        count = len(t.bag_info_values(label))
        if count > 1:
            return violation(
                f"bag-info.txt may contain at most one element: {label}; number found: {count}"
            )
        return SUCCESS

    return check


def bag_info_contains_exactly_one_of(label: str) -> RuleCheck:
    def check(t: TargetBag) -> RuleOutcome:
        count = len(t.bag_info_values(label))
        if count != 1:
            return violation(
                f"bag-info.txt must contain exactly one '{label}' element; number found: {count}"
            )
        return SUCCESS

    return check


def bag_info_element_if_exists_has_value(
    label: str,
    expected: str | Callable[[TargetBag], str],
) -> RuleCheck:
    """``expected`` may depend on the bag, e.g. on its declared profile version."""

    def check(t: TargetBag) -> RuleOutcome:
        values = t.bag_info_values(label)
        if not values:
            return SUCCESS
        wanted = expected(t) if callable(expected) else expected
        if values[0] != wanted:
            return violation(
                f"bag-info.txt must contain {label} with value {wanted}; found: {values[0]}"
            )
        return SUCCESS

    return check


def bag_info_created_element_is_iso8601_date(t: TargetBag) -> RuleOutcome:
    values = t.bag_info_values("Created")
    if not values:
        return SUCCESS
    value = values[0]
    try:
        created = datetime.fromisoformat(value)
    except ValueError:
        return violation(f"Date '{value}' is not valid ISO 8601 date and time")
    if created.tzinfo is None:
        return violation(f"Date '{value}' does not include a time zone")
    return SUCCESS


# ─── Encoding ─────────────────────────────────────────────────────


def optional_file_is_utf8_decodable(relative: str) -> RuleCheck:
    path = ensure_bag_relative(relative)

    def check(t: TargetBag) -> RuleOutcome:
        file = t.resolve(path)
        if not file.exists():
            return SUCCESS
        try:
            file.read_bytes().decode("utf-8")
        except UnicodeDecodeError as e:
            return violation(f"Input not valid UTF-8: {e}")
        return SUCCESS

    return check
