"""
validatebag -- Is-Version-Of Rules

A bag may declare, through ``Is-Version-Of`` in bag-info.txt, that it is a new
version of an archived bag. The chain checks, in order:

  1. the value is ``urn:uuid:<canonical uuid>``
  2. the referenced bag exists in some bag store
  3. it exists in the store this service archives to
  4. it was deposited by the same user

Stages 2-4 query the bag store. Failing to reach it is fatal: the bag cannot
be judged either way.
"""

from __future__ import annotations

import re
from typing import Protocol
from uuid import UUID

import structlog

from validatebag.systems.validation.target import TargetBag, parse_tag_lines
from validatebag.systems.validation.types import (
    SUCCESS,
    RuleCheck,
    RuleOutcome,
    RuleViolation,
    fatal,
    violation,
)

logger = structlog.get_logger()

IS_VERSION_OF = "Is-Version-Of"
USER_ACCOUNT = "EASY-User-Account"

_CANONICAL_UUID = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


class BagStore(Protocol):
    """What the sequence rules need from the bag store."""

    @property
    def bag_store_url(self) -> str: ...

    def bag_exists(self, uuid: UUID) -> bool: ...

    def bag_exists_in_this_store(self, uuid: UUID) -> bool: ...

    def get_bag_info_text(self, uuid: UUID) -> str: ...


def parse_is_version_of(value: str) -> UUID:
    """``urn:uuid:<uuid>`` -> UUID. Raises ValueError with a reportable message."""
    scheme, sep, rest = value.partition(":")
    if not sep or scheme.lower() != "urn" or not rest:
        raise ValueError("Is-Version-Of value must be a URN")
    subtype, sep, uuid_text = rest.partition(":")
    if not sep or subtype.lower() != "uuid":
        raise ValueError("Is-Version-Of URN must be of subtype UUID")
    if not _CANONICAL_UUID.match(uuid_text):
        raise ValueError(f"String '{uuid_text}' is not a UUID")
    return UUID(uuid_text)


def _is_version_of(t: TargetBag) -> UUID | RuleViolation | None:
    values = t.bag_info_values(IS_VERSION_OF)
    if not values:
        return None
    try:
        return parse_is_version_of(values[0])
    except ValueError as e:
        return violation(str(e))


def _not_found(uuid: UUID, where: str) -> RuleViolation:
    return violation(
        f"Bag with bag-id {uuid}, pointed to by Is-Version-Of field in bag-info.txt "
        f"is not found in {where}"
    )


# ─── Stages ───────────────────────────────────────────────────────


def bag_info_is_version_of_if_exists_is_valid(t: TargetBag) -> RuleOutcome:
    parsed = _is_version_of(t)
    if isinstance(parsed, RuleViolation):
        return parsed
    return SUCCESS


def bag_info_is_version_of_points_to_archived_bag(bag_store: BagStore) -> RuleCheck:
    def check(t: TargetBag) -> RuleOutcome:
        parsed = _is_version_of(t)
        if parsed is None or isinstance(parsed, RuleViolation):
            return parsed or SUCCESS
        try:
            found = bag_store.bag_exists(parsed)
        except OSError as e:
            return fatal(
                f"Bag with bag-id {parsed}, pointed to by Is-Version-Of field in bag-info.txt, "
                f"could not be looked up because of an I/O error: {e}",
                e,
            )
        if not found:
            return _not_found(parsed, "bag stores")
        logger.debug("is_version_of_bag_found", bag=t.name, uuid=str(parsed))
        return SUCCESS

    return check


def store_same_as_in_archived_bag(bag_store: BagStore) -> RuleCheck:
    def check(t: TargetBag) -> RuleOutcome:
        parsed = _is_version_of(t)
        if parsed is None or isinstance(parsed, RuleViolation):
            return parsed or SUCCESS
        try:
            found = bag_store.bag_exists_in_this_store(parsed)
        except OSError as e:
            return fatal(f"Could not look up bag {parsed} in {bag_store.bag_store_url}: {e}", e)
        if not found:
            return _not_found(parsed, f"bag store {bag_store.bag_store_url}")
        return SUCCESS

    return check


def user_same_as_in_archived_bag(bag_store: BagStore) -> RuleCheck:
    def check(t: TargetBag) -> RuleOutcome:
        parsed = _is_version_of(t)
        if parsed is None or isinstance(parsed, RuleViolation):
            return parsed or SUCCESS
        try:
            archived_info = parse_tag_lines(bag_store.get_bag_info_text(parsed))
        except OSError as e:
            return fatal(f"Could not fetch bag-info.txt of bag {parsed}: {e}", e)
        mine = next(iter(t.bag_info_values(USER_ACCOUNT)), None)
        theirs = next((v for k, v in archived_info if k == USER_ACCOUNT), None)
        if mine != theirs:
            return violation(
                f"User {mine} is different from the user {theirs} "
                "of the bag pointed to by Is-Version-Of"
            )
        return SUCCESS

    return check
