"""
Tests for the Is-Version-Of rule chain.

The bag store is mocked; BagStoreError stands in for an unreachable store.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock
from uuid import UUID

import pytest

from validatebag.clients.bag_store import BagStoreError
from validatebag.systems.validation.rules.sequence import (
    bag_info_is_version_of_if_exists_is_valid,
    bag_info_is_version_of_points_to_archived_bag,
    parse_is_version_of,
    store_same_as_in_archived_bag,
    user_same_as_in_archived_bag,
)
from validatebag.systems.validation.target import TargetBag
from validatebag.systems.validation.types import SUCCESS, RuleFatal, RuleViolation

UUID_TEXT = "75fc6989-1e0f-4c7a-b49d-2e7a7c3d5a11"


# ── Fixtures ────────────────────────────────────────────────────────────────


def _make_target(
    tmp_path: Path,
    is_version_of: str | None = f"urn:uuid:{UUID_TEXT}",
    user: str = "user001",
) -> TargetBag:
    lines = ["Payload-Oxum: 0.1", f"EASY-User-Account: {user}"]
    if is_version_of is not None:
        lines.append(f"Is-Version-Of: {is_version_of}")
    (tmp_path / "bag-info.txt").write_text("\n".join(lines) + "\n", encoding="utf-8")
    return TargetBag(tmp_path)


def _make_bag_store(
    exists: bool = True,
    exists_in_this_store: bool = True,
    archived_user: str = "user001",
) -> MagicMock:
    store = MagicMock()
    store.bag_store_url = "https://host:99999/stores/wrongstore"
    store.bag_exists.return_value = exists
    store.bag_exists_in_this_store.return_value = exists_in_this_store
    store.get_bag_info_text.return_value = (
        f"Payload-Oxum: 0.1\nEASY-User-Account: {archived_user}\n"
    )
    return store


def _message(outcome: object) -> str:
    assert isinstance(outcome, RuleViolation), outcome
    return outcome.message


# ─── Syntax ───────────────────────────────────────────────────────


class TestParseIsVersionOf:
    def test_valid(self):
        assert parse_is_version_of(f"urn:uuid:{UUID_TEXT}") == UUID(UUID_TEXT)

    def test_not_a_urn(self):
        with pytest.raises(ValueError, match="Is-Version-Of value must be a URN"):
            parse_is_version_of(UUID_TEXT)

    def test_not_uuid_subtype(self):
        with pytest.raises(ValueError, match="Is-Version-Of URN must be of subtype UUID"):
            parse_is_version_of(f"urn:isbn:{UUID_TEXT}")

    def test_non_canonical_uuid(self):
        with pytest.raises(ValueError) as exc:
            parse_is_version_of("urn:uuid:75fc6989/hierook-4c7a-b49d-superinvalidenzo")
        assert str(exc.value) == "String '75fc6989/hierook-4c7a-b49d-superinvalidenzo' is not a UUID"

    def test_braced_uuid_is_not_canonical(self):
        with pytest.raises(ValueError):
            parse_is_version_of(f"urn:uuid:{{{UUID_TEXT}}}")


class TestIsVersionOfSyntaxRule:
    def test_absent(self, tmp_path: Path):
        assert bag_info_is_version_of_if_exists_is_valid(_make_target(tmp_path, None)) == SUCCESS

    def test_invalid(self, tmp_path: Path):
        target = _make_target(tmp_path, "http://example.org/bag")
        outcome = bag_info_is_version_of_if_exists_is_valid(target)
        assert _message(outcome) == "Is-Version-Of value must be a URN"


# ─── Bag store lookups ────────────────────────────────────────────


class TestPointsToArchivedBag:
    def test_absent_field_succeeds_without_lookup(self, tmp_path: Path):
        store = _make_bag_store()
        rule = bag_info_is_version_of_points_to_archived_bag(store)
        assert rule(_make_target(tmp_path, None)) == SUCCESS
        store.bag_exists.assert_not_called()

    def test_found(self, tmp_path: Path):
        store = _make_bag_store(exists=True)
        assert bag_info_is_version_of_points_to_archived_bag(store)(_make_target(tmp_path)) == SUCCESS
        store.bag_exists.assert_called_once_with(UUID(UUID_TEXT))

    def test_not_found(self, tmp_path: Path):
        rule = bag_info_is_version_of_points_to_archived_bag(_make_bag_store(exists=False))
        assert "not found in bag stores" in _message(rule(_make_target(tmp_path)))

    def test_store_unreachable_is_fatal(self, tmp_path: Path):
        store = _make_bag_store()
        store.bag_exists.side_effect = BagStoreError("connection refused")
        outcome = bag_info_is_version_of_points_to_archived_bag(store)(_make_target(tmp_path))
        assert isinstance(outcome, RuleFatal)
        assert "because of an I/O error" in outcome.message
        assert isinstance(outcome.cause, BagStoreError)

    def test_bad_syntax_is_a_violation(self, tmp_path: Path):
        target = _make_target(tmp_path, "urn:uuid:75fc6989/hierook-4c7a-b49d-superinvalidenzo")
        outcome = bag_info_is_version_of_points_to_archived_bag(_make_bag_store())(target)
        assert "is not a UUID" in _message(outcome)


class TestSameStore:
    def test_not_in_this_store(self, tmp_path: Path):
        rule = store_same_as_in_archived_bag(_make_bag_store(exists_in_this_store=False))
        assert "not found in bag store https://host:99999/stores/wrongstore" in _message(
            rule(_make_target(tmp_path))
        )

    def test_in_this_store(self, tmp_path: Path):
        rule = store_same_as_in_archived_bag(_make_bag_store(exists_in_this_store=True))
        assert rule(_make_target(tmp_path)) == SUCCESS


class TestSameUser:
    def test_different_user(self, tmp_path: Path):
        rule = user_same_as_in_archived_bag(_make_bag_store(archived_user="user002"))
        assert _message(rule(_make_target(tmp_path, user="user001"))) == (
            "User user001 is different from the user user002 of the bag pointed to by Is-Version-Of"
        )

    def test_same_user(self, tmp_path: Path):
        rule = user_same_as_in_archived_bag(_make_bag_store(archived_user="user001"))
        assert rule(_make_target(tmp_path, user="user001")) == SUCCESS

    def test_fetch_failure_is_fatal(self, tmp_path: Path):
        store = _make_bag_store()
        store.get_bag_info_text.side_effect = BagStoreError("timed out")
        assert isinstance(user_same_as_in_archived_bag(store)(_make_target(tmp_path)), RuleFatal)
