"""
Unit Tests for the Evidence Verifier
====================================

Tests for evidence verification and the path accessors of VerifiedView.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from zkvip.errors import MalformedEvidence, PathNotFound
from zkvip.evidence import Evidence, VerifiedView, verify


def make_evidence(raw: bytes) -> Evidence:
    return Evidence(
        source_url="https://bank.test/accounts",
        raw_payload=raw,
        retrieved_at=datetime.now(UTC),
    )


@pytest.fixture
def view() -> VerifiedView:
    return verify(
        make_evidence(
            b'{"bank": {"name": "Nubank", "code": 260, "open": true, "tag": null},'
            b' "accounts": [{"id": "acc-1", "balance": 10.5}, {"id": "acc-2", "balance": 3}]}'
        )
    )


class TestVerify:
    """Tests for verify()."""

    def test_valid_json_object(self, view):
        """Test well-formed evidence verifies."""
        assert view.source_url == "https://bank.test/accounts"
        assert view.contains("accounts")

    @pytest.mark.parametrize(
        "raw",
        [
            b"not json",
            b'{"accounts": [}',
            b"\xff\xfe\x00",
            b'{"balance": NaN}',
            b'{"balance": Infinity}',
        ],
    )
    def test_malformed_payloads(self, raw):
        """Test invalid encodings and syntax are rejected."""
        with pytest.raises(MalformedEvidence):
            verify(make_evidence(raw))

    @pytest.mark.parametrize("raw", [b"[1, 2]", b'"text"', b"42"])
    def test_top_level_must_be_object(self, raw):
        """Test a non-object top level is malformed."""
        with pytest.raises(MalformedEvidence):
            verify(make_evidence(raw))

    def test_fractions_parse_as_decimal(self, view):
        """Test fractional numbers keep their exact decimal value."""
        assert view.get("accounts.0.balance") == Decimal("10.5")
        assert isinstance(view.get("accounts.0.balance"), Decimal)


class TestPathAccessors:
    """Tests for VerifiedView path lookups."""

    def test_nested_lookup(self, view):
        assert view.get_string("bank.name") == "Nubank"
        assert view.get_string("accounts.1.id") == "acc-2"

    def test_scalar_as_string(self, view):
        """Test numbers and booleans render as strings."""
        assert view.get_string("bank.code") == "260"
        assert view.get_string("bank.open") == "true"

    def test_missing_segment(self, view):
        """Test a missing key reports the failing segment."""
        with pytest.raises(PathNotFound) as exc_info:
            view.get_string("bank.branch.id")

        assert exc_info.value.segment == "branch"
        assert exc_info.value.path == "bank.branch.id"

    @pytest.mark.parametrize("path", ["accounts.2.id", "accounts.x.id", "accounts.-1.id", ""])
    def test_bad_list_index(self, view, path):
        with pytest.raises(PathNotFound):
            view.get(path)

    def test_descending_into_scalar(self, view):
        with pytest.raises(PathNotFound):
            view.get("bank.name.first")

    def test_contains(self, view):
        assert view.contains("accounts.0.balance")
        assert not view.contains("accounts.5")

    def test_get_number(self, view):
        assert view.get_number("accounts.1.balance") == Decimal(3)

    @pytest.mark.parametrize("path", ["bank.name", "bank.open", "bank.tag", "bank"])
    def test_get_number_type_mismatch(self, view, path):
        """Test non-numeric values are malformed, booleans included."""
        with pytest.raises(MalformedEvidence):
            view.get_number(path)

    @pytest.mark.parametrize("path", ["bank", "accounts", "bank.tag"])
    def test_get_string_type_mismatch(self, view, path):
        with pytest.raises(MalformedEvidence):
            view.get_string(path)

    def test_get_list(self, view):
        assert len(view.get_list("accounts")) == 2
        with pytest.raises(MalformedEvidence):
            view.get_list("bank")

    def test_containers_are_copies(self, view):
        """Test callers cannot mutate the verified payload."""
        accounts = view.get_list("accounts")
        accounts.clear()
        view.payload["bank"]["name"] = "Other"

        assert len(view.get_list("accounts")) == 2
        assert view.get_string("bank.name") == "Nubank"

    def test_non_dict_payload_rejected(self):
        with pytest.raises(MalformedEvidence):
            VerifiedView("https://bank.test", [1, 2])  # type: ignore[arg-type]
