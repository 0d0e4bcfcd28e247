"""
Tests for address validation and transaction classification.

Both are pure: no session factory is involved.
"""

import pytest

from ledger_access.classifier import Classifier
from ledger_access.exceptions import InvalidAddressError
from ledger_access.models import Direction
from ledger_access.validation import is_valid_address, validate_address

from tests.ledger_access.fixtures import OTHER, RECEIVER, SENDER


# ============================================================
# ADDRESS VALIDATION TESTS
# ============================================================

class TestAddressValidation:
    """Tests for classic address checks."""

    @pytest.mark.parametrize("address", [SENDER, RECEIVER, OTHER])
    def test_known_good_addresses(self, address):
        assert is_valid_address(address) is True

    @pytest.mark.parametrize("address", [
        "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTi",      # checksum broken
        "xHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh",      # wrong leading character
        "rHb9CJAWyB4rj91VRWn96Dkuk",               # truncated
        "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyThrHb9C",  # too long
        "rHb9CJAWyB4rj91VRWn96DkukG4bwdty0h",      # '0' is outside the alphabet
        "XV5sbjUmgPpvXv4ixFWZ5ptAYZ6PD2gYsjNFQLKYW5hRDjt",  # X-address
        "",
    ])
    def test_rejected_strings(self, address):
        assert is_valid_address(address) is False

    @pytest.mark.parametrize("address", [f" {SENDER}", f"{SENDER}\n"])
    def test_surrounding_whitespace_rejected(self, address):
        assert is_valid_address(address) is False

    @pytest.mark.parametrize("value", [None, 12345, b"rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh", ["r"]])
    def test_non_strings_never_raise(self, value):
        assert is_valid_address(value) is False

    def test_validate_returns_address(self):
        assert validate_address(SENDER) == SENDER

    def test_validate_raises(self):
        with pytest.raises(InvalidAddressError) as exc_info:
            validate_address("not-an-address")

        assert exc_info.value.address == "not-an-address"
        assert "not-an-address" in str(exc_info.value)


# ============================================================
# CLASSIFIER TESTS
# ============================================================

class TestClassifier:
    """Tests for application tag classification."""

    @pytest.fixture
    def classifier(self):
        return Classifier()

    def test_source_tag_only(self, classifier):
        assert classifier.is_app_tagged(29202152, None) is True

    def test_source_tag_as_string(self, classifier):
        assert classifier.is_app_tagged("29202152", None) is True

    def test_memo_prefix_only(self, classifier):
        assert classifier.is_app_tagged(None, "BitBobPay") is True

    def test_neither(self, classifier):
        assert classifier.is_app_tagged(None, None) is False
        assert classifier.is_app_tagged(12345, "hello") is False

    def test_either_check_is_enough(self, classifier):
        assert classifier.is_app_tagged(12345, "BitBob transfer") is True

    def test_prefix_is_case_sensitive(self, classifier):
        assert classifier.has_app_memo("bitbob") is False

    def test_bool_is_not_a_tag(self):
        assert Classifier(source_tags={1}).has_app_tag(True) is False

    def test_custom_sets(self):
        classifier = Classifier(source_tags={7}, memo_prefixes=("Acme",))

        assert classifier.is_app_tagged(7, None) is True
        assert classifier.is_app_tagged(29202152, "BitBobPay") is False
        assert classifier.is_app_tagged(None, "Acme order 1") is True


# ============================================================
# DIRECTION TESTS
# ============================================================

class TestDirection:
    """Tests for fund-flow direction."""

    @pytest.mark.parametrize("sender,destination,expected", [
        (SENDER, RECEIVER, Direction.OUTGOING),
        (RECEIVER, SENDER, Direction.INCOMING),
        (SENDER, SENDER, Direction.SELF),
        (RECEIVER, OTHER, Direction.UNRELATED),
    ])
    def test_relative_to_address(self, sender, destination, expected):
        assert Classifier.direction(sender, destination, SENDER) == expected

    def test_without_address(self):
        assert Classifier.direction(SENDER, RECEIVER, None) is None
