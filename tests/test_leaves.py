# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from dataclasses import replace
from datetime import date

import pytest

from credproof.field import to_field
from credproof.leaves import credential_leaf, nullifier_leaf


def test_credential_leaf_field_encodes_arguments(hasher):
    leaf = credential_leaf("EXAM_1", "Passed", "Board", "0xabc", hasher)
    assert leaf == hasher(
        [to_field("EXAM_1"), to_field("Passed"), to_field("Board"), 0xABC]
    )


def test_credential_leaf_argument_order_matters(hasher):
    a = credential_leaf("1", "2", "3", "4", hasher)
    b = credential_leaf("2", "1", "3", "4", hasher)
    assert a != b


def test_nullifier_leaf_is_unhashed():
    assert nullifier_leaf("0x1234") == 0x1234
    assert nullifier_leaf("77") == 77


def test_credential_leaf_uses_private_key(credential, hasher):
    expected = credential_leaf(
        "EXAM_2025_01", "Passed", "State Licensing Board", "0xabcdef1234", hasher
    )
    assert credential.leaf(hasher) == expected
    assert credential.field_inputs()[3] == 0xABCDEF1234


def test_valid_credential(credential):
    assert credential.validate() == []


def test_validation_collects_every_problem(credential):
    bad = replace(
        credential,
        holder_name="",
        issued_date="15/01/2025",
        expiry_date="2025-02-30",
        nullifier="1234",
        achievement_level="Excellent",
    )
    errors = bad.validate()
    assert "holder_name is required" in errors
    assert "issued_date must be a YYYY-MM-DD date" in errors
    assert "expiry_date must be a YYYY-MM-DD date" in errors
    assert "nullifier must be hex starting with 0x" in errors
    assert any(e.startswith("achievement_level must be one of") for e in errors)
    assert len(errors) == 5


def test_is_expired(credential):
    assert not credential.is_expired(date(2026, 6, 1))
    assert credential.is_expired(date(2027, 1, 15))


def test_private_key_not_in_repr(credential):
    assert "abcdef1234" not in repr(credential)


def test_byte_signals(credential):
    signals = credential.byte_signals()
    assert signals["achievementLevel"] == [80, 97, 115, 115, 101, 100, 0, 0]
    assert signals["issuedDate"] == list(b"20250115")
    assert signals["nullifier"] == [0x12, 0x34, 0, 0, 0, 0, 0, 0]
    assert signals["privateKey"][:5] == [0xAB, 0xCD, 0xEF, 0x12, 0x34]
    assert len(signals["privateKey"]) == 32
    assert len(signals["holderName"]) == 32
    assert signals["holderName"][:3] == list(b"Ada")


if __name__ == "__main__":
    pytest.main()
