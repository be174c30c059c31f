# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import re
from dataclasses import dataclass, field
from datetime import date

from credproof.constants import ACHIEVEMENT_LEVELS, SIGNAL_BYTE_LENGTHS
from credproof.field import compact_date, hex_to_fixed_bytes, text_to_fixed_bytes, to_field
from credproof.hashing import Hasher

_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_PREFIXED_HEX = re.compile(r"0x[a-fA-F0-9]+")


def credential_leaf(
    exam_id_hash: int | str,
    achievement_level_hash: int | str,
    issuer_hash: int | str,
    holder_secret: int | str,
    hasher: Hasher,
) -> int:
    """
    Hash the four credential fields into the credential-tree leaf.

    The circuit recomputes `Poseidon([examIdHash, achievementLevelHash,
    issuerHash, holderSecret])`; the argument order must stay exactly this
    or every inclusion proof fails. Each argument is field encoded first,
    so raw labels such as `"Passed"` are accepted.
    """
    return hasher(
        [
            to_field(exam_id_hash),
            to_field(achievement_level_hash),
            to_field(issuer_hash),
            to_field(holder_secret),
        ]
    )


def nullifier_leaf(nullifier: int | str) -> int:
    """The nullifier tree stores the nullifier's own field encoding, unhashed."""
    return to_field(nullifier)


def _valid_date(value: str) -> bool:
    if not _DATE.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class Credential:
    holder_name: str
    license_number: str
    exam_id: str
    achievement_level: str
    issued_date: str
    expiry_date: str
    issuer: str
    holder_dob: str
    nullifier: str
    private_key: str = field(repr=False)

    def validate(self) -> list[str]:
        """Return every problem with the record; an empty list means valid."""
        errors = []
        for name in (
            "holder_name",
            "license_number",
            "exam_id",
            "achievement_level",
            "issued_date",
            "expiry_date",
            "issuer",
            "holder_dob",
            "nullifier",
            "private_key",
        ):
            if not getattr(self, name):
                errors.append(f"{name} is required")

        for name in ("issued_date", "expiry_date", "holder_dob"):
            value = getattr(self, name)
            if value and not _valid_date(value):
                errors.append(f"{name} must be a YYYY-MM-DD date")

        for name in ("nullifier", "private_key"):
            value = getattr(self, name)
            if value and not _PREFIXED_HEX.fullmatch(value):
                errors.append(f"{name} must be hex starting with 0x")

        if self.achievement_level and self.achievement_level not in ACHIEVEMENT_LEVELS:
            errors.append(
                f"achievement_level must be one of {', '.join(ACHIEVEMENT_LEVELS)}"
            )
        return errors

    def is_expired(self, today: date) -> bool:
        return date.fromisoformat(self.expiry_date) <= today

    def field_inputs(self) -> tuple[int, int, int, int]:
        """`(examIdHash, achievementLevelHash, issuerHash, holderSecret)`."""
        return (
            to_field(self.exam_id),
            to_field(self.achievement_level),
            to_field(self.issuer),
            to_field(self.private_key),
        )

    def leaf(self, hasher: Hasher) -> int:
        return credential_leaf(*self.field_inputs(), hasher)

    def nullifier_leaf(self) -> int:
        return nullifier_leaf(self.nullifier)

    def byte_signals(self) -> dict[str, list[int]]:
        """Fixed-width raw byte encodings of every credential attribute."""
        text = {
            "holderName": self.holder_name,
            "licenseNumber": self.license_number,
            "examId": self.exam_id,
            "achievementLevel": self.achievement_level,
            "issuedDate": compact_date(self.issued_date),
            "expiryDate": compact_date(self.expiry_date),
            "holderDOB": compact_date(self.holder_dob),
            "issuer": self.issuer,
        }
        signals = {
            name: text_to_fixed_bytes(value, SIGNAL_BYTE_LENGTHS[name])
            for name, value in text.items()
        }
        signals["nullifier"] = hex_to_fixed_bytes(
            self.nullifier, SIGNAL_BYTE_LENGTHS["nullifier"]
        )
        signals["privateKey"] = hex_to_fixed_bytes(
            self.private_key, SIGNAL_BYTE_LENGTHS["privateKey"]
        )
        return signals
