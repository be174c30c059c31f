# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import hashlib
from pathlib import Path

import pytest

from credproof.config import ProverConfig
from credproof.constants import FIELD_MODULUS
from credproof.leaves import Credential
from credproof.schema import fnv1a_64
from credproof.signing import PublicKey, Signature


class Sha256Hasher:
    """Deterministic stand-in for the external Poseidon tool."""

    def __init__(self):
        self.calls = 0

    def __call__(self, inputs):
        self.calls += 1
        data = b"".join(int(v).to_bytes(32, "big") for v in inputs)
        data = len(inputs).to_bytes(1, "big") + data
        return int.from_bytes(hashlib.sha256(data).digest(), "big") % FIELD_MODULUS

    def batch(self, rows):
        return [self(row) for row in rows]


class FakeSigner:
    def __init__(self):
        self.signed = []

    def derive_public_key(self, private_key):
        return PublicKey("11", "22")

    def sign(self, private_key, message):
        self.signed.append(message)
        return Signature(s=str(message % 1000), r8x="33", r8y="44")


class FakeProgram:
    """Witness-calculator program answering size probes from a name map."""

    def __init__(self, sizes, broken=()):
        self._by_hash = {}
        for name, size in sizes.items():
            h = fnv1a_64(name)
            self._by_hash[(int(h[:8], 16), int(h[8:], 16))] = size
        self._broken = set()
        for name in broken:
            h = fnv1a_64(name)
            self._broken.add((int(h[:8], 16), int(h[8:], 16)))

    def get_input_signal_size(self, h_msb, h_lsb):
        if (h_msb, h_lsb) in self._broken:
            raise RuntimeError("signal lookup trapped")
        return self._by_hash.get((h_msb, h_lsb), -1)


@pytest.fixture
def hasher():
    return Sha256Hasher()


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def credential():
    return Credential(
        holder_name="Ada Lovelace",
        license_number="LIC-0042",
        exam_id="EXAM_2025_01",
        achievement_level="Passed",
        issued_date="2025-01-15",
        expiry_date="2027-01-15",
        issuer="State Licensing Board",
        holder_dob="1990-12-10",
        nullifier="0x1234",
        private_key="0xabcdef1234",
    )


@pytest.fixture
def config(tmp_path: Path):
    return ProverConfig(
        tree_height=4,
        credential_index=3,
        nullifier_index=5,
        credential_tree_file=tmp_path / "trees" / "credential-tree.json",
        nullifier_tree_file=tmp_path / "trees" / "nullifier-tree.json",
        build_dir=tmp_path / "build",
        proofs_dir=tmp_path / "proofs",
        zkey_dir=tmp_path / "zkey",
    )
