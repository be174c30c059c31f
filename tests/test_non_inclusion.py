# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import pytest

from credproof.errors import IndexOutOfRange, NullifierCollision
from credproof.leaves import nullifier_leaf
from credproof.merkle import build_tree, get_proof
from credproof.non_inclusion import (
    NonInclusionWitness,
    prove_non_inclusion,
    verify_non_inclusion,
)

SPENT = ["0x1111", "0x2222"]


def spent_tree(hasher):
    return build_tree([nullifier_leaf(n) for n in SPENT], 4, hasher)


def test_unused_nullifier_at_empty_slot(hasher):
    tree = spent_tree(hasher)
    witness = prove_non_inclusion(tree, nullifier_leaf("0x1234"), 5)
    assert witness.stored_leaf == 0
    assert witness.index == 5
    assert verify_non_inclusion(witness, tree.root, hasher)


def test_unused_nullifier_at_occupied_slot(hasher):
    tree = spent_tree(hasher)
    witness = prove_non_inclusion(tree, nullifier_leaf("0x1234"), 1)
    assert witness.stored_leaf == 0x2222
    assert verify_non_inclusion(witness, tree.root, hasher)


def test_spent_nullifier_collides(hasher):
    tree = spent_tree(hasher)
    with pytest.raises(NullifierCollision) as e:
        prove_non_inclusion(tree, nullifier_leaf("0x2222"), 1)
    assert e.value.index == 1
    assert e.value.leaf == 0x2222


def test_wrong_root_fails(hasher):
    tree = spent_tree(hasher)
    witness = prove_non_inclusion(tree, nullifier_leaf("0x1234"), 5)
    assert not verify_non_inclusion(witness, tree.root + 1, hasher)


def test_index_out_of_range(hasher):
    with pytest.raises(IndexOutOfRange):
        prove_non_inclusion(spent_tree(hasher), 7, 16)


def test_witness_must_authenticate_stored_leaf(hasher):
    tree = spent_tree(hasher)
    proof = get_proof(tree, 0)
    with pytest.raises(ValueError):
        NonInclusionWitness(forbidden_leaf=5, stored_leaf=99, proof=proof)


if __name__ == "__main__":
    pytest.main()
