# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import logging
from dataclasses import dataclass

from credproof.errors import NullifierCollision
from credproof.hashing import Hasher
from credproof.merkle import MerkleProof, MerkleTree, get_proof, validate_proof

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NonInclusionWitness:
    """
    Proof that slot `index` of a published tree holds something other than
    `forbidden_leaf`.

    The slot index is chosen by the caller. Nothing here derives it from the
    nullifier, so this only argues "nullifier unused" if the index assignment
    scheme gives every nullifier one deterministic slot.
    """

    forbidden_leaf: int
    stored_leaf: int
    proof: MerkleProof
    index: int | None = None

    def __post_init__(self):
        if self.stored_leaf == self.forbidden_leaf:
            raise NullifierCollision(self.stored_leaf, self.index)
        if self.proof.leaf != self.stored_leaf:
            raise ValueError("proof does not authenticate the stored leaf")


def prove_non_inclusion(tree: MerkleTree, forbidden_leaf: int, index: int) -> NonInclusionWitness:
    """
    Build a non-inclusion witness for `forbidden_leaf` at a caller-chosen slot.

    Args:
        tree: Snapshot of the used-nullifier tree.
        forbidden_leaf: Nullifier leaf that must not be stored.
        index: Slot the caller asserts belongs to this nullifier.

    Returns:
        The witness holding the slot's current occupant and its path.

    Raises:
        IndexOutOfRange: If `index` is outside the tree.
        NullifierCollision: If the slot already stores `forbidden_leaf`.
    """
    proof = get_proof(tree, index)
    witness = NonInclusionWitness(
        forbidden_leaf=forbidden_leaf,
        stored_leaf=proof.leaf,
        proof=proof,
        index=index,
    )
    logger.info("non-inclusion witness built for slot %d", index)
    return witness


def verify_non_inclusion(witness: NonInclusionWitness, root: int, hasher: Hasher) -> bool:
    """Check the stored leaf's path against `root`; the inequality holds by construction."""
    return witness.stored_leaf != witness.forbidden_leaf and validate_proof(
        witness.stored_leaf, witness.proof, root, hasher
    )
