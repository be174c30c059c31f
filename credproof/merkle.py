# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
"""
Fixed-height binary Merkle accumulator.

Layer 0 holds exactly `2**height` leaves, zero-filled where unassigned, and
layer `height` holds the root. Every node satisfies

    layers[i + 1][j] == hash(layers[i][2j], layers[i][2j + 1])

Trees are immutable; changing a leaf rebuilds the tree from the full leaf
set and returns a new value, so proofs taken from an older snapshot stay
valid against that snapshot's root.
"""
import logging
from dataclasses import dataclass
from typing import Sequence, Union

from credproof.errors import CapacityExceeded, DecodeError, IndexOutOfRange
from credproof.field import to_field
from credproof.hashing import Hasher, hash_rows

logger = logging.getLogger(__name__)

LeafInput = Union[int, str, tuple[Union[int, str], Union[int, str]]]


@dataclass(frozen=True)
class MerkleTree:
    height: int
    layers: tuple[tuple[int, ...], ...]

    def __post_init__(self):
        if self.height < 0:
            raise ValueError(f"height must be non-negative, got {self.height}")
        if len(self.layers) != self.height + 1:
            raise ValueError(
                f"height {self.height} tree needs {self.height + 1} layers, got {len(self.layers)}"
            )
        for level, layer in enumerate(self.layers):
            expected = 1 << (self.height - level)
            if len(layer) != expected:
                raise ValueError(
                    f"layer {level} has {len(layer)} nodes, expected {expected}"
                )

    @property
    def root(self) -> int:
        return self.layers[self.height][0]

    @property
    def leaves(self) -> tuple[int, ...]:
        return self.layers[0]

    @property
    def capacity(self) -> int:
        return 1 << self.height

    def leaf(self, index: int) -> int:
        if not 0 <= index < self.capacity:
            raise IndexOutOfRange(index, self.height)
        return self.layers[0][index]


@dataclass(frozen=True)
class MerkleProof:
    """
    Authentication path for one leaf.

    `path_indices[i] == 0` means the authenticated node is the left child at
    level i (its sibling is on the right), `1` means the reverse.
    """

    leaf: int
    siblings: tuple[int, ...]
    path_indices: tuple[int, ...]

    def __post_init__(self):
        if len(self.siblings) != len(self.path_indices):
            raise ValueError(
                f"{len(self.siblings)} siblings but {len(self.path_indices)} path indices"
            )
        if any(bit not in (0, 1) for bit in self.path_indices):
            raise ValueError("path indices must be 0 or 1")

    @property
    def height(self) -> int:
        return len(self.siblings)

    def to_signals(self) -> tuple[list[str], list[str]]:
        """Decimal-string siblings and path bits, as the circuit consumes them."""
        return [str(s) for s in self.siblings], [str(b) for b in self.path_indices]


def _leaf_value(value: LeafInput, hasher: Hasher) -> int:
    if isinstance(value, (tuple, list)):
        if len(value) != 2:
            raise ValueError(f"leaf pairs must have two elements, got {len(value)}")
        return hasher([to_field(value[0]), to_field(value[1])])
    return to_field(value)


def _build_layers(leaves: list[int], height: int, hasher: Hasher, workers: int) -> MerkleTree:
    layers = [tuple(leaves)]
    for _ in range(height):
        prev = layers[-1]
        rows = [(prev[2 * i], prev[2 * i + 1]) for i in range(len(prev) // 2)]
        layers.append(tuple(hash_rows(hasher, rows, workers)))
    return MerkleTree(height=height, layers=tuple(layers))


def build_tree(
    leaves: Sequence[LeafInput], height: int, hasher: Hasher, workers: int = 1
) -> MerkleTree:
    """
    Build a fixed-height tree from a leaf list.

    A leaf is either a pre-hashed value (field-encoded with `to_field`) or a
    pair hashed with the arity-2 hash. Missing slots are zero.

    Args:
        leaves: Leaf inputs for slots 0..len(leaves)-1.
        height: Tree height; the tree has `2**height` slots.
        hasher: Hash capability.
        workers: Threads used to hash each level.

    Returns:
        The new `MerkleTree`.

    Raises:
        CapacityExceeded: If there are more than `2**height` leaves.
    """
    if height < 0:
        raise ValueError(f"height must be non-negative, got {height}")
    capacity = 1 << height
    if len(leaves) > capacity:
        raise CapacityExceeded(len(leaves), height)

    level0 = [_leaf_value(v, hasher) for v in leaves]
    level0.extend([0] * (capacity - len(level0)))

    tree = _build_layers(level0, height, hasher, workers)
    logger.debug("built height %d tree with %d leaves", height, len(leaves))
    return tree


def empty_tree(height: int, hasher: Hasher, workers: int = 1) -> MerkleTree:
    return build_tree([], height, hasher, workers)


def update_tree(
    tree: MerkleTree, leaf: LeafInput, index: int, hasher: Hasher, workers: int = 1
) -> MerkleTree:
    """Return a new tree with slot `index` set to `leaf`, rebuilt from the full leaf set."""
    if not 0 <= index < tree.capacity:
        raise IndexOutOfRange(index, tree.height)
    leaves = list(tree.leaves)
    leaves[index] = _leaf_value(leaf, hasher)
    return _build_layers(leaves, tree.height, hasher, workers)


def get_proof(tree: MerkleTree, index: int) -> MerkleProof:
    """
    Build the authentication path for slot `index`.

    Raises:
        IndexOutOfRange: If `index` is not in `[0, 2**height)`.
    """
    if not 0 <= index < tree.capacity:
        raise IndexOutOfRange(index, tree.height)

    siblings = []
    path_indices = []
    idx = index
    for level in range(tree.height):
        layer = tree.layers[level]
        pair = idx ^ 1
        siblings.append(layer[pair] if pair < len(layer) else 0)
        path_indices.append(idx % 2)
        idx //= 2

    return MerkleProof(
        leaf=tree.layers[0][index],
        siblings=tuple(siblings),
        path_indices=tuple(path_indices),
    )


def compute_root(leaf: int, proof: MerkleProof, hasher: Hasher) -> int:
    current = leaf
    for sibling, bit in zip(proof.siblings, proof.path_indices):
        if bit == 0:
            current = hasher([current, sibling])
        else:
            current = hasher([sibling, current])
    return current


def validate_proof(leaf: int, proof: MerkleProof, root: int, hasher: Hasher) -> bool:
    """
    Recompute the hash chain from `leaf` and compare it to `root`.

    The leaf argument is used rather than `proof.leaf`, so the same path can
    be checked against a value the caller derived independently.
    """
    return compute_root(leaf, proof, hasher) == root


def check_tree(tree: MerkleTree, hasher: Hasher, workers: int = 1) -> None:
    """
    Re-verify the node invariant of a tree, typically one loaded from disk.

    Raises:
        DecodeError: On the first node that is not the hash of its children.
    """
    for level in range(tree.height):
        prev = tree.layers[level]
        rows = [(prev[2 * i], prev[2 * i + 1]) for i in range(len(prev) // 2)]
        expected = hash_rows(hasher, rows, workers)
        for j, (want, got) in enumerate(zip(expected, tree.layers[level + 1])):
            if want != got:
                raise DecodeError(f"node {j} of layer {level + 1} does not match its children")
