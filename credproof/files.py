# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json
import re

from pathlib import Path
from typing import Any

from credproof.constants import FIELD_MODULUS
from credproof.errors import DecodeError
from credproof.merkle import MerkleTree
from credproof.witness import CanonicalWitness

_DIGITS = re.compile(r"[0-9]+")
# decimal width of the largest field element
_MAX_DIGITS = len(str(FIELD_MODULUS - 1))


def _writable(path: str | Path) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    return target


def save_string(path: str | Path, string: str) -> None:
    """
    Write UTF-8 text, creating missing parent directories.

    The text goes to a sibling temp file first and is renamed into place,
    so a reader never sees a half-written tree or witness.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    target = _writable(path)
    tmp = target.with_name(target.name + ".tmp")
    tmp.write_text(string, encoding="utf-8")
    tmp.replace(target)


def save_json(path: str | Path, data: Any) -> None:
    """Write `data` as indented JSON with sorted keys, so equal data gives equal bytes."""
    save_string(path, json.dumps(data, indent=2, sort_keys=True))


def load_json(path: str | Path) -> Any:
    """
    Raises:
        FileNotFoundError: If the file does not exist.
        DecodeError: If the content is not JSON.
    """
    source = Path(path)
    text = source.read_text(encoding="utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"{source} is not valid JSON: {e}") from e


def _element(value: Any, where: str) -> int:
    if isinstance(value, str) and _DIGITS.fullmatch(value):
        if len(value.lstrip("0")) > _MAX_DIGITS:
            raise DecodeError(f"{where}: {len(value)}-digit value is outside the field")
        n = int(value)
    elif isinstance(value, int) and not isinstance(value, bool):
        n = value
    else:
        raise DecodeError(f"{where}: {value!r} is not a decimal field element")
    if not 0 <= n < FIELD_MODULUS:
        raise DecodeError(f"{where}: {n} is outside the field")
    return n


def tree_to_dict(tree: MerkleTree) -> dict[str, Any]:
    """
    Encode a tree in the persisted form.

        {"root": "<decimal>", "layers": [["<decimal>", ...], ...]}

    One array per level, leaves first, root last.
    """
    return {
        "root": str(tree.root),
        "layers": [[str(v) for v in layer] for layer in tree.layers],
    }


def tree_from_dict(data: Any) -> MerkleTree:
    """
    Decode a persisted tree; the height is `len(layers) - 1`.

    Raises:
        DecodeError: If the document is not an object with a list of layers,
            holds non-decimal values, has inconsistent layer sizes, or has a
            `root` that differs from the last layer.
    """
    if not isinstance(data, dict) or not isinstance(data.get("layers"), list):
        raise DecodeError("tree document must be an object with a 'layers' list")
    raw_layers = data["layers"]
    if not raw_layers:
        raise DecodeError("tree document has no layers")

    layers = []
    for level, layer in enumerate(raw_layers):
        if not isinstance(layer, list):
            raise DecodeError(f"layer {level} is not a list")
        layers.append(tuple(_element(v, f"layer {level}") for v in layer))

    try:
        tree = MerkleTree(height=len(layers) - 1, layers=tuple(layers))
    except ValueError as e:
        raise DecodeError(str(e)) from e

    if "root" in data and _element(data["root"], "root") != tree.root:
        raise DecodeError("root does not match the last layer")
    return tree


def save_tree(path: str | Path, tree: MerkleTree) -> None:
    save_json(path, tree_to_dict(tree))


def load_tree(path: str | Path) -> MerkleTree:
    return tree_from_dict(load_json(path))


def save_witness(path: str | Path, witness: CanonicalWitness) -> None:
    """Write the witness JSON in signal order."""
    save_string(path, witness.to_json() + "\n")
