# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json

import pytest

from credproof.constants import FIELD_MODULUS
from credproof.errors import DecodeError
from credproof.files import (
    load_json,
    load_tree,
    save_json,
    save_tree,
    save_witness,
    tree_from_dict,
    tree_to_dict,
)
from credproof.merkle import build_tree
from credproof.witness import Array, CanonicalWitness, Scalar


def test_save_and_load_tree(tmp_path, hasher):
    tree = build_tree(["1", "2", "3"], 3, hasher)
    path = tmp_path / "nested" / "tree.json"
    save_tree(path, tree)

    data = json.loads(path.read_text())
    assert data["root"] == str(tree.root)
    assert data["layers"][0] == ["1", "2", "3", "0", "0", "0", "0", "0"]
    assert load_tree(path) == tree


def test_tree_from_dict_accepts_integers(hasher):
    tree = build_tree(["5"], 1, hasher)
    data = {"layers": [[5, 0], [tree.root]]}
    assert tree_from_dict(data) == tree


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"root": "1"},
        {"layers": []},
        {"layers": [["1", "2"], ["3"], ["4"]]},
        {"layers": [["1", "x"], ["3"]]},
        {"layers": [["1", "-2"], ["3"]]},
        {"layers": [["1", str(FIELD_MODULUS)], ["3"]]},
        {"layers": [["1", "2"], "3"]},
        {"root": "9", "layers": [["1", "2"], ["3"]]},
        {"layers": [["1", "9" * 5000], ["3"]]},
        {"root": "9" * 5000, "layers": [["1", "2"], ["3"]]},
    ],
)
def test_tree_from_dict_rejects(data):
    with pytest.raises(DecodeError):
        tree_from_dict(data)


def test_tree_from_dict_accepts_leading_zeros(hasher):
    tree = build_tree(["5"], 1, hasher)
    data = {"layers": [["0" * 100 + "5", "0"], [str(tree.root)]]}
    assert tree_from_dict(data) == tree


def test_tree_to_dict_is_decimal_strings(hasher):
    data = tree_to_dict(build_tree(["0x10"], 1, hasher))
    assert data["layers"][0] == ["16", "0"]
    assert all(isinstance(v, str) for layer in data["layers"] for v in layer)


def test_load_json_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_json(tmp_path / "absent.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(DecodeError):
        load_json(bad)


def test_save_json_is_sorted(tmp_path):
    path = tmp_path / "x.json"
    save_json(path, {"b": 1, "a": 2})
    assert path.read_text().index('"a"') < path.read_text().index('"b"')


def test_save_witness_keeps_signal_order(tmp_path):
    witness = CanonicalWitness([("z", Scalar("1")), ("a", Array(("2", "3")))])
    path = tmp_path / "out" / "canonical-input.json"
    save_witness(path, witness)
    text = path.read_text()
    assert text.index('"z"') < text.index('"a"')
    assert json.loads(text) == {"z": "1", "a": ["2", "3"]}


if __name__ == "__main__":
    pytest.main()
