#!/usr/bin/env python3

# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

"""
Generate field-vectors.json for cross-implementation codec tests.

Run from the repository root:
    PYTHONPATH=. python test-vectors/generate_vectors.py
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
from credproof.field import hex_to_fixed_bytes, pack_bytes, text_to_fixed_bytes, to_decimal


def text_vector(name: str, text: str, length: int) -> dict:
    return {
        "name": name,
        "kind": "text",
        "input": text,
        "length": length,
        "bytes": text_to_fixed_bytes(text, length),
    }


def hex_vector(name: str, hex_str: str, length: int) -> dict:
    return {
        "name": name,
        "kind": "hex",
        "input": hex_str,
        "length": length,
        "bytes": hex_to_fixed_bytes(hex_str, length),
    }


def field_vector(name: str, value: str) -> dict:
    return {"name": name, "kind": "field", "input": value, "decimal": to_decimal(value)}


def pack_vector(name: str, values: list[str]) -> dict:
    return {"name": name, "kind": "pack", "input": values, "decimal": str(pack_bytes(values))}


vectors = [
    text_vector("level-padded", "Passed", 8),
    text_vector("date-exact", "20250115", 8),
    text_vector("truncated", "ABCDEFGHIJ", 4),
    text_vector("empty", "", 3),
    hex_vector("odd-nibble", "0x1", 8),
    hex_vector("two-bytes", "0x1234", 4),
    hex_vector("no-prefix", "abcdef", 2),
    field_vector("decimal", "42"),
    field_vector("hex", "0x10"),
    field_vector("hex-upper", "0xFF"),
    pack_vector("two-bytes", ["1", "2"]),
    pack_vector("wraps-mod-256", ["256", "257"]),
    pack_vector("empty", []),
]

out_path = Path(__file__).parent / "field-vectors.json"
with open(out_path, "w") as f:
    json.dump({"vectors": vectors}, f, indent=2)
    f.write("\n")

print(f"Wrote {len(vectors)} vectors to {out_path}")
