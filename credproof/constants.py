# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from py_ecc.bn128 import curve_order

# bn254 scalar field, the field every circuit signal lives in
FIELD_MODULUS = curve_order

# tree heights
DEFAULT_TREE_HEIGHT = 20
PARALLEL_LEVEL_THRESHOLD = 1 << 12

# top-level namespace of the compiled circuit
MAIN_PREFIX = "main."
DEFAULT_CIRCUIT_NAME = "ExamProof"

# byte widths of the raw credential signals
SIGNAL_BYTE_LENGTHS = {
    "holderName": 32,
    "licenseNumber": 16,
    "examId": 16,
    "achievementLevel": 8,
    "issuedDate": 8,
    "expiryDate": 8,
    "holderDOB": 8,
    "issuer": 32,
    "nullifier": 8,
    "privateKey": 32,
}

ACHIEVEMENT_LEVELS = (
    "Passed",
    "Conditional",
    "Failed",
    "Suspended",
    "Revoked",
    "Pending",
)

# 64-bit fnv-1a, as used by the circom witness calculator
FNV_OFFSET_BASIS = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3
UINT64_MASK = (1 << 64) - 1
