# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import logging
import subprocess
from pathlib import Path
from typing import Any

from py_ecc.fields import optimized_bn128_FQ as FQ
from py_ecc.fields import optimized_bn128_FQ2 as FQ2
from py_ecc.optimized_bn128 import (
    add,
    b,
    b2,
    curve_order,
    final_exponentiate,
    is_on_curve,
    multiply,
    pairing,
)

from credproof.errors import DecodeError
from credproof.files import load_json

logger = logging.getLogger(__name__)


def _run(cmd: list[str], description: str) -> None:
    logger.info("starting: %s", description)
    # raise if non-zero exit
    output = subprocess.run(cmd, capture_output=True, text=True, check=True)
    if output.stderr.strip():
        logger.warning("%s: %s", description, output.stderr.strip())
    logger.info("completed: %s", description)


def find_wasm(build_dir: str | Path, circuit_name: str) -> Path | None:
    """Locate the compiled witness program in either layout circom writes."""
    build = Path(build_dir)
    for candidate in (
        build / f"{circuit_name}.wasm",
        build / f"{circuit_name}_js" / f"{circuit_name}.wasm",
    ):
        if candidate.exists():
            return candidate
    return None


def calculate_witness(
    wasm_path: str | Path,
    input_path: str | Path,
    witness_path: str | Path,
    snarkjs: str = "snarkjs",
) -> None:
    cmd = [
        snarkjs,
        "wtns",
        "calculate",
        str(wasm_path),
        str(input_path),
        str(witness_path),
    ]
    _run(cmd, "witness calculation")


def generate_proof(
    zkey_path: str | Path,
    witness_path: str | Path,
    proof_path: str | Path,
    public_path: str | Path,
    snarkjs: str = "snarkjs",
) -> None:
    cmd = [
        snarkjs,
        "groth16",
        "prove",
        str(zkey_path),
        str(witness_path),
        str(proof_path),
        str(public_path),
    ]
    _run(cmd, "proof generation")


def _g1(coords: list) -> tuple:
    z = int(coords[2]) if len(coords) > 2 else 1
    point = (FQ(int(coords[0])), FQ(int(coords[1])), FQ(z))
    if not is_on_curve(point, b):
        raise DecodeError("G1 point is not on the curve")
    return point


def _g2(coords: list) -> tuple:
    z = coords[2] if len(coords) > 2 else [1, 0]
    point = (
        FQ2([int(coords[0][0]), int(coords[0][1])]),
        FQ2([int(coords[1][0]), int(coords[1][1])]),
        FQ2([int(z[0]), int(z[1])]),
    )
    if not is_on_curve(point, b2):
        raise DecodeError("G2 point is not on the curve")
    return point


def _points(vk: dict[str, Any], proof: dict[str, Any]) -> tuple:
    try:
        return (
            [_g1(p) for p in vk["IC"]],
            _g1(vk["vk_alpha_1"]),
            _g2(vk["vk_beta_2"]),
            _g2(vk["vk_gamma_2"]),
            _g2(vk["vk_delta_2"]),
            _g1(proof["pi_a"]),
            _g2(proof["pi_b"]),
            _g1(proof["pi_c"]),
        )
    except DecodeError:
        raise
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise DecodeError(f"malformed verification key or proof: {e!r}") from e


def verify_proof(vk: dict[str, Any], proof: dict[str, Any], public: Any) -> bool:
    """
    Check a snarkjs Groth16 proof over bn254 off-chain.

    Verifies `e(A, B) == e(alpha, beta) * e(vk_x, gamma) * e(C, delta)` with
    `vk_x = IC[0] + sum(s_i * IC[i + 1])`.

    Args:
        vk: Parsed `verification_key.json`.
        proof: Parsed `proof.json`.
        public: Parsed `public.json`, a list of decimal strings (an object
            with an `inputs` list is accepted too).

    Returns:
        True if the pairing equation holds.

    Raises:
        DecodeError: If a document is missing a field or has the wrong
            shape, the input count disagrees with the key, or a point is not
            on the curve.
    """
    if not isinstance(vk, dict) or not isinstance(proof, dict):
        raise DecodeError("verification key and proof must be JSON objects")
    inputs = public.get("inputs") if isinstance(public, dict) else public
    if not isinstance(inputs, list):
        raise DecodeError("public inputs must be a list")

    try:
        n_public = int(vk["nPublic"])
        scalars = [int(s) for s in inputs]
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"malformed key or public inputs: {e!r}") from e
    if len(scalars) != n_public:
        raise DecodeError(
            f"proof has {len(scalars)} public inputs, key expects {n_public}"
        )

    IC, alpha, beta, gamma, delta, A, B, C = _points(vk, proof)
    if len(IC) != len(scalars) + 1:
        raise DecodeError(
            f"key has {len(IC)} IC points, expected {len(scalars) + 1}"
        )

    vk_x = IC[0]
    for i, scalar in enumerate(scalars):
        if not 0 <= scalar < curve_order:
            return False
        vk_x = add(vk_x, multiply(IC[i + 1], scalar))

    left = pairing(B, A, final_exponentiate=False)
    right = pairing(beta, alpha, final_exponentiate=False)
    right *= pairing(gamma, vk_x, final_exponentiate=False)
    right *= pairing(delta, C, final_exponentiate=False)

    return final_exponentiate(left) == final_exponentiate(right)


def verify_proof_files(
    vk_path: str | Path, proof_path: str | Path, public_path: str | Path
) -> bool:
    return verify_proof(load_json(vk_path), load_json(proof_path), load_json(public_path))
