# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import argparse
import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from credproof.config import ProverConfig, credential_from_env
from credproof.errors import (
    ConfigError,
    CredproofError,
    InvalidCredential,
    InvalidProof,
    IndexOutOfRange,
    SchemaUnavailable,
)
from credproof.field import to_decimal
from credproof.files import load_json, load_tree, save_string, save_tree, save_witness
from credproof.hashing import CommandHasher, Hasher
from credproof.leaves import Credential, nullifier_leaf
from credproof.merkle import MerkleProof, MerkleTree, build_tree, get_proof, validate_proof
from credproof.non_inclusion import (
    NonInclusionWitness,
    prove_non_inclusion,
    verify_non_inclusion,
)
from credproof.schema import SignalProgram, resolve_schema, SymbolFileSource
from credproof.signing import CommandSigner, PublicKey, Signature, Signer
from credproof.snark import (
    calculate_witness,
    find_wasm,
    generate_proof,
    verify_proof_files,
)
from credproof.witness import (
    Candidate,
    CanonicalWitness,
    ShapeReport,
    assemble_witness,
    check_shape,
)

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """Always returns the same instant; used for reproducible witnesses."""

    def __init__(self, frozen_time: datetime | None = None) -> None:
        self._time = frozen_time or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._time


@dataclass(frozen=True)
class ProofInputs:
    credential_proof: MerkleProof
    credential_root: int
    nullifier_witness: NonInclusionWitness
    nullifier_root: int


def _sparse_tree(
    slots: Mapping[int, int], height: int, hasher: Hasher, workers: int
) -> MerkleTree:
    leaves: list[int] = [0] * (max(slots, default=-1) + 1)
    for index, leaf in slots.items():
        if not 0 <= index < (1 << height):
            raise IndexOutOfRange(index, height)
        leaves[index] = leaf
    return build_tree(leaves, height, hasher, workers)


def create_trees(
    credential: Credential,
    config: ProverConfig,
    hasher: Hasher,
    spent: Mapping[int, str] | None = None,
) -> tuple[MerkleTree, MerkleTree]:
    """
    Build and write the credential tree and the nullifier tree.

    The credential leaf is placed at `config.credential_index`. The
    nullifier tree holds only already spent nullifiers, `spent` mapping slot
    to nullifier; with none it is all zero. Every other slot is zero.

    Side effects (writes files):
    - `config.credential_tree_file`
    - `config.nullifier_tree_file`

    Returns:
        `(credential_tree, nullifier_tree)`.
    """
    cred_tree = _sparse_tree(
        {config.credential_index: credential.leaf(hasher)},
        config.tree_height,
        hasher,
        config.merkle_workers,
    )
    save_tree(config.credential_tree_file, cred_tree)
    logger.info("wrote credential tree %s", config.credential_tree_file)

    null_tree = _sparse_tree(
        {i: nullifier_leaf(n) for i, n in (spent or {}).items()},
        config.tree_height,
        hasher,
        config.merkle_workers,
    )
    save_tree(config.nullifier_tree_file, null_tree)
    logger.info("wrote nullifier tree %s", config.nullifier_tree_file)
    return cred_tree, null_tree


def prepare_proofs(
    credential: Credential,
    credential_tree: MerkleTree,
    nullifier_tree: MerkleTree,
    config: ProverConfig,
    hasher: Hasher,
) -> ProofInputs:
    """
    Prove credential inclusion and nullifier non-inclusion, and check both.

    Raises:
        InvalidProof: If the credential path does not reach the credential
            root or the stored nullifier path does not reach the nullifier
            root.
        NullifierCollision: If the nullifier slot already holds this
            nullifier (the credential was already used).
    """
    cred_leaf = credential.leaf(hasher)
    cred_proof = get_proof(credential_tree, config.credential_index)
    if not validate_proof(cred_leaf, cred_proof, credential_tree.root, hasher):
        raise InvalidProof(
            f"credential leaf at index {config.credential_index} is not in the credential tree"
        )
    logger.info("credential proof valid for index %d", config.credential_index)

    witness = prove_non_inclusion(
        nullifier_tree, credential.nullifier_leaf(), config.nullifier_index
    )
    if not verify_non_inclusion(witness, nullifier_tree.root, hasher):
        raise InvalidProof(
            f"stored nullifier path at index {config.nullifier_index} does not reach the root"
        )
    logger.info("stored nullifier path valid for index %d", config.nullifier_index)

    return ProofInputs(
        credential_proof=cred_proof,
        credential_root=credential_tree.root,
        nullifier_witness=witness,
        nullifier_root=nullifier_tree.root,
    )


def build_candidates(
    credential: Credential,
    proofs: ProofInputs,
    public_key: PublicKey,
    signature: Signature,
    current_time: int,
) -> dict[str, Candidate]:
    """Every value the circuit may ask for, keyed by signal name."""
    exam_id, level, issuer, secret = credential.field_inputs()
    siblings, bits = proofs.credential_proof.to_signals()
    null_siblings, null_bits = proofs.nullifier_witness.proof.to_signals()

    candidates = {
        name: Candidate(array=tuple(str(b) for b in data))
        for name, data in credential.byte_signals().items()
    }
    candidates.update(
        {
            "pubKey": Candidate(array=tuple(public_key.to_signal())),
            "credentialRoot": Candidate(scalar=str(proofs.credential_root)),
            "nullifierRoot": Candidate(scalar=str(proofs.nullifier_root)),
            "currentTime": Candidate(scalar=str(current_time)),
            "signatureS": Candidate(scalar=signature.s),
            "signatureR": Candidate(array=tuple(signature.r_signal())),
            "nullifier": Candidate(
                scalar=to_decimal(credential.nullifier),
                array=candidates["nullifier"].array,
            ),
            "examIdHash": Candidate(scalar=str(exam_id)),
            "achievementLevelHash": Candidate(scalar=str(level)),
            "issuerHash": Candidate(scalar=str(issuer)),
            "holderSecret": Candidate(scalar=str(secret)),
            "merkleProof": Candidate(array=tuple(siblings)),
            "merklePathIndices": Candidate(array=tuple(bits)),
            "merkleProofNullifier": Candidate(array=tuple(null_siblings)),
            "merklePathIndicesNullifier": Candidate(array=tuple(null_bits)),
            "storedNullifierLeaf": Candidate(
                scalar=str(proofs.nullifier_witness.stored_leaf)
            ),
        }
    )
    return candidates


def create_witness(
    credential: Credential,
    config: ProverConfig,
    hasher: Hasher,
    signer: Signer,
    clock: Clock,
    program: SignalProgram | None = None,
) -> tuple[Path, CanonicalWitness]:
    """
    Assemble and write the canonical witness for one proof request.

    High-level steps:
    1. Validate the credential record and reject it once expired.
    2. Load both trees and build / check the inclusion and non-inclusion
       paths.
    3. Derive the holder's public key and sign the credential leaf.
    4. Resolve the circuit's signal schema (symbol file, else `program`).
    5. Shape every candidate into the canonical witness and write it.

    Side effects (writes files):
    - `<proofs_dir>/<UTC timestamp, millisecond precision>/canonical-input.json`
    - `<proofs_dir>/.last-canonical` holding that path

    Returns:
        The witness path and the witness itself.
    """
    errors = credential.validate()
    if errors:
        raise InvalidCredential(errors)
    now = clock.now().astimezone(timezone.utc)
    if credential.is_expired(now.date()):
        raise InvalidCredential([f"credential expired on {credential.expiry_date}"])

    cred_tree = load_tree(config.credential_tree_file)
    null_tree = load_tree(config.nullifier_tree_file)
    logger.info(
        "loaded trees of height %d and %d", cred_tree.height, null_tree.height
    )
    proofs = prepare_proofs(credential, cred_tree, null_tree, config, hasher)

    message = credential.leaf(hasher)
    public_key = signer.derive_public_key(credential.private_key)
    signature = signer.sign(credential.private_key, message)

    candidates = build_candidates(
        credential, proofs, public_key, signature, int(now.timestamp())
    )
    schema = resolve_schema(config.sym_path, program, candidates.keys())
    witness = assemble_witness(candidates, schema, missing="skip")

    stamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    path = config.proofs_dir / stamp / "canonical-input.json"
    save_witness(path, witness)
    save_string(config.proofs_dir / ".last-canonical", str(path))
    logger.info("canonical input written: %s (%d signals)", path, len(witness))
    return path, witness


@dataclass(frozen=True)
class ProofArtifacts:
    input_path: Path
    witness_path: Path
    proof_path: Path
    public_path: Path


def _proving_artifacts(config: ProverConfig) -> tuple[Path, Path]:
    if not config.zkey_path.exists():
        raise FileNotFoundError(f"proving key missing: {config.zkey_path}")
    wasm = find_wasm(config.build_dir, config.circuit_name)
    if wasm is None:
        raise FileNotFoundError(
            f"no {config.circuit_name}.wasm under {config.build_dir}"
        )
    return config.zkey_path, wasm


def prove_input(input_path: str | Path, config: ProverConfig) -> ProofArtifacts:
    """
    Run snarkjs on a written canonical input.

    The binary witness, `proof.json` and `public.json` land next to the
    input.

    Raises:
        FileNotFoundError: If the proving key or the compiled wasm is missing.
        subprocess.CalledProcessError: If snarkjs fails.
    """
    zkey, wasm = _proving_artifacts(config)
    source = Path(input_path)
    artifacts = ProofArtifacts(
        input_path=source,
        witness_path=source.parent / "witness.wtns",
        proof_path=source.parent / "proof.json",
        public_path=source.parent / "public.json",
    )
    calculate_witness(wasm, source, artifacts.witness_path, config.snarkjs)
    generate_proof(
        zkey,
        artifacts.witness_path,
        artifacts.proof_path,
        artifacts.public_path,
        config.snarkjs,
    )
    logger.info("proof written: %s", artifacts.proof_path)
    return artifacts


def prove(
    credential: Credential,
    config: ProverConfig,
    hasher: Hasher,
    signer: Signer,
    clock: Clock,
    program: SignalProgram | None = None,
) -> ProofArtifacts | None:
    """
    Write the canonical input and, unless `config.input_only`, prove it.

    The proving key and the wasm are checked before the input is written.

    Returns:
        The artifact paths, or None when `input_only` is set.
    """
    _proving_artifacts(config)
    path, _ = create_witness(credential, config, hasher, signer, clock, program)
    if config.input_only:
        logger.info("INPUT_ONLY set; stopping after %s", path)
        return None
    return prove_input(path, config)


def check_canonical(sym_path: str | Path, witness_path: str | Path) -> ShapeReport:
    schema = SymbolFileSource(sym_path).load()
    return check_shape(load_json(witness_path), schema)


def parse_spent(entries: Sequence[str]) -> dict[int, str]:
    """Parse `INDEX=NULLIFIER` entries; raises `ConfigError` on a malformed one."""
    spent = {}
    for entry in entries:
        index, sep, nullifier = entry.partition("=")
        if not sep or not index.strip().isdigit() or not nullifier.strip():
            raise ConfigError(f"--spent expects INDEX=NULLIFIER, got {entry!r}")
        spent[int(index)] = nullifier.strip()
    return spent


def _configure_logging() -> None:
    level = os.getenv("CREDPROOF_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credproof", description="Credential accumulator and witness tools"
    )
    sub = parser.add_subparsers(dest="command", required=True)
    trees = sub.add_parser("trees", help="build the credential and nullifier trees")
    trees.add_argument(
        "--spent",
        action="append",
        default=[],
        metavar="INDEX=NULLIFIER",
        help="record an already used nullifier at a slot (repeatable)",
    )
    sub.add_parser("witness", help="assemble the canonical witness")
    sub.add_parser(
        "prove", help="assemble the witness and run snarkjs (INPUT_ONLY stops early)"
    )

    check = sub.add_parser("check", help="compare a witness to the symbol file")
    check.add_argument("witness", type=Path)
    check.add_argument("--sym", type=Path, default=None)

    verify = sub.add_parser("verify", help="verify a Groth16 proof off-chain")
    verify.add_argument("vk", type=Path)
    verify.add_argument("proof", type=Path)
    verify.add_argument("public", type=Path)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point; returns 0 on success, 1 on failure, 2 on missing artifacts."""
    args = _parser().parse_args(argv)
    _configure_logging()

    try:
        config = ProverConfig.from_env()
        if args.command == "trees":
            create_trees(
                credential_from_env(),
                config,
                CommandHasher(config.poseidon_bin),
                parse_spent(args.spent),
            )
            return 0

        if args.command == "witness":
            create_witness(
                credential_from_env(),
                config,
                CommandHasher(config.poseidon_bin),
                CommandSigner(config.eddsa_bin),
                SystemClock(),
            )
            return 0

        if args.command == "prove":
            prove(
                credential_from_env(),
                config,
                CommandHasher(config.poseidon_bin),
                CommandSigner(config.eddsa_bin),
                SystemClock(),
            )
            return 0

        if args.command == "check":
            report = check_canonical(args.sym or config.sym_path, args.witness)
            for name in report.missing:
                logger.warning("signal %s missing from witness", name)
            for m in report.mismatched:
                logger.error("signal %s: expected %d, got %s", m.name, m.expected, m.actual)
            if report.mismatched:
                return 1
            logger.info("witness matches the symbol file")
            return 0

        ok = verify_proof_files(args.vk, args.proof, args.public)
        logger.info("proof valid: %s", ok)
        return 0 if ok else 1
    except (FileNotFoundError, SchemaUnavailable) as e:
        logger.error("missing artifact: %s", e)
        return 2
    except (CredproofError, subprocess.CalledProcessError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
