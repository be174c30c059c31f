# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
"""
Runtime configuration.

Values come from the environment (a `.env` file in the working directory is
loaded first). Protocol constants that never vary live in `constants`.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import find_dotenv, load_dotenv

from credproof.constants import DEFAULT_CIRCUIT_NAME, DEFAULT_TREE_HEIGHT
from credproof.errors import ConfigError
from credproof.leaves import Credential

CREDENTIAL_ENV = {
    "holder_name": "HOLDER_NAME",
    "license_number": "LICENSE_NUMBER",
    "exam_id": "EXAM_ID",
    "achievement_level": "ACHIEVEMENT_LEVEL",
    "issued_date": "ISSUED_DATE",
    "expiry_date": "EXPIRY_DATE",
    "issuer": "ISSUER",
    "holder_dob": "HOLDER_DOB",
    "nullifier": "NULLIFIER",
    "private_key": "PRIVATE_KEY",
}


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw, 10)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ProverConfig:
    tree_height: int = DEFAULT_TREE_HEIGHT
    credential_index: int = 0
    nullifier_index: int = 0
    credential_tree_file: Path = Path("trees/credential-tree.json")
    nullifier_tree_file: Path = Path("trees/nullifier-tree.json")
    build_dir: Path = Path("build")
    circuit_name: str = DEFAULT_CIRCUIT_NAME
    proofs_dir: Path = Path("proofs")
    poseidon_bin: Path = Path("bin/poseidon")
    eddsa_bin: Path = Path("bin/eddsa")
    merkle_workers: int = 1
    zkey_dir: Path = Path("zkey")
    zkey_file: Path | None = None
    snarkjs: str = "snarkjs"
    input_only: bool = False

    def __post_init__(self):
        if self.tree_height < 0:
            raise ConfigError(f"tree height must be non-negative, got {self.tree_height}")
        if self.credential_index < 0 or self.nullifier_index < 0:
            raise ConfigError("leaf indices must be non-negative")
        if self.merkle_workers < 1:
            raise ConfigError("MERKLE_WORKERS must be at least 1")

    @property
    def sym_path(self) -> Path:
        return self.build_dir / f"{self.circuit_name}.sym"

    @property
    def zkey_path(self) -> Path:
        """Proving key; `ZKEY_FILE` wins over the phase-2 key in `zkey_dir`."""
        if self.zkey_file is not None:
            return self.zkey_file
        return self.zkey_dir / f"{self.circuit_name}_0001.zkey"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ProverConfig":
        if env is None:
            load_dotenv(find_dotenv(usecwd=True))
            env = os.environ
        defaults = cls()
        return cls(
            tree_height=_int(env, "MERKLE_TREE_HEIGHT", defaults.tree_height),
            credential_index=_int(env, "CREDENTIAL_LEAF_INDEX", 0),
            nullifier_index=_int(env, "NULLIFIER_LEAF_INDEX", 0),
            credential_tree_file=Path(
                env.get("CREDENTIAL_TREE_FILE", defaults.credential_tree_file)
            ),
            nullifier_tree_file=Path(
                env.get("NULLIFIER_TREE_FILE", defaults.nullifier_tree_file)
            ),
            build_dir=Path(env.get("CIRCUIT_BUILD_DIR", defaults.build_dir)),
            circuit_name=env.get("CIRCUIT_NAME", defaults.circuit_name),
            proofs_dir=Path(env.get("PROOFS_DIR", defaults.proofs_dir)),
            poseidon_bin=Path(env.get("POSEIDON_BIN", defaults.poseidon_bin)),
            eddsa_bin=Path(env.get("EDDSA_BIN", defaults.eddsa_bin)),
            merkle_workers=_int(env, "MERKLE_WORKERS", 1),
            zkey_dir=Path(env.get("ZKEY_DIR", defaults.zkey_dir)),
            zkey_file=Path(env["ZKEY_FILE"]) if env.get("ZKEY_FILE") else None,
            snarkjs=env.get("SNARKJS_BIN", defaults.snarkjs),
            input_only=_flag(env, "INPUT_ONLY"),
        )


def credential_from_env(env: Mapping[str, str] | None = None) -> Credential:
    """
    Read the credential record from the environment.

    Raises:
        ConfigError: Naming the first missing variable.
    """
    if env is None:
        load_dotenv(find_dotenv(usecwd=True))
        env = os.environ
    values = {}
    for attr, name in CREDENTIAL_ENV.items():
        value = env.get(name)
        if not value:
            raise ConfigError(f"environment variable {name} is required")
        values[attr] = value
    return Credential(**values)
