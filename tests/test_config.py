# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from pathlib import Path

import pytest

from credproof.config import CREDENTIAL_ENV, ProverConfig, credential_from_env
from credproof.errors import ConfigError

CREDENTIAL_VARS = {
    "HOLDER_NAME": "Ada Lovelace",
    "LICENSE_NUMBER": "LIC-0042",
    "EXAM_ID": "EXAM_2025_01",
    "ACHIEVEMENT_LEVEL": "Passed",
    "ISSUED_DATE": "2025-01-15",
    "EXPIRY_DATE": "2099-01-15",
    "ISSUER": "State Licensing Board",
    "HOLDER_DOB": "1990-12-10",
    "NULLIFIER": "0x1234",
    "PRIVATE_KEY": "0xabcdef1234",
}


def test_defaults():
    config = ProverConfig.from_env({})
    assert config.tree_height == 20
    assert config.credential_index == 0
    assert config.nullifier_index == 0
    assert config.merkle_workers == 1
    assert config.sym_path == Path("build/ExamProof.sym")


def test_from_env():
    config = ProverConfig.from_env(
        {
            "MERKLE_TREE_HEIGHT": "4",
            "CREDENTIAL_LEAF_INDEX": "3",
            "NULLIFIER_LEAF_INDEX": " ",
            "CIRCUIT_BUILD_DIR": "out",
            "CIRCUIT_NAME": "Other",
            "POSEIDON_BIN": "/usr/local/bin/poseidon",
            "MERKLE_WORKERS": "8",
        }
    )
    assert config.tree_height == 4
    assert config.credential_index == 3
    assert config.nullifier_index == 0
    assert config.sym_path == Path("out/Other.sym")
    assert config.poseidon_bin == Path("/usr/local/bin/poseidon")
    assert config.merkle_workers == 8


def test_proving_settings():
    config = ProverConfig.from_env({})
    assert config.zkey_path == Path("zkey/ExamProof_0001.zkey")
    assert config.snarkjs == "snarkjs"
    assert not config.input_only

    config = ProverConfig.from_env(
        {
            "ZKEY_DIR": "keys",
            "CIRCUIT_NAME": "Other",
            "SNARKJS_BIN": "/opt/snarkjs",
            "INPUT_ONLY": "1",
        }
    )
    assert config.zkey_path == Path("keys/Other_0001.zkey")
    assert config.snarkjs == "/opt/snarkjs"
    assert config.input_only

    config = ProverConfig.from_env({"ZKEY_FILE": "final.zkey", "INPUT_ONLY": "no"})
    assert config.zkey_path == Path("final.zkey")
    assert not config.input_only


@pytest.mark.parametrize(
    "env",
    [
        {"MERKLE_TREE_HEIGHT": "four"},
        {"CREDENTIAL_LEAF_INDEX": "-1"},
        {"MERKLE_WORKERS": "0"},
        {"MERKLE_TREE_HEIGHT": "-2"},
    ],
)
def test_from_env_rejects(env):
    with pytest.raises(ConfigError):
        ProverConfig.from_env(env)


def test_from_env_reads_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("MERKLE_TREE_HEIGHT=6\n")
    monkeypatch.chdir(tmp_path)
    # record the original value so teardown also undoes what load_dotenv sets
    monkeypatch.setenv("MERKLE_TREE_HEIGHT", "0")
    monkeypatch.delenv("MERKLE_TREE_HEIGHT")
    assert ProverConfig.from_env().tree_height == 6


def test_credential_from_env():
    credential = credential_from_env(CREDENTIAL_VARS)
    assert credential.exam_id == "EXAM_2025_01"
    assert credential.private_key == "0xabcdef1234"
    assert credential.validate() == []


def test_credential_from_env_names_missing_variable():
    env = dict(CREDENTIAL_VARS)
    del env["ISSUER"]
    with pytest.raises(ConfigError, match="ISSUER"):
        credential_from_env(env)


def test_credential_env_covers_every_field():
    assert set(CREDENTIAL_ENV.values()) == set(CREDENTIAL_VARS)


if __name__ == "__main__":
    pytest.main()
