# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json
import subprocess

import pytest

from credproof.constants import FIELD_MODULUS
from credproof.errors import DecodeError
from credproof.hashing import CommandHasher, hash_rows


class Recorder:
    def __init__(self, stdout):
        self.stdout = stdout
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr="")


def test_command_hasher_batch(monkeypatch):
    fake = Recorder(json.dumps(["3", "7"]))
    monkeypatch.setattr(subprocess, "run", fake)

    hasher = CommandHasher("bin/poseidon", timeout=5)
    assert hasher.batch([[1, 2], [3, 4]]) == [3, 7]

    cmd, kwargs = fake.calls[0]
    assert cmd == ["bin/poseidon", "hash"]
    assert json.loads(kwargs["input"]) == [["1", "2"], ["3", "4"]]
    assert kwargs["check"] is True
    assert kwargs["timeout"] == 5


def test_command_hasher_single(monkeypatch):
    monkeypatch.setattr(subprocess, "run", Recorder('["42"]'))
    assert CommandHasher("p")([1, 2, 3, 4]) == 42


def test_command_hasher_empty_batch_skips_process(monkeypatch):
    fake = Recorder("[]")
    monkeypatch.setattr(subprocess, "run", fake)
    assert CommandHasher("p").batch([]) == []
    assert fake.calls == []


@pytest.mark.parametrize(
    "stdout",
    [
        "not json",
        '["1"]',
        '{"a": 1}',
        '["x", "2"]',
        json.dumps([str(FIELD_MODULUS), "2"]),
        "[true, 2]",
    ],
)
def test_command_hasher_rejects_bad_output(monkeypatch, stdout):
    monkeypatch.setattr(subprocess, "run", Recorder(stdout))
    with pytest.raises(DecodeError):
        CommandHasher("p").batch([[1, 2], [3, 4]])


def test_command_hasher_propagates_failure(monkeypatch):
    def failing(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, stderr="boom")

    monkeypatch.setattr(subprocess, "run", failing)
    with pytest.raises(subprocess.CalledProcessError):
        CommandHasher("p")([1, 2])


class PlainHasher:
    def __call__(self, inputs):
        return sum(inputs) % FIELD_MODULUS


def test_hash_rows_without_batch():
    assert hash_rows(PlainHasher(), [(1, 2), (3, 4)]) == [3, 7]


def test_hash_rows_parallel_keeps_order(hasher, monkeypatch):
    monkeypatch.setattr("credproof.hashing.PARALLEL_LEVEL_THRESHOLD", 4)
    rows = [(i, i + 1) for i in range(37)]
    assert hash_rows(hasher, rows, workers=4) == [hasher(r) for r in rows]


if __name__ == "__main__":
    pytest.main()
