# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from credproof.errors import DecodeError


@dataclass(frozen=True)
class PublicKey:
    x: str
    y: str

    def to_signal(self) -> list[str]:
        return [self.x, self.y]


@dataclass(frozen=True)
class Signature:
    s: str
    r8x: str
    r8y: str

    def r_signal(self) -> list[str]:
        return [self.r8x, self.r8y]


class Signer(Protocol):
    """EdDSA over the hash field (Baby Jubjub with Poseidon), provided externally."""

    def derive_public_key(self, private_key: str) -> PublicKey:
        ...

    def sign(self, private_key: str, message: int) -> Signature:
        ...


def strip_hex_prefix(key: str) -> str:
    return key[2:] if key.startswith("0x") else key


def _decimal(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise DecodeError(f"{value!r} is not an integer")
    try:
        return str(int(value))
    except ValueError as e:
        raise DecodeError(f"{value!r} is not a decimal integer") from e


def parse_public_key(data: Any) -> PublicKey:
    if isinstance(data, dict) and "x" in data and "y" in data:
        return PublicKey(_decimal(data["x"]), _decimal(data["y"]))
    if isinstance(data, list) and len(data) >= 2:
        return PublicKey(_decimal(data[0]), _decimal(data[1]))
    raise DecodeError("unsupported public key shape returned by signer")


def parse_signature(data: Any) -> Signature:
    """
    Accept the signature shapes EdDSA libraries return.

    - `{"S": s, "R8": [x, y]}`
    - `[R8x, R8y, S]`
    - `{"S": s, "R": [x, y]}`

    Raises:
        DecodeError: For any other shape.
    """
    if isinstance(data, dict) and "S" in data:
        r = data.get("R8", data.get("R"))
        if isinstance(r, list) and len(r) >= 2:
            return Signature(_decimal(data["S"]), _decimal(r[0]), _decimal(r[1]))
    if isinstance(data, list) and len(data) >= 3:
        return Signature(_decimal(data[2]), _decimal(data[0]), _decimal(data[1]))
    raise DecodeError("unsupported signature shape returned by signer")


class CommandSigner:
    """
    EdDSA-Poseidon signer behind an external command line tool.

    `<binary> pubkey` reads `{"privateKey": hex}` and prints the public key,
    `<binary> sign` reads `{"privateKey": hex, "message": decimal}` and
    prints the signature, both as JSON. Private keys are sent without `0x`.
    """

    def __init__(self, binary: str | Path, timeout: float | None = None):
        self.binary = Path(binary)
        self.timeout = timeout

    def _run(self, command: str, payload: dict[str, str]) -> Any:
        # raise if non-zero exit
        output = subprocess.run(
            [str(self.binary), command],
            input=json.dumps(payload),
            capture_output=True,
            text=True,
            check=True,
            timeout=self.timeout,
        )
        try:
            return json.loads(output.stdout)
        except json.JSONDecodeError as e:
            raise DecodeError(f"{self.binary} {command} printed invalid JSON") from e

    def derive_public_key(self, private_key: str) -> PublicKey:
        data = self._run("pubkey", {"privateKey": strip_hex_prefix(private_key)})
        return parse_public_key(data)

    def sign(self, private_key: str, message: int) -> Signature:
        data = self._run(
            "sign",
            {"privateKey": strip_hex_prefix(private_key), "message": str(message)},
        )
        return parse_signature(data)
