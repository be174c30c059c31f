# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only


class CredproofError(Exception):
    """Base class for every error raised by the accumulator and witness code."""


class CapacityExceeded(CredproofError, ValueError):
    """More leaves were supplied than a tree of the requested height can hold."""

    def __init__(self, count: int, height: int):
        self.count = count
        self.height = height
        super().__init__(
            f"{count} leaves exceed the capacity {1 << height} of a height {height} tree"
        )


class IndexOutOfRange(CredproofError, IndexError):
    """A leaf index outside `[0, 2**height)` was requested."""

    def __init__(self, index: int, height: int):
        self.index = index
        self.height = height
        super().__init__(
            f"index {index} is outside a height {height} tree ({1 << height} slots)"
        )


class DecodeError(CredproofError, ValueError):
    """Malformed hex, JSON or tree data."""


class SchemaViolation(CredproofError, RuntimeError):
    """The assembler emitted a value whose shape disagrees with the schema."""


class MissingSignal(CredproofError, KeyError):
    """A schema-declared signal has no candidate value."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class SchemaUnavailable(CredproofError):
    """Neither a symbol file nor a loaded program was available."""


class NullifierCollision(CredproofError, ValueError):
    """The slot used for non-inclusion already stores the forbidden nullifier."""

    def __init__(self, leaf: int, index: int | None = None):
        self.leaf = leaf
        self.index = index
        where = "" if index is None else f" at index {index}"
        super().__init__(f"stored leaf{where} equals the forbidden nullifier {leaf}")


class ConfigError(CredproofError):
    """A required configuration value is missing or malformed."""


class InvalidCredential(CredproofError, ValueError):
    """The credential record failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class InvalidProof(CredproofError):
    """A freshly built authentication path does not reach the published root."""
