# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
"""
Canonical witness assembly.

Candidate values are shaped into exactly what the circuit declares: one
decimal string per scalar signal, an exact-length list of decimal strings
per array signal. Values never pass through floats, so field elements far
above 2**64 keep every digit.
"""
import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Iterator, Literal, Union

from credproof.errors import MissingSignal, SchemaViolation
from credproof.field import pack_bytes
from credproof.schema import SignalSchema

logger = logging.getLogger(__name__)

_SCIENTIFIC = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)[eE][+-]?\d+")

MissingPolicy = Literal["fill", "skip", "raise"]


def expand_scientific(s: str) -> str:
    """
    Rewrite a number written in exponent notation as plain digits.

    `"1.5e3"` becomes `"1500"`, `"2.5e-2"` becomes `"0.025"`. The expansion
    is exact. Strings that are not exponent-notation numbers are returned
    unchanged.
    """
    if not _SCIENTIFIC.fullmatch(s):
        return s
    try:
        d = Decimal(s)
    except InvalidOperation:
        return s
    return format(d, "f")


def _text(value: Any) -> str:
    if isinstance(value, bool):
        raise TypeError("booleans are not witness values")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return expand_scientific(repr(value))
    if isinstance(value, str):
        return expand_scientific(value)
    raise TypeError(f"unsupported witness value {type(value).__name__}")


@dataclass(frozen=True)
class Candidate:
    """Value offered for one signal: a scalar, an array, or both."""

    scalar: str | None = None
    array: tuple[str, ...] | None = None

    def __post_init__(self):
        if self.scalar is not None:
            object.__setattr__(self, "scalar", _text(self.scalar))
        if self.array is not None:
            object.__setattr__(self, "array", tuple(_text(v) for v in self.array))


@dataclass(frozen=True)
class Scalar:
    value: str


@dataclass(frozen=True)
class Array:
    values: tuple[str, ...] = field(default_factory=tuple)


WitnessValue = Union[Scalar, Array]


class CanonicalWitness(Mapping):
    """Ordered, read-only `signal -> WitnessValue` document."""

    def __init__(self, values: Iterable[tuple[str, WitnessValue]]):
        self._values = dict(values)

    def __getitem__(self, name: str) -> WitnessValue:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def to_dict(self) -> dict[str, str | list[str]]:
        out: dict[str, str | list[str]] = {}
        for name, value in self._values.items():
            if isinstance(value, Scalar):
                out[name] = value.value
            else:
                out[name] = list(value.values)
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def _shape(name: str, cand: Candidate, size: int) -> WitnessValue:
    if size == 0:
        if cand.scalar is not None:
            logger.debug("%s: scalar from candidate scalar", name)
            return Scalar(cand.scalar)
        if cand.array:
            logger.debug("%s: scalar packed from %d array elements", name, len(cand.array))
            return Scalar(str(pack_bytes(cand.array)))
        return Scalar("0")

    if cand.array is not None:
        values = list(cand.array[:size])
        values.extend(["0"] * (size - len(values)))
    elif cand.scalar is not None:
        logger.debug("%s: array of %d broadcast from scalar", name, size)
        values = [cand.scalar] * size
    else:
        values = ["0"] * size

    # toolchains disagree on "array of one" versus scalar
    if len(values) == 1 and cand.scalar is not None:
        return Scalar(cand.scalar)
    return Array(tuple(values))


def _normalize(value: WitnessValue) -> WitnessValue:
    if isinstance(value, Scalar):
        return Scalar(expand_scientific(value.value))
    return Array(tuple(expand_scientific(v) for v in value.values))


def _conforms(value: WitnessValue, size: int) -> bool:
    if size == 0:
        return isinstance(value, Scalar) and isinstance(value.value, str)
    if isinstance(value, Scalar):
        return size == 1 and isinstance(value.value, str)
    return len(value.values) == size and all(isinstance(v, str) for v in value.values)


def validate_witness(witness: CanonicalWitness, schema: SignalSchema) -> None:
    """
    Raises:
        SchemaViolation: If any emitted value disagrees with its declared size.
    """
    for name, value in witness.items():
        size = schema.size(name)
        if size is None:
            raise SchemaViolation(f"{name} is not declared by the schema")
        if not _conforms(value, size):
            raise SchemaViolation(f"{name} does not match declared size {size}")


def assemble_witness(
    candidates: Mapping[str, Candidate],
    schema: SignalSchema,
    missing: MissingPolicy = "fill",
) -> CanonicalWitness:
    """
    Shape candidate values into a schema-conformant witness.

    Signals are emitted in schema order. Candidates the schema does not
    declare are dropped. Scalars prefer the candidate scalar, then a byte
    packing of the candidate array, then `"0"`. Arrays take the candidate
    array padded with `"0"` or truncated to the declared length, or
    broadcast the candidate scalar; a length-1 result with a scalar
    candidate is emitted as that scalar.

    Args:
        candidates: Offered values per signal name.
        schema: Declared signal sizes.
        missing: What to do with a declared signal that has no candidate:
            `"fill"` emits the zero default, `"skip"` leaves it out (useful
            when the schema also lists outputs and internal signals) and
            `"raise"` fails.

    Returns:
        The validated `CanonicalWitness`.

    Raises:
        MissingSignal: For a signal without a candidate under `"raise"`.
        SchemaViolation: If shaping produced a value of the wrong shape.
    """
    for name in candidates:
        if name not in schema:
            logger.debug("skipping %s: not declared by the circuit", name)

    values = []
    for name, size in schema.items():
        cand = candidates.get(name)
        if cand is None:
            if missing == "raise":
                raise MissingSignal(f"no value for declared signal {name}")
            if missing == "skip":
                continue
            logger.warning("no value for %s, defaulting to zero", name)
            cand = Candidate()
        values.append((name, _normalize(_shape(name, cand, size))))

    witness = CanonicalWitness(values)
    validate_witness(witness, schema)
    return witness


@dataclass(frozen=True)
class Mismatch:
    name: str
    expected: int
    actual: str


@dataclass(frozen=True)
class ShapeReport:
    missing: tuple[str, ...]
    mismatched: tuple[Mismatch, ...]

    @property
    def ok(self) -> bool:
        return not self.missing and not self.mismatched


def check_shape(document: Mapping[str, Any], schema: SignalSchema) -> ShapeReport:
    """
    Compare a witness document, e.g. one read back from JSON, to the schema.

    Reports every declared signal absent from the document, and every value
    that is an array where a scalar is declared, a primitive where an array
    of more than one element is declared, or an array of the wrong length.
    """
    missing = []
    mismatched = []
    for name, size in schema.items():
        if name not in document:
            missing.append(name)
            continue
        value = document[name]
        if isinstance(value, list):
            if size == 0 or size != len(value):
                mismatched.append(Mismatch(name, size, f"array(len={len(value)})"))
        elif size > 1:
            mismatched.append(Mismatch(name, size, "primitive"))
    return ShapeReport(tuple(missing), tuple(mismatched))
