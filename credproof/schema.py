# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
"""
Signal schema of a compiled circuit.

A schema maps every top-level input name to its size: `0` for a scalar
signal, `N > 0` for a fixed-length array. Two sources can produce one:

- the `.sym` symbol table written by the circuit compiler (authoritative)
- a loaded witness-calculator program probed through its
  `get_input_signal_size` export (best effort, used when no symbol table
  exists; it can under- or over-report for names it does not recognise)
"""
import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Iterable, Iterator, Protocol

from credproof.constants import FNV_OFFSET_BASIS, FNV_PRIME, MAIN_PREFIX, UINT64_MASK
from credproof.errors import SchemaUnavailable

logger = logging.getLogger(__name__)

_SIGNAL = re.compile(r"([A-Za-z0-9_]+)(?:\[(\d+)\])?")


class SignalSchema(Mapping):
    """Read-only `name -> size` map; absent names report `None` from `size`."""

    def __init__(self, sizes: Mapping[str, int]):
        for name, size in sizes.items():
            if size < 0:
                raise ValueError(f"signal {name} has negative size {size}")
        self._sizes = dict(sizes)

    def __getitem__(self, name: str) -> int:
        return self._sizes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._sizes)

    def __len__(self) -> int:
        return len(self._sizes)

    def __repr__(self) -> str:
        return f"SignalSchema({self._sizes!r})"

    def size(self, name: str) -> int | None:
        return self._sizes.get(name)

    def is_array(self, name: str) -> bool:
        return self._sizes.get(name, 0) > 0


class SchemaSource(Protocol):
    def load(self) -> SignalSchema:
        ...


def parse_symbols(content: str) -> SignalSchema:
    """
    Parse a circom `.sym` table into a schema.

    Each record is comma separated and its fourth column is a dotted signal
    path such as `main.root` or `main.path[3]`. Only direct children of
    `main` are kept. An indexed name `x[i]` sizes `x` as `max(i) + 1`, but
    a bare `x` anywhere in the table forces `x` to a scalar, because some
    toolchains emit both forms for one scalar signal.

    Args:
        content: Full text of the symbol file.

    Returns:
        The parsed `SignalSchema`, in first-seen order.
    """
    order: list[str] = []
    scalar: set[str] = set()
    array_len: dict[str, int] = {}

    for line in content.splitlines():
        if not line:
            continue
        parts = line.split(",")
        if len(parts) < 4:
            continue
        path = parts[3].strip()
        if not path.startswith(MAIN_PREFIX):
            continue
        m = _SIGNAL.fullmatch(path[len(MAIN_PREFIX) :])
        if m is None:
            continue

        base, idx = m.group(1), m.group(2)
        if base not in scalar and base not in array_len:
            order.append(base)
        if idx is None:
            scalar.add(base)
        else:
            array_len[base] = max(array_len.get(base, 0), int(idx) + 1)

    return SignalSchema(
        {base: 0 if base in scalar else array_len[base] for base in order}
    )


class SymbolFileSource:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> SignalSchema:
        schema = parse_symbols(self.path.read_text(encoding="utf-8"))
        logger.info("loaded %d signals from %s", len(schema), self.path)
        return schema


def fnv1a_64(name: str) -> str:
    """64-bit FNV-1a of a signal name as 16 lowercase hex digits."""
    h = FNV_OFFSET_BASIS
    for ch in name:
        h ^= ord(ch)
        h = (h * FNV_PRIME) & UINT64_MASK
    return f"{h:016x}"


class SignalProgram(Protocol):
    def get_input_signal_size(self, h_msb: int, h_lsb: int) -> int:
        ...


class ProgramProbeSource:
    """
    Schema probed from a loaded witness-calculator program.

    Only the given candidate names can be discovered. A name the program
    answers with `-1`, or whose probe raises, is reported absent.
    """

    def __init__(self, program: SignalProgram, names: Iterable[str]):
        self.program = program
        self.names = list(names)

    def probe(self, name: str) -> int | None:
        h = fnv1a_64(name)
        try:
            size = self.program.get_input_signal_size(int(h[:8], 16), int(h[8:], 16))
        except Exception as e:
            logger.debug("probe for %s failed: %s", name, e)
            return None
        if size is None or size < 0:
            return None
        return int(size)

    def load(self) -> SignalSchema:
        sizes = {}
        for name in self.names:
            size = self.probe(name)
            if size is not None:
                sizes[name] = size
        logger.info("probed %d of %d signals from program", len(sizes), len(self.names))
        return SignalSchema(sizes)


def resolve_schema(
    sym_path: str | Path | None,
    program: SignalProgram | None = None,
    names: Iterable[str] = (),
) -> SignalSchema:
    """
    Load the schema from the symbol file when it exists, else probe `program`.

    Raises:
        SchemaUnavailable: If neither source is available.
    """
    source: SchemaSource
    if sym_path is not None and Path(sym_path).exists():
        source = SymbolFileSource(sym_path)
    elif program is not None:
        logger.warning("no symbol file at %s, probing the program instead", sym_path)
        source = ProgramProbeSource(program, names)
    else:
        raise SchemaUnavailable(f"no symbol file at {sym_path} and no program to probe")
    return source.load()
