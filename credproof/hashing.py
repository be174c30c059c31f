# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json
import logging
import subprocess
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Protocol, Sequence

from credproof.constants import FIELD_MODULUS, PARALLEL_LEVEL_THRESHOLD
from credproof.errors import DecodeError

logger = logging.getLogger(__name__)


class Hasher(Protocol):
    """
    Arity-parameterized Poseidon-style hash over field elements.

    Implementations must be deterministic and pure. Two inputs hash a tree
    node, four inputs hash a credential leaf.
    """

    def __call__(self, inputs: Sequence[int]) -> int:
        ...

    def batch(self, rows: Sequence[Sequence[int]]) -> list[int]:
        ...


def _parse_element(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise DecodeError(f"hash output {value!r} is not a field element")
    try:
        n = int(value)
    except ValueError as e:
        raise DecodeError(f"hash output {value!r} is not a decimal integer") from e
    if not 0 <= n < FIELD_MODULUS:
        raise DecodeError(f"hash output {n} is outside the field")
    return n


class CommandHasher:
    """
    Poseidon hash provided by an external command line tool.

    The tool is invoked as `<binary> hash`, receives a JSON array of input
    rows (each row a list of decimal strings) on stdin and must print a JSON
    array holding one decimal string per row. A whole batch costs a single
    process, so hashing a tree level is one call.
    """

    def __init__(self, binary: str | Path, timeout: float | None = None):
        self.binary = Path(binary)
        self.timeout = timeout

    def __call__(self, inputs: Sequence[int]) -> int:
        return self.batch([inputs])[0]

    def batch(self, rows: Sequence[Sequence[int]]) -> list[int]:
        if not rows:
            return []
        payload = json.dumps([[str(v) for v in row] for row in rows])
        cmd = [str(self.binary), "hash"]

        # raise if non-zero exit
        output = subprocess.run(
            cmd,
            input=payload,
            capture_output=True,
            text=True,
            check=True,
            timeout=self.timeout,
        )
        try:
            results = json.loads(output.stdout)
        except json.JSONDecodeError as e:
            raise DecodeError(f"{self.binary} printed invalid JSON") from e

        if not isinstance(results, list) or len(results) != len(rows):
            raise DecodeError(
                f"{self.binary} returned {len(results) if isinstance(results, list) else 'no'} "
                f"results for {len(rows)} rows"
            )
        return [_parse_element(r) for r in results]


def _batch(hasher: Hasher, rows: Sequence[Sequence[int]]) -> list[int]:
    batch = getattr(hasher, "batch", None)
    if batch is not None:
        return list(batch(rows))
    return [hasher(row) for row in rows]


def hash_rows(
    hasher: Hasher, rows: Sequence[Sequence[int]], workers: int = 1
) -> list[int]:
    """
    Hash every row of a tree level.

    Rows are independent, so large levels are split into `workers` chunks and
    hashed on a thread pool; the call returns only once the whole level is
    done, which is the barrier between levels.

    Args:
        hasher: Hash capability.
        rows: Input rows, in order.
        workers: Number of threads; 1 hashes serially.

    Returns:
        One field element per row, in row order.
    """
    rows = list(rows)
    if workers <= 1 or len(rows) < PARALLEL_LEVEL_THRESHOLD:
        return _batch(hasher, rows)

    size = -(-len(rows) // workers)
    chunks = [rows[i : i + size] for i in range(0, len(rows), size)]
    logger.debug("hashing %d rows in %d chunks", len(rows), len(chunks))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return [h for chunk in pool.map(lambda c: _batch(hasher, c), chunks) for h in chunk]
