"""Deterministic seed derivation."""

from __future__ import annotations

import hashlib


def deterministic_hash(value: str) -> int:
    """Return a deterministic integer hash for ``value``."""
    digest = hashlib.sha256(value.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=False)


def derive_seed(seed: int, index: int, salt: str = "step") -> int:
    """Mix ``(seed, index)`` into a fresh 64-bit seed.

    Distinct ``index`` values under the same ``seed`` produce unrelated
    values, so consecutive generation steps never share a draw.
    """
    return deterministic_hash(f"{salt}:{int(seed)}:{int(index)}")
