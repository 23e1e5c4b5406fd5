"""Seeded randomness keyed by (seed, label), shared by every engine module."""

from __future__ import annotations

import hashlib
import math
import secrets
from typing import Sequence, TypeVar

T = TypeVar("T")

_MODULUS = 1_000_000_000


def value01(seed: int, label: str) -> float:
    """Return a deterministic float in [0, 1) for a (seed, label) pair.

    The same pair always yields the same value; distinct labels under one
    seed are independent for gameplay purposes.

    Args:
        seed: Integer seed, usually the combat session seed.
        label: Draw label, e.g. "skill:3:hit".

    Returns:
        A float in [0, 1).
    """
    digest = hashlib.md5(f"{seed}:{label}".encode("utf-8")).hexdigest()
    return (int(digest[:16], 16) % _MODULUS) / _MODULUS


def rng_int(seed: int, label: str, lo: int, hi: int) -> int:
    """Deterministic integer in the inclusive range [lo, hi]."""
    if hi < lo:
        lo, hi = hi, lo
    span = hi - lo + 1
    return lo + math.floor(value01(seed, label) * span)


def rng_pick(seed: int, label: str, items: Sequence[T]) -> T:
    """Pick one element of a non-empty sequence.

    Raises:
        ValueError: If items is empty.
    """
    if not items:
        raise ValueError("Cannot pick from an empty sequence")
    return items[rng_int(seed, label, 0, len(items) - 1)]


def pick_weighted(seed: int, label: str, entries: Sequence[tuple[T, float]]) -> T:
    """Pick from (item, weight) pairs using exactly one draw.

    Negative weights count as zero. If every weight is zero the first item
    is returned.

    Args:
        seed: Integer seed.
        label: Draw label.
        entries: Non-empty sequence of (item, weight) pairs.

    Returns:
        The chosen item.

    Raises:
        ValueError: If entries is empty.
    """
    if not entries:
        raise ValueError("Cannot pick from an empty weight table")
    total = sum(max(0.0, weight) for _, weight in entries)
    if total <= 0:
        return entries[0][0]
    roll = value01(seed, label) * total
    cursor = 0.0
    for item, weight in entries:
        cursor += max(0.0, weight)
        if roll < cursor:
            return item
    return entries[-1][0]


def stable_hash(text: str) -> int:
    """32-bit stable hash of a string, used for short deterministic ids."""
    return int(hashlib.md5(text.encode("utf-8")).hexdigest()[:8], 16)


def new_seed() -> int:
    """Fresh non-deterministic seed for a new combat session."""
    return secrets.randbelow(2**31 - 1) + 1
