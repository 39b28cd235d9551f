# sequence_engine/utils/seeding.py
from __future__ import annotations
from typing import Any

import numpy as np


def new_seed() -> int:
    """High-entropy seed drawn from the OS via numpy's SeedSequence."""
    return int(np.random.SeedSequence().entropy)


def resolve_seed(value: Any = "random") -> int:
    """Turn a config value ("random", None or an int-like) into a concrete seed."""
    if value is None or value == "random":
        return new_seed()
    return int(value)


def derive_seed(seed: int, *parts: Any) -> str:
    """Stable sub-seed for a follow-up shuffle, e.g. the n-th discard reshuffle.

    ``random.Random`` hashes str seeds with SHA-512, so the result is the same
    on every interpreter run.
    """
    return ":".join([str(int(seed))] + [str(p) for p in parts])
