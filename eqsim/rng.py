"""Seedable random streams.

A fight consumes two independent streams: the melee stream drives every
hit, damage, multiplier, crit and double/triple/dual-wield roll, while the
proc stream is consulted only for weapon procs. Keeping them apart means a
proc roll never shifts the alignment of the melee draws under a fixed seed.
"""

from __future__ import annotations

import random
from typing import Optional, Tuple

PROC_SEED_OFFSET = 12345


def make_rng(seed: Optional[int] = None) -> random.Random:
    return random.Random(seed)


def make_streams(seed: Optional[int] = None) -> Tuple[random.Random, random.Random]:
    """Return ``(melee_rng, proc_rng)``; both are unseeded when *seed* is None."""
    if seed is None:
        return make_rng(), make_rng()
    return make_rng(seed), make_rng(seed + PROC_SEED_OFFSET)


def rng_bool(rng: random.Random, p: float) -> bool:
    """True with probability *p*. No draw is consumed when p <= 0."""
    if p <= 0.0:
        return False
    return rng.random() < p
