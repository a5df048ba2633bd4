from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Union

import numpy as np

Number = Union[int, float]


@dataclass(frozen=True)
class HitStatistics:
    min: Optional[int] = None
    max: Optional[int] = None
    mean: Optional[float] = None
    median: Optional[Number] = None
    mode: Optional[int] = None

    def to_dict(self) -> Dict[str, Optional[Number]]:
        return {"min": self.min, "max": self.max, "mean": self.mean, "median": self.median, "mode": self.mode}


def _mode(values: Sequence[int]) -> int:
    # the first value to reach the highest count wins a tie
    counts: Dict[int, int] = {}
    mode, best = values[0], 0
    for v in values:
        counts[v] = counts.get(v, 0) + 1
        if counts[v] > best:
            best = counts[v]
            mode = v
    return mode


def hit_stats(values: Sequence[int]) -> HitStatistics:
    """min / max / mean / median / mode of a hit list; all None when it is empty."""
    if len(values) == 0:
        return HitStatistics()

    arr = np.asarray(values)
    ordered = np.sort(arr)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        median: Number = ordered[mid].item()
    else:
        median = (ordered[mid - 1].item() + ordered[mid].item()) / 2

    return HitStatistics(
        min=arr.min().item(),
        max=arr.max().item(),
        mean=float(arr.mean()),
        median=median,
        mode=_mode(values),
    )
