#!/usr/bin/env python3
"""
Run-summary log: one JSON object per line, append only.

The web app appends one record per simulation run; ``main()`` reads the
same file back and prints usage counts for ``sim_run`` events.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from collections import Counter
from typing import Any, Dict, Iterator, List, Tuple

logger = logging.getLogger(__name__)

SIM_RUN_EVENT = "sim_run"
TOP_N = 10


def append_record(path: str, payload: Any) -> None:
    line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    with open(path, "a", encoding="utf-8") as f:
        f.write(line + "\n")


def read_events(path: str, event: str = SIM_RUN_EVENT) -> Iterator[Dict[str, Any]]:
    """Yield records whose ``event`` matches; malformed lines are skipped."""
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("skipping malformed line %d in %s", lineno, path)
                continue
            if isinstance(obj, dict) and obj.get("event") == event:
                yield obj


def _preset(weapon: Any, default: str) -> str:
    if isinstance(weapon, dict) and weapon.get("preset"):
        return str(weapon["preset"])
    return default


def summarize(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    by_class: Counter = Counter()
    by_w1: Counter = Counter()
    by_combo: Counter = Counter()
    users = set()
    with_special = 0
    with_fistweaving = 0

    for e in events:
        by_class[e.get("classId") or "none"] += 1
        w1 = _preset(e.get("w1"), "custom")
        w2 = _preset(e.get("w2"), "none")
        by_w1[w1] += 1
        by_combo[f"{w1} + {w2}"] += 1
        users.add(e.get("uid"))
        if e.get("specialAttacks"):
            with_special += 1
        if e.get("fistweaving"):
            with_fistweaving += 1

    return {
        "total_runs": len(events),
        "unique_users": len(users),
        "by_class": dict(by_class),
        "top_w1_presets": by_w1.most_common(TOP_N),
        "top_combos": by_combo.most_common(TOP_N),
        "with_special": with_special,
        "with_fistweaving": with_fistweaving,
    }


def _fmt_pairs(pairs: List[Tuple[str, int]]) -> str:
    return ", ".join(f"{k}: {v}" for k, v in pairs) or "-"


def format_summary(summary: Dict[str, Any]) -> str:
    lines = [
        "--- DPS-Sim usage summary ---",
        f"Total sim runs: {summary['total_runs']}",
        f"Unique users (by anonymous id): {summary['unique_users']}",
        "",
        f"Runs by class: {_fmt_pairs(sorted(summary['by_class'].items()))}",
        "",
        f"Runs by main-hand preset (top {TOP_N}): {_fmt_pairs(summary['top_w1_presets'])}",
        "",
        f"Top weapon combinations (top {TOP_N}): {_fmt_pairs(summary['top_combos'])}",
        "",
        f"Runs with special attacks: {summary['with_special']}",
        f"Runs with fistweaving: {summary['with_fistweaving']}",
    ]
    return "\n".join(lines)


def main() -> None:
    ap = argparse.ArgumentParser(description="Summarize the run-summary log written by the web app")
    ap.add_argument("--log", default=os.environ.get("EQSIM_USAGE_LOG", "usage-log.jsonl"), help="path to usage-log.jsonl")
    args = ap.parse_args()

    if not os.path.exists(args.log):
        print(f"No {args.log} found. Start app.py and point the UI's USAGE_LOG_URL at /log.")
        return

    print(format_summary(summarize(list(read_events(args.log)))))


if __name__ == "__main__":
    main()
