from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from eqsim.classes import FISTWEAVE_DAMAGE
from eqsim.stats import HitStatistics, hit_stats

# The report line for backstab uses the 255 cap; the fight itself caps at 252.
REPORT_BACKSTAB_SKILL_CAP = 255


@dataclass
class SlotReport:
    """Counters for one attack stream (main hand, off hand or fistweaving)."""

    swings: int = 0
    hits: int = 0
    rounds: int = 0
    single: int = 0
    double: int = 0
    triple: int = 0
    total_damage: int = 0
    max_damage: int = 0
    min_damage: Optional[float] = math.inf
    hit_list: List[int] = field(default_factory=list)
    procs: int = 0
    proc_damage_total: int = 0
    hit_stats: HitStatistics = field(default_factory=HitStatistics)

    def record_miss(self) -> None:
        self.swings += 1

    def record_hit(self, damage: int) -> None:
        self.swings += 1
        self.hits += 1
        self.total_damage += damage
        self.max_damage = max(self.max_damage, damage)
        self.min_damage = min(self.min_damage, damage)
        self.hit_list.append(damage)

    def record_round(self, attacks: int) -> None:
        if attacks == 1:
            self.single += 1
        elif attacks == 2:
            self.double += 1
        else:
            self.triple += 1

    def finalize(self) -> None:
        self.hit_stats = hit_stats(self.hit_list)
        if self.hits == 0:
            self.min_damage = None


@dataclass
class SpecialReport:
    name: str
    attempts: int = 0
    hits: int = 0
    count: int = 0
    total_damage: int = 0
    max_damage: int = 0
    hit_list: List[int] = field(default_factory=list)
    double_backstabs: Optional[int] = None
    backstab_skill: Optional[int] = None
    backstab_mod_percent: Optional[float] = None

    def record_hit(self, damage: int) -> None:
        self.hits += 1
        self.count += 1
        self.total_damage += damage
        self.max_damage = max(self.max_damage, damage)
        self.hit_list.append(damage)


@dataclass
class Report:
    duration_sec: float
    weapon1: SlotReport = field(default_factory=SlotReport)
    weapon2: SlotReport = field(default_factory=SlotReport)
    total_damage: int = 0
    damage_bonus: int = 0
    damage_bonus_total: int = 0
    calculated_to_hit: int = 0
    calculated_offense: int = 0
    offense_stat_contribution: int = 0
    displayed_attack: int = 0
    avoidance: int = 0
    mitigation: int = 0
    crit_hits: int = 0
    crit_damage_gain: int = 0
    special: Optional[SpecialReport] = None
    fistweaving: Optional[SlotReport] = None

    @property
    def dps(self) -> float:
        return self.total_damage / self.duration_sec if self.duration_sec > 0 else 0.0

    def finalize(self) -> None:
        self.weapon1.finalize()
        self.weapon2.finalize()
        if self.fistweaving is not None:
            self.fistweaving.finalize()

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["dps"] = self.dps
        return out


# ──────────────────────────────────────────────────────────────
# Text rendering
# ──────────────────────────────────────────────────────────────
def _fmt_stat(v: Optional[float]) -> str:
    if v is None:
        return "—"
    if float(v).is_integer():
        return str(int(v))
    return f"{v:.2f}"


def _pct(n: int, d: int) -> str:
    return f"{n / d * 100:.1f}%"


def _slot_lines(slot: SlotReport, label: str, with_triple: bool) -> List[str]:
    s = slot.hit_stats
    lines = [label, f"  Combat rounds: {slot.rounds}"]
    if slot.rounds > 0:
        if with_triple:
            lines.append(
                "  Single / Double / Triple (% of rounds): "
                f"{_pct(slot.single, slot.rounds)} / {_pct(slot.double, slot.rounds)} / {_pct(slot.triple, slot.rounds)}"
            )
        else:
            lines.append(f"  Single / Double (% of rounds): {_pct(slot.single, slot.rounds)} / {_pct(slot.double, slot.rounds)}")
    lines.append(f"  Single attacks: {slot.single}")
    lines.append(f"  Double attacks: {slot.double}")
    if with_triple:
        lines.append(f"  Triple attacks: {slot.triple}")
    lines.append(f"  Swings: {slot.swings}")
    lines.append(f"  Hits: {slot.hits}")
    if slot.swings > 0:
        lines.append(f"  Overall accuracy: {_pct(slot.hits, slot.swings)}")
    lines.append(f"  Total damage: {slot.total_damage}")
    lines.append(f"  Max hit: {_fmt_stat(s.max if s.max is not None else slot.max_damage)}")
    lines.append(f"  Min hit: {_fmt_stat(s.min)}")
    lines.append(f"  Mean hit: {_fmt_stat(s.mean)}")
    lines.append(f"  Median hit: {_fmt_stat(s.median)}")
    lines.append(f"  Mode hit: {_fmt_stat(s.mode)}")
    lines.append(f"  Procs: {slot.procs}")
    if slot.proc_damage_total > 0:
        lines.append(f"  Proc spell damage: {slot.proc_damage_total}")
    return lines


def format_report(report: Report, weapon1_label: Optional[str] = None, weapon2_label: Optional[str] = None) -> str:
    """Render a finished report as labelled text lines. Does not modify *report*."""
    duration = report.duration_sec
    lines = [
        "--- Combat Report ---",
        f"Duration: {_fmt_stat(duration)} seconds",
        f"Calculated To Hit: {report.calculated_to_hit}",
        f"Calculated Offense: {report.calculated_offense}",
        f"Offense contribution from stats (STR): {report.offense_stat_contribution}",
        f"Displayed Attack: {report.displayed_attack}  ( (offense + toHit) * 1000 / 744 )",
        f"Main hand damage bonus: {report.damage_bonus}",
    ]
    if report.damage_bonus_total > 0:
        lines.append(f"Damage from bonus: {report.damage_bonus_total}")
    lines.append(f"Critical hits: {report.crit_hits}")
    if report.crit_damage_gain >= 0:
        lines.append(f"Net DPS from criticals (vs normal): {report.crit_damage_gain / duration:.2f}")

    lines.append("")
    lines.extend(_slot_lines(report.weapon1, weapon1_label or "Weapon 1", with_triple=True))

    if report.weapon2.swings > 0:
        lines.append("")
        lines.extend(_slot_lines(report.weapon2, weapon2_label or "Weapon 2", with_triple=False))

    sp = report.special
    if sp is not None and sp.count > 0:
        lines.extend(["", sp.name, f"  Count: {sp.count}", f"  Total damage: {sp.total_damage}", f"  Max hit: {sp.max_damage}"])
        if sp.double_backstabs is not None:
            acc = f"{sp.hits / sp.attempts * 100:.1f}" if sp.attempts > 0 else "0"
            lines.extend([
                f"  Total backstab attempts: {sp.attempts}",
                f"  Backstab hits: {sp.hits}",
                f"  Backstab damage: {sp.total_damage}",
                f"  Backstab accuracy: {acc}%",
                f"  Backstab max hit: {sp.max_damage}",
                f"  Double backstabs: {sp.double_backstabs}",
            ])
            mod = sp.backstab_mod_percent or 0
            if mod != 0 and sp.backstab_skill is not None:
                effective = min(REPORT_BACKSTAB_SKILL_CAP, math.floor(sp.backstab_skill * (100 + mod) / 100))
                lines.append(f"  Effective backstab skill: {effective} (skill + {_fmt_stat(mod)}% mod, cap {REPORT_BACKSTAB_SKILL_CAP})")

    fw = report.fistweaving
    if fw is not None and fw.rounds > 0:
        acc = f"{fw.hits / fw.swings * 100:.1f}" if fw.swings > 0 else "0"
        lines.extend([
            "",
            f"Fistweaving ({FISTWEAVE_DAMAGE} dmg, no proc)",
            f"  Rounds: {fw.rounds}",
            f"  Single / Double: {fw.single} / {fw.double}",
            f"  Swings: {fw.swings}",
            f"  Hits: {fw.hits}",
            f"  Accuracy: {acc}%",
            f"  Total damage: {fw.total_damage}",
            f"  Max hit: {fw.max_damage}",
            f"  DPS: {fw.total_damage / duration:.2f}",
        ])

    lines.extend(["", f"Total damage: {report.total_damage}", f"DPS: {report.dps:.2f}"])
    return "\n".join(lines)
