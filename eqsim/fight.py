#!/usr/bin/env python3
"""
Tick-based melee fight simulator.

The fight runs on a decisecond grid. Main hand, off hand and the class
special each keep their own "next eligible tick"; a weapon round is only
started when its swing timer finishes inside the fight window, so a fight
of D ticks holds floor(D / delay) main-hand rounds.
"""

from __future__ import annotations

import argparse
import logging
import math
import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

import numpy as np

from eqsim.classes import (
    FISTWEAVE_DAMAGE,
    Archetype,
    SpecialAttack,
    can_dual_wield,
    special_attack_for,
)
from eqsim.config import ConfigLike, FightConfig, Weapon, as_config, validate_config
from eqsim.formulas import (
    BACKSTAB_SKILL_CAP,
    PROC_DEFAULT_DEX,
    avoidance_from_level,
    backstab_base_damage,
    backstab_effective_skill,
    backstab_min_hit,
    check_proc,
    damage_bonus,
    damage_multiplier_roll,
    double_attack_check,
    double_attack_effective,
    dual_wield_check,
    dual_wield_effective,
    haste_adjusted_delay,
    melee_damage,
    mitigation_from_level,
    proc_chance_per_swing,
    roll_crit,
    roll_hit,
    triple_attack_check,
)
from eqsim.report import Report, SlotReport, SpecialReport, format_report
from eqsim.rng import make_streams

logger = logging.getLogger(__name__)

# To hit: offense skill 252 + weapon skill 252 + 7. Base offense = weapon skill + STR.
OFFENSE_SKILL_FOR_TO_HIT = 252
WEAPON_SKILL_FOR_TO_HIT = 252
BASE_TO_HIT = 7 + OFFENSE_SKILL_FOR_TO_HIT + WEAPON_SKILL_FOR_TO_HIT
BASE_OFFENSE_SKILL = 252

DOUBLE_BACKSTAB_MIN_LEVEL = 55


@dataclass(frozen=True)
class SwingSource:
    """What one swing hits with: base damage, flat bonus and proc odds."""

    base_damage: int
    flat_bonus: int = 0
    proc_chance: float = 0.0
    proc_damage: int = 0


@dataclass(frozen=True)
class CombatContext:
    """Per-fight constants, derived once from the config and read-only in the loop."""

    archetype: Archetype
    level: int
    dex: Optional[int]
    avoidance: int
    mitigation: int
    to_hit: int
    offense: int
    str_bonus: int
    delay1: float
    delay2: Optional[float]
    double_attack_effective: int
    dual_wield_effective: int
    damage_bonus: int
    main_hand: SwingSource
    off_hand: Optional[SwingSource]
    dual_wielding: bool
    fistweaving: bool
    special: Optional[SpecialAttack]
    backstab_skill: int
    from_behind: bool
    crit_chance_mult: float
    berserk: bool
    crippling_blow_chance: float
    duration_decisec: int

    @property
    def displayed_attack(self) -> int:
        return math.floor((self.offense + self.to_hit) * 1000 / 744)


def strength_offense_bonus(strength: int) -> int:
    return math.floor((2 * strength - 150) / 3) if strength >= 75 else 0


def _proc_source(weapon: Weapon, delay: float, is_offhand: bool, dex: Optional[int], flat_bonus: int) -> SwingSource:
    chance = proc_chance_per_swing(delay, is_offhand, dex) if weapon.proc_spell is not None else 0.0
    return SwingSource(
        base_damage=weapon.base_damage,
        flat_bonus=flat_bonus,
        proc_chance=chance,
        proc_damage=int(weapon.proc_spell_damage or 0),
    )


def build_context(cfg: FightConfig) -> CombatContext:
    arch = cfg.archetype
    level = cfg.level
    w1, w2 = cfg.weapon1, cfg.weapon2

    avoidance = cfg.avoidance if cfg.avoidance is not None else avoidance_from_level(cfg.mob_level)
    mitigation = mitigation_from_level(cfg.mob_level, cfg.target_ac, cfg.item_ac_bonus, cfg.spell_ac_bonus)

    str_bonus = strength_offense_bonus(cfg.strength)
    if cfg.uses_attack_rating:
        to_hit = cfg.attack_rating + cfg.to_hit_bonus
        offense = cfg.attack_rating + str_bonus
    else:
        to_hit = BASE_TO_HIT + cfg.to_hit_bonus
        offense = BASE_OFFENSE_SKILL + str_bonus + (cfg.worn_attack or 0) + (cfg.spell_attack or 0)

    delay1 = haste_adjusted_delay(w1.delay, cfg.haste_percent)
    delay2 = haste_adjusted_delay(w2.delay, cfg.haste_percent) if w2 is not None else None
    bonus = damage_bonus(level, arch, w1.delay, w1.is_two_handed)
    proc_dex = cfg.dexterity or PROC_DEFAULT_DEX

    special = special_attack_for(arch) if cfg.special_attacks else None
    if special is not None and special.from_behind_only and not cfg.from_behind:
        special = None

    return CombatContext(
        archetype=arch,
        level=level,
        dex=cfg.dexterity,
        avoidance=avoidance,
        mitigation=mitigation,
        to_hit=to_hit,
        offense=offense,
        str_bonus=str_bonus,
        delay1=delay1,
        delay2=delay2,
        double_attack_effective=double_attack_effective(level, cfg.double_attack_skill),
        dual_wield_effective=dual_wield_effective(level, cfg.dual_wield_skill, cfg.ambidexterity),
        damage_bonus=bonus,
        main_hand=_proc_source(w1, delay1, False, proc_dex, bonus),
        off_hand=_proc_source(w2, delay2, True, proc_dex, 0) if w2 is not None else None,
        dual_wielding=w2 is not None and cfg.dual_wield_skill > 0 and can_dual_wield(arch),
        fistweaving=arch is Archetype.MONK and w1.is_two_handed and cfg.fistweaving,
        special=special,
        backstab_skill=cfg.backstab_skill,
        from_behind=cfg.from_behind,
        crit_chance_mult=cfg.crit_chance_mult,
        berserk=cfg.berserk,
        crippling_blow_chance=cfg.crippling_blow_chance,
        duration_decisec=math.floor(cfg.fight_duration_sec * 10),
    )


def _new_report(cfg: FightConfig, ctx: CombatContext) -> Report:
    special = None
    if ctx.special is not None:
        special = SpecialReport(name=ctx.special.name)
        if ctx.archetype is Archetype.ROGUE:
            special.double_backstabs = 0
            special.backstab_skill = min(BACKSTAB_SKILL_CAP, cfg.backstab_skill)
            special.backstab_mod_percent = cfg.backstab_mod_percent or 0
    return Report(
        duration_sec=cfg.fight_duration_sec,
        damage_bonus=ctx.damage_bonus,
        calculated_to_hit=ctx.to_hit,
        calculated_offense=ctx.offense,
        offense_stat_contribution=ctx.str_bonus,
        displayed_attack=ctx.displayed_attack,
        avoidance=ctx.avoidance,
        mitigation=ctx.mitigation,
        special=special,
        fistweaving=SlotReport() if ctx.fistweaving else None,
    )


# ──────────────────────────────────────────────────────────────
# Swing / round resolution
# ──────────────────────────────────────────────────────────────
def _crit(ctx: CombatContext, damage: int, flat_bonus: int, rng: random.Random):
    return roll_crit(
        damage, flat_bonus, ctx.level, ctx.archetype, ctx.dex, ctx.crit_chance_mult, rng,
        berserk=ctx.berserk, crippling_blow_chance=ctx.crippling_blow_chance,
    )


def resolve_swing(
    ctx: CombatContext,
    source: SwingSource,
    slot: SlotReport,
    report: Report,
    rng: random.Random,
    proc_rng: random.Random,
) -> Optional[int]:
    """hit roll -> damage roll -> multiplier -> flat bonus -> crit -> proc.

    Returns the damage dealt, or None on a miss.
    """
    if not roll_hit(ctx.to_hit, ctx.avoidance, rng, ctx.from_behind):
        slot.record_miss()
        return None

    floor_dmg = 1 + source.flat_bonus
    dmg = melee_damage(source.base_damage, ctx.offense, ctx.mitigation, rng)
    dmg = damage_multiplier_roll(ctx.offense, dmg, ctx.level, ctx.archetype, rng).damage
    dmg = max(dmg + source.flat_bonus, floor_dmg)
    before_crit = dmg
    crit = _crit(ctx, dmg, source.flat_bonus, rng)
    dmg = max(crit.damage, floor_dmg)
    if crit.is_crit:
        report.crit_hits += 1
        report.crit_damage_gain += dmg - before_crit

    slot.record_hit(dmg)
    report.total_damage += dmg
    report.damage_bonus_total += source.flat_bonus

    if check_proc(source.proc_chance, proc_rng):
        slot.procs += 1
        slot.proc_damage_total += source.proc_damage
        report.total_damage += source.proc_damage
    return dmg


def resolve_round(
    ctx: CombatContext,
    source: SwingSource,
    slot: SlotReport,
    report: Report,
    rng: random.Random,
    proc_rng: random.Random,
    allow_triple: bool = False,
) -> int:
    """One swing opportunity: a base swing, then double and (main hand) triple attack."""
    slot.rounds += 1
    attacks = 1
    resolve_swing(ctx, source, slot, report, rng, proc_rng)
    if double_attack_check(ctx.double_attack_effective, ctx.archetype, rng):
        attacks = 2
        resolve_swing(ctx, source, slot, report, rng, proc_rng)
        if allow_triple and triple_attack_check(ctx.level, ctx.archetype, rng):
            attacks = 3
            resolve_swing(ctx, source, slot, report, rng, proc_rng)
    slot.record_round(attacks)
    return attacks


def _special_hit(ctx: CombatContext, cfg: FightConfig, report: Report, rng: random.Random) -> int:
    """Damage for one landed special attack.

    Differs from a normal swing: the class multiplier is applied before the
    damage multiplier roll, there is no flat bonus, and backstab enforces a
    level-based minimum after the crit.
    """
    special = ctx.special
    backstab = special.from_behind_only
    if backstab:
        skill = backstab_effective_skill(ctx.backstab_skill, cfg.backstab_mod_percent)
        base = backstab_base_damage(skill, cfg.weapon1.base_damage)
    else:
        base = cfg.weapon1.base_damage

    dmg = melee_damage(base, ctx.offense, ctx.mitigation, rng)
    dmg = max(1, math.floor(dmg * special.damage_multiplier))
    dmg = damage_multiplier_roll(ctx.offense, dmg, ctx.level, ctx.archetype, rng).damage
    before_crit = dmg
    crit = _crit(ctx, dmg, 0, rng)
    dmg = crit.damage
    if crit.is_crit:
        report.crit_hits += 1
        report.crit_damage_gain += dmg - before_crit
    if backstab:
        dmg = max(dmg, backstab_min_hit(ctx.level))

    report.special.record_hit(dmg)
    report.weapon1.total_damage += dmg
    report.total_damage += dmg
    return dmg


def resolve_special(ctx: CombatContext, cfg: FightConfig, report: Report, rng: random.Random) -> None:
    """Fire the class special. Backstab rolls to hit first and may chain one double backstab."""
    special = ctx.special
    report.special.attempts += 1
    backstab = special.from_behind_only
    if backstab and not roll_hit(ctx.to_hit, ctx.avoidance, rng, ctx.from_behind):
        return

    _special_hit(ctx, cfg, report, rng)

    if (
        backstab
        and ctx.level >= DOUBLE_BACKSTAB_MIN_LEVEL
        and report.special.double_backstabs is not None
        and double_attack_check(ctx.double_attack_effective, ctx.archetype, rng)
        and roll_hit(ctx.to_hit, ctx.avoidance, rng, ctx.from_behind)
    ):
        report.special.double_backstabs += 1
        _special_hit(ctx, cfg, report, rng)


# ──────────────────────────────────────────────────────────────
# Fight loop
# ──────────────────────────────────────────────────────────────
def run_fight(config: ConfigLike) -> Report:
    """Simulate one fight and return the finished report."""
    cfg = as_config(config)
    validate_config(cfg)
    ctx = build_context(cfg)
    rng, proc_rng = make_streams(cfg.seed)
    report = _new_report(cfg, ctx)

    logger.debug(
        "fight: class=%s toHit=%s offense=%s avoidance=%s mitigation=%s delay1=%.2f",
        ctx.archetype.value, ctx.to_hit, ctx.offense, ctx.avoidance, ctx.mitigation, ctx.delay1,
    )

    duration = ctx.duration_decisec
    fist = SwingSource(base_damage=FISTWEAVE_DAMAGE)
    next_swing1: float = 0
    next_swing2: float = math.floor(rng.random() * ctx.delay2) if ctx.dual_wielding else math.inf
    next_special = 0

    for t in range(duration):
        if ctx.special is not None and t >= next_special:
            resolve_special(ctx, cfg, report, rng)
            next_special = t + ctx.special.cooldown_decisec

        if t >= next_swing1 and t + ctx.delay1 <= duration:
            next_swing1 = t + ctx.delay1
            resolve_round(ctx, ctx.main_hand, report.weapon1, report, rng, proc_rng, allow_triple=True)
            if report.fistweaving is not None:
                resolve_round(ctx, fist, report.fistweaving, report, rng, proc_rng)

        if ctx.dual_wielding and t >= next_swing2 and t + ctx.delay2 <= duration:
            next_swing2 = t + ctx.delay2
            if dual_wield_check(ctx.dual_wield_effective, rng):
                resolve_round(ctx, ctx.off_hand, report.weapon2, report, rng, proc_rng)

    report.finalize()
    return report


def simulate_many(config: ConfigLike, trials: int, seed: Optional[int] = None) -> Dict[str, Any]:
    """Run independent fights and summarize total damage across them.

    Per-trial seeds come from one master ``random.Random(seed)``.
    """
    if trials <= 0:
        raise ValueError("trials must be > 0")
    cfg = as_config(config)
    master = random.Random(seed)

    totals = np.empty(trials, dtype=float)
    crits = np.empty(trials, dtype=float)
    rounds = np.empty(trials, dtype=float)
    for i in range(trials):
        report = run_fight(replace(cfg, seed=master.randrange(2**31)))
        totals[i] = report.total_damage
        crits[i] = report.crit_hits
        rounds[i] = report.weapon1.rounds

    mean_total = float(totals.mean())
    sd = float(totals.std()) if trials >= 2 else 0.0
    ci95 = 1.96 * sd / math.sqrt(trials) if trials >= 2 else 0.0
    duration = cfg.fight_duration_sec

    return {
        "meta": {"durationSec": duration, "trials": trials, "seed": seed},
        "mean_total_damage": mean_total,
        "mean_dps": mean_total / duration,
        "stdev_total_damage": sd,
        "ci95_total_damage": (mean_total - ci95, mean_total + ci95),
        "min_total_damage": float(totals.min()),
        "max_total_damage": float(totals.max()),
        "avg_crit_hits": float(crits.mean()),
        "avg_weapon1_rounds": float(rounds.mean()),
    }


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="EverQuest melee DPS simulator (decisecond ticks)")
    p.add_argument("--w1_damage", type=int, required=True)
    p.add_argument("--w1_delay", type=int, required=True, help="deciseconds")
    p.add_argument("--w1_2h", action="store_true")
    p.add_argument("--w1_proc_damage", type=int, default=None, help="enables a proc with this damage")
    p.add_argument("--w2_damage", type=int, default=None)
    p.add_argument("--w2_delay", type=int, default=None)
    p.add_argument("--w2_proc_damage", type=int, default=None)

    p.add_argument("--class", dest="class_id", default="warrior")
    p.add_argument("--level", type=int, default=60)
    p.add_argument("--str", type=int, default=255)
    p.add_argument("--dex", type=int, default=None)
    p.add_argument("--haste", type=float, default=0, help="percent")
    p.add_argument("--double_attack", type=int, default=0)
    p.add_argument("--dual_wield", type=int, default=0)
    p.add_argument("--ambidexterity", type=int, default=0)
    p.add_argument("--backstab_skill", type=int, default=225)
    p.add_argument("--backstab_mod", type=float, default=0, help="percent")
    p.add_argument("--attack_rating", type=int, default=None)
    p.add_argument("--worn_attack", type=int, default=None)
    p.add_argument("--spell_attack", type=int, default=None)
    p.add_argument("--to_hit_bonus", type=int, default=0)
    p.add_argument("--crit_mult", type=float, default=0, help="crit chance bonus, percent")

    p.add_argument("--mob_level", type=int, default=60)
    p.add_argument("--target_ac", type=int, default=None)
    p.add_argument("--item_ac", type=int, default=0)
    p.add_argument("--spell_ac", type=int, default=0)
    p.add_argument("--avoidance", type=int, default=None)

    p.add_argument("--from_behind", action="store_true")
    p.add_argument("--special", action="store_true", help="fire the class special on cooldown")
    p.add_argument("--fistweaving", action="store_true")

    p.add_argument("--durationSec", type=float, default=600.0)
    p.add_argument("--trials", type=int, default=1)
    p.add_argument("--seed", type=int, default=None)
    return p


def _weapon(damage: Optional[int], delay: Optional[int], proc_damage: Optional[int], two_handed: bool = False) -> Optional[Weapon]:
    if damage is None or delay is None:
        return None
    return Weapon(
        base_damage=damage,
        delay=delay,
        is_two_handed=two_handed,
        proc_spell="proc" if proc_damage is not None else None,
        proc_spell_damage=proc_damage,
    )


def main() -> None:
    args = _build_arg_parser().parse_args()

    cfg = FightConfig(
        weapon1=_weapon(args.w1_damage, args.w1_delay, args.w1_proc_damage, args.w1_2h),
        weapon2=_weapon(args.w2_damage, args.w2_delay, args.w2_proc_damage),
        fight_duration_sec=args.durationSec,
        archetype=Archetype.parse(args.class_id),
        level=args.level,
        strength=args.str,
        dexterity=args.dex,
        haste_percent=args.haste,
        double_attack_skill=args.double_attack,
        dual_wield_skill=args.dual_wield,
        ambidexterity=args.ambidexterity,
        backstab_skill=args.backstab_skill,
        backstab_mod_percent=args.backstab_mod,
        attack_rating=args.attack_rating,
        worn_attack=args.worn_attack,
        spell_attack=args.spell_attack,
        to_hit_bonus=args.to_hit_bonus,
        crit_chance_mult=args.crit_mult,
        mob_level=args.mob_level,
        target_ac=args.target_ac,
        item_ac_bonus=args.item_ac,
        spell_ac_bonus=args.spell_ac,
        avoidance=args.avoidance,
        from_behind=args.from_behind,
        special_attacks=args.special,
        fistweaving=args.fistweaving,
        seed=args.seed,
    )

    try:
        validate_config(cfg)
    except ValueError as e:
        raise SystemExit(str(e))

    if args.trials <= 1:
        print(format_report(run_fight(cfg)))
        return

    result = simulate_many(cfg, trials=args.trials, seed=args.seed)
    meta = result["meta"]
    print("=== Melee Monte Carlo Result ===")
    print(f"durationSec       : {meta['durationSec']:.1f}")
    print(f"trials            : {meta['trials']}")
    print(f"seed              : {meta['seed']}")
    print("")
    print(f"mean_total_damage : {result['mean_total_damage']:.3f}")
    print(f"mean_dps          : {result['mean_dps']:.3f}")
    lo, hi = result["ci95_total_damage"]
    print(f"CI95(total_damage): [{lo:.3f}, {hi:.3f}]")
    print(f"avg crit hits     : {result['avg_crit_hits']:.3f}")
    print(f"avg main rounds   : {result['avg_weapon1_rounds']:.3f}")


if __name__ == "__main__":
    main()
