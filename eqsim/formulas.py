"""
Melee combat formulas (EQMacEmu ``zone/attack.cpp``).

Pure maths, no fight state. Every function that rolls takes the random
stream explicitly; the number and order of ``rng.random()`` calls is part
of each function's contract because a seeded fight must replay bit for bit.

Hit chance uses the defender's AVOIDANCE; the damage roll uses its
MITIGATION. The two are separate values and never substitute for one
another.
"""

from __future__ import annotations

import math
import random
from typing import NamedTuple, Optional, Union

from eqsim.classes import Archetype, can_double_attack, can_triple_attack
from eqsim.rng import rng_bool

ArchetypeLike = Union[Archetype, str]

# ──────────────────────────────────────────────────────────────
# Constants
# ──────────────────────────────────────────────────────────────
TO_HIT_CAP_FOR_AVOIDANCE = 550
AVOID_CHANCE_FROM_FRONT = 0.08

AVOIDANCE_CAP_LOW = 400
AVOIDANCE_CAP_HIGH = 460
MITIGATION_CAP = 200

CRIT_MOD_NORMAL = 17
CRIT_MOD_CRIPPLING = 29

DOUBLE_ATTACK_ROLL = 500
DUAL_WIELD_ROLL = 375
TRIPLE_ATTACK_CHANCE_ON_DOUBLE = 0.135

MIN_DELAY_DECISEC = 10

PPM_MIN = 0.5
PPM_MAX = 2.0
PROC_DEFAULT_DEX = 150


class RollResult(NamedTuple):
    damage: int
    is_crit: bool


class MultiplierParams(NamedTuple):
    roll_chance: int
    max_extra: int
    minus_factor: int


# ──────────────────────────────────────────────────────────────
# 1.  Hit / miss
# ──────────────────────────────────────────────────────────────
def hit_chance(to_hit: Optional[float], avoidance: Optional[float]) -> float:
    """Chance a swing lands, clamped to 0..1. Attack rating past 550 does not raise the chance further."""
    a = min(to_hit if to_hit is not None else 400, TO_HIT_CAP_FOR_AVOIDANCE) + 10
    b = (avoidance if avoidance is not None else AVOIDANCE_CAP_HIGH) + 10
    if a * 1.21 > b:
        chance = 1.0 - b / (a * 1.21 * 2.0)
    else:
        chance = (a * 1.21) / (b * 2.0)
    return max(0.0, min(1.0, chance))


def roll_hit(to_hit: float, avoidance: float, rng: random.Random, from_behind: bool = False) -> bool:
    """One draw for the hit roll, then one more for block/parry/dodge/riposte
    unless attacking from behind (positional attacks can still miss)."""
    if rng.random() >= hit_chance(to_hit, avoidance):
        return False
    if from_behind:
        return True
    return rng.random() >= AVOID_CHANCE_FROM_FRONT


# ──────────────────────────────────────────────────────────────
# 2.  Defender stats
# ──────────────────────────────────────────────────────────────
def avoidance_from_level(level: Optional[int]) -> int:
    level = level if level is not None else 60
    avoidance = level * 9 + 5
    if level <= 50 and avoidance > AVOIDANCE_CAP_LOW:
        avoidance = AVOIDANCE_CAP_LOW
    elif avoidance > AVOIDANCE_CAP_HIGH:
        avoidance = AVOIDANCE_CAP_HIGH
    return max(1, avoidance)


def mitigation_from_level(
    level: Optional[int],
    armor_class: Optional[int] = None,
    item_ac_bonus: int = 0,
    spell_ac_bonus: int = 0,
) -> int:
    """Level based mitigation, capped at 200; a raw AC above 200 replaces the cap."""
    level = level if level is not None else 60
    if level < 15:
        mit = level * 3
        if level < 3:
            mit += 2
    else:
        mit = math.floor(level * 41 / 10) - 15
    if mit > MITIGATION_CAP:
        mit = MITIGATION_CAP
    if mit == MITIGATION_CAP and armor_class is not None and armor_class > MITIGATION_CAP:
        mit = armor_class
    mit += math.floor(4 * (item_ac_bonus or 0) / 3) + math.floor((spell_ac_bonus or 0) / 4)
    return max(1, mit)


# ──────────────────────────────────────────────────────────────
# 3.  Damage roll
# ──────────────────────────────────────────────────────────────
def roll_damage_index(offense: float, mitigation: float, rng: random.Random) -> int:
    """d20-style damage index. Returns 1..20; two draws (attacker, then defender).

    A non-positive average returns 1 before either draw is taken.
    """
    avg = math.floor((offense + mitigation + 10) / 2)
    if avg <= 0:
        return 1
    atk_roll = math.floor(rng.random() * (offense + 5))
    def_roll = math.floor(rng.random() * (mitigation + 5))
    index = max(0, (atk_roll - def_roll) + avg // 2)
    index = (index * 20) // avg
    index = max(0, min(19, index))
    return index + 1


def melee_damage(
    base_damage: float,
    offense: float,
    mitigation: float,
    rng: random.Random,
    flat_bonus: int = 0,
) -> int:
    roll = roll_damage_index(offense, mitigation, rng)
    damage = math.floor((roll * base_damage + 5) / 10)
    if damage < 1:
        damage = 1
    return damage + (flat_bonus or 0)


def multiplier_params(level: int, archetype: ArchetypeLike) -> MultiplierParams:
    monk = Archetype.parse(archetype) is Archetype.MONK
    if monk and level >= 65:
        return MultiplierParams(83, 300, 50)
    if level >= 65 or (monk and level >= 63):
        return MultiplierParams(81, 295, 55)
    if level >= 63 or (monk and level >= 60):
        return MultiplierParams(79, 290, 60)
    if level >= 60 or (monk and level >= 56):
        return MultiplierParams(77, 285, 65)
    if level >= 56:
        return MultiplierParams(72, 265, 70)
    if level >= 51 or monk:
        return MultiplierParams(65, 245, 80)
    return MultiplierParams(51, 210, 105)


def damage_multiplier_roll(
    offense: float,
    damage: int,
    level: int,
    archetype: ArchetypeLike,
    rng: random.Random,
    is_archery: bool = False,
) -> RollResult:
    """Damage multiplier roll, applied to every client melee swing.

    One draw decides whether the multiplier procs; a second picks its size.
    """
    archetype = Archetype.parse(archetype)
    params = multiplier_params(level, archetype)
    base_bonus = max(10, math.floor((offense - params.minus_factor) / 2))

    if rng.random() * 100 < params.roll_chance:
        roll = min(params.max_extra, math.floor(rng.random() * (base_bonus + 1)) + 100)
        damage = math.floor(damage * roll / 100)
        if level >= 55 and damage > 1 and not is_archery and archetype is Archetype.WARRIOR:
            damage += 1
        return RollResult(max(1, damage), roll > 100)
    return RollResult(max(1, damage), False)


# ──────────────────────────────────────────────────────────────
# 4.  Critical hits
# ──────────────────────────────────────────────────────────────
def crit_chance(
    level: int,
    archetype: ArchetypeLike,
    dex: Optional[int] = None,
    base_crit_chance: float = 0,
    crit_chance_mult: float = 0,
    is_archery: bool = False,
) -> float:
    """Melee crit chance in percent (0..100)."""
    archetype = Archetype.parse(archetype)
    chance = base_crit_chance or 0
    dex_cap = min(dex if dex is not None else 255, 255)
    over_cap = (dex - 255) / 400 if dex is not None and dex > 255 else 0

    if archetype is Archetype.WARRIOR and level >= 12:
        chance += 0.5 + dex_cap / 90 + over_cap
    elif is_archery and archetype is Archetype.RANGER and level > 16:
        chance += 1.35 + dex_cap / 34 + over_cap * 2
    elif archetype is not Archetype.WARRIOR and crit_chance_mult:
        chance += 0.275 + dex_cap / 150 + over_cap

    if crit_chance_mult:
        chance += chance * crit_chance_mult / 100
    return max(0.0, min(100.0, chance))


def crit_damage(damage: int, flat_bonus: int, crit_mod: int, crippling: bool = False) -> int:
    flat_bonus = flat_bonus or 0
    dmg = math.floor(((damage - flat_bonus) * crit_mod + 5) / 10) + 8 + flat_bonus
    if crippling:
        dmg += 2
    return max(1, dmg)


def roll_crit(
    damage: int,
    flat_bonus: int,
    level: int,
    archetype: ArchetypeLike,
    dex: Optional[int],
    crit_chance_mult: float,
    rng: random.Random,
    is_archery: bool = False,
    berserk: bool = False,
    crippling_blow_chance: float = 0,
) -> RollResult:
    """Roll for a crit and apply crit damage when it lands.

    No draw when the chance is zero. A landed crit draws once more for
    crippling blow only if not already berserk and the chance is non-zero.
    """
    chance = crit_chance(level, archetype, dex, 0, crit_chance_mult or 0, is_archery)
    if chance <= 0:
        return RollResult(damage, False)
    if rng.random() >= chance / 100:
        return RollResult(damage, False)

    crit_mod = CRIT_MOD_NORMAL
    crippling = False
    if berserk or (crippling_blow_chance and rng.random() * 100 < crippling_blow_chance):
        crit_mod = CRIT_MOD_CRIPPLING
        crippling = True
    return RollResult(crit_damage(damage, flat_bonus, crit_mod, crippling), True)


# ──────────────────────────────────────────────────────────────
# 5.  Extra attacks
# ──────────────────────────────────────────────────────────────
def double_attack_effective(level: int, skill: int) -> int:
    # 1% per 5 points of skill + level
    return (skill or 0) + (level or 0)


def double_attack_check(effective_skill: int, archetype: ArchetypeLike, rng: random.Random) -> bool:
    if not can_double_attack(Archetype.parse(archetype)):
        return False
    return effective_skill > math.floor(rng.random() * DOUBLE_ATTACK_ROLL)


def triple_attack_check(level: int, archetype: ArchetypeLike, rng: random.Random) -> bool:
    """Only reached after a successful main-hand double attack."""
    if not can_triple_attack(level, Archetype.parse(archetype)):
        return False
    return rng.random() < TRIPLE_ATTACK_CHANCE_ON_DOUBLE


def dual_wield_effective(level: int, skill: int, ambidexterity: int = 0) -> int:
    return (skill or 0) + (level or 0) + (ambidexterity or 0)


def dual_wield_check(effective_skill: int, rng: random.Random) -> bool:
    return effective_skill > math.floor(rng.random() * DUAL_WIELD_ROLL)


# ──────────────────────────────────────────────────────────────
# 6.  Timing and procs
# ──────────────────────────────────────────────────────────────
def haste_adjusted_delay(base_delay: float, haste_percent: float = 0) -> float:
    """Swing timer in deciseconds, never faster than one second."""
    haste_mod = 1 + (haste_percent or 0) / 100
    return max(MIN_DELAY_DECISEC, base_delay / haste_mod)


def proc_chance_per_swing(effective_delay: float, is_offhand: bool = False, dex: Optional[int] = None) -> float:
    """PPM = DEX/170 + 0.5 clamped to 0.5..2, halved off-hand.

    Scaled by the haste-adjusted delay so the rate per minute does not
    change with haste.
    """
    if effective_delay <= 0:
        return 0.0
    ppm = (dex if dex is not None else PROC_DEFAULT_DEX) / 170 + 0.5
    ppm = min(PPM_MAX, max(PPM_MIN, ppm))
    if is_offhand:
        ppm *= 0.5
    swings_per_minute = 600 / effective_delay
    return min(1.0, max(0.0, ppm / swings_per_minute))


def check_proc(chance: float, proc_rng: random.Random) -> bool:
    return rng_bool(proc_rng, chance)


# ──────────────────────────────────────────────────────────────
# 7.  Damage bonus
# ──────────────────────────────────────────────────────────────
def damage_bonus(level: int, archetype: ArchetypeLike, delay: Optional[int], two_handed: bool) -> int:
    """Main-hand flat damage bonus. Same ladder for every class."""
    if level < 28:
        return 0
    delay = delay if delay is not None else 1
    bonus = 1 + (level - 28) // 3
    if not two_handed:
        return bonus

    if delay <= 27:
        return bonus + 1
    if level > 29:
        level_bonus = (level - 30) // 5 + 1
        if level > 50:
            level_bonus += 1
            level_bonus2 = level - 50
            if level > 67:
                level_bonus2 += 5
            elif level > 59:
                level_bonus2 += 4
            elif level > 58:
                level_bonus2 += 3
            elif level > 56:
                level_bonus2 += 2
            elif level > 54:
                level_bonus2 += 1
            level_bonus += math.floor(level_bonus2 * delay / 40)
        bonus += level_bonus
    if delay >= 40:
        delay_bonus = (delay - 40) // 3 + 1
        if delay >= 45:
            delay_bonus += 2
        elif delay >= 43:
            delay_bonus += 1
        bonus += delay_bonus
    return bonus


def npc_damage_bonus(min_dmg: Optional[int], max_dmg: Optional[int]) -> int:
    """NPC flat damage bonus, derived from the declared min/max hit."""
    if min_dmg is None or max_dmg is None:
        return 0
    if min_dmg > max_dmg:
        return min_dmg
    di1k = (max_dmg - min_dmg) * 1000 / 19
    di1k = math.floor((di1k + 50) / 100) * 100
    return math.floor((max_dmg * 1000 - di1k * 20) / 1000)


# ──────────────────────────────────────────────────────────────
# 8.  Backstab
# ──────────────────────────────────────────────────────────────
BACKSTAB_SKILL_CAP = 252


def backstab_effective_skill(skill: int, mod_percent: float = 0) -> int:
    return min(BACKSTAB_SKILL_CAP, math.floor(skill * (100 + (mod_percent or 0)) / 100))


def backstab_base_damage(effective_skill: int, weapon_damage: int) -> int:
    """(skill * 0.02 + 2) * weapon damage, before the damage roll."""
    return math.floor(((effective_skill * 0.02) + 2.0) * weapon_damage)


def backstab_min_hit(level: int) -> int:
    if level >= 60:
        return level * 2
    if level > 50:
        return math.floor(level * 3 / 2)
    return level
