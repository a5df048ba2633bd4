from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union


class Archetype(Enum):
    WARRIOR = "warrior"
    CLERIC = "cleric"
    PALADIN = "paladin"
    RANGER = "ranger"
    SHADOWKNIGHT = "shadowknight"
    DRUID = "druid"
    MONK = "monk"
    BARD = "bard"
    ROGUE = "rogue"
    SHAMAN = "shaman"
    NECROMANCER = "necromancer"
    WIZARD = "wizard"
    MAGICIAN = "magician"
    ENCHANTER = "enchanter"
    BEASTLORD = "beastlord"

    @classmethod
    def parse(cls, value: Union["Archetype", str]) -> "Archetype":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace(" ", "").replace("_", "")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"unknown class: {value!r}")


# Classes that structurally cannot double attack.
NO_DOUBLE_ATTACK = frozenset({Archetype.BARD, Archetype.BEASTLORD})

TRIPLE_ATTACK_CLASSES = frozenset({Archetype.WARRIOR, Archetype.MONK})
TRIPLE_ATTACK_MIN_LEVEL = 60

# Classes whose off-hand swing is never used even with a weapon equipped.
NO_OFFHAND = frozenset({Archetype.PALADIN, Archetype.SHADOWKNIGHT})

# Monk unarmed off-hand stream while wielding a two-hander.
FISTWEAVE_DAMAGE = 9


def can_double_attack(archetype: Archetype) -> bool:
    return archetype not in NO_DOUBLE_ATTACK


def can_triple_attack(level: int, archetype: Archetype) -> bool:
    return archetype in TRIPLE_ATTACK_CLASSES and level >= TRIPLE_ATTACK_MIN_LEVEL


def can_dual_wield(archetype: Archetype) -> bool:
    return archetype not in NO_OFFHAND


@dataclass(frozen=True)
class SpecialAttack:
    name: str
    cooldown_decisec: int
    damage_multiplier: int
    from_behind_only: bool = False


SPECIAL_ATTACKS: Dict[Archetype, SpecialAttack] = {
    Archetype.MONK: SpecialAttack("Flying Kick", cooldown_decisec=80, damage_multiplier=2),
    Archetype.ROGUE: SpecialAttack("Backstab", cooldown_decisec=120, damage_multiplier=3, from_behind_only=True),
}


def special_attack_for(archetype: Archetype) -> Optional[SpecialAttack]:
    return SPECIAL_ATTACKS.get(archetype)
