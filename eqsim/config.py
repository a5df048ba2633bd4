from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from eqsim.classes import Archetype


@dataclass(frozen=True)
class Weapon:
    base_damage: int
    delay: int  # deciseconds, 10 = 1s
    is_two_handed: bool = False
    proc_spell: Optional[str] = None
    proc_spell_damage: Optional[int] = None


@dataclass(frozen=True)
class FightConfig:
    weapon1: Weapon
    fight_duration_sec: float
    weapon2: Optional[Weapon] = None

    # Attacker
    archetype: Archetype = Archetype.WARRIOR
    level: int = 60
    strength: int = 255
    dexterity: Optional[int] = None  # unset: 255 for crits, 150 for procs
    haste_percent: float = 0
    double_attack_skill: int = 0
    dual_wield_skill: int = 0
    backstab_skill: int = 225
    backstab_mod_percent: float = 0
    ambidexterity: int = 0
    attack_rating: Optional[int] = None
    worn_attack: Optional[int] = None
    spell_attack: Optional[int] = None
    to_hit_bonus: int = 0
    crit_chance_mult: float = 0
    berserk: bool = False
    crippling_blow_chance: float = 0

    # Defender
    target_ac: Optional[int] = None
    item_ac_bonus: int = 0
    spell_ac_bonus: int = 0
    avoidance: Optional[int] = None
    mob_level: int = 60

    # Scenario
    from_behind: bool = False
    special_attacks: bool = False
    fistweaving: bool = False
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.archetype, Archetype):
            object.__setattr__(self, "archetype", Archetype.parse(self.archetype))

    @property
    def uses_attack_rating(self) -> bool:
        """Attack rating drives to-hit/offense only when no worn/spell ATK is given."""
        return self.attack_rating is not None and self.worn_attack is None and self.spell_attack is None


def validate_config(cfg: FightConfig) -> None:
    if cfg.fight_duration_sec <= 0:
        raise ValueError("fight_duration_sec must be > 0")
    if cfg.level < 1:
        raise ValueError("level must be >= 1")
    for slot, weapon in (("weapon1", cfg.weapon1), ("weapon2", cfg.weapon2)):
        if weapon is None:
            continue
        if weapon.delay <= 0:
            raise ValueError(f"{slot}.delay must be > 0")
        if weapon.base_damage < 0:
            raise ValueError(f"{slot}.damage must be >= 0")
    if cfg.haste_percent <= -100:
        raise ValueError("haste_percent must be > -100")


def _opt_int(v: Any) -> Optional[int]:
    if v is None or v == "":
        return None
    return int(v)


def weapon_from_options(obj: Optional[Dict[str, Any]]) -> Optional[Weapon]:
    if not obj:
        return None
    return Weapon(
        base_damage=int(obj.get("damage", obj.get("baseDamage", 0))),
        delay=int(obj["delay"]),
        is_two_handed=bool(obj.get("is2H", obj.get("isTwoHanded", False))),
        proc_spell=obj.get("procSpell"),
        proc_spell_damage=_opt_int(obj.get("procSpellDamage")),
    )


def config_from_options(options: Dict[str, Any]) -> FightConfig:
    """
    Build a FightConfig from the camelCase option dict the web UI posts.

    Example:
      {
        "weapon1": {"damage": 10, "delay": 28, "is2H": false},
        "weapon2": {"damage": 8, "delay": 24, "procSpell": "Lightning", "procSpellDamage": 100},
        "classId": "warrior",
        "level": 60,
        "hastePercent": 40,
        "doubleAttackSkill": 252,
        "dualWieldSkill": 252,
        "mobLevel": 60,
        "fightDurationSec": 600,
        "seed": 42
      }
    """
    weapon1 = weapon_from_options(options.get("weapon1"))
    if weapon1 is None:
        raise ValueError("weapon1 is required")

    def get(key: str, default: Any) -> Any:
        v = options.get(key)
        return default if v is None else v

    seed = options.get("seed")
    return FightConfig(
        weapon1=weapon1,
        weapon2=weapon_from_options(options.get("weapon2")),
        fight_duration_sec=float(get("fightDurationSec", 60)),
        archetype=Archetype.parse(get("classId", Archetype.WARRIOR)),
        level=int(get("level", 60)),
        strength=int(get("str", 255)),
        dexterity=_opt_int(options.get("dex")),
        haste_percent=float(get("hastePercent", 0)),
        double_attack_skill=int(get("doubleAttackSkill", 0)),
        dual_wield_skill=int(get("dualWieldSkill", 0)),
        backstab_skill=int(get("backstabSkill", 225)),
        backstab_mod_percent=float(get("backstabModPercent", 0)),
        ambidexterity=int(get("ambidexterity", 0)),
        attack_rating=_opt_int(options.get("attackRating")),
        worn_attack=_opt_int(options.get("wornAttack")),
        spell_attack=_opt_int(options.get("spellAttack")),
        to_hit_bonus=int(get("toHitBonus", 0)),
        crit_chance_mult=float(get("critChanceMult", 0)),
        berserk=bool(get("berserk", False)),
        crippling_blow_chance=float(get("cripplingBlowChance", 0)),
        target_ac=_opt_int(options.get("targetAC")),
        item_ac_bonus=int(get("itemAcBonus", 0)),
        spell_ac_bonus=int(get("spellAcBonus", 0)),
        avoidance=_opt_int(options.get("avoidance")),
        mob_level=int(get("mobLevel", 60)),
        from_behind=bool(get("fromBehind", False)),
        special_attacks=bool(get("specialAttacks", False)),
        fistweaving=bool(get("fistweaving", False)),
        seed=None if seed is None or seed == "" else int(seed),
    )


ConfigLike = Union[FightConfig, Dict[str, Any]]


def as_config(cfg: ConfigLike) -> FightConfig:
    if isinstance(cfg, FightConfig):
        return cfg
    return config_from_options(cfg)
