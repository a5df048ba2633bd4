"""EverQuest melee combat formulas and a tick-based fight simulator."""

from eqsim.classes import SPECIAL_ATTACKS, Archetype, SpecialAttack
from eqsim.config import FightConfig, Weapon, config_from_options
from eqsim.fight import CombatContext, build_context, run_fight, simulate_many
from eqsim.report import Report, format_report
from eqsim.stats import HitStatistics, hit_stats

__all__ = [
    "Archetype",
    "CombatContext",
    "FightConfig",
    "HitStatistics",
    "Report",
    "SPECIAL_ATTACKS",
    "SpecialAttack",
    "Weapon",
    "build_context",
    "config_from_options",
    "format_report",
    "hit_stats",
    "run_fight",
    "simulate_many",
]
