"""Tests for the fight simulator."""

from dataclasses import replace

import pytest

from eqsim.classes import Archetype
from eqsim.config import FightConfig, Weapon, config_from_options
from eqsim.fight import build_context, resolve_special, run_fight, simulate_many
from eqsim.formulas import proc_chance_per_swing
from eqsim.report import Report, SpecialReport


def warrior_config(**kw):
    base = dict(
        weapon1=Weapon(base_damage=10, delay=28),
        fight_duration_sec=600,
        archetype=Archetype.WARRIOR,
        level=60,
        double_attack_skill=252,
        dual_wield_skill=0,
        seed=42,
    )
    base.update(kw)
    return FightConfig(**base)


def test_warrior_reference_fight_rounds():
    report = run_fight(warrior_config())
    assert report.weapon1.rounds == 214


def test_same_seed_same_report():
    a = run_fight(warrior_config()).to_dict()
    b = run_fight(warrior_config()).to_dict()
    assert a == b


def test_different_seed_differs():
    a = run_fight(warrior_config(seed=1))
    b = run_fight(warrior_config(seed=2))
    assert a.weapon1.hit_list != b.weapon1.hit_list


def test_no_offhand_section_empty():
    report = run_fight(warrior_config())
    w2 = report.weapon2
    assert w2.swings == 0
    assert w2.rounds == 0
    assert w2.min_damage is None
    assert w2.hit_stats.to_dict() == {"min": None, "max": None, "mean": None, "median": None, "mode": None}


@pytest.mark.parametrize("archetype", [Archetype.BARD, Archetype.BEASTLORD])
def test_excluded_classes_never_double(archetype):
    cfg = warrior_config(
        archetype=archetype,
        double_attack_skill=1000,
        weapon2=Weapon(base_damage=8, delay=24),
        dual_wield_skill=252,
    )
    report = run_fight(cfg)
    for slot in (report.weapon1, report.weapon2):
        assert slot.double == 0
        assert slot.triple == 0
        assert slot.single == slot.rounds


def test_round_classification_invariants():
    cfg = warrior_config(weapon2=Weapon(base_damage=8, delay=24), dual_wield_skill=252, haste_percent=40)
    report = run_fight(cfg)
    for slot in (report.weapon1, report.weapon2):
        assert slot.triple <= slot.double <= slot.rounds
        assert slot.single + slot.double + slot.triple == slot.rounds
        assert slot.hits <= slot.swings
        assert slot.swings == slot.single + 2 * slot.double + 3 * slot.triple
    assert report.weapon1.triple > 0
    assert report.weapon2.rounds > 0
    assert report.weapon2.triple == 0


def test_totals_add_up():
    cfg = warrior_config(
        weapon1=Weapon(base_damage=10, delay=28, proc_spell="Fire", proc_spell_damage=50),
        weapon2=Weapon(base_damage=8, delay=24, proc_spell="Frost", proc_spell_damage=30),
        dual_wield_skill=252,
    )
    r = run_fight(cfg)
    assert r.weapon1.total_damage == sum(r.weapon1.hit_list)
    assert r.weapon2.total_damage == sum(r.weapon2.hit_list)
    assert r.total_damage == (
        r.weapon1.total_damage + r.weapon1.proc_damage_total + r.weapon2.total_damage + r.weapon2.proc_damage_total
    )
    assert r.damage_bonus_total == r.weapon1.hits * r.damage_bonus
    assert min(r.weapon1.hit_list) >= 1 + r.damage_bonus
    assert r.weapon1.min_damage == r.weapon1.hit_stats.min


def test_proc_stream_does_not_shift_melee_draws():
    plain = run_fight(warrior_config())
    procs = run_fight(warrior_config(weapon1=Weapon(base_damage=10, delay=28, proc_spell="Fire", proc_spell_damage=50)))
    assert plain.weapon1.hit_list == procs.weapon1.hit_list
    assert procs.weapon1.procs > 0
    assert procs.weapon1.proc_damage_total == 50 * procs.weapon1.procs
    assert procs.total_damage == plain.total_damage + procs.weapon1.proc_damage_total


def test_haste_shortens_rounds():
    report = run_fight(warrior_config(haste_percent=40))
    assert report.weapon1.rounds == 300


def test_short_fight_never_swings():
    report = run_fight(warrior_config(fight_duration_sec=2))
    assert report.weapon1.rounds == 0
    assert report.weapon1.min_damage is None
    assert report.weapon1.hit_stats.mean is None


@pytest.mark.parametrize("kw", [
    {"fight_duration_sec": 0},
    {"fight_duration_sec": -5},
    {"weapon1": Weapon(base_damage=10, delay=0)},
    {"weapon2": Weapon(base_damage=10, delay=-1)},
    {"weapon1": Weapon(base_damage=-1, delay=28)},
])
def test_pathological_inputs_rejected(kw):
    with pytest.raises(ValueError):
        run_fight(warrior_config(**kw))


def test_paladin_never_uses_offhand():
    cfg = warrior_config(archetype=Archetype.PALADIN, weapon2=Weapon(base_damage=8, delay=24), dual_wield_skill=252)
    report = run_fight(cfg)
    assert report.weapon2.rounds == 0


def test_crits_are_counted():
    report = run_fight(warrior_config())
    assert report.crit_hits > 0
    assert report.crit_damage_gain >= report.crit_hits


def test_attack_rating_path():
    cfg = warrior_config(attack_rating=400, to_hit_bonus=24)
    ctx = build_context(cfg)
    assert ctx.to_hit == 424
    assert ctx.offense == 400 + 120


def test_worn_attack_disables_attack_rating_path():
    cfg = warrior_config(attack_rating=400, worn_attack=50, spell_attack=10)
    ctx = build_context(cfg)
    assert ctx.to_hit == 511
    assert ctx.offense == 252 + 120 + 50 + 10


def test_report_header_fields():
    report = run_fight(warrior_config(avoidance=300, target_ac=250))
    assert report.avoidance == 300
    assert report.mitigation == 250
    assert report.calculated_to_hit == 511
    assert report.calculated_offense == 372
    assert report.displayed_attack == (372 + 511) * 1000 // 744
    assert report.damage_bonus == 11


def test_rogue_backstab_from_behind():
    cfg = warrior_config(
        archetype=Archetype.ROGUE,
        fight_duration_sec=60,
        from_behind=True,
        special_attacks=True,
        backstab_skill=225,
        backstab_mod_percent=20,
    )
    r = run_fight(cfg)
    sp = r.special
    assert sp is not None
    assert sp.name == "Backstab"
    assert sp.attempts == 5
    assert sp.hits == sp.count == len(sp.hit_list)
    assert sp.double_backstabs <= sp.attempts
    assert sp.backstab_skill == 225
    assert all(d >= 120 for d in sp.hit_list)
    assert r.weapon1.total_damage == sum(r.weapon1.hit_list) + sp.total_damage


def test_rogue_backstab_needs_position():
    cfg = warrior_config(archetype=Archetype.ROGUE, special_attacks=True, from_behind=False)
    assert run_fight(cfg).special is None


def test_monk_flying_kick_always_lands():
    cfg = warrior_config(archetype=Archetype.MONK, fight_duration_sec=60, special_attacks=True)
    sp = run_fight(cfg).special
    assert sp.name == "Flying Kick"
    assert sp.attempts == 8
    assert sp.hits == 8
    assert sp.double_backstabs is None


def test_special_disabled_by_default():
    assert run_fight(warrior_config(archetype=Archetype.MONK)).special is None


def test_monk_fistweaving_with_two_hander():
    cfg = warrior_config(
        archetype=Archetype.MONK,
        weapon1=Weapon(base_damage=30, delay=40, is_two_handed=True),
        fistweaving=True,
    )
    r = run_fight(cfg)
    fw = r.fistweaving
    assert fw is not None
    assert fw.rounds == r.weapon1.rounds
    assert fw.triple == 0
    assert fw.procs == 0
    assert fw.hits > 0
    assert r.total_damage == r.weapon1.total_damage + fw.total_damage


def test_fistweaving_requires_two_hander():
    cfg = warrior_config(archetype=Archetype.MONK, fistweaving=True)
    assert run_fight(cfg).fistweaving is None


def test_run_fight_accepts_option_dict():
    report = run_fight({
        "weapon1": {"damage": 10, "delay": 28},
        "classId": "warrior",
        "level": 60,
        "doubleAttackSkill": 252,
        "fightDurationSec": 600,
        "seed": 42,
    })
    assert report.to_dict() == run_fight(warrior_config()).to_dict()


def test_simulate_many_summary():
    out = simulate_many(warrior_config(fight_duration_sec=60), trials=5, seed=7)
    assert out["meta"]["trials"] == 5
    assert out["min_total_damage"] <= out["mean_total_damage"] <= out["max_total_damage"]
    lo, hi = out["ci95_total_damage"]
    assert lo <= out["mean_total_damage"] <= hi
    assert out["mean_dps"] == pytest.approx(out["mean_total_damage"] / 60)
    assert out == simulate_many(warrior_config(fight_duration_sec=60), trials=5, seed=7)


def test_simulate_many_rejects_zero_trials():
    with pytest.raises(ValueError):
        simulate_many(warrior_config(), trials=0)


def test_unseeded_fight_runs():
    report = run_fight(replace(warrior_config(fight_duration_sec=30), seed=None))
    assert report.weapon1.rounds == 300 // 28


def test_unset_dex_uses_default_proc_rate():
    weapon = Weapon(base_damage=10, delay=28, proc_spell="Fire", proc_spell_damage=50)
    ctx = build_context(FightConfig(weapon1=weapon, fight_duration_sec=600))
    assert ctx.dex is None
    assert ctx.main_hand.proc_chance == pytest.approx(proc_chance_per_swing(28, False, 150))
    assert ctx.main_hand.proc_chance == pytest.approx(0.0645, abs=1e-4)


def test_explicit_dex_drives_proc_rate():
    weapon = Weapon(base_damage=10, delay=28, proc_spell="Fire", proc_spell_damage=50)
    ctx = build_context(FightConfig(weapon1=weapon, fight_duration_sec=600, dexterity=255))
    assert ctx.main_hand.proc_chance == pytest.approx(2.0 * 28 / 600)


def test_options_without_dex_leave_it_unset():
    options = {"weapon1": {"damage": 10, "delay": 28}, "fightDurationSec": 60}
    assert config_from_options(options).dexterity is None
    assert config_from_options(dict(options, dex=200)).dexterity == 200


def _backstab_setup(level=60):
    cfg = FightConfig(
        weapon1=Weapon(base_damage=10, delay=28),
        fight_duration_sec=60,
        archetype=Archetype.ROGUE,
        level=level,
        double_attack_skill=252,
        from_behind=True,
        special_attacks=True,
    )
    report = Report(
        duration_sec=60,
        special=SpecialReport(name="Backstab", double_backstabs=0, backstab_skill=225, backstab_mod_percent=0),
    )
    return cfg, build_context(cfg), report


def test_backstab_chains_second_stab_in_draw_order(scripted):
    cfg, ctx, report = _backstab_setup()
    rng = scripted([
        0.0,        # hit
        0.5, 0.5,   # damage index -> 16, 65 base -> 104, x3 -> 312
        0.99,       # multiplier does not fire; rogue has no crit chance here
        0.0,        # double attack check
        0.0,        # second hit
        0.0, 0.0,   # damage index -> 10 -> 65, x3 -> 195
        0.99,
    ])
    resolve_special(ctx, cfg, report, rng)
    sp = report.special
    assert rng.used == 9
    assert sp.attempts == 1
    assert sp.double_backstabs == 1
    assert sp.hit_list == [312, 195]
    assert report.weapon1.total_damage == 507
    assert report.total_damage == 507


def test_missed_backstab_takes_only_hit_draw(scripted):
    cfg, ctx, report = _backstab_setup()
    rng = scripted([0.99])
    resolve_special(ctx, cfg, report, rng)
    assert rng.used == 1
    assert report.special.attempts == 1
    assert report.special.hits == 0
    assert report.total_damage == 0


def test_low_level_rogue_never_rolls_double_backstab(scripted):
    cfg, ctx, report = _backstab_setup(level=54)
    rng = scripted([0.0, 0.5, 0.5, 0.99])
    resolve_special(ctx, cfg, report, rng)
    assert rng.used == 4
    assert report.special.double_backstabs == 0
    assert report.special.hit_list == [312]


def test_backstab_cooldown_runs_even_when_every_stab_misses():
    cfg = warrior_config(
        archetype=Archetype.ROGUE,
        fight_duration_sec=60,
        from_behind=True,
        special_attacks=True,
        attack_rating=-10,
    )
    sp = run_fight(cfg).special
    assert sp.attempts == 5
    assert sp.hits == 0


def test_rogue_fights_do_chain_double_backstabs():
    total = 0
    for seed in range(20):
        cfg = warrior_config(archetype=Archetype.ROGUE, fight_duration_sec=120, from_behind=True, special_attacks=True, seed=seed)
        total += run_fight(cfg).special.double_backstabs
    assert total > 0
