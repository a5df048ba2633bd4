from eqsim.rng import PROC_SEED_OFFSET, make_rng, make_streams, rng_bool


def test_streams_are_seeded_independently():
    melee, proc = make_streams(42)
    assert melee.random() == make_rng(42).random()
    assert proc.random() == make_rng(42 + PROC_SEED_OFFSET).random()


def test_streams_repeat_for_same_seed():
    a, _ = make_streams(7)
    b, _ = make_streams(7)
    assert [a.random() for _ in range(5)] == [b.random() for _ in range(5)]


def test_rng_bool_skips_draw_for_zero_probability(scripted):
    rng = scripted([])
    assert rng_bool(rng, 0) is False
    assert rng_bool(rng, -1) is False
    assert rng.used == 0


def test_rng_bool_compares_one_draw(scripted):
    assert rng_bool(scripted([0.2]), 0.5) is True
    assert rng_bool(scripted([0.5]), 0.5) is False
