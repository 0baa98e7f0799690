import random

from tinynet.rng import get_random_engine


def test_engine_produces_values_in_range():
    engine = get_random_engine()
    values = [engine.randrange(1 << 16) for _ in range(100)]
    assert isinstance(engine, random.Random)
    assert all(0 <= v < (1 << 16) for v in values)


def test_engines_are_seeded_independently():
    sequences = {tuple(get_random_engine().getrandbits(64) for _ in range(4)) for _ in range(3)}
    assert len(sequences) == 3


def test_engine_state_replays():
    engine = get_random_engine()
    state = engine.getstate()
    first = [engine.random() for _ in range(5)]
    engine.setstate(state)
    assert [engine.random() for _ in range(5)] == first