"""
Sampler Tests
"""
import numpy as np

from edge_engine.sampling import RandomSampler, resolve_sampler


class TestRandomSampler:

    def test_seed_is_reproducible(self):
        first = RandomSampler(42).indices(10, 50)
        second = RandomSampler(42).indices(10, 50)

        np.testing.assert_array_equal(first, second)

    def test_indices_within_pool(self):
        draws = RandomSampler(0).indices(7, 1000)

        assert draws.min() >= 0
        assert draws.max() < 7
        assert RandomSampler(0).indices(3, (4, 5)).shape == (4, 5)

    def test_single_index(self):
        assert 0 <= RandomSampler(1).index(4) < 4

    def test_spawned_children_are_independent_and_repeatable(self):
        children = RandomSampler(9).spawn(2)
        again = RandomSampler(9).spawn(2)

        a = children[0].indices(1000, 20)
        b = children[1].indices(1000, 20)

        assert not np.array_equal(a, b)
        np.testing.assert_array_equal(a, again[0].indices(1000, 20))


class TestResolveSampler:

    def test_passes_through_given_sampler(self):
        sampler = RandomSampler(3)
        assert resolve_sampler(sampler, seed=5) is sampler

    def test_builds_seeded_default(self):
        built = resolve_sampler(seed=5)

        assert isinstance(built, RandomSampler)
        np.testing.assert_array_equal(
            built.indices(10, 5), RandomSampler(5).indices(10, 5)
        )

    def test_rebuilt_from_seed_sequence_replays_stream(self):
        child = RandomSampler(4).seed_sequence.spawn(1)[0]

        np.testing.assert_array_equal(
            RandomSampler(child).indices(50, 10), RandomSampler(child).indices(50, 10)
        )
