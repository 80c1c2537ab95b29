"""
Random Sampling
===============
Uniform draws with replacement from an R-multiple pool.

Every engine receives its randomness through a sampler object exposing
``indices(pool_size, count)``. The default implementation wraps a NumPy
``Generator``; tests substitute scripted samplers to replay exact trade
sequences.

Parallel use:
    ``RandomSampler.spawn(k)`` derives k statistically independent child
    streams from the parent ``SeedSequence``, so workers (or sweep steps)
    never share generator state.
"""

import numpy as np
from typing import List, Optional, Protocol, Union


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────
DEFAULT_SEED: Optional[int] = None


class IndexSampler(Protocol):
    """Anything that can draw pool indices uniformly with replacement."""

    def indices(self, pool_size: int, count: int) -> np.ndarray:
        ...


class RandomSampler:
    """
    Seeded uniform index sampler backed by ``np.random.default_rng``.

    Parameters
    ----------
    seed : int or np.random.SeedSequence, optional
        Seed for reproducibility. ``None`` draws fresh OS entropy.
    """

    def __init__(
        self, seed: Union[int, np.random.SeedSequence, None] = DEFAULT_SEED
    ):
        if isinstance(seed, np.random.SeedSequence):
            self._seed_seq = seed
        else:
            self._seed_seq = np.random.SeedSequence(seed)
        self._rng = np.random.default_rng(self._seed_seq)

    @property
    def seed_sequence(self) -> np.random.SeedSequence:
        return self._seed_seq

    def index(self, pool_size: int) -> int:
        """Draw a single index in ``[0, pool_size)``."""
        return int(self._rng.integers(0, pool_size))

    def indices(self, pool_size: int, count: int) -> np.ndarray:
        """
        Draw ``count`` indices in ``[0, pool_size)`` with replacement.

        Parameters
        ----------
        pool_size : int
            Number of elements in the pool.
        count : int
            Number of draws (may also be a shape tuple).

        Returns
        -------
        np.ndarray
            Integer index array.
        """
        return self._rng.integers(0, pool_size, size=count)

    def spawn(self, n_children: int) -> List["RandomSampler"]:
        """Create independent child samplers (one per worker or step)."""
        return [RandomSampler(child) for child in self._seed_seq.spawn(n_children)]


def resolve_sampler(
    sampler: Optional[IndexSampler] = None,
    seed: Optional[int] = DEFAULT_SEED,
) -> IndexSampler:
    """Return ``sampler`` if given, else a fresh ``RandomSampler(seed)``."""
    if sampler is not None:
        return sampler
    return RandomSampler(seed)
