# tests/conftest.py - Pytest configuration and fixtures

import numpy as np
import pytest


class ScriptedSampler:
    """Replays a fixed index sequence, cycling when exhausted."""

    def __init__(self, script):
        self.script = list(script)
        self.position = 0

    def indices(self, pool_size, count):
        size = int(np.prod(count))
        out = []
        for _ in range(size):
            out.append(self.script[self.position % len(self.script)])
            self.position += 1
        return np.array(out, dtype=int).reshape(count)


@pytest.fixture
def scripted_sampler():
    """Factory for deterministic index samplers."""
    return ScriptedSampler


@pytest.fixture
def textbook_pool():
    """Five -1R losers and three 2R winners."""
    return [-1.0] * 5 + [2.0] * 3


@pytest.fixture
def frequency_pool():
    """Default frequency rows: -1R x5, 2R x3, 5R x2."""
    return [-1.0] * 5 + [2.0] * 3 + [5.0] * 2


@pytest.fixture
def winning_pool():
    """Pool without a single losing trade."""
    return [0.5, 1.0, 1.5, 2.0]


@pytest.fixture
def raw_pnl_tokens():
    """Thirty currency results with a handful of losses."""
    np.random.seed(42)
    wins = np.round(np.random.uniform(50, 400, 24), 2)
    losses = np.round(-np.random.uniform(80, 120, 6), 2)
    return [float(v) for v in np.concatenate([wins, losses])]
