"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from biometricbind.bch import BchCodec, BchParameters
from biometricbind.fuzzy import BchFuzzyExtractor

# Use a smaller BCH code for faster tests
SMALL_BCH_PARAMS = BchParameters(m=10, t=60)

DISTANCE_COUNT = 316

# Capture noise relative to distances in [0.5, 3.0]
CAPTURE_NOISE = 0.0002


def random_distances(rng: np.random.Generator) -> np.ndarray:
    """A plausible distance vector for one face."""
    return rng.uniform(0.5, 3.0, DISTANCE_COUNT)


def noisy_frames(base: np.ndarray, count: int, rng: np.random.Generator, noise: float = CAPTURE_NOISE):
    """Simulate ``count`` captures of the same face."""
    return [base + rng.normal(0.0, noise, base.size) for _ in range(count)]


def flip_bits(bits: np.ndarray, positions) -> np.ndarray:
    """Flip specific positions of a bit vector."""
    result = np.array(bits, dtype=np.uint8, copy=True)
    for pos in positions:
        result[pos] ^= 1
    return result


@pytest.fixture(scope="session")
def small_codec():
    return BchCodec(SMALL_BCH_PARAMS)


@pytest.fixture(scope="session")
def small_extractor(small_codec):
    return BchFuzzyExtractor(small_codec)


@pytest.fixture(scope="session")
def base_face():
    """Distance vector of the enrolled face."""
    return random_distances(np.random.default_rng(1234))


@pytest.fixture(scope="session")
def other_face():
    """Distance vector of an unrelated face."""
    return random_distances(np.random.default_rng(98765))


@pytest.fixture(scope="session")
def enrolled_set(small_extractor, base_face):
    """
    Create an enrollment that can be reused across tests.

    This fixture is session-scoped to avoid repeating 80 fuzzy extractor
    generations for each test.
    """
    from biometricbind.enrollment import enroll

    frames = noisy_frames(base_face, 80, np.random.default_rng(42))
    return enroll(frames, small_extractor)
