import logging
from functools import partialmethod

import numpy as np
import pytest

# Suppress tqdm output
from tqdm import tqdm

from solcal.sampler import Sampler, UniformRandomSampler, WeightedRandomSampler

tqdm.__init__ = partialmethod(tqdm.__init__, disable=True)

logger = logging.getLogger("test_samples")


def test_sample_too_large():
    with pytest.raises(ValueError):
        Sampler(3, sample_size=4, n_samples=10)


def test_uniform_random_sampler():
    n_samples = 100

    sampler = UniformRandomSampler(
        10, sample_size=4, n_samples=n_samples, rng=np.random.default_rng(0)
    )
    samples = [x for x in sampler]

    assert len(samples) == n_samples
    assert len(sampler) == n_samples

    for sample in samples:
        assert len(sample) == 4
        assert len(set(sample)) == 4
        assert np.all(np.diff(sample) > 0)
        assert sample.min() >= 0
        assert sample.max() < 10


def test_sampler_is_repeatable():
    first = [
        tuple(x)
        for x in UniformRandomSampler(
            20, 4, 50, rng=np.random.default_rng(123)
        )
    ]
    second = [
        tuple(x)
        for x in UniformRandomSampler(
            20, 4, 50, rng=np.random.default_rng(123)
        )
    ]

    assert first == second


def test_sample_everything():
    sampler = UniformRandomSampler(
        5, sample_size=5, n_samples=3, rng=np.random.default_rng(1)
    )

    for sample in sampler:
        assert list(sample) == [0, 1, 2, 3, 4]


def test_no_samples():
    sampler = UniformRandomSampler(5, sample_size=3, n_samples=0)

    assert [x for x in sampler] == []


def test_weighted_random_sampler_prefers_low_errors():
    errors = [0.1] * 5 + [100.0] * 45

    sampler = WeightedRandomSampler(
        errors, sample_size=2, n_samples=500, rng=np.random.default_rng(2)
    )

    assert np.isclose(sampler.sample_prob.sum(), 1.0)
    assert sampler.sample_prob[:5].min() > sampler.sample_prob[5:].max()

    counts = np.zeros(len(errors))
    for sample in sampler:
        counts[sample] += 1

    # The low error items are 10% of the population
    assert counts[:5].sum() > 0.5 * counts.sum()


def test_weighted_random_sampler_zero_errors():
    sampler = WeightedRandomSampler(
        np.zeros(10), sample_size=3, n_samples=10, rng=np.random.default_rng(3)
    )

    assert np.allclose(sampler.sample_prob, 0.1)
    assert len([x for x in sampler]) == 10


def test_weighted_random_sampler_unmeasurable_errors():
    # Correspondences at the edge of a spectrum have a huge error
    errors = [np.finfo(float).max] * 8 + [1.0, 2.0]

    sampler = WeightedRandomSampler(
        errors, sample_size=3, n_samples=20, rng=np.random.default_rng(4)
    )
    samples = [x for x in sampler]

    assert len(samples) == 20
    for sample in samples:
        assert len(set(sample)) == 3
