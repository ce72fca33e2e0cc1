import logging
from typing import Optional, Union

import numpy as np


class Sampler:
    def __init__(
        self,
        n_items: int,
        sample_size: int,
        n_samples: int,
        rng: Optional[np.random.Generator] = None,
    ):
        """

        This is a base class for sampling functions for RANSAC. Samples are
        arrays of sample_size distinct indices into a list of n_items
        correspondences. All randomness comes from the provided generator so
        that a fixed seed gives a repeatable sequence of samples.

        Parameters
        ----------
            n_items: int
                size of the population to draw indices from
            sample_size: int
                size of sample to return
            n_samples: int
                number of samples to return
            rng: np.random.Generator
                source of randomness, a fresh unseeded generator if None
        """
        self.logger = logging.getLogger(__name__)

        if sample_size > n_items:
            raise ValueError(
                f"Cannot draw {sample_size} distinct items from {n_items}"
            )

        self.n_items = n_items
        self.sample_size = sample_size
        self.n_samples = n_samples
        self.rng = rng if rng is not None else np.random.default_rng()
        self.sample_prob = None
        self._setup()

    def _setup(self):
        """

        Internal setup function, may be redefined by sub-classes

        """
        pass

    def get_sample(self):
        """Draw one sample without replacement

        Returns
        -------
            idx: np.ndarray
                sorted indices of the sampled items
        """

        return np.sort(
            self.rng.choice(
                self.n_items,
                size=self.sample_size,
                replace=False,
                p=self.sample_prob,
            )
        )

    def __len__(self):
        return self.n_samples

    def __iter__(self):
        """

        Obtain the next sample.

        Yields
        ------
            sample: np.ndarray
                indices of the sampled items
        """
        for _ in range(self.n_samples):
            yield self.get_sample()


class UniformRandomSampler(Sampler):
    """Simple random sample from the population"""


class WeightedRandomSampler(Sampler):
    def __init__(
        self,
        errors: Union[list, np.ndarray],
        sample_size: int,
        n_samples: int,
        rng: Optional[np.random.Generator] = None,
    ):
        """

        Draw correspondences with a probability inversely proportional to
        their error, so that similar looking keypoints are tried more often.

        Parameters
        ----------
            errors: list, np.ndarray
                error of each correspondence, lower is better
            sample_size: int
                size of sample to return
            n_samples: int
                number of samples to return
            rng: np.random.Generator
                source of randomness
        """

        self.errors = np.asarray(errors, dtype=float).reshape(-1)
        super().__init__(len(self.errors), sample_size, n_samples, rng)

    def _setup(self):

        errors = np.clip(self.errors, 0.0, np.finfo(float).max / 2.0)
        weights = 1.0 / (errors + 1.0e-3 * (np.median(errors) + 1.0e-9))
        prob = weights / weights.sum()

        # Items without weight cannot be sampled, we need at least
        # sample_size of them
        if np.count_nonzero(prob) < self.sample_size or not np.all(
            np.isfinite(prob)
        ):
            self.logger.warning(
                "Too few correspondences with usable errors, sampling "
                "uniformly instead."
            )
            self.sample_prob = None
            return

        self.sample_prob = prob
