#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Wavelength calibration of a spectrometer by RANSAC, using a list of possible
correspondences between keypoints in a measured spectrum and an already
calibrated (Fraunhofer) spectrum.

"""

import dataclasses
import logging
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

import numpy as np
from omegaconf import OmegaConf
from tqdm.auto import tqdm

from . import models
from .config import RansacConfig, check_ransac_config, load_config
from .correspondence import Correspondence
from .sampler import UniformRandomSampler, WeightedRandomSampler


@dataclass(frozen=True, eq=False)
class RansacWavelengthCalibrationResult:
    """
    The outcome of a RANSAC wavelength calibration.

    Always check highest_number_of_inliers (against
    number_of_possible_correlations) before trusting the coefficients, a
    calibration which did not converge has zero inliers and all-zero
    coefficients.

    Parameters
    ----------
    model_polynomial_order: int
        The order of best_fitting_model_coefficients
    best_fitting_model_coefficients: np.ndarray
        The pixel to wavelength polynomial, 0th order coefficient first
    highest_number_of_inliers: int
        The number of inliers achieved with this model
    correspondence_is_inlier: np.ndarray
        Which of the input correspondences are inliers. The number of True
        elements equals highest_number_of_inliers.
    smallest_error: float
        Sum of squared residuals of the inliers under this model
    number_of_possible_correlations: int
        The number of input correspondences, the upper bound of
        highest_number_of_inliers
    number_of_iterations: int
        The number of RANSAC iterations which were run

    """

    model_polynomial_order: int = 3
    best_fitting_model_coefficients: np.ndarray = None
    highest_number_of_inliers: int = 0
    correspondence_is_inlier: np.ndarray = None
    smallest_error: float = sys.float_info.max
    number_of_possible_correlations: int = 0
    number_of_iterations: int = 0

    def __post_init__(self):

        if self.best_fitting_model_coefficients is None:
            coefficients = np.zeros(self.model_polynomial_order + 1)
        else:
            coefficients = np.array(
                self.best_fitting_model_coefficients, dtype=float
            )

        if self.correspondence_is_inlier is None:
            mask = np.zeros(self.number_of_possible_correlations, dtype=bool)
        else:
            mask = np.array(self.correspondence_is_inlier, dtype=bool)

        if len(coefficients) != self.model_polynomial_order + 1:
            raise ValueError(
                f"Expected {self.model_polynomial_order + 1} coefficients, "
                f"got {len(coefficients)}"
            )

        if len(mask) != self.number_of_possible_correlations:
            raise ValueError(
                f"The inlier mask ({len(mask)}) must cover all "
                f"{self.number_of_possible_correlations} correspondences"
            )

        if np.count_nonzero(mask) != self.highest_number_of_inliers:
            raise ValueError(
                f"The inlier mask marks {np.count_nonzero(mask)} inliers, "
                f"expected {self.highest_number_of_inliers}"
            )

        coefficients.setflags(write=False)
        mask.setflags(write=False)

        object.__setattr__(self, "best_fitting_model_coefficients", coefficients)
        object.__setattr__(self, "correspondence_is_inlier", mask)

    @property
    def success(self):
        return self.highest_number_of_inliers > 0

    def copy(self):
        """
        Return a copy which owns its own coefficient and mask arrays.

        """

        return dataclasses.replace(
            self,
            best_fitting_model_coefficients=self.best_fitting_model_coefficients.copy(),
            correspondence_is_inlier=self.correspondence_is_inlier.copy(),
        )

    __copy__ = copy

    def __deepcopy__(self, memo):
        return self.copy()


class RansacWavelengthCalibrationSetup:
    """
    The setup of a RANSAC calibration run. This only holds the (read-only)
    settings, each call to do_wavelength_calibration uses its own random
    generator and buffers, so one setup can be shared between threads.

    """

    def __init__(self, settings: Union[RansacConfig, dict, str] = None):
        """
        Parameters
        ----------
        settings: RansacConfig, dict, str
            Overrides of the default RansacConfig, or a path to a YAML file

        Raises
        ------
        ValueError
            If the settings are invalid, e.g. the sample size is too small
            to determine a polynomial of the configured order

        """

        self.logger = logging.getLogger(__name__)

        self.settings = load_config(RansacConfig, settings)
        check_ransac_config(self.settings)
        OmegaConf.set_readonly(self.settings, True)

    def _make_rng(self, rng: Optional[Union[int, np.random.Generator]]):

        if isinstance(rng, np.random.Generator):
            return rng

        if rng is None:
            rng = self.settings.seed

        self.logger.debug(f"Seeding RNG with: {rng}.")

        return np.random.default_rng(rng)

    def _make_sampler(
        self, errors: np.ndarray, rng: np.random.Generator
    ):

        if self.settings.sampler == "weighted":
            self.logger.debug("Using weighted random sampler")
            return WeightedRandomSampler(
                errors,
                self.settings.sample_size,
                n_samples=self.settings.number_of_ransac_iterations,
                rng=rng,
            )

        self.logger.debug("Using uniform random sampler")
        return UniformRandomSampler(
            len(errors),
            self.settings.sample_size,
            n_samples=self.settings.number_of_ransac_iterations,
            rng=rng,
        )

    @staticmethod
    def _evaluate(
        coefficients: np.ndarray,
        x: np.ndarray,
        y: np.ndarray,
        inlier_limit: float,
    ):
        """
        Return the inlier mask of a model and the sum of squared residuals
        of its inliers.

        """

        residual = np.abs(models.polynomial_value_at(coefficients, x) - y)
        mask = residual <= inlier_limit
        error = float(np.sum(residual[mask] ** 2))

        return mask, error

    def do_wavelength_calibration(
        self,
        correspondences: List[Correspondence],
        rng: Optional[Union[int, np.random.Generator]] = None,
        on_update: Optional[Callable[[int, int, float], None]] = None,
    ) -> RansacWavelengthCalibrationResult:
        """
        Find the pixel to wavelength polynomial supported by the largest
        number of correspondences.

        Parameters
        ----------
        correspondences: list of Correspondence
            The scored possible correspondences, see
            list_possible_correspondences
        rng: int, np.random.Generator or None
            The source of randomness for this call. An int is used as seed,
            None falls back to the configured seed.
        on_update: callable
            Called as on_update(iteration, n_inliers, error) every time a
            better model is found

        Returns
        -------
        result: RansacWavelengthCalibrationResult
            The best model found. This has zero inliers if no model could be
            fitted.

        """

        order = self.settings.model_polynomial_order
        sample_size = self.settings.sample_size
        inlier_limit = self.settings.inlier_limit_in_wavelength
        n_correspondences = len(correspondences)

        if n_correspondences < sample_size:
            self.logger.warning(
                f"Only {n_correspondences} correspondences were given, at "
                f"least {sample_size} are needed."
            )
            return RansacWavelengthCalibrationResult(
                model_polynomial_order=order,
                number_of_possible_correlations=n_correspondences,
            )

        x = np.array([c.measured_value for c in correspondences], dtype=float)
        y = np.array(
            [c.theoretical_value for c in correspondences], dtype=float
        )
        errors = np.array([c.error for c in correspondences], dtype=float)

        sampler = self._make_sampler(errors, self._make_rng(rng))
        sample_iter = sampler

        if self.settings.progress:
            sample_iter = tqdm(sampler)

        self.logger.debug(
            f"Starting RANSAC with {self.settings.number_of_ransac_iterations} "
            f"iterations on {n_correspondences} correspondences"
        )

        best_coefficients = np.zeros(order + 1)
        best_mask = np.zeros(n_correspondences, dtype=bool)
        best_n_inliers = 0
        best_error = sys.float_info.max
        n_iterations = 0

        for iteration, sample in enumerate(sample_iter):

            n_iterations += 1

            try:
                coefficients = models.fit_polynomial(
                    x[sample], y[sample], order
                )
            except np.linalg.LinAlgError:
                self.logger.debug(f"Degenerate sample {sample}, skipping.")
                continue

            mask, error = self._evaluate(coefficients, x, y, inlier_limit)
            n_inliers = int(np.count_nonzero(mask))

            if n_inliers == 0:
                continue

            if n_inliers > best_n_inliers or (
                n_inliers == best_n_inliers and error < best_error
            ):
                best_coefficients = coefficients
                best_mask = mask
                best_n_inliers = n_inliers
                best_error = error

                self.logger.debug(
                    f"Iteration {iteration}: new best model with "
                    f"{n_inliers} inliers and error {error}"
                )

                if on_update is not None:
                    on_update(iteration, n_inliers, error)

                if self.settings.progress:
                    sample_iter.set_description(
                        f"Most inliers: {best_n_inliers:d} "
                        + f"best error: {best_error:1.4g}"
                    )

                if best_n_inliers == n_correspondences:
                    self.logger.debug(
                        "All correspondences fitted as inliers, breaking early."
                    )
                    break

        if best_n_inliers == 0:
            self.logger.warning(
                f"No valid model found in {n_iterations} iterations."
            )
            return RansacWavelengthCalibrationResult(
                model_polynomial_order=order,
                number_of_possible_correlations=n_correspondences,
                number_of_iterations=n_iterations,
            )

        if self.settings.refine:
            (
                best_coefficients,
                best_mask,
                best_n_inliers,
                best_error,
            ) = self._refine(
                x, y, best_coefficients, best_mask, best_n_inliers, best_error
            )

        self.logger.info(
            f"Found {best_n_inliers} inliers out of {n_correspondences} "
            f"correspondences, error {best_error:1.4g}"
        )

        return RansacWavelengthCalibrationResult(
            model_polynomial_order=order,
            best_fitting_model_coefficients=best_coefficients,
            highest_number_of_inliers=best_n_inliers,
            correspondence_is_inlier=best_mask,
            smallest_error=best_error,
            number_of_possible_correlations=n_correspondences,
            number_of_iterations=n_iterations,
        )

    def _refine(
        self,
        x: np.ndarray,
        y: np.ndarray,
        coefficients: np.ndarray,
        mask: np.ndarray,
        n_inliers: int,
        error: float,
    ):
        """
        Re-fit the model using all its inliers instead of only the minimal
        sample. The refit is kept as long as it does not lose inliers.

        """

        order = self.settings.model_polynomial_order
        inlier_limit = self.settings.inlier_limit_in_wavelength

        for _ in range(self.settings.refine_iterations):

            try:
                if self.settings.refine_loss == "huber":
                    refit = models.robust_polyfit(
                        x[mask],
                        y[mask],
                        order,
                        x0=coefficients,
                        f_scale=inlier_limit,
                    )
                else:
                    refit = models.fit_polynomial(x[mask], y[mask], order)

            except np.linalg.LinAlgError:
                self.logger.warning("Linear algebra error in refinement")
                break

            refit_mask, refit_error = self._evaluate(refit, x, y, inlier_limit)
            refit_n_inliers = int(np.count_nonzero(refit_mask))

            if refit_n_inliers < n_inliers:
                self.logger.debug(
                    f"Refined model has fewer inliers ({refit_n_inliers} < "
                    f"{n_inliers}), keeping the sampled model."
                )
                break

            self.logger.debug(
                f"Refined model: {refit_n_inliers} inliers, error "
                f"{refit_error} (was {n_inliers}, {error})"
            )

            converged = np.array_equal(refit_mask, mask)

            coefficients = refit
            mask = refit_mask
            n_inliers = refit_n_inliers
            error = refit_error

            if converged:
                break

        return coefficients, mask, n_inliers, error
