#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
This is the core of solcal.

"""

import logging
import os
from typing import List, Optional, Union

import numpy as np
from omegaconf import OmegaConf

from . import keypoints, models
from .config import (
    CalibratorConfig,
    check_correspondence_config,
    check_keypoint_config,
    check_ransac_config,
    load_config,
)
from .correspondence import Correspondence, list_possible_correspondences
from .ransac import (
    RansacWavelengthCalibrationResult,
    RansacWavelengthCalibrationSetup,
)
from .spectrum import Spectrum, SpectrumDataPoint


class Calibrator:
    """
    Wavelength calibration of a measured spectrum against a Fraunhofer
    reference spectrum: keypoint detection, correspondence selection and
    the RANSAC fit, with one configuration.

    """

    def __init__(
        self,
        measured_spectrum: Spectrum,
        reference_spectrum: Spectrum,
        config: Union[str, list, dict, CalibratorConfig] = None,
        initial_calibration: Optional[Union[list, np.ndarray]] = None,
        measured_keypoints: Optional[List[SpectrumDataPoint]] = None,
        reference_keypoints: Optional[List[SpectrumDataPoint]] = None,
    ):
        """
        Initialise the calibrator object.

        Parameters
        ----------
        measured_spectrum: Spectrum
            The spectrum to calibrate, required.
        reference_spectrum: Spectrum
            The Fraunhofer reference, required. Usually generated on the
            initial calibration grid.
        config: str, dict, list, CalibratorConfig
            Configuration override (or path to YAML), optional.
        initial_calibration: list, np.ndarray
            Approximate wavelength of each pixel, optional. Defaults to the
            wavelength axis of the reference spectrum.
        measured_keypoints: list of SpectrumDataPoint
            Keypoints of the measured spectrum, optional. Detected if not
            given.
        reference_keypoints: list of SpectrumDataPoint
            Keypoints of the reference spectrum, optional. Detected if not
            given.

        """

        self.config = load_config(CalibratorConfig, config)

        self.set_logger(self.config.logger_name, self.config.log_level)

        check_keypoint_config(self.config.keypoints)
        check_correspondence_config(self.config.correspondence)

        # The calibrator level seed is the default for the solver
        if self.config.ransac.seed is None:
            self.config.ransac.seed = self.config.seed
        check_ransac_config(self.config.ransac)
        self.logger.info(f"Seeded RNG with: {self.config.ransac.seed}.")

        # Freeze the configuration for this experiment.
        OmegaConf.set_readonly(self.config, True)

        self.measured_spectrum = measured_spectrum
        self.reference_spectrum = reference_spectrum

        if initial_calibration is None:
            initial_calibration = reference_spectrum.wavelength

        if initial_calibration is None:
            raise ValueError(
                "An initial calibration is required, either explicitly or as "
                "the wavelength axis of the reference spectrum."
            )

        self.initial_calibration = np.asarray(initial_calibration, dtype=float)

        if measured_keypoints is None:
            measured_keypoints = self._find_keypoints(measured_spectrum)

        if reference_keypoints is None:
            reference_keypoints = self._find_keypoints(reference_spectrum)

        self.measured_keypoints = measured_keypoints
        self.reference_keypoints = reference_keypoints

        self.logger.info(
            f"Using {len(self.measured_keypoints)} measured and "
            f"{len(self.reference_keypoints)} reference keypoints."
        )

        self.solver = RansacWavelengthCalibrationSetup(self.config.ransac)

        # results
        self.correspondences = None
        self.result = None

    def set_logger(self, logger_name: str, log_level: str):
        """
        Set up the named logger used by the calibrator.

        """

        # initialise the logger
        self.logger = logging.getLogger(logger_name)
        self.logger.propagate = False
        level = logging.getLevelName(log_level.upper())
        self.logger.setLevel(level)
        self.log_level = level

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s [%(filename)s:%(lineno)d] "
            "%(message)s",
            datefmt="%a, %d %b %Y %H:%M:%S",
        )

        if len(self.logger.handlers) == 0:
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def save_config(self, filename: str):
        """
        Save the current configuration to a YAML file. Will create
        intermediate directory structure if necessary. The file can be
        passed back as the config of a new Calibrator.

        Parameters
        ----------
        filename: str
            Output filename

        """

        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(filename, "w") as fp:
            OmegaConf.save(config=self.config, f=fp)

    def _find_keypoints(self, spectrum: Spectrum) -> List[SpectrumDataPoint]:

        settings = self.config.keypoints
        found = []

        if settings.type in ["valley", "both"]:
            found.extend(
                keypoints.find_valleys(
                    spectrum,
                    settings.minimum_intensity,
                    settings.minimum_prominence,
                )
            )

        if settings.type in ["peak", "both"]:
            found.extend(
                keypoints.find_peaks(
                    spectrum,
                    settings.minimum_intensity,
                    settings.minimum_prominence,
                )
            )

        found.sort(key=lambda point: point.pixel)

        return found

    def list_correspondences(self) -> List[Correspondence]:
        """
        Build, score and select the possible correspondences between the
        measured and the reference keypoints.

        """

        self.correspondences = list_possible_correspondences(
            self.measured_keypoints,
            self.measured_spectrum,
            self.reference_keypoints,
            self.reference_spectrum,
            self.config.ransac,
            self.config.correspondence,
            initial_calibration=self.initial_calibration,
        )

        return self.correspondences

    def fit(
        self, rng: Optional[Union[int, np.random.Generator]] = None
    ) -> RansacWavelengthCalibrationResult:
        """
        Run the calibration.

        Parameters
        ----------
        rng: int, np.random.Generator or None
            Source of randomness, defaults to the configured seed

        Returns
        -------
        result: RansacWavelengthCalibrationResult
            Check highest_number_of_inliers before using the coefficients

        """

        if self.correspondences is None:
            self.list_correspondences()

        self.result = self.solver.do_wavelength_calibration(
            self.correspondences, rng=rng
        )

        if self.result.success:
            self.logger.info(
                "Calibration found with "
                f"{self.result.highest_number_of_inliers} inliers out of "
                f"{self.result.number_of_possible_correlations}: "
                f"{self.result.best_fitting_model_coefficients}"
            )
        else:
            self.logger.warning("The calibration did not converge.")

        return self.result

    def pixel_to_wavelength(
        self, result: Optional[RansacWavelengthCalibrationResult] = None
    ):
        """
        The wavelength of every pixel of the measured spectrum according to a
        calibration result, by default the one from the last fit.

        """

        if result is None:
            result = self.result

        if result is None or not result.success:
            raise RuntimeError(
                "No successful calibration is available, run fit() first."
            )

        return models.polynomial_value_at(
            result.best_fitting_model_coefficients,
            np.arange(len(self.measured_spectrum), dtype=float),
        )
