#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Construction of the possible correspondences between keypoints in a measured
spectrum and keypoints in a (Fraunhofer) reference spectrum. These are the
input to the RANSAC wavelength calibration.

"""

import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from .config import (
    CorrespondenceSelectionConfig,
    RansacConfig,
    check_correspondence_config,
    check_ransac_config,
    load_config,
)
from .spectrum import Spectrum, SpectrumDataPoint
from .util import (
    get_at,
    remove_mean,
    sum_of_squared_differences,
    wavelength_to_pixel,
)

logger = logging.getLogger(__name__)

# Error given to correspondences too close to the edge of a spectrum to be
# measured
UNMEASURABLE_ERROR = sys.float_info.max


@dataclass
class Correspondence:
    """
    A proposed match between a keypoint in the measured spectrum and a
    keypoint in the theoretical (Fraunhofer) spectrum.

    Parameters
    ----------
    measured_idx: int
        Index of the keypoint in the measured keypoint list
    measured_value: float
        Pixel of the measured keypoint
    theoretical_idx: int
        Index of the keypoint in the reference keypoint list
    theoretical_value: float
        Wavelength (nm) of the reference keypoint
    theoretical_pixel: float
        Position of the reference keypoint in the reference spectrum
    error: float
        Dissimilarity of the two spectra around the keypoints, lower is
        better

    """

    measured_idx: int = 0
    measured_value: float = 0.0
    theoretical_idx: int = 0
    theoretical_value: float = 0.0
    theoretical_pixel: float = 0.0
    error: float = 0.0


def _extract_window(
    intensity: np.ndarray, centre: float, half_width: int
) -> Optional[np.ndarray]:

    start = int(round(centre)) - half_width
    stop = int(round(centre)) + half_width

    if start < 0 or stop > len(intensity):
        return None

    return intensity[start:stop]


def _standardise(window: np.ndarray):

    window = remove_mean(window)
    scale = window.std()

    if scale > 0:
        window = window / scale

    return window


def measure_correspondence_error(
    correspondence: Correspondence,
    measured_spectrum: Spectrum,
    theoretical_spectrum: Spectrum,
    settings: Union[CorrespondenceSelectionConfig, dict] = None,
):
    """
    Measure the dissimilarity between the two spectra around the keypoints of
    a correspondence and store it in ``correspondence.error``.

    The dissimilarity is the sum of squared differences between the two
    spectra in a window of 2 * pixel_region_size pixels around each keypoint.
    Each window is first normalised to zero mean and unit standard
    deviation, so that differences in absolute intensity between the
    spectra do not matter. Correspondences whose window does not fit inside
    either spectrum get the error UNMEASURABLE_ERROR.

    Parameters
    ----------
    correspondence: Correspondence
        The correspondence to measure, updated in place
    measured_spectrum: Spectrum
        The measured spectrum
    theoretical_spectrum: Spectrum
        The reference spectrum
    settings: CorrespondenceSelectionConfig
        Supplies pixel_region_size

    Returns
    -------
    error: float
        The measured error

    """

    settings = load_config(CorrespondenceSelectionConfig, settings)

    return _measure_error(
        correspondence,
        measured_spectrum,
        theoretical_spectrum,
        settings.pixel_region_size,
    )


def _measure_error(
    correspondence: Correspondence,
    measured_spectrum: Spectrum,
    theoretical_spectrum: Spectrum,
    half_width: int,
):

    measured_window = _extract_window(
        measured_spectrum.intensity, correspondence.measured_value, half_width
    )
    theoretical_window = _extract_window(
        theoretical_spectrum.intensity,
        correspondence.theoretical_pixel,
        half_width,
    )

    if measured_window is None or theoretical_window is None:
        correspondence.error = UNMEASURABLE_ERROR
        return correspondence.error

    correspondence.error = sum_of_squared_differences(
        _standardise(measured_window), _standardise(theoretical_window)
    )

    return correspondence.error


def _reference_wavelengths(
    reference_keypoints: List[SpectrumDataPoint],
    wavelength_axis: Optional[np.ndarray],
):
    """
    The wavelength of each reference keypoint, NaN if it cannot be found.

    """

    wavelengths = np.full(len(reference_keypoints), np.nan)

    for idx, keypoint in enumerate(reference_keypoints):

        if keypoint.wavelength:
            wavelengths[idx] = keypoint.wavelength

        elif wavelength_axis is not None:
            try:
                wavelengths[idx] = get_at(wavelength_axis, keypoint.pixel)
            except ValueError:
                logger.debug(
                    f"Reference keypoint at pixel {keypoint.pixel} is "
                    "outside the wavelength axis."
                )

    return wavelengths


def list_possible_correspondences(
    measured_keypoints: List[SpectrumDataPoint],
    measured_spectrum: Spectrum,
    reference_keypoints: List[SpectrumDataPoint],
    reference_spectrum: Spectrum,
    ransac_settings: Union[RansacConfig, dict] = None,
    selection_settings: Union[CorrespondenceSelectionConfig, dict] = None,
    initial_calibration: Optional[Union[list, np.ndarray]] = None,
) -> List[Correspondence]:
    """
    List all reasonable correspondences between the keypoints of the
    measured spectrum and those of the reference spectrum. This should be
    run as a preparatory step to the RANSAC calibration.

    Parameters
    ----------
    measured_keypoints: list of SpectrumDataPoint
        Keypoints found in the measured spectrum
    measured_spectrum: Spectrum
        The measured spectrum itself
    reference_keypoints: list of SpectrumDataPoint
        Keypoints found in the reference spectrum
    reference_spectrum: Spectrum
        The reference spectrum itself
    ransac_settings: RansacConfig
        Supplies maximum_pixel_distance_for_possible_correspondence
    selection_settings: CorrespondenceSelectionConfig
        Window size, selection fraction and the pixel range to use
    initial_calibration: list, np.ndarray
        Approximate wavelength of each pixel, only used to bound the search.
        Defaults to the wavelength axis of the reference spectrum.

    Returns
    -------
    correspondences: list of Correspondence
        The selected correspondences, scored and sorted by increasing error

    """

    ransac_settings = load_config(RansacConfig, ransac_settings)
    selection_settings = load_config(
        CorrespondenceSelectionConfig, selection_settings
    )
    check_ransac_config(ransac_settings)
    check_correspondence_config(selection_settings)

    max_distance = (
        ransac_settings.maximum_pixel_distance_for_possible_correspondence
    )

    if initial_calibration is None:
        initial_calibration = reference_spectrum.wavelength

    if initial_calibration is None:
        logger.warning(
            "No initial calibration is available, cannot list any "
            "correspondences."
        )
        return []

    measured = [
        (idx, keypoint)
        for idx, keypoint in enumerate(measured_keypoints)
        if selection_settings.measured_pixel_start
        <= keypoint.pixel
        < selection_settings.measured_pixel_stop
    ]

    if len(measured) == 0:
        logger.warning(
            "No measured keypoints between pixel "
            f"{selection_settings.measured_pixel_start} and "
            f"{selection_settings.measured_pixel_stop}."
        )
        return []

    wavelength_axis = reference_spectrum.wavelength
    if wavelength_axis is None:
        wavelength_axis = np.asarray(initial_calibration, dtype=float)

    reference_wavelength = _reference_wavelengths(
        reference_keypoints, wavelength_axis
    )
    reference_pixel = wavelength_to_pixel(
        initial_calibration, reference_wavelength
    )

    valid = np.flatnonzero(np.isfinite(reference_pixel))
    order = valid[np.argsort(reference_pixel[valid], kind="stable")]
    sorted_pixel = reference_pixel[order]

    logger.debug(
        f"{len(measured)} measured and {len(order)} reference keypoints "
        "can form correspondences."
    )

    candidates = []

    for measured_idx, keypoint in measured:

        first = np.searchsorted(
            sorted_pixel, keypoint.pixel - max_distance, side="left"
        )
        last = np.searchsorted(
            sorted_pixel, keypoint.pixel + max_distance, side="right"
        )

        for theoretical_idx in order[first:last]:

            correspondence = Correspondence(
                measured_idx=measured_idx,
                measured_value=keypoint.pixel,
                theoretical_idx=int(theoretical_idx),
                theoretical_value=float(
                    reference_wavelength[theoretical_idx]
                ),
                theoretical_pixel=reference_keypoints[theoretical_idx].pixel,
            )

            _measure_error(
                correspondence,
                measured_spectrum,
                reference_spectrum,
                selection_settings.pixel_region_size,
            )

            candidates.append(correspondence)

    if len(candidates) == 0:
        logger.warning("No possible correspondences found.")
        return []

    candidates.sort(key=lambda c: c.error)

    if selection_settings.unique_measured_keypoints:
        seen = set()
        unique = []
        for correspondence in candidates:
            if correspondence.measured_idx not in seen:
                seen.add(correspondence.measured_idx)
                unique.append(correspondence)
        candidates = unique

    fraction = selection_settings.percentage_of_correspondences_to_select
    n_select = max(1, int(np.floor(fraction * len(candidates) + 0.5)))

    logger.info(
        f"Selected {n_select} out of {len(candidates)} possible "
        "correspondences."
    )

    return candidates[:n_select]
