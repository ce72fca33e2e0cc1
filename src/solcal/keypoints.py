#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Keypoint (peak and valley) detection in spectra.

"""

import logging
from typing import List, Optional, Union

import numpy as np
from scipy import signal

from .spectrum import KeypointType, Spectrum, SpectrumDataPoint
from .util import get_at

logger = logging.getLogger(__name__)


def derivative(data: Union[list, np.ndarray]):
    """
    First order derivative with respect to the index, by central finite
    differences.

    Parameters
    ----------
    data: list, np.ndarray
        The data (spectrum) to differentiate

    Returns
    -------
    derv: np.ndarray
        The derivative, same length as data. The first and last elements
        are set to zero.

    """

    data = np.asarray(data, dtype=float)

    if len(data) < 3:
        raise ValueError(
            f"At least three values are needed for a derivative, got {len(data)}"
        )

    derv = np.zeros_like(data)
    derv[1:-1] = 0.5 * (data[2:] - data[:-2])

    return derv


def _refine_extremum(intensity: np.ndarray, idx: int):
    """
    Sub-pixel position of the extremum at idx, from the vertex of the
    parabola through the three surrounding samples.

    """

    if idx <= 0 or idx >= len(intensity) - 1:
        return float(idx)

    left, centre, right = intensity[idx - 1 : idx + 2]
    denominator = left - 2.0 * centre + right

    if denominator == 0:
        return float(idx)

    offset = 0.5 * (left - right) / denominator

    return idx + float(np.clip(offset, -0.5, 0.5))


def _find_extrema(
    spectrum: Spectrum,
    minimum_intensity: float,
    minimum_prominence: Optional[float],
    keypoint_type: KeypointType,
) -> List[SpectrumDataPoint]:

    if keypoint_type == KeypointType.VALLEY:
        indices, _ = signal.find_peaks(
            -spectrum.intensity, prominence=minimum_prominence
        )
    else:
        indices, _ = signal.find_peaks(
            spectrum.intensity, prominence=minimum_prominence
        )

    result = []

    for idx in indices:

        if spectrum.intensity[idx] < minimum_intensity:
            continue

        pixel = _refine_extremum(spectrum.intensity, idx)

        if spectrum.has_wavelength_calibration:
            wavelength = get_at(spectrum.wavelength, pixel)
        else:
            wavelength = 0.0

        result.append(
            SpectrumDataPoint(
                pixel=pixel,
                wavelength=wavelength,
                intensity=float(spectrum.intensity[idx]),
                type=keypoint_type,
            )
        )

    logger.debug(
        f"Found {len(result)} {keypoint_type.name.lower()}s out of "
        f"{len(indices)} candidates."
    )

    return result


def find_peaks(
    spectrum: Spectrum,
    minimum_intensity: float = 0.0,
    minimum_prominence: Optional[float] = None,
) -> List[SpectrumDataPoint]:
    """
    Locate the significant peaks in a spectrum.

    Parameters
    ----------
    spectrum: Spectrum
        The spectrum to search. If it has a wavelength calibration then the
        returned points have their wavelength filled in.
    minimum_intensity: float
        Only peaks with an intensity at or above this value are returned
    minimum_prominence: float or None
        Passed on to scipy.signal.find_peaks

    Returns
    -------
    peaks: list of SpectrumDataPoint
        Peaks in order of increasing pixel

    """

    return _find_extrema(
        spectrum, minimum_intensity, minimum_prominence, KeypointType.PEAK
    )


def find_valleys(
    spectrum: Spectrum,
    minimum_intensity: float = 0.0,
    minimum_prominence: Optional[float] = None,
) -> List[SpectrumDataPoint]:
    """
    Locate the significant valleys in a spectrum. The Fraunhofer lines are
    valleys in a solar spectrum. Valleys in regions of too low intensity are
    skipped.

    Parameters are the same as for find_peaks.

    """

    return _find_extrema(
        spectrum, minimum_intensity, minimum_prominence, KeypointType.VALLEY
    )
