#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Containers for spectra and the keypoints found in them.

"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

import numpy as np


class KeypointType(IntEnum):
    """
    Classification of a point in a spectrum.

    """

    OTHER = 0
    PEAK = 1
    VALLEY = 2


@dataclass(frozen=True)
class SpectrumDataPoint:
    """
    A single point in a spectrum, typically a peak or a valley.

    Parameters
    ----------
    pixel: float
        The (sub-)pixel where this point is found
    wavelength: float
        The wavelength in nm where this point is found, zero if not known
    intensity: float
        The intensity of the spectrum at this point
    type: KeypointType
        Classification of the point

    """

    pixel: float = 0.0
    wavelength: float = 0.0
    intensity: float = 0.0
    type: KeypointType = KeypointType.OTHER


class Spectrum:
    """
    A measured or modelled spectrum: one intensity per pixel and optionally
    the wavelength (nm) of each pixel.

    """

    def __init__(
        self,
        intensity: Union[list, np.ndarray],
        wavelength: Optional[Union[list, np.ndarray]] = None,
    ):

        self.intensity = np.asarray(intensity, dtype=float).reshape(-1)

        if wavelength is not None:
            wavelength = np.asarray(wavelength, dtype=float).reshape(-1)

            if len(wavelength) != len(self.intensity):
                raise ValueError(
                    f"The wavelength axis ({len(wavelength)}) must have the "
                    f"same length as the intensity ({len(self.intensity)})."
                )

        self.wavelength = wavelength

    def __len__(self):
        return len(self.intensity)

    @property
    def has_wavelength_calibration(self):
        return self.wavelength is not None
