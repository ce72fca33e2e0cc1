#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Generation of Fraunhofer reference spectra, by convolving a high resolution
solar atlas with the instrument line shape of the spectrometer.

"""

import abc
import logging
from typing import List, Optional, Tuple, Union

import numpy as np
from scipy import signal

from . import util
from .spectrum import Spectrum


class FraunhoferSpectrumGenerator(abc.ABC):
    """
    Interface of everything able to produce a Fraunhofer reference spectrum
    for a pixel to wavelength mapping and an instrument line shape.

    """

    @abc.abstractmethod
    def get_fraunhofer_range(
        self, wavelength_calibration: Union[list, np.ndarray]
    ) -> Tuple[float, float]:
        """
        The wavelength range (nm) over which get_fraunhofer_spectrum is
        valid for the given calibration.

        """

    @abc.abstractmethod
    def get_fraunhofer_spectrum(
        self,
        wavelength_calibration: Union[list, np.ndarray],
        instrument_line_shape: Spectrum,
        fwhm: Optional[float] = None,
        normalize: bool = True,
    ) -> Spectrum:
        """
        The solar spectrum as seen by the instrument, one value per pixel of
        wavelength_calibration.

        """

    @abc.abstractmethod
    def get_differential_fraunhofer_spectrum(
        self,
        wavelength_calibration: Union[list, np.ndarray],
        instrument_line_shape: Spectrum,
        fwhm: Optional[float] = None,
    ) -> Spectrum:
        """
        The high-pass filtered logarithm of the Fraunhofer spectrum, i.e.
        only the narrow band structures. One value per pixel of
        wavelength_calibration.

        """


def full_width_half_maximum(instrument_line_shape: Spectrum):
    """
    Width (in nm) of the part of the line shape above half its maximum.

    """

    if not instrument_line_shape.has_wavelength_calibration:
        raise ValueError("The instrument line shape needs a wavelength axis.")

    intensity = instrument_line_shape.intensity
    wavelength = instrument_line_shape.wavelength
    above = np.flatnonzero(intensity >= 0.5 * intensity.max())

    if len(above) == 0 or intensity.max() <= 0:
        raise ValueError("The instrument line shape has no positive maximum.")

    return float(abs(wavelength[above[-1]] - wavelength[above[0]]))


class SolarAtlasFraunhoferGenerator(FraunhoferSpectrumGenerator):
    """
    Creates Fraunhofer spectra from a high resolution solar atlas and,
    optionally, high resolution absorption cross sections of molecules in the
    atmosphere (e.g. ozone) with their total columns.

    The atlas and cross sections are given as arrays, reading them from file
    is up to the caller.

    """

    def __init__(
        self,
        atlas_wavelength: Union[list, np.ndarray],
        atlas_intensity: Union[list, np.ndarray],
        cross_sections: Optional[
            List[Tuple[np.ndarray, np.ndarray, float]]
        ] = None,
        vacuum: bool = False,
    ):
        """
        Parameters
        ----------
        atlas_wavelength: list, np.ndarray
            Wavelength of the solar atlas, increasing, nm
        atlas_intensity: list, np.ndarray
            Intensity of the solar atlas
        cross_sections: list of (wavelength, cross section, total column)
            Absorbers to include, wavelengths in nm air, cross sections in
            cm2/molecule and total columns in molecules/cm2
        vacuum: bool
            Set if atlas_wavelength is in vacuum, it is then converted to air

        """

        self.logger = logging.getLogger(__name__)

        wavelength = np.asarray(atlas_wavelength, dtype=float)
        intensity = np.asarray(atlas_intensity, dtype=float)

        if len(wavelength) != len(intensity) or len(wavelength) < 2:
            raise ValueError(
                "The solar atlas needs equally long wavelength and intensity "
                "arrays with at least two values."
            )

        if np.any(np.diff(wavelength) <= 0):
            raise ValueError("The solar atlas wavelength must be increasing.")

        if vacuum:
            wavelength = util.vacuum_to_air_wavelength(wavelength)

        self.atlas_wavelength = wavelength
        self.atlas_intensity = intensity
        self.cross_sections = cross_sections or []

    def get_fraunhofer_range(self, wavelength_calibration):

        calibration = np.asarray(wavelength_calibration, dtype=float)

        low = max(calibration.min(), self.atlas_wavelength[0])
        high = min(calibration.max(), self.atlas_wavelength[-1])

        if low >= high:
            raise ValueError(
                f"The calibration ({calibration.min()} - {calibration.max()} "
                "nm) does not overlap the solar atlas "
                f"({self.atlas_wavelength[0]} - {self.atlas_wavelength[-1]} nm)."
            )

        return float(low), float(high)

    def _kernel(self, instrument_line_shape: Spectrum, step: float):
        """
        The line shape resampled to the convolution grid, centred on its
        centroid and normalised to unit area.

        """

        wavelength = instrument_line_shape.wavelength
        intensity = np.clip(instrument_line_shape.intensity, 0.0, None)

        centre = np.sum(wavelength * intensity) / np.sum(intensity)
        offsets = wavelength - centre

        order = np.argsort(offsets)
        half_width = int(np.ceil(np.max(np.abs(offsets)) / step))
        grid = step * np.arange(-half_width, half_width + 1)

        kernel = np.interp(
            grid, offsets[order], intensity[order], left=0.0, right=0.0
        )

        return kernel / kernel.sum(), half_width

    def get_fraunhofer_spectrum(
        self,
        wavelength_calibration,
        instrument_line_shape,
        fwhm=None,
        normalize=True,
    ):
        """
        Create the Fraunhofer spectrum for the given pixel to wavelength
        mapping (nm air) and measured instrument line shape.

        Parameters
        ----------
        wavelength_calibration: list, np.ndarray
            The wavelength of every pixel on the detector
        instrument_line_shape: Spectrum
            Measured line shape, with a wavelength axis
        fwhm: float or None
            Full width at half maximum of the line shape, determined from the
            line shape if not given. Sets the convolution grid.
        normalize: bool
            Rescale the result to the range [0, 1]

        Returns
        -------
        spectrum: Spectrum
            The convolved solar spectrum, with wavelength_calibration as its
            wavelength axis

        """

        calibration = np.asarray(wavelength_calibration, dtype=float)

        if (
            calibration.min() < self.atlas_wavelength[0]
            or calibration.max() > self.atlas_wavelength[-1]
        ):
            raise ValueError(
                "The solar atlas does not cover the full calibration range "
                f"({calibration.min()} - {calibration.max()} nm)."
            )

        if fwhm is None:
            fwhm = full_width_half_maximum(instrument_line_shape)

        if fwhm <= 0:
            raise ValueError(f"The fwhm must be positive, got {fwhm}")

        step = fwhm / 20.0
        kernel, half_width = self._kernel(instrument_line_shape, step)

        margin = (half_width + 1) * step
        start = max(calibration.min() - margin, self.atlas_wavelength[0])
        stop = min(calibration.max() + margin, self.atlas_wavelength[-1])
        grid = np.arange(start, stop + step, step)

        self.logger.debug(
            f"Convolving {len(grid)} points with a kernel of {len(kernel)} "
            f"points (fwhm {fwhm} nm)."
        )

        intensity = np.interp(grid, self.atlas_wavelength, self.atlas_intensity)

        for wavelength, cross_section, total_column in self.cross_sections:
            sigma = np.interp(
                grid,
                np.asarray(wavelength, dtype=float),
                np.asarray(cross_section, dtype=float),
                left=0.0,
                right=0.0,
            )
            intensity = intensity * np.exp(-total_column * sigma)

        convolved = signal.fftconvolve(intensity, kernel, mode="same")
        result = np.interp(calibration, grid, convolved)

        if normalize:
            result = util.normalize(result)

        return Spectrum(result, wavelength=calibration)


    def get_differential_fraunhofer_spectrum(
        self,
        wavelength_calibration,
        instrument_line_shape,
        fwhm=None,
    ):
        """
        Create the differential Fraunhofer spectrum for the given pixel to
        wavelength mapping (nm air) and measured instrument line shape. This
        is the logarithm of the convolved solar spectrum with its broad band
        part removed by a Savitzky-Golay filter spanning twenty fwhm.

        Parameters
        ----------
        wavelength_calibration: list, np.ndarray
            The wavelength of every pixel on the detector
        instrument_line_shape: Spectrum
            Measured line shape, with a wavelength axis
        fwhm: float or None
            Full width at half maximum of the line shape, determined from the
            line shape if not given

        Returns
        -------
        spectrum: Spectrum
            The differential spectrum, with wavelength_calibration as its
            wavelength axis

        """

        calibration = np.asarray(wavelength_calibration, dtype=float)

        if fwhm is None:
            fwhm = full_width_half_maximum(instrument_line_shape)

        spectrum = self.get_fraunhofer_spectrum(
            calibration, instrument_line_shape, fwhm=fwhm, normalize=False
        )

        if np.any(spectrum.intensity <= 0):
            raise ValueError(
                "The Fraunhofer spectrum must be positive to take its "
                "logarithm."
            )

        optical_depth = np.log(spectrum.intensity)

        pixel_width = np.median(np.abs(np.diff(calibration)))
        window = int(np.ceil(20.0 * fwhm / pixel_width)) // 2 * 2 + 1
        window = max(window, 5)

        if window > len(optical_depth):
            window = len(optical_depth) - (1 - len(optical_depth) % 2)

        if window < 3:
            raise ValueError(
                f"Too few pixels ({len(optical_depth)}) for a differential "
                "spectrum."
            )

        broad_band = signal.savgol_filter(
            optical_depth, window, polyorder=min(2, window - 1)
        )

        self.logger.debug(
            f"Removed the broad band part with a {window} pixel window."
        )

        return Spectrum(optical_depth - broad_band, wavelength=calibration)
