#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
This is for generating synthetic absorption spectra to enable testing.

"""

from typing import Union

import numpy as np

from . import models
from .spectrum import Spectrum


class SyntheticSpectrum:
    """
    Creates a synthetic spectrum generator which, given a pixel to
    wavelength polynomial, outputs the pixel locations of input wavelengths
    and absorption spectra with lines at given wavelengths. This should be
    mainly for testing.

    """

    def __init__(
        self,
        coefficients: Union[list, np.ndarray],
        num_pix: int = 2048,
    ):
        """

        Parameters
        ----------
        coefficients: list
            Pixel to wavelength polynomial, from the lowest to the highest
            order
        num_pix: int
            Number of pixels on the detector

        """

        if num_pix < 2:
            raise ValueError(f"num_pix must be at least 2, got {num_pix}")

        self.num_pix = num_pix
        self.set_model(coefficients)

    def set_model(self, coefficients: Union[list, np.ndarray]):
        """
        Set the pixel to wavelength polynomial

        Parameters
        ----------
        coefficients: list, np.ndarray
            polynomial coefficients, from the lowest to the highest order.

        """

        self.coefficients = np.asarray(coefficients, dtype=float)
        self.degree = len(self.coefficients) - 1
        self.wavelength = models.polynomial_value_at(
            self.coefficients, np.arange(self.num_pix, dtype=float)
        )

        if np.any(np.diff(self.wavelength) <= 0):
            raise ValueError(
                "The pixel to wavelength mapping must be increasing over the "
                "detector."
            )

    @property
    def min_wavelength(self):
        return float(self.wavelength[0])

    @property
    def max_wavelength(self):
        return float(self.wavelength[-1])

    def get_pixels(self, wavelengths: Union[list, np.ndarray]):
        """
        Returns the pixel locations of the wavelengths provided which fall
        on the detector.

        Returns
        -------
        pixels: np.ndarray
            The (fractional) pixel of each wavelength
        wavelengths: np.ndarray
            The wavelengths which fall on the detector

        """

        if not isinstance(wavelengths, (list, np.ndarray)):

            raise TypeError("Please provide a list or an numpy array.")

        wavelengths = np.array(wavelengths, dtype=float)
        wavelengths = wavelengths[wavelengths >= self.min_wavelength]
        wavelengths = wavelengths[wavelengths <= self.max_wavelength]

        # Linear function y = mx + c
        if self.degree == 1:
            # x = (y - c) / m
            pixels = (wavelengths - self.coefficients[0]) / self.coefficients[
                1
            ]
        # High order polynomials, the mapping is monotonic on the detector
        else:
            pixels = np.interp(
                wavelengths,
                self.wavelength,
                np.arange(self.num_pix, dtype=float),
            )

        return pixels, wavelengths

    def absorption_spectrum(
        self,
        line_wavelengths: Union[list, np.ndarray],
        depths: Union[float, list, np.ndarray] = 0.5,
        sigma: float = 2.0,
        continuum: float = 1000.0,
    ) -> Spectrum:
        """
        A flat continuum with Gaussian absorption lines, as a Spectrum with
        this model as its wavelength axis.

        Parameters
        ----------
        line_wavelengths: list, np.ndarray
            Wavelength of each line, nm
        depths: float, list, np.ndarray
            Relative depth of each line, between 0 and 1
        sigma: float
            Width of the lines, pixels
        continuum: float
            Intensity outside the lines

        """

        pixels, wavelengths = self.get_pixels(
            np.asarray(line_wavelengths, dtype=float)
        )
        depths = np.broadcast_to(
            np.asarray(depths, dtype=float), np.shape(line_wavelengths)
        )
        depths = depths[
            (np.asarray(line_wavelengths) >= self.min_wavelength)
            & (np.asarray(line_wavelengths) <= self.max_wavelength)
        ]

        x = np.arange(self.num_pix, dtype=float)
        transmission = np.ones(self.num_pix)

        for pixel, depth in zip(pixels, depths):
            transmission *= 1.0 - depth * np.exp(
                -((x - pixel) ** 2) / (2 * sigma**2)
            )

        return Spectrum(continuum * transmission, wavelength=self.wavelength)
