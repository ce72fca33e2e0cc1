#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Some uncategorised utility functions.

"""

import logging
from typing import Union

import astropy.units as u
import numpy as np

logger = logging.getLogger(__name__)


def normalize(values: Union[list, np.ndarray]):
    """
    Linearly rescale the values to the range [0, 1].

    Parameters
    ----------
    values: list, np.ndarray
        The values to normalise

    Returns
    -------
    normalised: np.ndarray
        A new array, the minimum maps to 0 and the maximum to 1. A constant
        input maps to all zeros.

    """

    values = np.asarray(values, dtype=float)

    if len(values) == 0:
        return values.copy()

    min_value = values.min()
    value_range = values.max() - min_value

    if value_range == 0:
        return np.zeros_like(values)

    return (values - min_value) / value_range


def remove_mean(values: Union[list, np.ndarray]):
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return values.copy()
    return values - values.mean()


def sum_of_squared_differences(
    a: Union[list, np.ndarray], b: Union[list, np.ndarray]
):
    """
    Sum of squared element-wise differences of two equally long vectors.

    """

    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)

    if len(a) != len(b):
        raise ValueError(
            f"Cannot compare vectors of different length ({len(a)} and {len(b)})"
        )

    return float(np.sum((a - b) ** 2))


def find_n_lowest(values: Union[list, np.ndarray], n: int):
    """
    Return the n smallest values, sorted in ascending order.

    """

    values = np.asarray(values, dtype=float)

    if n <= 0 or len(values) == 0:
        return np.array([])

    n = min(n, len(values))

    return np.sort(np.partition(values, n - 1)[:n])


def find_value(
    values: Union[list, np.ndarray],
    value_to_find: float,
    start_idx: int = 0,
    stop_idx: int = None,
):
    """
    Locate the first (fractional) index in [start_idx, stop_idx] where the
    values cross value_to_find, using linear interpolation between
    neighbouring samples.

    Parameters
    ----------
    values: list, np.ndarray
        The values to search
    value_to_find: float
        The value to look for
    start_idx: int
        First index to search
    stop_idx: int
        Last index to search, defaults to the end of values

    Returns
    -------
    idx: float
        The fractional index, or -1.0 if the value is not found

    """

    values = np.asarray(values, dtype=float)

    if stop_idx is None:
        stop_idx = len(values) - 1

    if stop_idx <= start_idx or start_idx >= len(values):
        return -1.0

    if values[start_idx] == value_to_find:
        return float(start_idx)

    stop_idx = min(stop_idx, len(values) - 1)

    for idx in range(start_idx + 1, stop_idx + 1):
        last_value = values[idx - 1]
        this_value = values[idx]

        if last_value < value_to_find <= this_value:
            alpha = (this_value - value_to_find) / (this_value - last_value)
            return idx - alpha

        if this_value <= value_to_find < last_value:
            alpha = (last_value - value_to_find) / (last_value - this_value)
            return idx - 1 + alpha

    return -1.0


def get_at(values: Union[list, np.ndarray], idx: float):
    """
    Linearly interpolated value at a fractional index.

    Raises
    ------
    ValueError
        If idx lies outside [0, len(values) - 1]

    """

    values = np.asarray(values, dtype=float)

    if len(values) == 0 or idx < 0.0 or idx > len(values) - 1:
        raise ValueError(
            f"Index {idx} is outside of the vector of length {len(values)}"
        )

    lower = int(np.floor(idx))
    upper = int(np.ceil(idx))
    alpha = idx - lower

    return float(values[lower] * (1.0 - alpha) + values[upper] * alpha)


def pixel_to_wavelength(
    pixel_to_wavelength_mapping: Union[list, np.ndarray],
    pixels: Union[float, list, np.ndarray],
):
    """
    Interpolate the wavelength at (fractional) pixels given the wavelength
    of every pixel. Pixels outside the detector give NaN.

    """

    mapping = np.asarray(pixel_to_wavelength_mapping, dtype=float)
    index = np.arange(len(mapping), dtype=float)

    return np.interp(pixels, index, mapping, left=np.nan, right=np.nan)


def wavelength_to_pixel(
    pixel_to_wavelength_mapping: Union[list, np.ndarray],
    wavelengths: Union[float, list, np.ndarray],
):
    """
    Inverse of pixel_to_wavelength for a monotonic mapping. The mapping may be
    either increasing or decreasing. Wavelengths outside the covered range
    give NaN.

    Parameters
    ----------
    pixel_to_wavelength_mapping: list, np.ndarray
        The wavelength of every pixel on the detector
    wavelengths: float, list, np.ndarray
        Wavelengths to locate

    Returns
    -------
    pixels: float or np.ndarray
        The fractional pixel of each wavelength

    """

    mapping = np.asarray(pixel_to_wavelength_mapping, dtype=float)
    index = np.arange(len(mapping), dtype=float)

    if len(mapping) < 2:
        raise ValueError("The pixel to wavelength mapping needs two pixels.")

    if mapping[-1] < mapping[0]:
        mapping = mapping[::-1]
        index = index[::-1]

    if np.any(np.diff(mapping) <= 0):
        raise ValueError("The pixel to wavelength mapping must be monotonic.")

    return np.interp(wavelengths, mapping, index, left=np.nan, right=np.nan)


def get_vapour_pressure(temperature: float):
    """
    Appendix A.I of https://emtoolbox.nist.gov/Wavelength/Documentation.asp

    Parameters
    ----------
    temperature: float
        In unit of Celcius

    """

    T = temperature + 273.15

    K1 = 1.16705214528e03
    K2 = -7.24213167032e05
    K3 = -1.70738469401e01
    K4 = 1.20208247025e04
    K5 = -3.23255503223e06
    K6 = 1.49151086135e01
    K7 = -4.82326573616e03
    K8 = 4.05113405421e05
    K9 = -2.38555575678e-01
    K10 = 6.50175348448e02
    omega = T + K9 / (T - K10)
    A = omega**2.0 + K1 * omega + K2
    B = K3 * omega**2.0 + K4 * omega + K5
    C = K6 * omega**2.0 + K7 * omega + K8
    X = -B + np.sqrt(B**2.0 - 4.0 * A * C)
    vapour_pressure = 1.0e6 * (2.0 * C / X) ** 4.0
    return vapour_pressure


def edlen_refraction(
    wavelengths: Union[float, np.ndarray],
    temperature: float,
    pressure: float,
    vapour_partial_pressure: float,
):
    """
    Refractive index of air following the modified Edlén equations,
    Appendix A.IV of https://emtoolbox.nist.gov/Wavelength/Documentation.asp

    Parameters
    ----------
    wavelengths: float, np.ndarray
        In unit of nm
    temperature: float
        In unit of Celcius
    pressure: float
        In unit of Pascal
    vapour_partial_pressure: float
        In unit of Pascal

    """

    w = (np.asarray(wavelengths, dtype=float) * u.nm).to_value(u.micron)

    t = temperature
    T = temperature + 273.15

    A = 8342.54
    B = 2406147.0
    C = 15998.0
    D = 96095.43
    E = 0.601
    F = 0.00972
    G = 0.003661
    S = w**-2.0
    n_s = 1.0 + 1e-8 * (A + B / (130.0 - S) + C / (38.9 - S))
    X = (1.0 + 1e-8 * (E - F * t) * pressure) / (1.0 + G * t)
    n_tp = 1.0 + pressure * (n_s - 1.0) * X / D
    n = (
        n_tp
        - 1e-10
        * (292.75 / T)
        * (3.7345 - 0.0401 * S)
        * vapour_partial_pressure
    )
    return n


def _refractive_index(
    wavelengths: Union[float, np.ndarray],
    temperature: float,
    pressure: float,
    relative_humidity: float,
):

    if relative_humidity < 0.0 or relative_humidity > 100.0:
        raise ValueError("relative_humidity has to be between 0 and 100.")

    # Convert to celcius
    t = temperature - 273.15

    vapour_partial_pressure = (
        relative_humidity / 100.0 * get_vapour_pressure(t)
    )

    return edlen_refraction(wavelengths, t, pressure, vapour_partial_pressure)


def vacuum_to_air_wavelength(
    wavelengths: Union[float, np.ndarray],
    temperature: float = 273.15,
    pressure: float = 101325.0,
    relative_humidity: float = 0.0,
):
    """
    Convert vacuum wavelengths to air wavelengths.

    Solar atlases are commonly tabulated in vacuum while the calibration is
    done in nm air.

    Parameters
    ----------
    wavelengths: float or numpy.array
        Wavelengths in vacuum in unit of nm
    temperature: float
        In unit of Kelvin
    pressure: float
        In unit of Pa
    relative_humidity: float
        Unitless in percentage (i.e. 0 - 100)

    Returns
    -------
    air wavelengths: float or numpy.array
        The wavelengths in air given the condition, nm

    """

    return np.asarray(wavelengths, dtype=float) / _refractive_index(
        wavelengths, temperature, pressure, relative_humidity
    )


def air_to_vacuum_wavelength(
    wavelengths: Union[float, np.ndarray],
    temperature: float = 273.15,
    pressure: float = 101325.0,
    relative_humidity: float = 0.0,
):
    """
    Convert air wavelengths (nm) to vacuum wavelengths (nm). See
    vacuum_to_air_wavelength for the parameters.

    """

    return np.asarray(wavelengths, dtype=float) * _refractive_index(
        wavelengths, temperature, pressure, relative_humidity
    )
