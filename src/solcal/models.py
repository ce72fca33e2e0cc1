#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Polynomial models for the pixel to wavelength mapping. All coefficients are
stored with the 0th order coefficient first.

"""

from typing import Union

import numpy as np
import scipy.optimize
from numpy.polynomial import polynomial as P


def polynomial_value_at(
    coefficients: Union[list, np.ndarray], x: Union[float, np.ndarray]
):
    """
    Evaluate sum_i coefficients[i] * x**i using Horner's scheme.

    Parameters
    ----------
    coefficients: list, np.ndarray
        Polynomial coefficients, in increasing order
    x: float, np.ndarray
        Value or values to evaluate the polynomial at

    Returns
    -------
    value: float or np.ndarray
        The polynomial evaluated at x, zero for empty coefficients

    """

    result = np.zeros_like(x, dtype=float)

    for c in reversed(coefficients):
        result = result * x + c

    if np.ndim(result) == 0:
        return float(result)

    return result


def poly_cost_function(
    a: np.ndarray,
    x: np.ndarray,
    y: np.ndarray,
):
    """
    Polynomial cost function. Returns the difference between the target
    value and predicted values.

    Parameters
    ----------
    a: list
        Polynomial coefficients, increasing order
    x: list
        Values to evaluate polynomial at
    y: list
        Target values for each x

    Returns
    -------
    residual: list
        y - f(x)

    """

    return y - polynomial_value_at(a, x)


def fit_polynomial(
    x: Union[list, np.ndarray], y: Union[list, np.ndarray], degree: int
):
    """
    Least squares fit of a polynomial of the given degree to (x, y).

    Parameters
    ----------
    x: list, np.ndarray
        Abscissa values, e.g. pixels
    y: list, np.ndarray
        Ordinate values, e.g. wavelengths
    degree: int
        Polynomial degree to fit

    Returns
    -------
    coefficients: np.ndarray
        degree + 1 coefficients, in increasing order

    Raises
    ------
    np.linalg.LinAlgError
        If the system is singular, e.g. there are fewer distinct x values
        than coefficients.

    """

    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    if len(x) != len(y):
        raise ValueError(
            f"x ({len(x)}) and y ({len(y)}) must have the same length"
        )

    if len(np.unique(x)) <= degree:
        raise np.linalg.LinAlgError(
            f"Cannot fit a polynomial of degree {degree} to "
            f"{len(np.unique(x))} distinct points"
        )

    coefficients, (_, rank, _, _) = P.polyfit(x, y, degree, full=True)

    if rank < degree + 1 or not np.all(np.isfinite(coefficients)):
        raise np.linalg.LinAlgError(
            f"Singular system when fitting a polynomial of degree {degree}"
        )

    return coefficients


def normalise_input(x, y):
    """
    Transforms inputs to have unit variance.

    Parameters
    ----------
    x: list
        list of values
    y: list
        list of values

    """

    x_scale = x.std()
    y_scale = y.std()

    if x_scale == 0:
        x_scale = 1.0
    if y_scale == 0:
        y_scale = 1.0

    return x / x_scale, y / y_scale, x_scale, y_scale


def robust_polyfit(x, y, degree=3, x0=None, f_scale=None):
    """
    Perform a robust polyfit given a set of values (x,y).

    Specifically this function performs a least squares
    fit to the given data points using the robust Huber
    loss. Inputs are normalised prior to fitting.

    Parameters
    ----------
    x: list
        Data points
    y: list
        Target data to fit
    degree: int
        Polynomial degree to fit
    x0: list or None
        Initial coefficients, increasing order. Defaults to the ordinary
        least squares solution.
    f_scale: float or None
        Residual (in units of y) beyond which the loss becomes linear.
        Defaults to one standard deviation of y.

    Returns
    -------
    p: np.ndarray
        Polynomial coefficients, increasing order

    """

    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    if x0 is None:
        x0 = fit_polynomial(x, y, degree)

    x_n, y_n, x_scale, y_scale = normalise_input(x, y)

    # Need to normalise the initial guess too
    scale = x_scale ** np.arange(degree + 1)
    p_init = np.asarray(x0, dtype=float) * scale / y_scale

    res = scipy.optimize.least_squares(
        poly_cost_function,
        p_init,
        args=(x_n, y_n),
        loss="huber",
        f_scale=1.0 if f_scale is None else f_scale / y_scale,
        diff_step=1e-5,
    )

    if not res.success:
        raise np.linalg.LinAlgError(f"Robust fit failed: {res.message}")

    return res.x * y_scale / scale
