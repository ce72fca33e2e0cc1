import numpy as np
import pytest

from solcal import models

np.random.seed(0)


def test_polynomial_value_at_scalar():
    # 1 + 2x + 3x^2
    assert models.polynomial_value_at([1.0, 2.0, 3.0], 2.0) == 17.0
    assert isinstance(models.polynomial_value_at([1.0, 2.0, 3.0], 2.0), float)


def test_polynomial_value_at_array():
    x = np.arange(5, dtype=float)

    result = models.polynomial_value_at([1.0, 2.0, 3.0], x)

    assert np.allclose(result, 1.0 + 2.0 * x + 3.0 * x**2)
    assert np.allclose(
        result, np.polynomial.polynomial.polyval(x, [1.0, 2.0, 3.0])
    )


def test_polynomial_value_at_empty_coefficients():
    assert models.polynomial_value_at([], 3.0) == 0.0


def test_fit_polynomial_exact():
    coefficients = [300.0, 0.05, 1.0e-6]
    x = np.array([0.0, 500.0, 1000.0, 2000.0])
    y = models.polynomial_value_at(coefficients, x)

    result = models.fit_polynomial(x, y, 2)

    assert len(result) == 3
    assert np.allclose(models.polynomial_value_at(result, x), y, atol=1e-9)
    assert np.allclose(result, coefficients, rtol=1e-6, atol=1e-12)


def test_fit_polynomial_duplicate_x_is_degenerate():
    with pytest.raises(np.linalg.LinAlgError):
        models.fit_polynomial([1.0, 1.0, 2.0], [3.0, 4.0, 5.0], 2)


def test_fit_polynomial_too_few_points():
    with pytest.raises(np.linalg.LinAlgError):
        models.fit_polynomial([1.0, 2.0], [3.0, 4.0], 3)


def test_fit_polynomial_length_mismatch():
    with pytest.raises(ValueError):
        models.fit_polynomial([1.0, 2.0, 3.0], [3.0, 4.0], 1)


def test_robust_polyfit_ignores_outlier():
    x = np.linspace(0, 2000, 40)
    coefficients = [400.0, 0.1, -2.0e-6]
    y = models.polynomial_value_at(coefficients, x)
    y = y + np.random.normal(0.0, 0.001, size=len(x))
    y[7] += 5.0

    robust = models.robust_polyfit(x, y, 2, f_scale=0.01)
    plain = models.fit_polynomial(x, y, 2)

    truth = models.polynomial_value_at(coefficients, x)
    robust_error = np.max(np.abs(models.polynomial_value_at(robust, x) - truth))
    plain_error = np.max(np.abs(models.polynomial_value_at(plain, x) - truth))

    assert robust_error < plain_error
    assert robust_error < 0.1
