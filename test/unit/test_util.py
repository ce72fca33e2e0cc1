import numpy as np
import pytest

from solcal import util

pressure = np.array([9, 10, 12, 10, 10, 10, 10, 10]) * 1e4
temperature = np.array([20, 20, 20, 10, 30, 20, 20, 20])
relative_humidity = np.array([0, 0, 0, 0, 0, 25, 50, 75])
# These values are from 1996
# http://jupiter.chem.uoa.gr/thanost/papers/papers4/Metrol_30(1993)155.pdf
elden = np.array(
    [21459.0, 26826.2, 32193.8, 27776.1, 25938.5, 26804.6, 26783.4, 26761.9]
)


def test_edlen_refractive_index():
    for t, p, h, e in zip(temperature, pressure, relative_humidity, elden):
        nm1e8 = (
            util.edlen_refraction(
                633.0,
                t,
                p,
                h / 100.0 * util.get_vapour_pressure(t),
            )
            - 1
        ) * 1e8
        # Only 2 S.F. accuracy is needed
        assert np.isclose(nm1e8, e, rtol=0.1, atol=1000)


def test_vacuum_to_air_wavelength():
    # https://classic.sdss.org/dr7/products/spectra/vacwavelength.html
    wave_vacuum = np.array([486.2721, 500.8239, 656.4614, 673.268])
    wave_air = np.array([486.1363, 500.6843, 656.2801, 673.082])

    assert np.allclose(
        wave_air,
        util.vacuum_to_air_wavelength(
            wave_vacuum, temperature=288.15, pressure=101325
        ),
        atol=0.01,
    )

    assert np.allclose(
        wave_vacuum,
        util.air_to_vacuum_wavelength(
            wave_air, temperature=288.15, pressure=101325
        ),
        atol=0.01,
    )


def test_relative_humidity_out_of_range():
    with pytest.raises(ValueError):
        util.vacuum_to_air_wavelength(500.0, relative_humidity=120.0)


def test_normalize():
    values = [2, 3, 4, 5, 6, 7, 8, 9, 8, 7, 6, 5, 4, 3]

    result = util.normalize(values)

    assert len(result) == len(values)
    assert result[0] == 0.0
    assert result.min() == 0.0
    assert result[7] == 1.0
    assert result.max() == 1.0


def test_normalize_empty_and_constant():
    assert len(util.normalize([])) == 0
    assert np.all(util.normalize([3.0, 3.0, 3.0]) == 0.0)


def test_remove_mean():
    assert np.allclose(util.remove_mean([1.0, 2.0, 3.0]), [-1.0, 0.0, 1.0])


def test_find_value_increasing():
    values = [1, 2, 3, 4]

    assert util.find_value(values, 1.0, 0, 4) == pytest.approx(0.0)
    assert util.find_value(values, 3.0, 0, 4) == pytest.approx(2.0)
    assert util.find_value(values, 4.0, 0, 4) == pytest.approx(3.0)
    assert util.find_value(values, 1.5, 0, 4) == pytest.approx(0.5)
    assert util.find_value(values, 3.25, 0, 4) == pytest.approx(2.25)
    assert util.find_value(values, 1.75, 0, 4) == pytest.approx(0.75)


def test_find_value_decreasing():
    values = [4, 3, 2, 1]

    assert util.find_value(values, 4.0) == pytest.approx(0.0)
    assert util.find_value(values, 3.5) == pytest.approx(0.5)
    assert util.find_value(values, 1.25) == pytest.approx(2.75)


def test_find_value_missing():
    assert util.find_value([1, 2, 3, 4], 5.0) == -1.0
    assert util.find_value([1, 2, 3, 4], 2.0, 3, 2) == -1.0


def test_get_at():
    values = [0.0, 10.0, 20.0]

    assert util.get_at(values, 0.0) == 0.0
    assert util.get_at(values, 0.25) == pytest.approx(2.5)
    assert util.get_at(values, 2.0) == 20.0


@pytest.mark.parametrize("idx", [-0.1, 2.5, 10])
def test_get_at_out_of_range(idx):
    with pytest.raises(ValueError):
        util.get_at([0.0, 10.0, 20.0], idx)


def test_find_n_lowest():
    values = [5, 3, 9, 1, 7]

    assert list(util.find_n_lowest(values, 3)) == [1, 3, 5]
    assert list(util.find_n_lowest(values, 10)) == [1, 3, 5, 7, 9]
    assert len(util.find_n_lowest(values, 0)) == 0


def test_sum_of_squared_differences():
    assert util.sum_of_squared_differences([1, 2, 3], [1, 2, 5]) == 4.0

    with pytest.raises(ValueError):
        util.sum_of_squared_differences([1, 2, 3], [1, 2])


def test_wavelength_to_pixel():
    mapping = 400.0 + 0.1 * np.arange(100)

    assert util.wavelength_to_pixel(mapping, 400.55) == pytest.approx(5.5)
    assert util.pixel_to_wavelength(mapping, 5.5) == pytest.approx(400.55)
    assert np.isnan(util.wavelength_to_pixel(mapping, 399.0))
    assert np.isnan(util.wavelength_to_pixel(mapping, 420.0))


def test_wavelength_to_pixel_decreasing():
    mapping = 500.0 - 0.1 * np.arange(100)

    assert util.wavelength_to_pixel(mapping, 499.0) == pytest.approx(10.0)


def test_wavelength_to_pixel_not_monotonic():
    with pytest.raises(ValueError):
        util.wavelength_to_pixel([1.0, 2.0, 1.5, 3.0], 1.7)
