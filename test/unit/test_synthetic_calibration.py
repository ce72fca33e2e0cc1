import logging
from functools import partialmethod

import numpy as np
import pytest

# Suppress tqdm output
from tqdm import tqdm

from solcal.calibrator import Calibrator
from solcal.spectrum import Spectrum
from solcal.synthetic import SyntheticSpectrum

logger = logging.getLogger(__name__)

tqdm.__init__ = partialmethod(tqdm.__init__, disable=True)

rng = np.random.default_rng(2023)

# Create a test spectrum with a quadratic relationship between pixels and
# wavelengths. The initial guess of the calibration is off by 8 pixels.
num_pix = 2500
best_p = np.array([300.0, 0.04, 2.0e-6])
shift = 8.0
initial_p = np.array(
    [
        best_p[0] + best_p[1] * shift + best_p[2] * shift**2,
        best_p[1] + 2.0 * best_p[2] * shift,
        best_p[2],
    ]
)

line_wavelengths = np.linspace(305.0, 408.0, 60) + rng.uniform(
    -0.4, 0.4, size=60
)
line_depths = rng.uniform(0.2, 0.8, size=60)

measured = SyntheticSpectrum(best_p, num_pix=num_pix)
initial = SyntheticSpectrum(initial_p, num_pix=num_pix)

measured_spectrum = Spectrum(
    measured.absorption_spectrum(line_wavelengths, line_depths).intensity
)
reference_spectrum = initial.absorption_spectrum(line_wavelengths, line_depths)

config = {
    "seed": 42,
    "log_level": "warning",
    "keypoints": {"type": "valley", "minimum_prominence": 50.0},
    "correspondence": {
        "measured_pixel_start": 0,
        "measured_pixel_stop": num_pix,
        "percentage_of_correspondences_to_select": 0.5,
    },
    "ransac": {
        "model_polynomial_order": 2,
        "sample_size": 3,
        "number_of_ransac_iterations": 2000,
        "maximum_pixel_distance_for_possible_correspondence": 40,
    },
}


def test_calibration():
    c = Calibrator(measured_spectrum, reference_spectrum, config=config)

    assert len(c.measured_keypoints) == 60
    assert len(c.reference_keypoints) == 60

    correspondences = c.list_correspondences()

    assert len(correspondences) > 0
    assert all(
        a.error <= b.error for a, b in zip(correspondences, correspondences[1:])
    )

    res = c.fit()

    assert res.success
    assert res.highest_number_of_inliers >= 50
    assert res.number_of_possible_correlations == len(correspondences)

    wavelengths = c.pixel_to_wavelength()
    truth = np.polynomial.polynomial.polyval(np.arange(num_pix), best_p)

    assert len(wavelengths) == num_pix
    assert np.max(np.abs(wavelengths - truth)) < 0.05


def test_calibration_is_repeatable():
    first = Calibrator(measured_spectrum, reference_spectrum, config=config)
    second = Calibrator(measured_spectrum, reference_spectrum, config=config)

    res_1 = first.fit()
    res_2 = second.fit()

    assert np.array_equal(
        res_1.best_fitting_model_coefficients,
        res_2.best_fitting_model_coefficients,
    )
    assert np.array_equal(
        res_1.correspondence_is_inlier, res_2.correspondence_is_inlier
    )


def test_explicit_initial_calibration():
    c = Calibrator(
        measured_spectrum,
        Spectrum(reference_spectrum.intensity),
        config=config,
        initial_calibration=initial.wavelength,
    )

    res = c.fit(rng=7)

    assert res.success
    truth = np.polynomial.polynomial.polyval(np.arange(num_pix), best_p)
    assert np.max(np.abs(c.pixel_to_wavelength() - truth)) < 0.05


def test_seed_is_passed_to_the_solver():
    c = Calibrator(measured_spectrum, reference_spectrum, config=config)

    assert c.config.ransac.seed == 42
    assert c.solver.settings.seed == 42

    with pytest.raises(Exception):
        c.config.seed = 1


def test_save_and_reload_config(tmp_path):
    c = Calibrator(measured_spectrum, reference_spectrum, config=config)

    filename = str(tmp_path / "output" / "solcal.yaml")
    c.save_config(filename)

    reloaded = Calibrator(measured_spectrum, reference_spectrum, config=filename)

    assert reloaded.config == c.config
    assert reloaded.config.ransac.seed == 42
    assert reloaded.config.ransac.model_polynomial_order == 2


def test_given_keypoints_are_used():
    keypoints = Calibrator(
        measured_spectrum, reference_spectrum, config=config
    ).measured_keypoints[:10]

    c = Calibrator(
        measured_spectrum,
        reference_spectrum,
        config=config,
        measured_keypoints=keypoints,
    )

    assert c.measured_keypoints == keypoints
    assert all(
        correspondence.measured_idx < 10
        for correspondence in c.list_correspondences()
    )


def test_both_keypoint_types_are_sorted():
    c = Calibrator(
        measured_spectrum,
        reference_spectrum,
        config=dict(config, keypoints={"type": "both"}),
    )

    pixels = [point.pixel for point in c.measured_keypoints]

    assert pixels == sorted(pixels)
    assert len(c.measured_keypoints) > 60


def test_no_initial_calibration():
    with pytest.raises(ValueError):
        Calibrator(
            measured_spectrum,
            Spectrum(reference_spectrum.intensity),
            config=config,
        )


def test_invalid_config():
    with pytest.raises(ValueError):
        Calibrator(
            measured_spectrum,
            reference_spectrum,
            config={"ransac": {"model_polynomial_order": 3, "sample_size": 2}},
        )


def test_pixel_to_wavelength_before_fit():
    c = Calibrator(measured_spectrum, reference_spectrum, config=config)

    with pytest.raises(RuntimeError):
        c.pixel_to_wavelength()


def test_no_correspondences():
    c = Calibrator(
        measured_spectrum,
        reference_spectrum,
        config=config,
        measured_keypoints=[],
    )

    res = c.fit()

    assert not res.success
    assert res.number_of_possible_correlations == 0

    with pytest.raises(RuntimeError):
        c.pixel_to_wavelength()
