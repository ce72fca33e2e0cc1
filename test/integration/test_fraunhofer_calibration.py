from functools import partialmethod

import numpy as np

# Suppress tqdm output
from tqdm import tqdm

from solcal.calibrator import Calibrator
from solcal.fraunhofer import SolarAtlasFraunhoferGenerator
from solcal.spectrum import Spectrum

tqdm.__init__ = partialmethod(tqdm.__init__, disable=True)

rng = np.random.default_rng(7)

# A high resolution "solar atlas" with 40 absorption lines
atlas_wavelength = np.linspace(400.0, 440.0, 20001)
line_wavelengths = np.linspace(403.0, 431.0, 40) + rng.uniform(
    -0.15, 0.15, size=40
)
line_depths = rng.uniform(0.3, 0.9, size=40)

atlas_intensity = np.ones_like(atlas_wavelength)
for line, depth in zip(line_wavelengths, line_depths):
    atlas_intensity *= 1.0 - depth * np.exp(
        -((atlas_wavelength - line) ** 2) / (2 * 0.01**2)
    )

ils_wavelength = np.linspace(-0.3, 0.3, 121)
instrument_line_shape = Spectrum(
    np.exp(-(ils_wavelength**2) / (2 * 0.03**2)), wavelength=ils_wavelength
)

generator = SolarAtlasFraunhoferGenerator(atlas_wavelength, atlas_intensity)

# The spectrometer: 2000 pixels at 0.015 nm per pixel. Our initial guess is
# off by 0.1 nm.
num_pix = 2000
true_calibration = 402.0 + 0.015 * np.arange(num_pix)
initial_calibration = true_calibration + 0.1

measured_spectrum = Spectrum(
    generator.get_fraunhofer_spectrum(
        true_calibration, instrument_line_shape
    ).intensity
)
reference_spectrum = generator.get_fraunhofer_spectrum(
    initial_calibration, instrument_line_shape
)


def test_fraunhofer_calibration():
    c = Calibrator(
        measured_spectrum,
        reference_spectrum,
        config={
            "seed": 1,
            "keypoints": {"minimum_prominence": 0.05},
            "correspondence": {
                "measured_pixel_start": 0,
                "measured_pixel_stop": num_pix,
                "percentage_of_correspondences_to_select": 1.0,
            },
            "ransac": {
                "model_polynomial_order": 1,
                "sample_size": 2,
                "number_of_ransac_iterations": 500,
                "inlier_limit_in_wavelength": 0.05,
                "maximum_pixel_distance_for_possible_correspondence": 30,
            },
        },
    )

    assert len(c.measured_keypoints) == 40

    res = c.fit()

    assert res.success
    assert res.highest_number_of_inliers >= 30
    assert np.max(np.abs(c.pixel_to_wavelength() - true_calibration)) < 0.005
