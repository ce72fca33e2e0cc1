import numpy as np

from solcal.calibrator import Calibrator
from solcal.fraunhofer import SolarAtlasFraunhoferGenerator
from solcal.spectrum import Spectrum

rng = np.random.default_rng(0)

# Build a toy solar atlas at 2 pm sampling between 300 and 350 nm. A real one
# (e.g. Kurucz or the TSIS-1 hybrid solar reference spectrum) would be read
# from file here, in vacuum wavelengths.
atlas_wavelength = np.arange(300.0, 350.0, 0.002)
atlas_intensity = np.ones_like(atlas_wavelength)

for line in rng.uniform(301.0, 349.0, size=150):
    depth = rng.uniform(0.1, 0.9)
    width = rng.uniform(0.005, 0.02)
    atlas_intensity *= 1.0 - depth * np.exp(
        -((atlas_wavelength - line) ** 2) / (2 * width**2)
    )

generator = SolarAtlasFraunhoferGenerator(
    atlas_wavelength, atlas_intensity, vacuum=True
)

# Gaussian instrument line shape with a fwhm of 0.5 nm
ils_wavelength = np.linspace(-1.0, 1.0, 201)
instrument_line_shape = Spectrum(
    np.exp(-(ils_wavelength**2) / (2 * 0.21**2)), wavelength=ils_wavelength
)

# The "measured" spectrum, from a slightly curved calibration, with noise
pixels = np.arange(2048, dtype=float)
true_calibration = 302.0 + 0.022 * pixels + 2.0e-7 * pixels**2
measured = generator.get_fraunhofer_spectrum(
    true_calibration, instrument_line_shape
)
measured_spectrum = Spectrum(
    measured.intensity + rng.normal(0.0, 0.002, size=len(pixels))
)

# The calibration from the lab, which has drifted by about 0.3 nm
initial_calibration = 302.3 + 0.022 * pixels + 2.0e-7 * pixels**2
reference_spectrum = generator.get_fraunhofer_spectrum(
    initial_calibration, instrument_line_shape
)

c = Calibrator(
    measured_spectrum,
    reference_spectrum,
    config={
        "seed": 2022,
        "keypoints": {"minimum_prominence": 0.02},
        "correspondence": {
            "measured_pixel_start": 50,
            "measured_pixel_stop": 2000,
            "percentage_of_correspondences_to_select": 0.5,
        },
        "ransac": {
            "model_polynomial_order": 2,
            "sample_size": 3,
            "number_of_ransac_iterations": 20000,
            "maximum_pixel_distance_for_possible_correspondence": 30,
            "progress": True,
        },
    },
)

result = c.fit()

print(f"Inliers: {result.highest_number_of_inliers}")
print(f"Coefficients: {result.best_fitting_model_coefficients}")

if result.success:
    residual = c.pixel_to_wavelength() - true_calibration
    print(f"Maximum calibration error: {np.max(np.abs(residual)):.4f} nm")
