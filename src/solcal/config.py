#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Structured configuration for the calibration pipeline.

"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from omegaconf import DictConfig, OmegaConf


@dataclass
class KeypointConfig:
    type: str = "valley"
    minimum_intensity: float = 0.0
    minimum_prominence: Optional[float] = None


@dataclass
class CorrespondenceSelectionConfig:
    # Half-width, in pixels, of the window used to gauge the error in a
    # correspondence. 20 is about 2x the average keypoint distance, which
    # covers the full width of a valley / peak.
    pixel_region_size: int = 20
    percentage_of_correspondences_to_select: float = 0.2
    # Spectra often lose signal towards their edges
    measured_pixel_start: int = 650
    measured_pixel_stop: int = 2100
    unique_measured_keypoints: bool = False


@dataclass
class RansacConfig:
    model_polynomial_order: int = 3
    number_of_ransac_iterations: int = 500000
    # Should really be model_polynomial_order + 1
    sample_size: int = 4
    # nm
    inlier_limit_in_wavelength: float = 0.2
    # Maximum pixel error in the initial calibration
    maximum_pixel_distance_for_possible_correspondence: int = 150
    refine: bool = True
    refine_iterations: int = 1
    refine_loss: str = "linear"
    sampler: str = "uniform"
    seed: Optional[int] = None
    progress: bool = False


@dataclass
class CalibratorConfig:

    seed: Optional[int] = None
    logger_name: str = "solcal"
    log_level: str = "info"

    keypoints: KeypointConfig = field(default_factory=KeypointConfig)
    correspondence: CorrespondenceSelectionConfig = field(
        default_factory=CorrespondenceSelectionConfig
    )
    ransac: RansacConfig = field(default_factory=RansacConfig)


def load_config(schema, config=None) -> DictConfig:
    """
    Merge a user supplied configuration onto the structured default of
    ``schema``.

    Parameters
    ----------
    schema: dataclass type
        One of the config dataclasses in this module
    config: str, Path, dict, list, dataclass or DictConfig
        Path to a YAML file, or an override in any form omegaconf accepts

    Returns
    -------
    config: DictConfig
        The merged, type-checked configuration

    """

    merged = OmegaConf.structured(schema)

    if config is None:
        return merged

    if isinstance(config, (str, Path)):
        user_config = OmegaConf.load(config)
    elif isinstance(config, (list, dict)):
        user_config = OmegaConf.create(config)
    elif isinstance(config, DictConfig) or isinstance(config, schema):
        user_config = config
    else:
        raise NotImplementedError(
            f"This config format {type(config)} is not supported yet."
        )

    return OmegaConf.merge(merged, user_config)


def check_correspondence_config(
    config: Union[CorrespondenceSelectionConfig, DictConfig]
):
    """
    Raise ValueError if the correspondence selection settings are unusable.

    """

    if config.measured_pixel_start >= config.measured_pixel_stop:
        raise ValueError(
            f"measured_pixel_start ({config.measured_pixel_start}) must be "
            f"smaller than measured_pixel_stop ({config.measured_pixel_stop})"
        )

    if config.pixel_region_size < 1:
        raise ValueError(
            f"pixel_region_size must be positive, got {config.pixel_region_size}"
        )

    fraction = config.percentage_of_correspondences_to_select
    if not 0.0 < fraction <= 1.0:
        raise ValueError(
            "percentage_of_correspondences_to_select must be in (0, 1], "
            f"got {fraction}"
        )


def check_ransac_config(config: Union[RansacConfig, DictConfig]):
    """
    Raise ValueError if the RANSAC settings are unusable.

    """

    if config.model_polynomial_order < 0:
        raise ValueError(
            "model_polynomial_order must be non-negative, got "
            f"{config.model_polynomial_order}"
        )

    if config.sample_size < config.model_polynomial_order + 1:
        raise ValueError(
            f"sample_size ({config.sample_size}) must be at least "
            f"model_polynomial_order + 1 ({config.model_polynomial_order + 1})"
        )

    if config.number_of_ransac_iterations < 0:
        raise ValueError(
            "number_of_ransac_iterations must be non-negative, got "
            f"{config.number_of_ransac_iterations}"
        )

    if config.inlier_limit_in_wavelength <= 0:
        raise ValueError(
            "inlier_limit_in_wavelength must be positive, got "
            f"{config.inlier_limit_in_wavelength}"
        )

    if config.maximum_pixel_distance_for_possible_correspondence <= 0:
        raise ValueError(
            "maximum_pixel_distance_for_possible_correspondence must be "
            "positive, got "
            f"{config.maximum_pixel_distance_for_possible_correspondence}"
        )

    if config.refine_iterations < 1:
        raise ValueError(
            f"refine_iterations must be at least 1, got {config.refine_iterations}"
        )

    if config.refine_loss not in ["linear", "huber"]:
        raise ValueError(
            f"Unknown refine_loss {config.refine_loss}, please choose from "
            "linear or huber."
        )

    if config.sampler not in ["uniform", "weighted"]:
        raise ValueError(
            f"Unknown sampler {config.sampler}, please choose from uniform "
            "or weighted."
        )


def check_keypoint_config(config: Union[KeypointConfig, DictConfig]):
    """
    Raise ValueError if the keypoint detection settings are unusable.

    """

    if config.type not in ["peak", "valley", "both"]:
        raise ValueError(
            f"Unknown keypoint type {config.type}, please choose from peak, "
            "valley or both."
        )
