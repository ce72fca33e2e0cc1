#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Initialise solcal.

"""

from importlib import metadata

try:
    __version__ = metadata.version(__name__)
except metadata.PackageNotFoundError as e:
    raise ImportError(
        f"solcal is not setup or installed properly. {e}."
    ) from e

from . import (
    calibrator,
    config,
    correspondence,
    fraunhofer,
    keypoints,
    models,
    ransac,
    sampler,
    spectrum,
    synthetic,
    util,
)

__all__ = [
    "calibrator",
    "config",
    "correspondence",
    "fraunhofer",
    "keypoints",
    "models",
    "ransac",
    "sampler",
    "spectrum",
    "synthetic",
    "util",
]
