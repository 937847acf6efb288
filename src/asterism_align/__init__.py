"""Asterism Align: register star fields by matching triangle asterisms.

This package finds the similarity transform (scale, rotation, translation)
between two sets of points, or two star-field images, without knowing which
point corresponds to which.
"""

from asterism_align.alignment import CoordinateList, ImageData, find_transform
from asterism_align.config import MatchingParameters
from asterism_align.exceptions import (
    AlignmentError,
    InputTypeError,
    InsufficientPointsError,
    MatchExhaustionError,
)
from asterism_align.transform import estimate_transform, matrix_transform

__version__ = "0.1.0"
__author__ = "Maximilian Sperlich"

__all__ = [
    "AlignmentError",
    "CoordinateList",
    "ImageData",
    "InputTypeError",
    "InsufficientPointsError",
    "MatchExhaustionError",
    "MatchingParameters",
    "estimate_transform",
    "find_transform",
    "matrix_transform",
]
