"""
Calibration module.

Gradient-based fitting of leaf values against a scalar expression.
"""

from .leaf_calibrator import (
    LeafCalibrator,
    CalibrationConfig
)

__all__ = [
    'LeafCalibrator',
    'CalibrationConfig',
]
