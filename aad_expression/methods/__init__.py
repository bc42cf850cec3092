"""
Methods package for gradient verification.

Provides central finite differences (bumping) as a reference for the
gradients computed by backpropagation.
"""

from .bumping import BumpConfig, central_difference, check_gradients

__all__ = [
    'BumpConfig',
    'central_difference',
    'check_gradients',
]
