"""
Separable Gaussian smoothing for 1-D histograms and 2-D grids.

Both smoothers share one kernel: radius = ceil(3 * sigma), weights
exp(-k^2 / (2 sigma^2)) normalized to sum to 1, and clamped edges
(samples beyond the border repeat the border value).
"""

import math

import numpy as np
from scipy.ndimage import correlate1d

from .errors import ConfigurationError


def gaussian_kernel(sigma: float) -> np.ndarray:
    """Normalized 1-D Gaussian kernel of radius ceil(3 * sigma)."""
    if sigma <= 0:
        raise ConfigurationError(f"Gaussian sigma must be positive, got {sigma}")
    radius = int(math.ceil(sigma * 3.0))
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(offsets * offsets) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


class GaussianSmoother1D:
    """Gaussian blur over a 1-D float array with clamped edges."""

    def __init__(self, sigma: float):
        self.sigma = sigma
        self.kernel = gaussian_kernel(sigma)

    @property
    def radius(self) -> int:
        return len(self.kernel) // 2

    def smooth(self, data: np.ndarray) -> np.ndarray:
        data = np.asarray(data, dtype=np.float64)
        return correlate1d(data, self.kernel, mode="nearest")


class GaussianSmoother2D:
    """Separable Gaussian blur over a 2-D grid: a horizontal pass, then a vertical pass."""

    def __init__(self, sigma: float):
        self.sigma = sigma
        self.kernel = gaussian_kernel(sigma)

    @property
    def radius(self) -> int:
        return len(self.kernel) // 2

    def smooth(self, data: np.ndarray) -> np.ndarray:
        data = np.asarray(data, dtype=np.float64)
        horizontal = correlate1d(data, self.kernel, axis=1, mode="nearest")
        return correlate1d(horizontal, self.kernel, axis=0, mode="nearest")
