"""
CDF-based monotone warp along a single axis.

A density histogram is integrated into a cumulative distribution that maps
normalized input position to normalized output position: dense bins get a
larger share of the output range, sparse bins are compressed. The inverse
is precomputed into a uniform lookup table so that back-mapping is a single
linear interpolation.

Workflow:
1. Cumulative sum of the histogram, divided by its total (identity CDF if the
   total is not positive).
2. For each of lut_size evenly spaced targets in [0, 1], binary-search the
   bracketing CDF bin and interpolate within it.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import structlog

from .errors import ConfigurationError, warn_degenerate

logger = structlog.get_logger()

ArrayLike = Union[float, np.ndarray]

# Bins narrower than this in CDF space are treated as flat during inversion
_FLAT_BIN_EPSILON = 1e-8


@dataclass(frozen=True)
class WarpTable:
    """Forward CDF (bins + 1 entries) and inverse LUT for one axis."""

    cdf: np.ndarray
    inverse_lut: np.ndarray
    degenerate: bool = False

    @property
    def bins(self) -> int:
        return len(self.cdf) - 1

    @property
    def lut_size(self) -> int:
        return len(self.inverse_lut)


def build_cdf(histogram: np.ndarray) -> Optional[np.ndarray]:
    """
    Normalized CDF of a histogram, length n + 1, spanning [0, 1].

    Returns None when the histogram total is not positive so the caller can
    fall back to the identity.
    """
    n = len(histogram)
    cdf = np.zeros(n + 1, dtype=np.float64)
    np.cumsum(histogram, out=cdf[1:])
    total = cdf[n]
    if not np.isfinite(total) or total <= 0.0:
        return None
    cdf /= total
    # Pin the endpoint against cumulative rounding
    cdf[n] = 1.0
    return cdf


def identity_cdf(bins: int) -> np.ndarray:
    return np.arange(bins + 1, dtype=np.float64) / bins


def build_inverse_lut(cdf: np.ndarray, lut_size: int) -> np.ndarray:
    """
    Inverse lookup table for a non-decreasing CDF.

    For every target t = i / (lut_size - 1) the bracketing bin is the first
    bin whose upper CDF edge reaches t (a binary search over cdf[1:]); the
    result is (bin + frac) / bins where frac is t's position inside the bin.
    """
    bins = len(cdf) - 1
    targets = np.arange(lut_size, dtype=np.float64) / (lut_size - 1)

    lo = np.searchsorted(cdf[1:], targets, side="left")
    bin_start = cdf[np.minimum(lo, bins)]
    bin_end = cdf[np.minimum(lo + 1, bins)]
    width = bin_end - bin_start

    frac = np.zeros_like(targets)
    wide = width > _FLAT_BIN_EPSILON
    frac[wide] = np.clip((targets[wide] - bin_start[wide]) / width[wide], 0.0, 1.0)

    return (lo + frac) / bins


class CdfWarp:
    """
    Monotone, invertible warp from a 1-D density histogram.

    Both directions are non-decreasing maps of [0, 1] onto [0, 1]. The tables
    are built once and never mutated afterwards.
    """

    def __init__(self, table: WarpTable):
        self.table = table
        self._cdf = table.cdf.astype(np.float64)
        self._inv = table.inverse_lut.astype(np.float64)

    @staticmethod
    def build(histogram: Sequence[float], lut_size: int, axis: Optional[str] = None) -> WarpTable:
        """
        Build the forward CDF and inverse LUT for a histogram.

        Args:
            histogram: Non-negative bin weights, at least one bin
            lut_size: Number of inverse lookup entries (>= 2)
            axis: Axis label used only for logging

        Returns:
            WarpTable with float32 tables
        """
        histogram = np.asarray(histogram, dtype=np.float64).ravel()
        if len(histogram) < 1:
            raise ConfigurationError("Warp histogram needs at least one bin")
        if lut_size < 2:
            raise ConfigurationError(f"Inverse LUT size must be at least 2, got {lut_size}")

        cdf = build_cdf(histogram)
        degenerate = cdf is None
        if degenerate:
            warn_degenerate(
                "Zero-density histogram, falling back to identity warp",
                axis=axis,
                bins=len(histogram),
            )
            cdf = identity_cdf(len(histogram))

        inverse = build_inverse_lut(cdf, lut_size)
        return WarpTable(
            cdf=cdf.astype(np.float32),
            inverse_lut=inverse.astype(np.float32),
            degenerate=degenerate,
        )

    @classmethod
    def from_histogram(
        cls, histogram: Sequence[float], lut_size: int, axis: Optional[str] = None
    ) -> "CdfWarp":
        return cls(cls.build(histogram, lut_size, axis=axis))

    @classmethod
    def identity(cls, bins: int, lut_size: int) -> "CdfWarp":
        """Exact linear warp: forward(t) == inverse(t) == t."""
        if bins < 1:
            raise ConfigurationError(f"Identity warp needs at least one bin, got {bins}")
        if lut_size < 2:
            raise ConfigurationError(f"Inverse LUT size must be at least 2, got {lut_size}")
        cdf = identity_cdf(bins)
        inverse = np.arange(lut_size, dtype=np.float64) / (lut_size - 1)
        return cls(WarpTable(cdf=cdf.astype(np.float32), inverse_lut=inverse.astype(np.float32)))

    @property
    def bins(self) -> int:
        return len(self._cdf) - 1

    def forward(self, t: ArrayLike) -> ArrayLike:
        """Warp normalized position(s) through the CDF."""
        scalar = np.ndim(t) == 0
        t = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0)
        bins = self.bins
        pos = t * bins
        idx = np.clip(np.floor(pos).astype(np.intp), 0, bins - 1)
        frac = pos - idx
        lo = self._cdf[idx]
        result = lo + (self._cdf[idx + 1] - lo) * frac
        return float(result) if scalar else result

    def inverse(self, t: ArrayLike) -> ArrayLike:
        """Map warped position(s) back to normalized input space via the LUT."""
        scalar = np.ndim(t) == 0
        t = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0)
        last = len(self._inv) - 1
        pos = t * last
        idx = np.clip(np.floor(pos).astype(np.intp), 0, last - 1)
        frac = pos - idx
        lo = self._inv[idx]
        result = lo + (self._inv[idx + 1] - lo) * frac
        return float(result) if scalar else result
