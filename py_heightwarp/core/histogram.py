"""
Per-axis density histograms for warp-table construction.

Each density sample is projected onto the longitude and latitude axes
independently. Co-occurrence across axes is discarded on purpose so that
each axis can be warped by its own 1-D CDF.
"""

from typing import Optional, Sequence, Tuple

import numpy as np
import structlog

from .errors import ConfigurationError

logger = structlog.get_logger()


class HistogramBuilder:
    """Bins 2-D point density into one histogram per axis."""

    def __init__(self, extent, bins_x: int, bins_y: int):
        """
        Args:
            extent: GeoExtent the samples are normalized against
            bins_x: Number of longitude bins
            bins_y: Number of latitude bins
        """
        if bins_x < 1 or bins_y < 1:
            raise ConfigurationError(
                f"Histogram needs at least one bin per axis, got {bins_x}x{bins_y}"
            )
        self.extent = extent
        self.bins_x = bins_x
        self.bins_y = bins_y

    def build(
        self,
        lons: Sequence[float],
        lats: Sequence[float],
        weights: Optional[Sequence[float]] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Accumulate sample weights into per-axis bins.

        Positions outside the extent are clamped into the edge bins.

        Returns:
            Tuple of (hist_x, hist_y) as float64 arrays
        """
        lons = np.asarray(lons, dtype=np.float64).ravel()
        lats = np.asarray(lats, dtype=np.float64).ravel()
        if lons.shape != lats.shape:
            raise ConfigurationError("Longitude and latitude arrays differ in length")

        if weights is None:
            weights = np.ones_like(lons)
        else:
            weights = np.asarray(weights, dtype=np.float64).ravel()
            if weights.shape != lons.shape:
                raise ConfigurationError("Density weights differ in length from positions")

        nx = np.clip((lons - self.extent.min_lon) / self.extent.lon_span, 0.0, 1.0)
        ny = np.clip((lats - self.extent.min_lat) / self.extent.lat_span, 0.0, 1.0)

        ix = np.clip(np.floor(nx * self.bins_x).astype(np.intp), 0, self.bins_x - 1)
        iy = np.clip(np.floor(ny * self.bins_y).astype(np.intp), 0, self.bins_y - 1)

        hist_x = np.bincount(ix, weights=weights, minlength=self.bins_x).astype(np.float64)
        hist_y = np.bincount(iy, weights=weights, minlength=self.bins_y).astype(np.float64)

        logger.debug(
            "Density histograms built",
            samples=len(lons),
            bins_x=self.bins_x,
            bins_y=self.bins_y,
        )
        return hist_x, hist_y
