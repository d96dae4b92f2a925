"""
Rasterization of sparse elevation samples into value and confidence grids.

Samples are forward-warped into normalized world space and scattered into a
regular grid with inverse-distance weights w = 1 / (1 + d^2), d being the
Euclidean distance in cells. Per cell the weighted mean gives the value and
the accumulated weight gives the confidence, saturating at three samples'
worth of weight.

Normalization: value = clamp01(elevation / normalization_divisor). The
divisor should be the same scalar the caller later multiplies the final
height grid by (the terrain's maximum height) so that metres survive the
round trip. Elevations above the divisor are clamped to 1.

Complexity: O(N x R^2) for the scatter, O(G^2 x F^2) for dilation where
G is the grid resolution and F the falloff radius.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence, Tuple

import numpy as np
import structlog
from numpy.lib.stride_tricks import sliding_window_view

from .errors import ConfigurationError, warn_degenerate
from .geo_converter import GeoConverter
from .progress import RunMonitor
from .raster import RasterGrid
from .smoothing import GaussianSmoother2D

logger = structlog.get_logger()

# Accumulated IDW weight at which a cell reaches full confidence
CONFIDENCE_SATURATION = 3.0

# Cells whose accumulated weight is at or below this hold no data
MIN_CELL_WEIGHT = 1e-6

# Grid smoothing is skipped for sigmas at or below this value
MIN_GRID_SMOOTHING_SIGMA = 0.1

# Confidence above which a cell counts towards coverage statistics
COVERAGE_THRESHOLD = 0.01

# Samples scattered per vectorized batch
_SCATTER_BATCH = 4096


class ElevationSample(NamedTuple):
    """Known ground elevation in metres at a geographic position."""
    lon: float
    lat: float
    elevation: float


@dataclass
class ElevationGrids:
    """Value and confidence grids over normalized world space."""

    values: RasterGrid
    confidence: RasterGrid
    sample_count: int = 0

    @property
    def filled_cells(self) -> int:
        return int(np.count_nonzero(self.confidence.data > COVERAGE_THRESHOLD))

    @property
    def coverage_percent(self) -> float:
        return 100.0 * self.filled_cells / self.confidence.data.size


def _disc_stencil(radius: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Cell offsets within a Euclidean radius and their squared distances."""
    offsets = np.arange(-radius, radius + 1)
    dy, dx = np.meshgrid(offsets, offsets, indexing="ij")
    dist2 = dx * dx + dy * dy
    inside = dist2 <= radius * radius
    return dx[inside], dy[inside], dist2[inside].astype(np.float64)


class ElevationRasterizer:
    """Builds IDW elevation and confidence grids in warped output space."""

    def __init__(
        self,
        converter: GeoConverter,
        grid_resolution: int = 256,
        search_radius_cells: int = 8,
        normalization_divisor: float = 450.0,
    ):
        """
        Args:
            converter: Initialized converter providing the forward warp
            grid_resolution: Cells per side of both grids (> 1)
            search_radius_cells: IDW scatter radius; values below 1 are raised to 1
            normalization_divisor: Metres mapped to 1.0, normally the terrain max height
        """
        if converter is None or not converter.is_initialized:
            raise ConfigurationError("ElevationRasterizer requires an initialized GeoConverter")
        if grid_resolution <= 1:
            raise ConfigurationError(
                f"Elevation grid resolution must be > 1, got {grid_resolution}"
            )
        if not normalization_divisor > 0:
            raise ConfigurationError(
                f"Normalization divisor must be positive, got {normalization_divisor}"
            )
        self.converter = converter
        self.grid_resolution = grid_resolution
        self.search_radius = max(int(search_radius_cells), 1)
        self.normalization_divisor = float(normalization_divisor)

    def rasterize(self, samples: Sequence[ElevationSample]) -> Tuple[RasterGrid, RasterGrid]:
        """
        Scatter samples into (value_grid, confidence_grid).

        Cells without any contribution keep value 0 and confidence 0. An
        empty sample list yields two all-zero grids and a warning.
        """
        res = self.grid_resolution
        w_sum = np.zeros(res * res, dtype=np.float64)
        h_sum = np.zeros(res * res, dtype=np.float64)

        data = np.asarray(samples, dtype=np.float64).reshape(-1, 3)
        if len(data) == 0:
            warn_degenerate("No elevation samples, elevation grids are empty")
            return RasterGrid.zeros(res, res), RasterGrid.zeros(res, res)

        elevations = data[:, 2]
        clamped = int(np.count_nonzero(elevations > self.normalization_divisor))
        if clamped:
            logger.warning(
                "Elevation samples exceed normalization divisor and will be clamped",
                clamped_samples=clamped,
                max_elevation=float(elevations.max()),
                norm_divisor=self.normalization_divisor,
            )

        h_norm = np.clip(elevations / self.normalization_divisor, 0.0, 1.0)
        nx, nz = self.converter.geo_to_world_norm(data[:, 0], data[:, 1])
        cx = np.rint(nx * (res - 1)).astype(np.intp)
        cy = np.rint(nz * (res - 1)).astype(np.intp)

        dx, dy, dist2 = _disc_stencil(self.search_radius)
        weights = 1.0 / (1.0 + dist2)

        for start in range(0, len(data), _SCATTER_BATCH):
            stop = start + _SCATTER_BATCH
            ix = cx[start:stop, None] + dx[None, :]
            iy = cy[start:stop, None] + dy[None, :]
            valid = (ix >= 0) & (ix < res) & (iy >= 0) & (iy < res)

            w = np.broadcast_to(weights, ix.shape)[valid]
            h = np.broadcast_to(h_norm[start:stop, None], ix.shape)[valid]
            flat = iy[valid] * res + ix[valid]

            w_sum += np.bincount(flat, weights=w, minlength=res * res)
            h_sum += np.bincount(flat, weights=w * h, minlength=res * res)

        values = np.zeros(res * res, dtype=np.float64)
        confidence = np.zeros(res * res, dtype=np.float64)
        filled = w_sum > MIN_CELL_WEIGHT
        values[filled] = h_sum[filled] / w_sum[filled]
        confidence[filled] = np.clip(w_sum[filled] / CONFIDENCE_SATURATION, 0.0, 1.0)

        return (
            RasterGrid(values.reshape(res, res)),
            RasterGrid(confidence.reshape(res, res)),
        )

    def dilate_confidence(
        self,
        confidence: RasterGrid,
        fall_radius_cells: int,
        monitor: Optional[RunMonitor] = None,
    ) -> RasterGrid:
        """
        Max-filter the confidence grid with linear falloff.

        Each cell becomes the maximum over neighbours within the radius of
        neighbour * (1 - distance / radius). A radius of 0 returns a copy.

        Raises:
            RunCancelled: if the monitor is cancelled between rows
        """
        if fall_radius_cells < 0:
            raise ConfigurationError(f"Falloff radius must be >= 0, got {fall_radius_cells}")
        if fall_radius_cells == 0:
            return confidence.copy()

        r = int(fall_radius_cells)
        size = 2 * r + 1
        offsets = np.arange(-r, r + 1, dtype=np.float64)
        dist = np.hypot(offsets[:, None], offsets[None, :])
        falloff = np.where(dist <= r, 1.0 - dist / r, 0.0)

        src = confidence.data.astype(np.float64)
        rows, cols = src.shape
        padded = np.pad(src, r, mode="constant")
        out = np.empty_like(src)

        for y in range(rows):
            if monitor is not None:
                monitor.checkpoint("dilate_confidence", y, rows)
            windows = sliding_window_view(padded[y:y + size], (size, size))[0]
            out[y] = np.max(windows * falloff, axis=(1, 2))

        return RasterGrid(np.clip(out, 0.0, 1.0))

    @staticmethod
    def smooth(
        values: RasterGrid, confidence: RasterGrid, sigma: float
    ) -> Tuple[RasterGrid, RasterGrid]:
        """Gaussian-smooth both grids; confidence is re-clamped to [0, 1]."""
        smoother = GaussianSmoother2D(sigma)
        smoothed_values = smoother.smooth(values.data)
        smoothed_confidence = np.clip(smoother.smooth(confidence.data), 0.0, 1.0)
        return RasterGrid(smoothed_values), RasterGrid(smoothed_confidence)

    def build(
        self,
        samples: Sequence[ElevationSample],
        fall_radius_cells: int = 16,
        smoothing_sigma: float = 3.0,
        monitor: Optional[RunMonitor] = None,
    ) -> ElevationGrids:
        """Rasterize, dilate and smooth in one go."""
        values, confidence = self.rasterize(samples)

        if fall_radius_cells > 0:
            confidence = self.dilate_confidence(confidence, fall_radius_cells, monitor=monitor)

        if smoothing_sigma > MIN_GRID_SMOOTHING_SIGMA:
            values, confidence = self.smooth(values, confidence, smoothing_sigma)

        grids = ElevationGrids(values=values, confidence=confidence, sample_count=len(samples))
        logger.info(
            "Elevation grid built",
            resolution=self.grid_resolution,
            samples=grids.sample_count,
            filled_cells=grids.filled_cells,
            coverage_percent=round(grids.coverage_percent, 1),
            sigma=smoothing_sigma,
            norm_divisor=self.normalization_divisor,
        )
        return grids
