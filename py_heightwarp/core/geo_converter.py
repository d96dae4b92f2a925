"""
Geographic <-> world coordinate conversion with optional adaptive warping.

Adaptive (urban-preserving) mode builds one CDF warp per axis from
building-density histograms: dense areas keep close to their original
proportions while empty areas are compressed. Uniform mode is a plain
proportional mapping of the extent onto target_world_width x
target_world_length.

Adaptive workflow:
1. Bin density samples into per-axis histograms.
2. Raise each bin to density_exponent to amplify contrast.
3. Optionally Gaussian-smooth the histograms.
4. Floor each bin at max(h) * min_density_floor so no region collapses.
5. Build the forward CDF and the inverse LUT for each axis.

Conversions are strictly planar. Height is sampled separately.
"""

import math
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import structlog

from .cdf_warp import CdfWarp
from .errors import ConfigurationError, warn_degenerate
from .histogram import HistogramBuilder
from .raster import RasterGrid
from .smoothing import GaussianSmoother1D

logger = structlog.get_logger()

ArrayLike = Union[float, np.ndarray]

# Added to every bin before exponentiation so that 0 ** exponent stays stable
DENSITY_EPSILON = 0.001

# Histogram smoothing is skipped for sigmas at or below this value
MIN_SMOOTHING_SIGMA = 0.01

DEFAULT_LUT_SIZE = 2048


class GeoPoint(NamedTuple):
    """Geographic coordinate in degrees."""
    lon: float
    lat: float


@dataclass(frozen=True)
class GeoExtent:
    """Axis-aligned lon/lat bounding box with non-zero spans."""

    min_lon: float
    max_lon: float
    min_lat: float
    max_lat: float

    def __post_init__(self):
        bounds = (self.min_lon, self.max_lon, self.min_lat, self.max_lat)
        if not all(math.isfinite(b) for b in bounds):
            raise ConfigurationError(f"Extent bounds must be finite, got {bounds}")
        if self.max_lon <= self.min_lon:
            raise ConfigurationError(
                f"Extent longitude span must be positive ({self.min_lon} .. {self.max_lon})"
            )
        if self.max_lat <= self.min_lat:
            raise ConfigurationError(
                f"Extent latitude span must be positive ({self.min_lat} .. {self.max_lat})"
            )

    @property
    def lon_span(self) -> float:
        return self.max_lon - self.min_lon

    @property
    def lat_span(self) -> float:
        return self.max_lat - self.min_lat

    def normalize(self, lon: ArrayLike, lat: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        """Map lon/lat into [0, 1] relative to this extent (unclamped)."""
        return (lon - self.min_lon) / self.lon_span, (lat - self.min_lat) / self.lat_span

    def denormalize(self, nx: ArrayLike, ny: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        return self.min_lon + nx * self.lon_span, self.min_lat + ny * self.lat_span

    def contains(self, lon: float, lat: float) -> bool:
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat


class GeoConverter:
    """
    Converts geographic positions to world positions through a pair of warps.

    The converter owns one CdfWarp per axis (x = longitude, z = latitude).
    It is built once per generation run; re-initialize it before using it
    against a different density dataset.
    """

    def __init__(
        self,
        extent: GeoExtent,
        world_width: float,
        world_length: float,
        heightmap_extent: Optional[GeoExtent] = None,
    ):
        """
        Args:
            extent: Feature-data extent that geo positions are normalized against
            world_width: Output size along x (east-west)
            world_length: Output size along z (north-south)
            heightmap_extent: Geographic bounds of the source heightmap; defaults to extent
        """
        if extent is None:
            raise ConfigurationError("GeoConverter requires an extent")
        if not world_width > 0 or not world_length > 0:
            raise ConfigurationError(
                f"World size must be positive, got {world_width}x{world_length}"
            )
        self.extent = extent
        self.heightmap_extent = heightmap_extent or extent
        self.world_width = float(world_width)
        self.world_length = float(world_length)

        self.warp_x: Optional[CdfWarp] = None
        self.warp_z: Optional[CdfWarp] = None
        self.histogram_x: Optional[np.ndarray] = None
        self.histogram_z: Optional[np.ndarray] = None
        self.adaptive = False
        self.warnings: List[str] = []

    @property
    def is_initialized(self) -> bool:
        return self.warp_x is not None and self.warp_z is not None

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize_adaptive(
        self,
        density_samples: Sequence[Tuple[float, float]],
        bins_x: int = 128,
        bins_y: int = 128,
        density_exponent: float = 1.2,
        min_density_floor: float = 0.05,
        smoothing_sigma: float = 5.0,
        lut_size: int = DEFAULT_LUT_SIZE,
        weights: Optional[Sequence[float]] = None,
    ) -> None:
        """
        Build adaptive warp tables from density samples (building centroids).

        Args:
            density_samples: (lon, lat) pairs, e.g. GeoPoint instances
            bins_x: Longitude histogram bins
            bins_y: Latitude histogram bins
            density_exponent: Contrast exponent applied to every bin (> 0)
            min_density_floor: Minimum bin value relative to the maximum, in [0, 1]
            smoothing_sigma: Gaussian sigma in bins; <= 0.01 disables smoothing
            lut_size: Inverse lookup table size
            weights: Optional per-sample weights, default 1
        """
        if not density_exponent > 0:
            raise ConfigurationError(f"density_exponent must be > 0, got {density_exponent}")
        if not 0.0 <= min_density_floor <= 1.0:
            raise ConfigurationError(
                f"min_density_floor must be within [0, 1], got {min_density_floor}"
            )
        if smoothing_sigma < 0:
            raise ConfigurationError(f"smoothing_sigma must be >= 0, got {smoothing_sigma}")

        self.warnings = []
        points = np.asarray(density_samples, dtype=np.float64).reshape(-1, 2)
        if len(points) == 0:
            self.warnings.append(
                warn_degenerate("No density samples, adaptive warp degenerates to uniform")
            )

        builder = HistogramBuilder(self.extent, bins_x, bins_y)
        hist_x, hist_y = builder.build(points[:, 0], points[:, 1], weights=weights)

        hist_x = self._shape_histogram(hist_x, density_exponent, smoothing_sigma, min_density_floor)
        hist_y = self._shape_histogram(hist_y, density_exponent, smoothing_sigma, min_density_floor)
        self.histogram_x, self.histogram_z = hist_x, hist_y

        self.warp_x = self._build_warp(hist_x, lut_size, "x")
        self.warp_z = self._build_warp(hist_y, lut_size, "z")
        self.adaptive = True

        logger.info(
            "Adaptive warp tables built",
            bins_x=bins_x,
            bins_y=bins_y,
            lut_size=lut_size,
            samples=len(points),
        )

    def initialize_uniform(
        self, bins_x: int = 128, bins_y: int = 128, lut_size: int = DEFAULT_LUT_SIZE
    ) -> None:
        """Identity warps on both axes: proportional, non-adaptive scaling."""
        self.warnings = []
        self.histogram_x = self.histogram_z = None
        self.warp_x = CdfWarp.identity(bins_x, lut_size)
        self.warp_z = CdfWarp.identity(bins_y, lut_size)
        self.adaptive = False
        logger.info("Uniform warp tables built", bins_x=bins_x, bins_y=bins_y, lut_size=lut_size)

    @staticmethod
    def _shape_histogram(
        hist: np.ndarray, exponent: float, sigma: float, floor_fraction: float
    ) -> np.ndarray:
        shaped = np.power(hist + DENSITY_EPSILON, exponent)
        if sigma > MIN_SMOOTHING_SIGMA:
            shaped = GaussianSmoother1D(sigma).smooth(shaped)
        # Floor keeps every bin strictly positive, so the CDF has no flat runs
        return np.maximum(shaped, shaped.max() * floor_fraction)

    def _build_warp(self, hist: np.ndarray, lut_size: int, axis: str) -> CdfWarp:
        table = CdfWarp.build(hist, lut_size, axis=axis)
        if table.degenerate:
            self.warnings.append(f"Zero-density histogram on axis {axis}, identity warp used")
        return CdfWarp(table)

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise ConfigurationError(
                "GeoConverter not initialized; call initialize_adaptive or initialize_uniform"
            )

    # ------------------------------------------------------------------
    # Forward: geo -> world
    # ------------------------------------------------------------------

    def geo_to_world_norm(self, lon: ArrayLike, lat: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        """Warped position in normalized [0, 1] world space."""
        self._require_initialized()
        nx, ny = self.extent.normalize(lon, lat)
        return self.warp_x.forward(nx), self.warp_z.forward(ny)

    def geo_to_world(self, lon: ArrayLike, lat: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        """
        Convert lon/lat to world (x, z). Height is not part of this mapping.

        Returns:
            Tuple of (world_x, world_z) in world units
        """
        wx, wz = self.geo_to_world_norm(lon, lat)
        return wx * self.world_width, wz * self.world_length

    # ------------------------------------------------------------------
    # Inverse: world -> geo
    # ------------------------------------------------------------------

    def world_norm_to_geo_norm(
        self, world_norm_x: ArrayLike, world_norm_y: ArrayLike
    ) -> Tuple[ArrayLike, ArrayLike]:
        """Normalized world position back to normalized geo position."""
        self._require_initialized()
        return self.warp_x.inverse(world_norm_x), self.warp_z.inverse(world_norm_y)

    def world_norm_to_geo(
        self, world_norm_x: ArrayLike, world_norm_y: ArrayLike
    ) -> Tuple[ArrayLike, ArrayLike]:
        """Normalized world position back to absolute (lon, lat)."""
        gx, gy = self.world_norm_to_geo_norm(world_norm_x, world_norm_y)
        return self.extent.denormalize(gx, gy)

    # ------------------------------------------------------------------
    # Heightmap sampling
    # ------------------------------------------------------------------

    def sample_heightmap_bilinear(
        self, grid: RasterGrid, geo_norm_x: ArrayLike, geo_norm_y: ArrayLike
    ) -> ArrayLike:
        """
        Sample the heightmap at geo-normalized position(s).

        The position is re-expressed in the heightmap's own bounds, which may
        differ from the feature extent, then bilinearly interpolated. Grid row 0
        corresponds to heightmap_extent.min_lat.
        """
        lon, lat = self.extent.denormalize(geo_norm_x, geo_norm_y)
        u, v = self.heightmap_extent.normalize(lon, lat)
        return grid.sample(u, v)
