"""
Dense height-field synthesis in warped output space.

For every output pixel the normalized world position is inverse-warped to
geo space, the source heightmap is sampled there, and the result is blended
with the rasterized elevation grids under the active BlendMode. A sea-level
override forces near-black heightmap pixels to 0 with a linear fade over a
transition band above the threshold.

Height scale chain: the output is normalized to [0, 1]. The caller turns it
into metres by multiplying with one scalar (the terrain max height); nothing
here applies any other multiplier.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
import structlog

from .elevation_rasterizer import ElevationGrids, ElevationRasterizer, ElevationSample
from .errors import ConfigurationError, RunCancelled, warn_degenerate
from .geo_converter import GeoConverter
from .progress import RunMonitor
from .raster import RasterGrid

logger = structlog.get_logger()


class BlendMode(str, Enum):
    """How the heightmap and the elevation grid are combined."""

    HEIGHTMAP_ONLY = "heightmap_only"
    ELEVATION_ONLY = "elevation_only"
    DENSITY_BASED = "density_based"
    UNIFORM_BLEND = "uniform_blend"

    @property
    def uses_elevation(self) -> bool:
        return self is not BlendMode.HEIGHTMAP_ONLY


@dataclass
class SynthesisOptions:
    """Run-scoped synthesis parameters."""

    terrain_resolution: int = 513
    blend_mode: BlendMode = BlendMode.DENSITY_BASED
    elevation_blend_weight: float = 0.5  # only used by UNIFORM_BLEND

    # Elevation grid
    elevation_grid_resolution: int = 256
    elevation_search_radius: int = 8
    density_falloff_radius: int = 16
    elevation_smoothing_sigma: float = 3.0
    normalization_divisor: float = 450.0  # metres mapped to 1.0

    # Sea-level override
    sea_level_override: bool = True
    sea_black_threshold: float = 0.001
    sea_transition_width: float = 0.01

    def validate(self) -> None:
        if self.terrain_resolution <= 1:
            raise ConfigurationError(
                f"terrain_resolution must be > 1, got {self.terrain_resolution}"
            )
        if not isinstance(self.blend_mode, BlendMode):
            raise ConfigurationError(f"Unknown blend mode: {self.blend_mode!r}")
        if not 0.0 <= self.elevation_blend_weight <= 1.0:
            raise ConfigurationError(
                f"elevation_blend_weight must be within [0, 1], got {self.elevation_blend_weight}"
            )
        if self.sea_black_threshold < 0 or self.sea_transition_width < 0:
            raise ConfigurationError("Sea threshold and transition width must be >= 0")
        if self.blend_mode.uses_elevation:
            if self.elevation_grid_resolution <= 1:
                raise ConfigurationError(
                    f"elevation_grid_resolution must be > 1, got {self.elevation_grid_resolution}"
                )
            if self.density_falloff_radius < 0:
                raise ConfigurationError(
                    f"density_falloff_radius must be >= 0, got {self.density_falloff_radius}"
                )
            if not self.normalization_divisor > 0:
                raise ConfigurationError(
                    f"normalization_divisor must be positive, got {self.normalization_divisor}"
                )


@dataclass
class HeightFieldResult:
    """
    Output of one synthesis run.

    heights is always terrain_resolution x terrain_resolution. When the run
    was cancelled, complete is False and only the first rows_completed rows
    hold synthesized values; the remaining rows are zero.
    """

    heights: RasterGrid
    blend_mode: BlendMode
    rows_completed: int
    complete: bool
    warnings: List[str] = field(default_factory=list)
    elevation: Optional[ElevationGrids] = None

    @property
    def cancelled(self) -> bool:
        return not self.complete


def blend_heights(
    h_map: np.ndarray,
    mode: BlendMode,
    elev_value: Optional[np.ndarray] = None,
    elev_confidence: Optional[np.ndarray] = None,
    blend_weight: float = 0.5,
) -> np.ndarray:
    """
    Combine heightmap samples with elevation-grid samples.

    Elevation-dependent modes fall back to the heightmap when no
    elevation samples are supplied.
    """
    if mode is BlendMode.HEIGHTMAP_ONLY or elev_value is None:
        return h_map
    if mode is BlendMode.ELEVATION_ONLY:
        return elev_value
    if mode is BlendMode.DENSITY_BASED:
        t = elev_confidence
    else:
        t = elev_confidence * blend_weight
    return h_map + (elev_value - h_map) * t


def apply_sea_override(
    h_map: np.ndarray, blended: np.ndarray, threshold: float, transition: float
) -> np.ndarray:
    """
    Force sea pixels to 0 and fade the coastal band.

    h_map <= threshold gives 0; inside (threshold, threshold + transition)
    the blended height is scaled linearly from 0 up to its full value.
    """
    out = np.array(blended, dtype=np.float64, copy=True)
    if transition > 0:
        band = (h_map > threshold) & (h_map < threshold + transition)
        out[band] *= (h_map[band] - threshold) / transition
    out[h_map <= threshold] = 0.0
    return out


class HeightFieldSynthesizer:
    """
    Produces the final normalized height grid from a heightmap and sparse elevations.

    The elevation grids are built per run and discarded with the result's
    reference; nothing is cached across runs.
    """

    def __init__(self, converter: GeoConverter, options: Optional[SynthesisOptions] = None):
        self.converter = converter
        self.options = options or SynthesisOptions()

    def _validate(self, heightmap: Optional[RasterGrid]) -> None:
        if self.converter is None:
            raise ConfigurationError("HeightFieldSynthesizer requires a GeoConverter")
        if not self.converter.is_initialized:
            raise ConfigurationError("GeoConverter not initialized")
        if heightmap is None:
            raise ConfigurationError("Heightmap grid is missing")
        if heightmap.rows == 0 or heightmap.cols == 0:
            raise ConfigurationError(f"Heightmap grid is empty: {heightmap.shape}")
        self.options.validate()

    def synthesize(
        self,
        heightmap: RasterGrid,
        elevation_samples: Optional[Sequence[ElevationSample]] = None,
        monitor: Optional[RunMonitor] = None,
    ) -> HeightFieldResult:
        """
        Build the dense height grid.

        Args:
            heightmap: Grayscale source raster with values in [0, 1]
            elevation_samples: Sparse (lon, lat, metres) samples
            monitor: Optional progress/cancellation hook, checked between rows

        Returns:
            HeightFieldResult; heights row 0 corresponds to world_norm_y = 0

        Raises:
            ConfigurationError: before any pixel work if the setup is invalid
        """
        self._validate(heightmap)
        opts = self.options
        res = opts.terrain_resolution
        heights = RasterGrid.zeros(res, res)
        warnings: List[str] = list(self.converter.warnings)

        mode = opts.blend_mode
        samples = list(elevation_samples) if elevation_samples is not None else []
        if mode.uses_elevation and not samples:
            warnings.append(
                warn_degenerate(
                    "No elevation samples, blending falls back to heightmap only",
                    blend_mode=mode.value,
                )
            )

        grids: Optional[ElevationGrids] = None
        try:
            if mode.uses_elevation and samples:
                logger.info("Rasterizing elevation samples into IDW grid", samples=len(samples))
                rasterizer = ElevationRasterizer(
                    self.converter,
                    grid_resolution=opts.elevation_grid_resolution,
                    search_radius_cells=opts.elevation_search_radius,
                    normalization_divisor=opts.normalization_divisor,
                )
                grids = rasterizer.build(
                    samples,
                    fall_radius_cells=opts.density_falloff_radius,
                    smoothing_sigma=opts.elevation_smoothing_sigma,
                    monitor=monitor,
                )
            rows_completed = self._fill_rows(heightmap, heights, grids, monitor)
        except RunCancelled as exc:
            logger.warning("Height synthesis cancelled", stage=exc.stage, rows=exc.rows_completed)
            done = exc.rows_completed if exc.stage == "synthesize" else 0
            return HeightFieldResult(
                heights=heights,
                blend_mode=mode,
                rows_completed=done,
                complete=False,
                warnings=warnings,
                elevation=grids,
            )

        logger.info(
            "Height field synthesized",
            resolution=res,
            blend_mode=mode.value,
            sea_level_override=opts.sea_level_override,
            elevation_samples=len(samples),
        )
        return HeightFieldResult(
            heights=heights,
            blend_mode=mode,
            rows_completed=rows_completed,
            complete=True,
            warnings=warnings,
            elevation=grids,
        )

    def _fill_rows(
        self,
        heightmap: RasterGrid,
        heights: RasterGrid,
        grids: Optional[ElevationGrids],
        monitor: Optional[RunMonitor],
    ) -> int:
        opts = self.options
        res = opts.terrain_resolution
        # Pixel columns share one inverse-warped x coordinate per run
        world_norm_x = np.arange(res, dtype=np.float64) / (res - 1)
        geo_norm_x = self.converter.warp_x.inverse(world_norm_x)

        for y in range(res):
            if monitor is not None:
                monitor.checkpoint("synthesize", y, res)

            world_norm_y = y / (res - 1)
            geo_norm_y = np.full(res, self.converter.warp_z.inverse(world_norm_y))
            h_map = self.converter.sample_heightmap_bilinear(heightmap, geo_norm_x, geo_norm_y)

            elev_value = elev_confidence = None
            if grids is not None:
                wy = np.full(res, world_norm_y)
                elev_value = grids.values.sample(world_norm_x, wy)
                elev_confidence = grids.confidence.sample(world_norm_x, wy)

            row = blend_heights(
                h_map, opts.blend_mode, elev_value, elev_confidence, opts.elevation_blend_weight
            )
            if opts.sea_level_override:
                row = apply_sea_override(
                    h_map, row, opts.sea_black_threshold, opts.sea_transition_width
                )
            heights[y] = np.clip(row, 0.0, 1.0)

        return res
