"""
One batch generation run: warp tables, elevation grids, height field.

Mirrors the world-builder flow of the source system with the rendering and
asset placement stripped away: build the converter (adaptive or uniform),
then synthesize the normalized height grid.
"""

from typing import TYPE_CHECKING, Optional, Sequence, Tuple

import structlog

from .elevation_rasterizer import ElevationSample
from .geo_converter import GeoConverter
from .height_synthesizer import HeightFieldResult, HeightFieldSynthesizer
from .progress import RunMonitor
from .raster import RasterGrid

if TYPE_CHECKING:
    from ..config.terrain_settings import TerrainGenerationSettings

logger = structlog.get_logger()


def build_converter(
    settings: "TerrainGenerationSettings",
    density_points: Optional[Sequence[Tuple[float, float]]] = None,
) -> GeoConverter:
    """Create and initialize the converter described by the settings."""
    heightmap_extent = settings.heightmap_bounds.to_extent() if settings.heightmap_bounds else None
    converter = GeoConverter(
        settings.bounds.to_extent(),
        settings.world.target_world_width,
        settings.world.target_world_length,
        heightmap_extent=heightmap_extent,
    )

    warp = settings.warp
    if warp.use_adaptive_warping:
        converter.initialize_adaptive(
            density_points if density_points is not None else [],
            bins_x=warp.warp_bins_x,
            bins_y=warp.warp_bins_y,
            density_exponent=warp.density_exponent,
            min_density_floor=warp.min_density_floor,
            smoothing_sigma=warp.smoothing_sigma,
            lut_size=warp.inverse_lut_size,
        )
    else:
        converter.initialize_uniform(warp.warp_bins_x, warp.warp_bins_y, warp.inverse_lut_size)
    return converter


def generate_height_field(
    settings: "TerrainGenerationSettings",
    heightmap: RasterGrid,
    density_points: Optional[Sequence[Tuple[float, float]]] = None,
    elevation_samples: Optional[Sequence[ElevationSample]] = None,
    monitor: Optional[RunMonitor] = None,
) -> HeightFieldResult:
    """
    Run the full warp + synthesis pipeline.

    Args:
        settings: Validated generation settings
        heightmap: Source grayscale raster in [0, 1]
        density_points: Building centroids (lon, lat) for the adaptive warp
        elevation_samples: Sparse ground-truth elevations in metres
        monitor: Optional progress/cancellation hook

    Returns:
        HeightFieldResult with heights in [0, 1]; multiply by
        settings.world.terrain_max_height to get world units
    """
    max_height = settings.world.terrain_max_height
    data_max = settings.elevation.elevation_data_max_height
    if data_max > max_height:
        logger.warning(
            "Elevation data exceeds terrain max height; peaks will be clamped",
            elevation_data_max_height=data_max,
            terrain_max_height=max_height,
        )

    converter = build_converter(settings, density_points)
    synthesizer = HeightFieldSynthesizer(converter, settings.synthesis_options())
    return synthesizer.synthesize(heightmap, elevation_samples, monitor=monitor)
