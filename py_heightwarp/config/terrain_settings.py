"""
Validated settings for warp construction and height-field synthesis.

Defaults describe a Syros-sized island: roughly 10 x 16.5 km mapped onto a
2000 x 3300 unit world at 1:5 horizontal scale.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ..core.geo_converter import GeoExtent
from ..core.height_synthesizer import BlendMode, SynthesisOptions


class GeoBounds(BaseModel):
    """Longitude/latitude bounding box."""

    min_lon: float = Field(default=24.858819, description="Western-most longitude")
    max_lon: float = Field(default=24.972383, description="Eastern-most longitude")
    min_lat: float = Field(default=37.363064, description="Southern-most latitude")
    max_lat: float = Field(default=37.512692, description="Northern-most latitude")

    @model_validator(mode="after")
    def check_spans(self) -> "GeoBounds":
        if self.max_lon <= self.min_lon or self.max_lat <= self.min_lat:
            raise ValueError("Bounds need max > min on both axes")
        return self

    def to_extent(self) -> GeoExtent:
        return GeoExtent(self.min_lon, self.max_lon, self.min_lat, self.max_lat)


class WorldScaleSettings(BaseModel):
    """Physical size of the generated terrain."""

    target_world_width: float = Field(default=2000.0, gt=0, description="World size east-west")
    target_world_length: float = Field(default=3300.0, gt=0, description="World size north-south")
    terrain_max_height: float = Field(
        default=450.0,
        gt=0,
        description="Sole scale factor from normalized height to world Y; higher elevations clamp",
    )
    terrain_resolution: int = Field(default=513, gt=1, description="Output grid size per side")


class WarpSettings(BaseModel):
    """Adaptive density warp parameters."""

    use_adaptive_warping: bool = Field(default=True, description="False gives proportional scaling")
    warp_bins_x: int = Field(default=128, ge=1, description="Longitude histogram bins")
    warp_bins_y: int = Field(default=128, ge=1, description="Latitude histogram bins")
    min_density_floor: float = Field(
        default=0.05, ge=0.0, le=1.0, description="Minimum bin density relative to the maximum"
    )
    smoothing_sigma: float = Field(default=5.0, ge=0.0, description="Histogram smoothing, in bins")
    density_exponent: float = Field(
        default=1.2, gt=0.0, description="1 = linear CDF, > 1 expands dense areas further"
    )
    inverse_lut_size: int = Field(default=2048, ge=2, description="Inverse lookup table size")


class ElevationBlendSettings(BaseModel):
    """Sparse elevation rasterization and blending."""

    blend_mode: BlendMode = Field(default=BlendMode.DENSITY_BASED, description="Blend policy")
    elevation_blend_weight: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Elevation share in uniform blend mode"
    )
    elevation_grid_resolution: int = Field(default=256, gt=1, description="IDW grid size per side")
    elevation_smoothing_sigma: float = Field(default=3.0, ge=0.0, description="Grid smoothing, in cells")
    elevation_search_radius: int = Field(default=8, ge=0, description="IDW scatter radius, in cells")
    density_falloff_radius: int = Field(
        default=16, ge=0, description="Confidence dilation radius, in cells; 0 disables"
    )
    elevation_data_max_height: float = Field(
        default=420.0, ge=0.0, description="Highest elevation in the data; used for the clamp warning"
    )


class SeaLevelSettings(BaseModel):
    """Sea-level override for near-black heightmap pixels."""

    sea_level_override: bool = Field(default=True, description="Force sea pixels to zero height")
    sea_black_threshold: float = Field(
        default=0.001, ge=0.0, le=0.05, description="Heightmap values at or below this are sea"
    )
    sea_transition_width: float = Field(
        default=0.01, ge=0.0, le=0.1, description="Fade band above the threshold; 0 = hard edge"
    )


class TerrainGenerationSettings(BaseModel):
    """Everything one generation run needs."""

    bounds: GeoBounds = Field(default_factory=GeoBounds)
    heightmap_bounds: Optional[GeoBounds] = Field(
        default=None, description="Heightmap coverage when it differs from the feature bounds"
    )
    world: WorldScaleSettings = Field(default_factory=WorldScaleSettings)
    warp: WarpSettings = Field(default_factory=WarpSettings)
    elevation: ElevationBlendSettings = Field(default_factory=ElevationBlendSettings)
    sea: SeaLevelSettings = Field(default_factory=SeaLevelSettings)

    @property
    def normalization_divisor(self) -> float:
        return max(self.world.terrain_max_height, 1.0)

    def synthesis_options(self) -> SynthesisOptions:
        return SynthesisOptions(
            terrain_resolution=self.world.terrain_resolution,
            blend_mode=self.elevation.blend_mode,
            elevation_blend_weight=self.elevation.elevation_blend_weight,
            elevation_grid_resolution=self.elevation.elevation_grid_resolution,
            elevation_search_radius=self.elevation.elevation_search_radius,
            density_falloff_radius=self.elevation.density_falloff_radius,
            elevation_smoothing_sigma=self.elevation.elevation_smoothing_sigma,
            normalization_divisor=self.normalization_divisor,
            sea_level_override=self.sea.sea_level_override,
            sea_black_threshold=self.sea.sea_black_threshold,
            sea_transition_width=self.sea.sea_transition_width,
        )
