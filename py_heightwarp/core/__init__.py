"""
Core warp and height-synthesis functionality.
"""

from .errors import ConfigurationError, DegenerateInputWarning, RunCancelled
from .raster import RasterGrid
from .smoothing import GaussianSmoother1D, GaussianSmoother2D
from .histogram import HistogramBuilder
from .cdf_warp import CdfWarp, WarpTable
from .geo_converter import GeoConverter, GeoExtent, GeoPoint
from .elevation_rasterizer import ElevationGrids, ElevationRasterizer, ElevationSample
from .height_synthesizer import (
    BlendMode,
    HeightFieldResult,
    HeightFieldSynthesizer,
    SynthesisOptions,
)
from .progress import RunMonitor
from .features import Building, MapFeatures, Street
from .terrain_pipeline import build_converter, generate_height_field

__all__ = ['ConfigurationError', 'DegenerateInputWarning', 'RunCancelled', 'RasterGrid',
           'GaussianSmoother1D', 'GaussianSmoother2D', 'HistogramBuilder', 'CdfWarp', 'WarpTable',
           'GeoConverter', 'GeoExtent', 'GeoPoint', 'ElevationGrids', 'ElevationRasterizer',
           'ElevationSample', 'BlendMode', 'HeightFieldResult', 'HeightFieldSynthesizer',
           'SynthesisOptions', 'RunMonitor', 'Building', 'MapFeatures', 'Street',
           'build_converter', 'generate_height_field']
