"""
Configuration modules for terrain generation.
"""

from .config import Settings, settings
from .terrain_settings import (
    ElevationBlendSettings,
    GeoBounds,
    SeaLevelSettings,
    TerrainGenerationSettings,
    WarpSettings,
    WorldScaleSettings,
)

__all__ = ['Settings', 'settings', 'TerrainGenerationSettings', 'GeoBounds',
           'WorldScaleSettings', 'WarpSettings', 'ElevationBlendSettings', 'SeaLevelSettings']
