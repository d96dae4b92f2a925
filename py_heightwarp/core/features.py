"""
Vector-feature data consumed by the warp and synthesis stages.

Parsing the source dataset happens elsewhere; these classes only hold the
parsed buildings and streets and derive what the core needs from them:
building centroids for the density histograms, the overall extent, and the
sparse elevation samples.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .elevation_rasterizer import ElevationSample
from .errors import ConfigurationError
from .geo_converter import GeoExtent, GeoPoint

# Elevation value meaning "no data"
NO_ELEVATION = -1.0


@dataclass
class Building:
    """Building footprint polygon in (lon, lat)."""

    polygon: List[GeoPoint] = field(default_factory=list)
    elevation: float = NO_ELEVATION  # ground level, metres above sea level
    name: Optional[str] = None
    building_type: Optional[str] = None

    @property
    def is_poi(self) -> bool:
        return bool(self.name)

    @property
    def has_elevation(self) -> bool:
        return self.elevation >= 0

    @property
    def centroid(self) -> GeoPoint:
        """Arithmetic mean of the vertices (no area weighting)."""
        if not self.polygon:
            return GeoPoint(0.0, 0.0)
        n = len(self.polygon)
        return GeoPoint(
            sum(p[0] for p in self.polygon) / n,
            sum(p[1] for p in self.polygon) / n,
        )


@dataclass
class Street:
    """Street polyline in (lon, lat)."""

    points: List[GeoPoint] = field(default_factory=list)
    elevation: float = NO_ELEVATION
    highway_type: Optional[str] = None
    name: Optional[str] = None

    @property
    def has_elevation(self) -> bool:
        return self.elevation >= 0


@dataclass
class MapFeatures:
    """All parsed buildings and streets of one dataset."""

    buildings: List[Building] = field(default_factory=list)
    streets: List[Street] = field(default_factory=list)

    def pois(self) -> List[Building]:
        return [b for b in self.buildings if b.is_poi]

    def building_centroids(self) -> List[GeoPoint]:
        """Density samples for the adaptive warp."""
        return [b.centroid for b in self.buildings if b.polygon]

    def compute_bounds(self) -> GeoExtent:
        """
        Bounding box over every building and street vertex.

        Raises:
            ConfigurationError: if there are no vertices or the box has zero span
        """
        lons = [p[0] for b in self.buildings for p in b.polygon]
        lons += [p[0] for s in self.streets for p in s.points]
        lats = [p[1] for b in self.buildings for p in b.polygon]
        lats += [p[1] for s in self.streets for p in s.points]
        if not lons:
            raise ConfigurationError("Cannot compute bounds of an empty feature set")
        return GeoExtent(min(lons), max(lons), min(lats), max(lats))

    def elevation_samples(self) -> List[ElevationSample]:
        """
        Sparse elevation samples from every feature carrying elevation data.

        Buildings contribute their centroid plus each polygon vertex; streets
        contribute each polyline vertex. Features without elevation are skipped.
        """
        samples = []
        for building in self.buildings:
            if not building.has_elevation or not building.polygon:
                continue
            c = building.centroid
            samples.append(ElevationSample(c.lon, c.lat, building.elevation))
            for lon, lat in building.polygon:
                samples.append(ElevationSample(lon, lat, building.elevation))

        for street in self.streets:
            if not street.has_elevation:
                continue
            for lon, lat in street.points:
                samples.append(ElevationSample(lon, lat, street.elevation))

        return samples
