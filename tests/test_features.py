"""
Tests for the vector-feature data model.
"""

import pytest
from py_heightwarp.core.errors import ConfigurationError
from py_heightwarp.core.features import Building, MapFeatures, Street
from py_heightwarp.core.geo_converter import GeoPoint


@pytest.fixture
def features():
    square = [GeoPoint(24.90, 37.40), GeoPoint(24.92, 37.40), GeoPoint(24.92, 37.42), GeoPoint(24.90, 37.42)]
    return MapFeatures(
        buildings=[
            Building(polygon=square, elevation=50.0, name="Town Hall", building_type="civic"),
            Building(polygon=[GeoPoint(24.95, 37.45), GeoPoint(24.96, 37.46)]),
            Building(polygon=[]),
        ],
        streets=[
            Street(points=[GeoPoint(24.86, 37.36), GeoPoint(24.88, 37.38), GeoPoint(24.97, 37.50)], elevation=10.0),
            Street(points=[GeoPoint(24.85, 37.51)]),
        ],
    )


class TestBuilding:
    """Test per-building helpers."""

    def test_centroid_is_vertex_mean(self):
        building = Building(polygon=[GeoPoint(0.0, 0.0), GeoPoint(2.0, 0.0), GeoPoint(2.0, 4.0)])
        assert building.centroid == pytest.approx((4.0 / 3.0, 4.0 / 3.0))

    def test_empty_polygon_centroid(self):
        assert Building().centroid == (0.0, 0.0)

    def test_poi(self):
        assert Building(name="Church").is_poi
        assert not Building(name="").is_poi
        assert not Building().is_poi

    def test_elevation_flag(self):
        assert Building(elevation=0.0).has_elevation
        assert not Building().has_elevation


class TestMapFeatures:
    """Test dataset-level derivations."""

    def test_pois(self, features):
        assert [b.name for b in features.pois()] == ["Town Hall"]

    def test_building_centroids_skip_empty(self, features):
        centroids = features.building_centroids()
        assert len(centroids) == 2
        assert centroids[0] == pytest.approx((24.91, 37.41))

    def test_compute_bounds(self, features):
        extent = features.compute_bounds()
        assert extent.min_lon == pytest.approx(24.85)
        assert extent.max_lon == pytest.approx(24.97)
        assert extent.min_lat == pytest.approx(37.36)
        assert extent.max_lat == pytest.approx(37.51)

    def test_empty_bounds_rejected(self):
        with pytest.raises(ConfigurationError):
            MapFeatures().compute_bounds()

    def test_elevation_samples(self, features):
        """Centroid + 4 vertices from the building, 3 vertices from the street."""
        samples = features.elevation_samples()
        assert len(samples) == 8
        assert samples[0].lon == pytest.approx(24.91)
        assert samples[0].elevation == 50.0
        assert [s.elevation for s in samples[5:]] == [10.0, 10.0, 10.0]
