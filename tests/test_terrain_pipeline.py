"""
Tests for the end-to-end generation run and its settings.
"""

import pytest
import numpy as np
import structlog
from pydantic import ValidationError
from structlog.testing import capture_logs

from py_heightwarp.config import Settings, TerrainGenerationSettings
from py_heightwarp.config.terrain_settings import GeoBounds, SeaLevelSettings, WarpSettings
from py_heightwarp.core import BlendMode, ElevationSample, RasterGrid, RunMonitor
from py_heightwarp.core.terrain_pipeline import build_converter, generate_height_field
from py_heightwarp.utils.logging import configure_logging


@pytest.fixture
def settings():
    settings = TerrainGenerationSettings(bounds=GeoBounds(min_lon=24.0, max_lon=25.0, min_lat=37.0, max_lat=38.0))
    settings.world.terrain_resolution = 33
    settings.warp.warp_bins_x = 16
    settings.warp.warp_bins_y = 16
    settings.warp.smoothing_sigma = 1.0
    settings.elevation.elevation_grid_resolution = 32
    settings.elevation.elevation_search_radius = 2
    settings.elevation.density_falloff_radius = 3
    settings.elevation.elevation_smoothing_sigma = 1.0
    return settings


@pytest.fixture
def town():
    rng = np.random.default_rng(12)
    return list(zip(rng.normal(24.85, 0.02, 200), rng.normal(37.85, 0.02, 200)))


class TestGenerateHeightField:
    """Test a full batch run."""

    def test_heightmap_only_run(self, settings, town):
        settings.elevation.blend_mode = BlendMode.HEIGHTMAP_ONLY
        settings.sea.sea_level_override = False
        result = generate_height_field(settings, RasterGrid.filled(16, 16, 0.3), town)

        assert result.complete
        assert result.heights.shape == (33, 33)
        np.testing.assert_allclose(result.heights.data, 0.3, atol=1e-6)

    def test_density_blend_run(self, settings, town):
        samples = [ElevationSample(lon, lat, 180.0) for lon, lat in town]
        heightmap = RasterGrid.filled(16, 16, 0.1)
        result = generate_height_field(settings, heightmap, town, samples)

        heights = result.heights.data
        assert result.complete
        assert result.blend_mode is BlendMode.DENSITY_BASED
        assert heights.min() >= 0.0 and heights.max() <= 1.0
        # The town in the north-east raises terrain towards 180 / 450; the south-west corner keeps the heightmap
        assert heights.max() > 0.3
        assert heights[0, 0] == pytest.approx(0.1, abs=1e-6)

    def test_normalized_heights_scale_to_metres(self, settings):
        """Multiplying by terrain_max_height recovers the sample elevation."""
        settings.warp.use_adaptive_warping = False
        settings.elevation.blend_mode = BlendMode.ELEVATION_ONLY
        settings.elevation.elevation_smoothing_sigma = 0.0
        settings.sea.sea_level_override = False
        samples = [ElevationSample(24.5, 37.5, 225.0)]

        result = generate_height_field(settings, RasterGrid.filled(4, 4, 0.5), None, samples)
        metres = result.heights[16, 16] * settings.world.terrain_max_height
        assert metres == pytest.approx(225.0, abs=1e-3)

    def test_uniform_converter(self, settings):
        settings.warp.use_adaptive_warping = False
        converter = build_converter(settings)
        assert converter.is_initialized
        assert not converter.adaptive
        assert converter.geo_to_world_norm(24.25, 37.75) == pytest.approx((0.25, 0.75), abs=1e-6)

    def test_heightmap_bounds_passed_through(self, settings):
        settings.heightmap_bounds = GeoBounds(min_lon=24.0, max_lon=26.0, min_lat=37.0, max_lat=38.0)
        converter = build_converter(settings, [])
        assert converter.heightmap_extent.max_lon == 26.0
        assert converter.extent.max_lon == 25.0

    def test_clamp_warning_logged(self, settings):
        settings.elevation.elevation_data_max_height = 600.0
        settings.elevation.blend_mode = BlendMode.HEIGHTMAP_ONLY
        with capture_logs() as logs:
            generate_height_field(settings, RasterGrid.filled(4, 4, 0.5), [(24.5, 37.5)])
        assert any(
            entry["log_level"] == "warning" and "clamped" in entry["event"] for entry in logs
        )

    def test_cancelled_run(self, settings):
        settings.elevation.blend_mode = BlendMode.HEIGHTMAP_ONLY
        monitor = RunMonitor()
        monitor.cancel()
        result = generate_height_field(settings, RasterGrid.filled(4, 4, 0.5), [(24.5, 37.5)], monitor=monitor)
        assert not result.complete
        assert result.rows_completed == 0


class TestSettings:
    """Test settings validation and environment loading."""

    def test_defaults(self):
        settings = TerrainGenerationSettings()
        assert settings.world.terrain_resolution == 513
        assert settings.warp.inverse_lut_size == 2048
        assert settings.elevation.blend_mode is BlendMode.DENSITY_BASED
        assert settings.normalization_divisor == 450.0

    def test_synthesis_options(self):
        options = TerrainGenerationSettings().synthesis_options()
        assert options.terrain_resolution == 513
        assert options.normalization_divisor == 450.0
        assert options.sea_black_threshold == 0.001
        options.validate()

    def test_divisor_floor(self):
        settings = TerrainGenerationSettings()
        settings.world.terrain_max_height = 0.5
        assert settings.normalization_divisor == 1.0

    @pytest.mark.parametrize("model, kwargs", [
        (SeaLevelSettings, {"sea_black_threshold": 0.1}),
        (SeaLevelSettings, {"sea_transition_width": 0.2}),
        (WarpSettings, {"min_density_floor": 1.5}),
        (WarpSettings, {"density_exponent": 0.0}),
        (WarpSettings, {"inverse_lut_size": 1}),
        (GeoBounds, {"min_lon": 25.0, "max_lon": 24.0}),
    ])
    def test_invalid_values(self, model, kwargs):
        with pytest.raises(ValidationError):
            model(**kwargs)

    def test_blend_mode_from_string(self):
        settings = TerrainGenerationSettings(elevation={"blend_mode": "uniform_blend"})
        assert settings.elevation.blend_mode is BlendMode.UNIFORM_BLEND

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("HEIGHTWARP_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("HEIGHTWARP_TERRAIN__WARP__WARP_BINS_X", "64")
        settings = Settings()
        assert settings.log_level == "DEBUG"
        assert settings.terrain.warp.warp_bins_x == 64
        assert settings.terrain.warp.warp_bins_y == 128


class TestLogging:
    """Test structlog configuration."""

    @pytest.mark.parametrize("log_format", ["json", "plain"])
    def test_configure_logging(self, log_format):
        try:
            configure_logging("INFO", log_format)
            assert structlog.is_configured()
        finally:
            structlog.reset_defaults()
