"""
Tests for the pyproj math provider and built-in definition sources.
"""

import math

import pytest

from meridian.core.errors import BuildError, ConfigurationError
from meridian.providers import get_default_provider
from meridian.providers.base import GeographicHandle
from meridian.providers.definitions import InMemoryDefinitionsSource, PackagedDefinitionsSource
from meridian.providers.pyproj_provider import PyProjHandle, PyProjProvider


@pytest.fixture
def provider() -> PyProjProvider:
    """pyproj provider."""
    return PyProjProvider()


class TestPyProjProvider:
    """Tests for PyProjProvider."""

    def test_find_projection(self, provider: PyProjProvider) -> None:
        """Test WKT and PROJ spellings resolve to methods."""
        assert provider.find_projection("Transverse_Mercator") == "tmerc"
        assert provider.find_projection("tmerc") == "tmerc"
        assert provider.find_projection("Mercator_1SP") == "merc"
        assert provider.find_projection("latlong") == "longlat"

    def test_find_projection_is_exact(self, provider: PyProjProvider) -> None:
        """Test lookups are case-sensitive."""
        assert provider.find_projection("transverse_mercator") is None
        assert provider.find_projection("Hotine_Oblique_Mercator") is None

    def test_geographic_handle(self, provider: PyProjProvider) -> None:
        """Test longlat definitions get an identity handle."""
        handle = provider.create_projection(["+proj=longlat", "+datum=WGS84", "+no_defs"])

        assert isinstance(handle, GeographicHandle)
        assert handle.is_geographic
        assert handle.forward(1.5, 2.5) == (1.5, 2.5)
        assert handle.datum.to_wgs84 == (0.0, 0.0, 0.0)
        assert handle.datum.ellipsoid.semi_major_axis == 6378137.0

    def test_projected_handle(self, provider: PyProjProvider) -> None:
        """Test projected definitions are evaluated by PROJ."""
        handle = provider.create_projection(
            "+proj=utm +zone=31 +datum=WGS84 +units=m +no_defs".split()
        )

        assert isinstance(handle, PyProjHandle)
        assert not handle.is_geographic
        x, y = handle.forward(3.0, 0.0)
        assert x == pytest.approx(500000.0, abs=1e-6)
        assert y == pytest.approx(0.0, abs=1e-6)
        lon, lat = handle.inverse(x, y)
        assert lon == pytest.approx(3.0, abs=1e-9)

    def test_parameters_without_plus(self, provider: PyProjProvider) -> None:
        """Test key=value tokens from WKT are accepted."""
        handle = provider.create_projection(
            ["+proj=tmerc", "lon_0=121.0", "k_0=1.0", "x_0=500000.0", "+ellps=krass"]
        )
        x, _ = handle.forward(121.0, 0.0)
        assert x == pytest.approx(500000.0, abs=1e-6)

    def test_unknown_parameter(self, provider: PyProjProvider) -> None:
        """Test unknown flags are rejected before reaching PROJ."""
        with pytest.raises(BuildError, match="Unknown parameter: invalid") as exc_info:
            provider.create_projection(["+proj=longlat", "+datum=WGS84", "+invalid"])
        assert exc_info.value.parameter == "invalid"

    def test_missing_projection(self, provider: PyProjProvider) -> None:
        """Test +proj is required."""
        with pytest.raises(BuildError, match="Missing projection name"):
            provider.create_projection(["+datum=WGS84"])

    def test_unknown_projection(self, provider: PyProjProvider) -> None:
        """Test unknown projection names are rejected."""
        with pytest.raises(BuildError, match="Unsupported projection: nonexistent"):
            provider.create_projection(["+proj=nonexistent"])

    def test_unknown_datum(self, provider: PyProjProvider) -> None:
        """Test unknown datum names are rejected."""
        with pytest.raises(BuildError, match="Unknown datum"):
            provider.create_projection(["+proj=longlat", "+datum=nowhere"])

    def test_unknown_ellipsoid(self, provider: PyProjProvider) -> None:
        """Test unknown ellipsoid names are rejected."""
        with pytest.raises(BuildError, match="Unknown ellipsoid"):
            provider.create_projection(["+proj=longlat", "+ellps=potato"])

    def test_datum_without_shift(self, provider: PyProjProvider) -> None:
        """Test NAD27 has no known shift."""
        handle = provider.create_projection(["+proj=longlat", "+datum=NAD27"])

        assert handle.datum.to_wgs84 is None
        assert handle.datum.ellipsoid.semi_major_axis == pytest.approx(6378206.4)

    def test_towgs84(self, provider: PyProjProvider) -> None:
        """Test explicit shifts override the datum table."""
        handle = provider.create_projection(["+proj=longlat", "+ellps=intl", "+towgs84=-87,-98,-121"])
        assert handle.datum.to_wgs84 == (-87.0, -98.0, -121.0)

    def test_empty_towgs84(self, provider: PyProjProvider) -> None:
        """Test an empty shift is a zero shift."""
        handle = provider.create_projection(["+proj=longlat", "+towgs84="])
        assert handle.datum.to_wgs84 == (0.0, 0.0, 0.0)

    def test_invalid_towgs84(self, provider: PyProjProvider) -> None:
        """Test shifts need 3 or 7 values."""
        with pytest.raises(BuildError, match="3 or 7"):
            provider.create_projection(["+proj=longlat", "+towgs84=1,2,3,4"])

    def test_sphere_radius(self, provider: PyProjProvider) -> None:
        """Test +R defines a sphere."""
        handle = provider.create_projection(["+proj=longlat", "+R=6371000"])

        assert handle.datum.ellipsoid.is_sphere
        assert handle.datum.ellipsoid.semi_major_axis == 6371000.0

    def test_explicit_axes(self, provider: PyProjProvider) -> None:
        """Test +a/+b define the ellipsoid."""
        handle = provider.create_projection(["+proj=longlat", "+a=6378137", "+b=6378137"])
        assert math.isinf(handle.datum.ellipsoid.inverse_flattening)

    def test_invalid_number(self, provider: PyProjProvider) -> None:
        """Test non-numeric shape parameters are rejected."""
        with pytest.raises(BuildError, match="Invalid numeric value for a"):
            provider.create_projection(["+proj=longlat", "+a=big"])

    def test_proj_rejects_definition(self, provider: PyProjProvider) -> None:
        """Test PROJ errors become build errors."""
        with pytest.raises(BuildError, match="PROJ rejected"):
            provider.create_projection(["+proj=utm", "+zone=99", "+datum=WGS84"])

    def test_geocentric_roundtrip(self, provider: PyProjProvider) -> None:
        """Test geodetic to geocentric conversion and back."""
        from meridian.models.crs import WGS84_ELLIPSOID

        converter = provider.create_geocentric_converter(WGS84_ELLIPSOID)

        x, y, z = converter.to_geocentric(0.0, 0.0, 0.0)
        assert x == pytest.approx(6378137.0, abs=1e-6)
        assert y == pytest.approx(0.0, abs=1e-6)
        assert z == pytest.approx(0.0, abs=1e-6)

        lon, lat, height = converter.to_geodetic(*converter.to_geocentric(10.0, 45.0, 0.0))
        assert lon == pytest.approx(10.0, abs=1e-9)
        assert lat == pytest.approx(45.0, abs=1e-9)
        assert height == pytest.approx(0.0, abs=1e-6)

    def test_default_provider(self) -> None:
        """Test the process-wide provider is a shared PyProjProvider."""
        assert isinstance(get_default_provider(), PyProjProvider)
        assert get_default_provider() is get_default_provider()


class TestDefinitionSources:
    """Tests for built-in definition sources."""

    def test_packaged_epsg(self) -> None:
        """Test the packaged EPSG table."""
        table = PackagedDefinitionsSource().load("EPSG")

        assert table["4326"] == "+proj=longlat +datum=WGS84 +no_defs"
        assert "3857" in table
        assert "27700" in table

    def test_packaged_none(self) -> None:
        """Test the packaged NONE table covers undefined systems."""
        table = PackagedDefinitionsSource().load("NONE")
        assert set(table) == {"-1", "0"}

    def test_packaged_missing_authority(self) -> None:
        """Test an authority without a table loads empty."""
        assert PackagedDefinitionsSource().load("Test") == {}

    def test_packaged_missing_package(self) -> None:
        """Test an unimportable package is a configuration error."""
        source = PackagedDefinitionsSource("meridian_does_not_exist")
        with pytest.raises(ConfigurationError):
            source.load("EPSG")

    def test_in_memory(self) -> None:
        """Test in-memory tables stringify codes and return copies."""
        source = InMemoryDefinitionsSource({"Test": {1: "+proj=longlat"}})

        table = source.load("Test")
        table["2"] = "+proj=merc"

        assert source.load("Test") == {"1": "+proj=longlat"}
        assert source.load("Other") == {}
