"""
Shared fixtures: a deterministic math provider and isolated caches.
"""

import math
import threading
import time
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pytest

from meridian.core import factory as factory_module
from meridian.core import registry as registry_module
from meridian.core.errors import BuildError
from meridian.core.factory import CRSFactory
from meridian.core.parameters import parse_parameter
from meridian.core.registry import DefinitionRegistry
from meridian.models.crs import WGS84_ELLIPSOID, Datum, Ellipsoid
from meridian.providers.base import (
    GeocentricConverter,
    GeographicHandle,
    MathProvider,
    ProjectionHandle,
)
from meridian.providers.definitions import InMemoryDefinitionsSource

WGS84_WKT = (
    'GEOGCS["WGS 84",DATUM["WGS_1984",SPHEROID["WGS 84",6378137,298.257223563,'
    'AUTHORITY["EPSG","7030"]],AUTHORITY["EPSG","6326"]],PRIMEM["Greenwich",0,'
    'AUTHORITY["EPSG","8901"]],UNIT["degree",0.01745329251994328,'
    'AUTHORITY["EPSG","9122"]],AUTHORITY["EPSG","4326"]]'
)

PULKOVO_TM_WKT = (
    'PROJCS["Pulkovo 1942 / Custom TM",'
    'GEOGCS["Pulkovo 1942",DATUM["Pulkovo_1942",'
    'SPHEROID["Krassowsky 1940",6378245,298.3,AUTHORITY["EPSG","7024"]],'
    "TOWGS84[23.92,-141.27,-80.9,0,0.35,0.82,-0.12],"
    'AUTHORITY["EPSG","6284"]],'
    'PRIMEM["Greenwich",0,AUTHORITY["EPSG","8901"]],'
    'UNIT["degree",0.0174532925199433,AUTHORITY["EPSG","9122"]],'
    'AUTHORITY["EPSG","4284"]],'
    'PROJECTION["Transverse_Mercator"],'
    'PARAMETER["latitude_of_origin",0],'
    'PARAMETER["central_meridian",121],'
    'PARAMETER["scale_factor",1],'
    'PARAMETER["false_easting",500000],'
    'PARAMETER["false_northing",0],'
    'UNIT["metre",1,AUTHORITY["EPSG","9001"]],'
    'AUTHORITY["NONE","100001"]]'
)

FAKE_PARAMETERS = frozenset(
    ["proj", "datum", "ellps", "a", "b", "rf", "towgs84", "lon_0", "lat_0",
     "k", "k_0", "x_0", "y_0", "units", "to_meter", "no_defs"]
)


class FakeHandle(ProjectionHandle):
    """Affine stand-in for a projection: x = lon * k + x_0, y = lat * k + y_0."""

    def __init__(self, name: str, datum: Datum, k: float, x_0: float, y_0: float) -> None:
        super().__init__(name, datum)
        self.k = k
        self.x_0 = x_0
        self.y_0 = y_0

    def forward(self, lon, lat):
        return lon * self.k + self.x_0, lat * self.k + self.y_0

    def inverse(self, x, y):
        return (x - self.x_0) / self.k, (y - self.y_0) / self.k


class FakeGeocentric(GeocentricConverter):
    """Spherical geocentric conversion on the ellipsoid's semi-major axis."""

    def to_geocentric(self, lon, lat, height=0.0):
        r = self.ellipsoid.semi_major_axis + np.asarray(height, dtype=float)
        lam, phi = np.radians(lon), np.radians(lat)
        return r * np.cos(phi) * np.cos(lam), r * np.cos(phi) * np.sin(lam), r * np.sin(phi)

    def to_geodetic(self, x, y, z):
        r = np.sqrt(np.square(x) + np.square(y) + np.square(z))
        lon = np.degrees(np.arctan2(y, x))
        lat = np.degrees(np.arcsin(np.asarray(z) / r))
        return lon, lat, r - self.ellipsoid.semi_major_axis


class FakeProvider(MathProvider):
    """
    Deterministic math provider.

    Records every parameter list it builds, accepts a small set of keys and
    optionally sleeps during builds to widen race windows.
    """

    METHODS = {
        "longlat": "longlat",
        "fake": "fake",
        "tmerc": "tmerc",
        "Transverse_Mercator": "tmerc",
    }

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.built: List[Tuple[str, ...]] = []
        self._lock = threading.Lock()

    def find_projection(self, name: str) -> Optional[str]:
        return self.METHODS.get(name)

    def create_projection(self, parameters: Sequence[str]) -> ProjectionHandle:
        params = {}
        for token in parameters:
            key, value = parse_parameter(token)
            if key not in FAKE_PARAMETERS:
                raise BuildError(f"Unknown parameter: {key}", parameter=key)
            params[key] = value

        method = self.find_projection(params.get("proj") or "")
        if method is None:
            raise BuildError(f"Unsupported projection: {params.get('proj')}", parameter="proj")

        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.built.append(tuple(parameters))

        towgs84 = params.get("towgs84")
        to_wgs84 = tuple(float(v) for v in towgs84.split(",")) if towgs84 else None
        ellipsoid = WGS84_ELLIPSOID
        if "a" in params:
            rf = float(params["rf"]) if "rf" in params else math.inf
            ellipsoid = Ellipsoid("custom", float(params["a"]), rf)
        datum = Datum(params.get("datum") or "custom", ellipsoid, to_wgs84)

        if method == "longlat":
            return GeographicHandle(method, datum)
        k = float(params.get("k_0") or params.get("k") or 1.0)
        return FakeHandle(
            method,
            datum,
            k,
            float(params.get("x_0") or 0.0),
            float(params.get("y_0") or 0.0),
        )

    def create_geocentric_converter(self, ellipsoid: Ellipsoid) -> GeocentricConverter:
        return FakeGeocentric(ellipsoid)


@pytest.fixture(autouse=True)
def reset_defaults():
    """Give every test fresh process-wide registry and factory instances."""
    registry_module.reset_default_registry()
    factory_module.reset_default_factory()
    yield
    registry_module.reset_default_registry()
    factory_module.reset_default_factory()


@pytest.fixture
def wgs84_wkt() -> str:
    """WKT of EPSG:4326."""
    return WGS84_WKT


@pytest.fixture
def pulkovo_tm_wkt() -> str:
    """WKT of a custom Transverse Mercator on Pulkovo 1942."""
    return PULKOVO_TM_WKT


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Deterministic math provider."""
    return FakeProvider()


@pytest.fixture
def definitions_source() -> InMemoryDefinitionsSource:
    """Built-in definitions for the EPSG and Other authorities."""
    return InMemoryDefinitionsSource(
        {
            "EPSG": {
                4326: "+proj=longlat +datum=WGS84 +no_defs",
                3857: "+proj=fake +k=2 +x_0=10 +y_0=20 +no_defs",
            },
            "Other": {
                777: "+proj=longlat +datum=WGS84 +no_defs",
            },
        }
    )


@pytest.fixture
def registry(definitions_source: InMemoryDefinitionsSource) -> DefinitionRegistry:
    """Registry backed by in-memory built-ins."""
    return DefinitionRegistry(definitions_source)


@pytest.fixture
def factory(fake_provider: FakeProvider, registry: DefinitionRegistry) -> CRSFactory:
    """Factory on the fake provider and in-memory registry."""
    return CRSFactory(provider=fake_provider, registry=registry, default_authority="EPSG")


@pytest.fixture
def pyproj_factory() -> CRSFactory:
    """Factory on the pyproj provider and packaged definitions."""
    from meridian.providers.pyproj_provider import PyProjProvider

    return CRSFactory(provider=PyProjProvider(), registry=DefinitionRegistry())
