"""
pyproj-backed math provider.

Parameter tokens are validated against the PROJ keyword table before
anything reaches PROJ, so an unknown flag such as ``+invalid`` fails the
build instead of being silently ignored. Datum and ellipsoid parameters
are resolved here; projection formulas are evaluated by ``pyproj.Proj``.
"""

import logging
import math
from typing import Dict, Optional, Sequence, Tuple

from pyproj import Proj, Transformer, get_ellps_map
from pyproj.enums import TransformDirection
from pyproj.exceptions import CRSError, ProjError

from meridian.core.errors import BuildError
from meridian.core.parameters import format_parameter, parse_parameter
from meridian.models.crs import WGS84_ELLIPSOID, Datum, Ellipsoid
from meridian.providers.base import (
    Coordinate,
    GeocentricConverter,
    GeographicHandle,
    MathProvider,
    ProjectionHandle,
)

logger = logging.getLogger(__name__)

GEOGRAPHIC_METHOD = "longlat"

# Exact projection names (WKT and PROJ spellings) to PROJ method names
PROJECTION_METHODS: Dict[str, str] = {
    "longlat": GEOGRAPHIC_METHOD,
    "latlong": GEOGRAPHIC_METHOD,
    "lonlat": GEOGRAPHIC_METHOD,
    "latlon": GEOGRAPHIC_METHOD,
    "tmerc": "tmerc",
    "Transverse_Mercator": "tmerc",
    "utm": "utm",
    "merc": "merc",
    "Mercator_1SP": "merc",
    "Mercator_2SP": "merc",
    "Popular_Visualisation_Pseudo_Mercator": "merc",
    "lcc": "lcc",
    "Lambert_Conformal_Conic_1SP": "lcc",
    "Lambert_Conformal_Conic_2SP": "lcc",
    "stere": "stere",
    "Polar_Stereographic": "stere",
    "sterea": "sterea",
    "Oblique_Stereographic": "sterea",
    "aea": "aea",
    "Albers_Conic_Equal_Area": "aea",
    "laea": "laea",
    "Lambert_Azimuthal_Equal_Area": "laea",
    "eqc": "eqc",
    "Equirectangular": "eqc",
    "cea": "cea",
    "Cylindrical_Equal_Area": "cea",
    "ortho": "ortho",
    "Orthographic": "ortho",
}

# Keywords accepted in parameter strings
KNOWN_PARAMETERS = frozenset(
    [
        "proj", "a", "b", "rf", "f", "R", "es", "e", "ellps", "datum",
        "towgs84", "nadgrids", "geoidgrids", "lat_0", "lat_1", "lat_2",
        "lat_ts", "lon_0", "lonc", "alpha", "gamma", "k", "k_0", "x_0",
        "y_0", "zone", "south", "units", "to_meter", "vunits", "pm",
        "axis", "no_defs", "wktext", "over", "no_uoff", "no_rot", "type",
        "title", "h", "approx",
    ]
)

# Parameters consumed here rather than handed to PROJ
_DATUM_PARAMETERS = frozenset(
    ["proj", "a", "b", "rf", "f", "R", "es", "e", "ellps", "datum", "towgs84",
     "nadgrids", "geoidgrids", "no_defs", "wktext", "type", "title", "axis"]
)

# PROJ datum identifiers: (ellipsoid, Bursa-Wolf shift or None)
DATUMS: Dict[str, Tuple[str, Optional[Tuple[float, ...]]]] = {
    "WGS84": ("WGS84", (0.0, 0.0, 0.0)),
    "NAD83": ("GRS80", (0.0, 0.0, 0.0)),
    "NAD27": ("clrk66", None),
    "GGRS87": ("GRS80", (-199.87, 74.79, 246.62)),
    "potsdam": ("bessel", (598.1, 73.7, 418.2, 0.202, 0.045, -2.455, 6.7)),
    "carthage": ("clrk80ign", (-263.0, 6.0, 431.0)),
    "hermannskogel": ("bessel", (577.326, 90.129, 463.919, 5.137, 1.474, 5.297, 2.4232)),
    "ire65": ("mod_airy", (482.530, -130.596, 564.557, -1.042, -0.214, -0.631, 8.15)),
    "nzgd49": ("intl", (59.47, -5.04, 187.44, 0.47, -0.1, 1.024, -4.5993)),
    "OSGB36": ("airy", (446.448, -125.157, 542.060, 0.1502, 0.2470, 0.8421, -20.4894)),
}


class PyProjHandle(ProjectionHandle):
    """Projection handle evaluating formulas with ``pyproj.Proj``."""

    def __init__(self, name: str, datum: Datum, proj: Proj) -> None:
        super().__init__(name, datum)
        self._proj = proj

    def forward(self, lon: Coordinate, lat: Coordinate) -> Tuple[Coordinate, Coordinate]:
        """Project geodetic degrees to plane coordinates."""
        return self._proj(lon, lat)

    def inverse(self, x: Coordinate, y: Coordinate) -> Tuple[Coordinate, Coordinate]:
        """Unproject plane coordinates to geodetic degrees."""
        return self._proj(x, y, inverse=True)


class PyProjGeocentricConverter(GeocentricConverter):
    """Geodetic/geocentric conversion through a PROJ ``cart`` pipeline."""

    def __init__(self, ellipsoid: Ellipsoid) -> None:
        super().__init__(ellipsoid)
        shape = _ellipsoid_parameters(ellipsoid)
        self._transformer = Transformer.from_pipeline(
            "+proj=pipeline "
            "+step +proj=unitconvert +xy_in=deg +xy_out=rad "
            f"+step +proj=cart {shape}"
        )

    def to_geocentric(
        self, lon: Coordinate, lat: Coordinate, height: Coordinate = 0.0
    ) -> Tuple[Coordinate, Coordinate, Coordinate]:
        """Convert degrees and metres to X/Y/Z."""
        return self._transformer.transform(lon, lat, height)

    def to_geodetic(
        self, x: Coordinate, y: Coordinate, z: Coordinate
    ) -> Tuple[Coordinate, Coordinate, Coordinate]:
        """Convert X/Y/Z to degrees and metres."""
        return self._transformer.transform(x, y, z, direction=TransformDirection.INVERSE)


def _ellipsoid_parameters(ellipsoid: Ellipsoid) -> str:
    """Render an ellipsoid as PROJ shape parameters."""
    if ellipsoid.is_sphere:
        return " ".join(
            [format_parameter("a", ellipsoid.semi_major_axis),
             format_parameter("b", ellipsoid.semi_major_axis)]
        )
    return " ".join(
        [format_parameter("a", ellipsoid.semi_major_axis),
         format_parameter("rf", ellipsoid.inverse_flattening)]
    )


class PyProjProvider(MathProvider):
    """
    Math provider backed by pyproj.

    Geographic systems get an identity handle; every other method is
    evaluated by ``pyproj.Proj`` built from the projection parameters
    plus the resolved ellipsoid.
    """

    def __init__(self) -> None:
        self._ellipsoids = get_ellps_map()

    def find_projection(self, name: str) -> Optional[str]:
        """Exact-match lookup in PROJECTION_METHODS."""
        return PROJECTION_METHODS.get(name)

    def create_projection(self, parameters: Sequence[str]) -> ProjectionHandle:
        """
        Build a projection handle from parameter tokens.

        Args:
            parameters: Parameter tokens

        Returns:
            GeographicHandle or PyProjHandle

        Raises:
            BuildError: If a parameter is unknown or PROJ rejects the definition
        """
        params = self._parse(parameters)

        proj_name = params.get("proj")
        if not proj_name:
            raise BuildError("Missing projection name (+proj)", parameter="proj")
        method = self.find_projection(proj_name)
        if method is None:
            raise BuildError(f"Unsupported projection: {proj_name}", parameter="proj")

        datum = self._resolve_datum(params)

        if method == GEOGRAPHIC_METHOD:
            return GeographicHandle(method, datum)

        tokens = [format_parameter("proj", method)]
        for key, value in params.items():
            if key not in _DATUM_PARAMETERS:
                tokens.append(format_parameter(key, value))
        tokens.append(_ellipsoid_parameters(datum.ellipsoid))
        tokens.append(format_parameter("no_defs"))
        proj_string = " ".join(tokens)

        try:
            proj = Proj(proj_string)
        except (CRSError, ProjError) as e:
            raise BuildError(f"PROJ rejected definition '{proj_string}': {e}") from e

        logger.debug(f"Created {method} projection from '{proj_string}'")
        return PyProjHandle(method, datum, proj)

    def create_geocentric_converter(self, ellipsoid: Ellipsoid) -> GeocentricConverter:
        """Build a PROJ ``cart`` converter for the ellipsoid."""
        return PyProjGeocentricConverter(ellipsoid)

    def _parse(self, parameters: Sequence[str]) -> Dict[str, Optional[str]]:
        """Validate tokens and collect them in order; later duplicates win."""
        params: Dict[str, Optional[str]] = {}
        for token in parameters:
            try:
                key, value = parse_parameter(token)
            except ValueError as e:
                raise BuildError(str(e), parameter=token) from e
            if key not in KNOWN_PARAMETERS:
                raise BuildError(f"Unknown parameter: {key}", parameter=key)
            params[key] = value
        return params

    def _resolve_datum(self, params: Dict[str, Optional[str]]) -> Datum:
        """Resolve +datum, +ellps, explicit shape and +towgs84 into a Datum."""
        datum_name = params.get("datum")
        ellps_name: Optional[str] = params.get("ellps")
        to_wgs84: Optional[Tuple[float, ...]] = None

        if datum_name is not None:
            if datum_name not in DATUMS:
                raise BuildError(f"Unknown datum: {datum_name}", parameter="datum")
            datum_ellps, to_wgs84 = DATUMS[datum_name]
            ellps_name = ellps_name or datum_ellps

        if params.get("towgs84") is not None:
            to_wgs84 = self._parse_towgs84(params["towgs84"])

        ellipsoid = self._resolve_ellipsoid(params, ellps_name)
        return Datum(datum_name or ellipsoid.name, ellipsoid, to_wgs84)

    def _resolve_ellipsoid(
        self, params: Dict[str, Optional[str]], ellps_name: Optional[str]
    ) -> Ellipsoid:
        """Explicit shape parameters take precedence over +ellps."""
        base = WGS84_ELLIPSOID
        if ellps_name is not None:
            base = self._lookup_ellipsoid(ellps_name)

        if "R" in params:
            radius = self._float(params, "R")
            return Ellipsoid("sphere", radius, math.inf)

        if "a" not in params:
            return base

        a = self._float(params, "a")
        if "rf" in params:
            rf = self._float(params, "rf")
            inverse_flattening = math.inf if rf == 0 else rf
        elif "b" in params:
            b = self._float(params, "b")
            inverse_flattening = math.inf if b == a else a / (a - b)
        elif "f" in params:
            f = self._float(params, "f")
            inverse_flattening = math.inf if f == 0 else 1.0 / f
        elif "es" in params:
            es = self._float(params, "es")
            inverse_flattening = math.inf if es == 0 else 1.0 / (1.0 - math.sqrt(1.0 - es))
        elif ellps_name is not None:
            inverse_flattening = base.inverse_flattening
        else:
            inverse_flattening = math.inf
        return Ellipsoid(ellps_name or "custom", a, inverse_flattening)

    def _lookup_ellipsoid(self, name: str) -> Ellipsoid:
        entry = self._ellipsoids.get(name)
        if entry is None:
            raise BuildError(f"Unknown ellipsoid: {name}", parameter="ellps")
        a = float(entry["a"])
        if "rf" in entry:
            rf = float(entry["rf"])
        else:
            b = float(entry["b"])
            rf = math.inf if b == a else a / (a - b)
        return Ellipsoid(name, a, rf)

    @staticmethod
    def _parse_towgs84(value: Optional[str]) -> Tuple[float, ...]:
        try:
            shift = tuple(float(part) for part in value.split(",")) if value else ()
        except ValueError as e:
            raise BuildError(f"Invalid towgs84 value: {value}", parameter="towgs84") from e
        if len(shift) == 0:
            return (0.0, 0.0, 0.0)
        if len(shift) not in (3, 7):
            raise BuildError(
                f"towgs84 needs 3 or 7 values, got {len(shift)}", parameter="towgs84"
            )
        return shift

    @staticmethod
    def _float(params: Dict[str, Optional[str]], key: str) -> float:
        try:
            return float(params[key])
        except (TypeError, ValueError) as e:
            raise BuildError(f"Invalid numeric value for {key}: {params[key]}", parameter=key) from e
