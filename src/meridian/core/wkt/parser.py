"""
Legacy OGC Well-Known Text (WKT1) parser.

Supports ``GEOGCS`` and ``PROJCS`` roots. ``GEOCCS`` is recognized but
unsupported, and ``VERT_CS``, ``LOCAL_CS``, ``COMPD_CS`` and ``FITTED_CS``
are rejected by name. Parse trees convert to PROJ-style parameter tokens
with :func:`to_parameters` so WKT and raw definitions build the same way.
"""

import logging
import math
import re
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from meridian.core.errors import ParseError
from meridian.core.parameters import format_parameter, format_value
from meridian.core.wkt.cursor import Element, TokenKind, parse_element
from meridian.models.crs import (
    ANGULAR_UNITS,
    LINEAR_UNITS,
    METRE,
    RADIAN,
    AuthorityInfo,
    Axis,
    Datum,
    Ellipsoid,
    GeographicDefinition,
    PrimeMeridian,
    ProjectedDefinition,
    Unit,
)
from meridian.providers.base import MathProvider
from meridian.utils.logging import log_performance

logger = logging.getLogger(__name__)

CRSDefinitionTree = Union[GeographicDefinition, ProjectedDefinition]

# Root keywords that are valid WKT1 but have no implementation
REJECTED_ROOTS = frozenset(["VERT_CS", "LOCAL_CS", "COMPD_CS", "FITTED_CS"])

_WKT_ROOT = re.compile(r"\s*[A-Z][A-Z0-9_]*\s*[\[(]")


class Parameter(Enum):
    """PROJECTION parameters understood by the parser, valued by PROJ key."""

    central_meridian = "lon_0"
    latitude_of_origin = "lat_0"
    scale_factor = "k_0"
    false_easting = "x_0"
    false_northing = "y_0"


def is_wkt(text: str) -> bool:
    """
    Check whether text is structurally WKT.

    Args:
        text: Definition text

    Returns:
        True if the text opens with ``KEYWORD[`` or ``KEYWORD(``
    """
    return bool(_WKT_ROOT.match(text))


class WKTParser:
    """
    Parse WKT text into geographic or projected definition trees.

    Projection names are resolved against the math provider's registry,
    so the parser needs the provider that will later build the CRS.
    """

    def __init__(self, provider: MathProvider) -> None:
        """
        Initialize WKT parser.

        Args:
            provider: Math provider used to resolve projection names
        """
        self.provider = provider
        self._roots: Dict[str, Callable[[Element], CRSDefinitionTree]] = {
            "GEOGCS": self._parse_geogcs,
            "PROJCS": self._parse_projcs,
            "GEOCCS": self._parse_geoccs,
        }

    @log_performance(log_level=logging.DEBUG)
    def parse(self, text: str) -> CRSDefinitionTree:
        """
        Parse WKT text.

        Args:
            text: WKT text with a GEOGCS or PROJCS root

        Returns:
            GeographicDefinition or ProjectedDefinition

        Raises:
            ParseError: If the text is malformed or uses an unsupported form
        """
        root = parse_element(text)

        if root.keyword in REJECTED_ROOTS:
            raise root.parse_failed(f"Unsupported WKT keyword: {root.keyword}")

        parse_root = self._roots.get(root.keyword)
        if parse_root is None:
            raise root.parse_failed(f"Unknown WKT keyword: {root.keyword}")

        definition = parse_root(root)
        logger.debug(f"Parsed WKT {root.keyword} '{definition.name}'")
        return definition

    def _parse_geogcs(self, element: Element) -> GeographicDefinition:
        name = element.pull_string("name")
        authority = _parse_authority(element, name)
        unit = _parse_angular_unit(element, RADIAN)
        prime_meridian = _parse_primem(element)
        datum = _parse_datum(element)
        axes = _parse_axes(element)
        element.close()

        return GeographicDefinition(
            name=name,
            authority=authority,
            datum=datum,
            unit=unit,
            prime_meridian=prime_meridian,
            axes=axes,
        )

    def _parse_projcs(self, element: Element) -> ProjectedDefinition:
        name = element.pull_string("name")
        base = self._parse_geogcs(element.pull_element("GEOGCS"))
        projection, method = self._parse_projection(element)
        parameters = _parse_parameters(element)
        unit, units_code = _parse_linear_unit(element)
        axes = _parse_axes(element)
        authority = _parse_authority(element, name)
        element.close()

        return ProjectedDefinition(
            name=name,
            authority=authority,
            base=base,
            projection=projection,
            method=method,
            parameters=parameters,
            unit=unit,
            units_code=units_code,
            axes=axes,
        )

    def _parse_projection(self, parent: Element) -> Tuple[str, str]:
        element = parent.pull_element("PROJECTION")
        name = element.pull_string("name")
        _parse_authority(element, name)
        element.close()

        method = self.provider.find_projection(name)
        if method is None:
            raise element.parse_failed(f"Unsupported projection: {name}")
        return name, method

    def _parse_geoccs(self, element: Element) -> CRSDefinitionTree:
        raise element.parse_failed(f"Unsupported WKT keyword: {element.keyword}")


def _parse_authority(parent: Element, name: str) -> AuthorityInfo:
    element = parent.pull_optional_element("AUTHORITY")
    if element is None:
        return AuthorityInfo(name=name)

    authority = element.pull_string("name")
    # The code is usually quoted but may be a bare integer
    code = element.pull_optional_string("code")
    if code is None:
        code = str(element.pull_integer("code"))
    element.close()

    return AuthorityInfo(name=f"{authority}:{name}", identifier=f"{authority}:{code}")


def _pull_unit(parent: Element) -> Optional[Tuple[str, float]]:
    element = parent.pull_optional_element("UNIT")
    if element is None:
        return None
    name = element.pull_string("name")
    factor = element.pull_double("factor")
    _parse_authority(element, name)
    element.close()
    return name, factor


def _parse_angular_unit(parent: Element, default: Unit) -> Unit:
    pulled = _pull_unit(parent)
    if pulled is None:
        return default

    name, factor = pulled
    unit = ANGULAR_UNITS.get(name.lower())
    if unit is not None:
        return unit
    if factor != 1:
        raise ParseError(
            f"Unsupported angular unit: {name} ({factor!r} radians)", keyword="UNIT"
        )
    return default


def _parse_linear_unit(parent: Element) -> Tuple[Unit, Optional[str]]:
    pulled = _pull_unit(parent)
    if pulled is None:
        return METRE, "m"

    name, factor = pulled
    known = LINEAR_UNITS.get(name.lower())
    if known is not None:
        return known
    return Unit(name, factor), None


def _parse_primem(parent: Element) -> PrimeMeridian:
    element = parent.pull_element("PRIMEM")
    name = element.pull_string("name")
    longitude = element.pull_double("longitude")
    _parse_authority(element, name)
    element.close()
    return PrimeMeridian(name=name, longitude=longitude)


def _parse_datum(parent: Element) -> Datum:
    element = parent.pull_element("DATUM")
    name = element.pull_string("name")
    ellipsoid = _parse_spheroid(element)
    to_wgs84 = _parse_towgs84(element)
    _parse_authority(element, name)

    # Vendor syntax: seven bare numbers instead of a TOWGS84 element
    if to_wgs84 is None and element.peek() is TokenKind.NUMBER:
        to_wgs84 = tuple(
            element.pull_double(key) for key in ("dx", "dy", "dz", "ex", "ey", "ez", "ppm")
        )
    element.close()

    return Datum(name=name, ellipsoid=ellipsoid, to_wgs84=to_wgs84)


def _parse_spheroid(parent: Element) -> Ellipsoid:
    element = parent.pull_element("SPHEROID")
    name = element.pull_string("name")
    semi_major_axis = element.pull_double("semiMajorAxis")
    inverse_flattening = element.pull_double("inverseFlattening")
    _parse_authority(element, name)
    element.close()

    # Zero inverse flattening is the OGC convention for a sphere
    if inverse_flattening == 0:
        inverse_flattening = math.inf

    return Ellipsoid(name, semi_major_axis, inverse_flattening)


def _parse_towgs84(parent: Element) -> Optional[Tuple[float, ...]]:
    element = parent.pull_optional_element("TOWGS84")
    if element is None:
        return None

    if element.peek() is None:
        return (0.0, 0.0, 0.0)

    shift = [element.pull_double(key) for key in ("dx", "dy", "dz")]
    if element.peek() is not None:
        shift.extend(element.pull_double(key) for key in ("ex", "ey", "ez", "ppm"))
    element.close()
    return tuple(shift)


def _parse_parameters(parent: Element) -> Tuple[str, ...]:
    parameters: List[str] = []
    while True:
        element = parent.pull_optional_element("PARAMETER")
        if element is None:
            return tuple(parameters)

        name = element.pull_string("name")
        value = element.pull_double("value")
        element.close()

        try:
            parameter = Parameter[name]
        except KeyError:
            raise element.parse_failed(f"Unsupported projection parameter: {name}") from None

        parameters.append(f"{parameter.value}={format_value(value)}")


def _parse_axes(parent: Element) -> Tuple[Axis, ...]:
    axes: List[Axis] = []
    while True:
        element = parent.pull_optional_element("AXIS")
        if element is None:
            return tuple(axes)
        name = element.pull_string("name")
        orientation = element.pull_string("orientation")
        element.close()
        axes.append(Axis(name=name, orientation=orientation))


def _ellipsoid_tokens(ellipsoid: Ellipsoid) -> List[str]:
    tokens = [format_parameter("a", ellipsoid.semi_major_axis)]
    if ellipsoid.is_sphere:
        tokens.append(format_parameter("b", ellipsoid.semi_major_axis))
    else:
        tokens.append(format_parameter("rf", ellipsoid.inverse_flattening))
    return tokens


def _datum_tokens(datum: Datum) -> List[str]:
    tokens = _ellipsoid_tokens(datum.ellipsoid)
    if datum.to_wgs84 is not None:
        tokens.append(
            format_parameter("towgs84", ",".join(format_value(v) for v in datum.to_wgs84))
        )
    return tokens


def to_parameters(definition: CRSDefinitionTree) -> Tuple[str, ...]:
    """
    Convert a parse tree to PROJ-style parameter tokens.

    Projection parameters keep the ``key=value`` form they were emitted
    in; structural parameters are written as ``+key=value``. The prime
    meridian is not carried over.

    Args:
        definition: GeographicDefinition or ProjectedDefinition

    Returns:
        Tuple of parameter tokens
    """
    if isinstance(definition, GeographicDefinition):
        return tuple(
            [format_parameter("proj", "longlat")]
            + _datum_tokens(definition.datum)
            + [format_parameter("no_defs")]
        )

    tokens = [format_parameter("proj", definition.method)]
    tokens.extend(definition.parameters)
    tokens.extend(_datum_tokens(definition.datum))
    if definition.units_code is not None:
        tokens.append(format_parameter("units", definition.units_code))
    else:
        tokens.append(format_parameter("to_meter", definition.unit.factor))
    tokens.append(format_parameter("no_defs"))
    return tuple(tokens)


def parse(text: str, provider: Optional[MathProvider] = None) -> CRSDefinitionTree:
    """
    Parse WKT text (convenience function).

    Args:
        text: WKT text
        provider: Math provider for projection lookup (defaults to pyproj)

    Returns:
        GeographicDefinition or ProjectedDefinition

    Raises:
        ParseError: If the text cannot be parsed
    """
    if provider is None:
        from meridian.providers import get_default_provider

        provider = get_default_provider()
    return WKTParser(provider).parse(text)
