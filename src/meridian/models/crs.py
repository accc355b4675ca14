"""
Data models for Coordinate Reference System (CRS) management.

This module defines the immutable value objects shared by the WKT parser,
the definition registry, the CRS factory and the transform pipeline.
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

Code = Union[str, int]


@dataclass(frozen=True)
class CRSKey:
    """
    Identifies one CRS definition and one cached CRS object.

    Attributes:
        authority: Case-sensitive authority name (e.g., 'EPSG')
        code: Authority-specific code, always stored as a string
    """

    authority: str
    code: str

    @classmethod
    def of(cls, authority: str, code: Code) -> "CRSKey":
        """
        Create a key, normalizing numeric codes to strings.

        Args:
            authority: Authority name
            code: Numeric or string code

        Returns:
            CRSKey instance
        """
        return cls(authority=str(authority), code=str(code).strip())

    def __str__(self) -> str:
        """String representation."""
        return f"{self.authority}:{self.code}"


@dataclass(frozen=True)
class Unit:
    """
    Unit of measure.

    Attributes:
        name: Unit name
        factor: Conversion factor to radians (angular) or metres (linear)
    """

    name: str
    factor: float


RADIAN = Unit("radian", 1.0)
DEGREE = Unit("degree", math.pi / 180.0)
GRAD = Unit("grad", math.pi / 200.0)
ARC_MINUTE = Unit("arc-minute", math.pi / 10800.0)
ARC_SECOND = Unit("arc-second", math.pi / 648000.0)
MICRORADIAN = Unit("microradian", 1e-6)

METRE = Unit("metre", 1.0)
KILOMETRE = Unit("kilometre", 1000.0)
FOOT = Unit("foot", 0.3048)
US_SURVEY_FOOT = Unit("US survey foot", 1200.0 / 3937.0)

# Angular unit names as they appear in WKT, lower-cased
ANGULAR_UNITS = {
    "radian": RADIAN,
    "radians": RADIAN,
    "rad": RADIAN,
    "degree": DEGREE,
    "degrees": DEGREE,
    "deg": DEGREE,
    "decimal degree": DEGREE,
    "grad": GRAD,
    "grads": GRAD,
    "gon": GRAD,
    "arc-minute": ARC_MINUTE,
    "arc minute": ARC_MINUTE,
    "arc-second": ARC_SECOND,
    "arc second": ARC_SECOND,
    "microradian": MICRORADIAN,
}

# Linear unit names mapped to their PROJ "units" identifier
LINEAR_UNITS = {
    "metre": (METRE, "m"),
    "meter": (METRE, "m"),
    "metres": (METRE, "m"),
    "meters": (METRE, "m"),
    "m": (METRE, "m"),
    "kilometre": (KILOMETRE, "km"),
    "kilometer": (KILOMETRE, "km"),
    "foot": (FOOT, "ft"),
    "feet": (FOOT, "ft"),
    "foot_intl": (FOOT, "ft"),
    "international foot": (FOOT, "ft"),
    "us survey foot": (US_SURVEY_FOOT, "us-ft"),
    "foot_us": (US_SURVEY_FOOT, "us-ft"),
    "us_survey_foot": (US_SURVEY_FOOT, "us-ft"),
}


@dataclass(frozen=True)
class Ellipsoid:
    """
    Earth-shape model underlying a datum.

    Attributes:
        name: Ellipsoid name
        semi_major_axis: Semi-major axis in metres
        inverse_flattening: Inverse flattening, ``math.inf`` for a sphere
    """

    name: str
    semi_major_axis: float
    inverse_flattening: float

    @property
    def is_sphere(self) -> bool:
        """True when the ellipsoid has no flattening."""
        return math.isinf(self.inverse_flattening)

    @property
    def flattening(self) -> float:
        """Flattening (0 for a sphere)."""
        if self.is_sphere:
            return 0.0
        return 1.0 / self.inverse_flattening

    @property
    def semi_minor_axis(self) -> float:
        """Semi-minor axis in metres."""
        return self.semi_major_axis * (1.0 - self.flattening)

    @property
    def eccentricity_squared(self) -> float:
        """First eccentricity squared."""
        f = self.flattening
        return 2.0 * f - f * f

    def is_equivalent(self, other: "Ellipsoid") -> bool:
        """
        Compare shape parameters, ignoring the name.

        Args:
            other: Ellipsoid to compare with

        Returns:
            True if both describe the same shape
        """
        if not math.isclose(self.semi_major_axis, other.semi_major_axis, rel_tol=1e-12):
            return False
        if self.is_sphere or other.is_sphere:
            return self.is_sphere and other.is_sphere
        return math.isclose(self.inverse_flattening, other.inverse_flattening, rel_tol=1e-12)


@dataclass(frozen=True)
class Datum:
    """
    Geodetic datum: an ellipsoid plus an optional shift to WGS 84.

    Attributes:
        name: Datum name
        ellipsoid: Datum ellipsoid
        to_wgs84: 3 or 7 Bursa-Wolf parameters (dx, dy, dz in metres,
            rx, ry, rz in arc-seconds, scale in ppm), or None when no
            shift is known
    """

    name: str
    ellipsoid: Ellipsoid
    to_wgs84: Optional[Tuple[float, ...]] = None

    def __post_init__(self) -> None:
        """Validate and normalize the Bursa-Wolf parameters."""
        if self.to_wgs84 is not None:
            params = tuple(float(value) for value in self.to_wgs84)
            if len(params) not in (3, 7):
                raise ValueError(
                    f"Datum {self.name!r} needs 3 or 7 TOWGS84 parameters, got {len(params)}"
                )
            object.__setattr__(self, "to_wgs84", params)

    @property
    def has_transform(self) -> bool:
        """True if a Bursa-Wolf shift to WGS 84 is known."""
        return self.to_wgs84 is not None

    @property
    def helmert_parameters(self) -> Tuple[float, ...]:
        """The shift padded to 7 parameters (zeros if none is known)."""
        params = self.to_wgs84 or ()
        return tuple(params) + (0.0,) * (7 - len(params))

    def is_equivalent(self, other: "Datum") -> bool:
        """
        Compare datums by value, ignoring names.

        Args:
            other: Datum to compare with

        Returns:
            True if ellipsoid and shift parameters match
        """
        if not self.ellipsoid.is_equivalent(other.ellipsoid):
            return False
        if self.has_transform != other.has_transform:
            return False
        return self.helmert_parameters == other.helmert_parameters


WGS84_ELLIPSOID = Ellipsoid("WGS 84", 6378137.0, 298.257223563)
WGS84_DATUM = Datum("WGS84", WGS84_ELLIPSOID, (0.0, 0.0, 0.0))


@dataclass(frozen=True)
class PrimeMeridian:
    """Prime meridian as read from WKT (never applied to the datum)."""

    name: str
    longitude: float


@dataclass(frozen=True)
class Axis:
    """Coordinate system axis as read from WKT."""

    name: str
    orientation: str


@dataclass(frozen=True)
class AuthorityInfo:
    """
    Naming properties derived from a WKT AUTHORITY element.

    Attributes:
        name: ``{name}`` without an authority, ``{authority}:{name}`` with one
        identifier: ``{authority}:{code}``, or None without an authority
    """

    name: str
    identifier: Optional[str] = None


@dataclass(frozen=True)
class GeographicDefinition:
    """Parse tree of a WKT ``GEOGCS`` element."""

    name: str
    authority: AuthorityInfo
    datum: Datum
    unit: Unit = RADIAN
    prime_meridian: Optional[PrimeMeridian] = None
    axes: Tuple[Axis, ...] = ()

    @property
    def is_geographic(self) -> bool:
        """Geographic definitions are always geographic."""
        return True


@dataclass(frozen=True)
class ProjectedDefinition:
    """
    Parse tree of a WKT ``PROJCS`` element.

    Attributes:
        name: CRS name
        authority: Naming properties from AUTHORITY
        base: Base geographic definition
        projection: Projection name as written in the WKT
        method: Projection method name registered with the math provider
        parameters: ``key=value`` strings in encounter order
        unit: Linear unit
        units_code: PROJ ``units`` identifier, or None if only a factor is known
        axes: Axes declared on the projected CRS
    """

    name: str
    authority: AuthorityInfo
    base: GeographicDefinition
    projection: str
    method: str
    parameters: Tuple[str, ...] = ()
    unit: Unit = METRE
    units_code: Optional[str] = "m"
    axes: Tuple[Axis, ...] = ()

    @property
    def datum(self) -> Datum:
        """Datum of the base geographic definition."""
        return self.base.datum

    @property
    def is_geographic(self) -> bool:
        """Projected definitions are never geographic."""
        return False


@dataclass(frozen=True)
class CRSDefinition:
    """
    Definition a CRS object was built from.

    Attributes:
        parameters: PROJ-style parameter tokens handed to the math provider
        name: Optional human-readable name
        wkt: Source WKT text, if the definition was parsed from WKT
    """

    parameters: Tuple[str, ...] = ()
    name: Optional[str] = None
    wkt: Optional[str] = field(default=None, repr=False)

    @property
    def parameter_string(self) -> str:
        """Parameters joined by single spaces."""
        return " ".join(self.parameters)

    @property
    def is_wkt(self) -> bool:
        """True if parsed from WKT text."""
        return self.wkt is not None


@dataclass(frozen=True)
class BoundingBox:
    """
    Spatial bounding box with optional CRS awareness.

    Attributes:
        min_x: Minimum X coordinate (or longitude)
        min_y: Minimum Y coordinate (or latitude)
        max_x: Maximum X coordinate (or longitude)
        max_y: Maximum Y coordinate (or latitude)
        crs: Key of the CRS the box is expressed in
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float
    crs: Optional[CRSKey] = None

    def __post_init__(self) -> None:
        """Validate bounding box."""
        if self.min_x > self.max_x:
            raise ValueError(f"min_x ({self.min_x}) must be <= max_x ({self.max_x})")
        if self.min_y > self.max_y:
            raise ValueError(f"min_y ({self.min_y}) must be <= max_y ({self.max_y})")

    @property
    def width(self) -> float:
        """Calculate width of bounding box."""
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        """Calculate height of bounding box."""
        return self.max_y - self.min_y

    def contains(self, x: float, y: float) -> bool:
        """Check if point is within bounding box."""
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def to_tuple(self) -> Tuple[float, float, float, float]:
        """Convert to tuple (min_x, min_y, max_x, max_y)."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def __str__(self) -> str:
        """String representation."""
        crs = f" [{self.crs}]" if self.crs else ""
        return f"BBox({self.min_x:.6f}, {self.min_y:.6f}, {self.max_x:.6f}, {self.max_y:.6f}){crs}"
