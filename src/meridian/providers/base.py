"""
Math provider interfaces.

The resolution and caching core never evaluates projection formulas
itself. It asks a :class:`MathProvider` for projection handles and
geodetic/geocentric converters, so the core can run against pyproj or
against a deterministic fake in tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence, Tuple

from meridian.models.crs import Datum, Ellipsoid

# Scalars or numpy arrays; handles must accept both
Coordinate = Any


class ProjectionHandle(ABC):
    """
    Forward and inverse projection for one CRS.

    Geodetic coordinates are longitude/latitude in decimal degrees on the
    handle's own datum; plane coordinates are in the CRS units.
    """

    def __init__(self, name: str, datum: Datum) -> None:
        """
        Initialize the handle.

        Args:
            name: Projection method name (e.g., 'tmerc', 'longlat')
            datum: Datum the CRS is referenced to
        """
        self.name = name
        self.datum = datum

    @property
    def is_geographic(self) -> bool:
        """True if plane coordinates are geodetic longitude/latitude."""
        return False

    @abstractmethod
    def forward(self, lon: Coordinate, lat: Coordinate) -> Tuple[Coordinate, Coordinate]:
        """Project geodetic longitude/latitude to plane x/y."""

    @abstractmethod
    def inverse(self, x: Coordinate, y: Coordinate) -> Tuple[Coordinate, Coordinate]:
        """Unproject plane x/y to geodetic longitude/latitude."""

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return f"{self.__class__.__name__}(name={self.name!r}, datum={self.datum.name!r})"


class GeographicHandle(ProjectionHandle):
    """Handle for longitude/latitude systems: both directions are identity."""

    @property
    def is_geographic(self) -> bool:
        """Geographic handles pass coordinates through."""
        return True

    def forward(self, lon: Coordinate, lat: Coordinate) -> Tuple[Coordinate, Coordinate]:
        """Return the input unchanged."""
        return lon, lat

    def inverse(self, x: Coordinate, y: Coordinate) -> Tuple[Coordinate, Coordinate]:
        """Return the input unchanged."""
        return x, y


class GeocentricConverter(ABC):
    """Geodetic (lon, lat, h) to geocentric (X, Y, Z) conversion on one ellipsoid."""

    def __init__(self, ellipsoid: Ellipsoid) -> None:
        self.ellipsoid = ellipsoid

    @abstractmethod
    def to_geocentric(
        self, lon: Coordinate, lat: Coordinate, height: Coordinate = 0.0
    ) -> Tuple[Coordinate, Coordinate, Coordinate]:
        """Convert degrees and metres to earth-centred X/Y/Z metres."""

    @abstractmethod
    def to_geodetic(
        self, x: Coordinate, y: Coordinate, z: Coordinate
    ) -> Tuple[Coordinate, Coordinate, Coordinate]:
        """Convert earth-centred X/Y/Z metres to degrees and metres."""


class MathProvider(ABC):
    """
    Capability interface for projection math.

    Implementations raise :class:`meridian.core.errors.BuildError` from
    :meth:`create_projection` when a parameter is not recognized or the
    projection has no registered implementation.
    """

    @abstractmethod
    def find_projection(self, name: str) -> Optional[str]:
        """
        Look up a projection by exact name.

        Args:
            name: Projection name as written in WKT or a ``+proj`` value

        Returns:
            The registered method name, or None if unknown
        """

    @abstractmethod
    def create_projection(self, parameters: Sequence[str]) -> ProjectionHandle:
        """
        Build a projection handle from parameter tokens.

        Args:
            parameters: ``+key=value`` / ``key=value`` tokens

        Returns:
            Projection handle

        Raises:
            BuildError: If any parameter is rejected
        """

    @abstractmethod
    def create_geocentric_converter(self, ellipsoid: Ellipsoid) -> GeocentricConverter:
        """
        Build a geodetic/geocentric converter for an ellipsoid.

        Args:
            ellipsoid: Ellipsoid to convert on

        Returns:
            Geocentric converter
        """
