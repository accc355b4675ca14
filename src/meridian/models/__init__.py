"""
Data models and value objects.
"""

from .crs import (
    ANGULAR_UNITS,
    DEGREE,
    LINEAR_UNITS,
    METRE,
    RADIAN,
    WGS84_DATUM,
    WGS84_ELLIPSOID,
    AuthorityInfo,
    Axis,
    BoundingBox,
    CRSDefinition,
    CRSKey,
    Datum,
    Ellipsoid,
    GeographicDefinition,
    PrimeMeridian,
    ProjectedDefinition,
    Unit,
)

__all__ = [
    "ANGULAR_UNITS",
    "DEGREE",
    "LINEAR_UNITS",
    "METRE",
    "RADIAN",
    "WGS84_DATUM",
    "WGS84_ELLIPSOID",
    "AuthorityInfo",
    "Axis",
    "BoundingBox",
    "CRSDefinition",
    "CRSKey",
    "Datum",
    "Ellipsoid",
    "GeographicDefinition",
    "PrimeMeridian",
    "ProjectedDefinition",
    "Unit",
]
