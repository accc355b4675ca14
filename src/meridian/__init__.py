"""
Meridian - coordinate reference system resolution and transforms.

This package resolves authority/code pairs, PROJ-style parameter strings
and legacy OGC Well-Known Text into cached CRS objects, and builds
coordinate transforms between them.
"""

__version__ = "0.1.0"

from meridian.core.errors import (
    BuildError,
    DefinitionNotFoundError,
    MeridianException,
    ParseError,
    TransformationError,
)
from meridian.core.factory import CRSFactory, get_default_factory
from meridian.core.registry import DefinitionRegistry, get_default_registry
from meridian.core.crs import Projection, ProjectionTransform
from meridian.models.crs import CRSKey

__all__ = [
    "BuildError",
    "CRSFactory",
    "CRSKey",
    "DefinitionNotFoundError",
    "DefinitionRegistry",
    "MeridianException",
    "ParseError",
    "Projection",
    "ProjectionTransform",
    "TransformationError",
    "get_default_factory",
    "get_default_registry",
]
