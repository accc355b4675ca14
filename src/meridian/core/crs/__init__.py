"""
Resolved CRS objects and transforms.
"""

from meridian.core.crs.projection import Projection
from meridian.core.crs.transform import DatumShift, HelmertTransform, ProjectionTransform

__all__ = [
    "DatumShift",
    "HelmertTransform",
    "Projection",
    "ProjectionTransform",
]
