"""
Resolved CRS objects.
"""

from dataclasses import dataclass, field
from typing import Optional

from meridian.core.crs.transform import ProjectionTransform
from meridian.models.crs import CRSDefinition, CRSKey, Datum
from meridian.providers.base import MathProvider, ProjectionHandle


@dataclass(frozen=True)
class Projection:
    """
    A CRS resolved from its definition, ready to transform coordinates.

    Instances are immutable and shared by every caller that resolves the
    same key. Equality compares the key and the definition only.

    Attributes:
        key: Authority and code the CRS was resolved under
        definition: Definition the CRS was built from
        handle: Math provider handle for forward/inverse projection
        provider: Math provider that built the handle
    """

    key: CRSKey
    definition: CRSDefinition
    handle: ProjectionHandle = field(compare=False, repr=False)
    provider: MathProvider = field(compare=False, repr=False)

    @property
    def authority(self) -> str:
        """Authority name."""
        return self.key.authority

    @property
    def code(self) -> str:
        """Authority code."""
        return self.key.code

    @property
    def name(self) -> Optional[str]:
        """Name from the definition, if any."""
        return self.definition.name

    @property
    def datum(self) -> Datum:
        """Datum the CRS is referenced to."""
        return self.handle.datum

    @property
    def is_geographic(self) -> bool:
        """True for longitude/latitude systems."""
        return self.handle.is_geographic

    def get_transformation(self, other: "Projection") -> ProjectionTransform:
        """
        Build a transform from this CRS to another.

        Args:
            other: Target CRS

        Returns:
            ProjectionTransform; identity if both CRS are equal
        """
        return ProjectionTransform(self, other)

    def __str__(self) -> str:
        """String representation."""
        return str(self.key)
