"""
Coordinate transformation between resolved CRS objects.

A transform inverse-projects source plane coordinates to geodetic
longitude/latitude, shifts them from the source datum to the target datum
through the WGS 84 hub, and forward-projects into the target plane.
"""

import logging
import math
from typing import TYPE_CHECKING, List, Sequence, Tuple, Union

import numpy as np

from meridian.core.errors import MeridianException, TransformationError
from meridian.models.crs import WGS84_ELLIPSOID, BoundingBox, Datum
from meridian.providers.base import Coordinate, MathProvider

if TYPE_CHECKING:
    from meridian.core.crs.projection import Projection

logger = logging.getLogger(__name__)

ARC_SECONDS_TO_RADIANS = math.pi / 648000.0
PPM = 1e-6

# Each pass shrinks the hub height error by about five orders of magnitude
HUB_HEIGHT_ITERATIONS = 4


def _scalar_or_array(value: np.ndarray) -> Coordinate:
    """Return 0-d results as plain floats."""
    if value.ndim == 0:
        return float(value)
    return value


class HelmertTransform:
    """
    Seven-parameter Bursa-Wolf transform to WGS 84 (position vector convention).

    ``X_wgs84 = T + (1 + s) * R * X`` with small-angle rotation matrix R.
    The inverse uses the exact inverse of the rotation/scale matrix rather
    than negated parameters, so forward followed by inverse is lossless up
    to floating-point round-off.

    Attributes:
        parameters: dx, dy, dz (m), rx, ry, rz (arc-seconds), s (ppm)
    """

    def __init__(self, parameters: Sequence[float]) -> None:
        """
        Initialize Helmert transform.

        Args:
            parameters: 3 or 7 Bursa-Wolf parameters
        """
        if len(parameters) not in (3, 7):
            raise ValueError(f"Helmert transform needs 3 or 7 parameters, got {len(parameters)}")

        padded = list(parameters) + [0.0] * (7 - len(parameters))
        self.parameters = tuple(float(p) for p in padded)

        dx, dy, dz, rx, ry, rz, ds = self.parameters
        rx, ry, rz = (r * ARC_SECONDS_TO_RADIANS for r in (rx, ry, rz))
        scale = 1.0 + ds * PPM

        self.translation = np.array([dx, dy, dz])
        self.matrix = scale * np.array(
            [
                [1.0, -rz, ry],
                [rz, 1.0, -rx],
                [-ry, rx, 1.0],
            ]
        )
        self.inverse_matrix = np.linalg.inv(self.matrix)

    @property
    def is_identity(self) -> bool:
        """True if every parameter is zero."""
        return not any(self.parameters)

    def apply(
        self, x: Coordinate, y: Coordinate, z: Coordinate
    ) -> Tuple[Coordinate, Coordinate, Coordinate]:
        """Transform geocentric coordinates to WGS 84."""
        points, shape = self._stack(x, y, z)
        result = self.matrix @ points + self.translation[:, np.newaxis]
        return self._unstack(result, shape)

    def apply_inverse(
        self, x: Coordinate, y: Coordinate, z: Coordinate
    ) -> Tuple[Coordinate, Coordinate, Coordinate]:
        """Transform WGS 84 geocentric coordinates back to this datum."""
        points, shape = self._stack(x, y, z)
        result = self.inverse_matrix @ (points - self.translation[:, np.newaxis])
        return self._unstack(result, shape)

    @staticmethod
    def _stack(x: Coordinate, y: Coordinate, z: Coordinate) -> Tuple[np.ndarray, Tuple[int, ...]]:
        xs, ys, zs = np.broadcast_arrays(
            np.asarray(x, dtype=float), np.asarray(y, dtype=float), np.asarray(z, dtype=float)
        )
        return np.vstack([xs.ravel(), ys.ravel(), zs.ravel()]), xs.shape

    @staticmethod
    def _unstack(
        result: np.ndarray, shape: Tuple[int, ...]
    ) -> Tuple[Coordinate, Coordinate, Coordinate]:
        x, y, z = (_scalar_or_array(row.reshape(shape)) for row in result)
        return x, y, z

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return f"HelmertTransform({self.parameters})"


class DatumShift:
    """
    Geodetic shift from one datum to another through the WGS 84 hub.

    Points are converted to geocentric coordinates on the source
    ellipsoid, moved to WGS 84 with the source Helmert parameters, moved
    from WGS 84 with the inverse of the target parameters and converted
    back to geodetic coordinates on the target ellipsoid. Output heights
    are dropped.
    """

    def __init__(self, source: Datum, target: Datum, provider: MathProvider) -> None:
        """
        Initialize datum shift.

        Args:
            source: Source datum, with a known shift to WGS 84
            target: Target datum, with a known shift to WGS 84
            provider: Math provider for geocentric conversion
        """
        self.source = source
        self.target = target
        self.provider = provider
        self.to_hub = HelmertTransform(source.helmert_parameters)
        self.from_hub = HelmertTransform(target.helmert_parameters)
        self._source_geocentric = provider.create_geocentric_converter(source.ellipsoid)
        self._target_geocentric = provider.create_geocentric_converter(target.ellipsoid)
        self._hub_geocentric = provider.create_geocentric_converter(WGS84_ELLIPSOID)

    @staticmethod
    def is_required(source: Datum, target: Datum) -> bool:
        """
        Check whether a shift between two datums changes coordinates.

        Returns:
            False when the datums are equal by value or either lacks a shift
        """
        if not source.has_transform or not target.has_transform:
            return False
        return not source.is_equivalent(target)

    def apply(self, lon: Coordinate, lat: Coordinate) -> Tuple[Coordinate, Coordinate]:
        """
        Shift geodetic degrees from the source datum to the target datum.

        Two-dimensional points are placed on the WGS 84 hub ellipsoid: the
        source height is iterated until the hub height is zero. Both
        directions use the same surface, so a shift followed by its
        inverse returns the original point up to round-off.
        """
        height = np.zeros_like(lon, dtype=float) if isinstance(lon, np.ndarray) else 0.0
        for _ in range(HUB_HEIGHT_ITERATIONS):
            x, y, z = self._to_hub(lon, lat, height)
            _, _, hub_height = self._hub_geocentric.to_geodetic(x, y, z)
            height = height - hub_height

        x, y, z = self._to_hub(lon, lat, height)
        x, y, z = self.from_hub.apply_inverse(x, y, z)
        lon, lat, _ = self._target_geocentric.to_geodetic(x, y, z)
        return lon, lat

    def _to_hub(
        self, lon: Coordinate, lat: Coordinate, height: Coordinate
    ) -> Tuple[Coordinate, Coordinate, Coordinate]:
        x, y, z = self._source_geocentric.to_geocentric(lon, lat, height)
        return self.to_hub.apply(x, y, z)

    def inverse(self) -> "DatumShift":
        """Shift in the opposite direction."""
        return DatumShift(self.target, self.source, self.provider)


class ProjectionTransform:
    """
    Reusable transform from one resolved CRS to another.

    Transforms hold no mutable state and may be shared between threads.

    Example:
        >>> wgs84 = factory.get_projection("EPSG", 4326)
        >>> web_mercator = factory.get_projection("EPSG", 3857)
        >>> transform = wgs84.get_transformation(web_mercator)
        >>> x, y = transform.transform(-122.4194, 37.7749)
    """

    def __init__(self, source: "Projection", target: "Projection") -> None:
        """
        Initialize transform.

        Args:
            source: Source CRS
            target: Target CRS
        """
        self.source = source
        self.target = target
        self.is_identity = source == target

        self.datum_shift = None
        if not self.is_identity and DatumShift.is_required(source.datum, target.datum):
            self.datum_shift = DatumShift(source.datum, target.datum, source.provider)

        logger.debug(
            f"Created transform {source.key} -> {target.key} "
            f"(identity={self.is_identity}, datum_shift={self.datum_shift is not None})"
        )

    def transform(self, x: float, y: float) -> Tuple[float, float]:
        """
        Transform a single coordinate.

        Args:
            x: X coordinate (or longitude) in the source CRS
            y: Y coordinate (or latitude) in the source CRS

        Returns:
            Transformed coordinates as tuple (x, y)

        Raises:
            TransformationError: If the point cannot be transformed
        """
        if self.is_identity:
            return x, y

        xx, yy = self._run(x, y)
        if not (math.isfinite(xx) and math.isfinite(yy)):
            raise TransformationError(
                f"Point ({x}, {y}) has no finite image",
                source_crs=str(self.source.key),
                target_crs=str(self.target.key),
            )
        return float(xx), float(yy)

    def transform_batch(
        self,
        x_coords: Union[List[float], np.ndarray],
        y_coords: Union[List[float], np.ndarray],
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Transform a batch of coordinates.

        Points outside either CRS domain come back as non-finite values.

        Args:
            x_coords: Array of X coordinates (or longitudes)
            y_coords: Array of Y coordinates (or latitudes)

        Returns:
            Tuple of transformed coordinate arrays (xx, yy)

        Raises:
            TransformationError: If the arrays differ in length
        """
        x_arr = np.asarray(x_coords, dtype=float)
        y_arr = np.asarray(y_coords, dtype=float)

        if x_arr.shape != y_arr.shape:
            raise TransformationError(
                "x_coords and y_coords must have same length",
                source_crs=str(self.source.key),
                target_crs=str(self.target.key),
            )

        if self.is_identity:
            return x_arr, y_arr

        xx, yy = self._run(x_arr, y_arr)
        return np.asarray(xx, dtype=float), np.asarray(yy, dtype=float)

    def transform_bounds(self, bbox: BoundingBox) -> BoundingBox:
        """
        Transform a bounding box to the target CRS.

        Note: This transforms the corners and creates a new axis-aligned
        bounding box, which may be smaller or larger than the true image
        of the box.

        Args:
            bbox: Bounding box in source CRS

        Returns:
            Transformed bounding box in target CRS

        Raises:
            TransformationError: If a corner cannot be transformed
        """
        corners_x = [bbox.min_x, bbox.max_x, bbox.min_x, bbox.max_x]
        corners_y = [bbox.min_y, bbox.min_y, bbox.max_y, bbox.max_y]

        transformed_x, transformed_y = self.transform_batch(corners_x, corners_y)
        if not (np.all(np.isfinite(transformed_x)) and np.all(np.isfinite(transformed_y))):
            raise TransformationError(
                f"Bounding box {bbox} has no finite image",
                source_crs=str(self.source.key),
                target_crs=str(self.target.key),
            )

        return BoundingBox(
            min_x=float(np.min(transformed_x)),
            min_y=float(np.min(transformed_y)),
            max_x=float(np.max(transformed_x)),
            max_y=float(np.max(transformed_y)),
            crs=self.target.key,
        )

    def inverse(self) -> "ProjectionTransform":
        """Transform from the target CRS back to the source CRS."""
        return ProjectionTransform(self.target, self.source)

    def _run(self, x: Coordinate, y: Coordinate) -> Tuple[Coordinate, Coordinate]:
        try:
            lon, lat = self.source.handle.inverse(x, y)
            if self.datum_shift is not None:
                lon, lat = self.datum_shift.apply(lon, lat)
            return self.target.handle.forward(lon, lat)
        except MeridianException:
            raise
        except Exception as e:
            raise TransformationError(
                f"Transformation failed: {e}",
                source_crs=str(self.source.key),
                target_crs=str(self.target.key),
            ) from e

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return f"ProjectionTransform({self.source.key} -> {self.target.key})"
