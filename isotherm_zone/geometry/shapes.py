"""
Geometric Shapes Module
========================

Pure geographic representations - NO state, NO side effects.

Design:
- Immutable shapes (frozen dataclass pattern)
- Derived values (centroid, bounding box) computed once at construction
- Vertices stored as read-only numpy array (lat, lon)
"""

import numpy as np
from dataclasses import dataclass, asdict
from typing import Dict, List, Sequence, Tuple

MIN_VERTICES = 3
MAX_VERTICES = 12


class InvalidGeometryError(ValueError):
    """Raised when vertices cannot form a region polygon."""
    pass


@dataclass(frozen=True)
class BoundingBox:
    """
    Immutable coordinate extrema of a region.

    Invariants:
        - south <= north
        - west <= east
    """

    north: float
    south: float
    east: float
    west: float

    def __post_init__(self):
        if self.south > self.north:
            raise ValueError(f"south ({self.south}) must be <= north ({self.north})")
        if self.west > self.east:
            raise ValueError(f"west ({self.west}) must be <= east ({self.east})")

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a coordinate falls inside the box (edges included)."""
        return (
            self.south <= latitude <= self.north
            and self.west <= longitude <= self.east
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class RegionGeometry:
    """
    Immutable region polygon with derived centroid and bounding box.

    Vertices are not editable after construction, so derived values are
    computed once in __post_init__.

    Attributes:
        vertices: Nx2 array of (latitude, longitude), 3 <= N <= 12

    Example:
        >>> geometry = RegionGeometry.from_points([(0, 0), (0, 2), (2, 2), (2, 0)])
        >>> geometry.centroid
        (1.0, 1.0)
    """

    vertices: np.ndarray

    def __post_init__(self):
        vertices = np.asarray(self.vertices, dtype=float)

        if vertices.ndim != 2 or vertices.shape[1] != 2:
            raise InvalidGeometryError(
                f"vertices must be Nx2 (lat, lon) array, got shape {vertices.shape}"
            )
        if not MIN_VERTICES <= len(vertices) <= MAX_VERTICES:
            raise InvalidGeometryError(
                f"Region must have between {MIN_VERTICES} and {MAX_VERTICES} "
                f"vertices, got {len(vertices)}"
            )
        if not np.all(np.isfinite(vertices)):
            raise InvalidGeometryError("vertices must be finite numbers")

        latitudes, longitudes = vertices[:, 0], vertices[:, 1]
        if np.any(np.abs(latitudes) > 90):
            raise InvalidGeometryError(f"latitude out of range [-90, 90]: {latitudes.tolist()}")
        if np.any(np.abs(longitudes) > 180):
            raise InvalidGeometryError(f"longitude out of range [-180, 180]: {longitudes.tolist()}")

        vertices.flags.writeable = False
        object.__setattr__(self, 'vertices', vertices)

        centroid = vertices.mean(axis=0)
        object.__setattr__(self, '_centroid', (float(centroid[0]), float(centroid[1])))
        object.__setattr__(self, '_bounding_box', BoundingBox(
            north=float(latitudes.max()),
            south=float(latitudes.min()),
            east=float(longitudes.max()),
            west=float(longitudes.min()),
        ))

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> 'RegionGeometry':
        """Build geometry from a sequence of (lat, lon) pairs."""
        if len(points) == 0:
            raise InvalidGeometryError("Region must have at least 3 vertices, got 0")
        return cls(vertices=np.array([tuple(p) for p in points], dtype=float))

    @property
    def centroid(self) -> Tuple[float, float]:
        """Unweighted mean of vertex coordinates (lat, lon)."""
        return self._centroid

    @property
    def bounding_box(self) -> BoundingBox:
        return self._bounding_box

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    def to_points(self) -> List[Tuple[float, float]]:
        return [(float(lat), float(lon)) for lat, lon in self.vertices]

    def __eq__(self, other) -> bool:
        if not isinstance(other, RegionGeometry):
            return NotImplemented
        return np.array_equal(self.vertices, other.vertices)

    def __hash__(self) -> int:
        return hash(self.vertices.tobytes())
