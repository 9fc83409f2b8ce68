"""
Geometry Layer
==============

Bounded Context: Pure geographic shapes.

Responsibilities:
- Region polygon representation (immutable)
- Derived centroid and bounding box
- NO state, NO classification, NO drawing
"""

from isotherm_zone.geometry.shapes import (
    BoundingBox,
    InvalidGeometryError,
    RegionGeometry,
    MIN_VERTICES,
    MAX_VERTICES,
)

__all__ = [
    "BoundingBox",
    "InvalidGeometryError",
    "RegionGeometry",
    "MIN_VERTICES",
    "MAX_VERTICES",
]
