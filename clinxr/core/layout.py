"""
Radial layout for the immersive patient picker.

Entities are spread evenly on a horizontal circle around the viewer. The
placement is a pure function of (index, total, radius): index 0 always sits
at angle 0, and the whole ring is recomputed when the entity list changes.
"""

import math
from typing import List, NamedTuple, Sequence, Tuple, TypeVar

from clinxr.core.config import PATIENT_RING_ELEVATION, PATIENT_RING_RADIUS

T = TypeVar("T")


class LayoutPoint(NamedTuple):
    x: float
    y: float
    z: float

    def as_attribute(self) -> str:
        """Space-separated form used by scene-graph position attributes."""
        return f"{self.x:g} {self.y:g} {self.z:g}"


def position(index: int, total: int, radius: float = PATIENT_RING_RADIUS,
             elevation: float = PATIENT_RING_ELEVATION) -> LayoutPoint:
    """
    Place entity `index` of `total` on a ring of the given radius.

    Raises:
        ValueError: If `total` is not positive or `index` is out of range.
    """
    if total <= 0:
        raise ValueError("Cannot lay out a ring of zero entities")
    if not 0 <= index < total:
        raise ValueError(f"Index {index} outside ring of {total}")

    angle = (index / total) * 2 * math.pi
    return LayoutPoint(math.cos(angle) * radius, elevation, math.sin(angle) * radius)


def layout_ring(items: Sequence[T], radius: float = PATIENT_RING_RADIUS) -> List[Tuple[T, LayoutPoint]]:
    """Pair each item with its ring position. An empty sequence yields no layout."""
    total = len(items)
    if total == 0:
        return []
    return [(item, position(i, total, radius)) for i, item in enumerate(items)]
