"""
Axis assignment: binds cube dimensions to the x/y/z axes of a view.

The assignment is not part of the cube's own state. Pivot consumes it to
decide the new grouping axes.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from olapcube.cube.schema import Cube


@dataclass(frozen=True)
class AxisAssignment:
    """
    Attributes:
        x, y, z: Dimension names bound to each axis (None if unbound)
        measure: Measure shown in the view (None: the cube's first measure)
    """
    x: Optional[str] = None
    y: Optional[str] = None
    z: Optional[str] = None
    measure: Optional[str] = None

    @property
    def axes(self) -> List[str]:
        """Bound dimension names in x, y, z order, duplicates removed."""
        names = []
        for name in (self.x, self.y, self.z):
            if name is not None and name not in names:
                names.append(name)
        return names

    def resolve_measure(self, cube: Cube) -> Optional[str]:
        if self.measure is not None:
            return self.measure
        return cube.measures[0].name if cube.measures else None

    @classmethod
    def default_for(cls, cube: Cube) -> "AxisAssignment":
        """First three dimensions on x, y, z and the first measure."""
        names = cube.dimension_names
        return cls(
            x=names[0] if len(names) > 0 else None,
            y=names[1] if len(names) > 1 else None,
            z=names[2] if len(names) > 2 else None,
            measure=cube.measures[0].name if cube.measures else None
        )

    def describe(self) -> str:
        parts = [f"{axis}={name}" for axis, name in
                 (("x", self.x), ("y", self.y), ("z", self.z)) if name]
        if self.measure:
            parts.append(f"measure={self.measure}")
        return ", ".join(parts) if parts else "no axes"

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "z": self.z, "measure": self.measure}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AxisAssignment":
        return cls(
            x=data.get("x"),
            y=data.get("y"),
            z=data.get("z"),
            measure=data.get("measure")
        )
