"""
Cube value types: dimensions, hierarchies, measures, cells and the cube.

A cube C = <D, M, F> holds ordered dimensions D, ordered measures M and the
fact cells F. Every type here is an immutable value: operators never modify
a cube, they build a new one with ``Cube.replace``.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from olapcube.cube.scalars import unique_in_order


class DimensionKind(Enum):
    """How the values of a dimension are interpreted."""
    CATEGORICAL = "categorical"
    NUMERICAL = "numerical"
    TEMPORAL = "temporal"


class AggregateFunction(Enum):
    """Supported aggregate functions for measures."""
    SUM = "sum"
    AVERAGE = "average"
    COUNT = "count"
    MIN = "min"
    MAX = "max"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ("avg", "mean"):
                return cls.AVERAGE
            for member in cls:
                if member.value == text:
                    return member
        return None


@dataclass(frozen=True)
class Hierarchy:
    """
    Level structure of a hierarchical dimension.

    Attributes:
        levels: Level names, top-down (e.g. Year, Month, Day)
        parent_map: Member at a finer level -> its parent one level up
        child_map: Member -> its direct children one level down
        member_values: Member -> the source value it was keyed from, when
            that value is not the member text itself (e.g. a numeric Category)

    The two maps are duals of each other; build instances with
    ``from_pairs`` so they stay consistent.
    """
    levels: Tuple[str, ...]
    parent_map: Dict[str, str] = field(default_factory=dict)
    child_map: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    member_values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_pairs(cls, levels: Sequence[str],
                   pairs: Iterable[Tuple[str, str]],
                   member_values: Optional[Dict[str, Any]] = None) -> "Hierarchy":
        """Build a hierarchy from (child, parent) member pairs."""
        parent_map: Dict[str, str] = {}
        children: Dict[str, List[str]] = {}
        for child, parent in pairs:
            if child in parent_map:
                # first parent wins; a member has exactly one parent
                continue
            parent_map[child] = parent
            children.setdefault(parent, []).append(child)
        child_map = {parent: tuple(kids) for parent, kids in children.items()}
        return cls(levels=tuple(levels), parent_map=parent_map, child_map=child_map,
                   member_values=dict(member_values or {}))

    def parent_of(self, member: str) -> Optional[str]:
        return self.parent_map.get(member)

    def children_of(self, member: str) -> Tuple[str, ...]:
        return self.child_map.get(member, ())

    def value_of(self, member: str) -> Any:
        """Source value of a member (the member text if none was recorded)."""
        return self.member_values.get(member, member)

    def is_consistent(self) -> bool:
        """Check that parent_map and child_map mirror each other."""
        for child, parent in self.parent_map.items():
            if child not in self.child_map.get(parent, ()):
                return False
        for parent, kids in self.child_map.items():
            for child in kids:
                if self.parent_map.get(child) != parent:
                    return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "levels": list(self.levels),
            "parent_map": dict(self.parent_map),
            "child_map": {k: list(v) for k, v in self.child_map.items()},
        }


@dataclass(frozen=True)
class Dimension:
    """
    A dimension of the cube.

    Attributes:
        name: Dimension name, equal to the source column name
        kind: Categorical, numerical or temporal
        values: Value of every fact, in cell order
        unique_values: Distinct values in first-seen order
        hierarchy: Level structure, when one was detected
    """
    name: str
    kind: DimensionKind
    values: Tuple[Any, ...] = ()
    unique_values: Tuple[Any, ...] = ()
    hierarchy: Optional[Hierarchy] = None

    @classmethod
    def from_values(cls, name: str, kind: DimensionKind, values: Iterable[Any],
                    hierarchy: Optional[Hierarchy] = None) -> "Dimension":
        values = tuple(values)
        return cls(
            name=name,
            kind=kind,
            values=values,
            unique_values=tuple(unique_in_order(values)),
            hierarchy=hierarchy
        )

    def is_hierarchical(self) -> bool:
        return self.hierarchy is not None

    def with_values(self, values: Iterable[Any]) -> "Dimension":
        """Copy of this dimension re-derived from a new value sequence."""
        values = tuple(values)
        return replace(self, values=values,
                       unique_values=tuple(unique_in_order(values)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "unique_values": list(self.unique_values),
            "hierarchy": self.hierarchy.to_dict() if self.hierarchy else None,
        }


@dataclass(frozen=True)
class Measure:
    """
    A numeric measure of the cube.

    ``value`` caches the aggregate over the whole cube; per-cell values
    live on ``CubeCell.measures``.
    """
    name: str
    aggregation: AggregateFunction = AggregateFunction.SUM
    value: float = 0.0

    def with_value(self, value: float) -> "Measure":
        return replace(self, value=value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "aggregation": self.aggregation.value,
            "value": self.value,
        }


@dataclass(frozen=True)
class CubeCell:
    """A fact: dimension coordinates plus measure values."""
    coordinates: Dict[str, Any]
    measures: Dict[str, float]

    def get_dimension_value(self, dimension: str) -> Any:
        return self.coordinates.get(dimension)

    def get_measure_value(self, measure: str) -> Optional[float]:
        return self.measures.get(measure)


@dataclass(frozen=True)
class CubeMetadata:
    total_records: int = 0
    last_updated: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Cube:
    """
    An in-memory OLAP cube.

    Attributes:
        dimensions: Ordered dimensions
        measures: Ordered measures
        cells: Fact cells
        metadata: Record count and build time
    """
    dimensions: Tuple[Dimension, ...] = ()
    measures: Tuple[Measure, ...] = ()
    cells: Tuple[CubeCell, ...] = ()
    metadata: CubeMetadata = field(default_factory=CubeMetadata)

    def __post_init__(self):
        object.__setattr__(self, "dimensions", tuple(self.dimensions))
        object.__setattr__(self, "measures", tuple(self.measures))
        object.__setattr__(self, "cells", tuple(self.cells))
        self._validate()

    def _validate(self) -> None:
        dim_names = self.dimension_names
        if len(dim_names) != len(set(dim_names)):
            raise ValueError("Duplicate dimension names found")

        measure_names = self.measure_names
        if len(measure_names) != len(set(measure_names)):
            raise ValueError("Duplicate measure names found")

        overlap = set(dim_names) & set(measure_names)
        if overlap:
            raise ValueError(f"Names used as both dimension and measure: {sorted(overlap)}")

        known_dims = set(dim_names)
        known_measures = set(measure_names)
        for cell in self.cells:
            unknown = set(cell.coordinates) - known_dims
            if unknown:
                raise ValueError(f"Cell references unknown dimensions: {sorted(unknown)}")
            unknown = set(cell.measures) - known_measures
            if unknown:
                raise ValueError(f"Cell references unknown measures: {sorted(unknown)}")

    @property
    def dimension_names(self) -> List[str]:
        return [d.name for d in self.dimensions]

    @property
    def measure_names(self) -> List[str]:
        return [m.name for m in self.measures]

    @property
    def total_records(self) -> int:
        return self.metadata.total_records

    def get_dimension(self, name: str) -> Optional[Dimension]:
        """Get dimension by name."""
        for dim in self.dimensions:
            if dim.name == name:
                return dim
        return None

    def get_measure(self, name: str) -> Optional[Measure]:
        """Get measure by name."""
        for m in self.measures:
            if m.name == name:
                return m
        return None

    def measure_total(self, name: str) -> float:
        """Sum of a measure over all cells (missing values count as 0)."""
        return float(sum(cell.measures.get(name, 0.0) for cell in self.cells))

    def replace(self, **changes) -> "Cube":
        return replace(self, **changes)

    def to_frame(self) -> pd.DataFrame:
        """One row per cell, dimension columns followed by measure columns."""
        columns = self.dimension_names + self.measure_names
        rows = []
        for cell in self.cells:
            row = dict(cell.coordinates)
            row.update(cell.measures)
            rows.append(row)
        return pd.DataFrame(rows, columns=columns)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize schema and metadata (cells excluded)."""
        return {
            "dimensions": [d.to_dict() for d in self.dimensions],
            "measures": [m.to_dict() for m in self.measures],
            "total_records": self.metadata.total_records,
            "last_updated": self.metadata.last_updated.isoformat(),
        }
