"""
OLAP operations over cubes.

An operation a: C -> C' maps a cube to a new cube and never modifies its
input:
- Slice: keep cells whose coordinate equals one value
- Dice: keep cells whose coordinates fall in per-dimension value sets
- Drill-down: keep cells at the children of the currently present members
- Drill-up: coarsen a date or hierarchical dimension one level and re-aggregate
- Pivot: re-aggregate onto the dimensions bound to the view axes

``apply`` returns an ``OperationResult``. When an operation's preconditions
do not hold it is rejected with a reason and the result carries the input
cube unchanged.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from olapcube.cube.aggregation import grand_total, rollup, select_cells
from olapcube.cube.hierarchy import coarsen, detect_granularity, value_granularity
from olapcube.cube.schema import (
    AggregateFunction, Cube, CubeCell, CubeMetadata, DimensionKind, Measure
)
from olapcube.cube.scalars import decode_scalar, encode_scalar, is_missing, member_key
from olapcube.cube.view import AxisAssignment

logger = logging.getLogger(__name__)


class OperationType(Enum):
    """Types of OLAP operations."""
    SLICE = "slice"
    DICE = "dice"
    DRILL_DOWN = "drill-down"
    DRILL_UP = "drill-up"
    PIVOT = "pivot"


class RejectionReason(Enum):
    """Why an operation left the cube unchanged."""
    UNKNOWN_DIMENSION = "unknown_dimension"
    NO_HIERARCHY = "no_hierarchy"
    NO_CHILDREN = "no_children"
    ALREADY_COARSEST = "already_coarsest"
    NO_AXIS_SELECTED = "no_axis_selected"
    NO_MEASURE = "no_measure"


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of applying an operation.

    Attributes:
        cube: The new cube, or the input cube if the operation was rejected
        applied: Whether the operation took effect
        reason: Rejection reason (None when applied)
        detail: Human-readable explanation of a rejection
    """
    cube: Cube
    applied: bool = True
    reason: Optional[RejectionReason] = None
    detail: str = ""

    @property
    def rejected(self) -> bool:
        return not self.applied


@dataclass
class OLAPOperation(ABC):
    """
    Abstract base class for OLAP operations.

    Instances double as the descriptor recorded in an exploration history.
    """

    @property
    @abstractmethod
    def operation_type(self) -> OperationType:
        """Return the operation type."""
        pass

    @abstractmethod
    def apply(self, cube: Cube) -> OperationResult:
        """Apply this operation to a cube."""
        pass

    @abstractmethod
    def describe(self) -> str:
        """Return human-readable description of the operation."""
        pass

    @abstractmethod
    def params(self) -> Dict[str, Any]:
        pass

    def is_applicable(self, cube: Cube) -> bool:
        return self.apply(cube).applied

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.operation_type.value}
        data.update(self.params())
        return data

    def _reject(self, cube: Cube, reason: RejectionReason, detail: str) -> OperationResult:
        logger.info(f"{self.describe()} rejected ({reason.value}): {detail}")
        return OperationResult(cube=cube, applied=False, reason=reason, detail=detail)


def _with_cells(cube: Cube, cells: Sequence[CubeCell]) -> Cube:
    """Same schema, new cell set."""
    metadata = replace(cube.metadata, total_records=len(cells))
    return cube.replace(cells=tuple(cells), metadata=metadata)


@dataclass
class SliceOperation(OLAPOperation):
    """
    Slice: fix a single value for a dimension.

    Equality is strict: a number never matches its text form. The sliced
    dimension stays in the schema.
    """
    dimension: str
    value: Any

    @property
    def operation_type(self) -> OperationType:
        return OperationType.SLICE

    def apply(self, cube: Cube) -> OperationResult:
        if self.dimension not in cube.dimension_names:
            return OperationResult(cube=_with_cells(cube, []))

        cells = select_cells(cube.cells, {self.dimension: [self.value]})
        return OperationResult(cube=_with_cells(cube, cells))

    def describe(self) -> str:
        return f"Slice {self.dimension} = {self.value}"

    def params(self) -> Dict[str, Any]:
        return {"dimension": self.dimension, "value": encode_scalar(self.value)}


@dataclass
class DiceOperation(OLAPOperation):
    """
    Dice: restrict one or more dimensions to sets of allowed values.

    A cell is kept if, for every dimension in ``conditions``, its
    coordinate is one of the allowed values.
    """
    conditions: Dict[str, Sequence[Any]] = field(default_factory=dict)

    def __post_init__(self):
        normalized = {}
        for dimension, values in self.conditions.items():
            if isinstance(values, (str, bytes)) or not hasattr(values, "__iter__"):
                values = [values]
            normalized[dimension] = tuple(values)
        self.conditions = normalized

    @property
    def operation_type(self) -> OperationType:
        return OperationType.DICE

    def apply(self, cube: Cube) -> OperationResult:
        known = set(cube.dimension_names)
        if any(dimension not in known for dimension in self.conditions):
            return OperationResult(cube=_with_cells(cube, []))

        cells = select_cells(cube.cells, self.conditions)
        return OperationResult(cube=_with_cells(cube, cells))

    def describe(self) -> str:
        parts = [f"{dim} in {list(values)}" for dim, values in self.conditions.items()]
        return f"Dice {', '.join(parts)}"

    def params(self) -> Dict[str, Any]:
        return {"conditions": {
            k: [encode_scalar(v) for v in values] for k, values in self.conditions.items()
        }}


@dataclass
class DrillDownOperation(OLAPOperation):
    """
    Drill-down on a hierarchical dimension: move to finer members.

    Looks up the children of every member currently present and keeps the
    cells whose coordinate is one of those children. No re-aggregation is
    needed since finer facts are stored per record.
    """
    dimension: str
    target_level: Optional[str] = None

    @property
    def operation_type(self) -> OperationType:
        return OperationType.DRILL_DOWN

    def apply(self, cube: Cube) -> OperationResult:
        dim = cube.get_dimension(self.dimension)
        if dim is None:
            return self._reject(cube, RejectionReason.UNKNOWN_DIMENSION,
                                f"no dimension named {self.dimension!r}")
        if not dim.is_hierarchical():
            return self._reject(cube, RejectionReason.NO_HIERARCHY,
                                f"{self.dimension} has no hierarchy")

        children: Dict[str, None] = {}
        for cell in cube.cells:
            value = cell.coordinates.get(self.dimension)
            if is_missing(value):
                continue
            for child in dim.hierarchy.children_of(member_key(value)):
                children[child] = None
        if not children:
            return self._reject(cube, RejectionReason.NO_CHILDREN,
                                f"no finer members below the current {self.dimension} values")

        cells = [
            c for c in cube.cells
            if not is_missing(c.coordinates.get(self.dimension))
            and member_key(c.coordinates[self.dimension]) in children
        ]
        if not cells:
            return self._reject(cube, RejectionReason.NO_CHILDREN,
                                f"no cells carry finer {self.dimension} members")

        drilled = dim.with_values(c.coordinates[self.dimension] for c in cells)
        dimensions = [drilled if d.name == self.dimension else d for d in cube.dimensions]
        new_cube = _with_cells(cube, cells).replace(dimensions=tuple(dimensions))
        return OperationResult(cube=new_cube)

    def describe(self) -> str:
        if self.target_level:
            return f"Drill down on {self.dimension} to {self.target_level}"
        return f"Drill down on {self.dimension}"

    def params(self) -> Dict[str, Any]:
        return {"dimension": self.dimension, "target_level": self.target_level}


@dataclass
class DrillUpOperation(OLAPOperation):
    """
    Drill-up on a date dimension: move to the next coarser granularity.

    The current granularity is detected from the values (YYYY-MM-DD,
    YYYY-MM, YYYY; anything else counts as a day). Every coordinate is
    rewritten one level up and all cells are re-aggregated with SUM over
    the full coordinate tuple.

    Hierarchical dimensions whose members are not dates move each member
    to its parent instead (Product -> Category).
    """
    dimension: str
    source_level: Optional[str] = None

    @property
    def operation_type(self) -> OperationType:
        return OperationType.DRILL_UP

    def apply(self, cube: Cube) -> OperationResult:
        dim = cube.get_dimension(self.dimension)
        if dim is None:
            return self._reject(cube, RejectionReason.UNKNOWN_DIMENSION,
                                f"no dimension named {self.dimension!r}")
        if dim.kind != DimensionKind.TEMPORAL and not dim.is_hierarchical():
            return self._reject(cube, RejectionReason.NO_HIERARCHY,
                                f"{self.dimension} is neither temporal nor hierarchical")

        present = [c.coordinates.get(self.dimension) for c in cube.cells]
        present = [v for v in present if not is_missing(v)]

        if dim.is_hierarchical() and present and value_granularity(present[0]) is None:
            # non-date hierarchy: replace each member by its parent
            hierarchy = dim.hierarchy
            parent_map = hierarchy.parent_map
            if not any(member_key(v) in parent_map for v in present):
                return self._reject(cube, RejectionReason.ALREADY_COARSEST,
                                    f"{self.dimension} members have no parents")

            def rewrite(value):
                if is_missing(value):
                    return value
                parent = parent_map.get(member_key(value))
                return value if parent is None else hierarchy.value_of(parent)
            level_change = "parent level"
        else:
            granularity = detect_granularity(present)
            if granularity.coarser is None:
                return self._reject(cube, RejectionReason.ALREADY_COARSEST,
                                    f"{self.dimension} is already at {granularity.value} level")

            def rewrite(value):
                return coarsen(value, granularity)
            level_change = f"{granularity.value} -> {granularity.coarser.value}"

        coarsened = []
        for cell in cube.cells:
            coordinates = dict(cell.coordinates)
            coordinates[self.dimension] = rewrite(coordinates.get(self.dimension))
            coarsened.append(CubeCell(coordinates=coordinates, measures=cell.measures))

        cells = rollup(coarsened, cube.dimension_names, cube.measure_names,
                       AggregateFunction.SUM)

        dimensions = [
            d.with_values(c.coordinates.get(d.name) for c in cells)
            for d in cube.dimensions
        ]
        measures = [
            m.with_value(grand_total(cells, m.name, AggregateFunction.SUM))
            for m in cube.measures
        ]
        new_cube = Cube(
            dimensions=tuple(dimensions),
            measures=tuple(measures),
            cells=tuple(cells),
            metadata=CubeMetadata(total_records=len(cells), last_updated=datetime.now())
        )
        logger.debug(f"Drilled up {self.dimension} ({level_change}): "
                     f"{len(cube.cells)} -> {len(cells)} cells")
        return OperationResult(cube=new_cube)

    def describe(self) -> str:
        if self.source_level:
            return f"Drill up on {self.dimension} from {self.source_level}"
        return f"Drill up on {self.dimension}"

    def params(self) -> Dict[str, Any]:
        return {"dimension": self.dimension, "source_level": self.source_level}


@dataclass
class PivotOperation(OLAPOperation):
    """
    Pivot: re-derive the cube keyed by the dimensions bound to x, y, z.

    Dimensions not bound to an axis are aggregated away. The result holds
    only the axis dimensions and the single active measure.
    """
    axis_assignment: AxisAssignment
    aggregation: AggregateFunction = AggregateFunction.SUM

    @property
    def operation_type(self) -> OperationType:
        return OperationType.PIVOT

    def apply(self, cube: Cube) -> OperationResult:
        axes = self.axis_assignment.axes
        if not axes:
            return self._reject(cube, RejectionReason.NO_AXIS_SELECTED,
                                "no dimension bound to x, y or z")
        unknown = [a for a in axes if cube.get_dimension(a) is None]
        if unknown:
            return self._reject(cube, RejectionReason.UNKNOWN_DIMENSION,
                                f"unknown axis dimensions {unknown}")

        measure_name = self.axis_assignment.resolve_measure(cube)
        if measure_name is None or cube.get_measure(measure_name) is None:
            return self._reject(cube, RejectionReason.NO_MEASURE,
                                f"measure {measure_name!r} not found")

        cells = rollup(cube.cells, axes, [measure_name], self.aggregation)
        dimensions = [
            cube.get_dimension(a).with_values(c.coordinates.get(a) for c in cells)
            for a in axes
        ]
        measure = Measure(
            name=measure_name,
            aggregation=self.aggregation,
            value=grand_total(cube.cells, measure_name, self.aggregation)
        )
        new_cube = Cube(
            dimensions=tuple(dimensions),
            measures=(measure,),
            cells=tuple(cells),
            metadata=CubeMetadata(total_records=len(cells), last_updated=datetime.now())
        )
        return OperationResult(cube=new_cube)

    def describe(self) -> str:
        return f"Pivot to {self.axis_assignment.describe()}"

    def params(self) -> Dict[str, Any]:
        return {
            "axis_assignment": self.axis_assignment.to_dict(),
            "aggregation": self.aggregation.value,
        }


def operation_from_dict(data: Dict[str, Any]) -> OLAPOperation:
    """Restore an operation from its ``to_dict`` form."""
    op_type = OperationType(data["type"])
    if op_type == OperationType.SLICE:
        return SliceOperation(dimension=data["dimension"], value=decode_scalar(data["value"]))
    if op_type == OperationType.DICE:
        return DiceOperation(conditions={
            k: [decode_scalar(v) for v in values] for k, values in data["conditions"].items()
        })
    if op_type == OperationType.DRILL_DOWN:
        return DrillDownOperation(dimension=data["dimension"],
                                  target_level=data.get("target_level"))
    if op_type == OperationType.DRILL_UP:
        return DrillUpOperation(dimension=data["dimension"],
                                source_level=data.get("source_level"))
    return PivotOperation(
        axis_assignment=AxisAssignment.from_dict(data["axis_assignment"]),
        aggregation=AggregateFunction(data.get("aggregation", "sum"))
    )


def generate_candidate_operations(cube: Cube, max_members: int = 10) -> List[OLAPOperation]:
    """
    Generate the operations applicable to a cube.

    Args:
        cube: Current cube
        max_members: Slice candidates offered per dimension

    Returns:
        List of applicable operations
    """
    operations: List[OLAPOperation] = []

    for dim in cube.dimensions:
        for value in dim.unique_values[:max_members]:
            if not is_missing(value):
                operations.append(SliceOperation(dimension=dim.name, value=value))

        drill = DrillDownOperation(dimension=dim.name)
        if drill.is_applicable(cube):
            operations.append(drill)

        # temporal columns with no date values would only re-aggregate
        has_dates = any(value_granularity(c.coordinates.get(dim.name)) for c in cube.cells)
        if has_dates or dim.is_hierarchical():
            drill_up = DrillUpOperation(dimension=dim.name)
            if drill_up.is_applicable(cube):
                operations.append(drill_up)

    pivot = PivotOperation(axis_assignment=AxisAssignment.default_for(cube))
    if pivot.is_applicable(cube):
        operations.append(pivot)

    return operations
