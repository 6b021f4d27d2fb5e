"""
Functional OLAP surface: ``Cube x params -> Cube``.

These functions never raise. When an operation is rejected they return
the input cube unchanged; use the operation classes in
``olapcube.cube.actions`` to see why.
"""

from typing import Any, Mapping, Sequence, Union

from olapcube.cube.actions import (
    DiceOperation, DrillDownOperation, DrillUpOperation, PivotOperation, SliceOperation
)
from olapcube.cube.schema import AggregateFunction, Cube
from olapcube.cube.view import AxisAssignment


def slice_cube(cube: Cube, dimension: str, value: Any) -> Cube:
    return SliceOperation(dimension=dimension, value=value).apply(cube).cube


def dice_cube(cube: Cube, conditions: Mapping[str, Sequence[Any]]) -> Cube:
    return DiceOperation(conditions=dict(conditions)).apply(cube).cube


def drill_down(cube: Cube, dimension: str, target_level: str = None) -> Cube:
    return DrillDownOperation(dimension=dimension, target_level=target_level).apply(cube).cube


def drill_up(cube: Cube, dimension: str, source_level: str = None) -> Cube:
    return DrillUpOperation(dimension=dimension, source_level=source_level).apply(cube).cube


def pivot_cube(cube: Cube, axis_assignment: Union[AxisAssignment, Mapping[str, Any]],
               kind: Union[AggregateFunction, str] = AggregateFunction.SUM) -> Cube:
    """Re-aggregate the cube onto the dimensions bound to x, y and z."""
    if not isinstance(axis_assignment, AxisAssignment):
        axis_assignment = AxisAssignment.from_dict(dict(axis_assignment))
    operation = PivotOperation(axis_assignment=axis_assignment,
                               aggregation=AggregateFunction(kind))
    return operation.apply(cube).cube
