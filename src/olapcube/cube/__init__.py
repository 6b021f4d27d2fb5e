"""
Cube module: Data structures, schema inference and OLAP operations.
"""

from olapcube.cube.schema import (
    Cube, CubeCell, CubeMetadata, Dimension, DimensionKind, Hierarchy, Measure,
    AggregateFunction
)
from olapcube.cube.scalars import ScalarKind, scalar_key, strict_equals, to_number
from olapcube.cube.hierarchy import (
    HierarchyBuilder, DateHierarchyBuilder, ParentColumnHierarchyBuilder, Granularity
)
from olapcube.cube.inference import InferenceConfig, infer_schema
from olapcube.cube.builder import build_cube, create_cube, records_from_frame
from olapcube.cube.aggregation import aggregate, rollup, select_cells
from olapcube.cube.view import AxisAssignment
from olapcube.cube.actions import (
    OLAPOperation, OperationType, OperationResult, RejectionReason,
    SliceOperation, DiceOperation, DrillDownOperation, DrillUpOperation, PivotOperation,
    operation_from_dict, generate_candidate_operations
)
from olapcube.cube.operations import slice_cube, dice_cube, drill_down, drill_up, pivot_cube

__all__ = [
    "Cube", "CubeCell", "CubeMetadata", "Dimension", "DimensionKind", "Hierarchy",
    "Measure", "AggregateFunction",
    "ScalarKind", "scalar_key", "strict_equals", "to_number",
    "HierarchyBuilder", "DateHierarchyBuilder", "ParentColumnHierarchyBuilder", "Granularity",
    "InferenceConfig", "infer_schema",
    "build_cube", "create_cube", "records_from_frame",
    "aggregate", "rollup", "select_cells",
    "AxisAssignment",
    "OLAPOperation", "OperationType", "OperationResult", "RejectionReason",
    "SliceOperation", "DiceOperation", "DrillDownOperation", "DrillUpOperation",
    "PivotOperation", "operation_from_dict", "generate_candidate_operations",
    "slice_cube", "dice_cube", "drill_down", "drill_up", "pivot_cube",
]
