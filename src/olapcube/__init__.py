"""
olapcube: In-memory OLAP cubes over flat tabular records

Infers a multidimensional schema (dimensions, hierarchies, measures) from
flat records, materializes a cube of fact cells, and supports slice, dice,
drill-down, drill-up and pivot as pure cube-to-cube operations.
"""

__version__ = "0.1.0"

from olapcube.cube.schema import Cube, CubeCell, Dimension, Measure, Hierarchy, AggregateFunction
from olapcube.cube.inference import InferenceConfig, infer_schema
from olapcube.cube.builder import build_cube, create_cube
from olapcube.cube.aggregation import aggregate
from olapcube.cube.view import AxisAssignment
from olapcube.cube.operations import slice_cube, dice_cube, drill_down, drill_up, pivot_cube
from olapcube.nav.session import ExplorationSession

__all__ = [
    "Cube",
    "CubeCell",
    "Dimension",
    "Measure",
    "Hierarchy",
    "AggregateFunction",
    "InferenceConfig",
    "infer_schema",
    "build_cube",
    "create_cube",
    "aggregate",
    "AxisAssignment",
    "slice_cube",
    "dice_cube",
    "drill_down",
    "drill_up",
    "pivot_cube",
    "ExplorationSession",
]
