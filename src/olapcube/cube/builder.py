"""
Cube Builder: materialize fact cells from flat records and an inferred schema.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from olapcube.cube.inference import InferenceConfig, infer_schema
from olapcube.cube.schema import Cube, CubeCell, CubeMetadata, Dimension, Measure
from olapcube.cube.scalars import to_number

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]


def build_cube(records: Sequence[Record],
               dimensions: Sequence[Dimension],
               measures: Sequence[Measure]) -> Cube:
    """
    Build a cube with one cell per record.

    Coordinates are taken from the record unmodified. Measure values are
    coerced to float; values that do not convert become 0.
    """
    cells = []
    for record in records:
        coordinates = {dim.name: record.get(dim.name) for dim in dimensions}
        values = {}
        for measure in measures:
            number = to_number(record.get(measure.name))
            values[measure.name] = number if number is not None else 0.0
        cells.append(CubeCell(coordinates=coordinates, measures=values))

    cube = Cube(
        dimensions=tuple(dimensions),
        measures=tuple(measures),
        cells=tuple(cells),
        metadata=CubeMetadata(total_records=len(records), last_updated=datetime.now())
    )
    logger.info(f"Built cube: {len(cells)} cells, {len(dimensions)} dimensions, "
                f"{len(measures)} measures")
    return cube


def create_cube(records: Sequence[Record],
                config: Optional[InferenceConfig] = None) -> Cube:
    """Infer the schema of the records and build the cube in one step."""
    dimensions, measures = infer_schema(records, config)
    return build_cube(records, dimensions, measures)


def records_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Flatten a DataFrame into records.

    numpy scalars are converted to Python scalars; empty cells become None.
    """
    records = []
    for row in df.to_dict(orient="records"):
        record = {}
        for column, value in row.items():
            if hasattr(value, "item") and not isinstance(value, pd.Timestamp):
                value = value.item()
            if value is pd.NaT or (isinstance(value, float) and value != value):
                value = None
            record[str(column)] = value
        records.append(record)
    return records
