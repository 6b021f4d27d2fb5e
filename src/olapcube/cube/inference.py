"""
Schema inference: classify flat record columns into dimensions and measures.

1. Columns whose names mark them as measures (sales, revenue, ...) are
   kept out of dimension detection.
2. Remaining columns become dimensions: numerical when more than 80% of
   values are numeric, temporal when the name mentions a date or time,
   categorical otherwise. Hierarchy builders attach level structure.
3. Measures are the non-dimension columns that are either measure-like by
   name or entirely numeric; their cached value is the column sum.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from olapcube.cube.hierarchy import HierarchyBuilder, default_hierarchy_builders
from olapcube.cube.schema import AggregateFunction, Dimension, DimensionKind, Measure
from olapcube.cube.scalars import is_missing, is_number, is_numeric, to_number

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]


@dataclass
class InferenceConfig:
    """Configuration for schema inference."""
    measure_keywords: Tuple[str, ...] = ("sales", "revenue", "profit", "amount")
    quantity_keyword: str = "quantity"
    numeric_threshold: float = 0.8
    temporal_keywords: Tuple[str, ...] = ("date", "time")
    hierarchy_builders: List[HierarchyBuilder] = field(
        default_factory=default_hierarchy_builders
    )


def column_names(records: Sequence[Record]) -> List[str]:
    """Columns of the first record; the schema is assumed uniform."""
    if not records:
        return []
    return list(records[0].keys())


def column_values(records: Sequence[Record], column: str) -> List[Any]:
    return [record.get(column) for record in records]


def is_measure_candidate(column: str, values: Sequence[Any],
                         config: InferenceConfig) -> bool:
    """Whether a column is a measure by its name alone."""
    lowered = column.lower()
    if any(keyword in lowered for keyword in config.measure_keywords):
        return True
    return config.quantity_keyword in lowered and all(is_number(v) for v in values)


def classify_kind(column: str, values: Sequence[Any],
                  config: InferenceConfig) -> DimensionKind:
    numeric_count = sum(1 for v in values if is_numeric(v))
    # strict '>' so an exact tie stays categorical
    if values and numeric_count > len(values) * config.numeric_threshold:
        return DimensionKind.NUMERICAL

    lowered = column.lower()
    if any(keyword in lowered for keyword in config.temporal_keywords):
        return DimensionKind.TEMPORAL

    present = [v for v in values if not is_missing(v)]
    if present and all(isinstance(v, date) for v in present):
        return DimensionKind.TEMPORAL
    return DimensionKind.CATEGORICAL


def detect_dimensions(records: Sequence[Record],
                      config: Optional[InferenceConfig] = None) -> List[Dimension]:
    """Classify every non-measure column of the records as a dimension."""
    config = config or InferenceConfig()
    columns = column_names(records)
    dimensions = []

    for column in columns:
        values = column_values(records, column)
        if is_measure_candidate(column, values, config):
            continue

        kind = classify_kind(column, values, config)
        hierarchy = None
        for builder in config.hierarchy_builders:
            if builder.applies_to(column, kind, columns):
                hierarchy = builder.build(column, records)
                if hierarchy is not None:
                    break

        dimensions.append(Dimension.from_values(column, kind, values, hierarchy))
        suffix = " (hierarchical)" if hierarchy else ""
        logger.debug(f"Column {column} -> {kind.value} dimension{suffix}")

    return dimensions


def detect_measures(records: Sequence[Record], dimensions: Sequence[Dimension],
                    config: Optional[InferenceConfig] = None) -> List[Measure]:
    """Collect measure columns: not a dimension, measure-like or all numeric."""
    config = config or InferenceConfig()
    dimension_names = {d.name for d in dimensions}
    measures = []

    for column in column_names(records):
        if column in dimension_names:
            continue
        values = column_values(records, column)
        explicit = is_measure_candidate(column, values, config)
        if not (explicit or all(is_numeric(v) for v in values)):
            continue

        numbers = [n for n in (to_number(v) for v in values) if n is not None]
        if not numbers:
            logger.debug(f"Column {column} has no numeric values, not a measure")
            continue

        total = float(np.sum(numbers))
        measures.append(Measure(column, AggregateFunction.SUM, total))

    return measures


def infer_schema(records: Sequence[Record],
                 config: Optional[InferenceConfig] = None
                 ) -> Tuple[List[Dimension], List[Measure]]:
    """
    Infer the multidimensional schema of flat records.

    Args:
        records: Flat records (column name -> scalar)
        config: Inference settings (defaults if omitted)

    Returns:
        (dimensions, measures), both in column order
    """
    if not records:
        return [], []

    config = config or InferenceConfig()
    dimensions = detect_dimensions(records, config)
    measures = detect_measures(records, dimensions, config)
    logger.info(f"Inferred {len(dimensions)} dimensions and {len(measures)} measures "
                f"from {len(records)} records")
    return dimensions, measures
