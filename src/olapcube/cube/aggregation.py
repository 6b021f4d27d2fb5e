"""
Aggregation Engine: group fact cells by dimensions and reduce measures.

Cells are laid out in a DataFrame with one ``frame_key`` column per
dimension, so two cells group together iff all of their grouping
coordinates are equal under ``scalar_key``. Grouping uses
``sort=False``, so output groups appear in first-seen order.
"""

from typing import Any, Iterable, List, Mapping, Sequence, Union

import numpy as np
import pandas as pd

from olapcube.cube.schema import AggregateFunction, CubeCell
from olapcube.cube.scalars import frame_key

# Map aggregate functions to pandas names
_PANDAS_AGG = {
    AggregateFunction.SUM: "sum",
    AggregateFunction.AVERAGE: "mean",
    AggregateFunction.COUNT: "count",
    AggregateFunction.MIN: "min",
    AggregateFunction.MAX: "max",
}

_ROW = "__row__"


def key_frame(cells: Sequence[CubeCell], dims: Sequence[str]) -> pd.DataFrame:
    """One row per cell, one ``frame_key`` column per dimension."""
    return pd.DataFrame(
        {dim: [frame_key(c.coordinates.get(dim)) for c in cells] for dim in dims},
        index=pd.RangeIndex(len(cells))
    )


def select_cells(cells: Sequence[CubeCell],
                 allowed: Mapping[str, Iterable[Any]]) -> List[CubeCell]:
    """
    Keep the cells whose coordinate at every dimension of ``allowed`` is
    one of that dimension's values.
    """
    frame = key_frame(cells, list(allowed))
    mask = pd.Series(True, index=frame.index)
    for dim, values in allowed.items():
        mask &= frame[dim].isin([frame_key(v) for v in values])
    return [cells[i] for i in np.flatnonzero(mask.to_numpy())]


def reduce_values(values: Sequence[float], kind: AggregateFunction) -> float:
    """
    Reduce a group's measure values.

    min/max/average of an empty group are 0.
    """
    if kind == AggregateFunction.COUNT:
        return float(len(values))
    if kind == AggregateFunction.SUM:
        return float(np.sum(values)) if len(values) else 0.0
    if not len(values):
        return 0.0
    if kind == AggregateFunction.AVERAGE:
        return float(np.mean(values))
    if kind == AggregateFunction.MIN:
        return float(np.min(values))
    if kind == AggregateFunction.MAX:
        return float(np.max(values))
    raise ValueError(f"Unsupported aggregate function: {kind}")


def rollup(cells: Sequence[CubeCell],
           group_dims: Sequence[str],
           measure_names: Sequence[str],
           kind: AggregateFunction = AggregateFunction.SUM) -> List[CubeCell]:
    """
    Group cells and reduce several measures at once.

    Each output cell keeps only the ``group_dims`` coordinates, taken from
    the first cell of its group. Missing measure values count as 0.
    """
    if not cells:
        return []
    group_dims = list(group_dims)
    if not group_dims:
        totals = {name: grand_total(cells, name, kind) for name in measure_names}
        return [CubeCell(coordinates={}, measures=totals)]

    df = key_frame(cells, group_dims)
    for name in measure_names:
        df[name] = [float(c.measures.get(name, 0.0)) for c in cells]
    df[_ROW] = df.index

    agg_dict = {name: _PANDAS_AGG[kind] for name in measure_names}
    agg_dict[_ROW] = "first"
    result_df = df.groupby(group_dims, sort=False, dropna=False, as_index=False).agg(agg_dict)

    result = []
    for row in result_df.to_dict(orient="records"):
        representative = cells[int(row[_ROW])]
        coordinates = {dim: representative.coordinates.get(dim) for dim in group_dims}
        measures = {name: float(row[name]) for name in measure_names}
        result.append(CubeCell(coordinates=coordinates, measures=measures))
    return result


def aggregate(cells: Sequence[CubeCell],
              group_dims: Sequence[str],
              measure_name: str,
              kind: Union[AggregateFunction, str] = AggregateFunction.SUM) -> List[CubeCell]:
    """
    Group cells by ``group_dims`` and reduce one measure.

    Args:
        cells: Fact cells to aggregate
        group_dims: Grouping dimensions (order defines the key)
        measure_name: Measure to reduce
        kind: sum, average, count, min or max

    Returns:
        One cell per group carrying the group coordinates and the single
        reduced measure
    """
    return rollup(cells, group_dims, [measure_name], AggregateFunction(kind))


def grand_total(cells: Sequence[CubeCell], measure_name: str,
                kind: AggregateFunction = AggregateFunction.SUM) -> float:
    """Aggregate of one measure over all cells."""
    return reduce_values([c.measures.get(measure_name, 0.0) for c in cells], kind)
