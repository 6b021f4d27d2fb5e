"""
Unit tests for the cube module: scalars, schema, inference, building and aggregation.
"""

import pytest
import pandas as pd
import numpy as np
import sys
import os
from datetime import date, datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from olapcube.cube.schema import (
    AggregateFunction, Cube, CubeCell, Dimension, DimensionKind, Hierarchy, Measure
)
from olapcube.cube.scalars import (
    ScalarKind, decode_scalar, encode_scalar, scalar_kind, strict_equals, to_number, unique_in_order
)
from olapcube.cube.hierarchy import (
    Granularity, ParentColumnHierarchyBuilder, coarsen, detect_granularity
)
from olapcube.cube.inference import InferenceConfig, infer_schema
from olapcube.cube.builder import build_cube, create_cube, records_from_frame
from olapcube.cube.aggregation import aggregate, key_frame, reduce_values, select_cells


@pytest.fixture
def scenario_records():
    """Create the three-row Region/Product scenario."""
    return [
        {"Region": "East", "Product": "A", "Sales": 100},
        {"Region": "East", "Product": "B", "Sales": 50},
        {"Region": "West", "Product": "A", "Sales": 30},
    ]


@pytest.fixture
def sales_records():
    """Create a small dated sales table with a Product/Category hierarchy."""
    return [
        {"Date": "2024-01-15", "Region": "East", "Category": "Fruit", "Product": "Apple", "Sales": 100, "Quantity": 10},
        {"Date": "2024-01-20", "Region": "West", "Category": "Fruit", "Product": "Banana", "Sales": 50, "Quantity": 5},
        {"Date": "2024-01-28", "Region": "East", "Category": "Fruit", "Product": "Apple", "Sales": 30, "Quantity": 3},
        {"Date": "2024-02-03", "Region": "East", "Category": "Dairy", "Product": "Milk", "Sales": 80, "Quantity": 8},
        {"Date": "2024-02-03", "Region": "East", "Category": "Fruit", "Product": "Apple", "Sales": 20, "Quantity": 2},
        {"Date": "2025-03-10", "Region": "West", "Category": "Dairy", "Product": "Cheese", "Sales": 40, "Quantity": 4},
    ]


class TestScalars:
    def test_kinds(self):
        assert scalar_kind("East") == ScalarKind.TEXT
        assert scalar_kind(3) == ScalarKind.NUMBER
        assert scalar_kind(np.int64(3)) == ScalarKind.NUMBER
        assert scalar_kind(date(2024, 1, 1)) == ScalarKind.TEMPORAL
        assert scalar_kind(None) == ScalarKind.MISSING
        assert scalar_kind(float("nan")) == ScalarKind.MISSING
        assert scalar_kind(True) == ScalarKind.TEXT

    def test_strict_equality(self):
        assert not strict_equals(2023, "2023")
        assert strict_equals(1, 1.0)
        assert strict_equals("East", "East")

    def test_to_number(self):
        assert to_number(" 12 ") == 12.0
        assert to_number("1e3") == 1000.0
        assert to_number("-.5") == -0.5
        assert to_number("") is None
        assert to_number("n/a") is None
        assert to_number(True) is None
        assert to_number(float("nan")) is None

    def test_unique_in_order(self):
        assert unique_in_order(["b", "a", "b", 1, "1", 1.0]) == ["b", "a", 1, "1"]

    def test_temporal_encoding(self):
        stamp = pd.Timestamp("2024-01-15")
        assert encode_scalar(date(2024, 1, 15)) == {"kind": "temporal", "value": "2024-01-15"}
        assert decode_scalar(encode_scalar(date(2024, 1, 15))) == date(2024, 1, 15)
        assert strict_equals(decode_scalar(encode_scalar(stamp)), stamp)
        assert encode_scalar("2024-01-15") == "2024-01-15"
        assert decode_scalar(7) == 7


class TestHierarchy:
    def test_from_pairs_keeps_maps_dual(self):
        h = Hierarchy.from_pairs(("Category", "Product"),
                                 [("Apple", "Fruit"), ("Milk", "Dairy"), ("Banana", "Fruit"),
                                  ("Apple", "Dairy")])
        assert h.parent_of("Apple") == "Fruit"
        assert h.children_of("Fruit") == ("Apple", "Banana")
        assert h.children_of("Dairy") == ("Milk",)
        assert h.is_consistent()

    def test_granularity_detection(self):
        assert detect_granularity(["2024-03-15"]) == Granularity.DAY
        assert detect_granularity([None, "2024-03"]) == Granularity.MONTH
        assert detect_granularity(["2024"]) == Granularity.YEAR
        assert detect_granularity(["last tuesday"]) == Granularity.DAY
        assert Granularity.YEAR.coarser is None

    def test_coarsen(self):
        assert coarsen("2024-03-15", Granularity.DAY) == "2024-03"
        assert coarsen("2024-03", Granularity.MONTH) == "2024"
        assert coarsen(datetime(2024, 3, 15, 10, 30), Granularity.DAY) == "2024-03"
        assert coarsen("Q1", Granularity.DAY) == "Q1"

    def test_parent_column_keeps_source_values(self):
        records = [
            {"Category": 10, "Product": "A"},
            {"Category": 20, "Product": "B"},
        ]
        h = ParentColumnHierarchyBuilder().build("Product", records)
        assert h.parent_of("A") == "10"
        assert h.value_of("10") == 10
        assert h.value_of("unknown") == "unknown"


class TestSchemaInference:
    def test_scenario(self, scenario_records):
        dimensions, measures = infer_schema(scenario_records)

        assert [d.name for d in dimensions] == ["Region", "Product"]
        region, product = dimensions
        assert region.kind == DimensionKind.CATEGORICAL
        assert region.unique_values == ("East", "West")
        assert product.kind == DimensionKind.CATEGORICAL
        assert product.unique_values == ("A", "B")
        assert product.hierarchy is None

        assert len(measures) == 1
        assert measures[0].name == "Sales"
        assert measures[0].aggregation == AggregateFunction.SUM
        assert measures[0].value == 180

    def test_empty_input(self):
        assert infer_schema([]) == ([], [])

    def test_date_hierarchy(self, sales_records):
        dimensions, _ = infer_schema(sales_records)
        date_dim = dimensions[0]

        assert date_dim.name == "Date"
        assert date_dim.kind == DimensionKind.TEMPORAL
        h = date_dim.hierarchy
        assert h.levels == ("Year", "Month", "Day")
        assert h.parent_of("2024-01-15") == "2024-01"
        assert h.parent_of("2024-01") == "2024"
        assert h.children_of("2024") == ("2024-01", "2024-02")
        assert h.children_of("2024-01") == ("2024-01-15", "2024-01-20", "2024-01-28")
        assert h.is_consistent()

    def test_product_hierarchy(self, sales_records):
        dimensions, _ = infer_schema(sales_records)
        product = next(d for d in dimensions if d.name == "Product")

        assert product.hierarchy.levels == ("Category", "Product")
        assert product.hierarchy.parent_of("Milk") == "Dairy"
        assert product.hierarchy.children_of("Fruit") == ("Apple", "Banana")
        assert product.hierarchy.is_consistent()

    def test_measure_columns(self, sales_records):
        dimensions, measures = infer_schema(sales_records)
        assert [d.name for d in dimensions] == ["Date", "Region", "Category", "Product"]
        assert [m.name for m in measures] == ["Sales", "Quantity"]
        assert measures[0].value == 320
        assert measures[1].value == 32

    def test_threshold_tie_is_categorical(self):
        records = [{"Code": v} for v in ["1", "2", "3", "4", "x"]]
        dimensions, _ = infer_schema(records)
        assert dimensions[0].kind == DimensionKind.CATEGORICAL

    def test_mostly_numeric_is_numerical(self):
        records = [{"Code": v} for v in ["1", "2", "3", "4", "5", "6", "7", "8", "9", "x"]]
        dimensions, _ = infer_schema(records)
        assert dimensions[0].kind == DimensionKind.NUMERICAL

    def test_temporal_by_name_without_dates(self):
        records = [{"OrderTime": "morning"}, {"OrderTime": "evening"}]
        dimensions, _ = infer_schema(records)
        assert dimensions[0].kind == DimensionKind.TEMPORAL
        assert dimensions[0].hierarchy is None

    def test_date_objects_are_temporal(self):
        records = [{"Shipped": date(2024, 1, 5)}, {"Shipped": date(2024, 2, 9)}]
        dimensions, _ = infer_schema(records)
        assert dimensions[0].kind == DimensionKind.TEMPORAL
        assert dimensions[0].hierarchy.parent_of("2024-02-09") == "2024-02"

    def test_quantity_needs_real_numbers(self):
        records = [{"Quantity": "1", "Sales": 5}, {"Quantity": "2", "Sales": 6}]
        dimensions, measures = infer_schema(records)
        assert [d.name for d in dimensions] == ["Quantity"]
        assert dimensions[0].kind == DimensionKind.NUMERICAL
        assert [m.name for m in measures] == ["Sales"]

    def test_measure_like_column_without_numbers_is_dropped(self):
        records = [{"Region": "East", "Profit": "n/a"}, {"Region": "West", "Profit": "?"}]
        dimensions, measures = infer_schema(records)
        assert [d.name for d in dimensions] == ["Region"]
        assert measures == []

    def test_deterministic(self, sales_records):
        assert infer_schema(sales_records) == infer_schema(sales_records)

    def test_custom_measure_keywords(self):
        records = [{"Region": "East", "Cost": 5}, {"Region": "West", "Cost": 7}]

        dimensions, measures = infer_schema(records)
        assert [d.name for d in dimensions] == ["Region", "Cost"]
        assert measures == []

        config = InferenceConfig(measure_keywords=("cost",))
        dimensions, measures = infer_schema(records, config)
        assert [d.name for d in dimensions] == ["Region"]
        assert measures == [Measure("Cost", AggregateFunction.SUM, 12.0)]

    def test_custom_hierarchy_builder(self):
        records = [
            {"Country": "FR", "City": "Paris", "Sales": 1},
            {"Country": "FR", "City": "Lyon", "Sales": 2},
            {"Country": "DE", "City": "Berlin", "Sales": 3},
        ]
        config = InferenceConfig(hierarchy_builders=[
            ParentColumnHierarchyBuilder(child="City", parent="Country")
        ])
        dimensions, _ = infer_schema(records, config)
        city = next(d for d in dimensions if d.name == "City")
        assert city.hierarchy.levels == ("Country", "City")
        assert city.hierarchy.children_of("FR") == ("Paris", "Lyon")


class TestCubeBuilder:
    def test_build(self, scenario_records):
        cube = create_cube(scenario_records)
        assert cube.total_records == 3
        assert len(cube.cells) == 3
        assert cube.cells[0].coordinates == {"Region": "East", "Product": "A"}
        assert cube.cells[0].measures == {"Sales": 100.0}
        assert isinstance(cube.metadata.last_updated, datetime)

    def test_invalid_numbers_become_zero(self):
        records = [
            {"Region": "East", "Sales": "12.5"},
            {"Region": "West", "Sales": "n/a"},
        ]
        cube = create_cube(records)
        assert cube.get_measure("Sales").value == 12.5
        assert [c.measures["Sales"] for c in cube.cells] == [12.5, 0.0]

    def test_empty(self):
        cube = build_cube([], [], [])
        assert cube.cells == ()
        assert cube.total_records == 0

    def test_records_from_frame(self):
        df = pd.DataFrame({"Region": ["East", "West"], "Sales": [1.5, np.nan]})
        records = records_from_frame(df)
        assert records == [
            {"Region": "East", "Sales": 1.5},
            {"Region": "West", "Sales": None},
        ]
        cube = create_cube(records)
        assert cube.measure_total("Sales") == 1.5

    def test_to_frame(self, sales_records):
        cube = create_cube(sales_records)
        df = cube.to_frame()
        assert list(df.columns) == ["Date", "Region", "Category", "Product", "Sales", "Quantity"]
        assert len(df) == 6
        assert df["Sales"].sum() == 320


class TestCubeValidation:
    def test_unknown_coordinate_rejected(self):
        dim = Dimension.from_values("A", DimensionKind.CATEGORICAL, ["x"])
        with pytest.raises(ValueError):
            Cube(dimensions=(dim,), cells=(CubeCell({"B": "x"}, {}),))

    def test_unknown_measure_rejected(self):
        with pytest.raises(ValueError):
            Cube(cells=(CubeCell({}, {"Sales": 1.0}),))

    def test_duplicate_dimensions_rejected(self):
        dim = Dimension.from_values("A", DimensionKind.CATEGORICAL, ["x"])
        with pytest.raises(ValueError):
            Cube(dimensions=(dim, dim))

    def test_dimension_measure_overlap_rejected(self):
        dim = Dimension.from_values("Sales", DimensionKind.CATEGORICAL, ["x"])
        with pytest.raises(ValueError):
            Cube(dimensions=(dim,), measures=(Measure("Sales"),))


class TestAggregation:
    def test_scenario_sum(self, scenario_records):
        cube = create_cube(scenario_records)
        result = aggregate(cube.cells, ["Region"], "Sales", "sum")

        assert len(result) == 2
        assert result[0].coordinates == {"Region": "East"}
        assert result[0].measures == {"Sales": 150}
        assert result[1].coordinates == {"Region": "West"}
        assert result[1].measures == {"Sales": 30}

    @pytest.mark.parametrize("kind,east,west", [
        ("average", 75.0, 30.0),
        ("avg", 75.0, 30.0),
        ("count", 2.0, 1.0),
        ("min", 50.0, 30.0),
        ("max", 100.0, 30.0),
    ])
    def test_kinds(self, scenario_records, kind, east, west):
        cube = create_cube(scenario_records)
        result = aggregate(cube.cells, ["Region"], "Sales", kind)
        assert [c.measures["Sales"] for c in result] == [east, west]

    def test_missing_measure_counts_as_zero(self):
        cells = [CubeCell({"R": "a"}, {"S": 5.0}), CubeCell({"R": "a"}, {})]
        assert aggregate(cells, ["R"], "S", AggregateFunction.SUM)[0].measures["S"] == 5.0
        assert aggregate(cells, ["R"], "S", AggregateFunction.AVERAGE)[0].measures["S"] == 2.5

    def test_strict_grouping(self):
        cells = [CubeCell({"Y": 2024}, {"S": 1.0}), CubeCell({"Y": "2024"}, {"S": 2.0})]
        assert len(aggregate(cells, ["Y"], "S")) == 2

    def test_multi_dimension_first_seen_order(self, sales_records):
        cube = create_cube(sales_records)
        result = aggregate(cube.cells, ["Region", "Category"], "Sales")
        keys = [(c.coordinates["Region"], c.coordinates["Category"]) for c in result]
        assert keys == [("East", "Fruit"), ("West", "Fruit"), ("East", "Dairy"), ("West", "Dairy")]
        assert [c.measures["Sales"] for c in result] == [150, 50, 80, 40]

    def test_empty_group_reductions(self):
        assert reduce_values([], AggregateFunction.MIN) == 0.0
        assert reduce_values([], AggregateFunction.MAX) == 0.0
        assert reduce_values([], AggregateFunction.SUM) == 0.0
        assert reduce_values([], AggregateFunction.COUNT) == 0.0

    def test_missing_coordinates_group_together(self):
        cells = [
            CubeCell({"R": None}, {"S": 1.0}),
            CubeCell({"R": "a"}, {"S": 4.0}),
            CubeCell({"R": float("nan")}, {"S": 2.0}),
        ]
        result = aggregate(cells, ["R"], "S")
        assert len(result) == 2
        assert result[0].coordinates == {"R": None}
        assert result[0].measures == {"S": 3.0}

    def test_select_cells_is_kind_strict(self):
        cells = (
            CubeCell({"Y": 2024}, {"S": 1.0}),
            CubeCell({"Y": "2024"}, {"S": 2.0}),
            CubeCell({"Y": 2024.0}, {"S": 3.0}),
        )
        assert select_cells(cells, {"Y": [2024]}) == [cells[0], cells[2]]
        assert select_cells(cells, {"Y": ["2024"]}) == [cells[1]]
        assert select_cells(cells, {}) == list(cells)
        assert select_cells((), {"Y": [2024]}) == []

    def test_key_frame_columns(self):
        cells = [CubeCell({"R": "a", "Y": 1}, {}), CubeCell({"R": None, "Y": 1.0}, {})]
        frame = key_frame(cells, ["R", "Y"])
        assert list(frame.columns) == ["R", "Y"]
        assert frame["Y"].nunique() == 1
        assert frame["R"].nunique() == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
