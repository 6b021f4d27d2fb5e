#!/usr/bin/env python3
"""
Example: Exploring a sales cube with olapcube.

This script demonstrates how to:
1. Build a cube from a flat sales table
2. Apply slice, dice, drill-up, drill-down and pivot in a session
3. Inspect rejected operations and candidate operations
4. Save the session history
"""

import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import logging

import pandas as pd
import numpy as np

from olapcube.cube.actions import (
    DiceOperation, DrillDownOperation, DrillUpOperation, PivotOperation, SliceOperation,
    generate_candidate_operations
)
from olapcube.cube.builder import records_from_frame
from olapcube.cube.view import AxisAssignment
from olapcube.nav.session import ExplorationSession


def create_sample_data():
    """Create sample sales data for demonstration."""
    np.random.seed(42)

    stores = ['CA_1', 'CA_2', 'TX_1', 'TX_2', 'WI_1']
    products = {
        'Bread': 'Foods', 'Cheese': 'Foods',
        'Detergent': 'Household', 'Sponge': 'Household',
        'Puzzle': 'Hobbies',
    }

    records = []
    for year in [2022, 2023]:
        for month in range(1, 13):
            for store in stores:
                for product, category in products.items():
                    base = 100 + np.random.normal(0, 20)

                    # Seasonal effect
                    if month in [11, 12]:
                        base *= 1.3

                    # Anomaly
                    if year == 2023 and month == 6 and store == 'TX_1' and category == 'Foods':
                        base *= 0.3

                    quantity = max(0, int(base))
                    day = np.random.randint(1, 29)
                    records.append({
                        'Date': f"{year}-{month:02d}-{day:02d}",
                        'Region': store[:2],
                        'Store': store,
                        'Category': category,
                        'Product': product,
                        'Sales': round(quantity * np.random.uniform(8, 12), 2),
                        'Quantity': quantity,
                    })

    return pd.DataFrame(records)


def show(session):
    cube = session.current_cube
    print(f"   cells={cube.total_records}  dims={cube.dimension_names}  "
          f"Sales={cube.measure_total('Sales'):,.2f}")


def run_demo():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("olapcube Demo")
    print("=" * 60)

    print("\n1. Building cube from sample data...")
    records = records_from_frame(create_sample_data())
    session = ExplorationSession.start(records, metadata={"task": "demo"})
    cube = session.current_cube
    for dim in cube.dimensions:
        print(f"   {dim.name}: {dim.kind.value}, {len(dim.unique_values)} members"
              f"{', hierarchical' if dim.is_hierarchical() else ''}")
    print(f"   Measures: {cube.measure_names}")
    print(f"   Axes: {session.axis_assignment.describe()}")

    print("\n2. Navigating...")
    steps = [
        DiceOperation({"Region": ["TX", "WI"]}),
        DrillUpOperation("Date", "Day"),
        DrillUpOperation("Date", "Month"),
        DrillUpOperation("Date", "Year"),
        DrillUpOperation("Product"),
        SliceOperation("Date", "2023"),
        PivotOperation(AxisAssignment(x="Store", y="Product", measure="Sales")),
    ]
    for operation in steps:
        result = session.apply(operation)
        status = "applied" if result.applied else f"rejected ({result.reason.value})"
        print(f"\n -> {operation.describe()}: {status}")
        show(session)

    print("\n3. Pivoted view:")
    print(session.current_cube.to_frame().to_string(index=False))

    print("\n4. Back to the yearly cube and drilling down...")
    session.back()
    session.back()
    result = session.apply(DrillDownOperation("Date", "Month"))
    print(f"   {result.detail or 'applied'}")
    show(session)

    print("\n5. Candidate operations on the current cube:")
    for operation in generate_candidate_operations(session.current_cube, max_members=2):
        print(f"   - {operation.describe()}")

    print("\nHistory:")
    for i, operation in enumerate(session.history, 1):
        print(f"   {i}. {operation.describe()}")

    os.makedirs("logs", exist_ok=True)
    session.save("logs/demo_session.json")
    print("\nSession saved to logs/demo_session.json")

    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    run_demo()
