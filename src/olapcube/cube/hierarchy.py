"""
Hierarchy detection for dimensions.

Builders are keyed by the role a dimension plays (a temporal column, a
categorical column with a parent column) and are configured at ingestion
time through ``InferenceConfig.hierarchy_builders``.
"""

import logging
import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from olapcube.cube.schema import DimensionKind, Hierarchy
from olapcube.cube.scalars import date_text, is_missing, member_key

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

_DAY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_MONTH = re.compile(r"^(\d{4})-(\d{2})$")
_YEAR = re.compile(r"^(\d{4})$")


class Granularity(Enum):
    """Temporal granularity of a date dimension, finest first."""
    DAY = "Day"
    MONTH = "Month"
    YEAR = "Year"

    @property
    def coarser(self) -> Optional["Granularity"]:
        order = list(Granularity)
        idx = order.index(self)
        return order[idx + 1] if idx + 1 < len(order) else None


def value_granularity(value: Any) -> Optional[Granularity]:
    """Granularity of a single value, or None if it is not a date."""
    text = date_text(value)
    if _DAY.match(text):
        return Granularity.DAY
    if _MONTH.match(text):
        return Granularity.MONTH
    if _YEAR.match(text):
        return Granularity.YEAR
    return None


def detect_granularity(values: Iterable[Any]) -> Granularity:
    """
    Detect the granularity of a dimension from its first present value.

    Unrecognized formats fall back to DAY.
    """
    for value in values:
        if is_missing(value):
            continue
        return value_granularity(value) or Granularity.DAY
    return Granularity.DAY


def coarsen(value: Any, granularity: Granularity) -> Any:
    """
    Rewrite a value one level up from ``granularity``.

    Day text becomes month text ("2024-03-15" -> "2024-03"), month text
    becomes year text. Values that are not dates pass through unchanged.
    """
    if is_missing(value):
        return value
    text = date_text(value)
    if granularity is Granularity.DAY and _DAY.match(text):
        return text[:7]
    if granularity is Granularity.MONTH and (_MONTH.match(text) or _DAY.match(text)):
        return text[:4]
    return value


def date_path(value: Any) -> Optional[List[str]]:
    """Top-down member path of a date value: [year, month, day] prefixes."""
    if is_missing(value):
        return None
    text = date_text(value)
    match = _DAY.match(text)
    if match:
        year, month, day = match.groups()
        return [year, f"{year}-{month}", f"{year}-{month}-{day}"]
    parts = text.split("-")
    if _MONTH.match(text):
        return [parts[0], text]
    if _YEAR.match(text):
        return [text]
    return None


class HierarchyBuilder(ABC):
    """Detects the level structure of one kind of dimension."""

    levels: Tuple[str, ...] = ()

    @abstractmethod
    def applies_to(self, dimension: str, kind: DimensionKind,
                   columns: Sequence[str]) -> bool:
        """Whether this builder handles the given dimension."""
        pass

    @abstractmethod
    def build(self, dimension: str, records: Sequence[Record]) -> Optional[Hierarchy]:
        """Build the hierarchy from the records, or None if none is found."""
        pass


class DateHierarchyBuilder(HierarchyBuilder):
    """
    Year / Month / Day hierarchy for temporal dimensions.

    Each date is split on '-' into its year, month and day members; each
    member's parent is the member one level up.
    """

    levels = ("Year", "Month", "Day")

    def __init__(self, columns: Optional[Sequence[str]] = None):
        self.columns = tuple(columns) if columns else None

    def applies_to(self, dimension, kind, columns):
        if self.columns is not None:
            return dimension in self.columns
        return kind == DimensionKind.TEMPORAL

    def build(self, dimension, records):
        pairs = []
        for record in records:
            path = date_path(record.get(dimension))
            if not path:
                continue
            for parent, child in zip(path, path[1:]):
                pairs.append((child, parent))
        if not pairs:
            logger.debug(f"No date values found in {dimension}, skipping hierarchy")
            return None
        return Hierarchy.from_pairs(self.levels, pairs)


class ParentColumnHierarchyBuilder(HierarchyBuilder):
    """
    Two-level hierarchy joining a child column to a parent column.

    Example: Product -> Category, taken from the same record.
    """

    def __init__(self, child: str = "Product", parent: str = "Category",
                 levels: Optional[Sequence[str]] = None):
        self.child = child
        self.parent = parent
        self.levels = tuple(levels) if levels else (parent, child)

    def applies_to(self, dimension, kind, columns):
        return dimension == self.child and self.parent in columns

    def build(self, dimension, records):
        pairs = []
        member_values = {}
        for record in records:
            child = record.get(dimension)
            parent = record.get(self.parent)
            if is_missing(child) or is_missing(parent):
                continue
            child_key, parent_key = member_key(child), member_key(parent)
            pairs.append((child_key, parent_key))
            member_values.setdefault(child_key, child)
            member_values.setdefault(parent_key, parent)
        if not pairs:
            return None
        return Hierarchy.from_pairs(self.levels, pairs, member_values)


def default_hierarchy_builders() -> List[HierarchyBuilder]:
    return [DateHierarchyBuilder(), ParentColumnHierarchyBuilder()]
