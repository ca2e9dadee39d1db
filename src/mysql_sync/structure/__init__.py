"""Structure engine: snapshots, diffs and sync plans."""

from .comparer import StructureComparer
from .differ import diff_tables
from .extractor import extract_table_snapshot
from .models import (
    ColumnSnapshot,
    Difference,
    DifferenceType,
    IndexSnapshot,
    MergedSyncPlan,
    PrimaryKeySnapshot,
    SyncPlan,
    TableSnapshot,
)

__all__ = [
    "StructureComparer",
    "diff_tables",
    "extract_table_snapshot",
    "ColumnSnapshot",
    "Difference",
    "DifferenceType",
    "IndexSnapshot",
    "MergedSyncPlan",
    "PrimaryKeySnapshot",
    "SyncPlan",
    "TableSnapshot",
]
