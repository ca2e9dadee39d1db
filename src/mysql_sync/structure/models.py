"""
Table structure snapshots, differences and sync plans.

Snapshots are immutable and keep catalog order: column order follows
ORDINAL_POSITION, index column order follows SEQ_IN_INDEX, and the
primary key lists its PRI columns in ORDINAL_POSITION order. Index and
primary-key equality is order sensitive.
"""

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

ON_UPDATE_CURRENT_TIMESTAMP = "on update current_timestamp"


@dataclass(frozen=True)
class ColumnSnapshot:
    name: str
    type: str
    nullable: bool = True
    key: str = ""
    default: str | None = None
    extra: str = ""
    comment: str = ""

    @property
    def on_update(self) -> bool:
        """Whether the column auto-updates to the current time on write."""
        return ON_UPDATE_CURRENT_TIMESTAMP in self.extra.lower()

    @property
    def auto_increment(self) -> bool:
        return "auto_increment" in self.extra.lower()

    def same_definition(self, other: "ColumnSnapshot") -> bool:
        """Compare everything a MODIFY COLUMN would change."""
        return (
            self.type == other.type
            and self.nullable == other.nullable
            and self.extra == other.extra
            and self.default == other.default
            and self.on_update == other.on_update
        )


@dataclass(frozen=True)
class IndexSnapshot:
    name: str
    columns: tuple[str, ...]
    unique: bool = False
    index_type: str = "BTREE"


@dataclass(frozen=True)
class PrimaryKeySnapshot:
    columns: tuple[str, ...]


@dataclass(frozen=True)
class TableSnapshot:
    name: str
    columns: tuple[ColumnSnapshot, ...] = ()
    indexes: tuple[IndexSnapshot, ...] = ()
    primary_key: PrimaryKeySnapshot | None = None

    def column(self, name: str) -> ColumnSnapshot | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def index(self, name: str) -> IndexSnapshot | None:
        for index in self.indexes:
            if index.name == name:
                return index
        return None


class DifferenceType(str, Enum):
    ADD_COLUMN = "ADD_COLUMN"
    MODIFY_COLUMN = "MODIFY_COLUMN"
    DROP_COLUMN = "DROP_COLUMN"
    ADD_INDEX = "ADD_INDEX"
    MODIFY_INDEX = "MODIFY_INDEX"
    DROP_INDEX = "DROP_INDEX"
    ADD_PRIMARY_KEY = "ADD_PRIMARY_KEY"
    DROP_PRIMARY_KEY = "DROP_PRIMARY_KEY"


@dataclass(frozen=True)
class Difference:
    """
    One atomic structural change

    ``definition`` holds the source-side object the statement was rendered
    from (a ColumnSnapshot, IndexSnapshot or PrimaryKeySnapshot), or None
    for drops. It is not serialised.
    """

    type: DifferenceType
    name: str
    description: str
    sql: str
    definition: Any = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, str]:
        return {
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "sql": self.sql,
        }


def _timestamp(now: datetime) -> str:
    return now.strftime("%Y-%m-%d %H:%M:%S")


def _write(path: str, content: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


@dataclass
class SyncPlan:
    """Result of comparing one table."""

    table: str
    differences: list[Difference] = field(default_factory=list)
    status: str = "pending"

    @property
    def has_differences(self) -> bool:
        return bool(self.differences)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "diff": [difference.to_dict() for difference in self.differences],
            "status": self.status,
        }

    def render_sql(self, generated_at: datetime | None = None) -> str:
        """Render the plan as one transactional SQL script."""
        generated_at = generated_at or datetime.now()
        lines = [
            f"-- MySQL Table Structure Synchronization for '{self.table}'",
            f"-- Generated: {_timestamp(generated_at)}",
        ]
        if not self.differences:
            lines.append("-- No differences found, structures are identical")
            return "\n".join(lines) + "\n"

        lines.append(f"-- Found {len(self.differences)} differences")
        lines.append("")
        lines.append("START TRANSACTION;")
        lines.append("")
        for number, difference in enumerate(self.differences, start=1):
            lines.append(f"-- {number}. {difference.type.value}: {difference.description}")
            lines.append(f"{difference.sql};")
            lines.append("")
        lines.append("COMMIT;")
        return "\n".join(lines) + "\n"

    def save_json(self, path: str) -> None:
        _write(path, json.dumps(self.to_dict(), indent=2, ensure_ascii=False))

    def save_sql(self, path: str, generated_at: datetime | None = None) -> None:
        _write(path, self.render_sql(generated_at))


@dataclass
class MergedSyncPlan:
    """Plans for every table that differs, built once per comparison run."""

    tables: list[SyncPlan] = field(default_factory=list)
    status: str = "pending"

    def add(self, plan: SyncPlan) -> None:
        self.tables.append(plan)

    @property
    def total_tables(self) -> int:
        return len(self.tables)

    @property
    def total_differences(self) -> int:
        return sum(len(plan.differences) for plan in self.tables)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tables": [plan.to_dict() for plan in self.tables],
            "total_tables": self.total_tables,
            "total_differences": self.total_differences,
            "status": self.status,
        }

    def render_sql(self, generated_at: datetime | None = None) -> str:
        generated_at = generated_at or datetime.now()
        lines = [
            "-- MySQL Table Structure Synchronization (merged)",
            f"-- Generated: {_timestamp(generated_at)}",
            f"-- Total Tables: {self.total_tables}",
            f"-- Total Differences: {self.total_differences}",
            "",
            "START TRANSACTION;",
            "",
        ]
        for table_number, plan in enumerate(self.tables, start=1):
            if not plan.differences:
                continue
            lines.append("-- " + "=" * 60)
            lines.append(f"-- Table: {plan.table} ({len(plan.differences)} differences)")
            lines.append("-- " + "=" * 60)
            for number, difference in enumerate(plan.differences, start=1):
                lines.append(
                    f"-- {table_number}.{number}. {difference.type.value}: "
                    f"{difference.description}"
                )
                lines.append(f"{difference.sql};")
                lines.append("")
        lines.append("COMMIT;")
        return "\n".join(lines) + "\n"

    def save_json(self, path: str) -> None:
        _write(path, json.dumps(self.to_dict(), indent=2, ensure_ascii=False))

    def save_sql(self, path: str, generated_at: datetime | None = None) -> None:
        _write(path, self.render_sql(generated_at))
