"""
Structural diff between two table snapshots.

The differences always drive the target toward the source: columns first,
then indexes, then the primary key. A changed index or primary key is
emitted as a drop followed by an add.
"""

from . import ddl
from .models import Difference, DifferenceType, TableSnapshot


def _column_differences(source: TableSnapshot, target: TableSnapshot,
                        table: str) -> list[Difference]:
    differences = []
    for column in source.columns:
        existing = target.column(column.name)
        if existing is None:
            differences.append(Difference(
                type=DifferenceType.ADD_COLUMN,
                name=column.name,
                description=f"Add column '{column.name}'",
                sql=ddl.add_column(table, column),
                definition=column,
            ))
        elif not column.same_definition(existing):
            differences.append(Difference(
                type=DifferenceType.MODIFY_COLUMN,
                name=column.name,
                description=(
                    f"Modify column '{column.name}' "
                    f"({existing.type} -> {column.type})"
                    if existing.type != column.type
                    else f"Modify column '{column.name}'"
                ),
                sql=ddl.modify_column(table, column),
                definition=column,
            ))

    for column in target.columns:
        if source.column(column.name) is None:
            differences.append(Difference(
                type=DifferenceType.DROP_COLUMN,
                name=column.name,
                description=f"Drop column '{column.name}'",
                sql=ddl.drop_column(table, column.name),
            ))
    return differences


def _index_differences(source: TableSnapshot, target: TableSnapshot,
                       table: str) -> list[Difference]:
    differences = []
    for index in source.indexes:
        existing = target.index(index.name)
        if existing == index:
            continue
        if existing is not None:
            differences.append(Difference(
                type=DifferenceType.DROP_INDEX,
                name=index.name,
                description=f"Drop index '{index.name}' to recreate it",
                sql=ddl.drop_index(table, index.name),
            ))
        differences.append(Difference(
            type=DifferenceType.ADD_INDEX,
            name=index.name,
            description=(
                f"Recreate index '{index.name}'" if existing is not None
                else f"Add index '{index.name}'"
            ),
            sql=ddl.add_index(table, index),
            definition=index,
        ))

    for index in target.indexes:
        if source.index(index.name) is None:
            differences.append(Difference(
                type=DifferenceType.DROP_INDEX,
                name=index.name,
                description=f"Drop index '{index.name}'",
                sql=ddl.drop_index(table, index.name),
            ))
    return differences


def _primary_key_differences(source: TableSnapshot, target: TableSnapshot,
                             table: str) -> list[Difference]:
    source_key, target_key = source.primary_key, target.primary_key
    if source_key == target_key:
        return []

    differences = []
    if target_key is not None:
        differences.append(Difference(
            type=DifferenceType.DROP_PRIMARY_KEY,
            name="PRIMARY",
            description=(
                "Drop existing primary key" if source_key is not None
                else "Drop primary key"
            ),
            sql=ddl.drop_primary_key(table),
        ))
    if source_key is not None:
        differences.append(Difference(
            type=DifferenceType.ADD_PRIMARY_KEY,
            name="PRIMARY",
            description=(
                "Add new primary key" if target_key is not None
                else "Add primary key"
            ),
            sql=ddl.add_primary_key(table, source_key),
            definition=source_key,
        ))
    return differences


def diff_tables(source: TableSnapshot, target: TableSnapshot,
                table_name: str | None = None) -> list[Difference]:
    """
    Compute the ordered differences that turn ``target`` into ``source``

    Pure: no I/O and neither snapshot is modified.

    Args:
        source: Desired structure
        target: Current structure
        table_name: Table the DDL addresses (default: target.name)

    Returns:
        Differences ordered columns, then indexes, then primary key
    """
    table = table_name or target.name
    return (
        _column_differences(source, target, table)
        + _index_differences(source, target, table)
        + _primary_key_differences(source, target, table)
    )
