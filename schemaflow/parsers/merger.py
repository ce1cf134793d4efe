import dataclasses
from typing import Dict, List, Optional

from schemaflow.constants import Cardinality, IndexType
from schemaflow.logging_config import get_logger
from schemaflow.models import (
    Table, Index, ForeignKeyConstraint, AlterTableConstraints, IdSequence,
)

logger = get_logger("merger")


def infer_cardinality(table: Optional[Table], column_name: str) -> Cardinality:
    """1:1 when the referencing column is unique or a primary key, else 1:N."""
    column = table.get_column(column_name) if table else None
    if column and (column.is_unique or column.is_primary_key):
        return Cardinality.ONE_TO_ONE
    return Cardinality.ONE_TO_MANY


class ConstraintMerger:
    """
    Reconciles CREATE TABLE results with constraints from ALTER TABLE.

    ALTER primary keys are applied first and replace whatever primary key
    the table already had. Unique keys, auto increments and indexes are
    additive. Foreign keys come last; one whose table or column is missing
    is dropped with a warning. Cardinality is computed for every foreign
    key at the end.
    """

    def __init__(self, ids: IdSequence):
        self.ids = ids

    def merge(self, tables: List[Table], foreign_keys: List[ForeignKeyConstraint],
              alter: AlterTableConstraints, warnings: List[str]) -> List[ForeignKeyConstraint]:
        """
        Applies ``alter`` to ``tables`` in place.

        Returns the combined foreign key list with cardinality filled in and
        appends diagnostics to ``warnings``.
        """
        by_name = self._index_tables(tables)
        if not alter.is_empty():
            logger.debug(
                f"Applying ALTER TABLE constraints: {len(alter.primary_keys)} primary keys, "
                f"{len(alter.unique_keys)} unique keys, {len(alter.indexes)} indexes, "
                f"{len(alter.foreign_keys)} foreign keys"
            )

        for pk in alter.primary_keys:
            table = self._find_table(by_name, pk.table_name, warnings)
            if table is None:
                continue
            for column in table.columns:
                column.is_primary_key = False
            for column_name in pk.columns:
                column = table.get_column(column_name)
                if column:
                    column.mark_primary_key()
                else:
                    warnings.append(f'Primary key column "{column_name}" not found in table "{table.name}"')

        for unique in alter.unique_keys:
            table = self._find_table(by_name, unique.table_name, warnings)
            if table is None:
                continue
            columns = [c for c in (table.get_column(name) for name in unique.columns) if c]
            # Every member of a composite key is flagged unique as well
            for column in columns:
                column.is_unique = True
            if unique.name and columns:
                table.indexes.append(Index(
                    id=self.ids.next('idx'),
                    name=unique.name,
                    columns=[c.id for c in columns],
                    index_type=IndexType.UNIQUE,
                ))

        for auto in alter.auto_increments:
            table = self._find_table(by_name, auto.table_name, warnings)
            if table is None:
                continue
            column = table.get_column(auto.column_name)
            if column:
                column.auto_increment = True

        for alter_index in alter.indexes:
            table = self._find_table(by_name, alter_index.table_name, warnings)
            if table is None:
                continue
            columns = [c for c in (table.get_column(name) for name in alter_index.columns) if c]
            if not columns:
                continue
            for column in columns:
                column.is_indexed = True
            name = alter_index.name or f"idx_{table.name}_{'_'.join(c.name for c in columns)}"
            table.indexes.append(Index(
                id=self.ids.next('idx'),
                name=name,
                columns=[c.id for c in columns],
                index_type=alter_index.index_type,
            ))

        merged = list(foreign_keys)
        for fk in alter.foreign_keys:
            table = by_name.get(fk.table_name) or by_name.get(fk.table_name.lower())
            if table is None:
                warnings.append(
                    f'Table "{fk.table_name}" referenced in foreign key not found in CREATE TABLE statements'
                )
                continue
            column = table.get_column(fk.column_name)
            if column is None:
                warnings.append(f'Foreign key column "{fk.column_name}" not found in table "{fk.table_name}"')
                continue
            column.mark_foreign_key(fk.referenced_table, fk.referenced_column)
            merged.append(dataclasses.replace(fk, table_name=table.name, column_name=column.name))

        for fk in merged:
            if fk.referenced_table not in by_name and fk.referenced_table.lower() not in by_name:
                warnings.append(
                    f'Table "{fk.referenced_table}" referenced in foreign key not found in CREATE TABLE statements'
                )

        return [
            dataclasses.replace(
                fk, cardinality=infer_cardinality(by_name.get(fk.table_name), fk.column_name)
            )
            for fk in merged
        ]

    @staticmethod
    def _index_tables(tables: List[Table]) -> Dict[str, Table]:
        by_name: Dict[str, Table] = {}
        for table in tables:
            by_name[table.name] = table
            by_name.setdefault(table.name.lower(), table)
        return by_name

    @staticmethod
    def _find_table(by_name: Dict[str, Table], name: str, warnings: List[str]) -> Optional[Table]:
        table = by_name.get(name) or by_name.get(name.lower())
        if table is None:
            warnings.append(f'Table "{name}" not found for ALTER TABLE constraint')
            logger.debug(f"ALTER TABLE constraint targets unknown table {name}")
        return table
