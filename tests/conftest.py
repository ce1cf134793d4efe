"""
Shared fixtures.

``render_ddl`` turns a ParseResult back into plain DDL. It stands in for the
editor's SQL export and only writes what the parser reads back: column
types, nullability, unique and primary keys, defaults, indexes, auto
increment and foreign keys (the last three as ALTER TABLE statements so the
output is dialect neutral).
"""
import pytest

from schemaflow.parsers.type_normalizer import normalize_type


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _render_default(value):
    if value in ('NULL', 'CURRENT_TIMESTAMP'):
        return value
    return _quote(value)


def render_ddl(result) -> str:
    statements = []
    alters = []

    for table in result.tables:
        lines = []
        primary_keys = [c.name for c in table.columns if c.is_primary_key]
        indexed_ids = {col_id for index in table.indexes for col_id in index.columns}

        for column in table.columns:
            parts = [column.name, column.data_type]
            if not column.is_nullable and not column.is_primary_key:
                parts.append('NOT NULL')
            if column.is_unique:
                parts.append('UNIQUE')
            if column.default_value is not None:
                parts.append('DEFAULT ' + _render_default(column.default_value))
            lines.append('    ' + ' '.join(parts))

            if column.auto_increment:
                alters.append(f"ALTER TABLE {table.name} MODIFY {column.name} {column.data_type} AUTO_INCREMENT;")
            if column.is_indexed and column.id not in indexed_ids:
                alters.append(f"ALTER TABLE {table.name} ADD INDEX ({column.name});")

        if primary_keys:
            lines.append(f"    PRIMARY KEY ({', '.join(primary_keys)})")

        statements.append(f"CREATE TABLE {table.name} (\n" + ',\n'.join(lines) + "\n);")

        by_id = {c.id: c.name for c in table.columns}
        for index in table.indexes:
            columns = ', '.join(by_id[col_id] for col_id in index.columns)
            if index.index_type.value == 'UNIQUE':
                alters.append(f"ALTER TABLE {table.name} ADD UNIQUE KEY {index.name} ({columns});")
            else:
                alters.append(f"ALTER TABLE {table.name} ADD INDEX {index.name} ({columns});")

    for fk in result.foreign_key_constraints:
        clause = (f"ALTER TABLE {fk.table_name} ADD FOREIGN KEY ({fk.column_name}) "
                  f"REFERENCES {fk.referenced_table} ({fk.referenced_column})")
        if fk.on_delete:
            clause += f" ON DELETE {fk.on_delete}"
        if fk.on_update:
            clause += f" ON UPDATE {fk.on_update}"
        alters.append(clause + ";")

    return '\n\n'.join(statements + alters) + '\n'


def column_flags(result):
    """Table -> column -> comparable flag tuple, with the type normalized."""
    flags = {}
    for table in result.tables:
        flags[table.name] = {
            column.name: (
                normalize_type(column.name, column.data_type),
                column.is_primary_key,
                column.is_foreign_key,
                column.is_nullable,
                column.is_unique,
                column.is_indexed,
                column.auto_increment,
                column.default_value,
            )
            for column in table.columns
        }
    return flags


@pytest.fixture
def ddl_renderer():
    return render_ddl


@pytest.fixture
def flags_of():
    return column_flags
