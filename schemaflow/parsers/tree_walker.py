from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlglot import exp

from schemaflow.constants import (
    Dialect, IndexType, ReferentialAction, StorageEngine, DEFAULT_REFERENCED_COLUMN, SQLKeyword,
)
from schemaflow.exceptions import TableNameError
from schemaflow.logging_config import get_logger
from schemaflow.models import Column, Index, Table, ForeignKeyConstraint, IdSequence
from schemaflow.parsers.grammar import SQLGLOT_DIALECTS, column_definitions
from schemaflow.parsers.primary_key import detect_implicit_primary_key
from schemaflow.parsers.type_normalizer import normalize_type

logger = get_logger("walker")

SERIAL_TYPES = {'SERIAL', 'BIGSERIAL', 'SMALLSERIAL', 'SERIAL2', 'SERIAL4', 'SERIAL8'}

# Function defaults rendered as CURRENT_TIMESTAMP
CURRENT_TIMESTAMP_FUNCTIONS = {'CURRENT_TIMESTAMP', 'NOW'}

REFERENTIAL_ACTIONS = {action.value for action in ReferentialAction}

INDEX_KINDS = {'FULLTEXT': IndexType.FULLTEXT, 'SPATIAL': IndexType.SPATIAL}


@dataclass
class WalkedTable:
    table: Table
    foreign_keys: List[ForeignKeyConstraint] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    has_explicit_primary_key: bool = False


def declared_type(kind: Optional[exp.Expression]) -> str:
    """
    ``NAME(param,...)`` for a column type, taken from the DataType node.

    Names come from sqlglot's type enum rather than a dialect generator, so
    ``LONGTEXT`` or ``BOOLEAN`` are not rewritten into another dialect's
    spelling. Arrays render as ``element[]``; untyped columns as ``''``.
    """
    if kind is None:
        return ''
    if not isinstance(kind, exp.DataType):
        return kind.sql()

    if kind.this == exp.DataType.Type.ARRAY and kind.expressions:
        return declared_type(kind.expressions[0]) + '[]'

    if kind.this == exp.DataType.Type.USERDEFINED:
        name = str(kind.args.get("kind") or '')
    else:
        name = kind.this.value

    params = [param.sql() for param in kind.expressions]
    if params:
        name += '(' + ','.join(params) + ')'
    return name


def render_default(value: Optional[exp.Expression], dialect: Optional[Dialect] = None) -> Optional[str]:
    """Renders a DEFAULT expression the way the editor displays it."""
    if value is None:
        return None
    while isinstance(value, exp.Cast):
        value = value.this
    if isinstance(value, exp.Null):
        return 'NULL'
    if isinstance(value, exp.Literal) and value.is_string:
        return value.this
    if isinstance(value, exp.CurrentTimestamp):
        return SQLKeyword.CURRENT_TIMESTAMP.value
    if isinstance(value, (exp.Anonymous, exp.Column)) and value.name.upper() in CURRENT_TIMESTAMP_FUNCTIONS:
        return SQLKeyword.CURRENT_TIMESTAMP.value
    read = SQLGLOT_DIALECTS.get(dialect) if dialect else None
    return value.sql(dialect=read, normalize_functions=False)


def column_name(node: exp.Expression) -> str:
    """Column name from an index or key part (``col``, ``col DESC``, ``col(20)``)."""
    if isinstance(node, exp.Ordered):
        node = node.this
    name = node.name
    if not name:
        identifier = node.find(exp.Identifier)
        name = identifier.name if identifier is not None else ''
    return name


def referential_action(value) -> Optional[str]:
    if value is None:
        return None
    action = " ".join(str(value).upper().split())
    return action if action in REFERENTIAL_ACTIONS else None


def referential_actions(reference: exp.Reference) -> Tuple[Optional[str], Optional[str]]:
    """ON DELETE / ON UPDATE actions listed in a REFERENCES clause's options."""
    on_delete = None
    on_update = None
    for option in reference.args.get("options") or []:
        text = " ".join(str(option).upper().split())
        if text.startswith("ON DELETE "):
            on_delete = referential_action(text[len("ON DELETE "):]) or on_delete
        elif text.startswith("ON UPDATE "):
            on_update = referential_action(text[len("ON UPDATE "):]) or on_update
    return on_delete, on_update


def reference_target(reference: exp.Reference) -> Tuple[str, List[str]]:
    target = reference.this
    if isinstance(target, exp.Schema):
        return target.this.name, [column_name(c) for c in target.expressions]
    return target.name, []


class CreateTableWalker:
    """
    Turns sqlglot CREATE TABLE expressions into Table models.

    Columns and indexes draw their ids from the IdSequence handed in, so one
    walker instance belongs to one parse call.
    """

    def __init__(self, ids: IdSequence):
        self.ids = ids

    def walk(self, statement: exp.Create, dialect: Optional[Dialect] = None) -> WalkedTable:
        table_node = statement.this
        if isinstance(table_node, exp.Schema):
            table_node = table_node.this
        table_name = (table_node.name if table_node is not None else '').strip()
        if not table_name:
            raise TableNameError()

        result = WalkedTable(table=Table(name=table_name))
        table = result.table
        elements = column_definitions(statement)

        for element in elements:
            if isinstance(element, (exp.ColumnDef, exp.Identifier)):
                column, foreign_key = self.parse_column(table_name, element, dialect)
                table.columns.append(column)
                if foreign_key:
                    result.foreign_keys.append(foreign_key)

        result.has_explicit_primary_key = table.has_primary_key()

        for element in elements:
            if isinstance(element, exp.Constraint):
                name = element.this.name if element.this is not None else None
                for kind in element.expressions:
                    self._apply_table_constraint(result, kind, name)
            elif not isinstance(element, (exp.ColumnDef, exp.Identifier)):
                self._apply_table_constraint(result, element, None)

        if not result.has_explicit_primary_key:
            implicit_pk = detect_implicit_primary_key(table_name, table.columns)
            if implicit_pk:
                logger.debug(f"Using {implicit_pk.name} as implicit primary key",
                             extra={"table_name": table_name})
                implicit_pk.mark_primary_key()
            else:
                result.warnings.append(f'Table "{table_name}" has no detectable primary key')

        properties = statement.args.get("properties")
        for prop in (properties.expressions if properties else []):
            if isinstance(prop, exp.EngineProperty):
                table.engine = StorageEngine.from_sql(prop.this.name)
            elif isinstance(prop, exp.CollateProperty):
                table.collation = prop.this.name
            elif isinstance(prop, exp.SchemaCommentProperty):
                table.comment = prop.this.name

        return result

    def parse_column(self, table_name: str, node: exp.Expression,
                     dialect: Optional[Dialect] = None) -> Tuple[Column, Optional[ForeignKeyConstraint]]:
        """
        Builds one Column, plus the foreign key declared inline, if any.

        An inline REFERENCES ends constraint processing for the column; its
        own ON DELETE / ON UPDATE actions are still read.
        """
        if isinstance(node, exp.Identifier):
            # SQLite column without a declared type
            name, raw_type, constraints = node.name, '', []
        else:
            name = node.this.name
            raw_type = declared_type(node.args.get("kind"))
            constraints = node.constraints

        column = Column(
            id=self.ids.next('col'),
            name=name,
            data_type=normalize_type(name, raw_type),
            auto_increment=raw_type.split('(', 1)[0].upper() in SERIAL_TYPES,
        )
        foreign_key = None

        for constraint in constraints:
            kind = constraint.kind
            if isinstance(kind, exp.PrimaryKeyColumnConstraint):
                column.mark_primary_key()
            elif isinstance(kind, exp.NotNullColumnConstraint):
                column.is_nullable = bool(kind.args.get("allow_null"))
            elif isinstance(kind, exp.UniqueColumnConstraint):
                column.is_unique = True
            elif isinstance(kind, exp.DefaultColumnConstraint):
                column.default_value = render_default(kind.this, dialect)
            elif isinstance(kind, exp.AutoIncrementColumnConstraint):
                column.auto_increment = True
            elif isinstance(kind, exp.GeneratedAsIdentityColumnConstraint):
                # GENERATED ALWAYS AS (expr) is a computed column, not an identity
                if kind.args.get("expression") is None:
                    column.auto_increment = True
            elif isinstance(kind, exp.CollateColumnConstraint):
                column.collation = kind.this.name
            elif isinstance(kind, exp.CommentColumnConstraint):
                column.comment = kind.this.name
            elif isinstance(kind, exp.Reference):
                constraint_name = constraint.this.name if constraint.this is not None else None
                foreign_key = self._inline_foreign_key(table_name, column, kind, constraint_name)
                break

        if column.is_primary_key:
            column.is_nullable = False

        return column, foreign_key

    def _inline_foreign_key(self, table_name: str, column: Column, reference: exp.Reference,
                            constraint_name: Optional[str]) -> ForeignKeyConstraint:
        referenced_table, referenced_columns = reference_target(reference)
        referenced_column = referenced_columns[0] if referenced_columns else DEFAULT_REFERENCED_COLUMN
        on_delete, on_update = referential_actions(reference)
        column.mark_foreign_key(referenced_table, referenced_column)
        return ForeignKeyConstraint(
            table_name=table_name,
            column_name=column.name,
            referenced_table=referenced_table,
            referenced_column=referenced_column,
            on_delete=on_delete,
            on_update=on_update,
            constraint_name=constraint_name,
        )

    def _apply_table_constraint(self, result: WalkedTable, kind: exp.Expression, name: Optional[str]):
        table = result.table

        if isinstance(kind, exp.PrimaryKey):
            result.has_explicit_primary_key = True
            for pk_column in (column_name(c) for c in kind.expressions):
                column = table.get_column(pk_column)
                if column:
                    column.mark_primary_key()
                else:
                    result.warnings.append(
                        f'Primary key column "{pk_column}" not found in table "{table.name}"'
                    )

        elif isinstance(kind, exp.UniqueColumnConstraint):
            schema = kind.this
            if isinstance(schema, exp.Schema):
                names = [column_name(c) for c in schema.expressions]
                if name is None and schema.this is not None:
                    name = schema.this.name or None
            else:
                names = [schema.name] if schema is not None else []
            columns = [c for c in (table.get_column(n) for n in names) if c]
            for column in columns:
                column.is_unique = True
            if name and columns:
                table.indexes.append(Index(
                    id=self.ids.next('idx'),
                    name=name,
                    columns=[c.id for c in columns],
                    index_type=IndexType.UNIQUE,
                ))

        elif isinstance(kind, exp.ForeignKey):
            result.foreign_keys.extend(self._table_foreign_keys(result, kind, name))

        elif isinstance(kind, exp.IndexColumnConstraint):
            names = [column_name(c) for c in kind.expressions]
            columns = [c for c in (table.get_column(n) for n in names) if c]
            for column in columns:
                column.is_indexed = True
            if columns:
                index_name = (kind.this.name if kind.this is not None else '') or \
                    f"idx_{table.name}_{'_'.join(c.name for c in columns)}"
                table.indexes.append(Index(
                    id=self.ids.next('idx'),
                    name=index_name,
                    columns=[c.id for c in columns],
                    index_type=INDEX_KINDS.get(str(kind.args.get("kind") or '').upper(), IndexType.INDEX),
                ))

    def _table_foreign_keys(self, result: WalkedTable, foreign_key: exp.ForeignKey,
                            name: Optional[str]) -> List[ForeignKeyConstraint]:
        table = result.table
        reference = foreign_key.args.get("reference")
        if reference is None:
            return []
        referenced_table, referenced_columns = reference_target(reference)
        referenced_columns = referenced_columns or [DEFAULT_REFERENCED_COLUMN]
        on_delete, on_update = referential_actions(reference)
        # Actions written after the reference may land on the FOREIGN KEY node instead
        on_delete = on_delete or referential_action(foreign_key.args.get("delete"))
        on_update = on_update or referential_action(foreign_key.args.get("update"))
        foreign_keys = []

        for index, fk_column in enumerate(column_name(c) for c in foreign_key.expressions):
            referenced_column = (referenced_columns[index]
                                 if index < len(referenced_columns) else referenced_columns[0])
            column = table.get_column(fk_column)
            if column is None:
                result.warnings.append(
                    f'Foreign key column "{fk_column}" not found in table "{table.name}"'
                )
                continue
            column.mark_foreign_key(referenced_table, referenced_column)
            foreign_keys.append(ForeignKeyConstraint(
                table_name=table.name,
                column_name=column.name,
                referenced_table=referenced_table,
                referenced_column=referenced_column,
                on_delete=on_delete,
                on_update=on_update,
                constraint_name=name,
            ))
        return foreign_keys
