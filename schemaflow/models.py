from dataclasses import dataclass, field
from typing import List, Optional, Dict, Tuple

from schemaflow.constants import StorageEngine, IndexType, Cardinality


class IdSequence:
    """
    Per-parse generator of synthetic identifiers for columns and indexes.

    Each parse call owns one sequence so that parsing the same text twice
    produces the same ids.
    """

    def __init__(self):
        self._counters: Dict[str, int] = {}

    def next(self, prefix: str) -> str:
        value = self._counters.get(prefix, 0) + 1
        self._counters[prefix] = value
        return f"{prefix}_{value}"


@dataclass
class Column:
    id: str
    name: str
    data_type: str
    is_primary_key: bool = False
    is_foreign_key: bool = False
    is_nullable: bool = True
    is_unique: bool = False
    is_indexed: bool = False
    auto_increment: bool = False
    default_value: Optional[str] = None
    collation: Optional[str] = None
    comment: Optional[str] = None
    referenced_table: Optional[str] = None
    referenced_column: Optional[str] = None

    def __repr__(self):
        return f"Column(name='{self.name}', type='{self.data_type}')"

    def mark_primary_key(self):
        self.is_primary_key = True
        self.is_nullable = False

    def mark_foreign_key(self, referenced_table: str, referenced_column: str):
        self.is_foreign_key = True
        self.referenced_table = referenced_table
        self.referenced_column = referenced_column

    def to_dict(self):
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.data_type,
            "isPrimaryKey": self.is_primary_key,
            "isForeignKey": self.is_foreign_key,
            "isNullable": self.is_nullable,
            "isUnique": self.is_unique,
            "isIndexed": self.is_indexed,
            "autoIncrement": self.auto_increment,
            "defaultValue": self.default_value,
            "collation": self.collation,
            "comment": self.comment,
        }
        if self.is_foreign_key:
            data["referencedTable"] = self.referenced_table
            data["referencedColumn"] = self.referenced_column
        return data


@dataclass
class Index:
    id: str
    name: str
    columns: List[str]  # column ids
    index_type: IndexType = IndexType.INDEX

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "columns": list(self.columns),
            "type": self.index_type.value,
        }


@dataclass
class Table:
    name: str
    columns: List[Column] = field(default_factory=list)
    indexes: List[Index] = field(default_factory=list)
    engine: StorageEngine = StorageEngine.INNODB
    collation: Optional[str] = None
    comment: Optional[str] = None

    def get_column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        lowered = name.lower()
        for col in self.columns:
            if col.name.lower() == lowered:
                return col
        return None

    def has_primary_key(self) -> bool:
        return any(col.is_primary_key for col in self.columns)

    def to_dict(self):
        return {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "indexes": [i.to_dict() for i in self.indexes],
            "engine": self.engine.value,
            "collation": self.collation,
            "comment": self.comment,
        }


@dataclass(frozen=True)
class ForeignKeyConstraint:
    table_name: str
    column_name: str
    referenced_table: str
    referenced_column: str
    on_delete: Optional[str] = None
    on_update: Optional[str] = None
    cardinality: Cardinality = Cardinality.ONE_TO_MANY
    constraint_name: Optional[str] = None

    def to_dict(self):
        return {
            "tableName": self.table_name,
            "columnName": self.column_name,
            "referencedTable": self.referenced_table,
            "referencedColumn": self.referenced_column,
            "onDelete": self.on_delete,
            "onUpdate": self.on_update,
            "cardinality": self.cardinality.value,
            "constraintName": self.constraint_name,
        }


@dataclass
class AlterPrimaryKey:
    table_name: str
    columns: List[str]


@dataclass
class AlterUniqueKey:
    table_name: str
    columns: List[str]
    name: Optional[str] = None


@dataclass
class AlterAutoIncrement:
    table_name: str
    column_name: str


@dataclass
class AlterIndex:
    table_name: str
    columns: List[str]
    name: Optional[str] = None
    index_type: IndexType = IndexType.INDEX


@dataclass
class AlterTableConstraints:
    """Constraints recovered from ALTER TABLE statements, keyed by table name."""

    foreign_keys: List[ForeignKeyConstraint] = field(default_factory=list)
    primary_keys: List[AlterPrimaryKey] = field(default_factory=list)
    unique_keys: List[AlterUniqueKey] = field(default_factory=list)
    auto_increments: List[AlterAutoIncrement] = field(default_factory=list)
    indexes: List[AlterIndex] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.foreign_keys or self.primary_keys or self.unique_keys
                    or self.auto_increments or self.indexes)


@dataclass(frozen=True)
class ParseResult:
    tables: Tuple[Table, ...] = ()
    foreign_key_constraints: Tuple[ForeignKeyConstraint, ...] = ()
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    dialect: Optional[str] = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def get_table(self, name: str) -> Optional[Table]:
        for table in self.tables:
            if table.name == name:
                return table
        lowered = name.lower()
        for table in self.tables:
            if table.name.lower() == lowered:
                return table
        return None

    def to_dict(self):
        return {
            "tables": [t.to_dict() for t in self.tables],
            "foreignKeyConstraints": [fk.to_dict() for fk in self.foreign_key_constraints],
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "dialect": self.dialect,
        }
