"""
SchemaFlow SQL Constants

Centralized definitions for SQL keywords, dialect names and the enumerated
values of the schema model to reduce magic strings throughout the codebase.
"""

from enum import Enum
from typing import Set, Tuple


class SQLKeyword(str, Enum):
    """SQL keywords recognised while reading DDL."""

    # DDL Keywords
    CREATE = "CREATE"
    ALTER = "ALTER"
    TABLE = "TABLE"
    INDEX = "INDEX"
    TEMPORARY = "TEMPORARY"

    # Constraint Keywords
    PRIMARY = "PRIMARY"
    FOREIGN = "FOREIGN"
    KEY = "KEY"
    UNIQUE = "UNIQUE"
    CHECK = "CHECK"
    CONSTRAINT = "CONSTRAINT"
    REFERENCES = "REFERENCES"
    FULLTEXT = "FULLTEXT"
    SPATIAL = "SPATIAL"

    # Column Modifiers
    NOT = "NOT"
    NULL = "NULL"
    DEFAULT = "DEFAULT"
    IDENTITY = "IDENTITY"
    GENERATED = "GENERATED"
    AUTO_INCREMENT = "AUTO_INCREMENT"
    AUTOINCREMENT = "AUTOINCREMENT"

    # Actions
    ON = "ON"
    DELETE = "DELETE"
    UPDATE = "UPDATE"
    CASCADE = "CASCADE"
    RESTRICT = "RESTRICT"
    SET = "SET"
    NO = "NO"
    ACTION = "ACTION"

    # Other
    IF = "IF"
    EXISTS = "EXISTS"
    COMMENT = "COMMENT"
    COLLATE = "COLLATE"
    ENGINE = "ENGINE"
    CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"


class Dialect(str, Enum):
    """Grammar dialects tried when parsing CREATE TABLE statements."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"


# Order in which the dialect grammars are attempted
DEFAULT_DIALECTS: Tuple[Dialect, ...] = (Dialect.POSTGRESQL, Dialect.MYSQL, Dialect.SQLITE)


class StorageEngine(str, Enum):
    """Table storage engines understood by the editor."""

    INNODB = "InnoDB"
    MYISAM = "MyISAM"
    MEMORY = "MEMORY"
    ARCHIVE = "ARCHIVE"
    CSV = "CSV"

    @classmethod
    def from_sql(cls, value) -> "StorageEngine":
        """Map a raw ENGINE= value onto a known engine, defaulting to InnoDB."""
        if value:
            wanted = value.strip().strip("'\"`").upper()
            for engine in cls:
                if engine.value.upper() == wanted:
                    return engine
        return cls.INNODB


class IndexType(str, Enum):
    INDEX = "INDEX"
    UNIQUE = "UNIQUE"
    FULLTEXT = "FULLTEXT"
    SPATIAL = "SPATIAL"


class Cardinality(str, Enum):
    ONE_TO_ONE = "1:1"
    ONE_TO_MANY = "1:N"


class ReferentialAction(str, Enum):
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"


# Statements carrying no schema structure; dropped silently
SKIPPED_STATEMENT_PREFIXES: Tuple[str, ...] = (
    "SET",
    "START TRANSACTION",
    "BEGIN",
    "COMMIT",
    "ROLLBACK",
    "LOCK TABLES",
    "UNLOCK TABLES",
    "INSERT INTO",
    "REPLACE INTO",
)

# Types considered numeric and kept with their parameters
NUMERIC_TYPES: Set[str] = {
    "BIGINT", "INT", "TINYINT", "SMALLINT", "MEDIUMINT",
    "DECIMAL", "NUMERIC", "DOUBLE", "FLOAT", "BIT",
}

TEXT_TYPES: Set[str] = {"TINYTEXT", "MEDIUMTEXT", "LONGTEXT", "TEXT"}

TEMPORAL_TYPES: Set[str] = {"TIMESTAMP", "DATETIME", "DATE", "TIME", "YEAR"}

BINARY_TYPES: Set[str] = {
    "BINARY", "VARBINARY", "BLOB", "TINYBLOB", "MEDIUMBLOB", "LONGBLOB", "BYTEA",
}

# Name hints for the TINYINT(1) -> BOOLEAN heuristic
BOOLEAN_NAME_PREFIXES: Tuple[str, ...] = ("IS_", "HAS_", "CAN_")
BOOLEAN_NAME_WORDS: Tuple[str, ...] = ("ACTIVE", "ENABLED", "PUBLISHED", "COMPLETED")

# Table name hints for association tables
JUNCTION_SUFFIXES: Tuple[str, ...] = ("ables", "ings")
JUNCTION_INFIXES: Tuple[str, ...] = ("_has_", "_to_")

# Fallback referenced column when a REFERENCES clause names none
DEFAULT_REFERENCED_COLUMN = "id"
