"""
SchemaFlow Custom Exceptions

This module defines custom exception classes used throughout SchemaFlow.
"""
from typing import Optional


class SchemaFlowError(Exception):
    """Base exception for all SchemaFlow errors."""
    pass


class GrammarError(SchemaFlowError):
    """
    Raised when a dialect grammar rejects the CREATE TABLE text.

    Attributes:
        message: Description of the syntax problem
        dialect: Name of the dialect grammar that failed
        line: Line number of the offending token, when known
    """
    def __init__(self, message: str, dialect: Optional[str] = None, line: Optional[int] = None):
        self.message = message
        self.dialect = dialect
        self.line = line
        super().__init__(message)


class TableNameError(SchemaFlowError):
    """Raised when a CREATE TABLE statement carries no usable table name."""

    def __init__(self, statement: str = "", reason: str = "Table name not found"):
        self.statement = statement
        self.reason = reason
        # Truncate long statements for readability
        display_stmt = statement[:100] + "..." if len(statement) > 100 else statement
        super().__init__(f"{reason}: {display_stmt}" if display_stmt else reason)


class DialectError(SchemaFlowError):
    """Raised when an unsupported or invalid dialect is specified."""
    pass
