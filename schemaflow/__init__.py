"""SchemaFlow: reconstructs a relational schema model from SQL DDL."""
import os

from schemaflow.models import ParseResult
from schemaflow.parsers.schema_parser import SchemaParser, parse_sql_file

with open(os.path.join(os.path.dirname(__file__), 'VERSION'), 'r') as f:
    __version__ = f.read().strip()

__all__ = ['ParseResult', 'SchemaParser', 'parse_sql_file', '__version__']
