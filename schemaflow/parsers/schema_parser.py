from typing import Iterable, List, Optional, Tuple

from sqlglot import exp

from schemaflow.constants import Dialect
from schemaflow.exceptions import SchemaFlowError
from schemaflow.logging_config import get_logger
from schemaflow.models import ParseResult, Table, ForeignKeyConstraint, IdSequence
from schemaflow.parsers.alter_extractor import AlterTableExtractor
from schemaflow.parsers.base import BaseParser
from schemaflow.parsers.grammar import GrammarParser
from schemaflow.parsers.merger import ConstraintMerger
from schemaflow.parsers.preprocessor import Preprocessor
from schemaflow.parsers.tree_walker import CreateTableWalker

logger = get_logger("parser")

NO_TABLES_WARNING = "No CREATE TABLE statements found"


def _unique(messages: Iterable[str]) -> tuple:
    seen = set()
    ordered = []
    for message in messages:
        if message not in seen:
            seen.add(message)
            ordered.append(message)
    return tuple(ordered)


class SchemaParser(BaseParser):
    """
    Parses DDL text into a ParseResult.

    Args:
        dialects: Grammar dialects to try, in order. Defaults to
            PostgreSQL, MySQL, SQLite.
        isolate_statements: Parse every CREATE TABLE on its own instead of
            as one batch. A statement no dialect accepts is then skipped with
            a warning, and errors are reported only if every statement fails.
    """

    def __init__(self, dialects: Optional[Iterable] = None, isolate_statements: bool = False):
        self.grammar = GrammarParser(dialects)
        self.isolate_statements = isolate_statements
        self.preprocessor = Preprocessor()
        self.alter_extractor = AlterTableExtractor()

    def parse(self, sql_content: str) -> ParseResult:
        ids = IdSequence()
        errors: List[str] = []
        warnings: List[str] = []

        alter_constraints = self.alter_extractor.extract(sql_content)
        preprocessed = self.preprocessor.process(sql_content)

        if not preprocessed.create_statements:
            logger.warning(NO_TABLES_WARNING)
            return ParseResult(warnings=(NO_TABLES_WARNING,))

        if self.isolate_statements:
            statements, dialect = self._parse_isolated(preprocessed.create_statements, errors, warnings)
        else:
            grammar_result = self.grammar.parse(preprocessed.create_sql)
            if not grammar_result.succeeded:
                for message in grammar_result.errors:
                    logger.error(message)
                return ParseResult(errors=tuple(grammar_result.errors))
            statements = [(statement, grammar_result.dialect) for statement in grammar_result.statements]
            dialect = grammar_result.dialect.value

        if errors:
            return ParseResult(errors=tuple(errors), warnings=_unique(warnings))

        tables, foreign_keys = self._walk(statements, ids, errors, warnings)
        if not tables and errors:
            return ParseResult(errors=tuple(errors), warnings=_unique(warnings), dialect=dialect)

        merger = ConstraintMerger(ids)
        foreign_keys = merger.merge(tables, foreign_keys, alter_constraints, warnings)

        for message in _unique(warnings):
            logger.warning(message)
        logger.info(f"Parsed {len(tables)} tables and {len(foreign_keys)} foreign keys",
                    extra={"dialect": dialect})

        return ParseResult(
            tables=tuple(tables),
            foreign_key_constraints=tuple(foreign_keys),
            errors=tuple(errors),
            warnings=_unique(warnings),
            dialect=dialect,
        )

    def _parse_isolated(self, statements: List[str], errors: List[str], warnings: List[str]):
        parsed: List[Tuple[exp.Create, Dialect]] = []
        dialects = []
        last_errors: List[str] = []

        for statement in statements:
            grammar_result = self.grammar.parse(statement)
            if grammar_result.succeeded:
                parsed.extend((create, grammar_result.dialect) for create in grammar_result.statements)
                dialects.append(grammar_result.dialect.value)
                continue
            last_errors = grammar_result.errors
            display_stmt = statement[:100] + "..." if len(statement) > 100 else statement
            warnings.append(f"Skipped statement: {display_stmt} ({grammar_result.errors[0]})")

        if not parsed:
            errors.extend(last_errors)
            for message in last_errors:
                logger.error(message)
            return [], None

        # Report the dialect most statements were read with
        dialect = max(dialects, key=dialects.count)
        return parsed, dialect

    def _walk(self, statements: List[Tuple[exp.Create, Optional[Dialect]]], ids: IdSequence,
              errors: List[str], warnings: List[str]):
        walker = CreateTableWalker(ids)
        tables: List[Table] = []
        foreign_keys: List[ForeignKeyConstraint] = []
        positions = {}

        for statement, statement_dialect in statements:
            try:
                walked = walker.walk(statement, statement_dialect)
            except SchemaFlowError as e:
                errors.append(f"Error parsing table: {e}")
                logger.error(f"Error parsing table: {e}")
                continue

            name = walked.table.name
            if name in positions:
                warnings.append(f'Duplicate table "{name}": later definition replaces earlier one')
                tables[positions[name]] = walked.table
                foreign_keys = [fk for fk in foreign_keys if fk.table_name != name]
            else:
                positions[name] = len(tables)
                tables.append(walked.table)

            foreign_keys.extend(walked.foreign_keys)
            warnings.extend(walked.warnings)

        return tables, foreign_keys


def parse_sql_file(sql_content: str, dialects: Optional[Iterable] = None,
                   isolate_statements: bool = False) -> ParseResult:
    """Parses DDL text with a fresh SchemaParser."""
    return SchemaParser(dialects=dialects, isolate_statements=isolate_statements).parse(sql_content)
