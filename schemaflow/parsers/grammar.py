"""
Dialect fallback for CREATE TABLE statements, built on sqlglot.

``GrammarParser`` reads the text with each sqlglot dialect in order and keeps
the first one that accepts every statement. sqlglot is lenient: the
postgres reader tokenizes backticks and MySQL keywords without complaint,
and an empty list element is silently dropped. Each attempt therefore
screens the token stream and the parsed statements for constructs the
dialect does not have, so the fallback order stays meaningful.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from sqlglot import exp
from sqlglot.dialects.dialect import Dialect as SqlglotDialect
from sqlglot.errors import ParseError, TokenError
from sqlglot.tokens import Token, TokenType

from schemaflow.constants import Dialect, DEFAULT_DIALECTS
from schemaflow.exceptions import GrammarError, DialectError
from schemaflow.logging_config import get_logger

logger = get_logger("grammar")

# Dialect -> sqlglot read= name
SQLGLOT_DIALECTS = {
    Dialect.POSTGRESQL: "postgres",
    Dialect.MYSQL: "mysql",
    Dialect.SQLITE: "sqlite",
}

# Keywords every sqlglot reader understands but only one dialect has
DIALECT_ONLY_WORDS = {
    'AUTO_INCREMENT': Dialect.MYSQL,
    'AUTOINCREMENT': Dialect.SQLITE,
}

BACKTICK_DIALECTS = (Dialect.MYSQL, Dialect.SQLITE)

QUOTED_TOKENS = (TokenType.STRING, TokenType.IDENTIFIER)

MYSQL_ONLY_NODES = (
    exp.EngineProperty,
    exp.CollateProperty,
    exp.SchemaCommentProperty,
    exp.CommentColumnConstraint,
    exp.OnUpdateColumnConstraint,
    exp.IndexColumnConstraint,
)

# Unquoted column names that are really MySQL index definitions
INDEX_WORDS = {'KEY', 'INDEX', 'FULLTEXT', 'SPATIAL'}


# Substring hints appended when no dialect accepts the input
ERROR_TIPS = (
    (('ENGINE',), 'Tip: Remove MySQL-specific ENGINE= clauses for better compatibility'),
    (('UUID', 'gen_random_uuid'), 'Tip: Replace UUID types and gen_random_uuid() with standard types'),
    (('ENUM',), 'Tip: Replace ENUM types with VARCHAR for better compatibility'),
    (('INDEX', 'KEY'), 'Tip: Remove INDEX definitions inside CREATE TABLE statements'),
    (('`',), 'Tip: Remove backtick-quoted identifiers or convert to standard quotes'),
)

GENERIC_TIPS = (
    'Tip: Ensure your SQL file contains valid CREATE TABLE statements',
    'Tip: Try removing MySQL-specific directives and comments',
)


def build_error_messages(message: str) -> List[str]:
    """Turns a grammar error into the user-facing error list with hints."""
    errors = [f"SQL Parse Error: {message}"]
    upper = message.upper()
    for needles, tip in ERROR_TIPS:
        if any(needle.upper() in upper for needle in needles):
            errors.append(tip)
    if len(errors) == 1:
        errors.extend(GENERIC_TIPS)
    return errors


def parse_error_message(error: ParseError) -> Tuple[str, Optional[int]]:
    """Message and line for the first problem sqlglot reported."""
    details = error.errors[0] if error.errors else {}
    description = details.get('description') or str(error)
    line = details.get('line')
    if line is None:
        return f"Syntax error: {description}", None
    return f'Syntax error at line {line} near "{details.get("highlight", "")}": {description}', line


@dataclass
class DialectAttempt:
    """Outcome of reading the text with one dialect: statements or an error, never both."""

    dialect: Dialect
    statements: Optional[List[exp.Create]] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.statements is not None


@dataclass
class GrammarResult:
    statements: Optional[List[exp.Create]] = None
    dialect: Optional[Dialect] = None
    attempts: List[DialectAttempt] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.statements is not None


def resolve_dialects(dialects: Optional[Iterable]) -> List[Dialect]:
    """Accepts Dialect members or names; raises DialectError for unknown names."""
    if dialects is None:
        return list(DEFAULT_DIALECTS)
    resolved = []
    for dialect in dialects:
        if isinstance(dialect, Dialect):
            resolved.append(dialect)
            continue
        name = str(dialect).strip().lower()
        if name == 'postgres':
            name = Dialect.POSTGRESQL.value
        try:
            resolved.append(Dialect(name))
        except ValueError:
            raise DialectError(f"Unknown dialect: {dialect}")
    if not resolved:
        raise DialectError("At least one dialect is required")
    return resolved


def screen_tokens(dialect: Dialect, tokens: List[Token]):
    """
    Rejects token-level constructs sqlglot would let through for this dialect.

    Catches foreign quoting and auto increment keywords, empty list
    elements such as ``(a INT,, b INT)`` and unbalanced parentheses.
    """
    depth = 0
    previous = None
    for token in tokens:
        kind = token.token_type
        if kind not in QUOTED_TOKENS:
            if '`' in token.text and dialect not in BACKTICK_DIALECTS:
                raise GrammarError(f'Unexpected character "`" at line {token.line}', dialect.value, token.line)
            owner = DIALECT_ONLY_WORDS.get(token.text.upper())
            if owner is not None and owner != dialect:
                raise GrammarError(f'Syntax error at line {token.line} near "{token.text}"',
                                   dialect.value, token.line)

        empty_element = previous is not None and (
            (previous.token_type == TokenType.COMMA and kind in (TokenType.COMMA, TokenType.R_PAREN))
            or (previous.token_type == TokenType.L_PAREN and kind == TokenType.COMMA)
        )
        if kind == TokenType.L_PAREN:
            depth += 1
        elif kind == TokenType.R_PAREN:
            depth -= 1
        if empty_element or depth < 0 or (kind == TokenType.SEMICOLON and depth):
            raise GrammarError(f'Syntax error at line {token.line} near "{token.text}"',
                               dialect.value, token.line)
        previous = token

    if depth:
        raise GrammarError("Unexpected end of input", dialect.value)


def column_definitions(statement: exp.Create) -> List[exp.Expression]:
    schema = statement.this
    return list(schema.expressions) if isinstance(schema, exp.Schema) else []


def check_statement(dialect: Dialect, statement: Optional[exp.Expression]):
    """Rejects statements the reader accepted but the dialect does not support."""
    if not isinstance(statement, exp.Create) or str(statement.args.get("kind", "")).upper() != "TABLE":
        preview = " ".join(statement.sql().split())[:60] if statement is not None else ""
        raise GrammarError(f'Unsupported syntax near "{preview}"', dialect.value)

    if dialect != Dialect.MYSQL:
        node = statement.find(*MYSQL_ONLY_NODES)
        if node is not None:
            raise GrammarError(f'Unsupported syntax near "{node.sql(dialect="mysql")}"', dialect.value)
        properties = statement.args.get("properties")
        for prop in (properties.expressions if properties else []):
            if not isinstance(prop, exp.TemporaryProperty):
                raise GrammarError(f'Unsupported table option "{prop.sql()}"', dialect.value)

    if dialect != Dialect.POSTGRESQL and statement.find(exp.GeneratedAsIdentityColumnConstraint):
        raise GrammarError('Unsupported syntax near "GENERATED AS IDENTITY"', dialect.value)

    for element in column_definitions(statement):
        if isinstance(element, exp.Identifier):
            name, quoted, typed = element.name, element.args.get("quoted"), False
        elif isinstance(element, exp.ColumnDef):
            identifier = element.this
            name = identifier.name if identifier is not None else ''
            quoted = isinstance(identifier, exp.Identifier) and identifier.args.get("quoted")
            typed = element.args.get("kind") is not None
        else:
            continue
        if not quoted and name.upper() in INDEX_WORDS and dialect != Dialect.MYSQL:
            raise GrammarError(f'Syntax error near "{name}"', dialect.value)
        if not typed and dialect != Dialect.SQLITE:
            raise GrammarError(f'Column "{name}" has no data type', dialect.value)


class GrammarParser:
    """
    Tries each dialect in order until one accepts the text.

    sqlglot dialect objects are cached per instance; parsers are created
    per attempt and never shared.
    """

    def __init__(self, dialects: Optional[Iterable] = None):
        self.dialects = resolve_dialects(dialects)
        self._readers = {}

    def reader_for(self, dialect: Dialect) -> SqlglotDialect:
        reader = self._readers.get(dialect)
        if reader is None:
            reader = SqlglotDialect.get_or_raise(SQLGLOT_DIALECTS[dialect])
            self._readers[dialect] = reader
        return reader

    def read(self, dialect: Dialect, text: str) -> List[exp.Create]:
        """All CREATE TABLE statements in ``text``; raises GrammarError on any problem."""
        reader = self.reader_for(dialect)
        try:
            tokens = reader.tokenize(text)
        except TokenError as e:
            raise GrammarError(f"Syntax error: {e}", dialect.value)
        screen_tokens(dialect, tokens)

        try:
            expressions = reader.parser().parse(tokens, text)
        except ParseError as e:
            message, line = parse_error_message(e)
            raise GrammarError(message, dialect.value, line)

        statements = [expression for expression in expressions if expression is not None]
        for statement in statements:
            check_statement(dialect, statement)
        return statements

    def parse_with(self, dialect: Dialect, text: str) -> DialectAttempt:
        try:
            statements = self.read(dialect, text)
        except GrammarError as e:
            logger.debug(f"{dialect.value} grammar rejected input: {e.message}",
                         extra={"dialect": dialect.value, "line": e.line})
            return DialectAttempt(dialect=dialect, error=e.message)
        return DialectAttempt(dialect=dialect, statements=statements)

    def parse(self, text: str) -> GrammarResult:
        result = GrammarResult()
        for dialect in self.dialects:
            attempt = self.parse_with(dialect, text)
            result.attempts.append(attempt)
            if attempt.succeeded:
                logger.debug(f"Parsed with {dialect.value} grammar", extra={"dialect": dialect.value})
                result.statements = attempt.statements
                result.dialect = dialect
                return result

        # Report the last dialect's complaint, as that is the most permissive reader
        result.errors = build_error_messages(result.attempts[-1].error)
        return result
