import re
from dataclasses import dataclass, field
from typing import List, Optional

import sqlparse

from schemaflow.constants import SKIPPED_STATEMENT_PREFIXES
from schemaflow.logging_config import get_logger
from schemaflow.parsers.utils import (
    QUOTE_CHARS, strip_comments, normalize_whitespace, mask_quoted, unmask_quoted, quoted_span_end,
)

logger = get_logger("preprocessor")

_SKIPPED_RE = re.compile(
    r'^(?:%s)\b' % '|'.join(p.replace(' ', r'\s+') for p in SKIPPED_STATEMENT_PREFIXES),
    re.IGNORECASE,
)

_CREATE_TABLE_RE = re.compile(
    r'^CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:GLOBAL|LOCAL)\s+)?'
    r'(?P<temporary>(?:TEMPORARY|TEMP)\s+)?(?:UNLOGGED\s+)?TABLE\b',
    re.IGNORECASE,
)

_ALTER_TABLE_RE = re.compile(r'^ALTER\s+TABLE\b', re.IGNORECASE)

# CREATE TABLE ... AS SELECT carries no column list
_CREATE_TABLE_AS_RE = re.compile(r"^CREATE\s+(?:TEMPORARY\s+)?TABLE\s+[^(]*\bAS\b", re.IGNORECASE)

# Noise must follow a type or another clause, never start a column definition,
# so a column named ``charset`` or ``comment`` survives
_AFTER_CLAUSE = r'(?<=[\w)\x00])\s+'

# Quoted text in the body is masked (see mask_quoted) before these run
_LITERAL = r'\x00\d+\x00'

# Column-level noise removed from CREATE TABLE bodies
_BODY_NOISE = [
    re.compile(_AFTER_CLAUSE + r'CHARACTER\s+SET\s+\w+', re.IGNORECASE),
    re.compile(_AFTER_CLAUSE + r'CHARSET\s+\w+', re.IGNORECASE),
    re.compile(_AFTER_CLAUSE + r'COLLATE\s+(?:\w+|' + _LITERAL + ')', re.IGNORECASE),
    re.compile(_AFTER_CLAUSE + r'COMMENT\s+' + _LITERAL, re.IGNORECASE),
    re.compile(_AFTER_CLAUSE + r'(?:UNSIGNED|ZEROFILL)\b', re.IGNORECASE),
    re.compile(_AFTER_CLAUSE + r'USING\s+(?:BTREE|HASH)\b', re.IGNORECASE),
    # Expression may nest parentheses two levels deep
    re.compile(
        _AFTER_CLAUSE + r'GENERATED\s+ALWAYS\s+AS\s*\((?:[^()]+|\((?:[^()]+|\([^()]*\))*\))*\)'
        r'\s*(?:STORED|VIRTUAL)?',
        re.IGNORECASE,
    ),
]

_CURRENT_TIMESTAMP_CALL = re.compile(r'\bcurrent_timestamp\s*\(\s*\d*\s*\)', re.IGNORECASE)

# Table options kept after the closing parenthesis, matched on masked text
_TABLE_OPTIONS = [
    re.compile(r'\bENGINE\s*=?\s*\w+', re.IGNORECASE),
    re.compile(r'\b(?:DEFAULT\s+)?COLLATE\s*=?\s*\w+', re.IGNORECASE),
    re.compile(r'\bCOMMENT\s*=?\s*' + _LITERAL, re.IGNORECASE),
]


@dataclass
class PreprocessedSQL:
    """Output of the preprocessor: grammar input plus the untouched source."""

    create_statements: List[str] = field(default_factory=list)
    original: str = ""
    alter_statement_count: int = 0

    @property
    def create_sql(self) -> str:
        """All CREATE TABLE statements joined for a single grammar run."""
        return "\n".join(self.create_statements)


class Preprocessor:
    """
    Cleans raw DDL text into CREATE TABLE statements a grammar can accept.

    Comments are removed, the text is split into statements and everything
    without schema structure (SET, INSERT, transaction control) is dropped
    silently. ALTER TABLE statements are left to the pattern extractor,
    which reads the original text.
    """

    def process(self, sql_content: str) -> PreprocessedSQL:
        result = PreprocessedSQL(original=sql_content or "")
        if not sql_content or not sql_content.strip():
            return result

        cleaned = strip_comments(sql_content)

        for raw_stmt in sqlparse.split(cleaned):
            stmt = raw_stmt.strip().rstrip(';').strip()
            if not stmt:
                continue

            if _SKIPPED_RE.match(stmt):
                logger.debug(f"Skipping non-structural statement: {stmt[:50]}")
                continue

            if _ALTER_TABLE_RE.match(stmt):
                result.alter_statement_count += 1
                continue

            create_match = _CREATE_TABLE_RE.match(stmt)
            if not create_match:
                logger.debug(f"Ignoring statement: {stmt[:50]}")
                continue

            sanitized = self.sanitize_create_table(stmt, create_match)
            if sanitized:
                result.create_statements.append(sanitized)

        logger.debug(
            f"Preprocessed {len(result.create_statements)} CREATE TABLE and "
            f"{result.alter_statement_count} ALTER TABLE statements"
        )
        return result

    def sanitize_create_table(self, stmt: str, create_match=None) -> Optional[str]:
        """
        Strips vendor-only noise from one CREATE TABLE statement.

        Everything after the parenthesis closing the column list is dropped
        except the ENGINE, COLLATE and COMMENT table options.
        """
        if create_match is None:
            create_match = _CREATE_TABLE_RE.match(stmt)
            if not create_match:
                return None

        # Canonical prefix so grammars need not know every vendor modifier
        prefix = "CREATE TEMPORARY TABLE" if create_match.group('temporary') else "CREATE TABLE"
        stmt = prefix + stmt[create_match.end():]

        open_pos = stmt.find("(")
        if open_pos == -1 or _CREATE_TABLE_AS_RE.match(stmt):
            logger.debug(f"Ignoring CREATE TABLE without column list: {stmt[:50]}")
            return None

        close_pos = _find_closing_paren(stmt, open_pos)
        if close_pos == -1:
            # Unbalanced; let the grammar report it
            return strip_body_noise(stmt) + ";"

        tail, literals = mask_quoted(stmt[close_pos + 1:])
        options = []
        for pattern in _TABLE_OPTIONS:
            match = pattern.search(tail)
            if match:
                options.append(normalize_whitespace(unmask_quoted(match.group(0), literals)))

        sanitized = strip_body_noise(stmt[:close_pos + 1])
        if options:
            sanitized += " " + " ".join(options)
        return sanitized + ";"


def strip_body_noise(body: str) -> str:
    """Removes column-level vendor noise, leaving quoted text untouched."""
    masked, literals = mask_quoted(body)
    for pattern in _BODY_NOISE:
        masked = pattern.sub('', masked)
    masked = _CURRENT_TIMESTAMP_CALL.sub('CURRENT_TIMESTAMP', masked)
    return unmask_quoted(masked, literals)


def _find_closing_paren(text: str, open_pos: int) -> int:
    """Index of the parenthesis matching the one at ``open_pos``, or -1."""
    depth = 0
    i = open_pos
    while i < len(text):
        char = text[i]
        if char in QUOTE_CHARS:
            i = quoted_span_end(text, i)
            continue
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1
