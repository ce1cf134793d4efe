import re
from typing import List, Optional

import sqlparse

from schemaflow.constants import IndexType, ReferentialAction, DEFAULT_REFERENCED_COLUMN
from schemaflow.logging_config import get_logger
from schemaflow.models import (
    AlterTableConstraints, AlterPrimaryKey, AlterUniqueKey, AlterAutoIncrement,
    AlterIndex, ForeignKeyConstraint,
)
from schemaflow.parsers.utils import (
    strip_comments, split_by_comma_outside_parens, split_column_list, clean_name,
    normalize_whitespace,
)

logger = get_logger("alter")

# Quoted or bare identifier
_IDENT = r'(?:`[^`]+`|"[^"]+"|\[[^\]]+\]|[\w$]+)'
# Optionally schema-qualified identifier
_QUALIFIED = r'%s(?:\s*\.\s*%s)*' % (_IDENT, _IDENT)
# Column list body; allows prefix lengths such as `name`(50)
_COLUMNS = r'(?:[^()]|\([^()]*\))+'

_PATTERN_PARTS = {'ident': _IDENT, 'qualified': _QUALIFIED, 'cols': _COLUMNS}

_ALTER_TABLE_RE = re.compile(
    r'^ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?(?P<table>%(qualified)s)\s+(?P<body>.+)$' % _PATTERN_PARTS,
    re.IGNORECASE | re.DOTALL,
)

_PRIMARY_KEY_RE = re.compile(
    r'ADD\s+(?:CONSTRAINT\s+%(ident)s\s+)?PRIMARY\s+KEY\s*(?:USING\s+\w+\s*)?\((?P<cols>%(cols)s)\)'
    % _PATTERN_PARTS,
    re.IGNORECASE,
)

_ACTION = r'(?:%s)' % '|'.join(action.value.replace(' ', r'\s+') for action in ReferentialAction)

_FOREIGN_KEY_RE = re.compile(
    r'(?:CONSTRAINT\s+(?P<name>%(ident)s)\s+)?FOREIGN\s+KEY\s*(?:%(ident)s\s*)?\((?P<cols>%(cols)s)\)\s*'
    r'REFERENCES\s+(?P<ref>%(qualified)s)\s*(?:\((?P<ref_cols>%(cols)s)\))?'
    r'(?P<actions>(?:\s+ON\s+(?:DELETE|UPDATE)\s+%(action)s)*)' % dict(_PATTERN_PARTS, action=_ACTION),
    re.IGNORECASE,
)

_REFERENTIAL_ACTION_RE = re.compile(r'ON\s+(DELETE|UPDATE)\s+(%s)' % _ACTION, re.IGNORECASE)

_UNIQUE_RE = re.compile(
    r'ADD\s+(?:CONSTRAINT\s+(?P<constraint>%(ident)s)\s+)?UNIQUE\s*(?:(?:KEY|INDEX)\b)?\s*'
    r'(?P<name>%(ident)s)?\s*(?:USING\s+\w+\s*)?\((?P<cols>%(cols)s)\)' % _PATTERN_PARTS,
    re.IGNORECASE,
)

_INDEX_RE = re.compile(
    r'ADD\s+(?P<kind>FULLTEXT|SPATIAL)?\s*(?:INDEX|KEY)\b\s*(?P<name>%(ident)s)?\s*'
    r'(?:USING\s+\w+\s*)?\((?P<cols>%(cols)s)\)' % _PATTERN_PARTS,
    re.IGNORECASE,
)

# Clause prefix of ADD [CONSTRAINT name] UNIQUE, on whitespace-normalized upper case text
_ADD_UNIQUE_RE = re.compile(r'^ADD\s+(?:CONSTRAINT\s+\S+\s+)?UNIQUE\b')

_AUTO_INCREMENT_RE = re.compile(
    r'(?:MODIFY|CHANGE|ALTER)\s+(?:COLUMN\s+)?(?P<col>%s)' % _IDENT,
    re.IGNORECASE,
)

# PostgreSQL dumps attach sequences this way
_SEQUENCE_DEFAULT_RE = re.compile(
    r'ALTER\s+(?:COLUMN\s+)?(?P<col>%s)\s+SET\s+DEFAULT\s+nextval\s*\(' % _IDENT,
    re.IGNORECASE,
)


class AlterTableExtractor:
    """
    Pattern-based reader for constraints declared in ALTER TABLE statements.

    Vendor ALTER TABLE syntax is too irregular for a shared grammar, so each
    comma-separated clause is classified by keyword and matched with a
    regular expression. Clauses that match nothing are skipped; this class
    never raises on malformed input.
    """

    def extract(self, sql_content: str) -> AlterTableConstraints:
        results = AlterTableConstraints()
        if not sql_content:
            return results

        cleaned = strip_comments(sql_content)
        for raw_stmt in sqlparse.split(cleaned):
            stmt = raw_stmt.strip().rstrip(';').strip()
            match = _ALTER_TABLE_RE.match(stmt)
            if not match:
                continue

            table_name = clean_name(match.group('table'))
            for clause in split_by_comma_outside_parens(match.group('body')):
                self._classify_clause(table_name, clause, results)

        logger.debug(
            f"Extracted {len(results.primary_keys)} primary keys, "
            f"{len(results.foreign_keys)} foreign keys, {len(results.unique_keys)} unique keys, "
            f"{len(results.auto_increments)} auto increments from ALTER TABLE"
        )
        return results

    def _classify_clause(self, table_name: str, clause: str, results: AlterTableConstraints):
        upper = normalize_whitespace(clause).upper()

        if upper.startswith('ADD') and 'PRIMARY KEY' in upper:
            pk_match = _PRIMARY_KEY_RE.search(clause)
            if pk_match:
                results.primary_keys.append(
                    AlterPrimaryKey(table_name, split_column_list(pk_match.group('cols')))
                )
        elif 'FOREIGN KEY' in upper:
            results.foreign_keys.extend(self._extract_foreign_keys(table_name, clause))
        elif _ADD_UNIQUE_RE.match(upper):
            unique_match = _UNIQUE_RE.search(clause)
            if unique_match:
                name = unique_match.group('constraint') or unique_match.group('name')
                results.unique_keys.append(AlterUniqueKey(
                    table_name,
                    split_column_list(unique_match.group('cols')),
                    clean_name(name) if name else None,
                ))
        elif 'AUTO_INCREMENT' in upper:
            ai_match = _AUTO_INCREMENT_RE.search(clause)
            if ai_match:
                results.auto_increments.append(
                    AlterAutoIncrement(table_name, clean_name(ai_match.group('col')))
                )
        elif 'NEXTVAL' in upper:
            seq_match = _SEQUENCE_DEFAULT_RE.search(clause)
            if seq_match:
                results.auto_increments.append(
                    AlterAutoIncrement(table_name, clean_name(seq_match.group('col')))
                )
        elif upper.startswith('ADD'):
            index_match = _INDEX_RE.search(clause)
            if index_match:
                kind = (index_match.group('kind') or 'INDEX').upper()
                name = index_match.group('name')
                results.indexes.append(AlterIndex(
                    table_name,
                    split_column_list(index_match.group('cols')),
                    clean_name(name) if name else None,
                    IndexType(kind),
                ))
        else:
            logger.debug(f"Ignoring ALTER TABLE clause on {table_name}: {clause[:50]}")

    def _extract_foreign_keys(self, table_name: str, clause: str) -> List[ForeignKeyConstraint]:
        foreign_keys = []
        for fk_match in _FOREIGN_KEY_RE.finditer(clause):
            columns = split_column_list(fk_match.group('cols'))
            referenced_table = clean_name(fk_match.group('ref'))
            referenced_columns = split_column_list(fk_match.group('ref_cols') or '')
            if not referenced_columns:
                referenced_columns = [DEFAULT_REFERENCED_COLUMN]
            on_delete, on_update = parse_referential_actions(fk_match.group('actions'))
            name = fk_match.group('name')

            # Composite keys are zipped; a short reference list reuses its first column
            for index, column_name in enumerate(columns):
                referenced_column = (referenced_columns[index]
                                     if index < len(referenced_columns) else referenced_columns[0])
                foreign_keys.append(ForeignKeyConstraint(
                    table_name=table_name,
                    column_name=column_name,
                    referenced_table=referenced_table,
                    referenced_column=referenced_column,
                    on_delete=on_delete,
                    on_update=on_update,
                    constraint_name=clean_name(name) if name else None,
                ))
        return foreign_keys


def parse_referential_actions(text: Optional[str]):
    """Returns ``(on_delete, on_update)`` from a run of ON DELETE/UPDATE clauses."""
    on_delete = None
    on_update = None
    for action_match in _REFERENTIAL_ACTION_RE.finditer(text or ''):
        action = ReferentialAction(normalize_whitespace(action_match.group(2)).upper()).value
        if action_match.group(1).upper() == 'DELETE':
            on_delete = action
        else:
            on_update = action
    return on_delete, on_update
