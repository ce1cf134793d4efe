"""
Canonical column types.

Vendor spellings collapse to one canonical name so that the same schema
written for MySQL, PostgreSQL or SQLite produces the same model.
"""
import re

from schemaflow.constants import (
    NUMERIC_TYPES, TEXT_TYPES, TEMPORAL_TYPES, BINARY_TYPES,
    BOOLEAN_NAME_PREFIXES, BOOLEAN_NAME_WORDS,
)

# Spellings rewritten before any rule runs, keyed by the bare type name
TYPE_ALIASES = {
    'INTEGER': 'INT',
    'INT4': 'INT',
    'INT8': 'BIGINT',
    'INT2': 'SMALLINT',
    'NUMERIC': 'DECIMAL',
    'SMALLSERIAL': 'SMALLINT',
    'BIGSERIAL': 'BIGINT',
    'SERIAL8': 'BIGINT',
    'SERIAL4': 'INT',
    'REAL': 'DOUBLE',
    'FLOAT8': 'DOUBLE',
    'FLOAT4': 'FLOAT',
    'DOUBLE PRECISION': 'DOUBLE',
    'CHARACTER VARYING': 'VARCHAR',
    'CHAR VARYING': 'VARCHAR',
    'CHARACTER': 'CHAR',
    'NATIONAL CHARACTER VARYING': 'NVARCHAR',
    'NATIONAL CHAR VARYING': 'NVARCHAR',
    'NATIONAL CHARACTER': 'NCHAR',
    'NATIONAL CHAR': 'NCHAR',
    'TIMESTAMPTZ': 'TIMESTAMP',
    'TIMETZ': 'TIME',
}

STRING_TYPES = ('VARCHAR', 'CHAR', 'NCHAR', 'NVARCHAR')

VALUE_LIST_TYPES = ('ENUM', 'SET')

_UNSIGNED_RE = re.compile(r'\s*\b(?:UNSIGNED|ZEROFILL)\b', re.IGNORECASE)
_SPACE_AROUND_PUNCT_RE = re.compile(r'\s*([(),])\s*')


def _split_type(data_type: str):
    """``'VARCHAR(255)'`` -> ``('VARCHAR', '(255)')``."""
    paren = data_type.find('(')
    if paren == -1:
        return data_type, ''
    return data_type[:paren].strip(), data_type[paren:]


def _is_boolean_flag_name(upper_name: str) -> bool:
    return (upper_name.startswith(BOOLEAN_NAME_PREFIXES)
            or any(word in upper_name for word in BOOLEAN_NAME_WORDS))


def normalize_type(column_name: str, data_type: str) -> str:
    """
    Maps a declared column type onto its canonical spelling.

    Rules run in priority order and the first match wins. The function is
    pure and idempotent: feeding a canonical type back in returns it
    unchanged. Unknown types are lower-cased and passed through rather than
    rejected.

    Two rules are naming heuristics rather than syntax:

    * ``VARCHAR``/``CHAR`` columns whose name ends in ``_UUID`` are treated
      as ``UUID``.
    * ``TINYINT(1)`` becomes ``BOOLEAN`` only when the column name starts
      with ``IS_``, ``HAS_`` or ``CAN_``, or contains ``ACTIVE``,
      ``ENABLED``, ``PUBLISHED`` or ``COMPLETED``. Other ``TINYINT(1)``
      columns stay numeric, since MySQL uses the type for small counters too.
    """
    if not data_type:
        return ''

    upper_name = (column_name or '').upper()
    stripped = data_type.strip()

    # ENUM and SET values keep their case and spacing
    base, params = _split_type(stripped)
    if base.upper() in VALUE_LIST_TYPES:
        return base.upper() + params

    cleaned = _UNSIGNED_RE.sub('', stripped)
    cleaned = _SPACE_AROUND_PUNCT_RE.sub(r'\1', ' '.join(cleaned.split()))

    base, params = _split_type(cleaned)
    base = base.upper()
    params = params.upper()
    base = TYPE_ALIASES.get(base, base)
    upper_type = base + params

    if upper_type in ('CHAR(36)', 'UUID'):
        return 'UUID'

    if base in ('VARCHAR', 'CHAR') and upper_name.endswith('_UUID'):
        return 'UUID'

    temporal_base = base.split(' ')[0]
    if temporal_base in TEMPORAL_TYPES:
        return temporal_base

    if 'TEXT' in base:
        if 'LONG' in base:
            return 'LONGTEXT'
        if 'MEDIUM' in base:
            return 'MEDIUMTEXT'
        if 'TINY' in base:
            return 'TINYTEXT'
        if base in TEXT_TYPES:
            return 'TEXT'

    if base == 'JSON':
        return 'JSON'

    if base in NUMERIC_TYPES:
        if upper_type == 'TINYINT(1)' and _is_boolean_flag_name(upper_name):
            return 'BOOLEAN'
        return upper_type

    if base == 'SERIAL':
        return 'BIGINT'
    if base in ('BOOL', 'BOOLEAN'):
        return 'BOOLEAN'

    if base in STRING_TYPES:
        return upper_type

    if base in BINARY_TYPES:
        return base

    if base == 'INET':
        return 'VARCHAR'
    if base == 'XML':
        return 'TEXT'

    return cleaned.lower()
