from typing import List, Optional

from schemaflow.constants import JUNCTION_SUFFIXES, JUNCTION_INFIXES
from schemaflow.models import Column


def singularize(name: str) -> str:
    """Naive English singular: ``categories`` -> ``category``, ``users`` -> ``user``."""
    lowered = name.lower()
    if lowered.endswith('ies') and len(name) > 3:
        return name[:-3] + 'y'
    if lowered.endswith('s') and len(name) > 1:
        return name[:-1]
    return name


def is_junction_table(table_name: str) -> bool:
    lowered = table_name.lower()
    return lowered.endswith(JUNCTION_SUFFIXES) or any(infix in lowered for infix in JUNCTION_INFIXES)


def primary_key_patterns(table_name: str) -> List[str]:
    return [
        f"{table_name}_id".lower(),
        f"{singularize(table_name)}_id".lower(),
        "id",
        "uuid",
        "guid",
    ]


def detect_implicit_primary_key(table_name: str, columns: List[Column]) -> Optional[Column]:
    """
    Picks the column most likely meant as primary key when none is declared.

    Junction tables (``taggables``, ``user_has_roles``) with two or more
    foreign-key columns get their first foreign-key column, standing in for
    the composite key. Otherwise the naming patterns ``{table}_id``,
    ``{singular}_id``, ``id``, ``uuid`` and ``guid`` are tried as exact
    matches, then as substrings; failing that the first non-foreign-key
    column, and finally the first column, is chosen.

    Returns None only for an empty column list. Recording a warning in that
    case is up to the caller.
    """
    if not columns:
        return None

    if is_junction_table(table_name):
        fk_columns = [col for col in columns if col.is_foreign_key]
        if len(fk_columns) >= 2:
            return fk_columns[0]

    patterns = primary_key_patterns(table_name)

    for pattern in patterns:
        for col in columns:
            if col.name.lower() == pattern:
                return col

    for pattern in patterns:
        for col in columns:
            if pattern in col.name.lower():
                return col

    for col in columns:
        if not col.is_foreign_key:
            return col

    return columns[0]
