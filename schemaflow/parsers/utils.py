import re
from typing import List, Tuple

# One part of a possibly dotted and quoted identifier
_NAME_PART = re.compile(r'`([^`]*)`|"([^"]*)"|\[([^\]]*)\]|([^.\s`"\[\]]+)')

# Trailing prefix length or sort order inside index column lists
_INDEX_COLUMN_SUFFIX = re.compile(r'\s*\(\s*\d+\s*\)|\s+(?:ASC|DESC)\b', re.IGNORECASE)

QUOTE_CHARS = ("'", '"', '`')

_PLACEHOLDER = re.compile(r'\x00(\d+)\x00')


def strip_comments(sql: str) -> str:
    """
    Removes SQL comments while leaving quoted text untouched.

    Handles block comments (including MySQL executable ``/*! ... */``
    comments), ``--`` line comments and ``#`` comments that start a line.
    Line breaks are preserved so that error line numbers stay meaningful.
    """
    result = []
    i = 0
    n = len(sql)
    in_quote = False
    quote_char = None
    in_block_comment = False
    in_line_comment = False
    at_line_start = True

    while i < n:
        char = sql[i]
        next_char = sql[i + 1] if i + 1 < n else ''

        if in_line_comment:
            if char == '\n':
                in_line_comment = False
                at_line_start = True
                result.append(char)
            i += 1
            continue

        if in_block_comment:
            if char == '*' and next_char == '/':
                in_block_comment = False
                i += 2
                continue
            if char == '\n':
                result.append(char)
            i += 1
            continue

        if in_quote:
            result.append(char)
            if char == quote_char:
                if next_char == quote_char:
                    # Doubled quote is an escaped quote
                    result.append(next_char)
                    i += 2
                    continue
                in_quote = False
            elif char == '\\' and quote_char == "'" and next_char:
                result.append(next_char)
                i += 2
                continue
            i += 1
            continue

        if char in ("'", '"', '`'):
            in_quote = True
            quote_char = char
            at_line_start = False
            result.append(char)
            i += 1
            continue

        if char == '-' and next_char == '-':
            in_line_comment = True
            i += 2
            continue

        if char == '#' and at_line_start:
            in_line_comment = True
            i += 1
            continue

        if char == '/' and next_char == '*':
            in_block_comment = True
            i += 2
            continue

        if char == '\n':
            at_line_start = True
        elif not char.isspace():
            at_line_start = False

        result.append(char)
        i += 1

    return "".join(result)


def quoted_span_end(sql: str, start: int) -> int:
    """
    Index just past the quoted span opening at ``start``.

    Doubled quotes escape in every quote style; a backslash escapes inside
    single-quoted strings, as in ``strip_comments``. An unterminated span
    runs to the end of the text.
    """
    quote_char = sql[start]
    i = start + 1
    n = len(sql)
    while i < n:
        char = sql[i]
        if char == '\\' and quote_char == "'":
            i += 2
            continue
        if char == quote_char:
            if i + 1 < n and sql[i + 1] == quote_char:
                i += 2
                continue
            return i + 1
        i += 1
    return n


def mask_quoted(sql: str) -> Tuple[str, List[str]]:
    """
    Replaces quoted strings and identifiers with ``\\x00N\\x00`` placeholders.

    Pattern rewrites run on the masked text without reaching into literal
    contents; ``unmask_quoted`` puts the spans back.
    """
    masked = []
    literals: List[str] = []
    i = 0
    n = len(sql)
    while i < n:
        if sql[i] in QUOTE_CHARS:
            end = quoted_span_end(sql, i)
            literals.append(sql[i:end])
            masked.append(f"\x00{len(literals) - 1}\x00")
            i = end
        else:
            masked.append(sql[i])
            i += 1
    return "".join(masked), literals


def unmask_quoted(masked: str, literals: List[str]) -> str:
    return _PLACEHOLDER.sub(lambda match: literals[int(match.group(1))], masked)


def split_by_comma_outside_parens(text: str) -> List[str]:
    """
    Splits on commas at parenthesis depth zero.

    ``"ADD PRIMARY KEY (a, b), ADD UNIQUE (c)"`` yields two clauses.
    Empty parts are dropped.
    """
    parts = []
    current = []
    depth = 0
    quote_char = None

    for char in text:
        if quote_char:
            current.append(char)
            if char == quote_char:
                quote_char = None
            continue
        if char in ("'", '"', '`'):
            quote_char = char
        elif char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
        elif char == ',' and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    parts.append("".join(current).strip())
    return [part for part in parts if part]


def clean_name(name: str) -> str:
    """
    Strips identifier quoting and any schema qualifier.

    ``public.users``, ``"public"."users"`` and ``[dbo].[users]`` all become
    ``users``. Case is preserved.
    """
    if not name:
        return ""
    # Strip invisible characters like Zero Width Space (U+200B)
    name = name.replace(chr(0x200b), '').strip()
    parts = [next(group for group in match.groups() if group is not None)
             for match in _NAME_PART.finditer(name)]
    if not parts:
        return name.strip('`"[] ')
    return parts[-1].strip()


def split_column_list(text: str) -> List[str]:
    """Splits ``"`a`, b(10), c DESC"`` into clean column names."""
    columns = []
    for part in split_by_comma_outside_parens(text):
        part = _INDEX_COLUMN_SUFFIX.sub('', part).strip()
        name = clean_name(part)
        if name:
            columns.append(name)
    return columns


def normalize_whitespace(text: str) -> str:
    """Collapses runs of whitespace to single spaces."""
    return re.sub(r'\s+', ' ', text).strip()
