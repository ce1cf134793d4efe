import argparse
import glob
import json
import os
import sys

from schemaflow.constants import Dialect
from schemaflow.exceptions import SchemaFlowError
from schemaflow.logging_config import setup_logging, get_logger
from schemaflow.parsers.schema_parser import SchemaParser


def get_parser(dialects=None, isolate_statements=False):
    """
    Builds a SchemaParser from a comma-separated dialect list.

    Raises DialectError for unknown dialect names.
    """
    if isinstance(dialects, str):
        dialects = [d for d in (part.strip() for part in dialects.split(',')) if d]
    return SchemaParser(dialects=dialects or None, isolate_statements=isolate_statements)


def read_sql_source(path: str) -> str:
    """
    Reads SQL content from a file or recursively from a directory.
    """
    if os.path.isfile(path):
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    elif os.path.isdir(path):
        content = []
        sql_files = glob.glob(os.path.join(path, '**/*.sql'), recursive=True)
        # Sort to ensure deterministic order
        sql_files.sort()

        if not sql_files:
            raise ValueError(f"No .sql files found in directory: {path}")

        for sql_file in sql_files:
            with open(sql_file, 'r', encoding='utf-8') as f:
                content.append(f.read())

        return "\n".join(content)

    else:
        raise ValueError(f"Path not found: {path}")


def read_version() -> str:
    version_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'VERSION')
    if not os.path.exists(version_path):
        return 'Unknown'
    with open(version_path, 'r') as f:
        return f.read().strip()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='SchemaFlow - SQL DDL to schema model')
    parser.add_argument('command', choices=['parse'], help='Command to execute')

    parser.add_argument('--source', required=True, help='Path to a .sql file or a directory of .sql files')
    parser.add_argument('--dialects',
                        help='Comma-separated grammar dialects to try in order '
                             f'(default: {",".join(d.value for d in Dialect)})')
    parser.add_argument('--isolate-statements', action='store_true',
                        help='Parse each CREATE TABLE separately; skip statements that fail')

    parser.add_argument('--json-out', help='Path to save the parsed schema as JSON')
    parser.add_argument('--summary', action='store_true', help='Print a human-readable summary to stdout')

    parser.add_argument('--no-color', action='store_true', help='Disable colored output')
    parser.add_argument('--verbose', '-v', action='count', default=0, help='Increase log verbosity (-v, -vv)')
    parser.add_argument('--log-format', choices=['text', 'json'], default='text', help='Log output format')
    parser.add_argument('--version', action='version', version=f'SchemaFlow v{read_version()}')
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, log_format=args.log_format, no_color=args.no_color)
    logger = get_logger("cli")

    logger.debug(f"Command={args.command}, Source={args.source}, Dialects={args.dialects}",
                 extra={"file_path": args.source})

    try:
        sql_content = read_sql_source(args.source)
        parser_instance = get_parser(args.dialects, args.isolate_statements)
        result = parser_instance.parse(sql_content)
    except (ValueError, OSError, SchemaFlowError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    _handle_output(args, result)

    if result.has_errors:
        sys.exit(1)


def _handle_output(args, result):
    # 1. Human Readable Summary
    if args.summary:
        if args.no_color:
            GREEN = ''
            RED = ''
            YELLOW = ''
            RESET = ''
        else:
            GREEN = '\033[92m'
            RED = '\033[91m'
            YELLOW = '\033[93m'
            RESET = '\033[0m'

        output_content = "Schema Summary:\n"
        if result.dialect:
            output_content += f"  Dialect: {result.dialect}\n"
        for table in result.tables:
            output_content += f"{GREEN}  + Table: {table.name} ({table.engine.value}){RESET}\n"
            for col in table.columns:
                flags = []
                if col.is_primary_key:
                    flags.append("PK")
                if col.is_foreign_key:
                    flags.append(f"FK -> {col.referenced_table}.{col.referenced_column}")
                if col.is_unique:
                    flags.append("UNIQUE")
                if col.auto_increment:
                    flags.append("AUTO_INCREMENT")
                if not col.is_nullable:
                    flags.append("NOT NULL")
                flag_str = f" [{', '.join(flags)}]" if flags else ""
                output_content += f"{GREEN}    + Column: {col.name} ({col.data_type}){flag_str}{RESET}\n"
        for fk in result.foreign_key_constraints:
            output_content += (f"  ~ Relationship: {fk.table_name}.{fk.column_name} -> "
                               f"{fk.referenced_table}.{fk.referenced_column} ({fk.cardinality.value})\n")
        for warning in result.warnings:
            output_content += f"{YELLOW}  ! Warning: {warning}{RESET}\n"
        for error in result.errors:
            output_content += f"{RED}  x Error: {error}{RESET}\n"
        if not result.tables and not result.errors:
            output_content += "No tables found.\n"

        print(output_content)

    # 2. JSON Output
    if args.json_out:
        with open(args.json_out, 'w', encoding='utf-8') as f:
            json.dump(result.to_dict(), f, indent=2)
        print(f"JSON schema saved to {args.json_out}")
    elif not args.summary:
        print(json.dumps(result.to_dict(), indent=2))


if __name__ == '__main__':
    main()
