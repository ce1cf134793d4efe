"""
End-to-end tests for SchemaParser: preprocessing, dialect fallback, tree
walking and ALTER TABLE merging together.
"""
import logging

import pytest
from sqlglot import exp

from schemaflow import parse_sql_file
from schemaflow.constants import Cardinality
from schemaflow.exceptions import DialectError
from schemaflow.models import IdSequence
from schemaflow.parsers.schema_parser import SchemaParser, NO_TABLES_WARNING


ROUND_TRIP_DDL = """
CREATE TABLE users (
    id SERIAL PRIMARY KEY,
    email VARCHAR(255) NOT NULL UNIQUE,
    is_active BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE posts (
    id INT PRIMARY KEY,
    user_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title VARCHAR(200),
    slug VARCHAR(50),
    status VARCHAR(20) DEFAULT 'draft',
    CONSTRAINT uq_user_slug UNIQUE (user_id, slug)
);

CREATE TABLE tags (
    name TEXT,
    tags_id INT
);
"""


class TestBasicParsing:

    def setup_method(self):
        self.parser = SchemaParser()

    def test_single_table(self):
        result = self.parser.parse(
            "CREATE TABLE users (id INTEGER PRIMARY KEY, email VARCHAR(255) UNIQUE NOT NULL);"
        )
        assert [t.name for t in result.tables] == ['users']
        users = result.tables[0]
        id_col, email = users.columns

        assert (id_col.is_primary_key, id_col.is_nullable) == (True, False)
        assert (email.is_unique, email.is_nullable, email.is_foreign_key) == (True, False, False)
        assert email.data_type == 'VARCHAR(255)'
        assert result.errors == ()
        assert result.warnings == ()
        assert result.dialect == 'postgresql'

    def test_inline_foreign_key_is_one_to_many(self):
        result = self.parser.parse(
            "CREATE TABLE users (id INT PRIMARY KEY);\n"
            "CREATE TABLE posts (id INT PRIMARY KEY, user_id INT REFERENCES users(id));"
        )
        fk = result.foreign_key_constraints[0]
        assert (fk.table_name, fk.column_name, fk.referenced_table, fk.referenced_column) == (
            'posts', 'user_id', 'users', 'id'
        )
        assert fk.cardinality is Cardinality.ONE_TO_MANY

    def test_implicit_primary_key(self):
        result = self.parser.parse("CREATE TABLE widgets (widgets_id INT, name VARCHAR(50));")
        widgets_id = result.get_table('widgets').get_column('widgets_id')
        assert widgets_id.is_primary_key
        assert result.warnings == ()

    def test_explicit_constraints_are_mirrored_exactly(self):
        result = self.parser.parse("CREATE TABLE t (id INT, code INT PRIMARY KEY, note TEXT);")
        assert [c.is_primary_key for c in result.tables[0].columns] == [False, True, False]

    def test_alter_primary_key_matches_inline_declaration(self):
        altered = self.parser.parse("CREATE TABLE t (a INT);\nALTER TABLE t ADD PRIMARY KEY (a);")
        inline = self.parser.parse("CREATE TABLE t (a INT PRIMARY KEY);")
        column = altered.tables[0].columns[0]
        assert (column.is_primary_key, column.is_nullable) == (True, False)
        assert altered.to_dict() == inline.to_dict()

    def test_mysql_dump_falls_back_to_mysql(self):
        result = self.parser.parse(
            "CREATE TABLE `users` (\n"
            "  `id` bigint(20) unsigned NOT NULL,\n"
            "  `status` enum('active','banned') DEFAULT 'active'\n"
            ") ENGINE=MyISAM DEFAULT CHARSET=utf8mb4;\n"
            "ALTER TABLE `users` ADD PRIMARY KEY (`id`);\n"
            "ALTER TABLE `users` MODIFY `id` bigint(20) unsigned NOT NULL AUTO_INCREMENT;"
        )
        users = result.tables[0]
        assert result.dialect == 'mysql'
        assert users.engine.value == 'MyISAM'
        assert users.columns[0].data_type == 'BIGINT(20)'
        assert users.columns[0].auto_increment
        assert users.columns[1].data_type == "ENUM('active','banned')"
        assert users.columns[1].default_value == 'active'

    def test_mysql_index_method_suffix(self):
        result = self.parser.parse(
            "CREATE TABLE `t` (`id` int NOT NULL, PRIMARY KEY (`id`) USING BTREE, "
            "KEY `k` (`id`) USING BTREE) ENGINE=InnoDB;"
        )
        assert result.errors == ()
        assert result.dialect == 'mysql'
        table = result.tables[0]
        assert table.get_column('id').is_primary_key
        assert [(i.name, i.index_type.value) for i in table.indexes] == [('k', 'INDEX')]

    def test_mysql_backslash_escaped_comment(self):
        result = self.parser.parse(
            "CREATE TABLE `t` (`id` int unsigned NOT NULL COMMENT 'user\\'s id', "
            "PRIMARY KEY (`id`)) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;"
        )
        assert result.errors == ()
        assert result.dialect == 'mysql'
        assert result.tables[0].columns[0].data_type == 'INT'

    def test_noise_words_in_defaults_and_column_names(self):
        result = self.parser.parse(
            "CREATE TABLE t (id INT PRIMARY KEY, s VARCHAR(20) DEFAULT 'unsigned', charset VARCHAR(10));"
        )
        assert result.errors == ()
        table = result.tables[0]
        assert [c.name for c in table.columns] == ['id', 's', 'charset']
        assert table.get_column('s').default_value == 'unsigned'

    def test_sqlite_untyped_columns(self):
        result = self.parser.parse("CREATE TABLE t (id INTEGER PRIMARY KEY, a, b);")
        assert result.errors == ()
        assert result.dialect == 'sqlite'
        assert [(c.name, c.data_type) for c in result.tables[0].columns] == [('id', 'INT'), ('a', ''), ('b', '')]

    def test_composite_unique_member_is_one_to_one(self):
        result = self.parser.parse(
            "CREATE TABLE a (id INT PRIMARY KEY);\n"
            "CREATE TABLE m (id INT PRIMARY KEY, a_id INT, b INT);\n"
            "ALTER TABLE m ADD UNIQUE KEY u (a_id, b), ADD CONSTRAINT f FOREIGN KEY (a_id) REFERENCES a(id);"
        )
        m = result.tables[1]
        assert m.get_column('a_id').is_unique
        assert m.get_column('b').is_unique
        assert result.foreign_key_constraints[0].cardinality is Cardinality.ONE_TO_ONE

    def test_sqlite_brackets_and_autoincrement(self):
        result = self.parser.parse("CREATE TABLE [items] (id INTEGER PRIMARY KEY AUTOINCREMENT, [name] TEXT);")
        items = result.tables[0]
        assert result.dialect == 'sqlite'
        assert items.name == 'items'
        assert (items.columns[0].data_type, items.columns[0].auto_increment) == ('INT', True)

    def test_unique_referencing_column_is_one_to_one(self):
        result = self.parser.parse(
            "CREATE TABLE users (id INT PRIMARY KEY);\n"
            "CREATE TABLE profiles (id INT PRIMARY KEY, user_id INT UNIQUE REFERENCES users(id));"
        )
        assert result.foreign_key_constraints[0].cardinality is Cardinality.ONE_TO_ONE

    def test_ids_are_deterministic(self):
        first = self.parser.parse(ROUND_TRIP_DDL).to_dict()
        second = self.parser.parse(ROUND_TRIP_DDL).to_dict()
        assert first == second
        assert first['tables'][0]['columns'][0]['id'] == 'col_1'

    def test_parse_sql_file_helper(self):
        result = parse_sql_file("CREATE TABLE t (id INT PRIMARY KEY);", dialects=['sqlite'])
        assert result.dialect == 'sqlite'


class TestDiagnostics:

    def setup_method(self):
        self.parser = SchemaParser()

    @pytest.mark.parametrize("sql", ["", "   ", "INSERT INTO users VALUES (1);", "CREATE INDEX i ON t (a);"])
    def test_no_tables_is_a_warning(self, sql):
        result = self.parser.parse(sql)
        assert result.tables == ()
        assert result.errors == ()
        assert result.warnings == (NO_TABLES_WARNING,)
        assert not result.has_errors

    def test_syntax_error_fails_the_whole_batch(self):
        result = self.parser.parse(
            "CREATE TABLE a (id INT PRIMARY KEY);\nCREATE TABLE b (id INT PRIMARY KEY,, name TEXT);"
        )
        assert result.tables == ()
        assert result.has_errors
        assert result.errors[0].startswith('SQL Parse Error: Syntax error at line 2')

    def test_isolated_statements_skip_the_broken_one(self):
        parser = SchemaParser(isolate_statements=True)
        result = parser.parse(
            "CREATE TABLE a (id INT PRIMARY KEY);\nCREATE TABLE b (id INT PRIMARY KEY,, name TEXT);"
        )
        assert [t.name for t in result.tables] == ['a']
        assert result.errors == ()
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith('Skipped statement: CREATE TABLE b')

    def test_isolated_statements_all_failing_is_an_error(self):
        result = SchemaParser(isolate_statements=True).parse("CREATE TABLE b (id INT,, name TEXT);")
        assert result.tables == ()
        assert result.has_errors

    def test_duplicate_table_keeps_last_definition(self):
        result = self.parser.parse(
            "CREATE TABLE t (id INT PRIMARY KEY);\nCREATE TABLE t (id INT PRIMARY KEY, name TEXT);"
        )
        assert len(result.tables) == 1
        assert [c.name for c in result.tables[0].columns] == ['id', 'name']
        assert result.warnings == ('Duplicate table "t": later definition replaces earlier one',)

    def test_dangling_alter_foreign_key_is_dropped(self):
        result = self.parser.parse(
            "CREATE TABLE posts (id INT PRIMARY KEY, user_id INT);\n"
            "ALTER TABLE posts ADD FOREIGN KEY (author_id) REFERENCES users (id);"
        )
        assert result.foreign_key_constraints == ()
        assert result.warnings == ('Foreign key column "author_id" not found in table "posts"',)

    def test_missing_table_name_is_an_error(self):
        errors, warnings = [], []
        tables, _ = self.parser._walk([(exp.Create(kind="TABLE"), None)], IdSequence(), errors, warnings)
        assert tables == []
        assert errors == ['Error parsing table: Table name not found']

    def test_unknown_dialect(self):
        with pytest.raises(DialectError):
            SchemaParser(dialects=['oracle'])

    def test_warnings_are_logged(self, caplog):
        caplog.set_level(logging.WARNING, logger='schemaflow')
        self.parser.parse("CREATE TABLE t (a INT, PRIMARY KEY (missing));")
        assert 'Primary key column "missing" not found in table "t"' in caplog.text


class TestRoundTrip:

    def test_rendered_ddl_parses_back_to_the_same_model(self, ddl_renderer, flags_of):
        parser = SchemaParser()
        first = parser.parse(ROUND_TRIP_DDL)
        second = parser.parse(ddl_renderer(first))

        assert first.errors == () and second.errors == ()
        assert [t.name for t in second.tables] == [t.name for t in first.tables]
        assert flags_of(second) == flags_of(first)
        assert ([(fk.table_name, fk.column_name, fk.cardinality) for fk in second.foreign_key_constraints]
                == [(fk.table_name, fk.column_name, fk.cardinality) for fk in first.foreign_key_constraints])

    def test_round_trip_source_is_fully_flagged(self):
        result = SchemaParser().parse(ROUND_TRIP_DDL)
        users, posts, tags = result.tables

        assert users.get_column('id').auto_increment
        assert users.get_column('is_active').default_value == 'TRUE'
        assert users.get_column('created_at').default_value == 'CURRENT_TIMESTAMP'
        assert posts.get_column('slug').is_unique
        assert result.foreign_key_constraints[0].cardinality is Cardinality.ONE_TO_ONE
        assert posts.indexes[0].name == 'uq_user_slug'
        assert tags.get_column('tags_id').is_primary_key
