"""
Tests for folding ALTER TABLE constraints into parsed tables.
"""
import logging

from schemaflow.constants import Cardinality, IndexType
from schemaflow.models import (
    Column, Table, IdSequence, ForeignKeyConstraint, AlterTableConstraints,
    AlterPrimaryKey, AlterUniqueKey, AlterAutoIncrement, AlterIndex,
)
from schemaflow.parsers.merger import ConstraintMerger, infer_cardinality


def make_table(name, *column_names, ids=None):
    ids = ids or IdSequence()
    return Table(name=name, columns=[Column(id=ids.next('col'), name=c, data_type='INT') for c in column_names])


def merge(tables, alter, foreign_keys=()):
    warnings = []
    merged = ConstraintMerger(IdSequence()).merge(tables, list(foreign_keys), alter, warnings)
    return merged, warnings


class TestPrimaryKeys:

    def test_alter_primary_key_replaces_existing(self):
        table = make_table('t', 'id', 'code')
        table.columns[0].mark_primary_key()
        merge([table], AlterTableConstraints(primary_keys=[AlterPrimaryKey('t', ['code'])]))

        assert [c.is_primary_key for c in table.columns] == [False, True]
        assert not table.get_column('code').is_nullable

    def test_unknown_primary_key_column_warns(self):
        table = make_table('t', 'id')
        _, warnings = merge([table], AlterTableConstraints(primary_keys=[AlterPrimaryKey('t', ['nope'])]))
        assert warnings == ['Primary key column "nope" not found in table "t"']

    def test_table_names_match_case_insensitively(self):
        table = make_table('Users', 'id')
        _, warnings = merge([table], AlterTableConstraints(primary_keys=[AlterPrimaryKey('users', ['ID'])]))
        assert table.columns[0].is_primary_key
        assert warnings == []

    def test_unknown_table_warns(self):
        _, warnings = merge([], AlterTableConstraints(primary_keys=[AlterPrimaryKey('ghost', ['id'])]))
        assert warnings == ['Table "ghost" not found for ALTER TABLE constraint']


class TestUniqueKeysAndIndexes:

    def test_single_column_unique(self):
        table = make_table('users', 'id', 'email')
        merge([table], AlterTableConstraints(unique_keys=[AlterUniqueKey('users', ['email'])]))
        assert table.get_column('email').is_unique
        assert table.indexes == []

    def test_composite_unique_marks_every_column_unique(self):
        table = make_table('t', 'id', 'a', 'b')
        merge([table], AlterTableConstraints(unique_keys=[AlterUniqueKey('t', ['a', 'b'], 'uq_ab')]))

        a, b = table.get_column('a'), table.get_column('b')
        assert (a.is_unique, b.is_unique, a.is_indexed, b.is_indexed) == (True, True, False, False)
        index = table.indexes[0]
        assert (index.name, index.index_type, index.columns) == ('uq_ab', IndexType.UNIQUE, [a.id, b.id])

    def test_auto_increment(self):
        table = make_table('t', 'id')
        merge([table], AlterTableConstraints(auto_increments=[AlterAutoIncrement('t', 'id')]))
        assert table.columns[0].auto_increment

    def test_indexes(self):
        table = make_table('posts', 'id', 'title', 'body')
        alter = AlterTableConstraints(indexes=[
            AlterIndex('posts', ['title', 'body'], 'posts_ft', IndexType.FULLTEXT),
            AlterIndex('posts', ['title']),
            AlterIndex('posts', ['missing']),
        ])
        merge([table], alter)

        assert [(i.id, i.name, i.index_type) for i in table.indexes] == [
            ('idx_1', 'posts_ft', IndexType.FULLTEXT),
            ('idx_2', 'idx_posts_title', IndexType.INDEX),
        ]
        assert table.get_column('body').is_indexed
        assert not table.get_column('id').is_indexed


class TestForeignKeys:

    def test_alter_foreign_key_marks_column(self):
        users = make_table('users', 'id')
        users.columns[0].mark_primary_key()
        posts = make_table('posts', 'id', 'user_id')
        fk = ForeignKeyConstraint('posts', 'user_id', 'users', 'id', on_delete='CASCADE')
        merged, warnings = merge([users, posts], AlterTableConstraints(foreign_keys=[fk]))

        column = posts.get_column('user_id')
        assert column.is_foreign_key
        assert (column.referenced_table, column.referenced_column) == ('users', 'id')
        assert merged[0].cardinality is Cardinality.ONE_TO_MANY
        assert merged[0].on_delete == 'CASCADE'
        assert warnings == []

    def test_unique_referencing_column_is_one_to_one(self):
        users = make_table('users', 'id')
        wallets = make_table('wallets', 'id', 'user_id')
        wallets.get_column('user_id').is_unique = True
        fk = ForeignKeyConstraint('wallets', 'user_id', 'users', 'id')
        merged, _ = merge([users, wallets], AlterTableConstraints(foreign_keys=[fk]))
        assert merged[0].cardinality is Cardinality.ONE_TO_ONE

    def test_composite_unique_member_is_one_to_one(self):
        a = make_table('a', 'id')
        m = make_table('m', 'id', 'a_id', 'b')
        alter = AlterTableConstraints(
            unique_keys=[AlterUniqueKey('m', ['a_id', 'b'], 'u')],
            foreign_keys=[ForeignKeyConstraint('m', 'a_id', 'a', 'id', constraint_name='f')],
        )
        merged, _ = merge([a, m], alter)
        assert m.get_column('a_id').is_unique
        assert merged[0].cardinality is Cardinality.ONE_TO_ONE

    def test_create_table_foreign_keys_come_first(self):
        users = make_table('users', 'id')
        posts = make_table('posts', 'id', 'user_id', 'editor_id')
        inline = ForeignKeyConstraint('posts', 'user_id', 'users', 'id')
        altered = ForeignKeyConstraint('posts', 'editor_id', 'users', 'id')
        merged, _ = merge([users, posts], AlterTableConstraints(foreign_keys=[altered]), [inline])
        assert [fk.column_name for fk in merged] == ['user_id', 'editor_id']

    def test_missing_table_drops_foreign_key(self):
        fk = ForeignKeyConstraint('ghost', 'user_id', 'users', 'id')
        merged, warnings = merge([make_table('users', 'id')], AlterTableConstraints(foreign_keys=[fk]))
        assert merged == []
        assert warnings == ['Table "ghost" referenced in foreign key not found in CREATE TABLE statements']

    def test_missing_column_drops_foreign_key(self):
        fk = ForeignKeyConstraint('posts', 'author_id', 'users', 'id')
        tables = [make_table('users', 'id'), make_table('posts', 'id')]
        merged, warnings = merge(tables, AlterTableConstraints(foreign_keys=[fk]))
        assert merged == []
        assert warnings == ['Foreign key column "author_id" not found in table "posts"']

    def test_missing_referenced_table_is_kept_with_warning(self):
        posts = make_table('posts', 'id', 'user_id')
        merged, warnings = merge([posts], AlterTableConstraints(),
                                 [ForeignKeyConstraint('posts', 'user_id', 'users', 'id')])
        assert len(merged) == 1
        assert warnings == ['Table "users" referenced in foreign key not found in CREATE TABLE statements']


class TestInferCardinality:

    def test_rules(self):
        table = make_table('t', 'id', 'unique_col', 'plain')
        table.get_column('id').mark_primary_key()
        table.get_column('unique_col').is_unique = True

        assert infer_cardinality(table, 'id') is Cardinality.ONE_TO_ONE
        assert infer_cardinality(table, 'unique_col') is Cardinality.ONE_TO_ONE
        assert infer_cardinality(table, 'plain') is Cardinality.ONE_TO_MANY
        assert infer_cardinality(table, 'missing') is Cardinality.ONE_TO_MANY
        assert infer_cardinality(None, 'id') is Cardinality.ONE_TO_MANY


class TestLogging:

    def test_alter_summary_is_logged_when_present(self, caplog):
        caplog.set_level(logging.DEBUG, logger='schemaflow')
        table = make_table('t', 'id', 'a')
        merge([table], AlterTableConstraints(unique_keys=[AlterUniqueKey('t', ['a'])]))
        assert ("Applying ALTER TABLE constraints: 0 primary keys, 1 unique keys, "
                "0 indexes, 0 foreign keys") in caplog.text

    def test_nothing_is_logged_without_alter_constraints(self, caplog):
        caplog.set_level(logging.DEBUG, logger='schemaflow')
        merge([make_table('t', 'id')], AlterTableConstraints())
        assert "Applying ALTER TABLE constraints" not in caplog.text
