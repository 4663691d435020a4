"""Tests for column reconstruction from builder chains."""
import pytest

from drizzle_entities.models import DEFAULT_NOW, ForeignKeyTarget


ITEMS_SCHEMA = """
import { pgTable } from "drizzle-orm/pg-core";

export const items = pgTable("items", {
  a: integer("a").notNull().primaryKey(),
  b: integer("b").primaryKey().notNull(),
  label: varchar("label", { length: 40 }),
  amount: numeric({ precision: 12, scale: 4 }),
  status: text("status", { enum: ["open", "closed"] }),
  count: integer("count").default(1).default(2),
  flag: boolean("flag").default(true),
  note: text("note").default("n/a"),
  seenAt: timestamp("seen_at").defaultNow(),
  ownerId: integer("owner_id").references(() => owners.id, { onDelete: "set null", onUpdate: "cascade" }),
  bogus: "not a column",
  alias: someColumn,
});
"""


@pytest.fixture
def items(parse):
    return parse(ITEMS_SCHEMA)["items"]


# =============================================================================
# Column Map Tests
# =============================================================================

class TestColumnMap:
    """Test parsing of a table's column map."""

    def test_unparseable_entries_skipped(self, items):
        """Should omit non-call entries and keep the other columns in order."""
        assert [col.name for col in items.columns] == [
            "a", "b", "label", "amount", "status", "count", "flag", "note", "seenAt", "ownerId",
        ]

    def test_primary_keys_derived(self, items):
        """Should list exactly the columns flagged as primary key."""
        assert items.primary_keys == ["a", "b"]
        assert items.primary_keys == [col.name for col in items.columns if col.primary_key]

    def test_chain_order_independent(self, items):
        """Should give the same flags whatever the modifier order."""
        a, b = items.get_column("a"), items.get_column("b")
        assert (a.nullable, a.primary_key) == (False, True)
        assert (b.nullable, b.primary_key) == (False, True)

    def test_defaults_untouched(self, items):
        """Should keep defaults for columns without modifiers."""
        label = items.get_column("label")
        assert label.nullable is True
        assert label.primary_key is False
        assert label.unique is False
        assert label.default_value is None
        assert label.references is None

    def test_table_name_and_identifier(self, items):
        """Should separate the declared identifier from the table name."""
        assert items.name == "items"
        assert items.table_name == "items"

    def test_quoted_key(self, parse):
        """Should use the unquoted key as column name."""
        entity = parse('export const t = pgTable("t", { "display name": text("display_name") });')["t"]
        assert entity.columns[0].name == "display name"


# =============================================================================
# Type Call Tests
# =============================================================================

class TestColumnType:
    """Test the type-constructing call of a chain."""

    def test_type_and_length(self, items):
        """Should read the base type and a length option."""
        label = items.get_column("label")
        assert label.type == "varchar"
        assert label.length == 40

    def test_options_as_first_argument(self, items):
        """Should read options passed without a column name."""
        amount = items.get_column("amount")
        assert amount.type == "numeric"
        assert amount.precision == 12
        assert amount.scale == 4

    def test_inline_enum(self, items):
        """Should read enum values from the options object."""
        assert items.get_column("status").enum_values == ["open", "closed"]

    def test_member_typed_builder(self, parse):
        """Should read types from the `(t) => ({ ... })` builder form."""
        entity = parse(
            'export const m = pgTable("m", (t) => ({\n'
            "  id: t.integer().primaryKey(),\n"
            '  title: t.varchar({ length: 20 }),\n'
            "}));\n"
        )["m"]

        assert [col.type for col in entity.columns] == ["integer", "varchar"]
        assert entity.columns[1].length == 20
        assert entity.primary_keys == ["id"]

    def test_declared_enum(self, parse):
        """Should fill enum values from a pgEnum declared in the document."""
        entity = parse(
            'export const moodEnum = pgEnum("mood", ["sad", "ok", "happy"]);\n'
            'export const people = pgTable("people", { mood: moodEnum("mood").notNull() });\n'
        )["people"]

        mood = entity.get_column("mood")
        assert mood.type == "moodEnum"
        assert mood.enum_values == ["sad", "ok", "happy"]
        assert mood.nullable is False


# =============================================================================
# Modifier Tests
# =============================================================================

class TestModifiers:
    """Test chained modifier calls."""

    def test_default_values(self, items):
        """Should keep default literals as text."""
        assert items.get_column("flag").default_value == "true"
        assert items.get_column("note").default_value == "n/a"
        assert items.get_column("seenAt").default_value == DEFAULT_NOW

    def test_number_defaults(self, parse):
        """Should spell numeric defaults canonically."""
        entity = parse(
            'export const t = pgTable("t", {\n'
            '  big: integer("big").default(1_000),\n'
            '  rate: numeric("rate").default(0.10),\n'
            '  whole: real("whole").default(2.0),\n'
            '  mask: integer("mask").default(0x10),\n'
            '});\n'
        )["t"]
        assert [col.default_value for col in entity.columns] == ["1000", "0.1", "2", "16"]

    def test_repeated_modifier(self, items):
        """Should keep the innermost value of a repeated modifier."""
        assert items.get_column("count").default_value == "1"

    def test_unique(self, parse):
        """Should set the unique flag."""
        entity = parse('export const t = pgTable("t", { e: text("e").unique() });')["t"]
        assert entity.columns[0].unique is True

    def test_unknown_modifier_ignored(self, parse):
        """Should ignore modifiers it does not know."""
        entity = parse('export const t = pgTable("t", { e: text("e").$type().notNull() });')["t"]
        assert entity.columns[0].type == "text"
        assert entity.columns[0].nullable is False


# =============================================================================
# Reference Tests
# =============================================================================

class TestReferences:
    """Test references() modifiers and derived foreign keys."""

    def test_reference_with_actions(self, items):
        """Should read the target and normalize referential actions."""
        ref = items.get_column("ownerId").references
        assert ref.table == "owners"
        assert ref.column == "id"
        assert ref.on_delete == "SET NULL"
        assert ref.on_update == "CASCADE"

    def test_foreign_keys_from_columns(self, items):
        """Should derive one foreign key per referencing column."""
        assert len(items.foreign_keys) == 1
        fk = items.foreign_keys[0]
        assert fk.columns == ["ownerId"]
        assert fk.references == ForeignKeyTarget(table="owners", columns=["id"])
        assert fk.on_delete == "SET NULL"
        assert items.foreign_key_count == 1

    def test_reference_needs_function(self, parse):
        """Should ignore a reference that is not a zero-argument function."""
        entity = parse(
            'export const t = pgTable("t", {\n'
            "  a: integer().references(owners.id),\n"
            "  b: integer().references((x) => owners.id),\n"
            "  c: integer().references(() => owners),\n"
            "});\n"
        )["t"]

        assert all(col.references is None for col in entity.columns)
        assert entity.foreign_keys == []

    def test_unknown_action_dropped(self, parse):
        """Should drop referential actions it does not recognise."""
        entity = parse(
            'export const t = pgTable("t", { a: integer().references(() => o.id, { onDelete: "explode" }) });'
        )["t"]
        ref = entity.columns[0].references
        assert ref.table == "o"
        assert ref.on_delete is None


# =============================================================================
# Table Shape Tests
# =============================================================================

class TestTableShape:
    """Test handling of malformed table declarations."""

    def test_bad_tables_dropped(self, parse):
        """Should drop tables without a literal name or a column map."""
        entities = parse(
            'export const a = pgTable(tableName, { id: serial("id") });\n'
            'export const b = pgTable("b");\n'
            'export const c = pgTable("c", columns);\n'
            'export const e = pgTable("", { id: serial("id") });\n'
            'export const d = pgTable("d", { id: serial("id") });\n'
        )
        assert list(entities) == ["d"]

    def test_deeply_nested_table_dropped(self, parse):
        """Should drop only the table whose builder chain nests too deeply to lower."""
        chain = ".notNull()" * 3000
        entities = parse(
            f'export const deep = pgTable("deep", {{ id: serial("id"){chain} }});\n'
            'export const d = pgTable("d", { id: serial("id") });\n'
        )
        assert list(entities) == ["d"]

    def test_unexported_and_other_builders_ignored(self, parse):
        """Should only read exported dialect table builders."""
        entities = parse(
            'const a = pgTable("a", { id: serial("id") });\n'
            'export const b = createTable("b", { id: serial("id") });\n'
            'export const c = sqliteTable("c", { id: integer("id") });\n'
            'export const d = mysqlTable("d", { id: int("id") });\n'
        )
        assert list(entities) == ["c", "d"]
