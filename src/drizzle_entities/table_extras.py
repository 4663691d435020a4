"""Indexes and constraints declared in a table's extras callback.

    export const users = pgTable("users", { ... }, (t) => ({
        emailIdx: uniqueIndex("users_email_idx").on(t.email),
        adult: check("adult", sql`${t.age} >= 18`),
    }));

The callback may also return an array. Composite `primaryKey(...)` extras
are ignored and never change column flags.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .columns import referential_action
from .errors import StructuralMismatch
from .models import CheckInfo, ForeignKey, ForeignKeyTarget, IndexInfo
from .treesitter.syntax import (
    ArrayLiteral,
    Call,
    FunctionLiteral,
    Identifier,
    MemberAccess,
    Node,
    ObjectLiteral,
    StringLiteral,
    TemplateLiteral,
    referenced_name,
    returned_expression,
    unwrap,
    walk_call_chain,
)

logger = logging.getLogger(__name__)

INDEX_TYPES = {"btree", "hash", "gin", "gist"}


@dataclass
class TableExtras:
    indexes: list[IndexInfo] = field(default_factory=list)
    checks: list[CheckInfo] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)


def parse_table_extras(table_name: str, callback: Node) -> TableExtras:
    """Parse the third table-builder argument.

    Args:
        table_name: Declared table name, used to name anonymous indexes
        callback: The extras argument

    Returns:
        TableExtras (empty if the callback has an unexpected shape)
    """
    extras = TableExtras()

    callback = unwrap(callback)
    if not isinstance(callback, FunctionLiteral):
        return extras

    returned = returned_expression(callback)
    if isinstance(returned, ObjectLiteral):
        entries = [(prop.key, prop.value) for prop in returned.properties]
    elif isinstance(returned, ArrayLiteral):
        entries = [(None, element) for element in returned.elements]
    else:
        return extras

    for key, value in entries:
        try:
            _parse_extra(table_name, key, value, extras)
        except StructuralMismatch as e:
            logger.debug(f"Skipping extra '{key or value.text}' of {table_name}: {e}")

    return extras


def _parse_extra(table_name: str, key: str | None, value: Node, extras: TableExtras) -> None:
    chain = list(walk_call_chain(value))
    if not chain:
        raise StructuralMismatch("expected a builder call")

    kind, base = chain[-1]
    methods = {name: call for name, call in chain[:-1]}

    if kind in ("index", "uniqueIndex"):
        extras.indexes.append(_parse_index(table_name, key, base, methods, unique=kind == "uniqueIndex"))
    elif kind == "unique":
        extras.indexes.append(_parse_index(table_name, key, base, methods, unique=True))
    elif kind == "check":
        extras.checks.append(_parse_check(key, base))
    elif kind == "foreignKey":
        extras.foreign_keys.append(_parse_foreign_key(key, base, methods))


def _parse_index(
    table_name: str,
    key: str | None,
    base: Call,
    methods: dict[str | None, Call],
    unique: bool
) -> IndexInfo:
    index_type = None
    if "on" in methods:
        columns = _column_names(methods["on"].arguments)
    elif "using" in methods:
        args = methods["using"].arguments
        if args and isinstance(args[0], StringLiteral) and args[0].value.lower() in INDEX_TYPES:
            index_type = args[0].value.lower()
        columns = _column_names(args[1:])
    else:
        raise StructuralMismatch("index without .on() or .using() columns")

    name = _string_argument(base)
    if name is None:
        suffix = "unique" if unique else "idx"
        name = key or f"{table_name}_{'_'.join(columns)}_{suffix}"

    index = IndexInfo(name=name, columns=columns, unique=unique, type=index_type)

    if "where" in methods and methods["where"].arguments:
        index.partial = True
        index.condition = _sql_text(methods["where"].arguments[0])

    return index


def _parse_check(key: str | None, base: Call) -> CheckInfo:
    if len(base.arguments) < 2:
        raise StructuralMismatch("check() needs a name and an expression")

    name = _string_argument(base) or key
    if name is None:
        raise StructuralMismatch("check() without a name")

    expression = unwrap(base.arguments[1])
    columns = []
    template = _template_of(expression)
    if template is not None:
        for sub in template.substitutions:
            column = _column_name(sub)
            if column and column not in columns:
                columns.append(column)

    return CheckInfo(name=name, expression=_sql_text(expression), columns=columns)


def _parse_foreign_key(key: str | None, base: Call, methods: dict[str | None, Call]) -> ForeignKey:
    if not base.arguments or not isinstance(unwrap(base.arguments[0]), ObjectLiteral):
        raise StructuralMismatch("foreignKey() needs a config object")

    config = unwrap(base.arguments[0])
    local = config.get("columns")
    foreign = config.get("foreignColumns")
    if not isinstance(local, ArrayLiteral) or not isinstance(foreign, ArrayLiteral):
        raise StructuralMismatch("foreignKey() needs columns and foreignColumns arrays")

    target_table = None
    for element in foreign.elements:
        element = unwrap(element)
        if isinstance(element, MemberAccess) and isinstance(unwrap(element.object), Identifier):
            target_table = unwrap(element.object).name
            break
    if target_table is None:
        raise StructuralMismatch("foreignColumns must reference table.column")

    name_node = config.get("name")
    foreign_key = ForeignKey(
        columns=_column_names(local.elements),
        references=ForeignKeyTarget(table=target_table, columns=_column_names(foreign.elements)),
        name=name_node.value if isinstance(name_node, StringLiteral) else key,
    )

    if "onDelete" in methods and methods["onDelete"].arguments:
        foreign_key.on_delete = referential_action(methods["onDelete"].arguments[0])
    if "onUpdate" in methods and methods["onUpdate"].arguments:
        foreign_key.on_update = referential_action(methods["onUpdate"].arguments[0])

    return foreign_key


# Helper functions

def _column_name(node: Node) -> str | None:
    """Column key referenced by `t.email` (or a bare identifier)."""
    node = unwrap(node)
    if isinstance(node, (MemberAccess, Identifier)):
        return referenced_name(node)
    return None


def _column_names(nodes: list[Node]) -> list[str]:
    names = []
    for node in nodes:
        name = _column_name(node)
        if name:
            names.append(name)
    return names


def _string_argument(call: Call) -> str | None:
    if call.arguments and isinstance(call.arguments[0], StringLiteral):
        return call.arguments[0].value
    return None


def _template_of(node: Node) -> TemplateLiteral | None:
    """Template of a tagged `sql` call, or a bare template."""
    node = unwrap(node)
    if isinstance(node, Call) and len(node.arguments) == 1:
        node = node.arguments[0]
    if isinstance(node, TemplateLiteral):
        return node
    return None


def _sql_text(node: Node) -> str:
    """Raw text of an `sql` template, or the source text otherwise."""
    node = unwrap(node)
    if isinstance(node, Call) and len(node.arguments) == 1:
        inner = node.arguments[0]
        if isinstance(inner, TemplateLiteral):
            return inner.raw
        if isinstance(inner, StringLiteral):
            return inner.value
    if isinstance(node, TemplateLiteral):
        return node.raw
    return node.text
