"""Reconstruct columns from builder chains.

A column entry such as

    email: varchar("email", { length: 100 }).unique().notNull()

is read as a chain of calls. The innermost call names the type and may carry
an options object; every outer call is a modifier.
"""
from __future__ import annotations

import logging

from .comments import extract_comments
from .errors import StructuralMismatch
from .models import DEFAULT_NOW, Column, ColumnReference
from .treesitter.syntax import (
    ArrayLiteral,
    BooleanLiteral,
    Call,
    FunctionLiteral,
    Identifier,
    MemberAccess,
    NumberLiteral,
    ObjectLiteral,
    Property,
    StringLiteral,
    literal_text,
    unwrap,
    walk_call_chain,
)

logger = logging.getLogger(__name__)

REFERENTIAL_ACTIONS = {
    "cascade": "CASCADE",
    "set null": "SET NULL",
    "set default": "SET DEFAULT",
    "restrict": "RESTRICT",
    "no action": "NO ACTION",
}


def parse_columns(
    columns: ObjectLiteral,
    include_comments: bool = True,
    enums: dict[str, list[str]] | None = None
) -> list[Column]:
    """Parse every entry of a table's column map.

    Entries that are not builder calls are skipped; the remaining columns
    keep their source order.

    Args:
        columns: The column map object literal
        include_comments: Attach leading comments to columns
        enums: Enum declarations of the document, by identifier

    Returns:
        List of columns
    """
    result = []
    for prop in columns.properties:
        try:
            result.append(parse_column(prop, include_comments, enums))
        except StructuralMismatch as e:
            logger.debug(f"Skipping column '{prop.key}' at line {prop.line}: {e}")
    return result


def parse_column(
    prop: Property,
    include_comments: bool = True,
    enums: dict[str, list[str]] | None = None
) -> Column:
    """Build a column from one column map entry.

    Raises:
        StructuralMismatch: If the entry value is not a call expression
    """
    expr = unwrap(prop.value)
    if not isinstance(expr, Call):
        raise StructuralMismatch(f"expected a builder call, got {type(expr).__name__}")

    column = Column(name=prop.key)

    chain = list(walk_call_chain(expr))
    type_name, type_call = chain[-1]
    apply_column_type(type_name, type_call, column)

    # Outer-to-inner; a repeated modifier keeps the value applied last
    for method, call in chain[:-1]:
        apply_modifier(method, call, column)

    if enums and column.enum_values is None and column.type in enums:
        column.enum_values = list(enums[column.type])

    if include_comments:
        column.comments = extract_comments(prop.comments)

    return column


def apply_column_type(type_name: str | None, call: Call, column: Column) -> None:
    """Set the base type and any options of the type-constructing call."""
    if type_name is not None:
        column.type = type_name

    # varchar("email", { length: 100 }) or the name-less varchar({ length: 100 })
    options = None
    if len(call.arguments) > 1 and isinstance(call.arguments[1], ObjectLiteral):
        options = call.arguments[1]
    elif call.arguments and isinstance(call.arguments[0], ObjectLiteral):
        options = call.arguments[0]

    if options is not None:
        _apply_type_options(options, column)


def _apply_type_options(options: ObjectLiteral, column: Column) -> None:
    for prop in options.properties:
        value = unwrap(prop.value)
        if prop.key == "length":
            column.length = _number(value)
        elif prop.key == "precision":
            column.precision = _number(value)
        elif prop.key == "scale":
            column.scale = _number(value)
        elif prop.key == "enum" and isinstance(value, ArrayLiteral):
            column.enum_values = [el.value for el in value.elements if isinstance(el, StringLiteral)]


def apply_modifier(method: str | None, call: Call, column: Column) -> None:
    """Apply one chained modifier call to a column. Unknown modifiers are ignored."""
    if method == "notNull":
        column.nullable = False
    elif method == "primaryKey":
        column.primary_key = True
    elif method == "unique":
        column.unique = True
    elif method == "default":
        if call.arguments:
            column.default_value = default_text(call.arguments[0])
    elif method == "defaultNow":
        column.default_value = DEFAULT_NOW
    elif method == "references":
        column.references = parse_reference(call)


def default_text(node) -> str:
    """Textual form of a default() argument."""
    node = unwrap(node)
    if isinstance(node, NumberLiteral):
        return number_text(node.value)
    if isinstance(node, BooleanLiteral):
        return node.text
    return literal_text(node)


def number_text(value: int | float) -> str:
    """Canonical spelling of a number: 1_000 is "1000", 0.10 is "0.1", 1.0 is "1"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value)


def parse_reference(call: Call) -> ColumnReference | None:
    """Read `references(() => users.id, { onDelete: "cascade" })`.

    Returns:
        The reference, or None unless the first argument is a zero-argument
        function literal returning `identifier.property`
    """
    if not call.arguments:
        return None

    target = unwrap(call.arguments[0])
    if not isinstance(target, FunctionLiteral) or target.parameters:
        return None

    body = unwrap(target.body)
    if not isinstance(body, MemberAccess):
        return None

    table = unwrap(body.object)
    if not isinstance(table, Identifier):
        return None

    reference = ColumnReference(table=table.name, column=body.property)

    if len(call.arguments) > 1:
        actions = unwrap(call.arguments[1])
        if isinstance(actions, ObjectLiteral):
            reference.on_delete = referential_action(actions.get("onDelete"))
            reference.on_update = referential_action(actions.get("onUpdate"))

    return reference


def referential_action(node) -> str | None:
    """Normalize "cascade", "set null", ... to their SQL spelling."""
    node = unwrap(node)
    if not isinstance(node, StringLiteral):
        return None
    return REFERENTIAL_ACTIONS.get(node.value.strip().lower())


def _number(node) -> int | float | None:
    if isinstance(node, NumberLiteral):
        return node.value
    return None
