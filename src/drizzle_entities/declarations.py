"""Classify top-level declarations as table, relation or enum declarations."""
from __future__ import annotations

from enum import Enum

from .config import DeclarationRules
from .treesitter.syntax import ArrayLiteral, Call, StringLiteral, VariableDeclaration


class DeclarationKind(str, Enum):
    TABLE = "table"
    RELATIONS = "relations"
    ENUM = "enum"


def classify_declaration(
    decl: VariableDeclaration,
    rules: DeclarationRules
) -> DeclarationKind | None:
    """Decide what an exported declaration declares.

    A table declaration calls a builder whose callee text contains the table
    marker and a dialect marker (`pgTable`, `mysqlTable`, `sqliteTable`).
    A relation declaration calls exactly the relation helper. An enum
    declaration calls a dialect enum builder (`pgEnum`, `mysqlEnum`).

    Args:
        decl: Lowered top-level declaration
        rules: Declaration markers

    Returns:
        The declaration kind, or None for anything else
    """
    if not decl.exported or not isinstance(decl.initializer, Call):
        return None

    callee = decl.initializer.callee.text
    has_dialect = any(marker in callee for marker in rules.dialect_markers)

    if callee == rules.relation_helper:
        return DeclarationKind.RELATIONS
    if rules.table_builder_marker in callee and has_dialect:
        return DeclarationKind.TABLE
    if rules.enum_builder_marker and rules.enum_builder_marker in callee and has_dialect:
        return DeclarationKind.ENUM
    return None


def parse_enum_declaration(decl: VariableDeclaration) -> list[str] | None:
    """Values of `pgEnum("role", ["admin", "member"])`.

    Returns:
        Ordered values, or None if the call does not list them literally
    """
    call = decl.initializer
    if not isinstance(call, Call) or len(call.arguments) < 2:
        return None

    values = call.arguments[1]
    if not isinstance(values, ArrayLiteral):
        return None

    return [el.value for el in values.elements if isinstance(el, StringLiteral)]
