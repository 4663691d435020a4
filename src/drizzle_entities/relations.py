"""Parse relation declarations.

    export const postsRelations = relations(posts, ({ one, many }) => ({
        author: one(users, { fields: [posts.authorId], references: [users.id] }),
        comments: many(comments),
    }));
"""
from __future__ import annotations

import logging

from .config import DeclarationRules, HeuristicRules
from .errors import StructuralMismatch
from .models import Relation, RelationType
from .treesitter.syntax import (
    ArrayLiteral,
    Call,
    FunctionLiteral,
    Identifier,
    MemberAccess,
    Node,
    ObjectLiteral,
    Property,
    StringLiteral,
    VariableDeclaration,
    referenced_name,
    returned_expression,
    unwrap,
)

logger = logging.getLogger(__name__)

_TENTATIVE_TYPES = {
    "one": RelationType.ONE_TO_ONE,
    "many": RelationType.ONE_TO_MANY,
}


def table_name_from_declaration(decl_name: str, rules: DeclarationRules) -> str | None:
    """`usersRelations` -> `users`; None without the suffix."""
    suffix = rules.relations_suffix
    if not decl_name.endswith(suffix) or len(decl_name) == len(suffix):
        return None
    return decl_name[:-len(suffix)]


def parse_relation_declaration(
    decl: VariableDeclaration,
    declarations: DeclarationRules,
    heuristics: HeuristicRules
) -> tuple[str, list[Relation]]:
    """Parse one relations() declaration.

    Args:
        decl: A declaration classified as a relation declaration
        declarations: Declaration markers
        heuristics: Heuristic rules for type refinement

    Returns:
        Tuple of (owning table identifier, relations in source order)

    Raises:
        StructuralMismatch: If the declaration does not have the expected shape
    """
    table = table_name_from_declaration(decl.name, declarations)
    if table is None:
        raise StructuralMismatch(f"name does not end with '{declarations.relations_suffix}'")

    call = decl.initializer
    if not isinstance(call, Call) or len(call.arguments) < 2:
        raise StructuralMismatch("relations() needs a table and a callback")

    callback = unwrap(call.arguments[1])
    if not isinstance(callback, FunctionLiteral):
        raise StructuralMismatch("second relations() argument is not a function")

    mapping = returned_expression(callback)
    if not isinstance(mapping, ObjectLiteral):
        raise StructuralMismatch("relations() callback does not return an object literal")

    relations = []
    for prop in mapping.properties:
        try:
            relations.append(parse_relation_entry(prop, heuristics))
        except StructuralMismatch as e:
            logger.debug(f"Skipping relation '{prop.key}' of {table}: {e}")

    return table, relations


def parse_relation_entry(prop: Property, rules: HeuristicRules) -> Relation:
    """Build a relation from `name: one(target, { ... })` or `name: many(target)`.

    Raises:
        StructuralMismatch: For other helpers or a missing target
    """
    call = unwrap(prop.value)
    if not isinstance(call, Call) or not isinstance(call.callee, Identifier):
        raise StructuralMismatch("expected one(...) or many(...)")

    tentative = _TENTATIVE_TYPES.get(call.callee.name)
    if tentative is None:
        raise StructuralMismatch(f"unknown relation helper '{call.callee.name}'")

    if not call.arguments:
        raise StructuralMismatch("relation without a target table")

    related_table = related_table_name(call.arguments[0])
    if related_table is None:
        raise StructuralMismatch(f"cannot resolve target table from '{call.arguments[0].text}'")

    relation = Relation(name=prop.key, type=tentative, related_table=related_table)

    if len(call.arguments) > 1:
        config = unwrap(call.arguments[1])
        if isinstance(config, ObjectLiteral):
            _apply_relation_config(config, relation)

    relation.is_self_referencing = is_self_referencing(relation, rules)
    relation.type = refine_relation_type(relation, tentative, rules)
    return relation


def related_table_name(node: Node) -> str | None:
    """Target identifier of `users`, `() => users` or `schema.users`."""
    node = unwrap(node)
    if isinstance(node, FunctionLiteral) and not node.parameters:
        node = returned_expression(node)
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, MemberAccess):
        return node.property
    return None


def _apply_relation_config(config: ObjectLiteral, relation: Relation) -> None:
    fields = unwrap(config.get("fields"))
    if isinstance(fields, ArrayLiteral):
        relation.fields = _names(fields)

    references = unwrap(config.get("references"))
    if isinstance(references, ArrayLiteral):
        relation.references = _names(references)

    relation_name = unwrap(config.get("relationName"))
    if isinstance(relation_name, StringLiteral):
        relation.relation_name = relation_name.value


def _names(array: ArrayLiteral) -> list[str]:
    names = []
    for element in array.elements:
        name = referenced_name(element)
        if name:
            names.append(name)
    return names


def is_self_referencing(relation: Relation, rules: HeuristicRules) -> bool:
    """Whether the relation name hints at a self reference.

    Only the relationName label is inspected; the related table is not
    compared with the owning table.
    """
    if not relation.relation_name:
        return False
    label = relation.relation_name.lower()
    return any(marker in label for marker in rules.self_reference_markers)


def refine_relation_type(
    relation: Relation,
    tentative: RelationType,
    rules: HeuristicRules
) -> RelationType:
    """Refine the tentative type from one()/many().

    A junction marker in the target or the relation key means many-to-many;
    one() with both fields and references is the owning side of a foreign
    key, i.e. many-to-one.
    """
    if rules.has_junction_marker(relation.related_table, relation.name):
        return RelationType.MANY_TO_MANY

    if (
        tentative is RelationType.ONE_TO_ONE
        and relation.fields is not None
        and relation.references is not None
    ):
        return RelationType.MANY_TO_ONE

    return tentative
