"""Typed view of the TypeScript syntax consumed by the schema parsers.

Lowers tree-sitter nodes into one node class per grammar production the
parsers read: calls, member access, identifiers, literals, object and array
literals, function literals, parenthesized expressions, blocks and return
statements. Everything else becomes `Other`, which every parser skips.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterator

from tree_sitter import Node as TSNode, Tree

logger = logging.getLogger(__name__)


@dataclass
class Node:
    """Base class for lowered syntax nodes."""
    text: str  # Source text of the node
    line: int  # 1-based start line


@dataclass
class Identifier(Node):
    name: str


@dataclass
class MemberAccess(Node):
    """`object.property`"""
    object: Node
    property: str


@dataclass
class Call(Node):
    callee: Node
    arguments: list[Node]


@dataclass
class StringLiteral(Node):
    """String or no-substitution template literal."""
    value: str


@dataclass
class TemplateLiteral(Node):
    """Template literal with at least one ${} substitution."""
    raw: str  # Text between the backticks
    substitutions: list[Node]


@dataclass
class NumberLiteral(Node):
    value: int | float


@dataclass
class BooleanLiteral(Node):
    value: bool


@dataclass
class ArrayLiteral(Node):
    elements: list[Node]


@dataclass
class Property(Node):
    """One `key: value` entry of an object literal."""
    key: str
    value: Node
    comments: list[str] = field(default_factory=list)  # Raw leading comments


@dataclass
class ObjectLiteral(Node):
    properties: list[Property]

    def get(self, key: str) -> Node | None:
        """Value of the last entry with this key, as JavaScript would see it."""
        found = None
        for prop in self.properties:
            if prop.key == key:
                found = prop.value
        return found


@dataclass
class FunctionLiteral(Node):
    """Arrow function or function expression."""
    parameters: list[str]
    body: Node


@dataclass
class Parenthesized(Node):
    expression: Node


@dataclass
class Block(Node):
    statements: list[Node]


@dataclass
class ReturnStatement(Node):
    expression: Node | None


@dataclass
class Other(Node):
    """Any production outside the consumed subset."""
    kind: str


@dataclass
class VariableDeclaration:
    """A top-level `const`/`let`/`var` binding."""
    name: str
    initializer: Node | None
    exported: bool
    line: int
    statement_comments: list[str] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)


@dataclass
class SourceDocument:
    declarations: list[VariableDeclaration]
    has_errors: bool = False


# Lowering

def lower_document(source: bytes, tree: Tree) -> SourceDocument:
    """Lower the top-level variable declarations of a parsed document.

    Args:
        source: Source bytes the tree was parsed from
        tree: Tree-sitter parse tree

    Returns:
        SourceDocument with declarations in source order
    """
    root = tree.root_node
    declarations = []

    for child in root.named_children:
        if child.type == "export_statement":
            for sub in child.named_children:
                if sub.type in ("lexical_declaration", "variable_declaration"):
                    declarations.extend(_lower_declarations(source, sub, child, exported=True))
        elif child.type in ("lexical_declaration", "variable_declaration"):
            declarations.extend(_lower_declarations(source, child, child, exported=False))

    return SourceDocument(declarations=declarations, has_errors=root.has_error)


def _lower_declarations(
    source: bytes,
    node: TSNode,
    statement: TSNode,
    exported: bool
) -> Iterator[VariableDeclaration]:
    statement_comments = leading_comments(source, statement)

    for declarator in node.named_children:
        if declarator.type != "variable_declarator":
            continue

        name_node = declarator.child_by_field_name("name")
        # Destructuring patterns never declare a table
        if name_node is None or name_node.type != "identifier":
            continue

        name = _get_text(source, name_node)
        value_node = declarator.child_by_field_name("value")
        try:
            initializer = lower(source, value_node) if value_node is not None else None
        except RecursionError:
            logger.debug(f"Skipping {name} at line {declarator.start_point[0] + 1}: expression nested too deeply")
            continue

        yield VariableDeclaration(
            name=name,
            initializer=initializer,
            exported=exported,
            line=declarator.start_point[0] + 1,
            statement_comments=statement_comments,
            comments=leading_comments(source, declarator),
        )


def lower(source: bytes, node: TSNode) -> Node:
    """Lower a tree-sitter expression or statement node."""
    handler = _LOWERERS.get(node.type)
    if handler is None:
        return Other(text=_get_text(source, node), line=_line(node), kind=node.type)
    return handler(source, node)


def _lower_identifier(source: bytes, node: TSNode) -> Node:
    text = _get_text(source, node)
    return Identifier(text=text, line=_line(node), name=text)


def _lower_member(source: bytes, node: TSNode) -> Node:
    obj = node.child_by_field_name("object")
    prop = node.child_by_field_name("property")
    if obj is None or prop is None:
        return _other(source, node)
    return MemberAccess(
        text=_get_text(source, node),
        line=_line(node),
        object=lower(source, obj),
        property=_get_text(source, prop),
    )


def _lower_call(source: bytes, node: TSNode) -> Node:
    function = node.child_by_field_name("function")
    if function is None:
        return _other(source, node)

    args = node.child_by_field_name("arguments")
    if args is None:
        arguments = []
    elif args.type == "arguments":
        arguments = [lower(source, arg) for arg in _expressions(args)]
    else:
        # Tagged template: sql`...`
        arguments = [lower(source, args)]

    return Call(
        text=_get_text(source, node),
        line=_line(node),
        callee=lower(source, function),
        arguments=arguments,
    )


_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def _unescape(sequence: str) -> str:
    """Decode one escape sequence such as \\n or \\u0041."""
    body = sequence[1:]
    if body in _ESCAPES:
        return _ESCAPES[body]
    if body.startswith("u") or body.startswith("x"):
        digits = body[1:].strip("{}")
        try:
            return chr(int(digits, 16))
        except ValueError:
            return body
    # Line continuation
    if body.startswith("\n") or body.startswith("\r"):
        return ""
    return body


def _lower_string(source: bytes, node: TSNode) -> Node:
    text = _get_text(source, node)
    parts = []
    for child in node.named_children:
        if child.type == "string_fragment":
            parts.append(_get_text(source, child))
        elif child.type == "escape_sequence":
            parts.append(_unescape(_get_text(source, child)))
    value = "".join(parts) if node.named_children else text[1:-1]
    return StringLiteral(text=text, line=_line(node), value=value)


def _lower_template(source: bytes, node: TSNode) -> Node:
    text = _get_text(source, node)
    substitutions = [
        lower(source, expr)
        for child in node.named_children
        if child.type == "template_substitution"
        for expr in _expressions(child)
    ]
    if not substitutions:
        return StringLiteral(text=text, line=_line(node), value=text[1:-1])
    return TemplateLiteral(text=text, line=_line(node), raw=text[1:-1], substitutions=substitutions)


def _lower_number(source: bytes, node: TSNode) -> Node:
    text = _get_text(source, node)
    digits = text.replace("_", "").rstrip("n")
    try:
        value: int | float = int(digits, 0)
    except ValueError:
        try:
            value = float(digits)
        except ValueError:
            return _other(source, node)
    return NumberLiteral(text=text, line=_line(node), value=value)


def _lower_boolean(source: bytes, node: TSNode) -> Node:
    return BooleanLiteral(text=_get_text(source, node), line=_line(node), value=node.type == "true")


def _lower_array(source: bytes, node: TSNode) -> Node:
    return ArrayLiteral(
        text=_get_text(source, node),
        line=_line(node),
        elements=[lower(source, child) for child in _expressions(node)],
    )


def _lower_object(source: bytes, node: TSNode) -> Node:
    properties = []

    for child in node.named_children:
        if child.type == "pair":
            key_node = child.child_by_field_name("key")
            value_node = child.child_by_field_name("value")
            if key_node is None or value_node is None:
                continue
            key = _property_key(source, key_node)
            value = lower(source, value_node)
        elif child.type == "shorthand_property_identifier":
            key = _get_text(source, child)
            value = Identifier(text=key, line=_line(child), name=key)
        else:
            # Spreads, methods and comments carry no column or relation
            continue

        properties.append(Property(
            text=_get_text(source, child),
            line=_line(child),
            key=key,
            value=value,
            comments=leading_comments(source, child),
        ))

    return ObjectLiteral(text=_get_text(source, node), line=_line(node), properties=properties)


def _property_key(source: bytes, node: TSNode) -> str:
    if node.type == "string":
        return _lower_string(source, node).value
    return _get_text(source, node)


def _lower_function(source: bytes, node: TSNode) -> Node:
    body = node.child_by_field_name("body")
    if body is None:
        return _other(source, node)

    parameters = []
    single = node.child_by_field_name("parameter")
    if single is not None:
        parameters.append(_get_text(source, single))
    else:
        params = node.child_by_field_name("parameters")
        if params is not None:
            for param in _expressions(params):
                pattern = param.child_by_field_name("pattern")
                parameters.append(_get_text(source, pattern if pattern is not None else param))

    return FunctionLiteral(
        text=_get_text(source, node),
        line=_line(node),
        parameters=parameters,
        body=lower(source, body),
    )


def _lower_parenthesized(source: bytes, node: TSNode) -> Node:
    inner = _first_expression(node)
    if inner is None:
        return _other(source, node)
    return Parenthesized(text=_get_text(source, node), line=_line(node), expression=lower(source, inner))


def _lower_block(source: bytes, node: TSNode) -> Node:
    return Block(
        text=_get_text(source, node),
        line=_line(node),
        statements=[lower(source, child) for child in _expressions(node)],
    )


def _lower_return(source: bytes, node: TSNode) -> Node:
    inner = _first_expression(node)
    return ReturnStatement(
        text=_get_text(source, node),
        line=_line(node),
        expression=lower(source, inner) if inner is not None else None,
    )


def _lower_transparent(source: bytes, node: TSNode) -> Node:
    """`x as T`, `x satisfies T` and `x!` lower to `x`."""
    inner = _first_expression(node)
    if inner is None:
        return _other(source, node)
    return lower(source, inner)


_LOWERERS = {
    "identifier": _lower_identifier,
    "member_expression": _lower_member,
    "call_expression": _lower_call,
    "string": _lower_string,
    "template_string": _lower_template,
    "number": _lower_number,
    "true": _lower_boolean,
    "false": _lower_boolean,
    "array": _lower_array,
    "object": _lower_object,
    "arrow_function": _lower_function,
    "function_expression": _lower_function,
    "function": _lower_function,
    "parenthesized_expression": _lower_parenthesized,
    "statement_block": _lower_block,
    "return_statement": _lower_return,
    "as_expression": _lower_transparent,
    "satisfies_expression": _lower_transparent,
    "non_null_expression": _lower_transparent,
}


def leading_comments(source: bytes, node: TSNode) -> list[str]:
    """Raw text of the comments directly preceding a node.

    Comments starting on the line where the previous token ends trail that
    token and are not included.
    """
    comments = []
    sibling = node.prev_sibling
    while sibling is not None and sibling.type == "comment":
        comments.append(sibling)
        sibling = sibling.prev_sibling

    if sibling is not None:
        boundary = sibling.end_point[0]
        comments = [c for c in comments if c.start_point[0] != boundary]

    return [_get_text(source, c) for c in reversed(comments)]


# Queries over lowered nodes

def unwrap(node: Node | None) -> Node | None:
    """Strip any number of enclosing parentheses."""
    while isinstance(node, Parenthesized):
        node = node.expression
    return node


def callee_name(call: Call) -> str | None:
    """Name invoked by a call: `f()` -> f, `a.b.f()` -> f."""
    callee = call.callee
    if isinstance(callee, Identifier):
        return callee.name
    if isinstance(callee, MemberAccess):
        return callee.property
    return None


def walk_call_chain(expr: Node) -> Iterator[tuple[str | None, Call]]:
    """Walk a builder chain from the outermost call inward.

    `integer("id").notNull().primaryKey()` yields ("primaryKey", ...),
    ("notNull", ...), then ("integer", ...). The walk stops at the first
    callee whose object is not itself a call.
    """
    node = unwrap(expr)
    while isinstance(node, Call):
        yield callee_name(node), node
        callee = node.callee
        if not isinstance(callee, MemberAccess):
            return
        node = unwrap(callee.object)


def returned_expression(function: FunctionLiteral) -> Node | None:
    """Expression a function literal returns.

    Handles expression bodies, parenthesized bodies and blocks, where the
    first return statement counts.
    """
    body = unwrap(function.body)
    if isinstance(body, Block):
        for statement in body.statements:
            if isinstance(statement, ReturnStatement):
                return unwrap(statement.expression)
        return None
    return body


def literal_text(node: Node) -> str:
    """Textual value of a literal-ish node, falling back to source text."""
    if isinstance(node, StringLiteral):
        return node.value
    if isinstance(node, Identifier):
        return node.name
    return node.text


def referenced_name(node: Node) -> str | None:
    """Name referenced by a list element: `id`, `users.id`, or `"id"`."""
    node = unwrap(node)
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, MemberAccess):
        return node.property
    if isinstance(node, StringLiteral):
        return node.value
    text = node.text.replace("'", "").replace('"', "")
    return text or None


# Helper functions

def _expressions(node: TSNode) -> list[TSNode]:
    """Named children that are not comments."""
    return [child for child in node.named_children if child.type != "comment"]


def _first_expression(node: TSNode) -> TSNode | None:
    children = _expressions(node)
    return children[0] if children else None


def _other(source: bytes, node: TSNode) -> Node:
    return Other(text=_get_text(source, node), line=_line(node), kind=node.type)


def _line(node: TSNode) -> int:
    return node.start_point[0] + 1


def _get_text(source: bytes, node: TSNode) -> str:
    """Get text for a node."""
    if node is None:
        return ""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
