"""Component declaration lookup and computed-binding injection."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from tree_sitter import Node as TSNode, Parser

from polymer_expr.compiler.expressions import JAVASCRIPT
from polymer_expr.compiler.markup import Document, Element, Text
from polymer_expr.compiler.scope import DiagnosticKind, TransformScope

logger = logging.getLogger(__name__)

DEFAULT_REGISTER = "Polymer"
INJECTION_HEADER = "//### auto-generated *Computed Bindings*"
INJECTION_FOOTER = "//###"


@dataclass
class Declaration:
    """A ``Polymer({...})`` call found inside a ``<script>`` block."""

    script: Element
    text: Text
    insert_at: int  # byte offset just past the object literal's "{"
    component_id: Optional[str] = None
    properties: List[str] = field(default_factory=list)
    has_errors: bool = False


def declaration_pattern(register: str = DEFAULT_REGISTER) -> "re.Pattern[str]":
    return re.compile(rf"{re.escape(register)}\s*\(\s*\{{")


def locate_declaration(
    document: Document, register: str = DEFAULT_REGISTER
) -> Optional[Declaration]:
    """Find the component declaration in the first matching ``<script>``."""
    pattern = declaration_pattern(register)
    for script in document.find_all("script"):
        if not script.children or not isinstance(script.children[0], Text):
            continue
        text = script.children[0]
        if not pattern.search(text.data):
            continue
        declaration = _parse_declaration(script, text, register)
        if declaration is not None:
            return declaration
    return None


def _parse_declaration(
    script: Element, text: Text, register: str
) -> Optional[Declaration]:
    source = text.data.encode("utf-8")
    tree = Parser(JAVASCRIPT).parse(source)
    call = _find_register_call(tree.root_node, register)
    if call is None:
        logger.debug(f"No {register}({{...}}) call in script despite textual match")
        return None

    prototype = _first_argument(call)
    if prototype is None:
        return None
    return Declaration(
        script=script,
        text=text,
        insert_at=prototype.start_byte + 1,
        component_id=_string_property(prototype, "is"),
        properties=_declared_properties(prototype),
        has_errors=tree.root_node.has_error,
    )


def _walk(root: TSNode) -> Iterator[TSNode]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.named_children))


def _first_argument(call: TSNode) -> Optional[TSNode]:
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return None
    named = [a for a in args.named_children if a.type != "comment"]
    if named and named[0].type == "object":
        return named[0]
    return None


def _find_register_call(root: TSNode, register: str) -> Optional[TSNode]:
    for node in _walk(root):
        if node.type != "call_expression":
            continue
        callee = node.child_by_field_name("function")
        if callee is None or callee.type != "identifier":
            continue
        if _text(callee) == register and _first_argument(node) is not None:
            return node
    return None


def _text(node: TSNode) -> str:
    return (node.text or b"").decode("utf-8")


def _key_name(key: TSNode) -> Optional[str]:
    if key.type in ("property_identifier", "number"):
        return _text(key)
    if key.type == "string":
        return _text(key)[1:-1]
    return None


def _pairs(obj: TSNode) -> Iterator[Tuple[str, Optional[TSNode]]]:
    for child in obj.named_children:
        if child.type == "pair":
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            name = _key_name(key) if key is not None else None
            if name is not None:
                yield name, value
        elif child.type == "shorthand_property_identifier":
            yield _text(child), None


def _string_property(obj: TSNode, name: str) -> Optional[str]:
    for key, value in _pairs(obj):
        if key == name and value is not None and value.type == "string":
            return _text(value)[1:-1]
    return None


def _declared_properties(obj: TSNode) -> List[str]:
    for key, value in _pairs(obj):
        if key == "properties" and value is not None and value.type == "object":
            return [name for name, _ in _pairs(value)]
    return []


def render_injection(scope: TransformScope) -> str:
    lines = [INJECTION_HEADER]
    lines.extend(definition.to_property() for definition in scope.functions.values())
    lines.append(INJECTION_FOOTER)
    return "\n" + "\n".join(lines) + "\n"


def inject_functions(declaration: Declaration, scope: TransformScope) -> None:
    """Insert the synthesized functions as leading declaration properties."""
    if declaration.has_errors:
        scope.report(
            DiagnosticKind.SCRIPT_SYNTAX,
            f"Declaration script of <dom-module id=\"{scope.module_id}\"> "
            "contains syntax errors",
        )

    if declaration.component_id != scope.module_id:
        # make sure it's the correct Polymer factory
        scope.report(
            DiagnosticKind.MODULE_MISMATCH,
            f"Unexpected DOM module: {scope.module_id} with Polymer component: "
            f"{declaration.component_id}",
        )

    if not scope.functions:
        return

    source = declaration.text.data.encode("utf-8")
    offset = declaration.insert_at
    injected = render_injection(scope).encode("utf-8")
    declaration.text.data = (source[:offset] + injected + source[offset:]).decode(
        "utf-8"
    )
    logger.debug(
        f"Injected {len(scope.functions)} computed binding(s) into "
        f"<dom-module id=\"{scope.module_id}\">"
    )
