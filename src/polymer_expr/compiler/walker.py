"""Template traversal and the collect/transform visitors."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional

from polymer_expr.compiler.bindings import (
    BindingOccurrence,
    classify,
    find_bindings,
    has_bindings,
    is_admissible,
    is_literal_binding,
    is_wildcard_path,
    leading_identifier,
    parse_binding,
)
from polymer_expr.compiler.exceptions import ExpressionSyntaxError
from polymer_expr.compiler.expressions import ExpressionNode
from polymer_expr.compiler.markup import (
    RAW_TEXT_ELEMENTS,
    Document,
    Element,
    Node,
    Text,
)
from polymer_expr.compiler.scope import (
    DiagnosticKind,
    TransformScope,
    extract_paths,
    is_repeat_template,
    resolve_iteration_scope,
    root_of,
)
from polymer_expr.compiler.synthesizer import synthesize

logger = logging.getLogger(__name__)

BIND_ROOT_MARKER = "dom-bind"


class BindingVisitor:
    """Base visitor: called once per bindable string under a host template."""

    def start(self, scope: TransformScope) -> None:
        pass

    def __call__(
        self,
        text: str,
        node: Node,
        scope: TransformScope,
        attribute: Optional[str] = None,
    ) -> Optional[str]:
        raise NotImplementedError


def is_host_template(element: Element) -> bool:
    """A top-level template Polymer stamps: no ``is``, or ``is="dom-bind"``."""
    if element.tag != "template":
        return False
    marker = element.get("is")
    return not marker or marker == BIND_ROOT_MARKER


def host_templates(document: Document) -> Iterator[Element]:
    """Yield host templates in document order, skipping nested hosts."""
    stack: List[Iterator[Node]] = [iter(document.children)]
    while stack:
        child = next(stack[-1], None)
        if child is None:
            stack.pop()
            continue
        if isinstance(child, Element):
            if is_host_template(child):
                yield child
            else:
                stack.append(iter(child.children))


class TemplateWalker:
    """Feeds every text node and attribute value under host templates to a visitor."""

    def __init__(self, document: Document) -> None:
        self.document = document

    def walk(self, visitor: BindingVisitor, scope: TransformScope) -> None:
        visitor.start(scope)
        for template in host_templates(self.document):
            for node in template.iter():
                self._visit(node, visitor, scope)

    def _visit(self, node: Node, visitor: BindingVisitor, scope: TransformScope) -> None:
        if isinstance(node, Text):
            parent = node.parent
            if isinstance(parent, Element) and parent.tag in RAW_TEXT_ELEMENTS:
                return
            if not node.data.strip():
                return
            result = visitor(node.data, node, scope)
            if result is not None and result != node.data:
                node.data = result
        elif isinstance(node, Element):
            if is_repeat_template(node):
                return
            for name, value in list(node.attributes.items()):
                if not value:
                    continue
                result = visitor(value, node, scope, attribute=name)
                if result is not None and result != value:
                    node.set_attribute(name, result)


class CollectVisitor(BindingVisitor):
    """First pass: learn which identifiers are component state.

    Declared properties seed the binding set; every admissible two-way
    binding adds its root identifiers. Text is never modified.
    """

    def __init__(self, declared_properties: Iterable[str] = ()) -> None:
        self.declared_properties = list(declared_properties)

    def start(self, scope: TransformScope) -> None:
        scope.bindings.update(self.declared_properties)

    def __call__(
        self,
        text: str,
        node: Node,
        scope: TransformScope,
        attribute: Optional[str] = None,
    ) -> Optional[str]:
        if "{{" not in text:
            return None
        iteration_scope = resolve_iteration_scope(node)
        for occurrence in find_bindings(text, node, attribute):
            if not occurrence.two_way:
                continue
            for root in self._roots(occurrence):
                if root in iteration_scope or scope.is_global(root) or root == "this":
                    continue
                scope.bindings.add(root)
        return None

    def _roots(self, occurrence: BindingOccurrence) -> List[str]:
        try:
            expression = parse_binding(occurrence)
        except ExpressionSyntaxError:
            if is_wildcard_path(occurrence.expression):
                root = leading_identifier(occurrence.expression)
                return [root] if root else []
            return []
        if not is_admissible(classify(expression), two_way=True):
            return []
        return [root_of(path) for path in extract_paths(expression)]


class TransformVisitor(BindingVisitor):
    """Second pass: rewrite non-basic one-way bindings into computed calls."""

    def __call__(
        self,
        text: str,
        node: Node,
        scope: TransformScope,
        attribute: Optional[str] = None,
    ) -> Optional[str]:
        if not has_bindings(text):
            return None

        parts: List[str] = []
        position = 0
        for occurrence in find_bindings(text, node, attribute):
            if occurrence.start < position:
                # Overlaps a binding already handled
                continue
            parts.append(text[position : occurrence.start])
            parts.append(self.process(occurrence, scope))
            position = occurrence.end
        parts.append(text[position:])
        return "".join(parts)

    def process(self, occurrence: BindingOccurrence, scope: TransformScope) -> str:
        """Return the text that should stand in for ``occurrence``."""
        expression = self._parse(occurrence, scope)
        if expression is None:
            return occurrence.match

        kind = classify(expression)
        if is_admissible(kind, occurrence.two_way):
            return occurrence.match

        if occurrence.two_way:
            scope.report(
                DiagnosticKind.TWO_WAY_NOT_ADMISSIBLE,
                f"Complex expression {occurrence.match} is not allowed in a "
                "two-way binding; use a property path or [[...]]",
                occurrence.expression,
            )
            return occurrence.match

        call = synthesize(occurrence.expression, expression, occurrence.node, scope)
        logger.debug(f"{occurrence.match} -> [[{call}]]")
        return occurrence.render(call)

    def _parse(
        self, occurrence: BindingOccurrence, scope: TransformScope
    ) -> Optional[ExpressionNode]:
        try:
            return parse_binding(occurrence)
        except ExpressionSyntaxError as e:
            # Not a valid expression, try to validate in other ways
            if not is_literal_binding(occurrence):
                scope.report(
                    DiagnosticKind.INVALID_EXPRESSION,
                    f"Invalid data binding expression {occurrence.match}: {e.message}",
                    occurrence.expression,
                )
            return None
