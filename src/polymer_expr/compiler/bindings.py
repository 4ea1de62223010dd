"""Binding occurrence scanning and classification.

Polymer only evaluates a restricted set of binding forms natively:

* a property or sub-property path (``users``, ``address.street``)
* a computed binding (``_computeName(firstName, lastName)``)
* either of the above negated with ``!``

See https://polymer-library.polymer-project.org/1.0/docs/devguide/data-binding
"""

from __future__ import annotations

import enum
import html
import json
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from polymer_expr.compiler.expressions import (
    CallExpression,
    Expression,
    ExpressionNode,
    Identifier,
    MemberExpression,
    UnaryExpression,
    parse_expression,
)
from polymer_expr.compiler.markup import Node, Text

# The closing delimiter binds to the last bracket of a run: [[a[0]]] -> a[0]
ONE_WAY_BINDING = re.compile(r"\[\[(.+?)\]\](?!\])")
TWO_WAY_BINDING = re.compile(r"\{\{(.+?)\}\}(?!\})")

# Wildcard or array item accessor: items.*, items.0
WILDCARD_OR_ARRAY_ITEM = re.compile(r"\.[*0-9]")
LEADING_IDENTIFIER = re.compile(r"\s*([A-Za-z_$][\w$]*)")

EVENT_SEPARATOR = "::"


class BindingKind(enum.Enum):
    PROPERTY_PATH = "property-path"
    COMPUTED_CALL = "computed-call"
    NEGATED_PROPERTY_PATH = "negated-property-path"
    OTHER = "other"


ONE_WAY_KINDS: FrozenSet[BindingKind] = frozenset(
    {
        BindingKind.PROPERTY_PATH,
        BindingKind.COMPUTED_CALL,
        BindingKind.NEGATED_PROPERTY_PATH,
    }
)

# A writable binding cannot target a call result
TWO_WAY_KINDS: FrozenSet[BindingKind] = frozenset(
    {BindingKind.PROPERTY_PATH, BindingKind.NEGATED_PROPERTY_PATH}
)


@dataclass
class BindingOccurrence:
    """A delimited binding inside a text node or attribute value."""

    match: str
    expression: str
    two_way: bool
    start: int
    end: int
    node: Optional[Node] = None
    attribute: Optional[str] = None
    event: Optional[str] = None

    @property
    def delimiters(self) -> Tuple[str, str]:
        return ("{{", "}}") if self.two_way else ("[[", "]]")

    def render(self, expression: str) -> str:
        """Wrap a replacement expression in this occurrence's delimiters."""
        opening, closing = self.delimiters
        suffix = f"{EVENT_SEPARATOR}{self.event}" if self.event else ""
        return f"{opening}{expression}{suffix}{closing}"


def find_bindings(
    text: str, node: Optional[Node] = None, attribute: Optional[str] = None
) -> List[BindingOccurrence]:
    """Find every one-way and two-way binding in ``text``, in order."""
    occurrences = []
    for pattern, two_way in ((ONE_WAY_BINDING, False), (TWO_WAY_BINDING, True)):
        for match in pattern.finditer(text):
            inner = match.group(1)
            event = None
            if two_way and EVENT_SEPARATOR in inner:
                inner, event = inner.rsplit(EVENT_SEPARATOR, 1)
            if isinstance(node, Text):
                # Text nodes hold raw markup; attribute values are decoded
                inner = html.unescape(inner)
            occurrences.append(
                BindingOccurrence(
                    match=match.group(0),
                    expression=inner,
                    two_way=two_way,
                    start=match.start(),
                    end=match.end(),
                    node=node,
                    attribute=attribute,
                    event=event,
                )
            )
    occurrences.sort(key=lambda o: o.start)
    return occurrences


def has_bindings(text: str) -> bool:
    return "[[" in text or "{{" in text


def is_property_path(expression: Expression) -> bool:
    """A property or sub-property path (``users``, ``address.street``)."""
    if isinstance(expression, Identifier):
        return True
    if isinstance(expression, MemberExpression):
        return (
            not expression.computed
            and not expression.optional
            and is_property_path(expression.object)
        )
    return False


def is_computed_call(expression: Expression) -> bool:
    """A computed binding (``_computeName(firstName, lastName, locale)``)."""
    return isinstance(expression, CallExpression) and isinstance(
        expression.callee, Identifier
    )


def is_negated(expression: Expression) -> bool:
    return (
        isinstance(expression, UnaryExpression)
        and expression.operator == "!"
        and (
            is_property_path(expression.argument)
            or is_computed_call(expression.argument)
        )
    )


def classify(expression: ExpressionNode) -> BindingKind:
    if is_property_path(expression):
        return BindingKind.PROPERTY_PATH
    if is_computed_call(expression):
        return BindingKind.COMPUTED_CALL
    if is_negated(expression):
        return BindingKind.NEGATED_PROPERTY_PATH
    return BindingKind.OTHER


def is_admissible(kind: BindingKind, two_way: bool = False) -> bool:
    return kind in (TWO_WAY_KINDS if two_way else ONE_WAY_KINDS)


def is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def is_wildcard_path(text: str) -> bool:
    return WILDCARD_OR_ARRAY_ITEM.search(text) is not None


def is_literal_binding(occurrence: BindingOccurrence) -> bool:
    """Unparseable binding text that is still legitimate as written."""
    return (
        is_valid_json(occurrence.expression)
        or is_valid_json(occurrence.match)
        or is_wildcard_path(occurrence.expression)
    )


def leading_identifier(text: str) -> Optional[str]:
    match = LEADING_IDENTIFIER.match(text)
    return match.group(1) if match else None


def parse_binding(occurrence: BindingOccurrence) -> ExpressionNode:
    """Parse an occurrence's expression text (surrounding space ignored)."""
    return parse_expression(occurrence.expression.strip())
