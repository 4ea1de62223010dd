"""Per-run transform state and identifier resolution."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from polymer_expr.compiler.expressions import (
    ArrayExpression,
    BinaryExpression,
    CallExpression,
    ConditionalExpression,
    Expression,
    Identifier,
    LogicalExpression,
    MemberExpression,
    ThisExpression,
    UnaryExpression,
)
from polymer_expr.compiler.markup import Element, Node

logger = logging.getLogger(__name__)

# Binding expressions are sand-boxed and only see these globals by default
SANDBOX_GLOBALS: FrozenSet[str] = frozenset(
    {
        "Array",
        "Date",
        "JSON",
        "Math",
        "NaN",
        "RegExp",
        "decodeURI",
        "decodeURIComponent",
        "encodeURI",
        "encodeURIComponent",
        "isFinite",
        "isNaN",
        "null",
        "parseFloat",
        "parseInt",
        "undefined",
    }
)

REPEAT_MARKER = "dom-repeat"
DEFAULT_ITEM_NAME = "item"
DEFAULT_INDEX_NAME = "index"


class DiagnosticKind(enum.Enum):
    INVALID_EXPRESSION = "invalid-expression"
    TWO_WAY_NOT_ADMISSIBLE = "two-way-not-admissible"
    UNRESOLVED_IDENTIFIER = "unresolved-identifier"
    MODULE_MISMATCH = "module-mismatch"
    MISSING_DECLARATION = "missing-declaration"
    SCRIPT_SYNTAX = "script-syntax"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    expression: str = ""


@dataclass(frozen=True)
class FunctionDefinition:
    """A synthesized pure function, kept as data until injection."""

    name: str
    parameters: Tuple[str, ...]
    body: str

    def to_source(self) -> str:
        """Render as a JavaScript function declaration."""
        params = ",".join(self.parameters)
        return f"function {self.name}({params}){{ return {self.body}; }}"

    def to_property(self) -> str:
        """Render as an object-literal entry for the component declaration."""
        return f"'{self.name}': {self.to_source()},"


@dataclass(frozen=True)
class PathReference:
    """One occurrence of a dotted identifier path inside an expression."""

    path: str
    start: int
    end: int

    @property
    def root(self) -> str:
        return root_of(self.path)


@dataclass
class TransformScope:
    """Mutable state for a single transform invocation.

    Created once per document and threaded through both walker passes.
    """

    module_id: str
    globals: FrozenSet[str] = SANDBOX_GLOBALS
    function_prefix: str = "__c_"
    separator: str = "__"
    counter: int = 0
    bindings: Set[str] = field(default_factory=set)
    functions: Dict[str, FunctionDefinition] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    file_path: str = ""

    @classmethod
    def create(
        cls, module_id: str, extra_globals: Iterable[str] = (), **kwargs
    ) -> "TransformScope":
        return cls(
            module_id=module_id,
            globals=SANDBOX_GLOBALS | frozenset(extra_globals),
            **kwargs,
        )

    def next_function_name(self) -> str:
        name = f"{self.function_prefix}{self.counter}"
        self.counter += 1
        return name

    def add_function(self, definition: FunctionDefinition) -> None:
        self.functions[definition.name] = definition

    def is_bound(self, identifier: str) -> bool:
        return identifier in self.bindings

    def is_global(self, identifier: str) -> bool:
        return is_global(identifier, self.globals)

    def report(
        self, kind: DiagnosticKind, message: str, expression: str = ""
    ) -> Diagnostic:
        """Record and log a non-fatal diagnostic."""
        diagnostic = Diagnostic(kind=kind, message=message, expression=expression)
        self.diagnostics.append(diagnostic)
        location = f"{self.file_path}: " if self.file_path else ""
        logger.warning(f"{location}{message}")
        return diagnostic


def is_global(identifier: str, extra_globals: Iterable[str] = ()) -> bool:
    """Return True for sandbox globals or configured extra globals."""
    return identifier in SANDBOX_GLOBALS or identifier in extra_globals


def root_of(path: str) -> str:
    return path.split(".", 1)[0]


def resolve_iteration_scope(node: Optional[Node]) -> FrozenSet[str]:
    """Collect item/index names contributed by enclosing dom-repeat templates.

    The node itself counts when it is a repeat template. Nested repeats
    simply union their names.
    """
    names: Set[str] = set()
    current = node
    while current is not None:
        if isinstance(current, Element) and is_repeat_template(current):
            names.add(current.get("as") or DEFAULT_ITEM_NAME)
            names.add(
                current.get("index-as") or current.get("indexas") or DEFAULT_INDEX_NAME
            )
        current = current.parent
    return frozenset(names)


def is_repeat_template(node: Node) -> bool:
    return (
        isinstance(node, Element)
        and node.tag == "template"
        and node.get("is") == REPEAT_MARKER
    )


def member_path(expression: Expression) -> Optional[str]:
    """Collapse a plain member chain (``a.b.c``) into its dotted path.

    Returns None for anything that is not an identifier, ``this``, or a
    non-computed, non-optional member chain over one of those.
    """
    if isinstance(expression, Identifier):
        return expression.name
    if isinstance(expression, ThisExpression):
        return "this"
    if (
        isinstance(expression, MemberExpression)
        and not expression.computed
        and not expression.optional
    ):
        head = member_path(expression.object)
        if head is not None:
            return f"{head}.{expression.property_name}"
    return None


def path_references(expression: Expression) -> List[PathReference]:
    """Every dotted-path occurrence in ``expression``, in source order."""
    references: List[PathReference] = []
    _collect_references(expression, references)
    return references


def extract_paths(expression: Expression) -> List[str]:
    """Ordered, de-duplicated dotted paths referenced anywhere in the AST."""
    seen: Dict[str, None] = {}
    for reference in path_references(expression):
        seen.setdefault(reference.path, None)
    return list(seen)


def _collect_references(expression: Expression, out: List[PathReference]) -> None:
    path = member_path(expression)
    if path is not None:
        if path != "this":
            out.append(PathReference(path, expression.start, expression.end))
        return

    if isinstance(expression, MemberExpression):
        _collect_references(expression.object, out)
        if expression.index is not None:
            _collect_references(expression.index, out)
    elif isinstance(expression, CallExpression):
        callee = expression.callee
        if isinstance(callee, MemberExpression) and not callee.computed:
            # Keep the method on its receiver: items.indexOf(x) -> items
            _collect_references(callee.object, out)
        else:
            _collect_references(callee, out)
        for argument in expression.arguments:
            _collect_references(argument, out)
    elif isinstance(expression, UnaryExpression):
        _collect_references(expression.argument, out)
    elif isinstance(expression, (BinaryExpression, LogicalExpression)):
        _collect_references(expression.left, out)
        _collect_references(expression.right, out)
    elif isinstance(expression, ConditionalExpression):
        _collect_references(expression.test, out)
        _collect_references(expression.consequent, out)
        _collect_references(expression.alternate, out)
    elif isinstance(expression, ArrayExpression):
        for element in expression.elements:
            _collect_references(element, out)
