"""Computed-binding synthesis for complex expressions."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Tuple

from polymer_expr.compiler.expressions import ExpressionNode
from polymer_expr.compiler.markup import Node
from polymer_expr.compiler.scope import (
    DiagnosticKind,
    FunctionDefinition,
    PathReference,
    TransformScope,
    path_references,
    resolve_iteration_scope,
)


def flatten_path(path: str, separator: str = "__") -> str:
    """``foo.bar.baz`` -> ``foo__bar__baz``"""
    return path.replace(".", separator)


def rename_paths(
    text: str, replacements: List[Tuple[PathReference, str]]
) -> str:
    """Replace each referenced span of ``text`` with its new name.

    Spans are UTF-8 byte offsets, so the edit happens on the encoded text.
    """
    data = text.encode("utf-8")
    for reference, name in sorted(
        replacements, key=lambda r: r[0].start, reverse=True
    ):
        data = data[: reference.start] + name.encode("utf-8") + data[reference.end :]
    return data.decode("utf-8")


def parameter_names(
    paths: Iterable[str], separator: str = "__", reserved: Iterable[str] = ()
) -> Dict[str, str]:
    """Map each kept path to a unique parameter name, in first-seen order.

    Bare identifiers keep their own name. Dotted paths are flattened and
    suffixed (``a__b_1``) when the flat name is already taken by another
    parameter or by a ``reserved`` name left free in the body.
    """
    paths = list(paths)
    taken = set(reserved)
    taken.update(path for path in paths if "." not in path)

    names: Dict[str, str] = {}
    for path in paths:
        if path in names:
            continue
        if "." not in path:
            names[path] = path
            continue
        flat = candidate = flatten_path(path, separator)
        suffix = 1
        while candidate in taken:
            candidate = f"{flat}_{suffix}"
            suffix += 1
        taken.add(candidate)
        names[path] = candidate
    return names


def synthesize(
    text: str,
    expression: ExpressionNode,
    node: Optional[Node],
    scope: TransformScope,
) -> str:
    """Replace a complex binding with a call to a generated pure function.

    Paths rooted in component state (the scope's bindings) or in an
    enclosing repeat become parameters; everything else is left in the body
    as a global. The function is stored on ``scope`` and the call-site text
    (``__c_N(a,b.c)``) is returned.
    """
    text = text.strip()
    iteration_scope = resolve_iteration_scope(node)

    kept: List[PathReference] = []
    free: Set[str] = set()
    unresolved: Dict[str, None] = {}

    for reference in path_references(expression):
        root = reference.root
        if scope.is_bound(root) or root in iteration_scope:
            kept.append(reference)
            continue
        free.add(root)
        if root != "this" and not scope.is_global(root):
            unresolved.setdefault(root, None)

    for root in unresolved:
        scope.report(
            DiagnosticKind.UNRESOLVED_IDENTIFIER,
            f"'{root}' in [[{text}]] is neither a declared property nor a "
            f"repeat variable of <dom-module id=\"{scope.module_id}\">; "
            "treating it as a global",
            text,
        )

    params = parameter_names(
        (reference.path for reference in kept), scope.separator, reserved=free
    )
    renames = [(reference, params[reference.path]) for reference in kept]

    name = scope.next_function_name()
    scope.add_function(
        FunctionDefinition(
            name=name,
            parameters=tuple(params.values()),
            body=rename_paths(text, renames),
        )
    )
    return f"{name}({','.join(params)})"
