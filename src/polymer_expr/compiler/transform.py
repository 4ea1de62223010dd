"""Main binding transform orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from polymer_expr.compiler.exceptions import MissingDeclarationError
from polymer_expr.compiler.markup import parse_markup, serialize
from polymer_expr.compiler.scope import (
    Diagnostic,
    DiagnosticKind,
    FunctionDefinition,
    TransformScope,
)
from polymer_expr.compiler.script import inject_functions, locate_declaration
from polymer_expr.compiler.walker import CollectVisitor, TemplateWalker, TransformVisitor
from polymer_expr.config import TransformOptions

logger = logging.getLogger(__name__)

MODULE_TAG = "dom-module"


@dataclass
class TransformResult:
    text: str
    module_id: Optional[str] = None
    functions: List[FunctionDefinition] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.functions)


class BindingTransformer:
    """Rewrites complex bindings of one document into computed bindings."""

    def __init__(self, options: Optional[TransformOptions] = None) -> None:
        self.options = options or TransformOptions()

    def transform(self, html: str, file_path: str = "") -> TransformResult:
        """Transform one markup document.

        Raises:
            MissingDeclarationError: in strict mode, when bindings were
                synthesized but no declaration call exists.
        """
        document = parse_markup(html)

        module = document.find(MODULE_TAG)
        module_id = module.get("id") if module is not None else None
        if not module_id:
            logger.debug(f"{file_path or '<input>'}: no <dom-module id=...>, skipping")
            return TransformResult(text=html)

        scope = TransformScope.create(
            module_id,
            extra_globals=self.options.globals,
            function_prefix=self.options.function_prefix,
            separator=self.options.separator,
            file_path=file_path,
        )

        declaration = locate_declaration(document, self.options.register)
        declared = declaration.properties if declaration is not None else []

        walker = TemplateWalker(document)
        walker.walk(CollectVisitor(declared), scope)
        walker.walk(TransformVisitor(), scope)

        if scope.functions:
            if declaration is not None:
                inject_functions(declaration, scope)
            elif self.options.strict:
                raise MissingDeclarationError(
                    module_id, len(scope.functions), self.options.register
                )
            else:
                scope.report(
                    DiagnosticKind.MISSING_DECLARATION,
                    f"No {self.options.register}({{...}}) declaration for "
                    f"<dom-module id=\"{module_id}\">; "
                    f"{len(scope.functions)} computed binding(s) were not injected",
                )

        return TransformResult(
            text=serialize(document),
            module_id=module_id,
            functions=list(scope.functions.values()),
            diagnostics=list(scope.diagnostics),
        )


def transform(html: str, options: Optional[TransformOptions] = None) -> str:
    """Transform markup text and return the rewritten text."""
    return BindingTransformer(options).transform(html).text
