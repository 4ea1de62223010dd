from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("polymer-expr")
except PackageNotFoundError:
    __version__ = "unknown"

from polymer_expr.compiler.exceptions import (
    ExpressionSyntaxError,
    MissingDeclarationError,
    PluginError,
    PolymerExprError,
    StreamingNotSupportedError,
)
from polymer_expr.compiler.transform import (
    BindingTransformer,
    TransformResult,
    transform,
)
from polymer_expr.config import TransformOptions
from polymer_expr.pipeline import (
    ProcessedFile,
    SourceFile,
    load_source_files,
    process_file,
    process_files,
)

__all__ = [
    "BindingTransformer",
    "TransformOptions",
    "TransformResult",
    "transform",
    "SourceFile",
    "ProcessedFile",
    "process_file",
    "process_files",
    "load_source_files",
    "PolymerExprError",
    "ExpressionSyntaxError",
    "MissingDeclarationError",
    "StreamingNotSupportedError",
    "PluginError",
]
