"""Exceptions raised by the binding compiler."""

from typing import Optional


class PolymerExprError(Exception):
    """Base class for all polymer-expr errors."""


class ExpressionSyntaxError(PolymerExprError):
    """Binding text is not an expression the classifier understands."""

    def __init__(
        self, message: str, expression: str = "", offset: Optional[int] = None
    ) -> None:
        self.message = message
        self.expression = expression
        self.offset = offset
        super().__init__(self._format())

    def _format(self) -> str:
        if not self.expression:
            return self.message
        if self.offset is None:
            return f"{self.message}: {self.expression!r}"
        return f"{self.message} at offset {self.offset}: {self.expression!r}"


class MissingDeclarationError(PolymerExprError):
    """Functions were synthesized but there is no declaration to hold them."""

    def __init__(self, module_id: str, functions: int, register: str = "Polymer") -> None:
        self.module_id = module_id
        self.functions = functions
        super().__init__(
            f"<dom-module id=\"{module_id}\"> needs {functions} synthesized "
            f"binding function(s) but no {register}({{...}}) declaration was found"
        )


class StreamingNotSupportedError(PolymerExprError):
    """Raised for source files whose contents are an unbuffered stream."""

    def __init__(self, file_path: str = "") -> None:
        self.file_path = file_path
        super().__init__("Streaming not supported")


class PluginError(PolymerExprError):
    """A failure while processing a single source file."""

    def __init__(self, message: str, file_path: str = "") -> None:
        self.message = message
        self.file_path = file_path
        location = f"{file_path}: " if file_path else ""
        super().__init__(f"{location}{message}")
