"""Transform configuration."""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class TransformOptions:
    """Options for a binding transform.

    Args:
        globals: Extra identifiers treated as sandbox globals, on top of the
            built-in allow-list (Math, Date, JSON...).
        register: Name of the component registration function.
        function_prefix: Prefix of synthesized function names.
        separator: Replaces "." when a path becomes a parameter name.
        strict: Fail the transform when bindings were synthesized but the
            document has no declaration to receive them. When False the
            problem is only reported and the call sites stay unresolved.
    """

    globals: Tuple[str, ...] = field(default_factory=tuple)
    register: str = "Polymer"
    function_prefix: str = "__c_"
    separator: str = "__"
    strict: bool = True

    def __post_init__(self) -> None:
        # Accept any iterable of names (lists from callers, tuples from click)
        object.__setattr__(self, "globals", tuple(self.globals))
        if not self.function_prefix.isidentifier():
            raise ValueError(
                f"function_prefix must be a valid identifier, got {self.function_prefix!r}"
            )
        if not self.separator or "." in self.separator:
            raise ValueError(f"Invalid path separator {self.separator!r}")
