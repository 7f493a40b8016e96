from __future__ import annotations

# Runtime package version, provided by setuptools_scm during build.
try:
    # created at build time by setuptools_scm (see [tool.setuptools_scm].version_file)
    from ._version import __version__
except ImportError:  # pragma: no cover
    # fallback for editable installs / missing file
    try:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as _pkg_version

        __version__ = _pkg_version("wavexpr")
    except PackageNotFoundError:
        __version__ = "0.0.0"

from .api import (
    CancelledError,
    CompiledExpression,
    EvaluationError,
    ExpressionMode,
    FormulaContext,
    LibraryError,
    LiveExpression,
    ParseError,
    WavexprError,
    apply_expression,
    apply_multi_frame,
    apply_single_frame,
    compile_expr,
    evaluate,
    expression_mode,
    uses_frame_variables,
)
from .core.config import EngineConfig
from .library import FormulaEntry, FormulaLibrary

__all__ = [
    "CancelledError",
    "CompiledExpression",
    "EngineConfig",
    "EvaluationError",
    "ExpressionMode",
    "FormulaContext",
    "FormulaEntry",
    "FormulaLibrary",
    "LibraryError",
    "LiveExpression",
    "ParseError",
    "WavexprError",
    "__version__",
    "apply_expression",
    "apply_multi_frame",
    "apply_single_frame",
    "compile_expr",
    "evaluate",
    "expression_mode",
    "uses_frame_variables",
]
