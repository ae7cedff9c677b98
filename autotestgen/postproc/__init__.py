"""Post-processing for generated test files."""

from .cleaner import FROZEN_PRAGMA, ResponsePostProcessor, strip_fences
from .syntax import RubySyntaxChecker, SyntaxIssue

__all__ = [
    "FROZEN_PRAGMA",
    "ResponsePostProcessor",
    "RubySyntaxChecker",
    "SyntaxIssue",
    "strip_fences",
]
