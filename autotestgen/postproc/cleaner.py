"""Cleans raw model output into a test file body."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from ..logging import get_logger
from ..models import FileKind, Framework
from .syntax import RubySyntaxChecker

FROZEN_PRAGMA = "# frozen_string_literal: true"

# Tokens that show the generated test exercises the web framework itself.
FRAMEWORK_INDICATORS: Sequence[str] = (
    "Rails",
    "ApplicationRecord",
    "ActionController",
    "ActionMailer",
    "should validate_",
    "shoulda-matchers",
    "ActiveRecord",
    "have_db_column",
    "have_many",
    "belong_to",
    "validates_",
)

_FENCE_LINE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*$")
_BARE_FENCE = re.compile(r"^[ \t]*```[ \t]*$")
# First tokens of a response that already is Ruby rather than prose.
_CODE_START = re.compile(
    r"\A(?:#\s*frozen_string_literal|require(?:_relative)?\b|RSpec\b|describe\b|context\b"
    r"|shared_examples\b|class\b|module\b|def\b)"
)


class ResponsePostProcessor:
    """Strips fences, injects missing headers and runs a non-blocking syntax check."""

    def __init__(
        self,
        framework: Framework = Framework.RSPEC,
        *,
        syntax_checker: RubySyntaxChecker | None = None,
    ) -> None:
        self.framework = framework
        self.syntax_checker = syntax_checker if syntax_checker is not None else RubySyntaxChecker()
        self.logger = get_logger("postproc")

    def clean(self, raw: str | None, kind: FileKind) -> Optional[str]:
        """Return the final test text, or ``None`` when there is nothing to write."""
        if raw is None or not raw.strip():
            return None
        body = strip_fences(raw)
        if not body:
            return None
        content = self.add_required_headers(body, kind)
        self.check_syntax(content)
        return content

    def add_required_headers(self, content: str, kind: FileKind) -> str:
        headers: List[str] = []
        if "frozen_string_literal" not in content:
            headers.append(FROZEN_PRAGMA)
        helper = self.support_file_for(content, kind)
        if helper is not None:
            headers.append(f"require '{helper}'")
        if not headers:
            return content
        return "\n\n".join([*headers, content])

    def support_file_for(self, content: str, kind: FileKind) -> Optional[str]:
        """Name of the helper to require, or ``None`` when one is already referenced."""
        if self.framework is Framework.MINITEST:
            return None if "test_helper" in content else "test_helper"
        if "rails_helper" in content or "spec_helper" in content:
            return None
        if kind.is_framework_integrated or self.mentions_framework(content):
            return "rails_helper"
        return "spec_helper"

    @staticmethod
    def mentions_framework(content: str) -> bool:
        return any(indicator in content for indicator in FRAMEWORK_INDICATORS)

    def check_syntax(self, content: str) -> bool:
        """Warn about a likely syntax error; never raises and never alters content."""
        issue = self.syntax_checker.check(content)
        if issue is None:
            return True
        self.logger.warning("Possible syntax error in generated test at %s", issue.describe())
        return False


def strip_fences(text: str) -> str:
    """Remove the fence pair wrapping a response.

    Fences inside the code (a heredoc holding Markdown, say) are kept. When
    the model puts prose around the block, only the block is returned.
    """
    lines = text.strip().splitlines()
    if not lines:
        return ""
    if _FENCE_LINE.match(lines[0]):
        opening = 0
    elif _CODE_START.match(lines[0]) or not any(_FENCE_LINE.match(line) for line in lines):
        if _BARE_FENCE.match(lines[-1]):
            lines = lines[:-1]
        return "\n".join(lines).strip()
    else:
        opening = next(index for index, line in enumerate(lines) if _FENCE_LINE.match(line))
        if opening == len(lines) - 1:
            return "\n".join(lines[:-1]).strip()
    closing = max(
        (index for index in range(opening + 1, len(lines)) if _BARE_FENCE.match(lines[index])),
        default=len(lines),
    )
    return "\n".join(lines[opening + 1 : closing]).strip()


__all__ = ["FRAMEWORK_INDICATORS", "FROZEN_PRAGMA", "ResponsePostProcessor", "strip_fences"]
