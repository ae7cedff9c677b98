"""Best-effort Ruby syntax check backed by tree-sitter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import tree_sitter_ruby
from tree_sitter import Language, Node, Parser


@dataclass(frozen=True)
class SyntaxIssue:
    """First parse error found in a document."""

    line: int
    column: int
    snippet: str

    def describe(self) -> str:
        return f"line {self.line}, column {self.column}: {self.snippet!r}"


class RubySyntaxChecker:
    """Parses Ruby source and reports the first error node, if any."""

    def __init__(self) -> None:
        self.language = Language(tree_sitter_ruby.language())
        self.parser = Parser(self.language)

    def check(self, source: str) -> Optional[SyntaxIssue]:
        source_bytes = source.encode("utf-8")
        tree = self.parser.parse(source_bytes)
        if not tree.root_node.has_error:
            return None
        node = self._first_error(tree.root_node) or tree.root_node
        row, column = node.start_point
        snippet = source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")
        return SyntaxIssue(line=row + 1, column=column + 1, snippet=snippet.splitlines()[0] if snippet else "")

    def _first_error(self, node: Node) -> Optional[Node]:
        if node.type == "ERROR" or node.is_missing:
            return node
        for child in node.children:
            if child.has_error:
                found = self._first_error(child)
                if found is not None:
                    return found
        return None


__all__ = ["RubySyntaxChecker", "SyntaxIssue"]
