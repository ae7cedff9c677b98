"""Core data models shared across autotestgen components."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class FileKind(str, Enum):
    """Architectural role of a source file, derived from its location."""

    MODEL = "model"
    CONTROLLER = "controller"
    JOB = "job"
    SERVICE = "service"
    HELPER = "helper"
    MAILER = "mailer"
    LIBRARY = "library"
    UNKNOWN = "unknown"

    @property
    def is_framework_integrated(self) -> bool:
        """Whether tests for this kind need the full application loaded."""
        return self in _FRAMEWORK_KINDS

    @classmethod
    def parse(cls, value: str) -> "FileKind":
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


_FRAMEWORK_KINDS = frozenset(
    {
        FileKind.MODEL,
        FileKind.CONTROLLER,
        FileKind.JOB,
        FileKind.SERVICE,
        FileKind.HELPER,
        FileKind.MAILER,
    }
)


class Framework(str, Enum):
    """Supported test frameworks and their on-disk conventions."""

    RSPEC = "rspec"
    MINITEST = "minitest"

    @property
    def test_root(self) -> str:
        return "spec" if self is Framework.RSPEC else "test"

    @property
    def test_suffix(self) -> str:
        return "_spec" if self is Framework.RSPEC else "_test"


@dataclass(frozen=True)
class SourceFile:
    """Snapshot of a source file taken at generation time."""

    path: Path
    content: str
    kind: FileKind


@dataclass(frozen=True)
class PromptTemplate:
    """System and user messages for one file kind.

    The user message may reference the ``code`` and ``context`` placeholders.
    """

    system: str
    user: str


@dataclass(frozen=True)
class RenderedPrompt:
    """Chat messages ready to send to a generation backend."""

    system: str
    user: str


@dataclass
class GeneratedTest:
    """Cleaned test content and where it belongs."""

    source: Path
    kind: FileKind
    content: str
    test_path: Optional[Path] = None


__all__ = [
    "FileKind",
    "Framework",
    "GeneratedTest",
    "PromptTemplate",
    "RenderedPrompt",
    "SourceFile",
]
