"""Maps source paths to file kinds and their companion test files."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Optional, Pattern, Sequence

from .models import FileKind, Framework

# First match wins.
_KIND_RULES: Sequence[tuple[Pattern[str], FileKind]] = (
    (re.compile(r"^app/models/"), FileKind.MODEL),
    (re.compile(r"^app/controllers/"), FileKind.CONTROLLER),
    (re.compile(r"^app/jobs/"), FileKind.JOB),
    (re.compile(r"^app/services/"), FileKind.SERVICE),
    (re.compile(r"^app/helpers/"), FileKind.HELPER),
    (re.compile(r"^app/mailers/"), FileKind.MAILER),
    (re.compile(r"^lib/"), FileKind.LIBRARY),
)

_TEST_DIRS = ("spec", "test")
_TEST_SUFFIXES = ("_spec", "_test")


class PathClassifier:
    """Classifies project files by location.

    Rules match from the start of the path relative to ``root``, so nested
    trees such as engines or vendored gems are not classified.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root).resolve() if root is not None else None

    def classify(self, path: Path | str) -> FileKind:
        relative = self._relative(path)
        for pattern, kind in _KIND_RULES:
            if pattern.search(relative):
                return kind
        return FileKind.UNKNOWN

    def test_path_for(
        self, path: Path | str, kind: FileKind, framework: Framework
    ) -> Optional[Path]:
        """Return the conventional test file location for ``path``.

        ``None`` is returned for :attr:`FileKind.UNKNOWN`.
        """
        if kind is FileKind.UNKNOWN:
            return None
        relative = PurePosixPath(self._relative(path))
        parts = list(relative.parts)
        if parts and parts[0] == "app":
            parts[0] = framework.test_root
        elif parts and parts[0] == "lib":
            parts = [framework.test_root, *parts]
        if not parts:
            return None
        name = PurePosixPath(parts[-1])
        parts[-1] = f"{name.stem}{framework.test_suffix}{name.suffix}"
        test_relative = Path(*parts)
        if self.root is not None and Path(path).is_absolute():
            return self.root / test_relative
        return test_relative

    def is_test_file(self, path: Path | str) -> bool:
        """Return whether ``path`` already is a test, by location or suffix."""
        relative = PurePosixPath(self._relative(path))
        if any(part in _TEST_DIRS for part in relative.parts[:-1]):
            return True
        return relative.stem.endswith(_TEST_SUFFIXES)

    def _relative(self, path: Path | str) -> str:
        candidate = Path(path)
        if self.root is not None and candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.root)
            except ValueError:
                pass
        return candidate.as_posix()


__all__ = ["PathClassifier"]
