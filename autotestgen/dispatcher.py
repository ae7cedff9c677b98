"""Turns batches of changed paths into generated test files."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Iterable, Optional, Sequence

from jinja2 import TemplateError

from .config import AutotestConfig
from .generator import GenerationPipeline, write_test_file
from .llm import GenerationError
from .logging import get_logger
from .models import FileKind
from .suite import SuiteError, SuiteRunner

SOURCE_EXTENSION = ".rb"


class ChangeDispatcher:
    """Filters watcher batches and drives generation for each relevant file.

    Files are processed one after another; a failure on one file is logged
    and the rest of the batch still runs.
    """

    def __init__(
        self,
        config: AutotestConfig,
        pipeline: GenerationPipeline,
        *,
        suite_runner: SuiteRunner | None = None,
    ) -> None:
        self.config = config
        self.pipeline = pipeline
        self.classifier = pipeline.classifier
        self.suite_runner = suite_runner if suite_runner is not None else SuiteRunner(config)
        self.logger = get_logger("dispatcher")
        self._watch_paths = [_normalise(entry) for entry in config.watch_paths if _normalise(entry)]
        self._exclude_paths = [_normalise(entry) for entry in config.exclude_paths if _normalise(entry)]

    def handle_changes(
        self,
        modified: Iterable[Path | str],
        added: Iterable[Path | str],
        removed: Iterable[Path | str] = (),
    ) -> int:
        """Process one watcher batch; removals are ignored.

        Returns the number of test files written.
        """
        changes = list(dict.fromkeys(self._absolute(path) for path in [*modified, *added]))
        relevant = [path for path in changes if self.is_relevant(path)]
        if not relevant:
            return 0

        self.logger.info("Changes detected:")
        for path in relevant:
            self.logger.info("  %s", self._relative(path))

        written = 0
        for path in relevant:
            if self.process_file(path) is not None:
                written += 1
        return written

    def is_relevant(self, path: Path | str) -> bool:
        candidate = self._absolute(path)
        if candidate.suffix != SOURCE_EXTENSION:
            return False
        if self.classifier.is_test_file(candidate):
            return False
        relative = self._relative(candidate)
        if self._matches_any(relative, self._exclude_paths, segment_match=True):
            return False
        return self._matches_any(relative, self._watch_paths)

    def process_file(self, path: Path | str) -> Optional[Path]:
        """Generate and write the test for one file; returns the written path."""
        source_path = self._absolute(path)
        kind = self.classifier.classify(source_path)
        if kind is FileKind.UNKNOWN:
            return None

        try:
            generated = self.pipeline.generate_for_file(source_path, kind=kind)
        except (GenerationError, OSError, ValueError, TemplateError) as exc:
            self.logger.error("Generation failed for %s: %s", self._relative(source_path), exc)
            return None
        except Exception:  # pragma: no cover - unexpected per-file failure
            self.logger.exception("Unexpected error while generating for %s", self._relative(source_path))
            return None

        if generated is None or generated.test_path is None:
            self.logger.warning("No test generated for %s", self._relative(source_path))
            return None

        try:
            test_path = write_test_file(generated.test_path, generated.content)
        except OSError as exc:
            self.logger.error("Could not write %s: %s", self._relative(generated.test_path), exc)
            return None
        self.logger.info("Test written: %s", self._relative(test_path))

        if self.config.auto_run_tests:
            try:
                self.suite_runner.run([test_path])
            except SuiteError as exc:
                self.logger.error("Could not run %s: %s", self._relative(test_path), exc)
        return test_path

    def _absolute(self, path: Path | str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.config.root / candidate
        return candidate.resolve()

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.config.root).as_posix()
        except ValueError:
            return path.as_posix()

    @staticmethod
    def _matches_any(relative: str, prefixes: Sequence[str], *, segment_match: bool = False) -> bool:
        parts = PurePosixPath(relative).parts
        for prefix in prefixes:
            if relative == prefix or relative.startswith(f"{prefix}/"):
                return True
            if segment_match and "/" not in prefix and prefix in parts[:-1]:
                return True
        return False


def _normalise(entry: str) -> str:
    return entry.strip().replace("\\", "/").strip("/")


__all__ = ["ChangeDispatcher", "SOURCE_EXTENSION"]
