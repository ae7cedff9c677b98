"""Runs the project's test suite and scrapes its results."""

from __future__ import annotations

import json
import os
import re
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import AutotestConfig
from .logging import get_logger
from .models import Framework

_RSPEC_FAILURES = re.compile(r"Failures:\n\n(.+?)(?=\n\n\S|\Z)", re.DOTALL)
_RSPEC_EXAMPLE_SPLIT = re.compile(r"\n\n(?=\s*\d+\))")
_MINITEST_FAILURE = re.compile(r"^\s*\d+\)\s*(.+)$", re.MULTILINE)


class SuiteError(RuntimeError):
    """Raised when the test command cannot be launched."""


@dataclass
class RunResult:
    """Outcome of one test command invocation."""

    command: List[str]
    stdout: str
    stderr: str
    exit_code: int
    duration: float
    timestamp: datetime

    @property
    def passed(self) -> bool:
        return self.exit_code == 0


class SuiteRunner:
    """Invokes rspec or minitest through bundler from the project root."""

    def __init__(self, config: AutotestConfig) -> None:
        self.config = config
        self.logger = get_logger("suite")
        self.last_result: Optional[RunResult] = None

    def run(
        self,
        test_files: Iterable[Path | str] | None = None,
        *,
        watch_mode: bool = False,
    ) -> RunResult:
        """Run ``test_files`` (all tests when ``None`` or empty)."""
        files = self._existing_files(test_files)
        if files:
            self.logger.info("Running %d test file(s)", len(files))
        else:
            self.logger.info("Running the full test suite")
        command = self.build_command(files, watch_mode=watch_mode)
        return self._execute(command)

    def build_command(self, files: List[str], *, watch_mode: bool = False) -> List[str]:
        if self.config.test_framework is Framework.RSPEC:
            command = ["bundle", "exec", "rspec"]
            command.extend(files or ["spec"])
            if not watch_mode:
                command.extend(["--format", "documentation", "--color"])
            return command
        command = ["bundle", "exec", "rails", "test"]
        command.extend(files)
        if not watch_mode:
            command.append("--verbose")
        return command

    def run_in_watch_mode(
        self,
        interval: float = 2.0,
        *,
        iterations: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Rerun the whole suite until interrupted; returns the number of runs."""
        runs = 0
        self.logger.info("Continuous test mode enabled (Ctrl+C to stop)")
        try:
            while iterations is None or runs < iterations:
                self.run(watch_mode=True)
                runs += 1
                if iterations is not None and runs >= iterations:
                    break
                sleep(interval)
        except KeyboardInterrupt:
            self.logger.info("Continuous test mode stopped")
        return runs

    def extract_failures(self, result: RunResult | None = None) -> List[str]:
        result = result or self.last_result
        if result is None:
            return []
        failures: List[str] = []
        if self.config.test_framework is Framework.RSPEC:
            match = _RSPEC_FAILURES.search(result.stdout)
            if match:
                chunks = _RSPEC_EXAMPLE_SPLIT.split(match.group(1))
                failures = [chunk.strip() for chunk in chunks if chunk.strip()]
        else:
            failures = [line.strip() for line in _MINITEST_FAILURE.findall(result.stdout)]
        if result.stderr.strip():
            failures.append(f"System errors: {result.stderr.strip()}")
        return failures

    def coverage_stats(self) -> Optional[Dict[str, Any]]:
        """Return the SimpleCov ``.last_run.json`` payload, if present and valid."""
        coverage_file = self.config.root / "coverage" / ".last_run.json"
        if not coverage_file.is_file():
            return None
        try:
            data = json.loads(coverage_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        return data if isinstance(data, dict) else None

    def covered_percent(self) -> Optional[float]:
        stats = self.coverage_stats()
        if not stats:
            return None
        result = stats.get("result")
        if not isinstance(result, dict):
            return None
        value = result.get("covered_percent", result.get("line"))
        return float(value) if isinstance(value, (int, float)) else None

    def _existing_files(self, test_files: Iterable[Path | str] | None) -> List[str]:
        if test_files is None:
            return []
        existing: List[str] = []
        for entry in test_files:
            path = Path(entry)
            resolved = path if path.is_absolute() else self.config.root / path
            if resolved.exists():
                existing.append(str(path))
            else:
                self.logger.debug("Skipping missing test file %s", path)
        return existing

    def _execute(self, command: List[str]) -> RunResult:
        env = dict(os.environ)
        env["COVERAGE"] = "true"
        self.logger.debug("Command: %s", " ".join(command))
        started = time.monotonic()
        try:
            completed = subprocess.run(
                command,
                cwd=str(self.config.root),
                env=env,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise SuiteError(f"Unable to launch '{command[0]}'. Is bundler installed?") from exc
        duration = time.monotonic() - started
        result = RunResult(
            command=command,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            exit_code=completed.returncode,
            duration=duration,
            timestamp=datetime.now(),
        )
        self.last_result = result
        if result.passed:
            self.logger.info("Tests passed in %.2f seconds", duration)
        else:
            self.logger.warning("Tests failed in %.2f seconds (exit code %d)", duration, result.exit_code)
        return result


__all__ = ["RunResult", "SuiteError", "SuiteRunner"]
