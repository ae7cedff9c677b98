"""Coverage, quality and trend reports for a watched project."""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment

from . import __version__
from .config import AutotestConfig
from .logging import get_logger
from .suite import SuiteRunner

LARGE_FILE_LINES = 200
UNCOVERED_PERCENT = 80.0
UNCOVERED_LIMIT = 10
REPORT_DIR = "tmp"
HTML_REPORT = "autotestgen_report.html"
JSON_REPORT = "autotestgen_report.json"
HISTORY_FILE = "autotestgen_history.json"

_SKIPPED_DIRS = frozenset({"vendor", "node_modules", "tmp", "log", ".git", ".bundle"})
_RAILS_LOCK_VERSION = re.compile(r"^ {4}rails \(([^)]+)\)", re.MULTILINE)
_APP_MODULE = re.compile(r"^module\s+(\w+)", re.MULTILINE)

_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>autotestgen report - {{ project.name }}</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 40px; }
    .header { background: #4CAF50; color: white; padding: 20px; border-radius: 5px; }
    .section { margin: 20px 0; padding: 15px; border-left: 4px solid #ddd; }
    .metric { display: inline-block; margin: 10px; padding: 10px; background: #f5f5f5; border-radius: 3px; }
  </style>
</head>
<body>
  <div class="header">
    <h1>autotestgen test report</h1>
    <p>Project: {{ project.name }} | Generated: {{ generated_at }}</p>
  </div>
  <div class="section">
    <h2>Coverage</h2>
    {% if coverage %}
    <div class="metric">Coverage: {{ coverage.covered_percent }}%</div>
    <div class="metric">Lines: {{ coverage.covered_lines }}/{{ coverage.total_lines }}</div>
    {% if uncovered %}
    <ul>
      {% for file in uncovered %}<li>{{ file.path }}: {{ file.covered_percent }}%</li>
      {% endfor %}
    </ul>
    {% endif %}
    {% else %}
    <p>No coverage data available</p>
    {% endif %}
  </div>
  <div class="section">
    <h2>Code quality</h2>
    <div class="metric">Source files: {{ quality.source_files_count }}</div>
    <div class="metric">Test files: {{ quality.test_files_count }}</div>
    <div class="metric">Test/source ratio: {{ quality.test_to_source_ratio }}%</div>
    <div class="metric">Average file size: {{ quality.average_file_size }} lines</div>
  </div>
  <div class="section">
    <h2>Last test run</h2>
    {% if test_results %}
    <div class="metric">Status: {{ "passed" if test_results.passed else "failed" }}</div>
    <div class="metric">Duration: {{ "%.2f"|format(test_results.duration) }}s</div>
    {% else %}
    <p>No tests were run in this session</p>
    {% endif %}
  </div>
</body>
</html>
"""


@dataclass
class FileCoverage:
    path: str
    covered_percent: float
    covered_lines: Optional[int] = None
    missed_lines: Optional[int] = None
    total_lines: Optional[int] = None


@dataclass
class CoverageReport:
    """Summary of SimpleCov's last run."""

    covered_percent: float
    covered_lines: Optional[int] = None
    total_lines: Optional[int] = None
    files: List[FileCoverage] = field(default_factory=list)

    def uncovered(self, threshold: float = UNCOVERED_PERCENT, limit: int = UNCOVERED_LIMIT) -> List[FileCoverage]:
        """Least covered files below ``threshold``, worst first."""
        return [entry for entry in self.files if entry.covered_percent < threshold][:limit]


@dataclass
class QualityReport:
    test_files_count: int
    source_files_count: int
    test_to_source_ratio: float
    average_file_size: int
    large_files: List[Dict[str, Any]] = field(default_factory=list)


class Reporter:
    """Builds reports from the project tree and the suite runner's results."""

    def __init__(self, config: AutotestConfig, suite_runner: SuiteRunner | None = None) -> None:
        self.config = config
        self.suite_runner = suite_runner if suite_runner is not None else SuiteRunner(config)
        self.logger = get_logger("reporter")

    @property
    def report_dir(self) -> Path:
        return self.config.root / REPORT_DIR

    def coverage_report(self) -> Optional[CoverageReport]:
        percent = self.suite_runner.covered_percent()
        if percent is None:
            return None
        result = self.suite_runner.coverage_stats()["result"]
        return CoverageReport(
            covered_percent=percent,
            covered_lines=_as_int(result.get("covered_lines")),
            total_lines=_as_int(result.get("total_lines")),
            files=_file_coverage(result.get("groups")),
        )

    def coverage_suggestions(self, report: CoverageReport) -> List[str]:
        if report.covered_percent < 70:
            return ["Start with baseline tests for every model"]
        if report.covered_percent < 85:
            return ["Add tests for edge cases and error paths"]
        return ["Tighten existing tests and add integration tests"]

    def quality_report(self) -> QualityReport:
        framework = self.config.test_framework
        test_files = list((self.config.root / framework.test_root).rglob(f"*{framework.test_suffix}.rb"))
        source_count = sum(
            len(list((self.config.root / entry).rglob("*.rb")))
            for entry in self.config.watch_paths
            if (self.config.root / entry).is_dir()
        )
        line_counts = {path: _line_count(path) for path in self._ruby_files()}
        ratio = round(len(test_files) / source_count * 100, 2) if source_count else 0.0
        average = round(sum(line_counts.values()) / len(line_counts)) if line_counts else 0
        large = sorted(
            (
                {"path": path.relative_to(self.config.root).as_posix(), "lines": lines}
                for path, lines in line_counts.items()
                if lines > LARGE_FILE_LINES
            ),
            key=lambda entry: -entry["lines"],
        )
        return QualityReport(
            test_files_count=len(test_files),
            source_files_count=source_count,
            test_to_source_ratio=ratio,
            average_file_size=average,
            large_files=large,
        )

    def quality_suggestions(self, report: QualityReport) -> List[str]:
        suggestions: List[str] = []
        if report.test_to_source_ratio < 50:
            suggestions.append("Add more tests; the test/source ratio is low")
        if report.large_files:
            suggestions.append(
                f"Split large files ({len(report.large_files)} over {LARGE_FILE_LINES} lines)"
            )
        return suggestions

    def record_snapshot(self, *, now: datetime | None = None) -> Dict[str, Any]:
        """Append today's coverage and file counts to the trend history."""
        coverage = self.coverage_report()
        quality = self.quality_report()
        entry = {
            "date": (now or datetime.now()).isoformat(timespec="seconds"),
            "coverage": coverage.covered_percent if coverage else None,
            "test_files": quality.test_files_count,
            "source_files": quality.source_files_count,
        }
        history = self.history()
        history.append(entry)
        path = self.report_dir / HISTORY_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(history, indent=2), encoding="utf-8")
        return entry

    def history(self) -> List[Dict[str, Any]]:
        path = self.report_dir / HISTORY_FILE
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            self.logger.warning("Ignoring unreadable trend history at %s", path)
            return []
        return [entry for entry in data if isinstance(entry, dict)] if isinstance(data, list) else []

    def trend(self, days: int = 7, *, now: datetime | None = None) -> List[Dict[str, Any]]:
        """History entries from the last ``days`` days, oldest first."""
        cutoff = (now or datetime.now()) - timedelta(days=days)
        entries = []
        for entry in self.history():
            try:
                recorded = datetime.fromisoformat(str(entry.get("date")))
            except ValueError:
                continue
            if recorded >= cutoff:
                entries.append(entry)
        return sorted(entries, key=lambda entry: entry["date"])

    @staticmethod
    def coverage_change(entries: List[Dict[str, Any]]) -> Optional[float]:
        points = [entry["coverage"] for entry in entries if isinstance(entry.get("coverage"), (int, float))]
        if len(points) < 2:
            return None
        return round(points[-1] - points[0], 2)

    def collect(self) -> Dict[str, Any]:
        coverage = self.coverage_report()
        last = self.suite_runner.last_result
        return {
            "generated_at": datetime.now().isoformat(timespec="seconds"),
            "project": self.project_info(),
            "test_framework": self.config.test_framework.value,
            "test_results": (
                {
                    "command": last.command,
                    "exit_code": last.exit_code,
                    "duration": last.duration,
                    "passed": last.passed,
                    "timestamp": last.timestamp.isoformat(timespec="seconds"),
                }
                if last is not None
                else None
            ),
            "coverage": asdict(coverage) if coverage else None,
            "uncovered": [asdict(entry) for entry in coverage.uncovered()] if coverage else [],
            "quality": asdict(self.quality_report()),
            "ai": {"provider": self.config.llm.provider, "model": self.config.llm.effective_model},
        }

    def project_info(self) -> Dict[str, Any]:
        root = self.config.root
        name = root.name.capitalize()
        application = root / "config" / "application.rb"
        if application.is_file():
            match = _APP_MODULE.search(application.read_text(encoding="utf-8", errors="ignore"))
            if match:
                name = match.group(1)
        rails_version = None
        lock = root / "Gemfile.lock"
        if application.is_file() and lock.is_file():
            match = _RAILS_LOCK_VERSION.search(lock.read_text(encoding="utf-8", errors="ignore"))
            rails_version = match.group(1) if match else None
        return {
            "name": name,
            "rails_version": rails_version,
            "autotestgen_version": __version__,
            "ruby_files": len(self._ruby_files()),
        }

    def export_json(self, output: Path | None = None) -> Path:
        path = output or self.report_dir / JSON_REPORT
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.collect(), indent=2), encoding="utf-8")
        self.logger.info("JSON report written to %s", path)
        return path

    def write_html(self, output: Path | None = None) -> Path:
        path = output or self.report_dir / HTML_REPORT
        env = Environment(autoescape=True)
        html = env.from_string(_HTML_TEMPLATE).render(**self.collect())
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
        self.logger.info("HTML report written to %s", path)
        return path

    def _ruby_files(self) -> List[Path]:
        files = []
        for path in self.config.root.rglob("*.rb"):
            relative = path.relative_to(self.config.root)
            if any(part in _SKIPPED_DIRS for part in relative.parts[:-1]):
                continue
            files.append(path)
        return files


def _file_coverage(groups: Any) -> List[FileCoverage]:
    if not isinstance(groups, dict):
        return []
    entries: List[FileCoverage] = []
    for group in groups.values():
        files = group.get("files") if isinstance(group, dict) else None
        if not isinstance(files, dict):
            continue
        for path, data in files.items():
            if not isinstance(data, dict) or not isinstance(data.get("covered_percent"), (int, float)):
                continue
            entries.append(
                FileCoverage(
                    path=str(path),
                    covered_percent=float(data["covered_percent"]),
                    covered_lines=_as_int(data.get("covered_lines")),
                    missed_lines=_as_int(data.get("missed_lines")),
                    total_lines=_as_int(data.get("lines_of_code")),
                )
            )
    return sorted(entries, key=lambda entry: entry.covered_percent)


def _as_int(value: Any) -> Optional[int]:
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def _line_count(path: Path) -> int:
    try:
        with path.open(encoding="utf-8", errors="ignore") as handle:
            return sum(1 for _ in handle)
    except OSError:
        return 0


__all__ = ["CoverageReport", "FileCoverage", "QualityReport", "Reporter"]
