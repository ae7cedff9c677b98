"""CLI entrypoints for autotestgen commands."""

from __future__ import annotations

import argparse
import shutil
import sys
import time
from pathlib import Path
from typing import Callable

from jinja2 import TemplateError

from . import __version__
from .config import AutotestConfig, ConfigurationError, load_config
from .dispatcher import ChangeDispatcher
from .generator import GenerationPipeline, write_test_file
from .llm import GenerationError
from .logging import configure_logging
from .models import Framework
from .reporter import Reporter
from .scaffold import setup_rspec, write_config_file
from .suite import SuiteError, SuiteRunner
from .watcher import PollingWatcher

REPORT_TYPES = ("coverage", "quality", "trend", "full")
MENU = (
    ("1", "Generate a test for a file"),
    ("2", "Run tests"),
    ("3", "Show the full report"),
    ("4", "Show configuration"),
    ("5", "Quit"),
)


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_project_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--project",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autotestgen",
        description="Generate Ruby tests for changed source files with an LLM.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also append DEBUG logs with timestamps to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create .autotest.yml and test helpers.")
    _add_verbose_option(init_parser, suppress_default=True)
    _add_project_option(init_parser)
    init_parser.add_argument("-p", "--provider", default="openai", help="AI provider (openai, ollama).")
    init_parser.add_argument("-m", "--model", default=None, help="Model to use.")
    init_parser.add_argument(
        "--interactive",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Ask for business context before generating.",
    )
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing config file.")

    watch_parser = subparsers.add_parser("watch", help="Watch source files and generate tests on change.")
    _add_verbose_option(watch_parser, suppress_default=True)
    watch_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )
    watch_parser.add_argument(
        "--auto-run",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run each generated test after writing it.",
    )
    watch_parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between file system polls.",
    )

    generate_parser = subparsers.add_parser("generate", help="Generate a test for one source file.")
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_project_option(generate_parser)
    generate_parser.add_argument("file", help="Source file to generate a test for.")
    generate_parser.add_argument("-c", "--context", default=None, help="Business context for the prompt.")
    generate_parser.add_argument(
        "--interactive",
        action="store_true",
        help="Collect business context interactively.",
    )
    generate_parser.add_argument("-o", "--output", default=None, help="Where to write the generated test.")

    improve_parser = subparsers.add_parser("improve", help="Improve an existing test.")
    _add_verbose_option(improve_parser, suppress_default=True)
    _add_project_option(improve_parser)
    improve_parser.add_argument("test_file", help="Existing test file.")
    improve_parser.add_argument("source_file", help="Source file under test.")
    improve_parser.add_argument("-n", "--notes", default=None, help="Specific improvement notes.")

    test_parser = subparsers.add_parser("test", help="Run tests (all when no file is given).")
    _add_verbose_option(test_parser, suppress_default=True)
    _add_project_option(test_parser)
    test_parser.add_argument("files", nargs="*", help="Test files to run.")
    test_parser.add_argument(
        "--coverage",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Summarise failures and coverage after the run.",
    )
    test_parser.add_argument("--watch", action="store_true", help="Rerun the suite continuously.")

    config_parser = subparsers.add_parser("config", help="Show the effective configuration.")
    _add_verbose_option(config_parser, suppress_default=True)
    _add_project_option(config_parser)

    report_parser = subparsers.add_parser("report", help="Summarise coverage, quality and trends.")
    _add_verbose_option(report_parser, suppress_default=True)
    _add_project_option(report_parser)
    report_parser.add_argument(
        "type",
        nargs="?",
        default="full",
        choices=REPORT_TYPES,
        help="Report to produce (defaults to full).",
    )
    report_parser.add_argument("-o", "--output", default=None, help="Where to write the HTML report.")
    report_parser.add_argument("--days", type=int, default=7, help="Days of history for the trend report.")
    report_parser.add_argument("--json", action="store_true", help="Also export the report as JSON.")

    interactive_parser = subparsers.add_parser("interactive", help="Menu-driven session.")
    _add_verbose_option(interactive_parser, suppress_default=True)
    _add_project_option(interactive_parser)

    version_parser = subparsers.add_parser("version", help="Show the autotestgen version.")
    _add_verbose_option(version_parser, suppress_default=True)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for autotestgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file).expanduser() if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    if args.command == "version":
        print(f"autotestgen {__version__}")
        return

    root = Path(getattr(args, "project", None) or getattr(args, "path", ".")).expanduser().resolve()

    if args.command == "init":
        _run_init(parser, args, root)
        return

    try:
        config = load_config(root)
    except ConfigurationError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")

    if args.command == "watch":
        _run_watch(parser, args, config)
    elif args.command == "generate":
        _run_generate(parser, args, config)
    elif args.command == "improve":
        _run_improve(parser, args, config)
    elif args.command == "test":
        _run_test(parser, args, config)
    elif args.command == "config":
        _print_config(config)
    elif args.command == "report":
        _run_report(parser, args, config)
    elif args.command == "interactive":
        global_args = ["--log-file", args.log_file] if args.log_file else []
        if args.verbose:
            global_args.append("--verbose")
        _run_interactive(config, global_args=global_args)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_init(parser: argparse.ArgumentParser, args: argparse.Namespace, root: Path) -> None:
    if not (root / "Gemfile").exists() and not any(root.rglob("*.rb")):
        parser.exit(1, f"{root} does not look like a Ruby project.\n")
    try:
        config_path = write_config_file(
            root,
            provider=args.provider,
            model=args.model,
            interactive=bool(args.interactive),
            force=bool(args.force),
        )
    except FileExistsError as exc:
        parser.exit(1, f"{exc}\n")
    try:
        config = load_config(root)
    except ConfigurationError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")
    if config.test_framework is Framework.RSPEC:
        setup_rspec(root, coverage_threshold=config.coverage_threshold)
    print(f"Configuration created at {_relativize(config_path)}")


def _build_pipeline(parser: argparse.ArgumentParser, config: AutotestConfig) -> GenerationPipeline:
    try:
        return GenerationPipeline(config)
    except ConfigurationError as exc:
        parser.exit(1, f"Invalid AI configuration: {exc}\n")


def _run_watch(parser: argparse.ArgumentParser, args: argparse.Namespace, config: AutotestConfig) -> None:
    if args.auto_run is not None:
        config.auto_run_tests = bool(args.auto_run)
    errors = config.validation_errors()
    if errors:
        parser.exit(1, "Invalid configuration:\n" + "".join(f"  - {error}\n" for error in errors))
    pipeline = _build_pipeline(parser, config)
    dispatcher = ChangeDispatcher(config, pipeline, suite_runner=SuiteRunner(config))
    watcher = PollingWatcher(
        config.root,
        config.watch_paths,
        dispatcher.handle_changes,
        interval=args.interval,
    )
    watcher.start()


def _run_generate(parser: argparse.ArgumentParser, args: argparse.Namespace, config: AutotestConfig) -> None:
    source = Path(args.file).expanduser().resolve()
    if not source.is_file():
        parser.exit(1, f"Source file not found: {args.file}\n")
    if args.interactive:
        config.interactive_mode = True
    pipeline = _build_pipeline(parser, config)
    try:
        if args.interactive:
            generated = pipeline.generate_interactive(source, args.context)
        else:
            generated = pipeline.generate_for_file(source, context=args.context)
    except (GenerationError, OSError, ValueError, TemplateError) as exc:
        parser.exit(1, f"autotestgen generate failed: {exc}\nRun with --verbose for more details.\n")
    if generated is None:
        parser.exit(1, f"Unable to generate a test for {args.file}\n")
    output = Path(args.output).expanduser() if args.output else generated.test_path
    if output is None:
        parser.exit(1, f"No conventional test location for {args.file}; pass --output.\n")
    write_test_file(output, generated.content)
    print(f"Test generated at {_relativize(output)}")


def _run_improve(parser: argparse.ArgumentParser, args: argparse.Namespace, config: AutotestConfig) -> None:
    test_file = Path(args.test_file).expanduser().resolve()
    source_file = Path(args.source_file).expanduser().resolve()
    if not test_file.is_file() or not source_file.is_file():
        parser.exit(1, "Test or source file not found\n")
    pipeline = _build_pipeline(parser, config)
    try:
        improved = pipeline.improve_existing_test(test_file, source_file, args.notes)
    except (GenerationError, OSError, ValueError, TemplateError) as exc:
        parser.exit(1, f"autotestgen improve failed: {exc}\nRun with --verbose for more details.\n")
    if improved is None:
        parser.exit(1, f"Unable to improve {args.test_file}\n")
    backup = test_file.with_name(f"{test_file.name}.backup.{int(time.time())}")
    shutil.copy2(test_file, backup)
    print(f"Backup saved at {_relativize(backup)}")
    write_test_file(test_file, improved)
    print(f"Test improved at {_relativize(test_file)}")


def _run_test(parser: argparse.ArgumentParser, args: argparse.Namespace, config: AutotestConfig) -> None:
    runner = SuiteRunner(config)
    try:
        if args.watch:
            runner.run_in_watch_mode()
            return
        result = runner.run(args.files or None)
    except SuiteError as exc:
        parser.exit(1, f"{exc}\n")

    if result.stdout.strip():
        print(result.stdout.rstrip())
    if result.stderr.strip():
        print(result.stderr.rstrip(), file=sys.stderr)

    if args.coverage:
        failures = runner.extract_failures(result)
        for index, failure in enumerate(failures, start=1):
            print(f"{index}. {failure}")
        percent = runner.covered_percent()
        if percent is not None:
            status = "ok" if percent >= config.coverage_threshold else "below threshold"
            print(f"Coverage: {percent}% (threshold {config.coverage_threshold}%, {status})")
    if not result.passed:
        parser.exit(result.exit_code or 1)


def _print_config(config: AutotestConfig) -> None:
    print("Current configuration:")
    print(f"  AI provider: {config.llm.provider}")
    print(f"  Model: {config.llm.effective_model}")
    print(f"  Test framework: {config.test_framework.value}")
    print(f"  Watched paths: {', '.join(config.watch_paths)}")
    print(f"  Coverage threshold: {config.coverage_threshold}%")
    print(f"  Auto run: {'enabled' if config.auto_run_tests else 'disabled'}")
    print(f"  Interactive mode: {'enabled' if config.interactive_mode else 'disabled'}")
    print(f"  Prompt templates: {', '.join(kind.value for kind in config.prompt_templates)}")
    errors = config.validation_errors()
    if errors:
        print("  Configuration errors:")
        for error in errors:
            print(f"    - {error}")
    else:
        print("  Configuration is valid")


def _run_report(parser: argparse.ArgumentParser, args: argparse.Namespace, config: AutotestConfig) -> None:
    reporter = Reporter(config)
    if args.type == "coverage":
        coverage = reporter.coverage_report()
        if coverage is None:
            parser.exit(1, "No coverage data found. Run `autotestgen test` first.\n")
        print(f"Coverage: {coverage.covered_percent}%")
        if coverage.covered_lines is not None and coverage.total_lines is not None:
            print(f"Covered lines: {coverage.covered_lines}/{coverage.total_lines}")
        uncovered = coverage.uncovered()
        if uncovered:
            print("Least covered files:")
            for entry in uncovered:
                print(f"  {entry.path}: {entry.covered_percent}%")
        for suggestion in reporter.coverage_suggestions(coverage):
            print(f"Suggestion: {suggestion}")
    elif args.type == "quality":
        quality = reporter.quality_report()
        print(f"Source files: {quality.source_files_count}")
        print(f"Test files: {quality.test_files_count}")
        print(f"Test/source ratio: {quality.test_to_source_ratio}%")
        print(f"Average file size: {quality.average_file_size} lines")
        for entry in quality.large_files[:5]:
            print(f"  Large file: {entry['path']} ({entry['lines']} lines)")
        for suggestion in reporter.quality_suggestions(quality):
            print(f"Suggestion: {suggestion}")
    elif args.type == "trend":
        reporter.record_snapshot()
        entries = reporter.trend(args.days)
        print(f"Trend over the last {args.days} days ({len(entries)} snapshots):")
        for entry in entries:
            coverage = "n/a" if entry.get("coverage") is None else f"{entry['coverage']}%"
            print(f"  {entry['date']}: coverage {coverage}, {entry.get('test_files', 0)} test files")
        change = reporter.coverage_change(entries)
        if change is not None:
            print(f"Coverage change: {change:+.2f} points")
    else:
        output = Path(args.output).expanduser() if args.output else None
        print(f"HTML report written to {_relativize(reporter.write_html(output))}")
    if args.json:
        print(f"JSON report written to {_relativize(reporter.export_json())}")


def _run_interactive(
    config: AutotestConfig,
    ask: Callable[[str], str] | None = None,
    *,
    global_args: list[str] | None = None,
) -> None:
    """Menu loop over the other commands until the user quits."""
    ask = ask or input
    project = ["--project", str(config.root)]
    while True:
        print("\nautotestgen")
        for key, label in MENU:
            print(f"  {key}. {label}")
        try:
            choice = ask("Choose an option: ").strip()
        except EOFError:
            return
        if choice == "1":
            argv = ["generate", str(config.root / ask("Source file: ").strip()), *project]
        elif choice == "2":
            argv = ["test", *project]
        elif choice == "3":
            argv = ["report", "full", *project]
        elif choice == "4":
            argv = ["config", *project]
        elif choice in {"5", "q", "quit"}:
            return
        else:
            print(f"Unknown option: {choice}")
            continue
        try:
            main([*(global_args or []), *argv])
        except SystemExit as exc:
            # Failed commands exit through the parser; the session keeps going.
            if exc.code:
                print(f"Command exited with status {exc.code}")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
