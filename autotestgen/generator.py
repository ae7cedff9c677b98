"""Single-file generation pipeline: classify, contextualise, prompt, clean."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .classifier import PathClassifier
from .config import AutotestConfig
from .context import ContextBuilder
from .interactive import ContextPrompter
from .llm import GenerationClient, build_client
from .logging import get_logger
from .models import FileKind, GeneratedTest, SourceFile
from .postproc import ResponsePostProcessor
from .prompting import PromptRenderer


class GenerationPipeline:
    """Produces cleaned test content for one source file at a time.

    Collaborators are built from ``config`` unless supplied; the generation
    client is created up front so a missing credential surfaces before any
    request is sent.
    """

    def __init__(
        self,
        config: AutotestConfig,
        *,
        client: GenerationClient | None = None,
        classifier: PathClassifier | None = None,
        context_builder: ContextBuilder | None = None,
        renderer: PromptRenderer | None = None,
        postprocessor: ResponsePostProcessor | None = None,
        prompter: ContextPrompter | None = None,
    ) -> None:
        self.config = config
        self.client = client if client is not None else build_client(config.llm)
        self.classifier = classifier or PathClassifier(config.root)
        self.context_builder = context_builder or ContextBuilder(config.root)
        self.renderer = renderer or PromptRenderer(config.prompt_templates)
        self.postprocessor = postprocessor or ResponsePostProcessor(config.test_framework)
        self.prompter = prompter
        self.logger = get_logger("generator")

    def generate_for_file(
        self,
        path: Path | str,
        *,
        kind: FileKind | None = None,
        context: str | None = None,
    ) -> Optional[GeneratedTest]:
        """Generate a test for ``path``.

        Returns ``None`` for unknown kinds, kinds without a template and empty
        model responses. Raises ``FileNotFoundError`` for a missing source and
        ``GenerationError`` when the provider call fails.
        """
        source_path = self._resolve(path)
        if not source_path.is_file():
            raise FileNotFoundError(f"Source file not found: {path}")

        kind = kind or self.classifier.classify(source_path)
        if kind is FileKind.UNKNOWN:
            self.logger.debug("Skipping %s: unrecognised file kind", self.relative(source_path))
            return None

        source = SourceFile(
            path=source_path,
            content=source_path.read_text(encoding="utf-8"),
            kind=kind,
        )
        full_context = self.context_builder.build(
            source.path, context, kind=source.kind, source=source.content
        )
        prompt = self.renderer.render(source.kind, source.content, full_context)
        if prompt is None:
            self.logger.debug("Skipping %s: no prompt template for %s", self.relative(source.path), kind.value)
            return None

        self.logger.info("Generating tests for %s (%s)", self.relative(source.path), kind.value)
        raw = self.client.complete(prompt.system, prompt.user)
        content = self.postprocessor.clean(raw, source.kind)
        if content is None:
            return None
        return GeneratedTest(
            source=source.path,
            kind=source.kind,
            content=content,
            test_path=self.classifier.test_path_for(source.path, source.kind, self.config.test_framework),
        )

    def generate_interactive(
        self, path: Path | str, context: str | None = None
    ) -> Optional[GeneratedTest]:
        """Ask for business context first when interactive mode is on."""
        source_path = self._resolve(path)
        kind = self.classifier.classify(source_path)
        if context is None and self.config.interactive_mode and kind is not FileKind.UNKNOWN:
            prompter = self.prompter or ContextPrompter()
            context = prompter.collect(source_path, kind)
        return self.generate_for_file(source_path, kind=kind, context=context)

    def improve_existing_test(
        self,
        test_path: Path | str,
        source_path: Path | str,
        notes: str | None = None,
    ) -> Optional[str]:
        """Ask the model to rewrite an existing test against updated source."""
        test_file = self._resolve(test_path)
        source_file = self._resolve(source_path)
        if not test_file.is_file() or not source_file.is_file():
            return None

        kind = self.classifier.classify(source_file)
        template = self.renderer.template_for(kind)
        if template is None:
            return None

        prompt = self.build_improvement_prompt(
            test_file.read_text(encoding="utf-8"),
            source_file.read_text(encoding="utf-8"),
            notes,
        )
        self.logger.info("Improving %s", self.relative(test_file))
        raw = self.client.complete(template.system, prompt)
        return self.postprocessor.clean(raw, kind)

    def build_improvement_prompt(self, existing_test: str, source_code: str, notes: str | None) -> str:
        lines = [
            "Improve this existing test, taking the updated source code into account:",
            "",
            "SOURCE CODE:",
            source_code,
            "",
            "EXISTING TEST:",
            existing_test,
        ]
        if notes and notes.strip():
            lines.extend(["", "IMPROVEMENT NOTES:", notes.strip()])
        lines.extend(
            [
                "",
                "Generate an improved version of the test that:",
                "- Covers the code better",
                f"- Follows {self.config.test_framework.value} best practices",
                "- Includes relevant edge cases",
                "- Keeps or improves readability",
            ]
        )
        return "\n".join(lines)

    def relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.config.root).as_posix()
        except ValueError:
            return str(path)

    def _resolve(self, path: Path | str) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.config.root / candidate
        return candidate.resolve()


def write_test_file(path: Path, content: str) -> Path:
    """Overwrite ``path`` with ``content``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content.rstrip("\n") + "\n", encoding="utf-8")
    return path


__all__ = ["GenerationPipeline", "write_test_file"]
