"""Renders per-kind prompt templates into chat messages."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError, meta

from ..models import FileKind, PromptTemplate, RenderedPrompt
from .constants import DEFAULT_CONTEXT, DEFAULT_TEMPLATES

PLACEHOLDERS = frozenset({"code", "context"})


def build_environment() -> Environment:
    return Environment(
        autoescape=False,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def template_problems(source: str, env: Environment | None = None) -> List[str]:
    """List the reasons ``source`` cannot be used as a user message template.

    A usable template parses, references ``code`` and uses no placeholder
    other than ``code`` and ``context``.
    """
    env = env or build_environment()
    try:
        parsed = env.parse(source)
    except TemplateSyntaxError as exc:
        return [f"invalid template syntax on line {exc.lineno}: {exc.message}"]
    names = meta.find_undeclared_variables(parsed)
    problems: List[str] = []
    unknown = sorted(names - PLACEHOLDERS)
    if unknown:
        problems.append(f"unknown placeholder(s): {', '.join(unknown)}")
    if "code" not in names:
        problems.append("missing the {{ code }} placeholder")
    return problems


class PromptRenderer:
    """Fills the ``code`` and ``context`` placeholders of a kind's template."""

    def __init__(
        self,
        templates: Mapping[FileKind, PromptTemplate] | None = None,
        *,
        default_context: str = DEFAULT_CONTEXT,
    ) -> None:
        self.templates: Dict[FileKind, PromptTemplate] = dict(
            DEFAULT_TEMPLATES if templates is None else templates
        )
        self.default_context = default_context
        self._env = build_environment()
        self._compiled: Dict[FileKind, Template] = {}

    def template_for(self, kind: FileKind) -> Optional[PromptTemplate]:
        if kind is FileKind.UNKNOWN:
            return None
        return self.templates.get(kind)

    def render(self, kind: FileKind, source: str, context: str | None = None) -> Optional[RenderedPrompt]:
        """Return the rendered messages, or ``None`` when ``kind`` has no template."""
        template = self.template_for(kind)
        if template is None:
            return None
        effective_context = context if context and context.strip() else self.default_context
        user = self._compile(kind, template).render(code=source, context=effective_context)
        return RenderedPrompt(system=template.system, user=user)

    def _compile(self, kind: FileKind, template: PromptTemplate) -> Template:
        compiled = self._compiled.get(kind)
        if compiled is None:
            compiled = self._env.from_string(template.user)
            self._compiled[kind] = compiled
        return compiled


__all__ = ["PLACEHOLDERS", "PromptRenderer", "build_environment", "template_problems"]
