"""Tests for autotestgen.prompting.renderer."""

from __future__ import annotations

from autotestgen.models import FileKind, PromptTemplate
from autotestgen.prompting import DEFAULT_CONTEXT, DEFAULT_TEMPLATES, PromptRenderer, template_problems


def test_default_templates_cover_every_known_kind() -> None:
    known = {kind for kind in FileKind if kind is not FileKind.UNKNOWN}
    assert set(DEFAULT_TEMPLATES) == known


def test_render_fills_code_and_context() -> None:
    rendered = PromptRenderer().render(FileKind.MODEL, "class User; end", "Users sign up")

    assert rendered is not None
    assert rendered.system == DEFAULT_TEMPLATES[FileKind.MODEL].system
    assert "class User; end" in rendered.user
    assert "Business context: Users sign up" in rendered.user
    assert "- Validations" in rendered.user
    assert "{{" not in rendered.user


def test_render_substitutes_default_context_when_blank() -> None:
    renderer = PromptRenderer()
    for context in (None, "", "   "):
        rendered = renderer.render(FileKind.SERVICE, "class Charge; end", context)
        assert rendered is not None
        assert f"Business context: {DEFAULT_CONTEXT}" in rendered.user


def test_render_returns_none_for_unknown_or_missing_template() -> None:
    renderer = PromptRenderer({FileKind.MODEL: DEFAULT_TEMPLATES[FileKind.MODEL]})
    assert renderer.render(FileKind.UNKNOWN, "puts 1") is None
    assert renderer.render(FileKind.JOB, "class SyncJob; end") is None


def test_render_leaves_placeholder_like_source_untouched() -> None:
    template = PromptTemplate(system="sys", user="Code:\n{{ code }}\nNotes: {{ context }}")
    renderer = PromptRenderer({FileKind.LIBRARY: template})

    rendered = renderer.render(FileKind.LIBRARY, 'puts "#{name} {{ context }}"', "ctx")

    assert rendered is not None
    assert rendered.user == 'Code:\nputs "#{name} {{ context }}"\nNotes: ctx'


def test_template_problems_accepts_default_templates() -> None:
    for template in DEFAULT_TEMPLATES.values():
        assert template_problems(template.user) == []


def test_template_problems_reports_syntax_unknown_names_and_missing_code() -> None:
    assert template_problems("Test {{ code ")[0].startswith("invalid template syntax")
    assert template_problems("Test {{ code }} for {{ klass }}") == ["unknown placeholder(s): klass"]
    assert template_problems("Test %{code} with {{ context }}") == ["missing the {{ code }} placeholder"]
