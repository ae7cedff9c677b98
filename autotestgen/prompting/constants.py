"""Default prompt templates keyed by file kind."""

from __future__ import annotations

from typing import Dict

from ..models import FileKind, PromptTemplate

DEFAULT_CONTEXT = "No specific context provided"


def _user(subject: str, focus: tuple[str, ...]) -> str:
    bullets = "\n".join(f"- {item}" for item in focus)
    return (
        f"Generate tests for this {subject}:\n\n"
        "{{ code }}\n\n"
        "Business context: {{ context }}\n\n"
        f"Include tests for:\n{bullets}"
    )


DEFAULT_TEMPLATES: Dict[FileKind, PromptTemplate] = {
    FileKind.MODEL: PromptTemplate(
        system="You are an expert in Ruby on Rails testing. Write complete, relevant tests.",
        user=_user(
            "Rails model",
            ("Validations", "Associations", "Business methods", "Scopes", "Callbacks"),
        ),
    ),
    FileKind.CONTROLLER: PromptTemplate(
        system="You are an expert in Rails controller testing. Write complete tests.",
        user=_user(
            "Rails controller",
            (
                "CRUD actions",
                "Authentication and authorization",
                "Parameters",
                "Redirects",
                "JSON and HTML formats",
            ),
        ),
    ),
    FileKind.JOB: PromptTemplate(
        system="You are an expert in Rails background job testing. Write complete tests.",
        user=_user(
            "Rails job",
            ("Job execution", "Error handling", "Queues", "Arguments"),
        ),
    ),
    FileKind.SERVICE: PromptTemplate(
        system="You are an expert in Ruby service object testing. Write complete tests.",
        user=_user(
            "service object",
            ("Public methods", "Error handling", "Edge cases", "Return values"),
        ),
    ),
    FileKind.HELPER: PromptTemplate(
        system="You are an expert in Rails view helper testing. Write complete tests.",
        user=_user(
            "Rails helper",
            ("Each helper method", "HTML output", "Nil and empty inputs"),
        ),
    ),
    FileKind.MAILER: PromptTemplate(
        system="You are an expert in Rails mailer testing. Write complete tests.",
        user=_user(
            "Rails mailer",
            ("Recipients and sender", "Subject lines", "Body content", "Delivery"),
        ),
    ),
    FileKind.LIBRARY: PromptTemplate(
        system="You are an expert in plain Ruby testing. Write complete tests.",
        user=_user(
            "Ruby library",
            ("Public API", "Error handling", "Edge cases", "Return values"),
        ),
    ),
}


__all__ = ["DEFAULT_CONTEXT", "DEFAULT_TEMPLATES"]
