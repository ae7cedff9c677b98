"""Prompt templates and rendering."""

from .constants import DEFAULT_CONTEXT, DEFAULT_TEMPLATES
from .renderer import PromptRenderer, template_problems

__all__ = ["DEFAULT_CONTEXT", "DEFAULT_TEMPLATES", "PromptRenderer", "template_problems"]
