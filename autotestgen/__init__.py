"""Generate Ruby tests for changed source files with an LLM."""

__version__ = "0.1.0"
