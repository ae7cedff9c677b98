"""Configuration loading for autotestgen (.autotest.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .models import FileKind, Framework, PromptTemplate
from .prompting.constants import DEFAULT_TEMPLATES
from .prompting.renderer import template_problems

CONFIG_FILENAME = ".autotest.yml"

CLOUD_PROVIDERS = frozenset({"openai", "cloud"})
LOCAL_PROVIDERS = frozenset({"ollama", "local"})

DEFAULT_WATCH_PATHS: tuple[str, ...] = (
    "app/models",
    "app/controllers",
    "app/jobs",
    "app/services",
    "app/helpers",
    "app/mailers",
    "lib",
)
DEFAULT_EXCLUDE_PATHS: tuple[str, ...] = ("tmp", "log", "vendor", "node_modules", ".git")

DEFAULT_CLOUD_MODEL = "gpt-3.5-turbo"
DEFAULT_LOCAL_MODEL = "codellama"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 2000

ENV_API_KEY_KEYS = ("AUTOTEST_API_KEY", "OPENAI_API_KEY")


class ConfigurationError(RuntimeError):
    """Raised when the configuration is unreadable or cannot drive a backend."""


@dataclass
class LLMConfig:
    """Generation backend settings."""

    provider: str = "openai"
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    request_timeout: Optional[float] = None

    @property
    def is_local(self) -> bool:
        return self.provider in LOCAL_PROVIDERS

    @property
    def is_supported(self) -> bool:
        return self.provider in CLOUD_PROVIDERS or self.provider in LOCAL_PROVIDERS

    @property
    def effective_model(self) -> str:
        if self.model:
            return self.model
        return DEFAULT_LOCAL_MODEL if self.is_local else DEFAULT_CLOUD_MODEL


@dataclass
class AutotestConfig:
    """Represents the settings defined in .autotest.yml."""

    root: Path
    test_framework: Framework = Framework.RSPEC
    watch_paths: List[str] = field(default_factory=lambda: list(DEFAULT_WATCH_PATHS))
    exclude_paths: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATHS))
    llm: LLMConfig = field(default_factory=LLMConfig)
    interactive_mode: bool = True
    auto_run_tests: bool = True
    coverage_threshold: float = 80
    prompt_templates: Dict[FileKind, PromptTemplate] = field(
        default_factory=lambda: dict(DEFAULT_TEMPLATES)
    )

    def validation_errors(self) -> List[str]:
        errors: List[str] = []
        if not self.llm.is_supported:
            errors.append(f"Unsupported AI provider: {self.llm.provider}")
        elif not self.llm.is_local and not self.llm.api_key:
            errors.append("Missing AI API key (set ai_api_key or OPENAI_API_KEY)")
        if not self.root.is_dir():
            errors.append(f"Project root is not a directory: {self.root}")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()


def load_config(path: Path) -> AutotestConfig:
    """Load configuration from ``path`` (a project directory or the config file itself)."""
    config_file = _resolve_config_path(Path(path))
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    framework = _as_framework(data.get("test_framework")) or detect_framework(root)

    llm = LLMConfig(
        provider=(_as_str(data.get("ai_provider")) or "openai").strip().lower(),
        model=_as_str(data.get("ai_model")),
        api_key=_as_str(data.get("ai_api_key")) or _first_env_value(ENV_API_KEY_KEYS),
        base_url=_as_str(data.get("ai_base_url")),
        request_timeout=_as_float(data.get("request_timeout")),
    )
    temperature = _as_float(data.get("temperature"))
    if temperature is not None:
        llm.temperature = temperature
    max_tokens = _as_int(data.get("max_tokens"))
    if max_tokens is not None:
        llm.max_tokens = max_tokens

    config = AutotestConfig(root=root, test_framework=framework, llm=llm)

    if "watch_paths" in data:
        config.watch_paths = _as_str_list(data.get("watch_paths"))
    if "exclude_paths" in data:
        config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    interactive = _as_bool(data.get("interactive_mode"))
    if interactive is not None:
        config.interactive_mode = interactive
    auto_run = _as_bool(data.get("auto_run_tests"))
    if auto_run is not None:
        config.auto_run_tests = auto_run
    threshold = _as_float(data.get("coverage_threshold"))
    if threshold is not None:
        config.coverage_threshold = threshold

    config.prompt_templates = _merge_templates(data.get("prompt_templates"))
    return config


def detect_framework(root: Path) -> Framework:
    """Guess the project's test framework from its helper files."""
    if (root / "spec" / "spec_helper.rb").exists() or (root / "spec" / "rails_helper.rb").exists():
        return Framework.RSPEC
    if (root / "test" / "test_helper.rb").exists():
        return Framework.MINITEST
    return Framework.RSPEC


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping at the root")
    return loaded


def _merge_templates(value: Any) -> Dict[FileKind, PromptTemplate]:
    templates = dict(DEFAULT_TEMPLATES)
    if not isinstance(value, dict):
        return templates
    for raw_kind, raw_template in value.items():
        kind = FileKind.parse(str(raw_kind))
        if kind is FileKind.UNKNOWN:
            continue
        if raw_template is None:
            templates.pop(kind, None)
            continue
        if not isinstance(raw_template, dict):
            raise ConfigurationError(f"prompt_templates.{raw_kind} must be a mapping")
        base = templates.get(kind)
        system = _as_str(raw_template.get("system")) or (base.system if base else None)
        user = _as_str(raw_template.get("user")) or (base.user if base else None)
        if not system or not user:
            raise ConfigurationError(f"prompt_templates.{raw_kind} needs both system and user")
        problems = template_problems(user)
        if problems:
            raise ConfigurationError(f"prompt_templates.{raw_kind}: {'; '.join(problems)}")
        templates[kind] = PromptTemplate(system=system, user=user)
    return templates


def _first_env_value(keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


def _as_framework(value: Any) -> Optional[Framework]:
    text = _as_str(value)
    if not text:
        return None
    try:
        return Framework(text.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(f"Unsupported test framework: {text}") from exc


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "AutotestConfig",
    "CONFIG_FILENAME",
    "ConfigurationError",
    "LLMConfig",
    "detect_framework",
    "load_config",
]
