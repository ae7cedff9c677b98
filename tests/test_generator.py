"""Tests for autotestgen.generator."""

from __future__ import annotations

from pathlib import Path

import pytest

from autotestgen.config import AutotestConfig
from autotestgen.generator import GenerationPipeline, write_test_file
from autotestgen.llm import GenerationClient
from autotestgen.models import FileKind, Framework
from autotestgen.postproc import FROZEN_PRAGMA
from autotestgen.prompting import DEFAULT_CONTEXT

USER_MODEL = """
    class User < ApplicationRecord
      validates :email, presence: true
    end
"""

USER_SPEC = "RSpec.describe User do\n  it { is_expected.to validate_presence_of(:email) }\nend"


class RecordingClient(GenerationClient):
    """Returns a fixed completion and records every exchange."""

    def __init__(self, response: str | None = USER_SPEC) -> None:
        self.response = response
        self.calls: list[tuple[str, str]] = []

    def complete(self, system: str, user: str) -> str:
        self.calls.append((system, user))
        return self.response or ""


class ScriptedPrompter:
    def __init__(self, answer: str) -> None:
        self.answer = answer
        self.calls: list[tuple[Path, FileKind]] = []

    def collect(self, path, kind):
        self.calls.append((Path(path), kind))
        return self.answer


def _pipeline(root: Path, client: GenerationClient, **kwargs) -> GenerationPipeline:
    config = AutotestConfig(root=root.resolve(), **kwargs)
    return GenerationPipeline(config, client=client)


def test_generate_for_model_adds_pragma_and_rails_helper(project_builder) -> None:
    project_builder.write({"app/models/user.rb": USER_MODEL})
    client = RecordingClient("```ruby\n" + USER_SPEC + "\n```")
    pipeline = _pipeline(project_builder.path(), client)

    generated = pipeline.generate_for_file("app/models/user.rb")

    assert generated is not None
    assert generated.kind is FileKind.MODEL
    assert generated.content == f"{FROZEN_PRAGMA}\n\nrequire 'rails_helper'\n\n{USER_SPEC}"
    assert generated.test_path == project_builder.path().resolve() / "spec" / "models" / "user_spec.rb"
    system, user = client.calls[0]
    assert "Rails testing" in system
    assert "validates :email, presence: true" in user
    assert f"Business context: {DEFAULT_CONTEXT}" in user


def test_generate_passes_user_context_through(project_builder) -> None:
    project_builder.write({"app/services/charge.rb": "class Charge\nend\n"})
    client = RecordingClient("RSpec.describe Charge do\nend")
    pipeline = _pipeline(project_builder.path(), client)

    pipeline.generate_for_file("app/services/charge.rb", context="Charges a card once")

    assert "Business context: Charges a card once" in client.calls[0][1]


def test_generate_for_library_uses_plain_helper_and_minitest_paths(project_builder) -> None:
    project_builder.write({"lib/util.rb": "module Util\n  def self.double(x) = x * 2\nend\n"})
    client = RecordingClient("class UtilTest < Minitest::Test\nend")
    pipeline = _pipeline(project_builder.path(), client, test_framework=Framework.MINITEST)

    generated = pipeline.generate_for_file("lib/util.rb")

    assert generated is not None
    assert "require 'test_helper'" in generated.content
    assert generated.test_path == project_builder.path().resolve() / "test" / "lib" / "util_test.rb"


def test_generate_skips_unknown_and_untemplated_kinds(project_builder) -> None:
    project_builder.write(
        {"config/application.rb": "module App\nend\n", "app/jobs/sync_job.rb": "class SyncJob\nend\n"}
    )
    client = RecordingClient()
    pipeline = _pipeline(project_builder.path(), client)
    pipeline.renderer.templates.pop(FileKind.JOB)

    assert pipeline.generate_for_file("config/application.rb") is None
    assert pipeline.generate_for_file("app/jobs/sync_job.rb") is None
    assert client.calls == []


def test_generate_returns_none_for_empty_response(project_builder) -> None:
    project_builder.write({"app/models/user.rb": USER_MODEL})
    pipeline = _pipeline(project_builder.path(), RecordingClient("```\n```"))

    assert pipeline.generate_for_file("app/models/user.rb") is None


def test_generate_raises_for_missing_source(project_builder) -> None:
    pipeline = _pipeline(project_builder.path(), RecordingClient())
    with pytest.raises(FileNotFoundError):
        pipeline.generate_for_file("app/models/ghost.rb")


def test_generate_interactive_collects_context(project_builder) -> None:
    project_builder.write({"app/models/user.rb": USER_MODEL})
    client = RecordingClient()
    config = AutotestConfig(root=project_builder.path().resolve(), interactive_mode=True)
    prompter = ScriptedPrompter("Users must confirm their email")
    pipeline = GenerationPipeline(config, client=client, prompter=prompter)

    generated = pipeline.generate_interactive("app/models/user.rb")

    assert generated is not None
    assert prompter.calls[0][1] is FileKind.MODEL
    assert "Users must confirm their email" in client.calls[0][1]


def test_generate_interactive_respects_disabled_mode(project_builder) -> None:
    project_builder.write({"app/models/user.rb": USER_MODEL})
    config = AutotestConfig(root=project_builder.path().resolve(), interactive_mode=False)
    prompter = ScriptedPrompter("unused")
    pipeline = GenerationPipeline(config, client=RecordingClient(), prompter=prompter)

    pipeline.generate_interactive("app/models/user.rb")

    assert prompter.calls == []


def test_improve_existing_test_sends_source_test_and_notes(project_builder) -> None:
    project_builder.write(
        {
            "app/models/user.rb": USER_MODEL,
            "spec/models/user_spec.rb": "require 'rails_helper'\n\nRSpec.describe User do\nend\n",
        }
    )
    client = RecordingClient("require 'rails_helper'\n\nRSpec.describe User do\n  it 'is valid' do\n  end\nend")
    pipeline = _pipeline(project_builder.path(), client)

    improved = pipeline.improve_existing_test(
        "spec/models/user_spec.rb", "app/models/user.rb", "cover blank emails"
    )

    assert improved is not None
    assert improved.startswith(FROZEN_PRAGMA)
    system, user = client.calls[0]
    assert "SOURCE CODE:" in user
    assert "EXISTING TEST:" in user
    assert "IMPROVEMENT NOTES:\ncover blank emails" in user
    assert "Follows rspec best practices" in user


def test_write_test_file_creates_parents_and_overwrites(tmp_path: Path) -> None:
    target = tmp_path / "spec" / "models" / "user_spec.rb"
    write_test_file(target, "old")
    write_test_file(target, "new\n\n")
    assert target.read_text(encoding="utf-8") == "new\n"
