"""Tests for autotestgen.scaffold."""

from __future__ import annotations

import pytest
import yaml

from autotestgen.scaffold import is_rails_application, setup_rspec, write_config_file


def test_write_config_file_round_trips_through_loader(project_builder) -> None:
    path = write_config_file(project_builder.path(), provider="ollama", model="codellama:13b", interactive=False)

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data["ai_provider"] == "ollama"
    assert data["ai_model"] == "codellama:13b"
    assert data["interactive_mode"] is False

    config = project_builder.config()
    assert config.llm.is_local
    assert config.llm.effective_model == "codellama:13b"


def test_write_config_file_refuses_to_overwrite(project_builder) -> None:
    write_config_file(project_builder.path())
    with pytest.raises(FileExistsError):
        write_config_file(project_builder.path())
    write_config_file(project_builder.path(), provider="ollama", force=True)
    assert project_builder.config().llm.provider == "ollama"


def test_setup_rspec_creates_helpers_for_rails_app(project_builder) -> None:
    project_builder.write({"Gemfile": "gem 'rails'\n", "config/application.rb": "module App\nend\n"})

    written = setup_rspec(project_builder.path(), coverage_threshold=90)

    assert is_rails_application(project_builder.path())
    assert [path.name for path in written] == ["spec_helper.rb", "rails_helper.rb"]
    spec_helper = project_builder.path("spec/spec_helper.rb").read_text(encoding="utf-8")
    assert "minimum_coverage 90\n" in spec_helper
    assert "require 'spec_helper'" in project_builder.path("spec/rails_helper.rb").read_text(encoding="utf-8")


def test_setup_rspec_keeps_existing_helpers(project_builder) -> None:
    project_builder.write({"spec/spec_helper.rb": "# custom\n"})

    assert setup_rspec(project_builder.path()) == []
    assert project_builder.path("spec/spec_helper.rb").read_text(encoding="utf-8") == "# custom\n"
    assert not project_builder.path("spec/rails_helper.rb").exists()
