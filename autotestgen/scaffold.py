"""Project initialisation: config file and RSpec helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml

from .config import CONFIG_FILENAME, DEFAULT_EXCLUDE_PATHS, DEFAULT_WATCH_PATHS
from .logging import get_logger

_SPEC_HELPER = """\
# frozen_string_literal: true

require 'simplecov'
SimpleCov.start 'rails' do
  add_filter '/vendor/'
  add_filter '/spec/'
  minimum_coverage {threshold}
end

RSpec.configure do |config|
  config.expect_with :rspec do |expectations|
    expectations.include_chain_clauses_in_custom_matcher_descriptions = true
  end

  config.mock_with :rspec do |mocks|
    mocks.verify_partial_doubles = true
  end

  config.shared_context_metadata_behavior = :apply_to_host_groups
  config.filter_run_when_matching :focus
  config.example_status_persistence_file_path = "spec/examples.txt"
  config.disable_monkey_patching!
  config.warnings = true

  config.default_formatter = "doc" if config.files_to_run.one?

  config.profile_examples = 10
  config.order = :random
  Kernel.srand config.seed
end
"""

_RAILS_HELPER = """\
# frozen_string_literal: true

require 'spec_helper'
ENV['RAILS_ENV'] ||= 'test'
require_relative '../config/environment'

abort("The Rails environment is running in production mode!") if Rails.env.production?
require 'rspec/rails'

begin
  ActiveRecord::Migration.maintain_test_schema!
rescue ActiveRecord::PendingMigrationError => e
  abort e.to_s.strip
end

RSpec.configure do |config|
  config.fixture_paths = ["#{::Rails.root}/spec/fixtures"]
  config.use_transactional_fixtures = true
  config.infer_spec_type_from_file_location!
  config.filter_rails_from_backtrace!
end
"""

logger = get_logger("scaffold")


def write_config_file(
    root: Path,
    *,
    provider: str = "openai",
    model: str | None = None,
    interactive: bool = True,
    force: bool = False,
) -> Path:
    """Write a starter .autotest.yml; refuses to overwrite unless ``force``."""
    config_path = root / CONFIG_FILENAME
    if config_path.exists() and not force:
        raise FileExistsError(f"{CONFIG_FILENAME} already exists at {config_path}. Use --force to overwrite.")

    data: Dict[str, Any] = {"ai_provider": provider}
    if model:
        data["ai_model"] = model
    data.update(
        {
            "interactive_mode": interactive,
            "auto_run_tests": True,
            "coverage_threshold": 80,
            "watch_paths": list(DEFAULT_WATCH_PATHS),
            "exclude_paths": list(DEFAULT_EXCLUDE_PATHS),
        }
    )
    header = "# autotestgen configuration\n"
    config_path.write_text(header + yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    logger.info("Configuration saved to %s", config_path)
    return config_path


def is_rails_application(root: Path) -> bool:
    return (root / "config" / "application.rb").is_file() and (root / "Gemfile").is_file()


def setup_rspec(root: Path, *, coverage_threshold: float = 80) -> List[Path]:
    """Create spec helpers that do not exist yet; returns the files written."""
    written: List[Path] = []
    spec_dir = root / "spec"
    spec_helper = spec_dir / "spec_helper.rb"
    if not spec_helper.exists():
        spec_dir.mkdir(parents=True, exist_ok=True)
        threshold = int(coverage_threshold) if float(coverage_threshold).is_integer() else coverage_threshold
        spec_helper.write_text(_SPEC_HELPER.format(threshold=threshold), encoding="utf-8")
        written.append(spec_helper)

    rails_helper = spec_dir / "rails_helper.rb"
    if is_rails_application(root) and not rails_helper.exists():
        spec_dir.mkdir(parents=True, exist_ok=True)
        rails_helper.write_text(_RAILS_HELPER, encoding="utf-8")
        written.append(rails_helper)

    for path in written:
        logger.info("Created %s", path.relative_to(root).as_posix())
    return written


__all__ = ["is_rails_application", "setup_rspec", "write_config_file"]
