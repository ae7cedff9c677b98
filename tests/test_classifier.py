"""Tests for autotestgen.classifier."""

from __future__ import annotations

from pathlib import Path

import pytest

from autotestgen.classifier import PathClassifier
from autotestgen.models import FileKind, Framework


@pytest.mark.parametrize(
    ("path", "kind"),
    [
        ("app/models/user.rb", FileKind.MODEL),
        ("app/controllers/admin/users_controller.rb", FileKind.CONTROLLER),
        ("app/jobs/cleanup_job.rb", FileKind.JOB),
        ("app/services/billing/charge.rb", FileKind.SERVICE),
        ("app/helpers/application_helper.rb", FileKind.HELPER),
        ("app/mailers/user_mailer.rb", FileKind.MAILER),
        ("lib/util.rb", FileKind.LIBRARY),
        ("config/application.rb", FileKind.UNKNOWN),
        ("app/views/users/index.html.erb", FileKind.UNKNOWN),
    ],
)
def test_classify_uses_directory_conventions(path: str, kind: FileKind) -> None:
    assert PathClassifier().classify(path) is kind


def test_classify_does_not_match_partial_segments() -> None:
    classifier = PathClassifier()
    assert classifier.classify("myapp/models_backup/user.rb") is FileKind.UNKNOWN
    assert classifier.classify("vendor/mylib/thing.rb") is FileKind.UNKNOWN


def test_classify_resolves_absolute_paths_against_root(tmp_path: Path) -> None:
    classifier = PathClassifier(tmp_path)
    assert classifier.classify(tmp_path / "app" / "jobs" / "sync_job.rb") is FileKind.JOB


def test_test_path_for_rspec() -> None:
    classifier = PathClassifier()
    assert classifier.test_path_for("app/models/user.rb", FileKind.MODEL, Framework.RSPEC) == Path(
        "spec/models/user_spec.rb"
    )
    assert classifier.test_path_for("lib/foo/bar.rb", FileKind.LIBRARY, Framework.RSPEC) == Path(
        "spec/lib/foo/bar_spec.rb"
    )


def test_test_path_for_minitest() -> None:
    classifier = PathClassifier()
    assert classifier.test_path_for(
        "app/controllers/users_controller.rb", FileKind.CONTROLLER, Framework.MINITEST
    ) == Path("test/controllers/users_controller_test.rb")
    assert classifier.test_path_for("lib/util.rb", FileKind.LIBRARY, Framework.MINITEST) == Path(
        "test/lib/util_test.rb"
    )


def test_test_path_for_absolute_source_stays_under_root(tmp_path: Path) -> None:
    classifier = PathClassifier(tmp_path)
    derived = classifier.test_path_for(tmp_path / "app" / "models" / "user.rb", FileKind.MODEL, Framework.RSPEC)
    assert derived == tmp_path.resolve() / "spec" / "models" / "user_spec.rb"


def test_test_path_for_unknown_kind_is_none() -> None:
    assert PathClassifier().test_path_for("config/application.rb", FileKind.UNKNOWN, Framework.RSPEC) is None


def test_is_test_file_detects_location_and_suffix() -> None:
    classifier = PathClassifier()
    assert classifier.is_test_file("spec/models/user_spec.rb")
    assert classifier.is_test_file("test/models/user_test.rb")
    assert classifier.is_test_file("app/models/user_spec.rb")
    assert not classifier.is_test_file("app/models/user.rb")
    assert not classifier.is_test_file("app/models/contest.rb")


def test_nested_application_trees_are_not_classified(tmp_path: Path) -> None:
    classifier = PathClassifier(tmp_path)
    engine_model = tmp_path / "engines" / "billing" / "app" / "models" / "invoice.rb"

    assert classifier.classify(engine_model) is FileKind.UNKNOWN
    assert classifier.classify("vendor/gems/foo/lib/foo.rb") is FileKind.UNKNOWN
    assert classifier.test_path_for(engine_model, classifier.classify(engine_model), Framework.RSPEC) is None
