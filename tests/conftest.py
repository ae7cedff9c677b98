from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def project_builder(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    monkeypatch.delenv("AUTOTEST_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return ProjectBuilder(tmp_path)
