"""Business and project context assembled for the generation prompt."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .logging import get_logger
from .models import FileKind

_RELATION_PATTERN = re.compile(
    r"\b(?:belongs_to|has_many|has_one|has_and_belongs_to_many|inherits_from|include|extend)\s+[:\w]+"
)

_MIGRATION_LIMIT = 3


@dataclass(frozen=True)
class ProjectContext:
    """Project-level facts scanned once per builder."""

    recent_migrations: List[str] = field(default_factory=list)
    has_routes: bool = False


class ContextBuilder:
    """Joins user notes with lightweight project and file scans."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        self.logger = get_logger("context")
        self._project: Optional[ProjectContext] = None

    def build(
        self,
        path: Path | str,
        user_note: str | None = None,
        *,
        kind: FileKind | None = None,
        source: str | None = None,
    ) -> str:
        """Return the context string for ``path``; empty when there is no signal."""
        parts: List[str] = []
        if user_note and user_note.strip():
            parts.append(user_note.strip())

        project_part = self.project_context_for(path, kind)
        if project_part:
            parts.append(project_part)

        related = self.related_context(path, source=source)
        if related:
            parts.append(related)

        return "\n\n".join(parts)

    @property
    def project(self) -> ProjectContext:
        if self._project is None:
            self._project = ProjectContext(
                recent_migrations=self._recent_migrations(),
                has_routes=(self.root / "config" / "routes.rb").is_file(),
            )
            self.logger.debug(
                "Scanned project context: %d migrations, routes=%s",
                len(self._project.recent_migrations),
                self._project.has_routes,
            )
        return self._project

    def project_context_for(self, path: Path | str, kind: FileKind | None = None) -> str:
        posix = Path(path).as_posix()
        lines: List[str] = []
        if kind is FileKind.MODEL or (kind is None and "app/models/" in posix):
            migrations = self.project.recent_migrations
            if migrations:
                lines.append(f"Recent migrations: {', '.join(migrations)}")
        if kind is FileKind.CONTROLLER or (kind is None and "app/controllers/" in posix):
            if self.project.has_routes:
                lines.append("A config/routes.rb file is available for endpoint analysis")
        return "\n".join(lines)

    def related_context(self, path: Path | str, *, source: str | None = None) -> str:
        if source is None:
            try:
                source = Path(path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                return ""
        matches = _RELATION_PATTERN.findall(source)
        if not matches:
            return ""
        return f"Related declarations detected: {', '.join(matches)}"

    def _recent_migrations(self) -> List[str]:
        migrate_dir = self.root / "db" / "migrate"
        if not migrate_dir.is_dir():
            return []
        names = sorted(entry.name for entry in migrate_dir.glob("*.rb") if entry.is_file())
        return names[-_MIGRATION_LIMIT:]


__all__ = ["ContextBuilder", "ProjectContext"]
