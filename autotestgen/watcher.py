"""Mtime polling over the watched source directories."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .logging import get_logger

POLL_INTERVAL_S = 1.0

ChangeCallback = Callable[[List[Path], List[Path], List[Path]], object]


class PollingWatcher:
    """Diffs file mtimes between polls and reports ``(modified, added, removed)``.

    Each batch is delivered synchronously; the next poll only starts once the
    callback has returned.
    """

    def __init__(
        self,
        root: Path | str,
        watch_paths: Sequence[str],
        callback: ChangeCallback,
        *,
        extensions: Sequence[str] = (".rb",),
        interval: float = POLL_INTERVAL_S,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.root = Path(root).resolve()
        self.watch_paths = list(watch_paths)
        self.callback = callback
        self.extensions = tuple(extensions)
        self.interval = interval
        self._sleep = sleep
        self._snapshot: Optional[Dict[Path, float]] = None
        self._running = False
        self.logger = get_logger("watcher")

    def directories(self) -> List[Tuple[str, Path, bool]]:
        """Return each configured watch path, its location and whether it exists."""
        entries = []
        for entry in self.watch_paths:
            directory = self.root / entry
            entries.append((entry, directory, directory.is_dir()))
        return entries

    def snapshot(self) -> Dict[Path, float]:
        mtimes: Dict[Path, float] = {}
        for _, directory, exists in self.directories():
            if not exists:
                continue
            for path in directory.rglob("*"):
                if path.suffix not in self.extensions:
                    continue
                try:
                    mtimes[path] = path.stat().st_mtime
                except OSError:
                    continue
        return mtimes

    def poll_once(self) -> bool:
        """Take a snapshot and deliver the differences; returns whether anything changed."""
        current = self.snapshot()
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            return False

        added = sorted(path for path in current if path not in previous)
        removed = sorted(path for path in previous if path not in current)
        modified = sorted(
            path for path, mtime in current.items() if path in previous and previous[path] != mtime
        )
        if not (added or removed or modified):
            return False
        self.callback(modified, added, removed)
        return True

    def start(self, *, max_polls: int | None = None) -> None:
        """Poll until interrupted (or ``max_polls`` is reached)."""
        self.logger.info("Watching %s", self.root)
        for entry, _, exists in self.directories():
            self.logger.info("  [%s] %s", "x" if exists else " ", entry)
        self._snapshot = self.snapshot()
        self._running = True
        polls = 0
        self.logger.info("Watching for changes. Press Ctrl+C to stop.")
        try:
            while self._running and (max_polls is None or polls < max_polls):
                self._sleep(self.interval)
                self.poll_once()
                polls += 1
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def stop(self) -> None:
        if self._running:
            self._running = False
            self.logger.info("Watching stopped.")


__all__ = ["PollingWatcher", "POLL_INTERVAL_S"]
