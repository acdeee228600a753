from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from watchfiles import Change, DefaultFilter, awatch

from builder_gen.core.expand import OUTPUT_SUFFIX
from builder_gen.core.ports.watcher import SourcesChanged, SourceWatcherPort
from builder_gen.core.records import SOURCE_SUFFIX

logger = logging.getLogger(__name__)


def _is_source_file(path: Path) -> bool:
    return path.suffix == SOURCE_SUFFIX and not path.name.endswith(OUTPUT_SUFFIX)


class RustSourceFilter(DefaultFilter):
    """Pass changes to Rust sources, skipping generated ``*_builders.rs`` files."""

    ignore_dirs = (*DefaultFilter.ignore_dirs, "target")

    def __call__(self, change: Change, path: str) -> bool:
        return _is_source_file(Path(path)) and super().__call__(change, path)


class WatchfilesWatcher:
    """Regenerate-on-change watcher backed by ``watchfiles.awatch``.

    Writing a ``*_builders.rs`` file never retriggers the callback, so the
    watcher can write its output into the directory it watches.
    """

    def __init__(self, directory: str | Path, on_change: SourcesChanged) -> None:
        self._directory = Path(directory)
        self._on_change = on_change
        self._filter = RustSourceFilter()
        self._task: asyncio.Task[None] | None = None

    @property
    def directory(self) -> Path:
        return self._directory

    def sources(self) -> set[Path]:
        return {
            path
            for path in self._directory.rglob(f"*{SOURCE_SUFFIX}")
            if path.is_file() and self._filter(Change.added, str(path))
        }

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._watch())
        logger.info("Watching %s for Rust sources", self._directory)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Stopped watching %s", self._directory)

    async def _watch(self) -> None:
        async for changes in awatch(self._directory, watch_filter=self._filter):
            paths = {Path(p) for _, p in changes}
            if not paths:
                continue
            logger.info("%d Rust source(s) changed", len(paths))
            try:
                await self._on_change(paths)
            except Exception:
                logger.exception("Regenerating builders failed for %s", sorted(paths))


def create_watcher(directory: str | Path, on_change: SourcesChanged) -> SourceWatcherPort:
    return WatchfilesWatcher(directory, on_change)
