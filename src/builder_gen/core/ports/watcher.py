from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, Protocol

SourcesChanged = Callable[[set[Path]], Coroutine[Any, Any, None]]


class SourceWatcherPort(Protocol):
    """Reports Rust sources under a directory that need their builders regenerated."""

    @property
    def directory(self) -> Path: ...

    def sources(self) -> set[Path]:
        """Return every source file currently under ``directory``."""
        ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...
