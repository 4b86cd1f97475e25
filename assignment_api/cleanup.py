"""
Deferred removal of per-request scratch files.
"""
import asyncio
import shutil
from pathlib import Path
from typing import Dict

from .logger import logger


def _remove_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()


class CleanupScheduler:
    """
    Removes scratch paths after a grace period.

    Pending removals are tracked so that ``shutdown`` can cancel the waits
    and remove everything immediately instead of leaving files behind.
    """

    def __init__(self, delay_seconds: float = 60.0):
        self.delay_seconds = delay_seconds
        self._pending: Dict[asyncio.Task, Path] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def remove_now(self, path: Path) -> bool:
        """Remove ``path`` in a worker thread; failures are logged, not raised."""
        try:
            await asyncio.to_thread(_remove_path, Path(path))
            logger.debug(f"Removed scratch path {path}")
            return True
        except OSError as e:
            logger.warning(f"Error cleaning up {path}: {str(e)}")
            return False

    async def schedule(self, path: Path) -> None:
        """Remove ``path`` after the configured delay (immediately if <= 0)."""
        path = Path(path)
        if self.delay_seconds <= 0:
            await self.remove_now(path)
            return

        task = asyncio.create_task(self._remove_later(path))
        self._pending[task] = path
        task.add_done_callback(lambda t: self._pending.pop(t, None))

    async def _remove_later(self, path: Path) -> None:
        await asyncio.sleep(self.delay_seconds)
        await self.remove_now(path)

    async def shutdown(self) -> None:
        """Cancel pending delays and remove their paths right away."""
        pending = dict(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        for path in pending.values():
            await self.remove_now(path)
        self._pending.clear()
