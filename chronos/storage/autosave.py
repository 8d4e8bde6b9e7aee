"""Debounced saving for rapid successive edits."""

import asyncio
import logging
from enum import Enum

from ..journal import DailyEntry
from .service import SaveResult, StorageService

logger = logging.getLogger(__name__)


class SaveState(Enum):
    """What a save indicator should show."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"


class DebouncedSaver:
    """Collects edits and saves only the latest version of each entry.

    Every schedule() restarts the delay. When it elapses, each entry
    scheduled since the last save is written once through the storage
    service. Batches are saved one after another.
    """

    def __init__(
        self,
        storage: StorageService,
        delay_seconds: float = 0.8,
        saved_display_seconds: float = 1.5,
    ):
        """Initialize the saver.

        Args:
            storage: Service that performs the actual saves.
            delay_seconds: Quiet period before pending edits are saved.
            saved_display_seconds: How long the status stays "saved".
        """
        self._storage = storage
        self.delay_seconds = delay_seconds
        self.saved_display_seconds = saved_display_seconds
        self._pending: dict[str, tuple[DailyEntry, str | None]] = {}
        self._timer: asyncio.Task | None = None
        self._reset_task: asyncio.Task | None = None
        self._save_lock = asyncio.Lock()
        self.status = SaveState.IDLE
        self.last_results: dict[str, SaveResult] = {}

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def pending_entry(self, entry_id: str) -> DailyEntry | None:
        """The not-yet-saved version of an entry, if any."""
        pending = self._pending.get(entry_id)
        return pending[0] if pending else None

    def schedule(self, entry: DailyEntry, user_id: str | None = None) -> None:
        """Queue an entry for saving and restart the delay.

        Must be called from a running event loop.
        """
        self._pending[entry.id] = (entry, user_id)
        self.status = SaveState.SAVING
        self._cancel_task(self._reset_task)
        self._cancel_task(self._timer)
        self._timer = asyncio.get_running_loop().create_task(self._delayed_save())

    async def _delayed_save(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        # A later schedule() must not interrupt a save already under way
        await asyncio.shield(self._save_pending())

    async def _save_pending(self) -> list[SaveResult]:
        # One batch at a time, so an older version never lands after a newer one
        async with self._save_lock:
            return await self._save_batch()

    async def _save_batch(self) -> list[SaveResult]:
        if not self._pending:
            return []

        batch = self._pending
        self._pending = {}
        results = []
        failed = False

        for entry, user_id in batch.values():
            try:
                result = await self._storage.save_entry(entry, user_id)
            except Exception as e:
                logger.error(f"Autosave failed for {entry.id}: {e}")
                failed = True
                continue
            self.last_results[entry.id] = result
            results.append(result)

        if self._pending:
            # Edits arrived while saving; their own timer is running
            return results

        if failed:
            self.status = SaveState.IDLE
        else:
            self.status = SaveState.SAVED
            self._reset_task = asyncio.get_running_loop().create_task(self._reset_status())
        return results

    async def _reset_status(self) -> None:
        await asyncio.sleep(self.saved_display_seconds)
        if self.status == SaveState.SAVED:
            self.status = SaveState.IDLE

    @staticmethod
    def _cancel_task(task: asyncio.Task | None) -> None:
        if task is not None and not task.done():
            task.cancel()

    async def flush(self) -> list[SaveResult]:
        """Save everything pending right away.

        Waits for a save already under way before returning.

        Returns:
            Results of the saves performed.
        """
        self._cancel_task(self._timer)
        self._timer = None
        return await self._save_pending()

    def cancel(self) -> None:
        """Drop pending edits without saving them."""
        self._cancel_task(self._timer)
        self._cancel_task(self._reset_task)
        self._timer = None
        if self._pending:
            logger.info(f"Discarding {len(self._pending)} unsaved entries")
        self._pending = {}
        self.status = SaveState.IDLE
