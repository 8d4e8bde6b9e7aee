"""Local-first journal storage with optional cloud sync.

Every write lands in the local cache first. The cloud copy is refreshed
afterwards on a best-effort basis and is never retried automatically;
failed writes are remembered as pending until the user runs a sync.
Reads prefer the cloud copy unless the local one was saved more recently.
"""

import copy
import json
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from ..config import Config
from ..journal import (
    AppData,
    ChecklistItemConfig,
    DailyEntry,
    Note,
    compute_stats,
    default_checklist,
    empty_entry,
    local_iso_date,
)
from ..journal.defaults import now_ms
from .firestore import (
    CloudError,
    CloudPermissionError,
    CloudUnavailableError,
    FirestoreClient,
    entry_path,
)
from .local_cache import LocalCache

logger = logging.getLogger(__name__)

STORAGE_KEY = "chronos_data_v1"
NOTE_KINDS = ("principles", "essays")


class RemoteStatus(Enum):
    """Outcome of the cloud half of a save."""

    SYNCED = "synced"
    SKIPPED = "skipped"  # signed out or cloud not configured
    PERMISSION_DENIED = "permission_denied"
    OFFLINE = "offline"  # backend unreachable
    FAILED = "failed"


class SyncStatus(Enum):
    """Status of a pending-entry sync."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some entries synced
    FAILED = "failed"
    OFFLINE = "offline"  # Remote unavailable


@dataclass
class SaveResult:
    """Result of saving one entry."""

    entry: DailyEntry
    local_saved: bool
    remote_status: RemoteStatus
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_saved": self.local_saved,
            "remote_status": self.remote_status.value,
            "error": self.error,
        }


@dataclass
class SyncResult:
    """Result of pushing pending entries."""

    status: SyncStatus
    entries_pushed: int = 0
    entries_failed: int = 0
    error: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "entries_pushed": self.entries_pushed,
            "entries_failed": self.entries_failed,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


class StorageService:
    """Reads and writes journal data across the local cache and the cloud."""

    def __init__(self, cache: LocalCache, cloud: FirestoreClient | None = None):
        """Initialize the storage service.

        Args:
            cache: Local cache holding the journal envelope.
            cloud: Optional cloud document client. Without one (or with an
                unconfigured one) the service runs offline.
        """
        self.cache = cache
        self.cloud = cloud

    async def close(self) -> None:
        """Close the cache and any cloud connection."""
        self.cache.close()
        if self.cloud is not None:
            await self.cloud.close()

    @property
    def is_offline_mode(self) -> bool:
        return self.cloud is None or not self.cloud.is_configured

    def _cloud_for(self, user_id: str | None) -> FirestoreClient | None:
        """The cloud client, if one can be used for this user."""
        if not user_id or self.is_offline_mode:
            return None
        return self.cloud

    # ==================== Local Envelope ====================

    @staticmethod
    def _empty_data() -> AppData:
        return AppData(checklist_config=default_checklist())

    def load_local(self) -> AppData:
        """Load the journal envelope from the local cache.

        Returns:
            Cached AppData, or an empty one if nothing usable is stored.
        """
        try:
            raw = self.cache.get_json(STORAGE_KEY)
            if raw is None:
                return self._empty_data()
            if not isinstance(raw, dict):
                raise ValueError(f"expected an object, got {type(raw).__name__}")
            data = AppData.from_dict(raw)
        except (sqlite3.Error, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Failed to load local data: {e}")
            return self._empty_data()

        if raw.get("checklistConfig") is None:
            data.checklist_config = default_checklist()
        return data

    def save_local(self, data: AppData) -> bool:
        """Write the whole envelope to the local cache.

        Returns:
            True if the write succeeded.
        """
        try:
            self.cache.set_json(STORAGE_KEY, data.to_dict())
            return True
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error(f"Failed to save local data: {e}")
            return False

    def get_checklist_config(self) -> list[ChecklistItemConfig]:
        return self.load_local().checklist_config

    def save_checklist_config(self, config: list[ChecklistItemConfig]) -> bool:
        data = self.load_local()
        data.checklist_config = list(config)
        return self.save_local(data)

    def get_notes(self, kind: str) -> list[Note]:
        """Get the principles or essays list."""
        if kind not in NOTE_KINDS:
            raise KeyError(f"Unknown note kind: {kind}")
        return getattr(self.load_local(), kind)

    def save_notes(self, kind: str, notes: list[Note]) -> bool:
        if kind not in NOTE_KINDS:
            raise KeyError(f"Unknown note kind: {kind}")
        data = self.load_local()
        setattr(data, kind, list(notes))
        return self.save_local(data)

    # ==================== Entries ====================

    async def get_entry(self, date_str: str, user_id: str | None = None) -> DailyEntry:
        """Get the entry for a date, reconciling cloud and local copies.

        A remote document is merged over the empty defaults and replaces
        the cached copy, unless the cached copy was saved more recently.
        Cloud failures fall back to the local cache.

        Args:
            date_str: Entry key (YYYY-MM-DD).
            user_id: Signed-in user, or None when signed out.

        Returns:
            The entry, or an empty one if none exists anywhere.
        """
        cloud = self._cloud_for(user_id)
        if cloud:
            try:
                remote = await cloud.get_document(entry_path(user_id, date_str))
                if remote is not None:
                    return self._reconcile(date_str, remote)
            except CloudPermissionError as e:
                logger.error(
                    f"Permission denied reading {date_str}; "
                    f"check auth and security rules: {e}"
                )
            except (CloudError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Cloud fetch failed, using local cache: {e}")

        data = self.load_local()
        local_entry = data.entries.get(date_str)
        if local_entry is not None:
            return local_entry

        return empty_entry(date_str)

    def _reconcile(self, date_str: str, remote: dict[str, Any]) -> DailyEntry:
        remote_entry = DailyEntry.from_dict(remote, entry_id=date_str)

        data = self.load_local()
        local_entry = data.entries.get(date_str)
        if local_entry is not None and local_entry.timestamp > remote_entry.timestamp:
            logger.info(
                f"Keeping local {date_str} (saved {local_entry.timestamp}) "
                f"over older remote copy ({remote_entry.timestamp})"
            )
            return local_entry

        data.entries[date_str] = remote_entry
        self.save_local(data)
        return remote_entry

    async def save_entry(self, entry: DailyEntry, user_id: str | None = None) -> SaveResult:
        """Save an entry locally, then to the cloud.

        The entry is stamped with the current time. A failed cloud write
        is logged and marked pending; it is not retried here.

        Args:
            entry: Entry to save.
            user_id: Signed-in user, or None when signed out.

        Returns:
            SaveResult with the stamped entry and both outcomes.
        """
        saved = copy.deepcopy(entry)
        saved.timestamp = now_ms()

        data = self.load_local()
        data.entries[saved.id] = saved
        local_ok = self.save_local(data)

        cloud = self._cloud_for(user_id)
        if cloud is None:
            return SaveResult(saved, local_ok, RemoteStatus.SKIPPED)

        status, error = await self._push(cloud, saved, user_id)
        return SaveResult(saved, local_ok, status, error)

    async def _push(
        self,
        cloud: FirestoreClient,
        entry: DailyEntry,
        user_id: str,
    ) -> tuple[RemoteStatus, str | None]:
        """Write one entry to the cloud, tracking the pending marker."""
        # userId tags the document for the backend's security rules
        payload = {**entry.to_dict(), "userId": user_id, "timestamp": entry.timestamp}

        try:
            await cloud.set_document(entry_path(user_id, entry.id), payload, merge=True)
        except CloudPermissionError as e:
            logger.error(
                f"Sync blocked for {entry.id}, permission insufficient: {e}",
                extra={"entry_id": entry.id},
            )
            self._mark_pending(entry.id, user_id, str(e))
            return RemoteStatus.PERMISSION_DENIED, str(e)
        except CloudUnavailableError as e:
            logger.error(
                f"Cloud sync failed for {entry.id}, backend unavailable: {e}",
                extra={"entry_id": entry.id},
            )
            self._mark_pending(entry.id, user_id, str(e))
            return RemoteStatus.OFFLINE, str(e)
        except CloudError as e:
            logger.error(
                f"Cloud sync failed for {entry.id}: {e}", extra={"entry_id": entry.id}
            )
            self._mark_pending(entry.id, user_id, str(e))
            return RemoteStatus.FAILED, str(e)

        self._clear_pending(entry.id, user_id)
        return RemoteStatus.SYNCED, None

    def _mark_pending(self, entry_id: str, user_id: str, error: str) -> None:
        try:
            self.cache.mark_pending(entry_id, user_id, error)
        except sqlite3.Error as e:
            logger.error(
                f"Could not record pending sync for {entry_id}: {e}",
                extra={"entry_id": entry_id},
            )

    def _clear_pending(self, entry_id: str, user_id: str) -> None:
        try:
            self.cache.clear_pending(entry_id, user_id)
        except sqlite3.Error as e:
            logger.error(
                f"Could not clear pending sync for {entry_id}: {e}",
                extra={"entry_id": entry_id},
            )

    async def push_pending(self, user_id: str | None) -> SyncResult:
        """Upload cached entries whose cloud write has not succeeded.

        Each pending entry is attempted once. Stops early if the backend
        turns out to be unreachable.

        Args:
            user_id: Owner of the pending writes.

        Returns:
            SyncResult with push statistics.
        """
        cloud = self._cloud_for(user_id)
        if cloud is None:
            return SyncResult(
                status=SyncStatus.FAILED,
                error="Cloud sync is not configured or no user is signed in",
            )

        pending = self.cache.get_pending(user_id)
        if not pending:
            return SyncResult(status=SyncStatus.SUCCESS)

        data = self.load_local()
        pushed = 0
        failed = 0
        last_error = None

        for row in pending:
            entry = data.entries.get(row["entry_id"])
            if entry is None:
                # Nothing left locally to upload
                self._clear_pending(row["entry_id"], user_id)
                continue

            status, error = await self._push(cloud, entry, user_id)
            if status == RemoteStatus.SYNCED:
                pushed += 1
                continue

            failed += 1
            last_error = error
            if status == RemoteStatus.OFFLINE:
                return SyncResult(
                    status=SyncStatus.OFFLINE,
                    entries_pushed=pushed,
                    entries_failed=failed,
                    error=error,
                )

        if failed == 0:
            status = SyncStatus.SUCCESS
        elif pushed > 0:
            status = SyncStatus.PARTIAL
        else:
            status = SyncStatus.FAILED

        logger.info(f"Sync: {status.value}, pushed={pushed}, failed={failed}")
        return SyncResult(
            status=status,
            entries_pushed=pushed,
            entries_failed=failed,
            error=last_error,
        )

    # ==================== Export & Stats ====================

    def export_data(self) -> str:
        """The whole local envelope as pretty-printed JSON."""
        return json.dumps(self.load_local().to_dict(), indent=2)

    def export_to_file(self, directory: str | Path) -> Path:
        """Write an archive file and return its path."""
        out_dir = Path(directory).expanduser()
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"chronos_archive_{local_iso_date()}.json"
        path.write_text(self.export_data(), encoding="utf-8")
        logger.info(f"Exported archive to {path}")
        return path

    def get_stats(self, user_id: str | None = None) -> dict[str, Any]:
        """Journal and cache statistics."""
        data = self.load_local()
        stats = {
            "journal": compute_stats(data.entries, data.checklist_config),
            "principles_count": len(data.principles),
            "essays_count": len(data.essays),
            "offline_mode": self.is_offline_mode,
        }
        stats.update(self.cache.get_stats())
        if user_id:
            stats["pending_entries"] = len(self.cache.get_pending(user_id))
        return stats


def create_storage(config: Config) -> StorageService:
    """Build a connected StorageService from configuration."""
    cache = LocalCache(config.storage.db_path)
    cache.connect()

    cloud = None
    if config.cloud.is_configured:
        cloud = FirestoreClient(
            project_id=config.cloud.project_id,
            api_key=config.cloud.api_key,
            id_token=config.cloud.id_token,
            base_url=config.cloud.base_url,
            database=config.cloud.database,
            timeout=config.cloud.timeout_seconds,
        )
    else:
        logger.info("Cloud sync not configured, running in offline mode")

    return StorageService(cache, cloud)
