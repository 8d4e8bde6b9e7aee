"""FastAPI JSON API over the journal storage."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import Response

from ..config import Config
from ..journal import (
    COMMON_EMOTIONS,
    MOOD_LABELS,
    ChecklistItemConfig,
    DailyEntry,
    local_iso_date,
    mood_label,
    parse_iso_date,
)
from ..journal import editing
from ..storage import DebouncedSaver, StorageService

logger = logging.getLogger(__name__)


def _check_date(date_str: str) -> str:
    try:
        parse_iso_date(date_str)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {date_str}")
    return date_str


def _entry_response(entry: DailyEntry, **extra: Any) -> dict[str, Any]:
    response = {
        "entry": entry.to_dict(),
        "mood_label": mood_label(entry.state.mood),
    }
    response.update(extra)
    return response


def create_app(
    config: Config,
    storage: StorageService,
    saver: DebouncedSaver | None = None,
) -> FastAPI:
    """Create the Chronos API application.

    Args:
        config: Application configuration.
        storage: Storage service for entries and settings.
        saver: Optional debounced saver for field edits. One is built
            from the save settings if not given.

    Returns:
        Configured FastAPI application.
    """
    if saver is None:
        saver = DebouncedSaver(
            storage,
            delay_seconds=config.save.debounce_seconds,
            saved_display_seconds=config.save.saved_display_seconds,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if saver.has_pending:
            logger.info("Flushing unsaved edits before shutdown")
            await saver.flush()

    app = FastAPI(
        title="Chronos",
        description="Local-first personal journal with optional cloud sync",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store references for route handlers
    app.state.config = config
    app.state.storage = storage
    app.state.saver = saver

    user_id = config.cloud.user_id

    async def current_entry(date_str: str) -> DailyEntry:
        """Latest known version, including edits not yet saved."""
        pending = saver.pending_entry(date_str)
        if pending is not None:
            return pending
        return await storage.get_entry(date_str, user_id)

    # ==================== Status ====================

    @app.get("/api/health")
    async def api_health() -> dict[str, Any]:
        """Health check endpoint.

        Always returns 200 OK even if the cloud is unavailable.
        """
        health = {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "app_name": config.app.name,
            "offline_mode": storage.is_offline_mode,
            "components": {
                "cache": True,
                "cloud": storage.cloud is not None,
                "signed_in": user_id is not None,
            },
        }

        try:
            health["components"]["cache_keys"] = storage.cache.get_stats()["keys_count"]
        except Exception as e:
            health["components"]["cache"] = False
            health["components"]["cache_error"] = str(e)

        if storage.cloud is not None:
            health["components"]["cloud_reachable"] = await storage.cloud.health_check()

        return health

    @app.get("/api/meta")
    async def api_meta() -> dict[str, Any]:
        return {
            "today": local_iso_date(),
            "mood_labels": MOOD_LABELS,
            "emotions": COMMON_EMOTIONS,
        }

    @app.get("/api/stats")
    async def api_stats() -> dict[str, Any]:
        stats = {
            "app_name": config.app.name,
            "timestamp": datetime.now().isoformat(),
            "save_status": saver.status.value,
        }
        stats.update(storage.get_stats(user_id))
        return stats

    # ==================== Entries ====================

    @app.get("/api/entries/{date_str}")
    async def api_get_entry(date_str: str) -> dict[str, Any]:
        entry = await current_entry(_check_date(date_str))
        return _entry_response(entry, save_status=saver.status.value)

    @app.put("/api/entries/{date_str}")
    async def api_put_entry(
        date_str: str,
        payload: dict[str, Any] = Body(...),
    ) -> dict[str, Any]:
        """Replace an entry and save it immediately."""
        _check_date(date_str)
        try:
            entry = DailyEntry.from_dict(payload, entry_id=date_str)
        except (AttributeError, TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=f"Malformed entry: {e}")

        # Debounced edits land first so they cannot overwrite this save later
        await saver.flush()
        result = await storage.save_entry(entry, user_id)
        return _entry_response(result.entry, save=result.to_dict())

    @app.patch("/api/entries/{date_str}/{section}")
    async def api_patch_section(
        date_str: str,
        section: str,
        payload: dict[str, Any] = Body(...),
    ) -> dict[str, Any]:
        """Merge fields into one section; the save is debounced."""
        entry = await current_entry(_check_date(date_str))
        try:
            updated = editing.update_section(entry, section, **payload)
        except KeyError as e:
            raise HTTPException(status_code=400, detail=str(e.args[0]))
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))

        saver.schedule(updated, user_id)
        return _entry_response(updated, save_status=saver.status.value)

    @app.post("/api/entries/{date_str}/checklist/{item_id}/toggle")
    async def api_toggle_item(date_str: str, item_id: str) -> dict[str, Any]:
        _check_date(date_str)
        await saver.flush()
        entry = await storage.get_entry(date_str, user_id)
        result = await storage.save_entry(
            editing.toggle_checklist_item(entry, item_id), user_id
        )
        return _entry_response(result.entry, save=result.to_dict())

    @app.post("/api/entries/flush")
    async def api_flush() -> dict[str, Any]:
        results = await saver.flush()
        return {
            "saved": [r.entry.id for r in results],
            "results": {r.entry.id: r.to_dict() for r in results},
        }

    # ==================== Checklist ====================

    def _checklist_response() -> dict[str, Any]:
        items = storage.get_checklist_config()
        return {
            "items": [c.to_dict() for c in items],
            "enabled": [c.id for c in editing.enabled_items(items)],
        }

    @app.get("/api/checklist")
    async def api_get_checklist() -> dict[str, Any]:
        return _checklist_response()

    @app.put("/api/checklist")
    async def api_put_checklist(
        items: list[dict[str, Any]] = Body(...),
    ) -> dict[str, Any]:
        try:
            config_items = [ChecklistItemConfig(**item) for item in items]
        except TypeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        storage.save_checklist_config(config_items)
        return _checklist_response()

    @app.post("/api/checklist/items")
    async def api_add_item(
        payload: dict[str, Any] = Body(default={}),
    ) -> dict[str, Any]:
        label = payload.get("label") or "New Habit"
        storage.save_checklist_config(
            editing.add_checklist_item(storage.get_checklist_config(), label)
        )
        return _checklist_response()

    @app.patch("/api/checklist/items/{item_id}")
    async def api_update_item(
        item_id: str,
        payload: dict[str, Any] = Body(...),
    ) -> dict[str, Any]:
        items = storage.get_checklist_config()
        if not any(c.id == item_id for c in items):
            raise HTTPException(status_code=404, detail=f"Unknown item: {item_id}")

        if "label" in payload:
            items = editing.rename_checklist_item(items, item_id, payload["label"])
        if "enabled" in payload:
            items = editing.set_checklist_item_enabled(
                items, item_id, bool(payload["enabled"])
            )
        storage.save_checklist_config(items)
        return _checklist_response()

    @app.delete("/api/checklist/items/{item_id}")
    async def api_remove_item(item_id: str) -> dict[str, Any]:
        storage.save_checklist_config(
            editing.remove_checklist_item(storage.get_checklist_config(), item_id)
        )
        return _checklist_response()

    # ==================== Archive & Sync ====================

    @app.get("/api/export")
    async def api_export() -> Response:
        filename = f"chronos_archive_{local_iso_date()}.json"
        return Response(
            content=storage.export_data(),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/api/sync")
    async def api_sync() -> dict[str, Any]:
        """Push entries whose cloud write failed earlier."""
        await saver.flush()
        result = await storage.push_pending(user_id)
        return result.to_dict()

    return app
