"""Read API over the patch history (FastAPI).

Launch:
    python -m uvicorn metascope.web.api:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from metascope.config import settings
from metascope.database import init_db
from metascope.db.history_store import HistoryStore
from metascope.errors import NetworkError, StoreError
from metascope.logging_config import EventLog, get_logger, setup_logging
from metascope.scraper.client import PatchNotesClient
from metascope.services.meta_service import MetaService
from metascope.stats.client import StatsClient

###############################################################################
# Logging --------------------------------------------------------------------
###############################################################################
setup_logging(level=settings.LOG_LEVEL)
log = get_logger(__name__)


def build_service() -> MetaService:
    """Service wired from settings (SQLite store, live HTTP clients)."""
    return MetaService(
        store=HistoryStore(),
        notes_client=PatchNotesClient(),
        stats_client=StatsClient.from_settings(),
        events=EventLog(),
    )


def create_app(service: Optional[MetaService] = None) -> FastAPI:
    svc = service or build_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if service is None:
            init_db()
        yield
        await svc.close()

    app = FastAPI(title="metascope", lifespan=lifespan)
    app.state.service = svc
    app.state.start_time = time.time()

    @app.exception_handler(NetworkError)
    async def network_error_handler(request: Request, exc: NetworkError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"error": str(exc)})

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        log.error(f"Store failure on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/health")
    async def health_check() -> JSONResponse:
        uptime = int(time.time() - app.state.start_time)
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": uptime,
            "service": "metascope",
        })

    @app.get("/liveness")
    async def liveness_check() -> Response:
        return Response(status_code=200, content="Alive")

    @app.get("/patches")
    async def available_patches() -> List[str]:
        return await svc.notes_client.fetch_available_patches()

    @app.get("/patches/latest")
    async def latest_patch() -> Optional[Dict[str, Any]]:
        snapshot = await svc.get_latest_patch()
        return snapshot.to_dict() if snapshot else None

    @app.get("/patches/{version}")
    async def patch_by_version(version: str) -> Dict[str, Any]:
        return (await svc.get_patch(version)).to_dict()

    @app.get("/patches/{version}/analysis")
    async def analyze_patch(version: str, force: bool = False) -> List[Dict[str, Any]]:
        return [d.to_dict() for d in await svc.analyze_patch(version, force)]

    @app.delete("/patches")
    async def clear_database() -> Dict[str, str]:
        await svc.clear_database()
        return {"status": "cleared"}

    @app.post("/sync")
    async def sync_patch_history() -> Dict[str, Any]:
        saved = await svc.sync_patch_history()
        return {"saved": saved}

    @app.get("/tier-list")
    async def tier_list() -> List[Dict[str, Any]]:
        return [e.to_dict() for e in await svc.get_tier_list()]

    @app.get("/history/champions/{name}")
    async def champion_history(name: str) -> List[Dict[str, Any]]:
        return [h.to_dict() for h in await svc.get_champion_history(name)]

    @app.get("/history/items/{name}")
    async def item_history(name: str) -> List[Dict[str, Any]]:
        return [h.to_dict() for h in await svc.get_item_history(name)]

    @app.get("/history/runes/{name}")
    async def rune_history(name: str) -> List[Dict[str, Any]]:
        return [h.to_dict() for h in await svc.get_rune_history(name)]

    @app.get("/items-runes/changed")
    async def changed_itemsrunes_titles() -> List[str]:
        return await svc.get_changed_itemsrunes_titles()

    @app.get("/champions")
    async def all_champions() -> List[Dict[str, str]]:
        champs = await svc.notes_client.fetch_all_champions()
        return [{"name": ru, "name_en": en, "icon_url": icon} for ru, en, icon in champs]

    @app.get("/events")
    async def recent_events() -> List[Dict[str, str]]:
        return [e.to_dict() for e in svc.events.history]

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
