"""FastAPI Server - JTL Sync Worker"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config.settings import SCHEDULER_SHUTDOWN_WAIT_SECONDS
from modules.jtl_sync.services.stats_tracker import StatsTracker
from modules.jtl_sync.services.sync_runner import SyncRunner
from modules.jtl_sync.shops import ShopRegistry
from modules.shared.connectors.jtl.service import JtlOrderWriter
from modules.shared.database.repositories.virtuemart.order_repository import VirtueMartOrderRepository
from modules.shared.database import close_all_engines
from modules.shared.errors import (
    CatastrophicRunFailure, InvalidSchedule, JobNotFound
)
from modules.shared.logging import app_logger, log_service
from workers.job_models import JobDefinition
from workers.worker_service import SchedulerService
from workers.workers_config import JobStore


class JobUpdate(BaseModel):
    """Teil-Update eines Jobs, nur gesetzte Felder werden übernommen"""
    name: Optional[str] = None
    schedule_kind: Optional[str] = None
    schedule_value: Optional[str] = None
    interval_minutes: Optional[int] = None
    shop_ids: Optional[List[str]] = None
    enabled: Optional[bool] = None


class RunNowRequest(BaseModel):
    shop_ids: List[str] = []
    lookback_hours: Optional[int] = None


def build_service() -> SchedulerService:
    """Verdrahte Shop-Config, VirtueMart-Quelle, JTL-Ziel und Scheduler"""
    shops = ShopRegistry()
    shops.load()
    runner = SyncRunner(
        shops,
        source=VirtueMartOrderRepository(),
        target=JtlOrderWriter(),
        stats_tracker=StatsTracker()
    )
    return SchedulerService(JobStore(), runner)


def create_app(service: Optional[SchedulerService] = None, autostart: bool = True) -> FastAPI:
    """Erzeuge die App; ohne `service` wird die Standard-Verdrahtung beim Start gebaut"""

    # Lifespan Context Manager (moderner als @app.on_event)
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup und Shutdown Events"""
        try:
            if app.state.scheduler is None:
                app.state.scheduler = build_service()
            if autostart:
                app.state.scheduler.start()
        except Exception as e:
            app_logger.error(f"Fehler beim Starten des Schedulers: {e}", exc_info=True)
            raise

        yield

        try:
            app.state.scheduler.stop()
            if not app.state.scheduler.wait_idle(timeout=SCHEDULER_SHUTDOWN_WAIT_SECONDS):
                app_logger.warning("Laufende Syncs nach Timeout abgebrochen")
                app.state.scheduler.abort_sync()
                app.state.scheduler.wait_idle(timeout=SCHEDULER_SHUTDOWN_WAIT_SECONDS)
            close_all_engines()
        except Exception as e:
            app_logger.error(f"Fehler beim Stoppen des Schedulers: {e}", exc_info=True)

    app = FastAPI(
        title="JTL Sync Worker",
        version="2.0.0",
        lifespan=lifespan
    )
    app.state.scheduler = service

    # CORS aktivieren (für localhost Entwicklung)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def scheduler() -> SchedulerService:
        if app.state.scheduler is None:
            raise HTTPException(status_code=503, detail="Scheduler nicht initialisiert")
        return app.state.scheduler

    @app.get("/api/health")
    async def health():
        """Health Check"""
        running = app.state.scheduler is not None and app.state.scheduler.is_running
        return {"status": "ok", "scheduler_running": running, "timestamp": datetime.now().isoformat()}

    # ===== JOBS =====

    @app.get("/api/jobs")
    async def get_jobs():
        """Gib alle Jobs zurück"""
        return scheduler().get_all_jobs()

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: str):
        status = scheduler().get_job_status(job_id)
        if status is None:
            raise HTTPException(status_code=404, detail=str(JobNotFound(job_id)))
        return status

    @app.post("/api/jobs", status_code=201)
    async def add_job(definition: JobDefinition):
        try:
            job_id = scheduler().add_job(definition)
        except InvalidSchedule as e:
            raise HTTPException(status_code=422, detail=str(e))
        return {"status": "created", "job_id": job_id}

    @app.patch("/api/jobs/{job_id}")
    async def update_job(job_id: str, update: JobUpdate):
        fields = update.model_dump(exclude_unset=True)
        try:
            job = scheduler().update_job(job_id, **fields)
        except JobNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        except (InvalidSchedule, ValueError) as e:
            raise HTTPException(status_code=422, detail=str(e))
        return job.model_dump(mode="json")

    @app.delete("/api/jobs/{job_id}")
    async def remove_job(job_id: str):
        removed = scheduler().remove_job(job_id)
        return {"status": "removed" if removed else "unknown", "job_id": job_id}

    @app.post("/api/jobs/{job_id}/toggle")
    async def toggle_job(job_id: str):
        """Enable/Disable Job"""
        try:
            job = scheduler().toggle_enabled(job_id)
        except JobNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        return {"status": "toggled", "job_id": job_id, "enabled": job.enabled}

    # ===== SCHEDULER =====

    @app.post("/api/scheduler/start")
    async def start_scheduler():
        started = scheduler().start()
        return {"status": "started" if started else "already_running"}

    @app.post("/api/scheduler/stop")
    def stop_scheduler():
        # sync: wartet auf laufenden Tick (nicht auf Sync-Läufe)
        stopped = scheduler().stop()
        return {"status": "stopped" if stopped else "not_running"}

    # ===== SYNC =====

    @app.post("/api/sync/run-now")
    def run_now(request: RunNowRequest):
        """Manueller Lauf, blockiert bis alle Shops fertig sind"""
        try:
            result = scheduler().trigger_run_now(request.shop_ids, request.lookback_hours)
        except CatastrophicRunFailure as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return result.model_dump(mode="json")

    @app.post("/api/sync/abort")
    async def abort_sync():
        return {"status": "ok", "aborted_runs": scheduler().abort_sync()}

    @app.get("/api/stats/{shop_id}")
    async def get_stats(shop_id: str):
        stats = scheduler().get_stats(shop_id)
        if stats is None:
            raise HTTPException(status_code=404, detail=f"Keine Statistik für Shop '{shop_id}'")
        return stats.model_dump(mode="json")

    # ===== LOGS =====

    @app.get("/api/logs")
    async def get_logs(job_id: str = None, level: str = None, limit: int = 100, offset: int = 0):
        """Hole Logs mit Filtern"""
        return log_service.get_logs(job_id, level, limit, offset)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
