# main.py
# ------------------------------------------------------------------------------------
#  Clip download worker:
#  - polls the queue API for pending clip jobs (bounded by MAX_CONCURRENT_DOWNLOADS)
#  - claims each job, cuts the requested section with yt-dlp, uploads it back
#  Status surface (FastAPI):
#  - GET  /health   -> version, active downloads, counters, uptime
#  - POST /process  -> run a poll cycle now (non-blocking)
#  - GET  /pending  -> number of pending jobs on the queue API
# ------------------------------------------------------------------------------------

import logging
import sys
import time
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coordinator import Coordinator
from errors import TransportError
from processor import JobProcessor
from queue_client import QueueClient
from settings import Settings, settings as default_settings
from worker_state import WorkerState

WORKER_VERSION = "2.1.1"
UPLOAD_METHOD = "base64-json"

logger = logging.getLogger("clip-worker")


def create_app(cfg: Optional[Settings] = None, coordinator: Optional[Coordinator] = None) -> FastAPI:
    cfg = cfg or default_settings

    if coordinator is None:
        client = QueueClient(cfg.queue_api_url, cfg.worker_api_key)
        state = WorkerState(max_concurrent=cfg.max_concurrent_downloads)
        processor = JobProcessor(client, state, download_dir=cfg.download_dir, ytdlp_bin=cfg.ytdlp_bin)
        coordinator = Coordinator(client, state, processor, poll_interval_ms=cfg.poll_interval_ms)

    app = FastAPI(title="Clip Download Worker", version=WORKER_VERSION)
    app.state.settings = cfg
    app.state.coordinator = coordinator
    app.state.started = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins.split(","),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _on_startup():
        missing = cfg.missing_required()
        if missing:
            raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")
        coordinator.start()

    @app.on_event("shutdown")
    async def _on_shutdown():
        await coordinator.stop()

    # ---------- Health ----------
    @app.get("/health")
    def health():
        return {
            "status": "healthy",
            "version": WORKER_VERSION,
            "uploadMethod": UPLOAD_METHOD,
            **coordinator.state.snapshot(),
            "uptime": time.monotonic() - app.state.started,
        }

    # ---------- Manual trigger ----------
    @app.post("/process")
    async def process():
        if not coordinator.trigger():
            return {"message": "Already processing", "activeDownloads": coordinator.state.active_downloads}
        return {"message": "Processing started", "activeDownloads": coordinator.state.active_downloads}

    # ---------- Queue depth ----------
    @app.get("/pending")
    async def pending():
        try:
            jobs = await coordinator.client.fetch_pending_jobs(100)
        except TransportError as e:
            return JSONResponse(status_code=500, content={"error": str(e)})
        return {"pending": len(jobs)}

    return app


app = create_app()


def run():
    import uvicorn

    logging.basicConfig(
        level=default_settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    missing = default_settings.missing_required()
    if missing:
        logger.critical("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    logger.info("=" * 60)
    logger.info("Clip download worker v%s", WORKER_VERSION)
    logger.info("Server: http://localhost:%s", default_settings.port)
    logger.info("Poll interval: %sms", default_settings.poll_interval_ms)
    logger.info("Max concurrent: %s", default_settings.max_concurrent_downloads)
    logger.info("API URL: %s", "set" if default_settings.queue_api_url else "missing")
    logger.info("Upload: %s", UPLOAD_METHOD)
    logger.info("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=default_settings.port, log_level=default_settings.log_level.lower())


if __name__ == "__main__":
    run()
