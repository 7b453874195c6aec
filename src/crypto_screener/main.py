from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config import get_settings
from .observability import PROMETHEUS_CONTENT_TYPE, generate_prometheus_metrics
from .runtime import ScreenerRuntime, get_runtime, set_runtime


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - exercised through TestClient context
    settings = get_settings()
    logger = logging.getLogger(settings.service_name)
    logger.info("Starting %s", settings.service_name)
    runtime = get_runtime()
    if settings.scheduler_enabled:
        await runtime.scheduler.start()
    else:
        logger.info("Scheduler disabled; passes run only on demand")
    yield
    logger.info("Stopping %s", settings.service_name)
    await runtime.close()
    set_runtime(None)
    logger.info("%s stopped successfully", settings.service_name)


def _configure_logging() -> None:
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if settings.log_dir:
        log_path = Path(settings.log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path / "crypto_screener.log")
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root_logger.addHandler(file_handler)


_configure_logging()
settings = get_settings()
app = FastAPI(title="Crypto Screener Service", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix="/api/screener")


@app.get("/metrics")
async def prometheus_metrics() -> Response:
    payload = generate_prometheus_metrics()
    return Response(content=payload, media_type=PROMETHEUS_CONTENT_TYPE)


@app.get("/healthz")
async def healthz(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, object]:
    status = runtime.scheduler.status()
    latest = runtime.scheduler.latest_result
    overall = "ok" if status.consecutive_failures == 0 else "degraded"
    return {
        "status": overall,
        "provider": runtime.provider.name,
        "cache_size": runtime.cache.size(),
        "last_result_at": latest.generated_at.isoformat() if latest else None,
        "scheduler": status.as_dict(),
    }
