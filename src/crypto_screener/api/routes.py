from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from ..models import ScreenerSettings
from ..runtime import ScreenerRuntime, get_runtime

router = APIRouter()


class SettingsUpdateResponse(BaseModel):
    settings: dict[str, Any]
    refresh_triggered: bool


def _settings_payload(settings: ScreenerSettings) -> dict[str, Any]:
    return settings.model_dump(mode="json", by_alias=True)


@router.get("/results")
async def get_results(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, object]:
    latest = runtime.scheduler.latest_result
    return {
        "available": latest is not None,
        "result": latest.as_dict() if latest else None,
        "scheduler": runtime.scheduler.status().as_dict(),
    }


@router.post("/results/run")
async def run_screener(
    settings: ScreenerSettings | None = Body(default=None),
    runtime: ScreenerRuntime = Depends(get_runtime),
) -> dict[str, object]:
    result = await runtime.scheduler.trigger_run(settings)
    return result.as_dict()


@router.get("/settings")
async def get_screener_settings(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, Any]:
    return _settings_payload(runtime.scheduler.screener_settings)


@router.get("/settings/defaults")
async def get_default_settings() -> dict[str, Any]:
    return _settings_payload(ScreenerSettings())


@router.put("/settings", response_model=SettingsUpdateResponse)
async def update_screener_settings(
    settings: ScreenerSettings,
    runtime: ScreenerRuntime = Depends(get_runtime),
) -> SettingsUpdateResponse:
    refresh = runtime.scheduler.update_settings(settings)
    return SettingsUpdateResponse(settings=_settings_payload(settings), refresh_triggered=refresh)


@router.get("/cache")
async def cache_status(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, object]:
    entries = runtime.cache.snapshot()
    return {
        "size": runtime.cache.size(),
        "ttl_seconds": runtime.cache.ttl_seconds,
        "entries": [asdict(entry) for entry in entries],
    }


@router.delete("/cache")
async def clear_cache(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, object]:
    cleared = runtime.cache.size()
    runtime.cache.clear()
    return {"cleared": cleared, "size": runtime.cache.size()}


@router.get("/scheduler/status")
async def scheduler_status(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, object]:
    return {"scheduler": runtime.scheduler.status().as_dict()}


@router.post("/scheduler/pause")
async def pause_scheduler(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, object]:
    await runtime.scheduler.pause()
    return {"status": "paused", "scheduler": runtime.scheduler.status().as_dict()}


@router.post("/scheduler/resume")
async def resume_scheduler(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, object]:
    await runtime.scheduler.resume()
    return {"status": "running", "scheduler": runtime.scheduler.status().as_dict()}


@router.post("/scheduler/trigger")
async def trigger_scheduler(runtime: ScreenerRuntime = Depends(get_runtime)) -> dict[str, object]:
    result = await runtime.scheduler.trigger_run()
    return {
        "triggered_at": result.generated_at.isoformat(),
        "failed": result.failed,
        "scheduler": runtime.scheduler.status().as_dict(),
    }
