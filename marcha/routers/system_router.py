# routers/system_router.py
import json
import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from marcha.core.config import Settings
from marcha.routers.deps import get_app_settings
from marcha.utils.firebase import firestore_run

router = APIRouter(tags=["System"])
logger = logging.getLogger("marcha")


@router.get("/", include_in_schema=False)
async def root():
    return RedirectResponse(url="/docs")


@router.get("/start-app", include_in_schema=False)
async def start_app(settings: Settings = Depends(get_app_settings)):
    return RedirectResponse(url=settings.START_APP_URL, status_code=301)


@router.get("/.well-known/assetlinks.json", include_in_schema=False)
async def asset_links(settings: Settings = Depends(get_app_settings)):
    path = settings.ASSET_LINKS_PATH
    if not os.path.exists(path):
        raise HTTPException(status_code=404, detail="assetlinks.json not found")
    with open(path, "r", encoding="utf-8") as f:
        return JSONResponse(json.load(f))


@router.get("/health")
async def health_check(request: Request, settings: Settings = Depends(get_app_settings)):
    try:
        await firestore_run(request.app.state.store.ping, timeout=settings.FIRESTORE_TIMEOUT)
        return {"status": "healthy", "db": "connected"}
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})
