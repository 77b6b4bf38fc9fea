"""
Instagram login routes — self-contained FastAPI router.
Mount in main.py with: app.include_router(instagram_routes.router, prefix="/auth/instagram", tags=["auth"])
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from . import instagram_auth
from .config import Settings, get_settings

router = APIRouter()


@router.get("")
def login(settings: Settings = Depends(get_settings)):
    return RedirectResponse(instagram_auth.build_authorize_url(settings), status_code=302)


@router.get("/callback")
def callback(code: Optional[str] = None, settings: Settings = Depends(get_settings)):
    return RedirectResponse(instagram_auth.handle_callback(settings, code), status_code=302)
