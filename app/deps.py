# app/deps.py
import logging
from typing import Optional

from fastapi import HTTPException, Request
from supabase import create_client, Client

from . import config
from .cache import ServiceCache

log = logging.getLogger("uvicorn.error")

_sb = None


def _ensure_client() -> Client:
    global _sb
    if _sb is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
            # defer failure until a Supabase-using endpoint is called
            raise RuntimeError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
        _sb = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)
    return _sb


def get_supabase() -> Client:
    try:
        return _ensure_client()
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))


def get_optional_supabase() -> Optional[Client]:
    """Like get_supabase, but lets callers with a local fallback carry on."""
    try:
        return _ensure_client()
    except RuntimeError as e:
        log.warning(f"Supabase unavailable: {e}")
        return None


def get_cache(request: Request) -> ServiceCache:
    return request.app.state.cache
