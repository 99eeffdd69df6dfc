# app/storage.py
import asyncio
import logging
import time
from typing import List, Tuple

from fastapi import HTTPException, UploadFile

from . import config

log = logging.getLogger("uvicorn.error")


def photo_path(user_id: str, filename: str, ts_ms: int) -> str:
    safe = (filename or "photo").replace("/", "_")
    return f"{user_id}/{ts_ms}_{safe}"


def _upload(sb, path: str, content: bytes, content_type: str) -> str:
    if sb is None:
        raise RuntimeError("Supabase not configured")
    bucket = sb.storage.from_(config.PHOTO_BUCKET)
    bucket.upload(path, content, {"content-type": content_type})
    return bucket.get_public_url(path)


async def _read_capped(files: List[UploadFile]) -> List[Tuple[UploadFile, bytes]]:
    out = []
    for f in files:
        content = await f.read(config.MAX_PHOTO_BYTES + 1)
        if len(content) > config.MAX_PHOTO_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"Photo {f.filename} exceeds {config.MAX_PHOTO_BYTES} bytes",
            )
        out.append((f, content))
    return out


async def upload_photos(sb, user_id: str, files: List[UploadFile]) -> List[str]:
    """Upload each file and return its public URL.

    Every file is size-checked before anything is uploaded. A failed upload
    yields the placeholder URL so the order still gets one entry per
    submitted photo.
    """
    urls = []
    for f, content in await _read_capped(files):
        path = photo_path(user_id, f.filename, int(time.time() * 1000))
        try:
            url = await asyncio.to_thread(_upload, sb, path, content, f.content_type or "application/octet-stream")
        except Exception as e:
            log.warning(f"Photo upload failed for {path}, using placeholder: {e!r}")
            url = config.PHOTO_PLACEHOLDER_URL
        urls.append(url)
    return urls
