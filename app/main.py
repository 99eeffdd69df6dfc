# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .appointments import router as appointments_router
from .auth import router as auth_router
from .cache import ServiceCache
from .dashboard import router as dashboard_router
from .deps import get_supabase
from .services import router as services_router

log = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # offline cache always starts empty
    app.state.cache = ServiceCache()
    if not config.SESSION_SECRET:
        log.warning("SESSION_SECRET not set; sessions cannot be issued or verified")
    log.info("Offline service cache initialised")
    yield
    app.state.cache.clear()


app = FastAPI(
    title="Shop Service API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

# ──────────────────────────────────────────────────────────────────────────────
# CORS
# ──────────────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ──────────────────────────────────────────────────────────────────────────────
# Root + Health
# ──────────────────────────────────────────────────────────────────────────────
@app.get("/", tags=["default"])
def root():
    return {"ok": True, "service": "shop-service-api"}


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/health/db", tags=["health"])
def health_db(sb=Depends(get_supabase)):
    """Ping the Supabase services table."""
    try:
        sb.table(config.SERVICES_TABLE).select("id").limit(1).execute()
        return {"ok": True, "db": "up"}
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"DB check failed: {e}")


# routers
app.include_router(auth_router)
app.include_router(services_router)
app.include_router(dashboard_router)
app.include_router(appointments_router)


# ──────────────────────────────────────────────────────────────────────────────
# Local dev entrypoint
# ──────────────────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=True,
    )
