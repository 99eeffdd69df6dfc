# app/services.py
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from .auth import get_current_user, require_admin
from .deps import get_optional_supabase
from .models import (
    SERVICE_CATEGORIES,
    ApiService,
    BudgetStatus,
    BudgetUpdate,
    ServiceCategory,
    ServiceIn,
    ServiceStatus,
    ServiceType,
    SessionUser,
    StatusUpdate,
    SyncOut,
)
from .repository import ServiceRepository, StoreUnavailable, get_repository
from .storage import upload_photos

router = APIRouter(prefix="/services", tags=["services"])


def _row_to_service(row: Dict[str, Any], synced: bool) -> ApiService:
    return ApiService(
        id=row["id"],
        client_name=row["client_name"],
        phone=row["phone"],
        address=row["address"],
        service_type=row.get("service_type", "repair"),
        due_date=row["due_date"],
        status=row.get("status", "pending"),
        budget=row.get("budget") or 0,
        budget_status=row.get("budget_status", "pending"),
        photos=row.get("photos") or [],
        user_id=row["user_id"],
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        synced=synced,
    )


async def _update_or_404(repo: ServiceRepository, service_id: str, changes: Dict[str, Any]) -> ApiService:
    try:
        row, synced = await repo.update(service_id, changes)
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Service store unavailable")
    if not row:
        raise HTTPException(status_code=404, detail="Service not found")
    return _row_to_service(row, synced and not repo.cache.is_pending(service_id))


@router.get("/categories", response_model=List[ServiceCategory])
async def list_categories():
    return SERVICE_CATEGORIES


@router.post("", response_model=ApiService, status_code=201)
async def create_service(
    payload: ServiceIn,
    user: SessionUser = Depends(get_current_user),
    repo: ServiceRepository = Depends(get_repository),
):
    row, synced = await repo.create(payload.model_dump(mode="json"), user.user_id)
    return _row_to_service(row, synced)


@router.get("", response_model=List[ApiService])
async def list_services(
    status: Optional[ServiceStatus] = Query(default=None),
    budget_status: Optional[BudgetStatus] = Query(default=None),
    client_name: Optional[str] = Query(default=None, max_length=200),
    service_type: Optional[ServiceType] = Query(default=None),
    user: SessionUser = Depends(require_admin),
    repo: ServiceRepository = Depends(get_repository),
):
    """List or search orders; `client_name` is a case-insensitive substring match."""
    rows, _ = await repo.list(
        status=status,
        budget_status=budget_status,
        client_name=client_name,
        service_type=service_type,
    )
    return [_row_to_service(r, not repo.cache.is_pending(r["id"])) for r in rows]


@router.post("/sync", response_model=SyncOut)
async def sync_services(
    user: SessionUser = Depends(require_admin),
    repo: ServiceRepository = Depends(get_repository),
):
    pushed, failed = await repo.sync()
    return SyncOut(pushed=pushed, failed=failed)


@router.patch("/{service_id}/status", response_model=ApiService)
async def update_status(
    service_id: str,
    payload: StatusUpdate,
    user: SessionUser = Depends(require_admin),
    repo: ServiceRepository = Depends(get_repository),
):
    return await _update_or_404(repo, service_id, {"status": payload.status})


@router.patch("/{service_id}/budget", response_model=ApiService)
async def update_budget(
    service_id: str,
    payload: BudgetUpdate,
    user: SessionUser = Depends(require_admin),
    repo: ServiceRepository = Depends(get_repository),
):
    changes: Dict[str, Any] = {"budget_status": payload.budget_status}
    if payload.budget is not None:
        changes["budget"] = payload.budget
    return await _update_or_404(repo, service_id, changes)


@router.post("/{service_id}/photos", response_model=ApiService)
async def add_photos(
    service_id: str,
    files: List[UploadFile] = File(...),
    user: SessionUser = Depends(get_current_user),
    repo: ServiceRepository = Depends(get_repository),
    sb=Depends(get_optional_supabase),
):
    row = await repo.get(service_id)
    if not row:
        raise HTTPException(status_code=404, detail="Service not found")
    if row["user_id"] != user.user_id and not user.is_admin:
        raise HTTPException(status_code=404, detail="Service not found")

    urls = await upload_photos(sb, user.user_id, files)
    return await _update_or_404(repo, service_id, {"photos": (row.get("photos") or []) + urls})
