# app/dashboard.py
from fastapi import APIRouter, Depends

from .auth import get_current_user
from .models import DashboardStats, SessionUser
from .repository import ServiceRepository, get_repository

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardStats)
async def dashboard(
    user: SessionUser = Depends(get_current_user),
    repo: ServiceRepository = Depends(get_repository),
):
    # admins see the whole shop, everyone else only their own orders
    counts, source = await repo.stats(user_id=None if user.is_admin else user.user_id)
    return DashboardStats(**counts, source=source)
