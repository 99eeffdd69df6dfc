# app/models.py
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

ServiceType = Literal["repair", "maintenance", "installation"]
ServiceStatus = Literal["pending", "active", "completed"]
BudgetStatus = Literal["pending", "approved", "rejected"]
Role = Literal["admin", "user"]


# ──────────────────────────────────────────────────────────────────────────────
# Auth
# ──────────────────────────────────────────────────────────────────────────────
class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SessionUser(BaseModel):
    user_id: str
    email: str
    role: Role = "user"
    mode: Literal["remote", "local"] = "remote"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: SessionUser


# ──────────────────────────────────────────────────────────────────────────────
# Service orders
# ──────────────────────────────────────────────────────────────────────────────
class ServiceIn(BaseModel):
    client_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    service_type: ServiceType = "repair"
    due_date: date
    budget: float = Field(default=0, ge=0)
    budget_status: BudgetStatus = "pending"


class ApiService(BaseModel):
    id: str
    client_name: str
    phone: str
    address: str
    service_type: ServiceType
    due_date: date
    status: ServiceStatus
    budget: float = 0
    budget_status: BudgetStatus
    photos: List[str] = []
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    synced: bool = True


class StatusUpdate(BaseModel):
    status: ServiceStatus


class BudgetUpdate(BaseModel):
    budget_status: BudgetStatus
    budget: Optional[float] = Field(default=None, ge=0)


class SyncOut(BaseModel):
    pushed: List[str]
    failed: List[str]


class ServiceCategory(BaseModel):
    id: ServiceType
    title: str
    description: str


SERVICE_CATEGORIES = [
    ServiceCategory(
        id="repair",
        title="Repair",
        description="Repair of wooden equipment and structures.",
    ),
    ServiceCategory(
        id="maintenance",
        title="Maintenance",
        description="Preventive and corrective maintenance of furniture and structures.",
    ),
    ServiceCategory(
        id="installation",
        title="Installation",
        description="Installation of new furniture, flooring and wooden structures.",
    ),
]


# ──────────────────────────────────────────────────────────────────────────────
# Dashboard
# ──────────────────────────────────────────────────────────────────────────────
class DashboardStats(BaseModel):
    active_services: int = 0
    completed_today: int = 0
    pending_services: int = 0
    pending_budget_services: int = 0
    approved_budget_services: int = 0
    rejected_budget_services: int = 0
    source: Literal["remote", "cache"] = "remote"


# ──────────────────────────────────────────────────────────────────────────────
# Appointments
# ──────────────────────────────────────────────────────────────────────────────
class SlotsOut(BaseModel):
    date: date
    slots: List[str]
    notice: Optional[str] = None


class AppointmentIn(BaseModel):
    name: str = Field(..., min_length=1)
    whatsapp: str = Field(..., min_length=1)
    service_id: str = Field(..., min_length=1)
    service_title: str = Field(..., min_length=1)
    service_price: str = ""
    date: date
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$")


class ApiAppointment(BaseModel):
    id: Optional[str] = None
    name: str
    whatsapp: str
    service: str
    service_text: str
    date: date
    time: str
    status: str = "confirmed"


class BlockIn(BaseModel):
    date: date
    times: List[str] = Field(..., min_length=1)


class BlockOut(BaseModel):
    date: date
    blocked: List[str]
