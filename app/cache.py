# app/cache.py
"""Offline cache of service orders.

One instance lives for the lifetime of the app (created empty at start-up)
and is injected wherever the remote store can fail. Rows written while the
remote store was unreachable are flagged pending until /services/sync pushes
them.
"""
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def as_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def start_of_today(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def matches(
    row: Dict[str, Any],
    status: Optional[str] = None,
    budget_status: Optional[str] = None,
    user_id: Optional[str] = None,
    client_name: Optional[str] = None,
    service_type: Optional[str] = None,
) -> bool:
    """Same predicate the remote list query applies."""
    if user_id and row.get("user_id") != user_id:
        return False
    if status:
        if row.get("status") != status:
            return False
    elif budget_status and row.get("budget_status") != budget_status:
        return False
    if service_type and row.get("service_type") != service_type:
        return False
    if client_name and client_name.strip():
        if client_name.strip().lower() not in (row.get("client_name") or "").lower():
            return False
    return True


class ServiceCache:
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._pending: set = set()

    def __len__(self) -> int:
        return len(self._rows)

    def put(self, row: Dict[str, Any], pending: bool = False) -> Dict[str, Any]:
        with self._lock:
            self._rows[row["id"]] = dict(row)
            if pending:
                self._pending.add(row["id"])
            else:
                self._pending.discard(row["id"])
            return dict(self._rows[row["id"]])

    def get(self, service_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(service_id)
            return dict(row) if row else None

    def update(self, service_id: str, changes: Dict[str, Any], pending: bool = True) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(service_id)
            if row is None:
                return None
            row.update(changes)
            if pending:
                self._pending.add(service_id)
            return dict(row)

    def is_pending(self, service_id: str) -> bool:
        with self._lock:
            return service_id in self._pending

    def pending(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(self._rows[i]) for i in self._pending if i in self._rows]

    def mark_synced(self, service_id: str) -> None:
        with self._lock:
            self._pending.discard(service_id)

    def clear(self) -> None:
        with self._lock:
            self._rows.clear()
            self._pending.clear()

    def list(
        self,
        status: Optional[str] = None,
        budget_status: Optional[str] = None,
        user_id: Optional[str] = None,
        client_name: Optional[str] = None,
        service_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Filter like the remote list query; `status` wins over `budget_status`."""
        with self._lock:
            rows = [dict(r) for r in self._rows.values()]
        rows = [
            r for r in rows
            if matches(r, status, budget_status, user_id, client_name, service_type)
        ]
        rows.sort(key=lambda r: as_datetime(r.get("created_at")) or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return rows

    def stats(self, user_id: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, int]:
        """Dashboard counts recomputed from cached rows."""
        rows = self.list(user_id=user_id)
        today = start_of_today(now)

        def completed_today(r):
            updated = as_datetime(r.get("updated_at"))
            return r.get("status") == "completed" and updated is not None and updated >= today

        return {
            "active_services": sum(1 for r in rows if r.get("status") == "active"),
            "completed_today": sum(1 for r in rows if completed_today(r)),
            "pending_services": sum(1 for r in rows if r.get("status") == "pending"),
            "pending_budget_services": sum(1 for r in rows if r.get("budget_status") == "pending"),
            "approved_budget_services": sum(1 for r in rows if r.get("budget_status") == "approved"),
            "rejected_budget_services": sum(1 for r in rows if r.get("budget_status") == "rejected"),
        }
