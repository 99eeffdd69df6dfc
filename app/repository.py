# app/repository.py
"""Service orders: Supabase table first, offline cache when it fails.

Every remote call runs in a worker thread (the Supabase client is sync).
Successful remote reads/writes also refresh the cache so it can serve
reads later; failed writes land in the cache flagged pending until
`sync()` pushes them.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends

from . import config
from .cache import ServiceCache, matches, start_of_today
from .deps import get_cache, get_optional_supabase

log = logging.getLogger("uvicorn.error")

Row = Dict[str, Any]

# dashboard key -> (field, value); completed_today also filters on updated_at
STAT_QUERIES = {
    "active_services": ("status", "active"),
    "completed_today": ("status", "completed"),
    "pending_services": ("status", "pending"),
    "pending_budget_services": ("budget_status", "pending"),
    "approved_budget_services": ("budget_status", "approved"),
    "rejected_budget_services": ("budget_status", "rejected"),
}


class StoreUnavailable(Exception):
    """Neither the remote store nor the cache could serve the request."""


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ServiceRepository:
    def __init__(self, sb, cache: ServiceCache):
        self.sb = sb
        self.cache = cache

    # ── remote calls (run in threads) ────────────────────────────────────────
    def _table(self):
        if self.sb is None:
            raise RuntimeError("Supabase not configured")
        return self.sb.table(config.SERVICES_TABLE)

    def _remote_insert(self, row: Row) -> Row:
        r = self._table().insert(row).execute()
        return r.data[0] if r.data else row

    def _remote_upsert(self, row: Row) -> Row:
        r = self._table().upsert(row).execute()
        return r.data[0] if r.data else row

    def _remote_get(self, service_id: str) -> Optional[Row]:
        r = self._table().select("*").eq("id", service_id).limit(1).execute()
        return r.data[0] if r.data else None

    def _remote_list(self, status, budget_status, user_id, client_name=None, service_type=None) -> List[Row]:
        q = self._table().select("*")
        if user_id:
            q = q.eq("user_id", user_id)
        if status:
            q = q.eq("status", status)
        elif budget_status:
            q = q.eq("budget_status", budget_status)
        if service_type:
            q = q.eq("service_type", service_type)
        if client_name and client_name.strip():
            q = q.ilike("client_name", f"%{client_name.strip()}%")
        return q.order("created_at", desc=True).execute().data or []

    def _remote_update(self, service_id: str, changes: Row) -> Optional[Row]:
        r = self._table().update(changes).eq("id", service_id).execute()
        return r.data[0] if r.data else None

    def _remote_count(self, key: str, user_id: Optional[str], since: str) -> int:
        field, value = STAT_QUERIES[key]
        q = self._table().select("id", count="exact").eq(field, value)
        if user_id:
            q = q.eq("user_id", user_id)
        if key == "completed_today":
            q = q.gte("updated_at", since)
        r = q.execute()
        return r.count if r.count is not None else len(r.data or [])

    def _refresh(self, row: Row) -> None:
        if not self.cache.is_pending(row["id"]):
            self.cache.put(row)

    # ── operations ───────────────────────────────────────────────────────────
    async def create(self, data: Row, user_id: str) -> Tuple[Row, bool]:
        ts = now_iso()
        row = {
            "id": str(uuid.uuid4()),
            **data,
            "status": "pending",
            "photos": [],
            "user_id": user_id,
            "created_at": ts,
            "updated_at": ts,
        }
        try:
            saved = await asyncio.to_thread(self._remote_insert, row)
        except Exception as e:
            log.warning(f"Remote insert rejected, keeping service {row['id']} in offline cache: {e!r}")
            return self.cache.put(row, pending=True), False
        self.cache.put(saved)
        return saved, True

    async def get(self, service_id: str) -> Optional[Row]:
        if self.cache.is_pending(service_id):
            return self.cache.get(service_id)
        try:
            row = await asyncio.to_thread(self._remote_get, service_id)
        except Exception as e:
            log.warning(f"Remote read failed for service {service_id}, using offline cache: {e!r}")
            return self.cache.get(service_id)
        if row:
            self._refresh(row)
        return row

    async def list(
        self,
        status: Optional[str] = None,
        budget_status: Optional[str] = None,
        user_id: Optional[str] = None,
        client_name: Optional[str] = None,
        service_type: Optional[str] = None,
    ) -> Tuple[List[Row], bool]:
        filters = (status, budget_status, user_id, client_name, service_type)
        try:
            remote = await asyncio.to_thread(self._remote_list, *filters)
        except Exception as e:
            log.warning(f"Remote list failed, using offline cache: {e!r}")
            return self.cache.list(*filters), False

        rows = []
        for row in remote:
            if self.cache.is_pending(row["id"]):
                # unpushed local edit supersedes the remote copy
                row = self.cache.get(row["id"]) or row
                if not matches(row, *filters):
                    continue
            else:
                self.cache.put(row)
            rows.append(row)

        # pending rows the remote filter could not see
        seen = {r["id"] for r in remote}
        extra = [
            r for r in self.cache.list(*filters)
            if r["id"] not in seen and self.cache.is_pending(r["id"])
        ]
        return extra + rows, True

    async def update(self, service_id: str, changes: Row) -> Tuple[Optional[Row], bool]:
        changes = {**changes, "updated_at": now_iso()}
        if self.cache.is_pending(service_id):
            return self.cache.update(service_id, changes), False
        try:
            row = await asyncio.to_thread(self._remote_update, service_id, changes)
        except Exception as e:
            log.warning(f"Remote update rejected for service {service_id}, updating offline cache: {e!r}")
            row = self.cache.update(service_id, changes, pending=True)
            if row is None:
                raise StoreUnavailable(f"Service {service_id} not reachable")
            return row, False
        if row:
            self.cache.put(row)
        return row, True

    async def stats(self, user_id: Optional[str] = None) -> Tuple[Dict[str, int], str]:
        since = start_of_today().isoformat()
        keys = list(STAT_QUERIES)
        try:
            counts = await asyncio.gather(
                *(asyncio.to_thread(self._remote_count, k, user_id, since) for k in keys)
            )
        except Exception as e:
            log.warning(f"Dashboard queries failed, recomputing from offline cache: {e!r}")
            return self.cache.stats(user_id), "cache"
        return dict(zip(keys, counts)), "remote"

    async def sync(self) -> Tuple[List[str], List[str]]:
        pushed, failed = [], []
        for row in self.cache.pending():
            try:
                saved = await asyncio.to_thread(self._remote_upsert, row)
            except Exception as e:
                log.warning(f"Sync failed for service {row['id']}: {e!r}")
                failed.append(row["id"])
                continue
            self.cache.put(saved)
            pushed.append(row["id"])
        if pushed:
            log.info(f"Synced {len(pushed)} service(s) to remote store")
        return pushed, failed


def get_repository(sb=Depends(get_optional_supabase), cache: ServiceCache = Depends(get_cache)) -> ServiceRepository:
    return ServiceRepository(sb, cache)
