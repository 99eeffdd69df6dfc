# app/appointments.py
import asyncio
import logging
import re
from datetime import date
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from . import config
from .auth import require_admin
from .deps import get_supabase
from .models import ApiAppointment, AppointmentIn, BlockIn, BlockOut, SessionUser, SlotsOut
from .notifications import notify_booking
from .slots import LOAD_ERROR_NOTICE, available_slots, closing_hour, day_notice, normalize_time, parse_day

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/appointments", tags=["appointments"])

BLOCKED_SERVICE = "blocked"


def format_whatsapp(value: str) -> str:
    """Format up to 11 digits as (DD)DDDDD-DDDD."""
    digits = re.sub(r"\D", "", value)[:11]
    formatted = digits
    if len(digits) > 2:
        formatted = f"({digits[:2]}){digits[2:]}"
    if len(digits) > 7:
        formatted = f"{formatted[:9]}-{formatted[9:]}"
    return formatted


# ──────────────────────────────────────────────────────────────────────────────
# Supabase helpers
# ──────────────────────────────────────────────────────────────────────────────
def _booked_times(sb, day: date) -> List[str]:
    r = (
        sb.table(config.APPOINTMENTS_TABLE)
        .select("time")
        .eq("date", day.isoformat())
        .eq("status", "confirmed")
        .execute()
    )
    return [row["time"] for row in (r.data or [])]


def _insert(sb, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    r = sb.table(config.APPOINTMENTS_TABLE).insert(rows).execute()
    return r.data or rows


async def _slots_for(sb, day: date) -> List[str]:
    if closing_hour(day) is None:
        return []
    booked = await asyncio.to_thread(_booked_times, sb, day)
    return available_slots(day, booked)


def _row_to_appointment(row: Dict[str, Any]) -> ApiAppointment:
    return ApiAppointment(
        id=str(row["id"]) if row.get("id") is not None else None,
        name=row["name"],
        whatsapp=row["whatsapp"],
        service=str(row["service"]),
        service_text=row["service_text"],
        date=row["date"],
        time=normalize_time(row["time"]),
        status=row.get("status", "confirmed"),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/slots", response_model=SlotsOut)
async def get_slots(day_str: str = Query(..., alias="date"), sb=Depends(get_supabase)):
    try:
        day = parse_day(day_str)
    except ValueError as e:
        log.error(f"Error parsing appointment date {day_str!r}: {e}")
        raise HTTPException(status_code=400, detail=LOAD_ERROR_NOTICE)

    try:
        slots = await _slots_for(sb, day)
    except Exception as e:
        log.error(f"Error fetching available times: {e!r}")
        raise HTTPException(status_code=503, detail=LOAD_ERROR_NOTICE)

    return SlotsOut(date=day, slots=slots, notice=day_notice(day))


@router.post("", response_model=ApiAppointment, status_code=201)
async def book_appointment(payload: AppointmentIn, sb=Depends(get_supabase)):
    whatsapp = format_whatsapp(payload.whatsapp)
    if not whatsapp:
        raise HTTPException(status_code=422, detail="Invalid WhatsApp number")

    notice = day_notice(payload.date)
    if notice:
        raise HTTPException(status_code=409, detail=notice)

    try:
        slots = await _slots_for(sb, payload.date)
    except Exception as e:
        log.error(f"Error fetching available times: {e!r}")
        raise HTTPException(status_code=503, detail=LOAD_ERROR_NOTICE)
    if payload.time not in slots:
        raise HTTPException(status_code=409, detail="Time slot no longer available")

    service_text = payload.service_title
    if payload.service_price:
        service_text = f"{payload.service_title} - {payload.service_price}"
    row = {
        "name": payload.name,
        "whatsapp": whatsapp,
        "service": payload.service_id,
        "service_text": service_text,
        "date": payload.date.isoformat(),
        "time": payload.time,
        "status": "confirmed",
    }

    try:
        saved = (await asyncio.to_thread(_insert, sb, [row]))[0]
    except Exception as e:
        log.error(f"Error creating appointment: {e!r}")
        raise HTTPException(status_code=502, detail="Could not create appointment")

    log.info(f"Booked {payload.date} {payload.time} for {payload.name}")
    await notify_booking(saved)
    return _row_to_appointment(saved)


@router.post("/blocks", response_model=BlockOut)
async def block_slots(
    payload: BlockIn,
    user: SessionUser = Depends(require_admin),
    sb=Depends(get_supabase),
):
    try:
        slots = await _slots_for(sb, payload.date)
    except Exception as e:
        log.error(f"Error fetching available times: {e!r}")
        raise HTTPException(status_code=503, detail=LOAD_ERROR_NOTICE)

    wanted = dict.fromkeys(normalize_time(t) for t in payload.times)
    to_block = [t for t in wanted if t in slots]
    if to_block:
        rows = [
            {
                "name": user.email,
                "whatsapp": "",
                "service": BLOCKED_SERVICE,
                "service_text": "Blocked by admin",
                "date": payload.date.isoformat(),
                "time": t,
                "status": "confirmed",
            }
            for t in to_block
        ]
        try:
            await asyncio.to_thread(_insert, sb, rows)
        except Exception as e:
            log.error(f"Error blocking times: {e!r}")
            raise HTTPException(status_code=502, detail="Could not block times")
        log.info(f"{user.email} blocked {payload.date}: {', '.join(to_block)}")

    return BlockOut(date=payload.date, blocked=to_block)
