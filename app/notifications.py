# app/notifications.py
import logging
from typing import Any, Dict

import httpx

from . import config

log = logging.getLogger("uvicorn.error")


def booking_params(appointment: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "to_name": config.OWNER_NAME,
        "from_name": appointment["name"],
        "service": appointment["service_text"],
        "date": str(appointment["date"]),
        "time": appointment["time"],
        "to_email": config.OWNER_EMAIL,
        # WhatsApp chat id of the client
        "reply_to": f"{appointment['whatsapp']}@c.us",
    }


async def notify_booking(appointment: Dict[str, Any]) -> bool:
    """E-mail the shop owner about a new booking. Never raises."""
    if not (config.EMAILJS_SERVICE_ID and config.EMAILJS_TEMPLATE_ID and config.EMAILJS_PUBLIC_KEY):
        log.info("EmailJS not configured, skipping booking notification")
        return False

    body = {
        "service_id": config.EMAILJS_SERVICE_ID,
        "template_id": config.EMAILJS_TEMPLATE_ID,
        "user_id": config.EMAILJS_PUBLIC_KEY,
        "template_params": booking_params(appointment),
    }
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.post(config.EMAILJS_URL, json=body)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        log.warning(f"Booking notification failed: {e!r}")
        return False
    return True
