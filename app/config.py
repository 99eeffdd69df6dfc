# app/config.py
import os
from pathlib import Path

from dotenv import load_dotenv

# .env at project root is optional; real deployments set env vars directly
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")

# ──────────────────────────────────────────────────────────────────────────────
# Supabase (document store, identity provider, file storage)
# ──────────────────────────────────────────────────────────────────────────────
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

SERVICES_TABLE = "services"
APPOINTMENTS_TABLE = "appointments"
PHOTO_BUCKET = os.getenv("PHOTO_BUCKET", "service_photos")
PHOTO_PLACEHOLDER_URL = os.getenv("PHOTO_PLACEHOLDER_URL", "https://placehold.co/800x600?text=Photo")
MAX_PHOTO_BYTES = int(os.getenv("MAX_PHOTO_BYTES", str(10 * 1024 * 1024)))

# ──────────────────────────────────────────────────────────────────────────────
# Sessions
# ──────────────────────────────────────────────────────────────────────────────
SESSION_SECRET = os.getenv("SESSION_SECRET")
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", "720"))
SESSION_ALGORITHM = "HS256"

ADMIN_EMAILS = {
    e.strip().lower()
    for e in os.getenv("ADMIN_EMAILS", "admin@example.com").split(",")
    if e.strip()
}
ALLOW_LOCAL_ACCOUNTS = os.getenv("ALLOW_LOCAL_ACCOUNTS", "true").lower() == "true"
AUTH_TIMEOUT_SECONDS = float(os.getenv("AUTH_TIMEOUT_SECONDS", "2"))

# ──────────────────────────────────────────────────────────────────────────────
# Booking notifications (EmailJS REST API)
# ──────────────────────────────────────────────────────────────────────────────
EMAILJS_URL = os.getenv("EMAILJS_URL", "https://api.emailjs.com/api/v1.0/email/send")
EMAILJS_SERVICE_ID = os.getenv("EMAILJS_SERVICE_ID")
EMAILJS_TEMPLATE_ID = os.getenv("EMAILJS_TEMPLATE_ID")
EMAILJS_PUBLIC_KEY = os.getenv("EMAILJS_PUBLIC_KEY")
OWNER_NAME = os.getenv("OWNER_NAME", "Shop")
OWNER_EMAIL = os.getenv("OWNER_EMAIL")

# ──────────────────────────────────────────────────────────────────────────────
# HTTP
# ──────────────────────────────────────────────────────────────────────────────
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
PORT = int(os.getenv("PORT", "8000"))
