# app/accounts.py
from typing import Any, Dict, NamedTuple, Optional

from . import config


class LocalAccount(NamedTuple):
    user_id: str
    email: str
    password: str
    display_name: str
    role: str


# Built-in accounts that still work when the identity provider is down.
LOCAL_ACCOUNTS = {
    "admin@example.com": LocalAccount("admin-local-id", "admin@example.com", "123ADMIN", "Administrator", "admin"),
    "user@example.com": LocalAccount("user-local-id", "user@example.com", "USER", "User", "user"),
}


def match_local_account(email: str, password: str) -> Optional[LocalAccount]:
    if not config.ALLOW_LOCAL_ACCOUNTS:
        return None
    account = LOCAL_ACCOUNTS.get(email.strip().lower())
    if account and account.password == password:
        return account
    return None


def resolve_role(email: str, app_metadata: Optional[Dict[str, Any]] = None, fallback: str = "user") -> str:
    """Role claim from the provider first, then the configured admin list."""
    claimed = (app_metadata or {}).get("role")
    if claimed in ("admin", "user"):
        return claimed
    if email.strip().lower() in config.ADMIN_EMAILS:
        return "admin"
    return fallback
