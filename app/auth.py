# app/auth.py
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from . import config
from .accounts import match_local_account, resolve_role
from .deps import get_optional_supabase
from .models import LoginIn, LoginOut, SessionUser

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


# ──────────────────────────────────────────────────────────────────────────────
# Session tokens (role resolved once at login, carried in the token)
# ──────────────────────────────────────────────────────────────────────────────
def _secret() -> str:
    if not config.SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET not set")
    return config.SESSION_SECRET


def issue_token(user: SessionUser, provider_token: Optional[str] = None, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    claims = {
        "sub": user.user_id,
        "email": user.email,
        "role": user.role,
        "mode": user.mode,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=config.SESSION_TTL_MINUTES)).timestamp()),
    }
    if provider_token:
        claims["provider_token"] = provider_token
    return jwt.encode(claims, _secret(), algorithm=config.SESSION_ALGORITHM)


def decode_claims(token: str) -> Dict[str, Any]:
    try:
        claims = jwt.decode(token, _secret(), algorithms=[config.SESSION_ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")
    if not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Token missing subject (sub)")
    return claims


def decode_token(token: str) -> SessionUser:
    claims = decode_claims(token)
    return SessionUser(
        user_id=claims["sub"],
        email=claims.get("email", ""),
        role=claims.get("role", "user"),
        mode=claims.get("mode", "remote"),
    )


def _bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return credentials.credentials


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> SessionUser:
    return decode_token(_bearer_token(credentials))


def require_admin(user: SessionUser = Depends(get_current_user)) -> SessionUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


# ──────────────────────────────────────────────────────────────────────────────
# Identity provider
# ──────────────────────────────────────────────────────────────────────────────
def _remote_sign_in(sb, email: str, password: str):
    resp = sb.auth.sign_in_with_password({"email": email, "password": password})
    if not resp or not resp.user:
        raise RuntimeError("Identity provider returned no user")
    return resp


def _login_error_status(err: Exception) -> int:
    return 429 if getattr(err, "status", None) == 429 else 401


def _session_from_remote(resp, email: str, fallback_role: str) -> SessionUser:
    u = resp.user
    return SessionUser(
        user_id=str(u.id),
        email=u.email or email,
        role=resolve_role(u.email or email, getattr(u, "app_metadata", None), fallback_role),
        mode="remote",
    )


def _provider_token(resp) -> Optional[str]:
    session = getattr(resp, "session", None)
    return getattr(session, "access_token", None)


# ──────────────────────────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────────────────────────
@router.post("/login", response_model=LoginOut)
async def login(payload: LoginIn, sb=Depends(get_optional_supabase)):
    email = str(payload.email)
    local = match_local_account(email, payload.password)

    if local:
        # built-in account: give the provider a short window, then go local
        try:
            if sb is None:
                raise RuntimeError("Supabase not configured")
            resp = await asyncio.wait_for(
                asyncio.to_thread(_remote_sign_in, sb, email, payload.password),
                timeout=config.AUTH_TIMEOUT_SECONDS,
            )
            user = _session_from_remote(resp, email, local.role)
            token = issue_token(user, _provider_token(resp))
        except Exception as e:
            log.warning(f"Remote sign-in failed for {email}, using local account: {e!r}")
            user = SessionUser(user_id=local.user_id, email=local.email, role=local.role, mode="local")
            token = issue_token(user)
        log.info(f"Signed in {user.email} ({user.mode}, role={user.role})")
        return LoginOut(access_token=token, user=user)

    if sb is None:
        raise HTTPException(status_code=503, detail="Identity provider not configured")

    try:
        resp = await asyncio.to_thread(_remote_sign_in, sb, email, payload.password)
    except Exception as e:
        log.error(f"Login error for {email}: {e!r}")
        status = _login_error_status(e)
        detail = "Too many login attempts. Try again later." if status == 429 else "Invalid email or password"
        raise HTTPException(status_code=status, detail=detail)

    user = _session_from_remote(resp, email, "user")
    log.info(f"Signed in {user.email} (remote, role={user.role})")
    return LoginOut(access_token=issue_token(user, _provider_token(resp)), user=user)


@router.post("/logout")
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    sb=Depends(get_optional_supabase),
):
    claims = decode_claims(_bearer_token(credentials))
    provider_token = claims.get("provider_token")
    if claims.get("mode") == "remote" and provider_token and sb is not None:
        try:
            await asyncio.to_thread(sb.auth.admin.sign_out, provider_token)
        except Exception as e:
            log.warning(f"Provider sign-out failed for {claims.get('email')}, session dropped locally: {e!r}")
    return {"ok": True}


@router.get("/me", response_model=SessionUser)
async def me(user: SessionUser = Depends(get_current_user)):
    return user
