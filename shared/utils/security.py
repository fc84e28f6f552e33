"""
shared/utils/security.py
Verification of identity-provider (Supabase) access tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import JWTError, jwt

from config.settings import settings


# ── JWT ───────────────────────────────────────────────────────

def verify_access_token(token: str) -> dict:
    """
    Decode and verify a Supabase access token.
    Checks signature, expiry and audience. Raises JWTError on any failure.
    """
    payload = jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=[settings.SUPABASE_JWT_ALGORITHM],
        audience=settings.SUPABASE_JWT_AUDIENCE,
    )
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """
    Sign a token shaped like the ones the identity provider issues.
    Used by the test suite and local tooling; production tokens come from Supabase.
    """
    now = datetime.now(timezone.utc)
    metadata = {}
    if full_name is not None:
        metadata["full_name"] = full_name
    if avatar_url is not None:
        metadata["avatar_url"] = avatar_url

    payload = {
        "sub": user_id,
        "email": email,
        "aud": settings.SUPABASE_JWT_AUDIENCE,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
        "user_metadata": metadata,
    }
    return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm=settings.SUPABASE_JWT_ALGORITHM)


# ── Claims ────────────────────────────────────────────────────

def split_full_name(full_name: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """'Ada King Lovelace' -> ('Ada', 'King Lovelace'). Blank parts become None."""
    parts = (full_name or "").split()
    if not parts:
        return None, None
    first_name = parts[0]
    last_name = " ".join(parts[1:]) or None
    return first_name, last_name
