"""
shared/middleware/auth.py
FastAPI dependency functions for authentication and authorization.
Access tokens are issued by Supabase and verified here; the local user row
is loaded fresh on every request so admin changes apply immediately.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.auth.service import TokenData, provision_user
from shared.models.models import User
from shared.utils.errors import AuthError, ForbiddenError
from shared.utils.security import verify_access_token

security = HTTPBearer(auto_error=False)


async def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenData:
    """Extract and validate the bearer token from the Authorization header."""
    if not credentials:
        raise AuthError("Authentication required")

    try:
        payload = verify_access_token(credentials.credentials)
    except JWTError:
        raise AuthError("Invalid or expired token")

    return TokenData(payload)


async def get_current_user(
    token_data: TokenData = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the caller's User row, provisioning it from the token on first use."""
    return await provision_user(db, token_data)


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Admin gate. Runs before the route body, so non-admins never reach its queries."""
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user
