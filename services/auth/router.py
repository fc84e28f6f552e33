"""
services/auth/router.py
Authentication endpoints. Sign-in itself happens against Supabase; these
endpoints expose and sync the local user record for the token subject.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.auth.service import TokenData, upsert_user
from shared.middleware.auth import get_current_user, get_token_data
from shared.models.models import User
from shared.schemas.schemas import UserResponse, UserUpsertRequest

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.get("/user", response_model=UserResponse)
async def get_user(current_user: User = Depends(get_current_user)):
    """Return the caller's local user record."""
    return UserResponse.model_validate(current_user)


@router.post("/create-user", response_model=UserResponse)
async def create_user(
    data: Optional[UserUpsertRequest] = Body(None),
    token_data: TokenData = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
):
    """
    Create or refresh the caller's user row from the token claims.
    Called by the frontend after every sign-in; safe to repeat.
    """
    data = data or UserUpsertRequest()
    user = await upsert_user(db, token_data, data.first_name, data.last_name)
    await db.commit()
    return UserResponse.model_validate(user)
