from __future__ import annotations

from fastapi import APIRouter, Depends

from ...deps import get_account_service, get_current_user
from ....schemas.auth import ProfileUpdate, UserPublic, UserResponse, UserUpdated
from ....services.accounts import AccountService


router = APIRouter()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    user: UserPublic = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> UserResponse:
    return UserResponse(user=await accounts.get_user(user_id))


@router.put("/{user_id}", response_model=UserUpdated)
async def update_user(
    user_id: str,
    payload: ProfileUpdate,
    user: UserPublic = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> UserUpdated:
    updated = await accounts.update_profile(user.id, user_id, payload.model_dump(exclude_unset=True))
    return UserUpdated(message="User updated successfully", user=updated)
