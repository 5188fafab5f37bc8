from __future__ import annotations

from fastapi import APIRouter, Depends

from ...deps import get_account_service, get_current_user
from ....core.security import require_token
from ....schemas.auth import AuthResponse, LoginRequest, SignupRequest, UserPublic, UserResponse
from ....schemas.feed import MessageResponse
from ....services.accounts import AccountService


router = APIRouter()


async def _signup(payload: SignupRequest, accounts: AccountService) -> AuthResponse:
    user = await accounts.register(payload.name, payload.email, payload.password, payload.profileImage)
    token = await accounts.issue_token(user.id)
    return AuthResponse(message="User created successfully", user=user, token=token)


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(payload: SignupRequest, accounts: AccountService = Depends(get_account_service)) -> AuthResponse:
    return await _signup(payload, accounts)


# alias kept for older clients
@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(payload: SignupRequest, accounts: AccountService = Depends(get_account_service)) -> AuthResponse:
    return await _signup(payload, accounts)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, accounts: AccountService = Depends(get_account_service)) -> AuthResponse:
    uid = await accounts.verify_credentials(payload.email, payload.password)
    token = await accounts.issue_token(uid)
    user = await accounts.get_user(uid)
    return AuthResponse(message="Login successful", user=user, token=token)


@router.get("/me", response_model=UserResponse)
async def me(user: UserPublic = Depends(get_current_user)) -> UserResponse:
    return UserResponse(user=user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(require_token),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.revoke_token(token)
    return MessageResponse(message="Logged out")
