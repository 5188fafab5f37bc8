from __future__ import annotations

import secrets

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.hash import bcrypt

from .config import get_bcrypt_rounds
from .errors import Unauthenticated


bearer_scheme = HTTPBearer(auto_error=False)


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def hash_password(password: str) -> str:
    return bcrypt.using(rounds=get_bcrypt_rounds()).hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError:
        # malformed stored hash
        return False


async def require_token(creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> str:
    if creds is None or not creds.scheme.lower().startswith("bearer"):
        raise Unauthenticated("Unauthorized")
    token = creds.credentials.strip()
    if not token:
        raise Unauthenticated("Unauthorized")
    return token
