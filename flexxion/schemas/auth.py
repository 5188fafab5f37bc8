from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.validation import clean_image


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class SignupRequest(_Strict):
    name: str = Field(min_length=1, max_length=60)
    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=72)
    profileImage: str | None = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("profileImage")
    @classmethod
    def _check_image(cls, v: str | None) -> str | None:
        return clean_image(v)


class LoginRequest(_Strict):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class ProfileUpdate(_Strict):
    name: str | None = Field(default=None, min_length=1, max_length=60)
    profileImage: str | None = None

    @field_validator("profileImage")
    @classmethod
    def _check_image(cls, v: str | None) -> str | None:
        return clean_image(v)


class UserPublic(BaseModel):
    id: str
    name: str
    email: str
    profileImage: str | None = None


class AuthResponse(BaseModel):
    message: str
    user: UserPublic
    token: str


class UserResponse(BaseModel):
    user: UserPublic


class UserUpdated(BaseModel):
    message: str
    user: UserPublic
