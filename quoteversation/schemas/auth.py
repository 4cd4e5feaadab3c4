from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

# bcrypt only looks at the first 72 bytes and rejects longer input.
PASSWORD_MAX_BYTES = 72


class RegisterIn(BaseModel):
    username: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return value


class LoginIn(BaseModel):
    username_or_email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class SessionUserOut(BaseModel):
    uid: str
    username: str
    email: str


class AuthOut(BaseModel):
    message: str
    user: SessionUserOut
    token: str
