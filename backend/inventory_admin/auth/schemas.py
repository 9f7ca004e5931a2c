from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    # prevent bcrypt crash on long input
    password: str = Field(min_length=1, max_length=72)


class AuthUserOut(BaseModel):
    id: int
    email: str
    name: str
    role: Literal["ADMIN", "EMPLOYEE"]


class AuthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: AuthUserOut
    permissions: list[str]
    access_token: str = Field(alias="accessToken")


class LogoutResponse(BaseModel):
    success: bool = True
