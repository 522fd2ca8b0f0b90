from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field


class SubscriptionResponse(BaseModel):
    plan: str
    status: str
    start_date: datetime | None = None
    end_date: datetime | None = None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    gender: str
    age: int | None
    preferred_genres: list[str] = []
    language: str | None = None
    subscription: SubscriptionResponse | None = None


class TokenPayload(BaseModel):
    sub: str  # user id
    exp: int
    type: str = "access"


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str
    password: str = Field(min_length=6)
    gender: Literal["male", "female"] = "male"
    age: int | None = Field(None, ge=0, le=120)
    genres: list[str] = []
    language: str | None = Field(None, max_length=20)


class LoginRequest(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    token: str
    user: UserResponse
