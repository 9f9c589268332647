from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum


class RoleEnum(str, Enum):
    admin = "admin"
    student = "student"


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    role: RoleEnum
    username: str


# Identity carried inside the bearer token
class TokenData(BaseModel):
    id: int
    username: str
    role: RoleEnum


class GeneratedCredential(BaseModel):
    username: str
    password: str = Field(..., min_length=8)
