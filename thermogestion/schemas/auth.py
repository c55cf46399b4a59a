from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class RegisterIn(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = ""


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    tenant_id: str


class MeOut(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    locale: str
    tenant_id: str
    tenant_name: Optional[str] = None
    plan: Optional[str] = None
    subscription_status: Optional[str] = None
