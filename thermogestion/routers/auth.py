from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from thermogestion.auth.deps import get_current_user
from thermogestion.auth.jwt import create_access_token
from thermogestion.auth.passwords import verify_password
from thermogestion.core.logging_config import logger
from thermogestion.core.rate_limit import limiter
from thermogestion.core.settings import settings
from thermogestion.db import get_db
from thermogestion.models.tenant import Tenant
from thermogestion.models.user import User
from thermogestion.schemas.auth import LoginIn, MeOut, RegisterIn, TokenOut
from thermogestion.services.tenant_service import TenantService

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(resp: Response, token: str) -> None:
    resp.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.APP_ENV == "production",
        max_age=settings.JWT_EXP_HOURS * 3600,
        path="/",
    )


@router.post("/register", response_model=TokenOut, status_code=201)
@limiter.limit("10/minute")
def register(request: Request, payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    email = payload.email.lower().strip()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = TenantService(db).register(
        company_name=payload.company_name,
        email=email,
        password=payload.password,
        full_name=payload.full_name,
    )
    token = create_access_token(user_id=user.id, tenant_id=user.tenant_id, email=user.email, role=user.role)
    _set_auth_cookie(response, token)
    return TokenOut(access_token=token, tenant_id=user.tenant_id)


@router.post("/login", response_model=TokenOut)
@limiter.limit("10/minute")
def login(request: Request, payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    email = payload.email.lower().strip()
    user = db.query(User).filter(User.email == email).first()
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info("login_failed", email=email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(user_id=user.id, tenant_id=user.tenant_id, email=user.email, role=user.role)
    _set_auth_cookie(response, token)
    logger.info("login_ok", tenant_id=user.tenant_id, user_id=user.id)
    return TokenOut(access_token=token, tenant_id=user.tenant_id)


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie("access_token", path="/")
    return {"ok": True}


@router.get("/me", response_model=MeOut)
def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    tenant = db.get(Tenant, user.tenant_id)
    return MeOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        locale=user.locale,
        tenant_id=user.tenant_id,
        tenant_name=tenant.name if tenant else None,
        plan=tenant.plan if tenant else None,
        subscription_status=tenant.subscription_status if tenant else None,
    )
