import logging
from fastapi import APIRouter, Depends, Response
from typing import Optional
from pydantic import BaseModel

from app.config import config
from app.services.identity_service import FirebaseTokenVerifier, get_token_verifier
from app.utils.auth_utils import (
    AccessGuard,
    CurrentUser,
    TOKEN_COOKIE_NAME,
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_access_guard,
    get_optional_user,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# 요청/응답 모델
class LoginRequest(BaseModel):
    token: str
    accessToken: Optional[str] = None


class UserInfo(BaseModel):
    email: str
    name: Optional[str] = None
    is_admin: bool


class MeResponse(BaseModel):
    user: Optional[UserInfo] = None


def _set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=config.auth.get("cookie_secure", True),
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite=config.auth.get("cookie_samesite", "lax"),
    )


# ID 토큰 검증 후 세션 쿠키 발급
@router.post("/auth/login", response_model=MeResponse, tags=["auth"])
async def login(
    body: LoginRequest,
    response: Response,
    verifier: FirebaseTokenVerifier = Depends(get_token_verifier),
    guard: AccessGuard = Depends(get_access_guard)
):
    """신원 제공자가 발급한 ID 토큰을 검증하고 세션 쿠키를 저장합니다."""
    identity = await verifier.verify(body.token)

    access_token = create_access_token(data={"sub": identity.email, "name": identity.name})
    _set_session_cookie(response, access_token)

    is_admin = guard.is_admin(identity.email)
    logger.info(f"로그인: {identity.email}{' (admin)' if is_admin else ''}")
    return {"user": {"email": identity.email, "name": identity.name, "is_admin": is_admin}}


# 현재 사용자 정보 반환
@router.get("/auth/me", response_model=MeResponse, tags=["auth"])
async def get_user_info(current_user: Optional[CurrentUser] = Depends(get_optional_user)):
    """현재 로그인한 사용자 정보 반환 (로그인하지 않았으면 user: null)"""
    if current_user is None:
        return {"user": None}
    return {"user": current_user.model_dump()}


# 로그아웃
@router.post("/auth/logout", tags=["auth"])
async def logout(response: Response):
    """로그아웃 (토큰 쿠키 삭제)"""
    response.delete_cookie(
        key=TOKEN_COOKIE_NAME,
        httponly=True,
        secure=config.auth.get("cookie_secure", True),
        samesite=config.auth.get("cookie_samesite", "lax"),
    )
    return {"success": True}
