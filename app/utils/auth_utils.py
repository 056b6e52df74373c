import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from jose import JWTError, jwt
from fastapi import Depends, Cookie
from pydantic import BaseModel

from app.config import config
from app.utils.error_utils import UnauthorizedError, AccessDeniedError

logger = logging.getLogger(__name__)

# JWT 토큰 설정
SECRET_KEY = config.auth.get("secret_key")
if not SECRET_KEY:
    logger.warning("auth.secret_key 가 설정되지 않아 임시 키를 사용합니다. 재시작하면 모든 세션이 만료됩니다.")
    SECRET_KEY = secrets.token_urlsafe(32)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = config.auth.get("token_expire_minutes", 1440)
TOKEN_COOKIE_NAME = "access_token"


class CurrentUser(BaseModel):
    email: str
    name: Optional[str] = None
    is_admin: bool = False


class AccessGuard:
    """관리자 이메일 목록으로 관리자/학생을 구분합니다."""

    def __init__(self, admin_emails: Iterable[str]):
        self.admin_emails = {email.strip().lower() for email in admin_emails if email}

    def is_admin(self, email: str) -> bool:
        return bool(email) and email.strip().lower() in self.admin_emails


def get_access_guard() -> AccessGuard:
    return AccessGuard(config.admin.emails)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """JWT 액세스 토큰 생성"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def verify_token(token: str) -> dict:
    """JWT 토큰 검증"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthorizedError("인증에 실패했습니다.")

    email: str = payload.get("sub")
    if email is None:
        raise UnauthorizedError("인증에 실패했습니다.")

    return {"email": email, "name": payload.get("name")}


async def get_optional_user(
    access_token: Optional[str] = Cookie(None, alias=TOKEN_COOKIE_NAME),
    guard: AccessGuard = Depends(get_access_guard)
) -> Optional[CurrentUser]:
    """쿠키가 없거나 유효하지 않으면 None"""
    if not access_token:
        return None
    try:
        token_data = verify_token(access_token)
    except UnauthorizedError:
        return None
    return CurrentUser(
        email=token_data["email"],
        name=token_data["name"],
        is_admin=guard.is_admin(token_data["email"])
    )


async def get_current_user(current_user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    """쿠키에서 토큰을 읽어 현재 인증된 사용자 가져오기"""
    if current_user is None:
        raise UnauthorizedError("인증이 필요합니다.")
    return current_user


async def get_admin_user(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """관리자만 통과"""
    if not current_user.is_admin:
        raise AccessDeniedError("관리자 권한이 필요합니다.")
    return current_user
