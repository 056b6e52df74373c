import logging
import time
from typing import Dict, Optional

import httpx
from jose import JWTError, jwt
from pydantic import BaseModel

from app.config import config
from app.utils.error_utils import UnauthorizedError

logger = logging.getLogger(__name__)

GOOGLE_CERTS_URL = "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"


class Identity(BaseModel):
    """신원 제공자가 확인해 준 사용자 정보"""
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


class FirebaseTokenVerifier:
    """
    Firebase ID 토큰(RS256 JWT)을 검증합니다.
    Google이 공개한 x509 인증서로 서명을 확인하고 aud/iss/exp 를 검사합니다.
    """

    def __init__(
        self,
        project_id: str,
        certs_url: str = GOOGLE_CERTS_URL,
        timeout_seconds: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.project_id = project_id
        self.certs_url = certs_url
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self._certs: Dict[str, str] = {}
        self._certs_expire_at = 0.0

    async def _get_certs(self) -> Dict[str, str]:
        if self._certs and time.time() < self._certs_expire_at:
            return self._certs

        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            response = await client.get(self.certs_url)
            response.raise_for_status()

        self._certs = response.json()
        self._certs_expire_at = time.time() + _parse_max_age(response.headers.get("cache-control", ""))
        logger.info(f"Google 공개 인증서 {len(self._certs)}개를 가져왔습니다.")
        return self._certs

    async def verify(self, id_token: str) -> Identity:
        """ID 토큰을 검증하고 사용자 정보를 반환합니다. 실패하면 UnauthorizedError."""
        if not self.project_id:
            logger.error("firebase.project_id 가 설정되지 않았습니다.")
            raise UnauthorizedError("인증 서버 설정이 올바르지 않습니다.")

        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError:
            raise UnauthorizedError("잘못된 인증 토큰입니다.")

        try:
            certs = await self._get_certs()
        except httpx.HTTPError as e:
            logger.error(f"Google 공개 인증서 조회 실패: {e}")
            raise UnauthorizedError("인증 서버에 연결할 수 없습니다.")

        cert = certs.get(header.get("kid", ""))
        if cert is None:
            raise UnauthorizedError("알 수 없는 서명 키입니다.")

        try:
            claims = jwt.decode(
                id_token,
                cert,
                algorithms=["RS256"],
                audience=self.project_id,
                issuer=f"https://securetoken.google.com/{self.project_id}",
                options={"verify_at_hash": False},
            )
        except JWTError as e:
            logger.warning(f"ID 토큰 검증 실패: {e}")
            raise UnauthorizedError("인증에 실패했습니다.")

        email = claims.get("email")
        if not email:
            raise UnauthorizedError("이메일 정보가 없는 계정입니다.")

        return Identity(email=email, name=claims.get("name"), picture=claims.get("picture"))


def _parse_max_age(cache_control: str) -> int:
    for directive in cache_control.split(","):
        key, _, value = directive.strip().partition("=")
        if key == "max-age" and value.isdigit():
            return int(value)
    return 3600


_verifier: Optional[FirebaseTokenVerifier] = None


def get_token_verifier() -> FirebaseTokenVerifier:
    """설정값으로 만든 검증기를 반환합니다. (인증서 캐시 공유를 위해 하나만 생성)"""
    global _verifier
    if _verifier is None:
        _verifier = FirebaseTokenVerifier(
            project_id=config.firebase.get("project_id", ""),
            certs_url=config.firebase.get("certs_url", GOOGLE_CERTS_URL),
            timeout_seconds=config.firebase.get("timeout_seconds", 10),
        )
    return _verifier
