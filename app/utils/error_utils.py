import logging
from typing import Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse

# 로깅 설정
logger = logging.getLogger(__name__)

class ServiceError(Exception):
    """서비스 계층 예외의 기반 클래스. 하위 클래스가 HTTP 상태 코드를 지정합니다."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class UnauthorizedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED

class AccessDeniedError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN

class RecordLockedError(AccessDeniedError):
    """한 번만 가능한 수정 기회를 이미 사용한 경우"""

class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND

class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT

class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST

async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """
    서비스 계층에서 발생한 예외를 JSON 응답으로 변환합니다.

    Args:
        request: 요청 객체
        exc: 발생한 서비스 예외

    Returns:
        JSONResponse: {"detail": 메시지, "error": 메시지} 형태의 응답
    """
    logger.warning(f"{request.method} {request.url.path} 실패 ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.message})

def handle_validation_error(
    message: str,
    field: Optional[str] = None
) -> ValidationError:
    """
    입력 유효성 검증 오류를 생성합니다.

    Args:
        message: 오류 메시지
        field: 유효성 검증에 실패한 필드 이름 (선택적)

    Returns:
        ValidationError: 400 Bad Request로 변환되는 예외
    """
    detail = message
    if field:
        detail = f"{field}: {message}"

    logger.warning(f"유효성 검증 오류: {detail}")
    return ValidationError(detail)

def handle_not_found_error(
    entity_type: str,
    entity_id
) -> NotFoundError:
    """
    엔티티를 찾을 수 없는 오류를 생성합니다.

    Args:
        entity_type: 엔티티 유형 (예: '사용자', '날짜')
        entity_id: 엔티티 식별자

    Returns:
        NotFoundError: 404 Not Found로 변환되는 예외
    """
    detail = f"{entity_type}(id: {entity_id})를 찾을 수 없습니다."
    logger.warning(f"조회 실패: {detail}")
    return NotFoundError(detail)
