from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
import os
import argparse
import logging

from app.config import config
from app.database import Base, engine
from app.routers import auth, dates, users, attendance
from app.scheduler import init_scheduler, shutdown_scheduler
from app.utils.error_utils import ServiceError, service_error_handler


def setup_logging():
    """콘솔과 일자별 파일(logs/nightslip_YYYY-MM-DD.log)에 로그를 남깁니다."""
    log_dir = config.logging.get("dir", "logs")
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, f"nightslip_{datetime.now().strftime('%Y-%m-%d')}.log")

    logging.basicConfig(
        level=config.logging.get("level", "INFO"),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file, encoding="utf-8"),
        ]
    )


# 로깅 설정
setup_logging()
logger = logging.getLogger(__name__)


# 앱 라이프스팬 관리
@asynccontextmanager
async def lifespan(app: FastAPI):
    # 애플리케이션 시작 시 실행
    logger.info("애플리케이션 시작")
    Base.metadata.create_all(bind=engine)

    if not config.admin.emails:
        logger.warning("admin.emails 가 비어 있어 관리자 계정이 없습니다.")
    if not config.export.get("url"):
        logger.info("export.url 이 설정되지 않아 데이터 내보내기가 비활성화되었습니다.")

    # 내보내기 작업을 실행할 스케줄러
    init_scheduler()

    yield

    # 애플리케이션 종료 시 실행
    shutdown_scheduler()
    logger.info("애플리케이션 종료")


# FastAPI 앱 초기화 (lifespan 매니저 포함)
app = FastAPI(title="IEEE ITS Night Slip Management", lifespan=lifespan)

# CORS 설정 (쿠키 인증을 쓰므로 허용 출처를 명시)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors.get("allow_origins", []),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ServiceError, service_error_handler)

# 라우터 등록
app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(dates.router, prefix="/api", tags=["dates"])
app.include_router(users.router, prefix="/api", tags=["users"])
app.include_router(attendance.router, prefix="/api", tags=["attendance"])


@app.get("/api/health")
async def health():
    return {"status": "ok"}


def parse_args():
    """명령행 인수를 파싱합니다."""
    parser = argparse.ArgumentParser(description="IEEE ITS Night Slip Management")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="서버 호스트 (기본값: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="서버 포트 (기본값: 8000)")
    return parser.parse_args()


if __name__ == "__main__":
    import uvicorn

    # 명령행 인수 파싱
    args = parse_args()

    # 서버 실행
    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=False  # 스케줄러를 사용하므로 reload 비활성화
    )
