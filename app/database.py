from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from app.config import config

DATABASE_URL = config.database.get("url", "sqlite:///./nightslip.db")

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # FastAPI 요청마다 다른 스레드에서 세션을 사용하므로 필요
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def enable_sqlite_foreign_keys(target_engine):
    """SQLite는 기본적으로 외래 키 제약을 검사하지 않으므로 연결마다 켜줍니다."""
    if target_engine.dialect.name != "sqlite":
        return

    @event.listens_for(target_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)


def get_db():
    """요청 단위 데이터베이스 세션"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
