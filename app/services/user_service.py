import logging
from typing import Any, Dict, Iterable, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.attendance import Attendance
from app.models.user import User
from app.utils.error_utils import ConflictError, handle_not_found_error, handle_validation_error

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "email", "reg_no")


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.name).all()


def get_user_by_email(db: Session, email: str):
    """이메일(대소문자 무시)로 사용자를 조회합니다."""
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise handle_not_found_error("사용자", user_id)
    return user


def import_users(db: Session, rows: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """
    사용자 목록을 이메일 기준으로 추가하거나 갱신합니다.
    name 또는 email 이 비어 있는 행은 건너뜁니다. 전체가 하나의 트랜잭션입니다.

    Args:
        db: 데이터베이스 세션
        rows: {"name", "email", "reg_no"} 딕셔너리 목록

    Returns:
        Dict[str, int]: created / updated / skipped 건수
    """
    created = updated = skipped = 0
    pending: Dict[str, User] = {}

    try:
        for row in rows:
            name = (row.get("name") or "").strip()
            email = (row.get("email") or "").strip()
            reg_no = (row.get("reg_no") or "").strip()

            if not name or not email:
                skipped += 1
                continue

            # 같은 배치 안에서 중복된 이메일은 마지막 값으로 덮어씀
            user = pending.get(email.lower()) or get_user_by_email(db, email)
            if user:
                user.name = name
                user.reg_no = reg_no
                updated += 1
            else:
                user = User(name=name, email=email, reg_no=reg_no)
                db.add(user)
                created += 1
            pending[email.lower()] = user

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error("사용자 일괄 등록 중 오류 발생", exc_info=True)
        raise

    logger.info(f"사용자 일괄 등록: 추가 {created}, 갱신 {updated}, 건너뜀 {skipped}")
    return {"created": created, "updated": updated, "skipped": skipped}


def update_user_field(db: Session, user_id: int, field: str, value: str) -> User:
    """사용자 한 명의 name/email/reg_no 중 하나를 수정합니다."""
    if field not in EDITABLE_FIELDS:
        raise handle_validation_error("수정할 수 없는 필드입니다.", field)

    user = get_user_or_404(db, user_id)
    value = (value or "").strip()

    if field in ("name", "email") and not value:
        raise handle_validation_error("빈 값으로 변경할 수 없습니다.", field)

    if field == "email":
        other = get_user_by_email(db, value)
        if other and other.id != user.id:
            raise ConflictError(f"이미 사용 중인 이메일입니다: {value}")

    setattr(user, field, value)
    db.commit()
    db.refresh(user)

    logger.info(f"사용자 {user_id} 의 {field} 수정")
    return user


def delete_user(db: Session, user_id: int) -> None:
    """사용자와 모든 신청 기록을 삭제합니다."""
    user = get_user_or_404(db, user_id)
    email = user.email

    removed = db.query(Attendance).filter(Attendance.user_id == user_id).delete(synchronize_session=False)
    db.delete(user)
    db.commit()

    logger.info(f"사용자 삭제: {email} (신청 기록 {removed}건 함께 삭제)")
