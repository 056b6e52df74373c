import logging
from datetime import date
from typing import List

from sqlalchemy.orm import Session

from app.models.attendance import Attendance
from app.models.tracked_date import TrackedDate
from app.utils.error_utils import ConflictError, handle_not_found_error, handle_validation_error

logger = logging.getLogger(__name__)


def list_dates(db: Session) -> List[TrackedDate]:
    """등록된 날짜를 최신순으로 반환합니다."""
    return db.query(TrackedDate).order_by(TrackedDate.date_string.desc()).all()


def get_date_or_404(db: Session, date_id: int) -> TrackedDate:
    tracked_date = db.query(TrackedDate).filter(TrackedDate.id == date_id).first()
    if not tracked_date:
        raise handle_not_found_error("날짜", date_id)
    return tracked_date


def create_date(db: Session, date_string: str) -> TrackedDate:
    """
    새 날짜를 등록합니다.

    Args:
        db: 데이터베이스 세션
        date_string: YYYY-MM-DD 형식 날짜

    Returns:
        TrackedDate: 생성된 날짜
    """
    date_string = (date_string or "").strip()
    try:
        date_string = date.fromisoformat(date_string).isoformat()
    except ValueError:
        raise handle_validation_error("Invalid date format. Use YYYY-MM-DD", "date_string")

    if db.query(TrackedDate).filter(TrackedDate.date_string == date_string).first():
        raise ConflictError(f"이미 등록된 날짜입니다: {date_string}")

    tracked_date = TrackedDate(date_string=date_string)
    db.add(tracked_date)
    db.commit()
    db.refresh(tracked_date)

    logger.info(f"날짜 등록: {date_string} (id: {tracked_date.id})")
    return tracked_date


def delete_date(db: Session, date_id: int) -> None:
    """날짜와 해당 날짜의 모든 신청 기록을 삭제합니다."""
    tracked_date = get_date_or_404(db, date_id)
    date_string = tracked_date.date_string

    removed = db.query(Attendance).filter(Attendance.date_id == date_id).delete(synchronize_session=False)
    db.delete(tracked_date)
    db.commit()

    logger.info(f"날짜 삭제: {date_string} (신청 기록 {removed}건 함께 삭제)")
