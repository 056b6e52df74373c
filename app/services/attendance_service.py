import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.attendance import Attendance
from app.models.user import User
from app.services.attendance_rules import (
    ABSENT,
    NOT_APPLIED,
    NOT_COMING,
    AttendanceState,
    FieldUpdate,
    apply_transition,
)
from app.services.date_service import get_date_or_404
from app.services.user_service import get_user_or_404
from app.utils.auth_utils import CurrentUser

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def get_entries(
        db: Session,
        date_id: int,
        viewer: Optional[CurrentUser] = None,
        search: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    특정 날짜의 신청 현황을 조회합니다.
    모든 사용자에 대해 한 행씩, 신청 기록이 없으면 기본값으로 채워 이름순으로 반환합니다.

    Args:
        db: 데이터베이스 세션
        date_id: 날짜 ID
        viewer: 조회하는 사용자 (can_edit 계산용)
        search: 이름/학번/이메일 검색어

    Returns:
        List[Dict]: 신청 현황 목록
    """
    get_date_or_404(db, date_id)

    query = db.query(
        User.id,
        User.name,
        User.reg_no,
        User.email,
        func.coalesce(Attendance.coming, NOT_COMING).label("coming"),
        func.coalesce(Attendance.applied, NOT_APPLIED).label("applied"),
        func.coalesce(Attendance.attendance_1, ABSENT).label("attendance_1"),
        func.coalesce(Attendance.attendance_2, ABSENT).label("attendance_2"),
        func.coalesce(Attendance.is_locked, 0).label("is_locked"),
    ).outerjoin(
        Attendance,
        and_(Attendance.user_id == User.id, Attendance.date_id == date_id)
    )

    if search and search.strip():
        term = search.strip().lower()
        query = query.filter(or_(
            func.lower(User.name).contains(term, autoescape=True),
            func.lower(func.coalesce(User.reg_no, "")).contains(term, autoescape=True),
            func.lower(User.email).contains(term, autoescape=True),
        ))

    results = []
    for row in query.order_by(User.name).all():
        entry = {
            "id": row.id,
            "date_id": date_id,
            "name": row.name,
            "reg_no": row.reg_no or "",
            "email": row.email,
            "coming": row.coming,
            "applied": row.applied,
            "attendance_1": row.attendance_1,
            "attendance_2": row.attendance_2,
            "is_locked": row.is_locked,
        }
        entry["can_edit"] = can_edit(entry, viewer)
        results.append(entry)

    return results


def can_edit(entry: Dict[str, Any], viewer: Optional[CurrentUser]) -> bool:
    """화면에서 수정 컨트롤을 활성화할지 여부"""
    if viewer is None:
        return False
    if viewer.is_admin:
        return True
    return entry["email"].lower() == viewer.email.lower() and entry["is_locked"] == 0


def get_attendance_state(db: Session, user_id: int, date_id: int) -> Optional[AttendanceState]:
    attendance = db.query(Attendance).filter(
        Attendance.user_id == user_id,
        Attendance.date_id == date_id
    ).first()
    if not attendance:
        return None
    return AttendanceState(
        coming=attendance.coming,
        applied=attendance.applied,
        attendance_1=attendance.attendance_1,
        attendance_2=attendance.attendance_2,
        is_locked=attendance.is_locked,
    )


def upsert_attendance(db: Session, user_id: int, date_id: int, state: AttendanceState) -> None:
    """(user_id, date_id) 기준으로 행 전체를 저장합니다. 커밋은 호출자가 합니다."""
    values = state.model_dump()
    insert = _UPSERT_DIALECTS.get(db.bind.dialect.name)

    if insert is not None:
        stmt = insert(Attendance).values(user_id=user_id, date_id=date_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Attendance.user_id, Attendance.date_id],
            set_={**values, "updated_at": func.now()},
        )
        db.execute(stmt)
        return

    # ON CONFLICT 를 지원하지 않는 DB
    attendance = db.query(Attendance).filter(
        Attendance.user_id == user_id,
        Attendance.date_id == date_id
    ).with_for_update().first()
    if not attendance:
        attendance = Attendance(user_id=user_id, date_id=date_id)
        db.add(attendance)
    for key, value in values.items():
        setattr(attendance, key, value)


def update_entry(
        db: Session,
        date_id: int,
        user_id: int,
        field: str,
        value,
        actor: CurrentUser
) -> AttendanceState:
    """
    신청 행의 필드 하나를 수정합니다.
    현재 행(없으면 기본값)을 읽고, 규칙에 따라 다음 상태 전체를 계산한 뒤 저장합니다.

    Args:
        db: 데이터베이스 세션
        date_id: 날짜 ID
        user_id: 대상 사용자 ID
        field: 수정할 필드
        value: 새 값
        actor: 요청한 사용자

    Returns:
        AttendanceState: 저장된 상태
    """
    get_date_or_404(db, date_id)
    user = get_user_or_404(db, user_id)

    update = FieldUpdate(
        actor_email=actor.email,
        actor_is_admin=actor.is_admin,
        target_email=user.email,
        field=field,
        value=value,
    )
    current = get_attendance_state(db, user_id, date_id)
    state = apply_transition(update, current)

    try:
        upsert_attendance(db, user_id, date_id, state)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"신청 수정: date={date_id}, user={user.email}, {field}={value!r} "
        f"by {actor.email}{' (admin)' if actor.is_admin else ''}, locked={state.is_locked}"
    )
    return state


def reset_entries(db: Session, date_id: int) -> int:
    """날짜의 모든 신청 기록을 삭제하여 기본값으로 되돌립니다."""
    tracked_date = get_date_or_404(db, date_id)

    removed = db.query(Attendance).filter(Attendance.date_id == date_id).delete(synchronize_session=False)
    db.commit()

    logger.info(f"{tracked_date.date_string} 신청 기록 초기화: {removed}건 삭제")
    return removed
