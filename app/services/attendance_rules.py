"""
외박/늦은 귀가 신청 행의 상태 전이 규칙.

학생은 잠기지 않은 자신의 행에서 coming/applied 만 바꿀 수 있고,
applied 를 제출하는 순간 행이 잠깁니다. 관리자는 모든 필드를 바꿀 수 있으며
잠금을 암묵적으로 걸지 않습니다.
"""
from typing import Optional, Union

from pydantic import BaseModel

from app.utils.error_utils import AccessDeniedError, RecordLockedError, handle_validation_error

COMING = "COMING"
NOT_COMING = "NOT COMING"
APPLIED = "APPLIED"
NOT_APPLIED = "NOT APPLIED"
PRESENT = "PRESENT"
ABSENT = "ABSENT"

CHOICE_FIELDS = {
    "coming": (COMING, NOT_COMING),
    "applied": (APPLIED, NOT_APPLIED),
    "attendance_1": (PRESENT, ABSENT),
    "attendance_2": (PRESENT, ABSENT),
}
ATTENDANCE_FIELDS = set(CHOICE_FIELDS) | {"is_locked"}
USER_FIELDS = {"name", "email", "reg_no"}
STUDENT_FIELDS = {"coming", "applied"}

LOCKED_MESSAGE = "이미 신청을 제출하여 수정할 수 없습니다. (한 번만 수정 가능)"


class AttendanceState(BaseModel):
    """출석 행 한 개의 전체 상태"""
    coming: str = NOT_COMING
    applied: str = NOT_APPLIED
    attendance_1: str = ABSENT
    attendance_2: str = ABSENT
    is_locked: int = 0


class FieldUpdate(BaseModel):
    """필드 수정 요청"""
    actor_email: str
    actor_is_admin: bool
    target_email: str
    field: str
    value: Union[str, int, bool]


def normalize_value(field: str, value) -> Union[str, int]:
    """필드별 허용 값을 검사하고 저장 형태로 변환합니다."""
    if field == "is_locked":
        if isinstance(value, bool):
            return int(value)
        text = str(value).strip().lower()
        if text in ("1", "true"):
            return 1
        if text in ("0", "false"):
            return 0
        raise handle_validation_error("0 또는 1 이어야 합니다.", field)

    choices = CHOICE_FIELDS.get(field)
    if choices is None:
        raise handle_validation_error("수정할 수 없는 필드입니다.", field)

    text = " ".join(str(value).split()).upper()
    if text not in choices:
        raise handle_validation_error(f"{' / '.join(choices)} 중 하나여야 합니다.", field)
    return text


def authorize(update: FieldUpdate, current: AttendanceState) -> None:
    """
    수정 권한을 확인합니다. 권한이 없으면 AccessDeniedError 를 발생시킵니다.

    관리자는 모든 필드를 수정할 수 있습니다. 학생은 자신의 행에서,
    잠기지 않은 경우에만 coming/applied 를 수정할 수 있습니다.
    """
    if update.actor_is_admin:
        return

    if update.actor_email.strip().lower() != update.target_email.strip().lower():
        raise AccessDeniedError("다른 사용자의 신청은 수정할 수 없습니다.")
    if update.field not in STUDENT_FIELDS:
        raise AccessDeniedError("관리자 권한이 필요합니다.")
    if current.is_locked:
        raise RecordLockedError(LOCKED_MESSAGE)


def apply_transition(update: FieldUpdate, current: Optional[AttendanceState] = None) -> AttendanceState:
    """
    권한 확인 후 다음 상태 전체를 계산합니다.

    Args:
        update: 필드 수정 요청
        current: 현재 행 (없으면 기본값)

    Returns:
        AttendanceState: 파생 필드와 잠금까지 반영된 다음 상태
    """
    if update.field not in ATTENDANCE_FIELDS and update.field not in USER_FIELDS:
        raise handle_validation_error("알 수 없는 필드입니다.", update.field)

    current = current or AttendanceState()
    authorize(update, current)

    if update.field in USER_FIELDS:
        raise handle_validation_error("학생 정보는 /users/{id} 로 수정해야 합니다.", update.field)

    value = normalize_value(update.field, update.value)
    state = current.model_copy(update={update.field: value})

    # 관리자가 결과 필드나 잠금을 직접 바꾸는 경우에는 파생 규칙을 적용하지 않음
    if update.field == "coming":
        state.applied = NOT_APPLIED
        state.attendance_1 = ABSENT
        state.attendance_2 = ABSENT
    elif update.field == "applied":
        outcome = PRESENT if state.coming == COMING and state.applied == APPLIED else ABSENT
        state.attendance_1 = outcome
        state.attendance_2 = outcome
        if not update.actor_is_admin:
            state.is_locked = 1

    return state
