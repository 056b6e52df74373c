from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.schemas.entries import EntryResponse, EntryUpdateResponse, FieldUpdateRequest, ResetResponse
from app.services.attendance_service import get_entries, reset_entries, update_entry
from app.services.export_service import ExportSink, get_export_sink
from app.utils.auth_utils import CurrentUser, get_admin_user, get_current_user

router = APIRouter(tags=["attendance"])


@router.get("/dates/{date_id}/entries", response_model=List[EntryResponse])
async def get_date_entries(
        date_id: int,
        q: Optional[str] = None,
        current_user: CurrentUser = Depends(get_current_user),
        db: Session = Depends(get_db)
):
    """특정 날짜의 신청 현황을 조회합니다. q 로 이름/학번/이메일 검색"""
    return get_entries(db, date_id, viewer=current_user, search=q)


@router.patch("/dates/{date_id}/users/{user_id}", response_model=EntryUpdateResponse)
async def patch_entry(
        date_id: int,
        user_id: int,
        body: FieldUpdateRequest,
        current_user: CurrentUser = Depends(get_current_user),
        db: Session = Depends(get_db),
        export_sink: ExportSink = Depends(get_export_sink)
):
    """신청 행의 필드 하나를 수정합니다. 학생은 applied 를 제출하면 더 이상 수정할 수 없습니다."""
    state = update_entry(db, date_id, user_id, body.field, body.value, current_user)
    export_sink.trigger()
    return {"success": True, **state.model_dump()}


@router.post("/dates/{date_id}/reset", response_model=ResetResponse)
async def reset_date_entries(
        date_id: int,
        current_user: CurrentUser = Depends(get_admin_user),
        db: Session = Depends(get_db),
        export_sink: ExportSink = Depends(get_export_sink)
):
    """날짜의 모든 신청을 기본값으로 되돌립니다. (관리자 전용)"""
    removed = reset_entries(db, date_id)
    export_sink.trigger()
    return {"success": True, "removed": removed}
