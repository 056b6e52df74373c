from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.schemas.entries import DateCreateRequest, DateResponse
from app.services import date_service
from app.services.export_service import ExportSink, get_export_sink
from app.utils.auth_utils import CurrentUser, get_admin_user, get_current_user

router = APIRouter(tags=["dates"])


@router.get("/dates", response_model=List[DateResponse])
async def get_dates(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """등록된 날짜 목록 (최신순)"""
    return date_service.list_dates(db)


@router.post("/dates", response_model=DateResponse, status_code=status.HTTP_201_CREATED)
async def create_date(
    body: DateCreateRequest,
    current_user: CurrentUser = Depends(get_admin_user),
    db: Session = Depends(get_db),
    export_sink: ExportSink = Depends(get_export_sink)
):
    """새 날짜를 등록합니다. (관리자 전용)"""
    tracked_date = date_service.create_date(db, body.date_string)
    export_sink.trigger()
    return tracked_date


@router.delete("/dates/{date_id}")
async def delete_date(
    date_id: int,
    current_user: CurrentUser = Depends(get_admin_user),
    db: Session = Depends(get_db),
    export_sink: ExportSink = Depends(get_export_sink)
):
    """날짜와 해당 날짜의 신청 기록을 모두 삭제합니다. (관리자 전용)"""
    date_service.delete_date(db, date_id)
    export_sink.trigger()
    return {"success": True}
