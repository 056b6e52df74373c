from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from app.database import get_db
from app.schemas.entries import FieldUpdateRequest, UserImportRequest, UserImportResponse
from app.services import user_service
from app.services.export_service import ExportSink, get_export_sink
from app.utils.auth_utils import CurrentUser, get_admin_user, get_current_user

router = APIRouter()


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    reg_no: Optional[str] = None
    email: str


# 모든 사용자 조회
@router.get("/users", response_model=List[UserResponse], tags=["users"])
async def get_users(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """모든 사용자 목록을 이름순으로 가져옵니다."""
    return user_service.list_users(db)


# 사용자 일괄 추가/갱신 (관리자 권한 필요)
@router.post("/users", response_model=UserImportResponse, tags=["users"])
async def import_users(
    body: UserImportRequest,
    current_user: CurrentUser = Depends(get_admin_user),
    db: Session = Depends(get_db),
    export_sink: ExportSink = Depends(get_export_sink)
):
    """이메일 기준으로 사용자를 추가하거나 갱신합니다. name/email 이 없는 행은 건너뜁니다."""
    result = user_service.import_users(db, [row.model_dump() for row in body.users])
    export_sink.trigger()
    return {"success": True, **result}


# 사용자 정보 수정 (관리자 권한 필요)
@router.patch("/users/{user_id}", response_model=UserResponse, tags=["users"])
async def update_user(
    user_id: int,
    body: FieldUpdateRequest,
    current_user: CurrentUser = Depends(get_admin_user),
    db: Session = Depends(get_db),
    export_sink: ExportSink = Depends(get_export_sink)
):
    """사용자의 name/email/reg_no 중 하나를 수정합니다. 관리자 권한이 필요합니다."""
    user = user_service.update_user_field(db, user_id, body.field, str(body.value))
    export_sink.trigger()
    return user


# 사용자 삭제 (관리자 권한 필요)
@router.delete("/users/{user_id}", tags=["users"])
async def delete_user(
    user_id: int,
    current_user: CurrentUser = Depends(get_admin_user),
    db: Session = Depends(get_db),
    export_sink: ExportSink = Depends(get_export_sink)
):
    """사용자와 모든 신청 기록을 삭제합니다. 관리자 권한이 필요합니다."""
    user_service.delete_user(db, user_id)
    export_sink.trigger()
    return {"success": True}
