from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict


class FieldUpdateRequest(BaseModel):
    field: str
    value: Union[str, int, bool]


class DateCreateRequest(BaseModel):
    date_string: str


class DateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date_string: str


class EntryResponse(BaseModel):
    id: int
    date_id: int
    name: str
    reg_no: str
    email: str
    coming: str
    applied: str
    attendance_1: str
    attendance_2: str
    is_locked: int
    can_edit: bool


class EntryUpdateResponse(BaseModel):
    success: bool
    coming: str
    applied: str
    attendance_1: str
    attendance_2: str
    is_locked: int


class ResetResponse(BaseModel):
    success: bool
    removed: int


class UserImportRow(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    reg_no: Optional[str] = None


class UserImportRequest(BaseModel):
    users: List[UserImportRow]


class UserImportResponse(BaseModel):
    success: bool
    created: int
    updated: int
    skipped: int
