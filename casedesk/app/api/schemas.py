from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class _OrmOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserOut(_OrmOut):
    id: str
    email: str
    name: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime


class FileOut(_OrmOut):
    id: str
    folder_id: str
    case_id: str
    file_name: str
    description: Optional[str] = None
    file_path: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    uploaded_at: datetime
    updated_at: datetime


class FolderOut(_OrmOut):
    id: str
    case_id: str
    name: str
    type: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FolderDetailOut(FolderOut):
    files: List[FileOut] = []


class NoteOut(_OrmOut):
    id: str
    case_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime


class CaseOut(_OrmOut):
    id: str
    full_name: str
    phone_number: str
    case_number: str
    status: str
    assigned_lawyer_id: Optional[str] = None
    court: Optional[str] = None
    notes: Optional[str] = None
    appointment_date: Optional[datetime] = None
    created_by: str
    created_at: datetime
    updated_at: datetime


class CaseDetailOut(CaseOut):
    folders: List[FolderOut] = []


class PageOut(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CasePageOut(PageOut):
    items: List[CaseOut]


class FolderPageOut(PageOut):
    items: List[FolderOut]


class FilePageOut(PageOut):
    items: List[FileOut]


class NotePageOut(PageOut):
    items: List[NoteOut]


class StatusCountOut(BaseModel):
    status: str
    count: int


class LawyerCountOut(BaseModel):
    assigned_lawyer_id: str
    lawyer_name: Optional[str] = None
    count: int


class RecentCaseOut(BaseModel):
    id: str
    full_name: str
    case_number: str
    status: str
    created_at: datetime


class CaseStatisticsOut(BaseModel):
    total: int
    by_status: List[StatusCountOut]
    by_lawyer: List[LawyerCountOut]
    recent: List[RecentCaseOut]


class AuditEventOut(BaseModel):
    id: str
    case_id: str
    event_type: str
    actor_id: str
    actor_role: Optional[str] = None
    before_state: Optional[Dict[str, Any]] = None
    after_state: Optional[Dict[str, Any]] = None
    created_at: datetime


class AuditPageOut(BaseModel):
    items: List[AuditEventOut]
    next_cursor: Optional[str] = None


class AppointmentCaseOut(_OrmOut):
    id: str
    full_name: str
    case_number: str
    phone_number: str


class AppointmentUserOut(_OrmOut):
    id: str
    name: Optional[str] = None
    email: str
    role: str


class AppointmentOut(_OrmOut):
    id: str
    case_id: str
    user_id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    appointment_with: str
    status: str
    date: datetime
    created_at: datetime
    updated_at: datetime
    case: AppointmentCaseOut
    user: AppointmentUserOut
