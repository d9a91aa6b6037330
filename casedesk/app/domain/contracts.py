from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from casedesk.app.domain.access_policy import ROLES, normalize_role
from casedesk.app.domain.errors import CaseValidationError

PHONE_RE = re.compile(r"^[0-9+\-\s()]+$")
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_CASE_STATUS = "Pending"

ContractT = TypeVar("ContractT", bound=BaseModel)


def parse_contract(model: Type[ContractT], data: Union[ContractT, Mapping[str, Any], None]) -> ContractT:
    """Validate raw input into a contract, raising CaseValidationError on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data or {})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}" for err in exc.errors()
        )
        raise CaseValidationError(f"validation failed: {problems}") from exc


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC; convert aware inputs before they reach a query."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class _Contract(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


# -------------------------
# Cases
# -------------------------

class CaseCreate(_Contract):
    full_name: str = Field(..., min_length=2, max_length=100)
    phone_number: str = Field(..., min_length=10, max_length=15)
    case_number: Optional[str] = Field(default=None, max_length=50)
    status: str = Field(default=DEFAULT_CASE_STATUS, min_length=1, max_length=40)
    assigned_lawyer_id: Optional[str] = None
    court: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=2000)
    appointment_date: Optional[datetime] = None

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, value: str) -> str:
        if not PHONE_RE.match(value):
            raise ValueError("invalid phone number format")
        return value

    @field_validator("case_number", "assigned_lawyer_id", "court", "notes")
    @classmethod
    def blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    @field_validator("appointment_date")
    @classmethod
    def appointment_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(value)


class CasePatch(_Contract):
    """
    Partial update. Only fields present in the input are applied; use
    changes() rather than model_dump() to read them.
    """

    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone_number: Optional[str] = Field(default=None, min_length=10, max_length=15)
    case_number: Optional[str] = Field(default=None, max_length=50)
    status: Optional[str] = Field(default=None, min_length=1, max_length=40)
    assigned_lawyer_id: Optional[str] = None
    court: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=2000)
    appointment_date: Optional[datetime] = None

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not PHONE_RE.match(value):
            raise ValueError("invalid phone number format")
        return value

    @field_validator("case_number", "assigned_lawyer_id", "court", "notes")
    @classmethod
    def blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    @field_validator("appointment_date")
    @classmethod
    def appointment_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(value)

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        # these columns are NOT NULL; an explicit null means "leave as is"
        for key in ("full_name", "phone_number", "case_number", "status"):
            if key in data and data[key] is None:
                data.pop(key)
        return data


class CaseFilters(_Contract):
    status: Optional[str] = None
    assigned_lawyer_id: Optional[str] = None
    lawyer: Optional[str] = Field(default=None, max_length=100)
    case_number: Optional[str] = Field(default=None, max_length=50)
    search: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[datetime] = None

    @field_validator("status", "assigned_lawyer_id", "lawyer", "case_number", "search")
    @classmethod
    def blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    @field_validator("start_date")
    @classmethod
    def start_date_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(value)


class Pagination(_Contract):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    sort_by: Optional[str] = None
    sort_order: Optional[Literal["asc", "desc"]] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# -------------------------
# Folders, files, notes
# -------------------------

class FolderCreate(_Contract):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class FolderUpdate(_Contract):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class FileCreate(_Contract):
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=1024)
    description: Optional[str] = Field(default=None, max_length=500)
    file_size: Optional[int] = Field(default=None, ge=0)
    mime_type: Optional[str] = Field(default=None, max_length=120)


class FileUpdate(_Contract):
    file_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)


class NoteCreate(_Contract):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=10000)


class NoteUpdate(_Contract):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1, max_length=10000)


# -------------------------
# Users
# -------------------------

class UserCreate(_Contract):
    email: str = Field(..., min_length=3, max_length=255)
    name: Optional[str] = Field(default=None, max_length=120)
    role: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.lower()
        if "@" not in normalized:
            raise ValueError("invalid email address")
        return normalized

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = normalize_role(value)
        if normalized not in ROLES:
            raise ValueError("role must be one of LAWYER|MANAGER|SUPER_ADMIN")
        return normalized


class UserStatusUpdate(_Contract):
    is_active: bool


# -------------------------
# Appointments
# -------------------------

AppointmentStatus = Literal["upcoming", "expired", "canceled", "completed"]
AppointmentWith = Literal["court", "client", "both"]


class AppointmentCreate(_Contract):
    case_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = Field(default=None, max_length=255)
    appointment_with: AppointmentWith
    status: AppointmentStatus = "upcoming"
    date: datetime

    @field_validator("description", "location")
    @classmethod
    def blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    @field_validator("date")
    @classmethod
    def date_in_utc(cls, value: datetime) -> datetime:
        return to_utc_naive(value)


class AppointmentUpdate(_Contract):
    case_id: Optional[str] = Field(default=None, min_length=1)
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    location: Optional[str] = Field(default=None, max_length=255)
    appointment_with: Optional[AppointmentWith] = None
    status: Optional[AppointmentStatus] = None
    date: Optional[datetime] = None

    @field_validator("description", "location")
    @classmethod
    def blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    @field_validator("date")
    @classmethod
    def date_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(value)


class AppointmentStatusUpdate(_Contract):
    status: AppointmentStatus


class AppointmentFilters(_Contract):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    appointment_with: Optional[AppointmentWith] = None
    case_id: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def range_in_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_naive(value)


class CalendarRange(_Contract):
    start_date: datetime
    end_date: datetime

    @field_validator("start_date", "end_date")
    @classmethod
    def range_in_utc(cls, value: datetime) -> datetime:
        return to_utc_naive(value)
