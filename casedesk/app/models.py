from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from casedesk.app.db import Base


# -------------------------
# Helpers
# -------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def uuid_str() -> str:
    return str(uuid.uuid4())


# -------------------------
# Users
# -------------------------

class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="LAWYER")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    assigned_cases: Mapped[List["Case"]] = relationship("Case", back_populates="assigned_lawyer")


# -------------------------
# Cases (a "client" in the firm's vocabulary)
# -------------------------

class Case(Base):
    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint("case_number", name="uq_cases_case_number"),
        Index("ix_cases_status", "status"),
        Index("ix_cases_assigned_lawyer_id", "assigned_lawyer_id"),
        Index("ix_cases_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)

    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(20), nullable=False)
    case_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False, default="Pending")

    assigned_lawyer_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    court: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    appointment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # audit field, never patched
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    assigned_lawyer: Mapped[Optional[User]] = relationship("User", back_populates="assigned_cases")

    # Deletes go through a single DELETE on cases; the database cascades.
    folders: Mapped[List["Folder"]] = relationship(
        "Folder",
        back_populates="case",
        order_by="Folder.name",
        passive_deletes="all",
    )
    case_notes: Mapped[List["Note"]] = relationship(
        "Note",
        back_populates="case",
        order_by="Note.created_at.desc()",
        passive_deletes="all",
    )


class Folder(Base):
    __tablename__ = "folders"
    __table_args__ = (
        UniqueConstraint("case_id", "name", name="uq_folders_case_name"),
        Index("ix_folders_case_id", "case_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    case_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="custom")
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    case: Mapped[Case] = relationship("Case", back_populates="folders")

    # NOTE: files.folder_id has no ON DELETE action, so the database refuses to
    # drop a folder that still holds files. passive_deletes="all" stops the ORM
    # from nulling the FK first.
    files: Mapped[List["CaseFile"]] = relationship(
        "CaseFile",
        back_populates="folder",
        order_by="CaseFile.uploaded_at.desc()",
        passive_deletes="all",
    )


class CaseFile(Base):
    """Metadata for an uploaded document. The bytes live in external storage."""

    __tablename__ = "files"
    __table_args__ = (
        Index("ix_files_folder_id", "folder_id"),
        Index("ix_files_case_id", "case_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    # a case delete removes files through this FK in the same statement as folders
    case_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
    )
    folder_id: Mapped[str] = mapped_column(String(36), ForeignKey("folders.id"), nullable=False)

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    file_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    folder: Mapped[Folder] = relationship("Folder", back_populates="files")


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (Index("ix_notes_case_id", "case_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    case_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    case: Mapped[Case] = relationship("Case", back_populates="case_notes")


class AuditLog(Base):
    """
    Append-only audit log for case mutations.

    case_id carries no foreign key: rows for a deleted case stay.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_case_id", "case_id"),
        Index("ix_audit_logs_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    case_id: Mapped[str] = mapped_column(String(36), nullable=False)

    event_type: Mapped[str] = mapped_column(String(80), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    actor_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    before_state: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    after_state: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


# -------------------------
# Appointments
# -------------------------

class Appointment(Base):
    """A court date or client meeting, owned by the user who booked it."""

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_case_id", "case_id"),
        Index("ix_appointments_user_id_date", "user_id", "date"),
        Index("ix_appointments_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    case_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    appointment_with: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="upcoming")
    # naive UTC, like every other timestamp here
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    case: Mapped[Case] = relationship("Case")
    user: Mapped[User] = relationship("User")
