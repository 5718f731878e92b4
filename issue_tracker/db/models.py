from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, Boolean, Index
from datetime import datetime
from .database import Base

class Issue(Base):
    __tablename__ = "issues"
    id: Mapped[str] = mapped_column(String(24), primary_key=True)
    project: Mapped[str] = mapped_column(String(255), index=True)
    issue_title: Mapped[str] = mapped_column(Text)
    issue_text: Mapped[str] = mapped_column(Text)
    created_by: Mapped[str] = mapped_column(String(255))
    assigned_to: Mapped[str] = mapped_column(String(255), default="")
    status_text: Mapped[str] = mapped_column(String(255), default="")
    created_on: Mapped[datetime] = mapped_column(DateTime)  # naive UTC
    updated_on: Mapped[datetime] = mapped_column(DateTime)  # naive UTC
    open: Mapped[bool] = mapped_column(Boolean, default=True)

Index("idx_issues_project_open", Issue.project, Issue.open)
