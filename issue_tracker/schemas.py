from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from typing import Optional, Any
from datetime import datetime

REQUIRED_FIELDS = ("issue_title", "issue_text", "created_by")
TEXT_FIELDS = REQUIRED_FIELDS + ("assigned_to", "status_text")

def _scalar_to_str(v: Any) -> Any:
    # Form bodies are all strings already; JSON bodies may carry numbers
    if isinstance(v, bool):
        return str(v).lower()
    if isinstance(v, (int, float)):
        return str(v)
    return v

class IssueCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    issue_title: Optional[str] = None
    issue_text: Optional[str] = None
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    status_text: Optional[str] = None

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, v: Any):
        return _scalar_to_str(v)

    def missing_required(self) -> bool:
        return any(not (getattr(self, f) or "").strip() for f in REQUIRED_FIELDS)

class IssueUpdate(BaseModel):
    """Partial update: every mutable field is optional; unknown keys are dropped."""
    model_config = ConfigDict(extra="ignore")

    issue_title: Optional[str] = None
    issue_text: Optional[str] = None
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    status_text: Optional[str] = None
    open: Optional[bool] = None

    @field_validator("*", mode="before")
    @classmethod
    def _empty_to_none(cls, v: Any):
        if v == "":
            return None
        return v

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, v: Any):
        return _scalar_to_str(v)

    def changes(self) -> dict:
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}

class IssueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(serialization_alias="_id")
    issue_title: str
    issue_text: str
    created_by: str
    assigned_to: str
    status_text: str
    created_on: datetime
    updated_on: datetime
    open: bool

    @field_serializer("created_on", "updated_on")
    def _iso_utc(self, dt: datetime) -> str:
        return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"
