from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class CreateAssignmentDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    asset_id: Optional[int] = None
    assigned_to: Optional[str] = None
    assigned_to_email: Optional[str] = None
    assigned_to_department: Optional[str] = None
    assigned_to_employee_id: Optional[str] = None
    assignment_date: Optional[date] = None
    location: Optional[str] = None
    purpose: Optional[str] = None
    expected_return_date: Optional[date] = None
    terms_and_conditions: bool = True
    notes: Optional[str] = None
    assignee_signature: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_by_signature: Optional[str] = None

    @field_validator("assignment_date", "expected_return_date", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("assigned_to_employee_id", mode="before")
    @classmethod
    def _employee_id_as_text(cls, value):
        if isinstance(value, int):
            return str(value)
        return value


class ReturnAssignmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    return_notes: Optional[str] = None
