from typing import Optional

from pydantic import BaseModel, ConfigDict


class CreateRequestDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    department: Optional[str] = None
    asset_type: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None


class RequestStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: Optional[str] = None
    approved_by: Optional[str] = None
    notes: Optional[str] = None
