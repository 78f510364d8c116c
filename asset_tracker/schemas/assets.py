from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class AssetUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    asset_tag: Optional[str] = None
    name: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    status: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("purchase_date", "warranty_expiry", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value
