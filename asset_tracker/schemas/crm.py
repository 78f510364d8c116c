from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class OAuthTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    code: str


class OAuthRefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    refresh_token: str


class SyncAssetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    access_token: str
    asset_id: Optional[int] = None
    asset: Optional[dict[str, Any]] = None
