from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

LOGGER = logging.getLogger("asset_tracker.crm")

DEFAULT_ACCOUNTS_URL = "https://accounts.zoho.com"
DEFAULT_API_BASE_URL = "https://www.zohoapis.com/crm/v2"
DEFAULT_SCOPE = "ZohoCRM.modules.ALL"
DEFAULT_ASSET_MODULE = "Assets"


class CrmError(RuntimeError):
    pass


def _require_env(name: str) -> str:
    value = (os.environ.get(name) or "").strip()
    if not value:
        raise CrmError(f"Missing required environment variable: {name}")
    return value


def _env(name: str, default: str) -> str:
    return (os.environ.get(name) or default).strip()


def _timeout() -> float:
    raw = os.environ.get("ZOHO_HTTP_TIMEOUT_SECONDS") or "20"
    try:
        return max(float(raw), 1.0)
    except ValueError:
        return 20.0


def _send(request: urllib.request.Request, what: str) -> dict[str, Any]:
    try:
        with urllib.request.urlopen(request, timeout=_timeout()) as response:
            body = response.read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        LOGGER.warning("%s failed status=%s", what, exc.code)
        raise CrmError(f"{what} HTTP error: {exc.code}") from exc
    except urllib.error.URLError as exc:
        LOGGER.warning("%s failed reason=%s", what, exc.reason)
        raise CrmError(f"{what} connection error: {exc.reason}") from exc

    try:
        payload = json.loads(body) if body else {}
    except json.JSONDecodeError as exc:
        raise CrmError(f"{what} returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise CrmError(f"{what} payload is not an object")
    if payload.get("error"):
        LOGGER.warning("%s rejected error=%s", what, payload.get("error"))
        raise CrmError(f"{what} rejected: {payload.get('error')}")
    return payload


def build_authorize_url(state: str | None = None) -> str:
    params = {
        "scope": _env("ZOHO_SCOPE", DEFAULT_SCOPE),
        "client_id": _require_env("ZOHO_CLIENT_ID"),
        "response_type": "code",
        "access_type": "offline",
        "redirect_uri": _require_env("ZOHO_REDIRECT_URI"),
        "prompt": "consent",
    }
    if state:
        params["state"] = state
    accounts_url = _env("ZOHO_ACCOUNTS_URL", DEFAULT_ACCOUNTS_URL).rstrip("/")
    return f"{accounts_url}/oauth/v2/auth?{urllib.parse.urlencode(params)}"


def _token_request(grant: dict[str, str], what: str) -> dict[str, Any]:
    form = {
        "client_id": _require_env("ZOHO_CLIENT_ID"),
        "client_secret": _require_env("ZOHO_CLIENT_SECRET"),
        **grant,
    }
    accounts_url = _env("ZOHO_ACCOUNTS_URL", DEFAULT_ACCOUNTS_URL).rstrip("/")
    request = urllib.request.Request(
        url=f"{accounts_url}/oauth/v2/token",
        data=urllib.parse.urlencode(form).encode("utf-8"),
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        method="POST",
    )
    return _send(request, what)


def exchange_code(code: str) -> dict[str, Any]:
    if not (code or "").strip():
        raise CrmError("Authorization code is required")
    return _token_request(
        {
            "grant_type": "authorization_code",
            "code": code.strip(),
            "redirect_uri": _require_env("ZOHO_REDIRECT_URI"),
        },
        "OAuth token exchange",
    )


def refresh_access_token(refresh_token: str) -> dict[str, Any]:
    if not (refresh_token or "").strip():
        raise CrmError("Refresh token is required")
    return _token_request(
        {"grant_type": "refresh_token", "refresh_token": refresh_token.strip()},
        "OAuth token refresh",
    )


def asset_to_crm_record(asset: dict[str, Any]) -> dict[str, Any]:
    record = {
        "Name": asset.get("name"),
        "Asset_Tag": asset.get("asset_tag"),
        "Category": asset.get("category"),
        "Brand": asset.get("brand"),
        "Model": asset.get("model"),
        "Serial_Number": asset.get("serial_number"),
        "Purchase_Date": asset.get("purchase_date"),
        "Warranty_Expiry": asset.get("warranty_expiry"),
        "Status": asset.get("status"),
        "Location": asset.get("location"),
        "Assigned_To": asset.get("assigned_to"),
        "Description": asset.get("notes"),
    }
    return {
        key: value.isoformat() if hasattr(value, "isoformat") else value
        for key, value in record.items()
        if value not in (None, "")
    }


def push_asset(access_token: str, asset: dict[str, Any]) -> dict[str, Any]:
    if not (access_token or "").strip():
        raise CrmError("Access token is required")
    record = asset_to_crm_record(asset)
    if not record.get("Asset_Tag") and not record.get("Name"):
        raise CrmError("Asset payload has neither a tag nor a name")

    base_url = _env("ZOHO_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/")
    module = _env("ZOHO_ASSET_MODULE", DEFAULT_ASSET_MODULE)
    request = urllib.request.Request(
        url=f"{base_url}/{module}",
        data=json.dumps({"data": [record]}).encode("utf-8"),
        headers={
            "Authorization": f"Zoho-oauthtoken {access_token.strip()}",
            "Content-Type": "application/json",
        },
        method="POST",
    )
    result = _send(request, "CRM asset sync")
    LOGGER.info("Asset pushed to CRM tag=%s module=%s", record.get("Asset_Tag"), module)
    return result
