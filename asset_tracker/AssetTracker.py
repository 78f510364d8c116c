import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from asset_tracker.db.deps import get_asset_db
from asset_tracker.db.session import init_db
from asset_tracker.schemas.asset_requests import CreateRequestDto, RequestStatusUpdate
from asset_tracker.schemas.assets import AssetUpsert
from asset_tracker.schemas.assignments import CreateAssignmentDto, ReturnAssignmentRequest
from asset_tracker.schemas.crm import OAuthRefreshRequest, OAuthTokenRequest, SyncAssetRequest
from asset_tracker.services import crm_service
from asset_tracker.services.asset_service import (
    create_asset,
    delete_asset,
    get_asset,
    list_assets,
    serialize_asset,
    update_asset,
)
from asset_tracker.services.assignment_service import (
    create_assignment,
    get_assignment,
    list_assignments,
    return_assignment,
    serialize_assignment,
)
from asset_tracker.services.category_service import list_categories, serialize_category
from asset_tracker.services.dashboard_service import get_dashboard_stats
from asset_tracker.services.errors import AssetTrackerError, ValidationError
from asset_tracker.services.request_service import (
    create_request,
    get_request,
    list_requests,
    serialize_request,
    update_request_status,
)

API_LOGGER = logging.getLogger("asset_tracker.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="IT Asset Tracker", lifespan=lifespan)


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in str(raw).split(",") if item.strip()]


_CORS_ALLOW_ORIGINS = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    "http://127.0.0.1,http://localhost,http://127.0.0.1:5173,http://localhost:5173",
)
_CORS_ALLOW_CREDENTIALS = str(os.environ.get("CORS_ALLOW_CREDENTIALS", "true")).strip().lower() in {"1", "true", "yes", "on"}
if "*" in _CORS_ALLOW_ORIGINS:
    # Browsers reject wildcard origins with credentials.
    _CORS_ALLOW_CREDENTIALS = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ALLOW_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AssetTrackerError)
async def asset_tracker_error_handler(request: Request, exc: AssetTrackerError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(crm_service.CrmError)
async def crm_error_handler(request: Request, exc: crm_service.CrmError):
    return JSONResponse(status_code=502, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request."})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    API_LOGGER.exception("Unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/healthz")
def healthcheck():
    return {"status": "ok"}


@app.get("/api/healthz")
def healthcheck_api(db: Session = Depends(get_asset_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:
        API_LOGGER.warning("Health check failed: %s", exc)
        raise HTTPException(status_code=503, detail="db_unavailable") from exc


@app.get("/api/assets")
def get_assets(
    q: str = Query("", alias="q"),
    status: str | None = Query(None),
    category: str | None = Query(None),
    db: Session = Depends(get_asset_db),
):
    return [serialize_asset(asset) for asset in list_assets(db, query=q, status=status, category=category)]


@app.get("/api/assets/{asset_id}")
def get_asset_item(asset_id: int, db: Session = Depends(get_asset_db)):
    return serialize_asset(get_asset(db, asset_id))


@app.get("/api/assets/{asset_id}/assignments")
def get_asset_assignments(asset_id: int, db: Session = Depends(get_asset_db)):
    get_asset(db, asset_id)
    return [serialize_assignment(item) for item in list_assignments(db, asset_id=asset_id)]


@app.post("/api/assets")
def post_asset(payload: AssetUpsert, db: Session = Depends(get_asset_db)):
    asset = create_asset(db, payload.model_dump(exclude_unset=True))
    return {"id": asset.id, "message": "Asset created successfully"}


@app.put("/api/assets/{asset_id}")
def put_asset(asset_id: int, payload: AssetUpsert, db: Session = Depends(get_asset_db)):
    update_asset(db, asset_id, payload.model_dump(exclude_unset=True))
    return {"message": "Asset updated successfully"}


@app.delete("/api/assets/{asset_id}")
def remove_asset(asset_id: int, db: Session = Depends(get_asset_db)):
    delete_asset(db, asset_id)
    return {"message": "Asset deleted successfully"}


@app.get("/api/requests")
def get_requests(status: str | None = Query(None), db: Session = Depends(get_asset_db)):
    return [serialize_request(item) for item in list_requests(db, status=status)]


@app.get("/api/requests/{request_pk}")
def get_request_item(request_pk: int, db: Session = Depends(get_asset_db)):
    return serialize_request(get_request(db, request_pk))


@app.post("/api/requests")
def post_request(payload: CreateRequestDto, db: Session = Depends(get_asset_db)):
    created = create_request(db, payload)
    return {"id": created.id, "request_id": created.request_id, "message": "Request created successfully"}


@app.put("/api/requests/{request_pk}")
def put_request(request_pk: int, payload: RequestStatusUpdate, db: Session = Depends(get_asset_db)):
    update_request_status(db, request_pk, payload)
    return {"message": "Request updated successfully"}


@app.get("/api/categories")
def get_categories(db: Session = Depends(get_asset_db)):
    return [serialize_category(category) for category in list_categories(db)]


@app.get("/api/assignments")
def get_assignments(
    status: str | None = Query(None),
    asset_id: int | None = Query(None),
    db: Session = Depends(get_asset_db),
):
    return [serialize_assignment(item) for item in list_assignments(db, status=status, asset_id=asset_id)]


@app.get("/api/assignments/{assignment_id}")
def get_assignment_item(assignment_id: int, db: Session = Depends(get_asset_db)):
    return serialize_assignment(get_assignment(db, assignment_id))


@app.post("/api/assignments")
def post_assignment(payload: CreateAssignmentDto, db: Session = Depends(get_asset_db)):
    assignment = create_assignment(db, payload)
    return {"id": assignment.id, "message": "Assignment created successfully"}


@app.put("/api/assignments/{assignment_id}/return")
def put_assignment_return(
    assignment_id: int,
    payload: ReturnAssignmentRequest | None = None,
    db: Session = Depends(get_asset_db),
):
    return_notes = payload.return_notes if payload else None
    return_assignment(db, assignment_id, return_notes)
    return {"message": "Asset returned successfully"}


@app.get("/api/dashboard/stats")
def get_stats(db: Session = Depends(get_asset_db)):
    return get_dashboard_stats(db)


@app.get("/api/oauth/authorize")
def oauth_authorize(state: str | None = Query(None)):
    return {"authorization_url": crm_service.build_authorize_url(state)}


@app.post("/api/oauth/token")
def oauth_token(payload: OAuthTokenRequest):
    return crm_service.exchange_code(payload.code)


@app.post("/api/oauth/refresh")
def oauth_refresh(payload: OAuthRefreshRequest):
    return crm_service.refresh_access_token(payload.refresh_token)


@app.post("/api/zoho/sync-asset")
def zoho_sync_asset(payload: SyncAssetRequest, db: Session = Depends(get_asset_db)):
    if payload.asset_id is not None:
        asset = serialize_asset(get_asset(db, payload.asset_id))
    elif payload.asset:
        asset = payload.asset
    else:
        raise ValidationError("Either asset_id or asset is required")
    return crm_service.push_asset(payload.access_token, asset)
