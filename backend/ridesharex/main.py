from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm import Session
from sqlalchemy import inspect
from pydantic import BaseModel
from typing import Optional
import logging, os, time

from ridesharex import __version__
from ridesharex.core.database import get_db, engine, Base
from ridesharex.core.errors import LifecycleError
from ridesharex.core.security import create_access_token, create_refresh_token, decode_token, ACCESS_TTL_MIN
from ridesharex.core.time import utc_now
from ridesharex.crud.users import user_crud
from ridesharex.deps.auth import require_role
from ridesharex.metrics import init_metrics_zero, request_latency_seconds
from ridesharex.models import User, Listing, TransitionRecord, Notification  # noqa: F401  (register tables)
from ridesharex.utils.runtime_config import set_notify_webhook, get_notify_webhook
from ridesharex.api import entities, users, listings, admin, notifications

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# FastAPI app
app = FastAPI(
    title="RideShareX Approval API",
    description="Approval lifecycle and audit trail for RideShareX users and listings",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS, allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)

@app.middleware("http")
async def observe_latency(request: Request, call_next):
    start = time.perf_counter()
    try:
        return await call_next(request)
    finally:
        request_latency_seconds.observe(time.perf_counter() - start)

@app.on_event("startup")
def on_startup():
    logger.info("[startup] database type: %s", engine.name)
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error("[startup] error creating tables: %s", e)
    init_metrics_zero()

app.include_router(entities.router)
app.include_router(users.router)
app.include_router(listings.router)
app.include_router(admin.router)
app.include_router(notifications.router)

@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    try:
        users_count = db.query(User).count()
        tables = inspect(db.get_bind()).get_table_names()
        return {
            "status": "healthy",
            "database": "connected",
            "users_count": users_count,
            "tables": tables,
            "timestamp": utc_now(),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e),
            "timestamp": utc_now(),
        }

@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

class LoginIn(BaseModel):
    email: str

@app.post("/auth/login")
def auth_login(body: LoginIn, db: Session = Depends(get_db)):
    # Development login: identity is owned by the external provider in production
    user = user_crud.get_by_email(db, body.email)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown account")
    access = create_access_token(user.id, user.role)
    refresh = create_refresh_token(user.id, user.role)
    return {"access_token": access, "refresh_token": refresh, "token_type": "bearer",
            "expires_in": ACCESS_TTL_MIN * 60, "role": user.role, "user_id": user.id}

class RefreshIn(BaseModel):
    refresh_token: str

@app.post("/auth/refresh")
def auth_refresh(body: RefreshIn):
    try:
        data = decode_token(body.refresh_token, expected_type="refresh")
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired refresh token")
    new_access = create_access_token(data["sub"], data.get("role", "renter"))
    return {"access_token": new_access, "token_type": "bearer", "expires_in": ACCESS_TTL_MIN * 60}

class WebhookIn(BaseModel):
    url: Optional[str] = None

@app.post("/config/notify-webhook", response_model=dict)
def api_set_notify_webhook(body: WebhookIn, user=Depends(require_role("admin"))):
    set_notify_webhook(body.url)
    logger.info("[config] notify webhook %s by %s", "set" if body.url else "cleared", user.id)
    return {"configured": bool(get_notify_webhook())}

@app.get("/config/notify-webhook", response_model=dict)
def api_get_notify_webhook(user=Depends(require_role("admin"))):
    url = get_notify_webhook()
    return {"configured": bool(url), "url": url}
