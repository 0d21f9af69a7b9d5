# app/main.py
"""
FastAPI application - WhatsApp group movements, auto messages and
group administration on top of the Evolution API.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import CORS_ORIGINS, JWT_SECRET_KEY, LOG_LEVEL, PORT
from app.core.errors import AppError, conflict_error
from app.core.logging_config import setup_logging
from app.core.redis_client import get_redis_url
from app.db.session import init_db, test_db_connection
from app.api.v1.router import api_router
from app.services import shutdown_services
from app.ws.manager import ws_manager

setup_logging("whatsgroups", LOG_LEVEL)
log = logging.getLogger("whatsgroups")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("🚀 Application starting")
    try:
        init_db()
        if test_db_connection():
            log.info("✅ Database initialized")
    except Exception as e:
        log.error(f"❌ Database error: {e}")
    yield
    shutdown_services()
    log.info("👋 Application stopped")


app = FastAPI(
    title="WhatsGroups",
    description="WhatsApp group movements, auto messages and group administration",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ────────────────────────────────────────────
# CORS Configuration
# ────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ────────────────────────────────────────────
# Public routes
# ────────────────────────────────────────────

@app.get("/healthz", tags=["System"])
def health():
    """Health check endpoint"""
    db_ok = test_db_connection()
    return {
        "status": "ok" if db_ok else "degraded",
        "database_ok": db_ok,
        "redis_configured": bool(get_redis_url()),
        "jwt_enabled": bool(JWT_SECRET_KEY),
        "websocket_connections": ws_manager.connection_count(),
    }


@app.get("/", include_in_schema=False)
def index():
    return {"service": "whatsgroups", "status": "running", "docs": "/docs"}


# ────────────────────────────────────────────
# WebSocket Endpoint
# ────────────────────────────────────────────

@app.websocket("/ws/{user_id}")
async def websocket_endpoint(websocket: WebSocket, user_id: str):
    """Real-time group updates for one user"""
    try:
        await ws_manager.connect(user_id, websocket)
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break
    except Exception as e:
        log.error(f"❌ WebSocket error for user {user_id}: {e}")
    finally:
        ws_manager.disconnect(user_id, websocket)


# ────────────────────────────────────────────
# Exception Handlers
# ────────────────────────────────────────────

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        log.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "message": str(exc.detail)},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"status": "validation_error", "message": message})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    log.warning(f"⚠️ Constraint violation on {request.method} {request.url.path}: {exc.orig}")
    err = conflict_error("Record conflicts with existing data")
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"status": "error", "message": "Internal server error"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
