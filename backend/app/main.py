# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.db import init_db, close_db
from app.core.bootstrap import ensure_default_admin
from app.core.errors import ServiceError
from app.core.pubsub import ConnectionRegistry
from app.services.messaging import MessagingGateway

from app.api.v1.routers import auth, mentorship, messages
from app.api.v1.routers.ws_chat import router as ws_chat_router

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One registry per process; REST sends and the chat socket share it
app.state.registry = ConnectionRegistry()
app.state.gateway = MessagingGateway(app.state.registry)

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, err: ServiceError):
    if err.status_code >= 500:
        logger.error("[api] %s %s -> %s", request.method, request.url.path, err.code)
    return JSONResponse(status_code=err.status_code, content={"detail": err.to_dict()})

@app.on_event("startup")
async def on_startup():
    await init_db()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()
    logger.info("[startup] %s ready (env=%s)", settings.APP_NAME, settings.env)

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(mentorship.router, prefix="/api/v1")
app.include_router(messages.router, prefix="/api/v1")

# WebSocket
app.include_router(ws_chat_router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
