# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
FastAPI application factory.

Responsibilities
----------------
* Validate the settings once and build every collaborator from them
  (database handle, credential store, token service, session tracker,
  password hasher, Bridge client).  They hang off ``app.state``; nothing
  is a module-level singleton.
* Register CORS and request-logging middleware.
* Translate core rejections into HTTP statuses (``REJECTION_STATUS``).
* Mount the feature routers (auth, user, wallet, bridge).
* Expose a /health endpoint for container liveness checks.

Run with:
    uvicorn main:create_app --factory
"""

import time
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from auth.router import router as auth_router
from auth.service import AccountService
from bridge.client import BridgeClient
from bridge.router import router as bridge_router
from core.config import Settings, get_settings
from core.errors import AuthError, BridgeError
from core.logger import logger
from core.security import BackupCipher, PasswordHasher
from core.sessions import SessionTracker
from core.store import CredentialStore
from core.tokens import TokenService
from database import Database
from user.router import router as user_router
from wallet.router import router as wallet_router

# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Bodies are never echoed – they carry passwords, codes and mnemonics.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


async def _auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.reason.value, "message": exc.message},
    )


async def _bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"success": False, "error": "bridge_error", "message": exc.message},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "internal_error", "message": "Internal Server Error"},
    )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_accounts(settings: Settings, database: Database) -> AccountService:
    store = CredentialStore(database)
    return AccountService(
        store=store,
        tokens=TokenService(
            settings.secret_key,
            lifetime=timedelta(minutes=settings.access_token_expire_minutes),
        ),
        sessions=SessionTracker(store, ttl=timedelta(days=settings.session_ttl_days)),
        hasher=PasswordHasher(rounds=settings.password_hash_rounds),
        verification_ttl=timedelta(hours=settings.verification_code_ttl_hours),
        reset_ttl=timedelta(minutes=settings.reset_code_ttl_minutes),
        debug_log_codes=settings.debug_log_codes,
    )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    bridge: Optional[BridgeClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(settings.database_url)

    app = FastAPI(title="Onrampr Wallet API", version="1.0.0")
    app.state.settings = settings
    app.state.database = database
    app.state.accounts = build_accounts(settings, database)
    app.state.bridge = bridge or BridgeClient(
        settings.bridge_api_url,
        settings.bridge_api_key,
        timeout=settings.bridge_timeout_seconds,
    )
    # Wallet backup is unavailable (503) rather than fatal when no master key is set
    app.state.backup_cipher = (
        BackupCipher(settings.master_encryption_key) if settings.master_encryption_key else None
    )

    # -- CORS --------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Device-Id"],
    )
    app.add_middleware(_RequestLogMiddleware)

    app.add_exception_handler(AuthError, _auth_error_handler)
    app.add_exception_handler(BridgeError, _bridge_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    # -- Routers -----------------------------------------------------------
    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(wallet_router)
    app.include_router(bridge_router)

    @app.on_event("startup")
    async def _on_startup():
        logger.info("Onrampr wallet API starting up")
        if not app.state.bridge.is_configured:
            logger.warning("BRIDGE_API_KEY not set – on/off-ramp calls will fail")
        if app.state.backup_cipher is None:
            logger.warning("MASTER_ENCRYPTION_KEY not set – wallet backup disabled")
        if not settings.bridge_webhook_secret:
            logger.warning("BRIDGE_WEBHOOK_SECRET not set – Bridge webhooks will be refused")

    @app.on_event("shutdown")
    async def _on_shutdown():
        logger.info("Onrampr wallet API shutting down")
        app.state.bridge.close()
        database.dispose()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
