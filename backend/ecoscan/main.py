"""
EcoScan API - FastAPI Main Entry

✅ LOCAL:
    cd backend
    python -m uvicorn ecoscan.main:app --reload --host 0.0.0.0 --port 5000

✅ TEST:
    curl -i http://127.0.0.1:5000/
    curl -i http://127.0.0.1:5000/health
    curl -i http://127.0.0.1:5000/docs

✅ PRODUCTION:
    Start Command:
        python -m uvicorn ecoscan.main:app --host 0.0.0.0 --port $PORT
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ecoscan.api.routes_analyze import router as analyze_router
from ecoscan.api.routes_meta import router as meta_router
from ecoscan.core.config import settings
from ecoscan.core.errors import RelayError

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = {
    "health": "GET /health",
    "analyze": "POST /api/sustainability/analyze",
}


def _technical(e: Exception):
    return str(e) if settings.is_development else None


def create_app() -> FastAPI:
    app = FastAPI(
        title="EcoScan API",
        version=settings.APP_VERSION,
        description="Relay between the EcoScan client and the vision model (sustainability analysis)",
    )

    # ✅ CORS (browser client runs on FRONTEND_URL)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ✅ Request log
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)

    # ✅ Error bodies are always {"error", "details", ...}
    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body", "details": "Expected JSON with an 'image' data URL."},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={"error": "Endpoint not found", "availableEndpoints": AVAILABLE_ENDPOINTS},
            )
        if exc.status_code == 413:
            return JSONResponse(
                status_code=413,
                content={
                    "error": "Payload too large",
                    "details": f"Image file is too large. Please use an image under {settings.max_upload_label}.",
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Server error")
        body = {"error": "Internal server error", "details": "An unexpected error occurred. Please try again."}
        if _technical(exc):
            body["technicalDetails"] = _technical(exc)
        return JSONResponse(status_code=500, content=body)

    # ✅ Root (GET /)
    @app.get("/")
    def root():
        return {
            "message": "EcoScan Backend API",
            "version": settings.APP_VERSION,
            "endpoints": {
                "health": "/health",
                "analyze": "/api/sustainability/analyze",
            },
        }

    # ✅ Mount routers
    app.include_router(meta_router)
    app.include_router(analyze_router)

    logger.info(
        f"EcoScan API {settings.APP_VERSION} | model={settings.GEMINI_MODEL} | "
        f"API key configured: {'yes' if settings.api_configured else 'no'} | frontend={settings.FRONTEND_URL}"
    )

    return app


app = create_app()
