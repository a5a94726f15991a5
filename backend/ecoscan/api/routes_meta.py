import os
from datetime import datetime, timezone

from fastapi import APIRouter

from ecoscan.core.config import settings

router = APIRouter(tags=["meta"])


@router.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "apiConfigured": settings.api_configured,
        "features": {
            "imageQualityCheck": settings.ENABLE_QUALITY_CHECK,
            "imageOptimization": settings.ENABLE_IMAGE_OPTIMIZATION,
            "alternativeRecommendations": True,
        },
    }


@router.get("/version")
def version():
    return {
        "version": settings.APP_VERSION,
        "build": settings.BUILD_ID,
        "render_git_commit": os.environ.get("RENDER_GIT_COMMIT"),
        "render_service_id": os.environ.get("RENDER_SERVICE_ID"),
    }
