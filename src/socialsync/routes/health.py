from datetime import datetime, timezone

from fastapi import APIRouter

from socialsync.operations import OperationContext, operation

router = APIRouter(prefix="/api")


@operation(router, "/health", method="GET", action="report health")
async def health(ctx: OperationContext):
    """Report which upstreams have their settings present."""
    config = ctx.config
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "gemini": bool(config.gemini.api_key),
            "openrouter": bool(config.openrouter.api_key),
            "cloudinary": bool(config.cloudinary.cloud_name and config.cloudinary.upload_preset),
            "facebook": bool(config.facebook.app_id),
            "airtable": config.airtable.credentials() is not None,
        },
    }
