from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from socialsync.config import ProxyConfig, load_config
from socialsync.logging import EventType, LogLevel, configure_logging, get_logger
from socialsync.middleware import add_correlation_middleware
from socialsync.models import ErrorResponse
from socialsync.routes import airtable_router, health_router, providers_router

logger = get_logger("socialsync.app")


async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    """Answer verbs the operations never register with the operations' 405 body."""
    if exc.status_code != 405:
        return await http_exception_handler(request, exc)
    return JSONResponse(
        status_code=405,
        content=ErrorResponse(error="Method Not Allowed").model_dump(),
        headers=exc.headers,
    )


def create_app(config: Optional[ProxyConfig] = None) -> FastAPI:
    """Build the proxy app.

    With an explicit ``config`` every call uses it; without one, settings are
    re-read from the environment and config file on each call.
    """
    startup_config = config or load_config()

    application = FastAPI(title="SocialSync API")
    application.state.config = config

    configure_logging(LogLevel(startup_config.log_level))
    add_correlation_middleware(application, header_name=startup_config.correlation_header)
    application.add_exception_handler(StarletteHTTPException, method_not_allowed_handler)

    application.include_router(health_router)
    application.include_router(airtable_router)
    application.include_router(providers_router)

    logger.log_event(EventType.GATEWAY_START, "SocialSync proxy starting up")
    return application


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
