"""
Operation wrapper for ingress endpoints.

Each endpoint accepts exactly one HTTP verb and returns JSON, always. The
wrapper owns the shared skeleton: verb check, input parsing, lifecycle logs
and the ``Failed to <action>: <message>`` error template.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Type

from fastapi import APIRouter, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from socialsync.config import ProxyConfig, load_config
from socialsync.errors import GatewayError, InvalidRequestError
from socialsync.logging import SocialSyncLogger, get_logger, set_correlation_id
from socialsync.models.gateway import ErrorResponse

logger = get_logger("socialsync.operations")

# Registered on every verb so that a wrong one gets our 405 body
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@dataclass
class OperationContext:
    """What a handler may use besides its parsed input."""

    request: Request
    config: ProxyConfig
    logger: SocialSyncLogger
    correlation_id: str


def get_config(request: Request) -> ProxyConfig:
    """Return the injected config, or re-read it for this call."""
    config = getattr(request.app.state, "config", None)
    if config is None:
        return load_config()
    return config


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=ErrorResponse(error=message).model_dump()
    )


def describe_validation_error(error: ValidationError) -> str:
    """Flatten pydantic errors into one readable line."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "body"
        parts.append(f"{location}: {detail.get('msg')}")
    return "Invalid request: " + "; ".join(parts)


async def parse_input(request: Request, input_model: Type[BaseModel]) -> BaseModel:
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else {}
    except ValueError as e:
        raise InvalidRequestError(f"Request body must be valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    try:
        return input_model.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequestError(describe_validation_error(e)) from e


def operation(
    router: APIRouter,
    path: str,
    *,
    method: str,
    action: str,
    input_model: Optional[Type[BaseModel]] = None,
):
    """Register ``handler`` at ``path`` as a single-verb JSON operation.

    The handler is called as ``handler(ctx, payload)`` when ``input_model`` is
    given, otherwise ``handler(ctx)``. It returns a JSON-serializable result or
    raises; a ``GatewayError`` picks the status, anything else is a 500.
    """
    method = method.upper()

    def decorator(handler: Callable[..., Awaitable[Any]]):
        operation_name = handler.__name__

        async def endpoint(request: Request) -> Response:
            if request.method != method:
                return error_response(405, "Method Not Allowed")

            start_time = time.time()
            try:
                config = get_config(request)
                correlation_id = set_correlation_id(
                    request.headers.get(config.correlation_header)
                )
                logger.log_operation_received(operation_name, method, path)

                ctx = OperationContext(
                    request=request, config=config, logger=logger, correlation_id=correlation_id
                )
                if input_model is not None:
                    payload = await parse_input(request, input_model)
                    result = await handler(ctx, payload)
                else:
                    result = await handler(ctx)
            except GatewayError as e:
                return _failure(operation_name, action, e, e.status_code, start_time)
            except Exception as e:
                return _failure(operation_name, action, e, 500, start_time)

            logger.log_operation_succeeded(operation_name, (time.time() - start_time) * 1000)
            return JSONResponse(status_code=200, content=jsonable_encoder(result))

        endpoint.__name__ = operation_name
        router.add_api_route(
            path,
            endpoint,
            methods=ALL_METHODS,
            name=operation_name,
            include_in_schema=False,
        )
        return handler

    return decorator


def _failure(
    operation_name: str, action: str, error: Exception, status_code: int, start_time: float
) -> JSONResponse:
    message = f"Failed to {action}: {error}"
    logger.log_operation_failed(
        operation_name, error, status_code, duration_ms=(time.time() - start_time) * 1000
    )
    return error_response(status_code, message)
