"""
Gateway error -> HTTP response mapping.

  4xx: the request itself is wrong, retrying will not help
  5xx: infrastructure or integrity failure, the sender should retry
       (transient failures carry Retry-After)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from transfer_gateway.client.errors import RemoteApiError
from transfer_gateway.engine.errors import (
    DataIntegrityError,
    GatewayError,
    InvalidPaymentMethodError,
    MalformedNotificationError,
    PaymentMethodNotFoundError,
    RefreshFailedError,
    StateInconsistencyError,
    TokenMissingError,
    TransientInfrastructureError,
)

logger = logging.getLogger("transfer_gateway.api")

_STATUS_BY_ERROR: list[tuple[type[GatewayError], int, str]] = [
    (MalformedNotificationError, 400, "MALFORMED_NOTIFICATION"),
    (InvalidPaymentMethodError, 400, "INVALID_PAYMENT_METHOD"),
    (PaymentMethodNotFoundError, 404, "PAYMENT_METHOD_NOT_FOUND"),
    (TokenMissingError, 409, "TOKEN_MISSING"),
    (RefreshFailedError, 502, "TOKEN_REFRESH_FAILED"),
    (StateInconsistencyError, 500, "STATE_INCONSISTENCY"),
    (DataIntegrityError, 500, "DATA_INTEGRITY"),
    (TransientInfrastructureError, 503, "TRANSIENT_INFRASTRUCTURE"),
]


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    status, code = 500, "GATEWAY_ERROR"
    for error_type, error_status, error_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status, code = error_status, error_code
            break

    if status >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, code)
    else:
        logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, code)

    headers = {"Retry-After": "60"} if status == 503 else None
    return JSONResponse(status_code=status, content={"error_code": code, "detail": exc.message}, headers=headers)


async def _remote_error_handler(request: Request, exc: RemoteApiError) -> JSONResponse:
    logger.error("%s %s: processor error %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=502,
        content={"error_code": "PROCESSOR_ERROR", "detail": exc.message, "processor_code": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, _gateway_error_handler)
    app.add_exception_handler(RemoteApiError, _remote_error_handler)
