import logging
from typing import Optional

from fastapi.responses import JSONResponse
from .raycast_models import ApiError

logger = logging.getLogger(__name__)

INVALID_REQUEST = "invalid_request_error"
AUTHENTICATION = "authentication_error"
BAD_GATEWAY = "bad_gateway"
SERVER_ERROR = "server_error"
NOT_FOUND = "not_found"


class GatewayError(Exception):
    """Error raised by the gateway itself, rendered as an OpenAI error envelope."""
    def __init__(self, message: str, err_type: str, status_code: int):
        self.message = message
        self.err_type = err_type
        self.status_code = status_code
        super().__init__(self.message)


def error_response(message: str, err_type: str, status_code: int, code: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "message": message,
                "type": err_type,
                "code": code,
            }
        },
    )


def map_gateway_error(err: GatewayError) -> JSONResponse:
    return error_response(err.message, err.err_type, err.status_code)


def map_api_error(err: ApiError) -> JSONResponse:
    """Map ApiError to a 502 response; the upstream body never reaches the client."""
    sc = err.status_code

    # Log API errors at warning level (expected errors from upstream)
    logger.warning(
        f"API error: {err.message} (status_code={sc})",
        extra={"status_code": sc, "error_type": type(err).__name__}
    )

    if sc is None:
        return error_response("Raycast API unreachable", BAD_GATEWAY, 502)
    return error_response(f"Raycast API error ({sc})", BAD_GATEWAY, 502)


def map_generic_error(err: Exception) -> JSONResponse:
    """Map unexpected exceptions to 500 error with detailed logging."""
    logger.error(
        f"Unexpected error: {type(err).__name__}: {str(err)}",
        exc_info=err,
        extra={
            "error_type": type(err).__name__,
            "error_message": str(err),
        }
    )

    # Avoid leaking internal details to client
    return error_response("An unexpected internal server error occurred.", SERVER_ERROR, 500)
