"""Error types raised by the Resi Studio client."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Type

import requests

logger = logging.getLogger(__name__)


class ResiError(Exception):
    """Base class for every failure surfaced by the bridge."""


class MissingCredentials(ResiError):
    def __init__(self) -> None:
        super().__init__("Client ID and Client Secret are required")


class AuthenticationFailed(ResiError):
    """Token exchange failed or returned an unusable payload."""


class MalformedResponse(ResiError):
    """The API answered 2xx with a body that does not match its schema."""


class NetworkFailure(ResiError):
    """Transport-level failure: DNS, connection reset, timeout."""


class ApiError(ResiError):
    """Non-2xx answer from the API."""

    default_message = "Unexpected error"

    def __init__(self, status_code: int, message: Optional[str] = None, request_id: Optional[str] = None):
        self.status_code = status_code
        self.request_id = request_id
        super().__init__(message or self.default_message)


class BadRequest(ApiError):
    default_message = "Bad Request: Check your input values."


class Unauthorized(ApiError):
    default_message = "Unauthorized: Check your API credentials."


class Forbidden(ApiError):
    default_message = "Forbidden: You may not have access to this resource."


class NotFound(ApiError):
    default_message = "Not Found: The requested resource does not exist."


class Conflict(ApiError):
    default_message = "Conflict: Encoder may already be live or there is an overlapping schedule."


class RateLimited(ApiError):
    default_message = "Too Many Requests: Rate limit exceeded. Please try again later."


class ServerUnavailable(ApiError):
    default_message = "Error 520: The server encountered an unexpected condition."


_STATUS_ERRORS: Dict[int, Type[ApiError]] = {
    400: BadRequest,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    409: Conflict,
    429: RateLimited,
    520: ServerUnavailable,
}


def error_for_response(response: requests.Response) -> ApiError:
    """Build the typed error for a failed response and log its details."""
    request_id = response.headers.get("x-request-id")
    logger.error("Error: %s %s", response.status_code, response.reason)
    if response.url:
        logger.debug("API URL: %s", response.url)
    if request_id:
        logger.debug("x-request-id: %s", request_id)
    if response.text:
        logger.debug("Response body: %s", response.text)

    error_cls = _STATUS_ERRORS.get(response.status_code)
    if error_cls is not None:
        return error_cls(response.status_code, request_id=request_id)
    if response.status_code >= 500:
        return ServerUnavailable(
            response.status_code,
            f"Server error: {response.status_code} {response.reason}",
            request_id=request_id,
        )
    return ApiError(
        response.status_code,
        f"Unexpected error: {response.status_code} {response.reason}",
        request_id=request_id,
    )
