"""Shared HTTP plumbing: the response envelope and error codes."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
