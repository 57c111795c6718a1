"""
Shared error taxonomy for the describe and generate flows.

Every error carries the HTTP status it is surfaced with, so route handlers
can turn it into a uniform `{"error": message}` body.
"""

from typing import Tuple

from flask import jsonify, Response


class ServiceError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500

    def to_response(self) -> Tuple[Response, int]:
        return jsonify({"error": str(self)}), self.status_code


class ValidationError(ServiceError):
    """A required field is missing or malformed in the request body."""

    status_code = 400


class ConfigurationError(ServiceError):
    """A required credential or setting is absent from the environment."""


class UpstreamEmptyResponse(ServiceError):
    """An external AI service answered without a usable result."""


class JobFailed(ServiceError):
    """The generation job reached a terminal failure state."""


class JobTimeoutOrMissingOutput(ServiceError):
    """The job never succeeded within the attempt budget, or succeeded without output."""


class JobCancelled(ServiceError):
    """Polling was cancelled before the job reached a terminal state."""
