from http import HTTPStatus
from typing import Optional


class FeeTrackerError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: int = 500

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or HTTPStatus(self.status_code).phrase
        super().__init__(self.detail)


class ValidationError(FeeTrackerError):
    status_code = 422


class AuthenticationError(FeeTrackerError):
    """Missing (401) or invalid/insufficient (403) credentials.

    The detail is always the bare status phrase so nothing about the token
    leaks to the caller.
    """

    status_code = 401

    def __init__(self, status_code: int = 401):
        super().__init__(None, status_code)


class NotFoundError(FeeTrackerError):
    status_code = 404


class PersistenceError(FeeTrackerError):
    status_code = 503
