"""
Request/Response Interceptor Chain
==================================

Cross-cutting behaviour shared by every backend client:

- Request phase: attach `Authorization: Bearer <credential>` when the
  SessionStore holds a credential. Without one the request goes out untouched
  and the backend is expected to reject it.
- Response phase: 401 is inspected first and resolved locally by clearing
  the SessionStore and forcing a full navigation to the entry screen. 403
  becomes a ForbiddenError; every other failure becomes a generic
  RequestFailedError (TransientError for network faults and 5xx).

Concurrent 401s are harmless: clearing an empty store and reloading the entry
screen while already on it are both no-ops.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from clinxr.core.config import (
    ENTRY_PATH,
    MESSAGE_FORBIDDEN,
    MESSAGE_REQUEST_FAILED,
)
from clinxr.core.navigation import Navigator
from clinxr.core.session import SessionStore


# ============================================================================
# EXCEPTIONS
# ============================================================================

class BackendAPIError(Exception):
    """Base exception for all backend request errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class UnauthenticatedError(BackendAPIError):
    """
    Raised after a 401 has already been handled by forcing a logout.

    Not a RequestFailedError: views that display request failures let this one
    pass, since the navigation to the entry screen is the user-visible outcome.
    """
    pass


class RequestFailedError(BackendAPIError):
    """Raised when a request fails for any reason other than authentication."""
    user_message = MESSAGE_REQUEST_FAILED


class ForbiddenError(RequestFailedError):
    """Raised when the credential is valid but lacks rights (403)."""
    user_message = MESSAGE_FORBIDDEN


class TransientError(RequestFailedError):
    """Raised on network failures, timeouts and 5xx responses."""
    pass


# ============================================================================
# REQUEST MODEL
# ============================================================================

@dataclass
class OutgoingRequest:
    """Everything needed to dispatch one backend call."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    json: Optional[Any] = None
    data: Optional[Any] = None
    files: Optional[Dict[str, Any]] = None
    skip_auth: bool = False


# ============================================================================
# INTERCEPTORS
# ============================================================================

class BearerTokenInterceptor:
    """Injects the stored credential as a bearer Authorization header."""

    def __init__(self, session: SessionStore):
        self.session = session

    def on_request(self, request: OutgoingRequest) -> OutgoingRequest:
        if request.skip_auth:
            return request
        # Captured once; later store changes do not affect this request
        credential = self.session.get()
        if credential:
            request.headers["Authorization"] = f"Bearer {credential}"
        return request


class AuthFailureInterceptor:
    """
    Maps failed responses onto the error taxonomy.

    A 401 on an authenticated request clears the session and reloads the entry
    screen before UnauthenticatedError is raised.
    """

    def __init__(self, session: SessionStore, navigator: Navigator):
        self.session = session
        self.navigator = navigator
        self.logger = logging.getLogger(__name__)

    def on_response(self, request: OutgoingRequest, response: requests.Response) -> requests.Response:
        status = response.status_code
        if status < 400:
            return response

        reason = f"HTTP {status}: {response.reason or ''}".strip()

        if status == 401:
            if request.skip_auth:
                raise RequestFailedError(f"Authentication rejected: {reason}", status, request.url)
            self.force_logout(request.url)
            raise UnauthenticatedError(f"Session expired: {reason}", status, request.url)

        if status == 403:
            self.logger.warning(f"Permission denied for {request.method} {request.url}")
            raise ForbiddenError(f"Permission denied: {reason}", status, request.url)

        if status >= 500:
            raise TransientError(f"Server error: {reason}", status, request.url)

        raise RequestFailedError(f"Request failed: {reason}", status, request.url)

    def on_error(self, request: OutgoingRequest, error: requests.RequestException) -> None:
        """Transport-level failure (no response at all)."""
        self.logger.error(f"{request.method} {request.url} failed: {type(error).__name__}: {error}")
        raise TransientError(f"Network error: {error}", None, request.url) from error

    def force_logout(self, url: str) -> None:
        removed = self.session.clear()
        if removed:
            self.logger.warning(f"Credential rejected by {url}, logging out")
        self.navigator.navigate(ENTRY_PATH, reload=True)


class InterceptorChain:
    """Ordered request and response interceptors applied around dispatch."""

    def __init__(
        self,
        request_interceptors: Optional[List[BearerTokenInterceptor]] = None,
        response_interceptors: Optional[List[AuthFailureInterceptor]] = None,
    ):
        self.request_interceptors = list(request_interceptors or [])
        self.response_interceptors = list(response_interceptors or [])

    @classmethod
    def for_session(cls, session: SessionStore, navigator: Navigator) -> "InterceptorChain":
        """The standard chain every backend client is built with."""
        return cls(
            request_interceptors=[BearerTokenInterceptor(session)],
            response_interceptors=[AuthFailureInterceptor(session, navigator)],
        )

    def apply_request(self, request: OutgoingRequest) -> OutgoingRequest:
        for interceptor in self.request_interceptors:
            request = interceptor.on_request(request)
        return request

    def apply_response(self, request: OutgoingRequest, response: requests.Response) -> requests.Response:
        for interceptor in self.response_interceptors:
            response = interceptor.on_response(request, response)
        return response

    def apply_error(self, request: OutgoingRequest, error: requests.RequestException) -> None:
        for interceptor in self.response_interceptors:
            interceptor.on_error(request, error)
        # No interceptor claimed the failure
        raise TransientError(f"Network error: {error}", None, request.url) from error
