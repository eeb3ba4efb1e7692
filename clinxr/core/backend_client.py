"""
Backend Clients and Client Factory
==================================

The ClinXR dashboard talks to three independent services:

- primary: patient records and vital signs
- genomic: SNPs, rsIDs and genomic studies
- aggregator: document upload

Each service gets exactly one BackendClient, built lazily by the
BackendClientFactory and reused for the lifetime of the factory. All clients
share one SessionStore and one Navigator, so a login or a forced logout is
visible to every backend without any propagation step.

Usage:
    ```python
    session = SessionStore()
    navigator = Navigator(session)
    with BackendClientFactory(session, navigator) as factory:
        patients = factory.client_for("primary").get("/api/patients").json()
    ```
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests

from clinxr.core.config import (
    BACKEND_NAMES,
    BACKEND_URL_ENV_VARS,
    DEFAULT_BACKEND_URLS,
    NETWORK_TIMEOUT_SECONDS,
)
from clinxr.core.interceptors import InterceptorChain, OutgoingRequest
from clinxr.core.navigation import Navigator
from clinxr.core.session import SessionStore
from clinxr.utils.logger import log_api_request, log_api_response


class UnknownBackendError(KeyError):
    """Raised when a client is requested for a backend that does not exist."""
    pass


@dataclass(frozen=True)
class BackendEndpoint:
    """Name and base URL of one logical backend."""
    name: str
    base_url: str


def resolve_endpoints(environ: Optional[Mapping[str, str]] = None) -> Dict[str, BackendEndpoint]:
    """
    Build the endpoint descriptors from environment configuration.

    Blank or unset variables fall back to the local-development defaults.

    Args:
        environ: Mapping to read from (defaults to `os.environ`).
    """
    env = os.environ if environ is None else environ
    endpoints = {}
    for name in BACKEND_NAMES:
        url = (env.get(BACKEND_URL_ENV_VARS[name]) or "").strip() or DEFAULT_BACKEND_URLS[name]
        endpoints[name] = BackendEndpoint(name=name, base_url=url.rstrip('/'))
    return endpoints


class BackendClient:
    """
    HTTP client bound to one backend endpoint.

    Every verb goes through the interceptor chain: credentials are injected on
    the way out and failures are mapped on the way back.

    Attributes:
        endpoint: The backend this client talks to.
        chain: Interceptors applied around each request.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        endpoint: BackendEndpoint,
        session: SessionStore,
        navigator: Navigator,
        timeout: float = NETWORK_TIMEOUT_SECONDS,
    ):
        self.endpoint = endpoint
        self.session = session
        self.timeout = timeout
        self.chain = InterceptorChain.for_session(session, navigator)
        self.logger = logging.getLogger(__name__)
        self.http = requests.Session()
        self.http.headers.update({"Accept": "application/json"})
        self._request_count = 0
        self._count_lock = threading.Lock()

    def url_for(self, path: str) -> str:
        if not path.startswith('/'):
            path = '/' + path
        return f"{self.endpoint.base_url}{path}"

    def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        data: Optional[Any] = None,
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        skip_auth: bool = False,
    ) -> requests.Response:
        """
        Dispatch a request through the interceptor chain.

        Args:
            method: HTTP verb.
            path: Path relative to the backend base URL.
            params: Query parameters.
            json: JSON body.
            data: Form or raw body.
            files: Multipart files, as accepted by `requests`.
            headers: Extra headers for this request only.
            skip_auth: Send without the stored credential and treat a 401 as
                a plain failure (used by the login call).

        Returns:
            The successful `requests.Response`.

        Raises:
            UnauthenticatedError: The backend answered 401 (session cleared).
            ForbiddenError: The backend answered 403.
            RequestFailedError: Any other failure.
        """
        outgoing = OutgoingRequest(
            method=method.upper(),
            url=self.url_for(path),
            headers=dict(headers or {}),
            params=params,
            json=json,
            data=data,
            files=files,
            skip_auth=skip_auth,
        )
        outgoing = self.chain.apply_request(outgoing)

        with self._count_lock:
            self._request_count += 1

        log_api_request(self.logger, outgoing.method, outgoing.url,
                        headers=outgoing.headers, data=outgoing.json, params=outgoing.params)
        start_time = time.time()

        try:
            response = self.http.request(
                outgoing.method,
                outgoing.url,
                headers=outgoing.headers,
                params=outgoing.params,
                json=outgoing.json,
                data=outgoing.data,
                files=outgoing.files,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.chain.apply_error(outgoing, e)
            raise  # apply_error always raises

        log_api_response(self.logger, response.status_code, outgoing.url, time.time() - start_time)
        return self.chain.apply_response(outgoing, response)

    def get(self, path: str, **kwargs) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> requests.Response:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs) -> requests.Response:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs) -> requests.Response:
        return self.request("DELETE", path, **kwargs)

    def get_request_count(self) -> int:
        """Number of requests dispatched by this client."""
        with self._count_lock:
            return self._request_count

    def close(self) -> None:
        self.http.close()

    def __repr__(self) -> str:
        return f"<BackendClient name={self.endpoint.name} base_url={self.endpoint.base_url}>"


class BackendClientFactory:
    """
    Builds and caches one BackendClient per backend.

    Attributes:
        session: Shared by every client built here.
        navigator: Target of forced logouts.
        endpoints: Descriptor per backend name.
    """

    def __init__(
        self,
        session: SessionStore,
        navigator: Navigator,
        endpoints: Optional[Dict[str, BackendEndpoint]] = None,
        timeout: float = NETWORK_TIMEOUT_SECONDS,
    ):
        self.session = session
        self.navigator = navigator
        self.endpoints = endpoints if endpoints is not None else resolve_endpoints()
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self._clients: Dict[str, BackendClient] = {}
        self._lock = threading.Lock()

    def client_for(self, name: str) -> BackendClient:
        """
        Return the client for backend `name`, creating it on first use.

        Raises:
            UnknownBackendError: If `name` is not a configured backend.
        """
        with self._lock:
            client = self._clients.get(name)
            if client is not None:
                return client

            endpoint = self.endpoints.get(name)
            if endpoint is None:
                raise UnknownBackendError(f"Unknown backend '{name}', expected one of {sorted(self.endpoints)}")

            client = BackendClient(endpoint, self.session, self.navigator, timeout=self.timeout)
            self._clients[name] = client
            self.logger.info(f"Created backend client '{name}' for {endpoint.base_url}")
            return client

    def close(self) -> None:
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
