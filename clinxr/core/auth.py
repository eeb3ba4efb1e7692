"""
Login and Logout
================

Credential lifecycle entry points used by the login screens. A successful
login is the only place a credential is created; logout and the 401 handler
in the interceptor chain are the only places it is destroyed.
"""

import logging

from clinxr.core.backend_client import BackendClientFactory
from clinxr.core.config import (
    AUTHENTICATE_ENDPOINT,
    BACKEND_PRIMARY,
    DASHBOARD_PATH,
    ENTRY_PATH,
    MESSAGE_INVALID_CREDENTIALS,
    XR_DASHBOARD_PATH,
)
from clinxr.core.interceptors import BackendAPIError


class LoginError(Exception):
    """Raised when the authentication endpoint rejects the credentials."""
    user_message = MESSAGE_INVALID_CREDENTIALS


class AuthService:
    """
    Authenticates against the primary backend and manages the session.

    Attributes:
        factory: Source of the primary backend client, session and navigator.
    """

    def __init__(self, factory: BackendClientFactory):
        self.factory = factory
        self.session = factory.session
        self.navigator = factory.navigator
        self.logger = logging.getLogger(__name__)

    def login(self, username: str, password: str, redirect_to: str = DASHBOARD_PATH) -> str:
        """
        Exchange username and password for a credential.

        The credential is stored and the user is taken to `redirect_to`.
        On failure the session is left as it was.

        Returns:
            The issued credential.

        Raises:
            LoginError: If the backend refuses or cannot be reached.
        """
        client = self.factory.client_for(BACKEND_PRIMARY)
        self.logger.info(f"Logging in as {username}")

        try:
            response = client.post(
                AUTHENTICATE_ENDPOINT,
                json={"username": username, "password": password},
                skip_auth=True,
            )
        except BackendAPIError as e:
            self.logger.warning(f"Login failed for {username}: {e}")
            raise LoginError(MESSAGE_INVALID_CREDENTIALS) from e

        credential = _extract_credential(response)
        if not credential:
            self.logger.warning(f"Login for {username} returned an empty credential")
            raise LoginError(MESSAGE_INVALID_CREDENTIALS)

        self.session.set(credential)
        self.logger.info(f"Successfully authenticated as {username}")
        self.navigator.navigate(redirect_to)
        return credential

    def logout(self) -> None:
        """Destroy the credential and return to the entry screen."""
        self.session.clear()
        self.navigator.navigate(ENTRY_PATH, reload=True)

    def resume_immersive(self) -> bool:
        """
        Enter the immersive dashboard with an existing credential.

        The immersive login screen has no credential form of its own; it
        reuses whatever session the form surface established.

        Returns:
            True if a credential was found and navigation happened.
        """
        if not self.session.is_authenticated:
            self.logger.info("No stored credential, immersive login needs the form login first")
            return False
        self.logger.info("Using existing credential for the immersive dashboard")
        self.navigator.navigate(XR_DASHBOARD_PATH)
        return True


def _extract_credential(response) -> str:
    """
    Read the credential from the authentication response body.

    The endpoint answers with the bare token string. Some deployments wrap it
    as JSON (either a quoted string or `{"token": ...}`).
    """
    content_type = response.headers.get("Content-Type", "")
    if "application/json" in content_type:
        try:
            body = response.json()
        except ValueError:
            body = response.text
        if isinstance(body, dict):
            body = body.get("token", "")
        return str(body or "").strip()
    return (response.text or "").strip()
