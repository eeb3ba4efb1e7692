"""
Navigation and Route Guard
==========================

In-process router for the ClinXR client. The UI layer subscribes to the
Navigator and swaps screens when the current path changes; the core drives it
on login, logout and forced logout after a 401, and the immersive dashboard
drives it when a visualization target is requested.

Protected routes require a stored credential. Navigating to one while logged
out lands on the entry screen instead.
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from urllib.parse import urlsplit

from clinxr.core.config import ENTRY_PATH
from clinxr.core.session import SessionStore

# Listener signature: (path, reload)
NavigationListener = Callable[[str, bool], None]


@dataclass(frozen=True)
class Route:
    """A named screen and whether it requires an authenticated session."""
    name: str
    pattern: str
    protected: bool = True

    def matches(self, path: str) -> bool:
        return re.fullmatch(self.pattern, path) is not None


ROUTES: Tuple[Route, ...] = (
    # Form/table surface
    Route("login", r"/", protected=False),
    Route("dashboard", r"/dashboard"),
    Route("patient_details", r"/patients/[^/]+"),
    Route("genomic_details", r"/patients/[^/]+/genomics"),
    Route("genomic_studies", r"/patients/[^/]+/genstudy"),
    # Immersive surface
    Route("xr_login", r"/xr", protected=False),
    Route("xr_dashboard", r"/xr/dashboard"),
    Route("xr_phenome", r"/xr/phenome"),
    Route("xr_genome", r"/xr/genome"),
    Route("xr_proteome", r"/xr/proteome"),
)

NOT_FOUND = Route("not_found", r".*", protected=False)


def resolve_route(path: str) -> Route:
    """Match the path component of `path` against the route table."""
    bare = urlsplit(path).path or ENTRY_PATH
    for route in ROUTES:
        if route.matches(bare):
            return route
    return NOT_FOUND


class Navigator:
    """
    Current-location holder with history and change listeners.

    Thread-safe: forced logouts can arrive from request worker threads while
    the render thread navigates.

    Attributes:
        session: Consulted by the route guard.
        history: Every path visited, oldest first.
    """

    def __init__(self, session: SessionStore, initial_path: str = ENTRY_PATH):
        self.logger = logging.getLogger(__name__)
        self.session = session
        self.history: List[str] = [initial_path]
        self._listeners: List[NavigationListener] = []
        self._lock = threading.RLock()

    @property
    def current_path(self) -> str:
        with self._lock:
            return self.history[-1]

    @property
    def current_route(self) -> Route:
        return resolve_route(self.current_path)

    def add_listener(self, listener: NavigationListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: NavigationListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def guard(self, path: str) -> Optional[str]:
        """
        Return the redirect target for `path`, or None if it may be shown.

        Protected routes redirect to the entry screen when no credential is
        stored.
        """
        route = resolve_route(path)
        if route.protected and not self.session.is_authenticated:
            return ENTRY_PATH
        return None

    def navigate(self, path: str, replace: bool = False, reload: bool = False) -> bool:
        """
        Move to `path`, applying the route guard.

        Args:
            path: Target path, optionally with a query string.
            replace: Overwrite the current history entry instead of pushing.
            reload: Full navigation that discards in-flight screen state. A
                reload to the path that is already current does nothing.

        Returns:
            True if the location changed and listeners were notified.
        """
        redirect = self.guard(path)
        if redirect is not None:
            self.logger.info(f"Route {path} requires a session, redirecting to {redirect}")
            path, replace = redirect, True

        with self._lock:
            if reload and path == self.history[-1]:
                self.logger.debug(f"Already at {path}, skipping reload")
                return False

            if replace:
                self.history[-1] = path
            else:
                self.history.append(path)
            listeners = list(self._listeners)

        self.logger.info(f"Navigated to {path}{' (reload)' if reload else ''}")
        for listener in listeners:
            listener(path, reload)
        return True
