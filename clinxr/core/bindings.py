"""
Pointer Binding Synchronizer
============================

Keeps the pointer handlers attached to scene-graph nodes in step with a
declarative, re-rendered scene.

The rendering layer implements `InputSurface` once. After each render the
owner of the scene passes the desired `{node_id: handler}` mapping, derived
from the same data that produced the nodes, to `BindingSynchronizer.reconcile`.
The synchronizer then:

- releases bindings whose node disappeared or whose handler changed,
- binds nodes that are new,
- leaves everything else alone.

A node may not exist yet when reconciliation runs, because rendering happens
after the state change that requested it. The surface reports this by
returning False from `on_select`; the binding is parked and retried each time
the rendering layer calls `render_complete()`, up to a bounded number of
attempts.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Set

from clinxr.core.config import MAX_BINDING_ATTEMPTS

SelectHandler = Callable[[], Any]


class InputSurface:
    """
    Capability interface implemented by the rendering layer.

    Implementations attach/detach a select (click or gaze-fuse) listener on
    the node carrying `node_id`.
    """

    def on_select(self, node_id: str, handler: SelectHandler) -> bool:
        """
        Attach `handler` to the node.

        Returns:
            False if the node is not rendered yet and nothing was attached.
        """
        raise NotImplementedError

    def on_release(self, node_id: str) -> None:
        """Detach the listener previously attached to the node."""
        raise NotImplementedError


@dataclass(frozen=True)
class BindingRecord:
    """An attached handler and the node it lives on."""
    node_id: str
    handler: SelectHandler


@dataclass
class _PendingBinding:
    handler: SelectHandler
    attempts: int = 1


class BindingSynchronizer:
    """
    Reconciles active bindings against the currently rendered node set.

    Invariant: at most one active binding per node id, and every binding is
    released exactly once. Reconciliation, retries and teardown are
    serialized, so renders triggered from different threads cannot interleave.

    Attributes:
        surface: Where listeners are attached.
        max_attempts: Attempts (the initial one included) before a pending
            binding is abandoned.
    """

    def __init__(self, surface: InputSurface, max_attempts: int = MAX_BINDING_ATTEMPTS):
        self.surface = surface
        self.max_attempts = max(1, max_attempts)
        self.logger = logging.getLogger(__name__)
        self._active: Dict[str, BindingRecord] = {}
        self._pending: Dict[str, _PendingBinding] = {}
        self._lock = threading.RLock()

    @property
    def binding_count(self) -> int:
        return len(self._active)

    @property
    def active_ids(self) -> Set[str]:
        return set(self._active)

    @property
    def pending_ids(self) -> Set[str]:
        return set(self._pending)

    def binding_for(self, node_id: str) -> BindingRecord:
        return self._active[node_id]

    def reconcile(self, desired: Mapping[str, SelectHandler]) -> None:
        """Align active bindings with `desired` (node id -> handler)."""
        with self._lock:
            for node_id, record in list(self._active.items()):
                if node_id not in desired or desired[node_id] != record.handler:
                    self._release(node_id)

            for node_id in list(self._pending):
                if node_id not in desired:
                    del self._pending[node_id]

            for node_id, handler in desired.items():
                if node_id in self._active:
                    continue
                pending = self._pending.get(node_id)
                if pending is not None:
                    # Still waiting on the renderer; keep the latest handler
                    pending.handler = handler
                    continue
                self._bind(node_id, handler)

    def render_complete(self) -> None:
        """Retry pending bindings once the rendering layer has committed a frame."""
        with self._lock:
            for node_id, pending in list(self._pending.items()):
                if self.surface.on_select(node_id, pending.handler):
                    del self._pending[node_id]
                    self._active[node_id] = BindingRecord(node_id, pending.handler)
                    self.logger.debug(f"Bound {node_id} after {pending.attempts} pending attempt(s)")
                    continue

                pending.attempts += 1
                if pending.attempts >= self.max_attempts:
                    del self._pending[node_id]
                    self.logger.warning(f"Node {node_id} never rendered after {pending.attempts} attempts, giving up")

    def release_all(self) -> None:
        """Detach every binding, as when the scene is torn down."""
        with self._lock:
            self._pending.clear()
            for node_id in list(self._active):
                self._release(node_id)

    def _bind(self, node_id: str, handler: SelectHandler) -> None:
        if self.surface.on_select(node_id, handler):
            self._active[node_id] = BindingRecord(node_id, handler)
            self.logger.debug(f"Event listener added to {node_id}")
        elif self.max_attempts > 1:
            self._pending[node_id] = _PendingBinding(handler)
            self.logger.debug(f"Node {node_id} not rendered yet, waiting for render completion")
        else:
            self.logger.warning(f"Node {node_id} not rendered, binding skipped")

    def _release(self, node_id: str) -> None:
        record = self._active.pop(node_id, None)
        if record is None:
            return
        self.surface.on_release(node_id)
        self.logger.debug(f"Event listener removed from {node_id}")
