"""
Immersive Dashboard Controller
==============================

Drives the 3D patient picker. The controller owns no rendering code; it
produces a declarative list of `SceneNode`s and hands it to a renderer
callback, then reconciles pointer bindings for exactly those nodes.

Workflow:
---------
1. `enter()` resets the selection to IDLE and loads the patient list in the
   background.
2. Patients are laid out on a ring; selecting one (pointer click or gaze)
   highlights it and reveals the phenome, genome and proteome targets.
3. Selecting a target yields a navigation instruction that is handed to the
   Navigator.

Every backend response is applied on the render thread through `schedule`.
Responses that belong to a superseded selection (or to an earlier visit of
the dashboard) are dropped.
"""

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from clinxr.core.backend_client import BackendClientFactory
from clinxr.core.bindings import BindingSynchronizer, InputSurface, SelectHandler
from clinxr.core.config import MESSAGE_REQUEST_FAILED, PATIENT_NODE_PREFIX, SCENE_TARGET_NODES
from clinxr.core.interceptors import RequestFailedError, UnauthenticatedError
from clinxr.core.layout import LayoutPoint, layout_ring
from clinxr.core.records_api import PatientSummary, RecordsAPI
from clinxr.core.selection import (
    NavigationInstruction,
    SceneTarget,
    Selection,
    SelectionState,
    SelectionStateMachine,
)
from clinxr.utils.background_worker import BackgroundWorker

Renderer = Callable[[List["SceneNode"]], None]
Scheduler = Callable[[Callable[[], None]], None]


@dataclass(frozen=True)
class NodeAction:
    """
    Handler bound to a scene node.

    Compares by value, so rebuilding the scene with the same data yields
    handlers equal to the ones already bound and reconciliation leaves them
    in place.
    """
    callback: Callable[[Any], Any]
    argument: Any

    def __call__(self):
        return self.callback(self.argument)


@dataclass(frozen=True)
class SceneNode:
    """One interactive entity in the rendered scene."""
    node_id: str
    label: str
    position: LayoutPoint
    handler: SelectHandler
    kind: str = "patient"
    highlighted: bool = False


def patient_node_id(patient: PatientSummary) -> str:
    return f"{PATIENT_NODE_PREFIX}{patient.id}"


def _run_now(fn: Callable[[], None]) -> None:
    fn()


class ImmersiveDashboard:
    """
    Controller of the immersive patient picker.

    Attributes:
        records: Backend access for patients.
        navigator: Receives navigation instructions.
        selection: The selection state machine.
        bindings: Pointer binding synchronizer for the rendered nodes.
        patients: Patients currently laid out.
        patient_detail: Detail record of the selected patient, once loaded.
        error_message: User-visible message of the last failed load.
        nodes: The scene produced by the last render.

    Without a `schedule` hook, load callbacks run on the worker thread. Scene
    rebuilds are serialized, so that is safe, but a UI toolkit that owns its
    widgets on one thread should pass a scheduler that marshals onto it.
    """

    def __init__(
        self,
        factory: BackendClientFactory,
        surface: InputSurface,
        renderer: Optional[Renderer] = None,
        schedule: Optional[Scheduler] = None,
        worker: Optional[BackgroundWorker] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.records = RecordsAPI(factory)
        self.navigator = factory.navigator
        self.renderer = renderer
        self.schedule = schedule or _run_now
        self.worker = worker or BackgroundWorker(name="ImmersiveDashboard")

        self.selection = SelectionStateMachine()
        self.selection.add_listener(self._on_selection_changed)
        self.bindings = BindingSynchronizer(surface)

        self.patients: List[PatientSummary] = []
        self.patient_detail: Optional[Dict[str, Any]] = None
        self.error_message: Optional[str] = None
        self.nodes: List[SceneNode] = []
        self._visit = 0
        self._render_lock = threading.RLock()

    # ------------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------------

    def enter(self) -> Future:
        """Show the dashboard from scratch and start loading patients."""
        self._visit += 1
        visit = self._visit
        self.patients = []
        self.patient_detail = None
        self.error_message = None
        self.selection.reset()

        if not self.worker.is_alive():
            self.logger.debug("Background worker was shut down, starting a new one")
            self.worker = BackgroundWorker(name="ImmersiveDashboard")

        future = self.worker.submit_replacing("patients", self.records.patients.list)
        future.add_done_callback(lambda f: self.schedule(lambda: self._on_patients_loaded(visit, f)))
        return future

    def leave(self) -> None:
        """
        Tear the scene down.

        The worker stays up for the next `enter()`; loads still in flight are
        discarded when they complete.
        """
        self._visit += 1
        with self._render_lock:
            self.bindings.release_all()
            self.nodes = []

    def close(self) -> None:
        """Leave the scene and stop background work for good."""
        self.leave()
        self.worker.shutdown()

    def render_complete(self) -> None:
        """Called by the rendering layer once a frame with the last scene is committed."""
        with self._render_lock:
            self.bindings.render_complete()

    # ------------------------------------------------------------------------
    # SCENE
    # ------------------------------------------------------------------------

    def build_scene(self) -> List[SceneNode]:
        """Derive the interactive nodes from the current data and selection."""
        snapshot = self.selection.snapshot()
        selected_id = snapshot.patient.id if snapshot.patient else None

        nodes = [
            SceneNode(
                node_id=patient_node_id(patient),
                label=patient.name,
                position=point,
                handler=NodeAction(self.select_patient, patient),
                kind="patient",
                highlighted=patient.id == selected_id,
            )
            for patient, point in layout_ring(self.patients)
        ]

        if snapshot.state is not SelectionState.IDLE:
            for target in SceneTarget:
                node_id, coords = SCENE_TARGET_NODES[target.value]
                nodes.append(SceneNode(
                    node_id=node_id,
                    label=target.value.capitalize(),
                    position=LayoutPoint(*coords),
                    handler=NodeAction(self.request_scene, target),
                    kind="scene_target",
                ))
        return nodes

    def render(self) -> None:
        with self._render_lock:
            self.nodes = self.build_scene()
            if self.renderer is not None:
                self.renderer(self.nodes)
            self.bindings.reconcile({node.node_id: node.handler for node in self.nodes})

    # ------------------------------------------------------------------------
    # INTERACTION
    # ------------------------------------------------------------------------

    def select_patient(self, patient: PatientSummary) -> Selection:
        snapshot = self.selection.select_patient(patient)
        self.patient_detail = None

        generation = snapshot.generation
        future = self.worker.submit_replacing("patient-detail", self.records.patients.get, patient.id)
        future.add_done_callback(
            lambda f: self.schedule(lambda: self._on_detail_loaded(generation, patient, f))
        )
        return snapshot

    def request_scene(self, target: SceneTarget) -> Optional[NavigationInstruction]:
        instruction = self.selection.request_scene(target)
        if instruction is not None:
            self.navigator.navigate(instruction.path)
        return instruction

    # ------------------------------------------------------------------------
    # CALLBACKS
    # ------------------------------------------------------------------------

    def _on_selection_changed(self, snapshot: Selection) -> None:
        self.render()

    def _on_patients_loaded(self, visit: int, future: Future) -> None:
        if future.cancelled() or visit != self._visit:
            self.logger.debug("Discarding patient list from a previous visit")
            return

        result = self._result_or_none(future, "fetch patients")
        if result is None:
            return

        self.patients = result
        self.logger.info(f"Patients retrieved from backend: {len(result)}")
        self.render()

    def _on_detail_loaded(self, generation: int, patient: PatientSummary, future: Future) -> None:
        if future.cancelled():
            return
        if not self.selection.is_current(generation):
            self.logger.debug(f"Discarding stale detail for patient {patient.id}")
            return

        result = self._result_or_none(future, f"fetch patient {patient.id}")
        if result is not None:
            self.patient_detail = result

    def _result_or_none(self, future: Future, action: str):
        try:
            return future.result()
        except UnauthenticatedError:
            # Session already cleared and entry screen shown
            return None
        except RequestFailedError as e:
            self.logger.error(f"Failed to {action}: {e}")
            self.error_message = e.user_message
            return None
        except Exception as e:
            self.logger.error(f"Failed to {action}: {type(e).__name__}: {e}", exc_info=True)
            self.error_message = MESSAGE_REQUEST_FAILED
            return None
