"""
Selection State Machine
=======================

Tracks which patient is selected in the immersive dashboard and which
visualization target has been requested for them.

States:
    IDLE              no patient selected
    PATIENT_SELECTED  patient set, no target
    NAVIGATING        patient and target set, the view is about to be left

Selecting a patient always clears any pending target, so a late click can
never send the user to a scene for the previous patient. Each patient change
also bumps a generation counter; background loads capture it at dispatch and
compare it on completion to drop responses for a selection that is no longer
current.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union
from urllib.parse import urlencode

from clinxr.core.records_api import PatientSummary


class SceneTarget(Enum):
    """Visualization scenes reachable from the immersive dashboard."""
    PHENOME = "phenome"
    GENOME = "genome"
    PROTEOME = "proteome"


class SelectionState(Enum):
    IDLE = "idle"
    PATIENT_SELECTED = "patient_selected"
    NAVIGATING = "navigating"


@dataclass(frozen=True)
class NavigationInstruction:
    """Where the routing layer should go next."""
    target: SceneTarget
    patient_id: Union[int, str]

    @property
    def path(self) -> str:
        return f"/xr/{self.target.value}?{urlencode({'patientId': self.patient_id})}"


@dataclass(frozen=True)
class Selection:
    """Immutable snapshot of the machine."""
    state: SelectionState
    patient: Optional[PatientSummary]
    target: Optional[SceneTarget]
    generation: int


SelectionListener = Callable[[Selection], None]


class SelectionStateMachine:
    """
    Conservative selection tracker for the immersive patient picker.

    Invalid transitions are never raised to the caller; they are logged at
    warning level and leave the state untouched.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._state = SelectionState.IDLE
        self._patient: Optional[PatientSummary] = None
        self._target: Optional[SceneTarget] = None
        self._generation = 0
        self._listeners: List[SelectionListener] = []
        self._lock = threading.Lock()

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def patient(self) -> Optional[PatientSummary]:
        return self._patient

    @property
    def target(self) -> Optional[SceneTarget]:
        return self._target

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> Selection:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> Selection:
        return Selection(self._state, self._patient, self._target, self._generation)

    def add_listener(self, listener: SelectionListener) -> None:
        self._listeners.append(listener)

    def is_current(self, generation: int) -> bool:
        """True if no patient change happened since `generation` was captured."""
        return generation == self._generation

    def select_patient(self, patient: PatientSummary) -> Selection:
        """
        Select `patient` from any state.

        Any previously requested target is discarded, even when the same
        patient is selected again.
        """
        with self._lock:
            if self._patient is None or self._patient.id != patient.id:
                self._generation += 1
            self._patient = patient
            self._target = None
            self._state = SelectionState.PATIENT_SELECTED
            snapshot = self._snapshot()

        self.logger.info(f"Selected patient: {patient.name} (id={patient.id})")
        self._notify(snapshot)
        return snapshot

    def request_scene(self, target: Union[SceneTarget, str]) -> Optional[NavigationInstruction]:
        """
        Ask to open a visualization scene for the selected patient.

        Returns:
            The navigation instruction, or None when no patient is selected
            (or a navigation is already under way).

        Raises:
            ValueError: If `target` does not name a known scene.
        """
        target = SceneTarget(target)

        with self._lock:
            if self._state is not SelectionState.PATIENT_SELECTED:
                self.logger.warning(
                    f"Ignoring request for {target.value} scene in state {self._state.value}; "
                    f"select a patient first"
                )
                return None

            self._target = target
            self._state = SelectionState.NAVIGATING
            instruction = NavigationInstruction(target, self._patient.id)
            snapshot = self._snapshot()

        self.logger.info(f"Navigating to {target.value} for patient ID {instruction.patient_id}")
        self._notify(snapshot)
        return instruction

    def reset(self) -> Selection:
        """Return to IDLE, as on re-entering the immersive dashboard."""
        with self._lock:
            if self._patient is not None:
                self._generation += 1
            self._patient = None
            self._target = None
            self._state = SelectionState.IDLE
            snapshot = self._snapshot()

        self.logger.debug("Selection reset")
        self._notify(snapshot)
        return snapshot

    def _notify(self, snapshot: Selection) -> None:
        for listener in list(self._listeners):
            listener(snapshot)
