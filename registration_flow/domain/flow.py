"""Registration flow state and its controlled mutations"""

import logging
from dataclasses import dataclass, field, fields
from enum import IntEnum
from typing import Any, Dict, Mapping, Optional, Set

from registration_flow.domain.exceptions import FlowStateError
from registration_flow.domain.models import FieldValueMap, FinancialSummary, Program
from registration_flow.infrastructure.observability.logging import log_transition
from registration_flow.infrastructure.observability.metrics import record_transition

logger = logging.getLogger(__name__)


class Step(IntEnum):
    """Fixed linear sequence of registration steps"""

    PROGRAM_SELECT = 0
    CUSTOM_FORM = 1
    FEE_SUMMARY = 2
    PAYMENT = 3
    CONFIRMATION = 4

    @property
    def slug(self) -> str:
        return self.name.lower()


STEP_TITLES = {
    Step.PROGRAM_SELECT: ("Select Program", "Choose from available programs"),
    Step.CUSTOM_FORM: ("Registration Form", "Fill out the required registration information"),
    Step.FEE_SUMMARY: ("Fee Summary", "Review your registration fees"),
    Step.PAYMENT: ("Payment", "Complete your payment"),
    Step.CONFIRMATION: ("Confirmation", "Registration complete"),
}

# Owned by the store; partial updates may not touch these
_PROTECTED_FIELDS = frozenset({"current_step", "completed_steps"})


@dataclass
class FlowState:
    """Cross-step state carried through the registration workflow"""

    current_step: Step = Step.PROGRAM_SELECT
    registration_id: Optional[str] = None
    selected_program: Optional[Program] = None
    form_data: FieldValueMap = field(default_factory=dict)
    fee_calculation: Optional[FinancialSummary] = None
    payment_intent: Any = None
    completed_steps: Set[Step] = field(default_factory=set)

    # Step reports merged in by advance()
    form_completed: bool = False
    fees_confirmed: bool = False
    finalization_result: Any = None
    registration_finalized: bool = False
    payment_completed: bool = False
    payment_result: Any = None
    registration_completed: bool = False


_FIELD_NAMES = frozenset(f.name for f in fields(FlowState))


@dataclass
class StepProgress:
    """Progress indicator entry for one step"""

    step: Step
    title: str
    description: str
    completed: bool
    current: bool


class FlowStateStore:
    """
    Single owner of a FlowState.

    Steps hold a reference to the store and request changes through
    advance / retreat / patch; the FlowState instance itself is never replaced.
    """

    def __init__(self, state: Optional[FlowState] = None):
        self._state = state or FlowState()

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def current_step(self) -> Step:
        return self._state.current_step

    def _merge(self, updates: Mapping[str, Any]) -> None:
        for key in updates:
            if key in _PROTECTED_FIELDS:
                raise FlowStateError(f"'{key}' can only change through advance() or retreat()")
            if key not in _FIELD_NAMES:
                raise FlowStateError(f"Unknown flow state field '{key}'")
        for key, value in updates.items():
            setattr(self._state, key, value)

    def patch(self, updates: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        """Shallow-merge into the state without touching step progress"""
        merged: Dict[str, Any] = dict(updates or {})
        merged.update(kwargs)
        self._merge(merged)

    def advance(self, step_data: Optional[Mapping[str, Any]] = None, from_step: Optional[Step] = None) -> bool:
        """
        Merge step_data, mark the current step completed and move forward.

        Args:
            step_data: Fields reported by the completing step
            from_step: Step the caller believes is current; a mismatch means
                the request is stale and nothing changes

        Returns:
            True if the flow advanced
        """
        state = self._state
        if from_step is not None and state.current_step != from_step:
            logger.info(
                "Ignoring stale advance",
                extra={
                    "expected_step": Step(from_step).slug,
                    "current_step": state.current_step.slug,
                    "registration_id": state.registration_id,
                },
            )
            return False

        if state.current_step == Step.CONFIRMATION:
            raise FlowStateError("Cannot advance past the confirmation step")

        if step_data:
            self._merge(step_data)

        previous = state.current_step
        state.completed_steps.add(previous)
        state.current_step = Step(previous + 1)

        record_transition("advance", previous.slug)
        log_transition(
            "advance",
            previous.slug,
            state.current_step.slug,
            state.registration_id,
            sorted(s.slug for s in state.completed_steps),
        )
        return True

    def retreat(self) -> bool:
        """Move back one step, keeping completed steps and entered data"""
        state = self._state
        if state.current_step == Step.PROGRAM_SELECT:
            return False

        previous = state.current_step
        state.current_step = Step(previous - 1)

        record_transition("retreat", previous.slug)
        log_transition(
            "retreat",
            previous.slug,
            state.current_step.slug,
            state.registration_id,
            sorted(s.slug for s in state.completed_steps),
        )
        return True

    def reset(self) -> None:
        """Start over with a fresh flow, keeping the same FlowState instance"""
        fresh = FlowState()
        for name in _FIELD_NAMES:
            setattr(self._state, name, getattr(fresh, name))

    def progress(self) -> list[StepProgress]:
        state = self._state
        return [
            StepProgress(
                step=step,
                title=STEP_TITLES[step][0],
                description=STEP_TITLES[step][1],
                completed=step in state.completed_steps,
                current=step == state.current_step,
            )
            for step in Step
        ]
