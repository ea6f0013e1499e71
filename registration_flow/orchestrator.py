"""Step orchestrator - composes the registration steps into one linear flow"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from registration_flow.domain.confirmation import ConfirmationPresenter
from registration_flow.domain.exceptions import RegistrationAPIError
from registration_flow.domain.fees import FeeSummaryPresenter
from registration_flow.domain.flow import FlowState, FlowStateStore, Step, StepProgress
from registration_flow.domain.form import CustomFormStep
from registration_flow.domain.models import FinalizationResult, Program
from registration_flow.domain.payment import PaymentStep
from registration_flow.domain.programs import available_programs
from registration_flow.domain.requests import StepResult
from registration_flow.infrastructure.clients.registration import RegistrationClient

logger = logging.getLogger(__name__)


class RegistrationOrchestrator:
    """
    Owns the flow state and mediates every step's network calls.

    Flow:
    1. Program selection (host supplies the program and registration id)
    2. Custom form: load schema, collect and validate answers, submit
    3. Fee summary: load server-computed fees, finalize
    4. Payment: external gateway reports success or failure
    5. Confirmation: load final status and classify the outcome
    """

    def __init__(
        self,
        client: Optional[RegistrationClient] = None,
        store: Optional[FlowStateStore] = None,
        today: Optional[date] = None,
    ):
        self.client = client or RegistrationClient()
        self.store = store or FlowStateStore()
        self.today = today

        self.mounted: Optional[StepResult[Any]] = None
        self._build_steps()

    @property
    def state(self) -> FlowState:
        return self.store.state

    @property
    def current_step(self) -> Step:
        return self.store.current_step

    def progress(self) -> List[StepProgress]:
        return self.store.progress()

    async def load_programs(self) -> StepResult[List[Program]]:
        """Programs that are active and currently open for registration"""
        try:
            programs = await self.client.list_programs()
        except RegistrationAPIError as e:
            logger.warning("Failed to load programs", extra={"error": e.message})
            return StepResult.failure(e.message)
        return StepResult.success(available_programs(programs, self.today))

    async def start(self, program: Program, registration_id: str) -> StepResult[Any]:
        """Record the externally chosen program and its draft registration, then enter the form step.

        Returns the form step's load outcome, since starting has no server call of its own.
        """
        if self.current_step != Step.PROGRAM_SELECT:
            return StepResult.failure("A program has already been selected")

        self.store.advance(
            {"selected_program": program, "registration_id": registration_id},
            from_step=Step.PROGRAM_SELECT,
        )
        logger.info(
            "Registration started",
            extra={"registration_id": registration_id, "program_id": program.id},
        )
        return await self.enter_step()

    async def enter_step(self) -> StepResult[Any]:
        """
        Mount the current step.

        In-flight requests of every other step are cancelled first, and
        server-backed steps always re-fetch rather than trust cached data.
        """
        current = self.current_step
        for step, component in self._steps.items():
            if step != current:
                component.deactivate()

        component = self._steps.get(current)
        if component is None:
            self.mounted = StepResult.success()
        else:
            self.mounted = await component.load()
        return self.mounted

    async def go_back(self) -> StepResult[Any]:
        if not self.store.retreat():
            return StepResult.failure("Already at the first step")
        return await self.enter_step()

    def set_field(self, field_name: str, raw: Any) -> Optional[str]:
        return self.form.set_value(field_name, raw)

    async def submit_form(self) -> StepResult[Any]:
        """
        Submit the custom form and, once accepted, mount the fee summary.

        Returns the submit outcome; the fee summary's own load outcome is
        left on the step (`fees.error`) and in `mounted`.
        """
        result = await self.form.submit()
        if result.ok:
            await self.enter_step()
        return result

    async def finalize(self) -> StepResult[FinalizationResult]:
        before = self.current_step
        result = await self.fees.finalize()
        if result.ok and self.current_step != before:
            await self.enter_step()
        return result

    def complete_payment(self, result: Dict[str, Any]) -> None:
        self.payment.record_success(result)

    def fail_payment(self, message: str) -> None:
        self.payment.record_failure(message)

    def retry_payment(self) -> None:
        self.payment.retry()

    async def proceed_to_confirmation(self) -> StepResult[Any]:
        result = self.payment.proceed()
        if result.ok:
            await self.enter_step()
        return result

    def restart(self) -> None:
        for component in self._steps.values():
            component.deactivate()
        self.store.reset()
        self.mounted = None
        self._build_steps()

    def _build_steps(self) -> None:
        self.form = CustomFormStep(self.store, self.client, self.today)
        self.fees = FeeSummaryPresenter(self.store, self.client)
        self.payment = PaymentStep(self.store, self.client)
        self.confirmation = ConfirmationPresenter(self.store, self.client)
        self._steps = {
            Step.CUSTOM_FORM: self.form,
            Step.FEE_SUMMARY: self.fees,
            Step.PAYMENT: self.payment,
            Step.CONFIRMATION: self.confirmation,
        }
