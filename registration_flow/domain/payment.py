"""Payment step: tracks the external gateway's outcome for the current registration"""

import logging
import time
from enum import Enum
from typing import Any, Dict, Optional

from registration_flow.domain.exceptions import RegistrationAPIError
from registration_flow.domain.flow import FlowStateStore, Step
from registration_flow.domain.models import RegistrationRecord
from registration_flow.domain.requests import RequestGuard, StepResult
from registration_flow.infrastructure.clients.registration import RegistrationClient

logger = logging.getLogger(__name__)


class PaymentStage(str, Enum):
    LOADING = "loading"
    READY = "ready"
    SUCCESS = "success"
    ERROR = "error"


class PaymentStep:
    """
    The gateway itself is external: the host reports its result through
    record_success / record_failure and this step turns that into flow state.
    """

    def __init__(self, store: FlowStateStore, client: RegistrationClient):
        self.store = store
        self.client = client
        self.stage = PaymentStage.LOADING
        self.record: Optional[RegistrationRecord] = None
        self.payment_result: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None
        self._status_guard = RequestGuard()

    async def load(self) -> StepResult[RegistrationRecord]:
        registration_id = self.store.state.registration_id
        if not registration_id:
            self.stage = PaymentStage.ERROR
            self.error = "No registration ID available"
            return StepResult.failure(self.error)

        token = self._status_guard.begin()
        already_paid = self.stage == PaymentStage.SUCCESS and self.payment_result is not None
        self.stage = PaymentStage.LOADING
        self.error = None
        try:
            record = await self.client.get_status(registration_id)
        except RegistrationAPIError as e:
            if token.cancelled:
                return StepResult.discarded()
            self._status_guard.finish(token)
            self.stage = PaymentStage.ERROR
            self.error = e.message
            return StepResult.failure(e.message)

        if token.cancelled:
            return StepResult.discarded()
        self._status_guard.finish(token)

        self.record = record
        updates: Dict[str, Any] = {}
        if record.financial_summary is not None:
            updates["fee_calculation"] = record.financial_summary
        if record.program is not None:
            updates["selected_program"] = record.program
        self.store.patch(updates)

        if record.balance_due <= 0:
            logger.info("No payment required", extra={"registration_id": registration_id})
            self.payment_result = {
                "payment_intent": {"id": "no-payment-required", "created": int(time.time())},
                "payment": {"amount": 0, "status": "no_payment_required"},
                "message": "Registration completed - no payment required",
            }
            self.stage = PaymentStage.SUCCESS
        elif already_paid:
            self.stage = PaymentStage.SUCCESS
        else:
            self.stage = PaymentStage.READY
        return StepResult.success(record)

    def record_success(self, result: Dict[str, Any]) -> None:
        """Gateway reported a completed payment"""
        self.payment_result = result
        self.stage = PaymentStage.SUCCESS
        self.error = None
        self.store.patch(payment_intent=result.get("payment_intent"))
        logger.info("Payment succeeded", extra={"registration_id": self.store.state.registration_id})

    def record_failure(self, message: str) -> None:
        self.stage = PaymentStage.ERROR
        self.error = message
        logger.warning(
            "Payment failed",
            extra={"registration_id": self.store.state.registration_id, "error": message},
        )

    def retry(self) -> None:
        self.error = None
        self.stage = PaymentStage.READY

    def proceed(self) -> StepResult[None]:
        """Move on to confirmation once the payment (or its waiver) succeeded"""
        if self.stage != PaymentStage.SUCCESS:
            return StepResult.failure("Payment has not been completed")

        self.store.advance(
            {
                "payment_completed": True,
                "payment_result": self.payment_result,
                "registration_completed": True,
            },
            from_step=Step.PAYMENT,
        )
        return StepResult.success()

    def deactivate(self) -> None:
        self._status_guard.cancel()
