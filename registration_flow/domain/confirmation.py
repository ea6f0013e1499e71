"""Confirmation step: final registration status and its outcome classification"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from registration_flow.config import settings
from registration_flow.domain.exceptions import RegistrationAPIError
from registration_flow.domain.flow import FlowStateStore
from registration_flow.domain.models import RegistrationRecord
from registration_flow.domain.requests import RequestGuard, StepResult
from registration_flow.infrastructure.clients.registration import RegistrationClient
from registration_flow.infrastructure.observability.metrics import outcome_counter

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({"completed", "confirmed"})


class RegistrationOutcome(str, Enum):
    """How the confirmation screen presents a registration; there is no failure outcome"""

    SUCCESSFUL = "successful"
    PROCESSING = "processing"


def classify_registration(record: Optional[RegistrationRecord]) -> RegistrationOutcome:
    """
    Successful iff the status is completed/confirmed, or the balance is
    settled by an actual payment. Anything else, including an unknown
    record, is still processing.
    """
    if record is None:
        return RegistrationOutcome.PROCESSING
    if record.status.strip().lower() in SUCCESS_STATUSES:
        return RegistrationOutcome.SUCCESSFUL
    if record.balance_due <= 0 and record.amount_paid > 0:
        return RegistrationOutcome.SUCCESSFUL
    return RegistrationOutcome.PROCESSING


@dataclass
class RegistrantContact:
    email: Optional[str]
    phone: Optional[str]


class ConfirmationPresenter:
    def __init__(self, store: FlowStateStore, client: RegistrationClient):
        self.store = store
        self.client = client
        self.record: Optional[RegistrationRecord] = None
        self.error: Optional[str] = None
        self.loading = False
        self._status_guard = RequestGuard()

    async def load(self) -> StepResult[RegistrationRecord]:
        registration_id = self.store.state.registration_id
        if not registration_id:
            self.error = "No registration ID available"
            return StepResult.failure(self.error)

        token = self._status_guard.begin()
        self.loading = True
        self.error = None
        try:
            record = await self.client.get_status(registration_id)
        except RegistrationAPIError as e:
            if token.cancelled:
                return StepResult.discarded()
            self.error = e.message
            logger.warning(
                "Failed to load registration confirmation",
                extra={"registration_id": registration_id, "error": e.message},
            )
            return StepResult.failure(e.message)
        finally:
            if not token.cancelled:
                self.loading = False
                self._status_guard.finish(token)

        if token.cancelled:
            return StepResult.discarded()

        self.record = record
        outcome = classify_registration(record)
        outcome_counter.labels(outcome=outcome.value).inc()
        logger.info(
            "Registration confirmation loaded",
            extra={"registration_id": registration_id, "status": record.status, "outcome": outcome.value},
        )
        return StepResult.success(record)

    @property
    def outcome(self) -> RegistrationOutcome:
        return classify_registration(self.record)

    @property
    def support_contact(self) -> str:
        return settings.support_contact

    @property
    def has_outstanding_balance(self) -> bool:
        return self.record is not None and self.record.balance_due > 0

    def _lookup(self, field_name: str) -> Optional[str]:
        """Normalized server form data first, then answers cached in the flow state"""
        if self.record is not None:
            value = self.record.value_for(field_name)
            if value:
                return value
        cached = self.store.state.form_data.get(field_name)
        if cached is not None and not cached.is_empty():
            return cached.as_string()
        return None

    def registrant_name(self) -> str:
        parts = [self._lookup("first_name"), self._lookup("last_name")]
        return " ".join(p.strip() for p in parts if p).strip()

    def registrant_contact(self) -> RegistrantContact:
        return RegistrantContact(email=self._lookup("email"), phone=self._lookup("phone"))

    def deactivate(self) -> None:
        self._status_guard.cancel()
        self.loading = False
