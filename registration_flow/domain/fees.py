"""Fee summary step: show the server-computed breakdown and finalize the registration"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from registration_flow.config import settings
from registration_flow.domain.exceptions import RegistrationAPIError
from registration_flow.domain.flow import FlowStateStore, Step
from registration_flow.domain.models import FinalizationResult, FinancialSummary, RegistrationRecord
from registration_flow.domain.requests import RequestGuard, StepResult
from registration_flow.infrastructure.clients.registration import RegistrationClient
from registration_flow.utils.formatting import format_currency

logger = logging.getLogger(__name__)

NO_REGISTRATION_ID = "No registration ID available"


@dataclass
class FeeLine:
    """One display row of the fee breakdown"""

    label: str
    amount: Decimal
    kind: str  # base | fee | discount | subtotal | tax | total | paid | balance
    description: Optional[str] = None

    def formatted(self, currency: str | None = None) -> str:
        return format_currency(self.amount, currency or settings.currency)


class FeeSummaryPresenter:
    """Loads the financial summary for the current registration and drives finalize"""

    def __init__(self, store: FlowStateStore, client: RegistrationClient):
        self.store = store
        self.client = client
        self.record: Optional[RegistrationRecord] = None
        self.error: Optional[str] = None
        self.loading = False
        self.finalizing = False
        self._fresh_summary: Optional[FinancialSummary] = None
        self._status_guard = RequestGuard()

    @property
    def summary(self) -> Optional[FinancialSummary]:
        """Freshly fetched summary, or the last known one while loading or after a failure"""
        return self._fresh_summary or self.store.state.fee_calculation

    async def load(self) -> StepResult[FinancialSummary]:
        """Re-fetch the registration status; never trusts the cached summary for correctness"""
        registration_id = self.store.state.registration_id
        if not registration_id:
            self.error = NO_REGISTRATION_ID
            return StepResult.failure(self.error)

        token = self._status_guard.begin()
        self.loading = True
        self.error = None
        self._fresh_summary = None
        try:
            record = await self.client.get_status(registration_id)
        except RegistrationAPIError as e:
            if token.cancelled:
                return StepResult.discarded()
            self.error = e.message
            logger.warning(
                "Failed to load fee summary",
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
        summary = record.financial_summary
        if summary is None:
            self.error = "Fee information is not available for this registration"
            return StepResult.failure(self.error)

        if not summary.reconciles():
            logger.warning(
                "Financial summary does not add up",
                extra={"registration_id": registration_id, "total_amount_due": str(summary.total_amount_due)},
            )

        self._fresh_summary = summary
        self.store.patch(fee_calculation=summary)
        return StepResult.success(summary)

    async def finalize(self) -> StepResult[FinalizationResult]:
        """
        Lock in the draft registration so it becomes payable.

        The flow advances at most once: a repeated finalize after the flow
        has already left the fee summary step leaves the state untouched.
        """
        registration_id = self.store.state.registration_id
        if not registration_id:
            self.error = NO_REGISTRATION_ID
            return StepResult.failure(self.error)

        if self.finalizing:
            return StepResult.failure("Finalization already in progress")

        self.finalizing = True
        self.error = None
        try:
            result = await self.client.finalize(registration_id)
        except RegistrationAPIError as e:
            self.error = e.message
            logger.warning(
                "Failed to finalize registration",
                extra={"registration_id": registration_id, "error": e.message},
            )
            return StepResult.failure(e.message)
        finally:
            self.finalizing = False

        self.store.advance(
            {
                "fees_confirmed": True,
                "finalization_result": result,
                "registration_finalized": True,
            },
            from_step=Step.FEE_SUMMARY,
        )
        return StepResult.success(result)

    def line_items(self) -> List[FeeLine]:
        summary = self.summary
        if summary is None:
            return []

        lines = [FeeLine("Base fee", summary.base_fee, "base")]
        lines.extend(FeeLine(f.name, f.amount, "fee", f.description) for f in summary.additional_fees)
        lines.extend(FeeLine(d.name, -d.amount, "discount", d.description) for d in summary.discounts)
        lines.append(FeeLine("Subtotal", summary.total_before_tax, "subtotal"))
        if summary.tax_amount:
            lines.append(FeeLine("Tax", summary.tax_amount, "tax"))
        lines.append(FeeLine("Total amount due", summary.total_amount_due, "total"))
        if summary.amount_paid > 0:
            lines.append(FeeLine("Amount paid", summary.amount_paid, "paid"))
        lines.append(FeeLine("Balance due", max(summary.balance_due, Decimal("0")), "balance"))
        return lines

    def deactivate(self) -> None:
        self._status_guard.cancel()
        self.loading = False
