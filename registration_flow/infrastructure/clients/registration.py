"""Registration backend HTTP client"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from registration_flow.config import settings
from registration_flow.domain.exceptions import RegistrationAPIError, SchemaError
from registration_flow.domain.models import (
    FeeLineItem,
    FieldDescriptor,
    FieldOption,
    FieldType,
    FinalizationResult,
    FinancialSummary,
    FormDataEntry,
    Program,
    RegistrationFormSchema,
    RegistrationRecord,
)
from registration_flow.infrastructure.observability.metrics import api_failure_counter, api_latency_histogram

logger = logging.getLogger(__name__)


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"not a monetary amount: {value!r}") from e


def _optional_date(value: Any) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def parse_program(data: Dict[str, Any]) -> Program:
    return Program(
        id=str(data["id"]),
        name=data["name"],
        base_fee=_money(data.get("base_fee")),
        is_active=bool(data.get("is_active", True)),
        description=data.get("description"),
        season=data.get("season"),
        start_date=_optional_date(data.get("start_date")),
        end_date=_optional_date(data.get("end_date")),
        registration_open_date=_optional_date(data.get("registration_open_date")),
        registration_close_date=_optional_date(data.get("registration_close_date")),
        max_capacity=data.get("max_capacity"),
    )


def parse_form_schema(data: Dict[str, Any]) -> RegistrationFormSchema:
    """Build a schema from the registration-form payload; raises SchemaError on bad structure"""
    data = data.get("form", data)
    descriptors = []
    for raw in data.get("fields", []):
        try:
            field_type = FieldType(raw["field_type"])
        except ValueError as e:
            raise SchemaError(f"Unknown field type '{raw['field_type']}' for '{raw.get('field_name')}'") from e

        descriptors.append(
            FieldDescriptor(
                id=str(raw.get("id", raw["field_name"])),
                field_name=raw["field_name"],
                field_type=field_type,
                label=raw.get("label") or raw["field_name"],
                is_required=bool(raw.get("is_required", False)),
                placeholder=raw.get("placeholder"),
                validation_regex=raw.get("validation_regex") or None,
                error_message=raw.get("error_message") or None,
                options=tuple(
                    FieldOption(value=str(opt["value"]), label=opt.get("label") or str(opt["value"]))
                    for opt in raw.get("options") or []
                ),
                sort_order=int(raw.get("sort_order", 0)),
            )
        )

    return RegistrationFormSchema(
        id=str(data["id"]),
        name=data["name"],
        description=data.get("description"),
        fields=tuple(descriptors),
    )


def _parse_line_items(items: Optional[List[Dict[str, Any]]]) -> tuple:
    return tuple(
        FeeLineItem(name=item["name"], amount=_money(item["amount"]), description=item.get("description"))
        for item in items or []
    )


def parse_financial_summary(data: Dict[str, Any]) -> FinancialSummary:
    return FinancialSummary(
        base_fee=_money(data["base_fee"]),
        additional_fees=_parse_line_items(data.get("additional_fees")),
        discounts=_parse_line_items(data.get("discounts")),
        total_before_tax=_money(data["total_before_tax"]),
        tax_amount=_money(data.get("tax_amount")),
        total_amount_due=_money(data["total_amount_due"]),
        amount_paid=_money(data.get("amount_paid")),
        balance_due=_money(data["balance_due"]),
    )


def parse_registration_record(data: Dict[str, Any]) -> RegistrationRecord:
    data = data.get("registration", data)
    summary = parse_financial_summary(data["financial_summary"]) if data.get("financial_summary") else None

    # amount_paid may only be reported inside the financial summary
    amount_paid = data.get("amount_paid")
    if amount_paid is None and summary is not None:
        amount_paid = summary.amount_paid

    return RegistrationRecord(
        id=str(data["id"]),
        status=str(data.get("status", "")),
        total_amount_due=_money(data.get("total_amount_due")),
        balance_due=_money(data.get("balance_due")),
        amount_paid=_money(amount_paid),
        notes=data.get("notes"),
        created_at=data.get("created_at"),
        program=parse_program(data["program"]) if data.get("program") else None,
        form_data=[
            FormDataEntry(
                field_name=entry["field_name"],
                field_label=entry.get("field_label") or entry["field_name"],
                field_value="" if entry.get("field_value") is None else str(entry["field_value"]),
            )
            for entry in data.get("form_data") or []
        ],
        financial_summary=summary,
    )


def error_message_from_response(response: httpx.Response) -> str:
    """Backend error/message field if present, else 'HTTP <status>: <reason>'"""
    message = f"HTTP {response.status_code}: {response.reason_phrase}"
    try:
        payload = response.json()
    except ValueError:
        return message
    if isinstance(payload, dict):
        return payload.get("error") or payload.get("message") or message
    return message


class RegistrationClient:
    """Client for the registration flow REST API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def _request(self, operation: str, method: str, path: str, json: Any = None) -> Any:
        """
        Perform one call and return the decoded JSON body.

        Raises:
            RegistrationAPIError: On network failure or non-2xx response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with api_latency_histogram.labels(operation=operation).time():
                    response = await client.request(method, f"{self.base_url}{path}", json=json)
            except httpx.RequestError as e:
                api_failure_counter.labels(operation=operation).inc()
                logger.warning("Registration API unreachable", extra={"operation": operation, "error": str(e)})
                raise RegistrationAPIError(f"Unable to reach registration service: {e}") from e

            if response.is_error:
                api_failure_counter.labels(operation=operation).inc()
                message = error_message_from_response(response)
                logger.warning(
                    "Registration API error",
                    extra={"operation": operation, "status_code": response.status_code, "error": message},
                )
                raise RegistrationAPIError(message, status_code=response.status_code)

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                api_failure_counter.labels(operation=operation).inc()
                raise RegistrationAPIError(f"Invalid {operation} payload: response is not JSON") from e

    async def list_programs(self) -> List[Program]:
        data = await self._request("list_programs", "GET", "/programs")
        try:
            return [parse_program(item) for item in data.get("programs", [])]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise RegistrationAPIError(f"Invalid list_programs payload: {e}") from e

    async def get_registration_form(self, program_id: str) -> Optional[RegistrationFormSchema]:
        """
        Fetch the custom form attached to a program.

        Returns:
            The schema, or None when the program has no custom form (404)

        Raises:
            RegistrationAPIError: On any other failure
            SchemaError: When the payload describes an invalid schema
        """
        try:
            data = await self._request("get_registration_form", "GET", f"/programs/{program_id}/registration-form")
        except RegistrationAPIError as e:
            if e.status_code == 404:
                return None
            raise
        try:
            return parse_form_schema(data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise RegistrationAPIError(f"Invalid get_registration_form payload: {e}") from e

    async def submit_form(self, registration_id: str, form_data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "submit_form",
            "POST",
            f"/registration-flow/{registration_id}/submit-form",
            json={"form_data": form_data},
        )

    async def get_status(self, registration_id: str) -> RegistrationRecord:
        data = await self._request("get_status", "GET", f"/registration-flow/{registration_id}/status")
        try:
            return parse_registration_record(data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise RegistrationAPIError(f"Invalid get_status payload: {e}") from e

    async def finalize(self, registration_id: str) -> FinalizationResult:
        data = await self._request("finalize", "POST", f"/registration-flow/{registration_id}/finalize")
        return FinalizationResult(raw=data if isinstance(data, dict) else {"result": data})
