"""Dynamic form collection and the custom form step"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from registration_flow.domain.exceptions import RegistrationAPIError, SchemaError
from registration_flow.domain.flow import FlowStateStore, Step
from registration_flow.domain.models import (
    GENERAL_ERROR_KEY,
    FieldDescriptor,
    FieldOption,
    FieldValue,
    FieldValueMap,
    RegistrationFormSchema,
    ValidationErrorMap,
    coerce_value,
    default_value,
)
from registration_flow.domain.requests import RequestGuard, StepResult
from registration_flow.domain.validation import validate_all, validate_field
from registration_flow.infrastructure.clients.registration import RegistrationClient
from registration_flow.infrastructure.observability.metrics import record_validation_failures

logger = logging.getLogger(__name__)


@dataclass
class RenderedField:
    """Everything a UI needs to draw one input"""

    descriptor: FieldDescriptor
    value: FieldValue
    error: Optional[str]

    @property
    def options(self) -> Tuple[FieldOption, ...]:
        return self.descriptor.options


class FormCollector:
    """
    Holds the values and errors of one schema-driven form.

    Every edit re-validates only the edited field and mirrors the form
    values into the flow state with a patch, so going back never loses input.
    """

    def __init__(self, schema: RegistrationFormSchema, store: FlowStateStore, today: Optional[date] = None):
        self.schema = schema
        self.store = store
        self.today = today
        self.errors: ValidationErrorMap = {}

        # Type defaults first, then anything already entered earlier in the flow
        self.values: FieldValueMap = {}
        existing = store.state.form_data
        for descriptor in schema.ordered_fields():
            name = descriptor.field_name
            if name in existing:
                self.values[name] = coerce_value(descriptor.field_type, existing[name])
            else:
                self.values[name] = default_value(descriptor.field_type)

    def set_value(self, field_name: str, raw: Any) -> Optional[str]:
        """
        Record an edit, re-validate that one field and sync it into the flow state.

        Returns:
            The field's current error, if any

        Raises:
            KeyError: If field_name is not part of the schema
        """
        descriptor = self.schema.get(field_name)
        if descriptor is None:
            raise KeyError(field_name)

        value = coerce_value(descriptor.field_type, raw)
        self.values[field_name] = value

        error = validate_field(descriptor, value, self.today)
        if error is None:
            self.errors.pop(field_name, None)
        else:
            self.errors[field_name] = error
        self.errors.pop(GENERAL_ERROR_KEY, None)

        self.store.patch(form_data={**self.store.state.form_data, field_name: value})
        return error

    def validate(self) -> ValidationErrorMap:
        """Full validation, replacing the active error map"""
        self.errors = validate_all(self.schema, self.values, self.today)
        if self.errors:
            record_validation_failures(
                [self.schema.get(name).field_type.value for name in self.errors]
            )
        return self.errors

    def rendered_fields(self) -> List[RenderedField]:
        return [
            RenderedField(
                descriptor=descriptor,
                value=self.values[descriptor.field_name],
                error=self.errors.get(descriptor.field_name),
            )
            for descriptor in self.schema.ordered_fields()
        ]

    def wire_values(self) -> Dict[str, Any]:
        return {name: value.to_wire() for name, value in self.values.items()}


class CustomFormStep:
    """Custom form step: load the program's schema, collect answers, submit them"""

    def __init__(self, store: FlowStateStore, client: RegistrationClient, today: Optional[date] = None):
        self.store = store
        self.client = client
        self.today = today
        self.collector: Optional[FormCollector] = None
        self.no_form_required = False
        self.error: Optional[str] = None
        self.submitting = False
        self._schema_guard = RequestGuard()

    @property
    def errors(self) -> ValidationErrorMap:
        return self.collector.errors if self.collector else {}

    @property
    def completable(self) -> bool:
        """True when the step may advance without further input"""
        return self.no_form_required

    async def load(self) -> StepResult[RegistrationFormSchema]:
        """Fetch the selected program's form; a missing form is a valid outcome"""
        program = self.store.state.selected_program
        if program is None:
            self.error = "No program selected"
            return StepResult.failure(self.error)

        token = self._schema_guard.begin()
        self.error = None
        self.no_form_required = False
        self.collector = None
        try:
            schema = await self.client.get_registration_form(program.id)
        except (RegistrationAPIError, SchemaError) as e:
            if token.cancelled:
                return StepResult.discarded()
            self._schema_guard.finish(token)
            self.error = str(e)
            logger.warning(
                "Failed to load registration form",
                extra={"program_id": program.id, "error": self.error},
            )
            return StepResult.failure(self.error)

        if token.cancelled:
            return StepResult.discarded()
        self._schema_guard.finish(token)

        if schema is None:
            logger.info("Program has no custom form", extra={"program_id": program.id})
            self.no_form_required = True
            return StepResult.success(None)

        self.collector = FormCollector(schema, self.store, self.today)
        return StepResult.success(schema)

    def set_value(self, field_name: str, raw: Any) -> Optional[str]:
        if self.collector is None:
            raise KeyError(field_name)
        return self.collector.set_value(field_name, raw)

    async def submit(self) -> StepResult[None]:
        """
        Validate and submit the form, advancing only on server acknowledgment.

        Field errors and network failures keep the flow on this step.
        """
        if self.submitting:
            return StepResult.failure("Form submission already in progress")

        if self.no_form_required:
            self.store.advance({"form_completed": True}, from_step=Step.CUSTOM_FORM)
            return StepResult.success()

        if self.collector is None:
            return StepResult.failure(self.error or "Registration form is not loaded")

        errors = self.collector.validate()
        if errors:
            return StepResult.failure("Please correct the highlighted fields")

        registration_id = self.store.state.registration_id
        if not registration_id:
            self.collector.errors[GENERAL_ERROR_KEY] = "No registration ID available"
            return StepResult.failure(self.collector.errors[GENERAL_ERROR_KEY])

        self.submitting = True
        try:
            await self.client.submit_form(registration_id, self.collector.wire_values())
        except RegistrationAPIError as e:
            self.collector.errors[GENERAL_ERROR_KEY] = e.message
            return StepResult.failure(e.message)
        finally:
            self.submitting = False

        self.store.advance(
            {"form_data": {**self.store.state.form_data, **self.collector.values}, "form_completed": True},
            from_step=Step.CUSTOM_FORM,
        )
        return StepResult.success()

    def deactivate(self) -> None:
        """Called when the step unmounts; drops any in-flight schema response"""
        self._schema_guard.cancel()
