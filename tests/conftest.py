"""Pytest fixtures for testing"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from mock_backend.registration_server.main import app as mock_app, reset_state
from registration_flow.domain.flow import FlowStateStore
from registration_flow.domain.models import (
    FeeLineItem,
    FieldDescriptor,
    FieldOption,
    FieldType,
    FinancialSummary,
    FormDataEntry,
    Program,
    RegistrationFormSchema,
    RegistrationRecord,
)
from registration_flow.infrastructure.clients.registration import RegistrationClient

TODAY = date(2030, 2, 15)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def program() -> Program:
    return Program(
        id="prog-soccer-spring",
        name="Spring Youth Soccer League",
        base_fee=Decimal("150.00"),
        season="Spring",
    )


@pytest.fixture
def player_schema() -> RegistrationFormSchema:
    """Player form mirroring the mock backend's soccer form"""
    return RegistrationFormSchema(
        id="form-soccer-2030",
        name="Spring League Player Form",
        fields=(
            FieldDescriptor(id="f1", field_name="first_name", field_type=FieldType.TEXT,
                            label="First Name", is_required=True, sort_order=1),
            FieldDescriptor(id="f2", field_name="last_name", field_type=FieldType.TEXT,
                            label="Last Name", is_required=True, sort_order=2),
            FieldDescriptor(id="f3", field_name="email", field_type=FieldType.EMAIL,
                            label="Email", is_required=True, sort_order=3),
            FieldDescriptor(id="f4", field_name="phone", field_type=FieldType.TEL,
                            label="Phone", is_required=True, sort_order=4),
            FieldDescriptor(id="f5", field_name="date_of_birth", field_type=FieldType.DATE,
                            label="Date of Birth", is_required=True, sort_order=5),
            FieldDescriptor(
                id="f6", field_name="jersey_size", field_type=FieldType.SELECT,
                label="Jersey Size", is_required=True, sort_order=6,
                options=(FieldOption("YS", "Youth Small"), FieldOption("YM", "Youth Medium")),
            ),
            FieldDescriptor(id="f7", field_name="postal_code", field_type=FieldType.TEXT,
                            label="Postal Code", validation_regex=r"^[0-9]{5}$",
                            error_message="Enter a 5-digit ZIP code", sort_order=7),
            FieldDescriptor(id="f9", field_name="photo_consent", field_type=FieldType.CHECKBOX,
                            label="I consent to team photos", is_required=True, sort_order=9),
        ),
    )


@pytest.fixture
def valid_answers() -> dict:
    return {
        "first_name": "Maya",
        "last_name": "Okafor",
        "email": "maya@example.org",
        "phone": "+1 (555) 123-4567",
        "date_of_birth": "2018-06-02",
        "jersey_size": "YM",
        "postal_code": "94110",
        "photo_consent": True,
    }


@pytest.fixture
def store() -> FlowStateStore:
    return FlowStateStore()


@pytest.fixture
def financial_summary() -> FinancialSummary:
    return FinancialSummary(
        base_fee=Decimal("150.00"),
        additional_fees=(FeeLineItem("Uniform", Decimal("35.00")), FeeLineItem("Field maintenance", Decimal("10.00"))),
        discounts=(FeeLineItem("Early bird", Decimal("20.00")),),
        total_before_tax=Decimal("175.00"),
        tax_amount=Decimal("14.00"),
        total_amount_due=Decimal("189.00"),
        amount_paid=Decimal("0.00"),
        balance_due=Decimal("189.00"),
    )


@pytest.fixture
def make_record(financial_summary: FinancialSummary):
    """Factory for registration records with overridable status and amounts"""

    def _make(
        status: str = "pending",
        balance_due: str = "189.00",
        amount_paid: str = "0.00",
        form_data: list[FormDataEntry] | None = None,
    ) -> RegistrationRecord:
        return RegistrationRecord(
            id="reg-1001",
            status=status,
            total_amount_due=Decimal("189.00"),
            balance_due=Decimal(balance_due),
            amount_paid=Decimal(amount_paid),
            form_data=form_data or [],
            financial_summary=financial_summary,
        )

    return _make


@pytest.fixture
def fake_client() -> AsyncMock:
    """Registration client double; every API method is an AsyncMock"""
    return AsyncMock(spec=RegistrationClient)


@pytest.fixture
def backend() -> TestClient:
    """FastAPI test client for the mock registration backend, freshly seeded"""
    reset_state()
    return TestClient(mock_app)


@pytest.fixture
def api_client() -> RegistrationClient:
    """Real HTTP client wired to the mock backend in-process"""
    reset_state()
    return RegistrationClient(
        base_url="http://testserver/api",
        transport=httpx.ASGITransport(app=mock_app),
    )
