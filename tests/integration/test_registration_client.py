"""Integration tests for the registration HTTP client against scripted transports"""

from decimal import Decimal

import httpx
import pytest

from registration_flow.domain.exceptions import RegistrationAPIError, SchemaError
from registration_flow.domain.models import FieldType
from registration_flow.infrastructure.clients.registration import RegistrationClient

pytestmark = pytest.mark.integration

BASE_URL = "http://registration.test/api"


def client_for(handler) -> RegistrationClient:
    return RegistrationClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))


async def test_missing_form_returns_none():
    client = client_for(lambda request: httpx.Response(404, json={"error": "No registration form"}))

    assert await client.get_registration_form("prog-open-gym") is None


async def test_form_payload_is_parsed_with_wrapper():
    payload = {
        "form": {
            "id": 7,
            "name": "Camp Form",
            "fields": [
                {"id": 1, "field_name": "shirt", "field_type": "radio", "label": "Shirt", "sort_order": 2,
                 "options": [{"value": "S"}, {"value": "M", "label": "Medium"}]},
                {"id": 2, "field_name": "age", "field_type": "number", "label": "Age", "sort_order": 1,
                 "validation_regex": ""},
            ],
        }
    }
    client = client_for(lambda request: httpx.Response(200, json=payload))

    schema = await client.get_registration_form("camp")

    assert schema.id == "7"
    assert [f.field_name for f in schema.ordered_fields()] == ["age", "shirt"]
    shirt = schema.get("shirt")
    assert shirt.field_type == FieldType.RADIO
    assert [o.label for o in shirt.options] == ["S", "Medium"]
    assert schema.get("age").validation_regex is None


async def test_unknown_field_type_is_a_schema_error():
    payload = {"id": "f", "name": "F", "fields": [{"field_name": "x", "field_type": "signature", "label": "X"}]}
    client = client_for(lambda request: httpx.Response(200, json=payload))

    with pytest.raises(SchemaError):
        await client.get_registration_form("p")


@pytest.mark.parametrize(
    "response, expected",
    [
        (httpx.Response(409, json={"error": "Registration is locked"}), "Registration is locked"),
        (httpx.Response(400, json={"message": "Bad form data"}), "Bad form data"),
        (httpx.Response(500, json={"detail": "boom"}), "HTTP 500: Internal Server Error"),
        (httpx.Response(502, text="<html>bad gateway</html>"), "HTTP 502: Bad Gateway"),
    ],
)
async def test_error_message_extraction(response, expected):
    client = client_for(lambda request: response)

    with pytest.raises(RegistrationAPIError) as exc_info:
        await client.finalize("reg-1001")

    assert exc_info.value.message == expected
    assert exc_info.value.status_code == response.status_code


async def test_network_failure_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = client_for(handler)

    with pytest.raises(RegistrationAPIError) as exc_info:
        await client.get_status("reg-1001")

    assert exc_info.value.status_code is None
    assert exc_info.value.message.startswith("Unable to reach registration service")


async def test_submit_form_posts_wrapped_payload():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json={"success": True})

    client = client_for(handler)

    result = await client.submit_form("reg-1001", {"first_name": "Maya", "photo_consent": True})

    assert result == {"success": True}
    assert seen["method"] == "POST"
    assert seen["path"] == "/api/registration-flow/reg-1001/submit-form"
    assert b'"form_data"' in seen["body"]


async def test_status_payload_uses_summary_amount_paid():
    payload = {
        "registration": {
            "id": "reg-1",
            "status": "pending",
            "total_amount_due": "100.00",
            "balance_due": 0,
            "financial_summary": {
                "base_fee": 100,
                "total_before_tax": 100,
                "total_amount_due": 100,
                "amount_paid": 100,
                "balance_due": 0,
            },
            "form_data": [{"field_name": "first_name", "field_value": None}],
        }
    }
    client = client_for(lambda request: httpx.Response(200, json=payload))

    record = await client.get_status("reg-1")

    assert record.amount_paid == Decimal("100")
    assert record.financial_summary.tax_amount == Decimal("0")
    assert record.form_data[0].field_label == "first_name"
    assert record.value_for("first_name") == ""
    assert record.value_for("last_name") is None


async def test_malformed_status_payload():
    client = client_for(lambda request: httpx.Response(200, json={"status": "pending"}))

    with pytest.raises(RegistrationAPIError, match="Invalid get_status payload"):
        await client.get_status("reg-1")


async def test_non_json_success_body():
    client = client_for(lambda request: httpx.Response(200, text="ok"))

    with pytest.raises(RegistrationAPIError, match="not JSON"):
        await client.list_programs()
