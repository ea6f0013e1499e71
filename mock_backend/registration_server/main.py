"""Mock registration backend for local development and tests"""

import copy
import json
import os
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Dict

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

app = FastAPI(title="Mock Registration Server", version="1.0.0")
router = APIRouter(prefix="/api")

# Support both local development and Docker
DATA_DIR = (
    Path("/registration_stub")
    if os.path.exists("/registration_stub")
    else Path(__file__).resolve().parents[1] / "registration_stub"
)

CENT = Decimal("0.01")


class SubmitFormRequest(BaseModel):
    form_data: Dict[str, Any] = Field(default_factory=dict)


class PaymentRequest(BaseModel):
    amount: float = Field(..., gt=0)


def _load(name: str) -> Any:
    return json.loads((DATA_DIR / name).read_text())


def reset_state() -> None:
    """Reload stub data, discarding submitted forms, finalizations and payments"""
    STATE["programs"] = {p["id"]: p for p in _load("programs.json")["programs"]}
    STATE["forms"] = _load("forms.json")
    STATE["registrations"] = {r["id"]: copy.deepcopy(r) for r in _load("registrations.json")["registrations"]}
    for registration in STATE["registrations"].values():
        registration.setdefault("form_data", {})
        registration.setdefault("finalized", False)


STATE: Dict[str, Any] = {}
reset_state()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _money(value: Decimal) -> float:
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def _financial_summary(registration: Dict[str, Any]) -> Dict[str, Any]:
    program = STATE["programs"][registration["program_id"]]
    base_fee = Decimal(str(program["base_fee"]))
    fees = sum((Decimal(str(f["amount"])) for f in registration["additional_fees"]), Decimal("0"))
    discounts = sum((Decimal(str(d["amount"])) for d in registration["discounts"]), Decimal("0"))

    total_before_tax = max(base_fee + fees - discounts, Decimal("0"))
    tax_amount = (total_before_tax * Decimal(str(registration["tax_rate"]))).quantize(CENT, rounding=ROUND_HALF_UP)
    total_amount_due = total_before_tax + tax_amount
    amount_paid = Decimal(str(registration["amount_paid"]))
    balance_due = max(total_amount_due - amount_paid, Decimal("0"))

    return {
        "base_fee": _money(base_fee),
        "additional_fees": registration["additional_fees"],
        "discounts": registration["discounts"],
        "total_before_tax": _money(total_before_tax),
        "tax_amount": _money(tax_amount),
        "total_amount_due": _money(total_amount_due),
        "amount_paid": _money(amount_paid),
        "balance_due": _money(balance_due),
    }


def _form_entries(registration: Dict[str, Any]) -> list:
    form = STATE["forms"].get(registration["program_id"], {"fields": []})
    labels = {f["field_name"]: f["label"] for f in form["fields"]}
    return [
        {"field_name": name, "field_label": labels.get(name, name), "field_value": value}
        for name, value in registration["form_data"].items()
    ]


def _status_payload(registration: Dict[str, Any]) -> Dict[str, Any]:
    summary = _financial_summary(registration)
    return {
        "id": registration["id"],
        "status": registration["status"],
        "notes": registration["notes"],
        "created_at": registration["created_at"],
        "total_amount_due": summary["total_amount_due"],
        "amount_paid": summary["amount_paid"],
        "balance_due": summary["balance_due"],
        "program": STATE["programs"][registration["program_id"]],
        "form_data": _form_entries(registration),
        "financial_summary": summary,
    }


@app.get("/health")
def health(): return {"status": "ok"}


@router.get("/programs")
def list_programs():
    return {"programs": list(STATE["programs"].values())}


@router.get("/programs/{program_id}/registration-form")
def get_registration_form(program_id: str):
    form = STATE["forms"].get(program_id)
    if form is None:
        return _error(404, "No registration form for this program")
    return form


@router.post("/registration-flow/{registration_id}/submit-form")
def submit_form(registration_id: str, body: SubmitFormRequest):
    registration = STATE["registrations"].get(registration_id)
    if registration is None:
        return _error(404, "Registration not found")
    if registration["finalized"] and body.form_data != registration["form_data"]:
        return _error(409, "Registration has already been finalized")
    registration["form_data"] = dict(body.form_data)
    return {"success": True, "registration_id": registration_id}


@router.get("/registration-flow/{registration_id}/status")
def get_status(registration_id: str):
    registration = STATE["registrations"].get(registration_id)
    if registration is None:
        return _error(404, "Registration not found")
    return _status_payload(registration)


@router.post("/registration-flow/{registration_id}/finalize")
def finalize(registration_id: str):
    registration = STATE["registrations"].get(registration_id)
    if registration is None:
        return _error(404, "Registration not found")

    already_finalized = registration["finalized"]
    if not already_finalized:
        registration["finalized"] = True
        summary = _financial_summary(registration)
        registration["status"] = "confirmed" if summary["balance_due"] <= 0 else "pending_payment"

    return {
        "registration_id": registration_id,
        "status": registration["status"],
        "finalized": True,
        "already_finalized": already_finalized,
    }


@router.post("/registration-flow/{registration_id}/simulate-payment")
def simulate_payment(registration_id: str, body: PaymentRequest):
    """Stand-in for the external payment gateway"""
    registration = STATE["registrations"].get(registration_id)
    if registration is None:
        return _error(404, "Registration not found")
    if not registration["finalized"]:
        return _error(409, "Registration must be finalized before payment")

    paid = Decimal(str(registration["amount_paid"])) + Decimal(str(body.amount))
    registration["amount_paid"] = _money(paid)
    if _financial_summary(registration)["balance_due"] <= 0:
        registration["status"] = "completed"

    return {
        "payment_intent": {"id": f"pi_{registration_id}", "amount": body.amount},
        "payment": {"amount": body.amount, "status": "succeeded"},
    }


app.include_router(router)
