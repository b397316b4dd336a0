# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Tests for the HTTP surface: verification endpoints, envelopes, UI and health.

The verification service dependency is overridden with one wired to the
mock Prove transport, so requests go through the real router, models and
error handlers without touching the network.
"""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.prove.service import get_verification_service

VALID_START = {"phoneNumber": "5551234567", "lastFourSSN": "1234", "flowType": "desktop"}

VALID_INDIVIDUAL = {
    "firstName": "Tod",
    "lastName": "Weedall",
    "emailAddresses": ["tod@example.com"],
    "addresses": [{"address": "39 South Trail", "city": "San Antonio", "postCode": "78285"}],
    "dob": "1984-12-10",
    "ssn": "565228370",
}


@pytest.fixture
def client(service):
    app.dependency_overrides[get_verification_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _assert_failure_envelope(response, status_code: int) -> dict:
    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert body["message"]
    assert "data" not in body
    return body


# =========================================================================
# POST /api/verification/start
# =========================================================================


class TestStartEndpoint:

    def test_success(self, client, token_ok):
        token_ok.add_response("/v3/start", 200, {"authToken": "tok", "correlationId": "corr-1"})

        response = client.post("/api/verification/start", json=VALID_START)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"authToken": "tok", "correlationId": "corr-1"},
            "message": "Verification initiated successfully",
        }

    def test_identical_starts_open_distinct_sessions(self, client, token_ok):
        token_ok.add_response("/v3/start", 200, {"authToken": "tok-1", "correlationId": "corr-1"})
        token_ok.add_response("/v3/start", 200, {"authToken": "tok-2", "correlationId": "corr-2"})

        first = client.post("/api/verification/start", json=VALID_START)
        second = client.post("/api/verification/start", json=VALID_START)

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["data"]["correlationId"] == "corr-1"
        assert second.json()["data"]["correlationId"] == "corr-2"
        assert len(token_ok.requests_for("/v3/start")) == 2

    def test_provider_receives_submitted_values(self, client, token_ok):
        token_ok.add_response("/v3/start", 200, {"authToken": "tok", "correlationId": "corr-1"})

        client.post("/api/verification/start", json={**VALID_START, "flowType": "mobile"})

        start = token_ok.requests_for("/v3/start")[0]
        assert b'"flowType":"mobile"' in start.content.replace(b" ", b"")
        assert b'"ssn":"1234"' in start.content.replace(b" ", b"")

    @pytest.mark.parametrize("ssn", ["123", "12345", "12a4", "abcd"])
    def test_invalid_last_four_ssn(self, client, transport, ssn):
        response = client.post("/api/verification/start", json={**VALID_START, "lastFourSSN": ssn})

        body = _assert_failure_envelope(response, 400)
        assert body["message"] == "Invalid request data"
        assert body["errors"] == {"LastFourSSN": ["The LastFourSSN field must be exactly 4 digits."]}
        assert transport.requests == []

    def test_missing_last_four_ssn(self, client):
        body = dict(VALID_START)
        del body["lastFourSSN"]

        response = client.post("/api/verification/start", json=body)

        errors = _assert_failure_envelope(response, 400)["errors"]
        assert errors == {"LastFourSSN": ["The LastFourSSN field is required."]}

    def test_empty_flow_type(self, client):
        response = client.post("/api/verification/start", json={**VALID_START, "flowType": ""})

        errors = _assert_failure_envelope(response, 400)["errors"]
        assert errors == {"FlowType": ["The FlowType field is required."]}

    @pytest.mark.parametrize("phone", ["not-a-phone", "555-abc-1234", "++1 555"])
    def test_invalid_phone(self, client, phone):
        response = client.post("/api/verification/start", json={**VALID_START, "phoneNumber": phone})

        errors = _assert_failure_envelope(response, 400)["errors"]
        assert errors["PhoneNumber"] == ["The PhoneNumber field is not a valid phone number."]

    def test_long_digit_run_rejected_quickly(self, client, transport):
        started = time.monotonic()
        response = client.post(
            "/api/verification/start", json={**VALID_START, "phoneNumber": "1" * 40 + "a"},
        )

        assert time.monotonic() - started < 2.0
        errors = _assert_failure_envelope(response, 400)["errors"]
        assert errors["PhoneNumber"] == ["The PhoneNumber field is not a valid phone number."]
        assert transport.requests == []

    @pytest.mark.parametrize(
        "phone",
        [
            "5551234567",
            "(555) 123-4567",
            "(555)123-4567",
            "+1 555.123.4567",
            "+1 (555) 123 4567",
            "555-123-4567 x89",
            "555-123-4567 ext. 89",
        ],
    )
    def test_formatted_phone_accepted(self, client, token_ok, phone):
        token_ok.add_response("/v3/start", 200, {"authToken": "tok", "correlationId": "corr-1"})

        response = client.post("/api/verification/start", json={**VALID_START, "phoneNumber": phone})

        assert response.status_code == 200

    def test_multiple_invalid_fields_reported_together(self, client):
        response = client.post(
            "/api/verification/start",
            json={"phoneNumber": "", "lastFourSSN": "12", "flowType": "desktop"},
        )

        errors = _assert_failure_envelope(response, 400)["errors"]
        assert set(errors) == {"PhoneNumber", "LastFourSSN"}

    def test_provider_failure_is_generic_500(self, client, token_ok):
        token_ok.add_response("/v3/start", 500, {"message": "internal provider detail"})

        response = client.post("/api/verification/start", json=VALID_START)

        body = _assert_failure_envelope(response, 500)
        assert body["message"] == "An error occurred while initiating verification"
        assert "errors" not in body
        assert "provider detail" not in response.text
        assert "HTTP 500" not in response.text

    def test_token_failure_is_generic_500(self, client, transport):
        transport.add_response("/token", 401, {"message": "bad credentials"})

        response = client.post("/api/verification/start", json=VALID_START)

        body = _assert_failure_envelope(response, 500)
        assert body["message"] == "An error occurred while initiating verification"
        assert "credentials" not in response.text


# =========================================================================
# POST /api/verification/validate
# =========================================================================


class TestValidateEndpoint:

    def test_success(self, client, token_ok):
        token_ok.add_response("/v3/validate", 200, {"success": True, "phoneNumber": "2001004053"})

        response = client.post("/api/verification/validate", json={"correlationId": "corr-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Phone validation completed"
        assert body["data"] == {
            "success": True,
            "data": {"success": True, "phoneNumber": "2001004053"},
        }

    def test_provider_rejection_is_200_with_inner_failure(self, client, token_ok):
        token_ok.add_response("/v3/validate", 200, {"success": False})

        response = client.post("/api/verification/validate", json={"correlationId": "corr-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["success"] is False
        assert body["data"]["message"] == "Phone validation failed"

    def test_empty_correlation_id(self, client, transport):
        response = client.post("/api/verification/validate", json={"correlationId": "  "})

        errors = _assert_failure_envelope(response, 400)["errors"]
        assert errors == {"CorrelationId": ["The CorrelationId field is required."]}
        assert transport.requests == []

    def test_transport_fault_is_generic_500(self, client, token_ok):
        token_ok.add_response("/v3/validate", 503, {"message": "down"})

        response = client.post("/api/verification/validate", json={"correlationId": "corr-1"})

        body = _assert_failure_envelope(response, 500)
        assert body["message"] == "An error occurred during phone validation"


# =========================================================================
# POST /api/verification/complete
# =========================================================================


class TestCompleteEndpoint:

    def test_success(self, client, token_ok):
        token_ok.add_response("/v3/complete", 200, {"success": True, "next": {"Done": "Done"}})

        response = client.post(
            "/api/verification/complete",
            json={"correlationId": "corr-1", "individual": VALID_INDIVIDUAL},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Verification completed successfully"
        assert body["data"]["success"] is True

    def test_snake_case_individual_accepted(self, client, token_ok):
        token_ok.add_response("/v3/complete", 200, {"success": True})
        individual = {
            "first_name": "Tod",
            "last_name": "Weedall",
            "email_addresses": ["tod@example.com"],
            "addresses": [{"address": "39 South Trail", "city": "San Antonio", "post_code": "78285"}],
            "dob": "1984-12-10",
            "ssn": "565228370",
        }

        response = client.post(
            "/api/verification/complete",
            json={"correlationId": "corr-1", "individual": individual},
        )

        assert response.status_code == 200
        sent = token_ok.requests_for("/v3/complete")[0].content
        assert b"postalCode" in sent

    def test_missing_correlation_id(self, client, transport):
        response = client.post("/api/verification/complete", json={"individual": VALID_INDIVIDUAL})

        errors = _assert_failure_envelope(response, 400)["errors"]
        assert errors == {"CorrelationId": ["The CorrelationId field is required."]}
        assert transport.requests == []

    def test_missing_first_name(self, client):
        individual = dict(VALID_INDIVIDUAL)
        del individual["firstName"]

        response = client.post(
            "/api/verification/complete",
            json={"correlationId": "corr-1", "individual": individual},
        )

        errors = _assert_failure_envelope(response, 400)["errors"]
        assert errors == {"Individual.FirstName": ["The FirstName field is required."]}

    def test_nested_address_error_path(self, client):
        individual = {
            **VALID_INDIVIDUAL,
            "addresses": [{"address": "39 South Trail", "city": "", "postCode": "78285"}],
        }

        response = client.post(
            "/api/verification/complete",
            json={"correlationId": "corr-1", "individual": individual},
        )

        errors = _assert_failure_envelope(response, 400)["errors"]
        assert errors == {"Individual.Addresses[0].City": ["The City field is required."]}

    def test_provider_failure_is_generic_500(self, client, token_ok):
        token_ok.add_response("/v3/complete", 500, {"message": "stack trace here"})

        response = client.post(
            "/api/verification/complete",
            json={"correlationId": "corr-1", "individual": VALID_INDIVIDUAL},
        )

        body = _assert_failure_envelope(response, 500)
        assert body["message"] == "An error occurred while completing verification"
        assert "stack trace" not in response.text


# =========================================================================
# Malformed bodies
# =========================================================================


class TestMalformedBodies:

    @pytest.mark.parametrize(
        "path",
        ["/api/verification/start", "/api/verification/validate", "/api/verification/complete"],
    )
    def test_invalid_json(self, client, path):
        response = client.post(
            path, content=b"{not json", headers={"content-type": "application/json"},
        )

        body = _assert_failure_envelope(response, 400)
        assert body["message"] == "Invalid request data"
        assert list(body["errors"]) == ["Request"]

    def test_missing_body(self, client):
        response = client.post("/api/verification/validate")

        body = _assert_failure_envelope(response, 400)
        assert list(body["errors"]) == ["Request"]


# =========================================================================
# UI and health
# =========================================================================


class TestUIAndHealth:

    def test_index_serves_wizard(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert 'id="phone-form"' in response.text
        assert 'id="personal-info-form"' in response.text
        assert "/static/js/app.js" in response.text

    def test_static_script_served(self, client):
        response = client.get("/static/js/session.js")

        assert response.status_code == 200
        assert "selectAuthStrategy" in response.text

    def test_healthz(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["environment"] == "uat-us"
        assert body["token_cache"]["cached"] is False
        assert "client_secret" not in body["config"]
        assert body["config"]["token_expiry_buffer_seconds"] == 300
