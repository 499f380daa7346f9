from test_fhir_builders import claim_payload, patient_payload


def test_list_resources(fhir_client):
    r = fhir_client.get("/api/fhir")
    assert r.status_code == 200
    assert r.json()["resources"] == [
        "claim",
        "coverage",
        "coverage-eligibility-request",
        "insurance-plan",
        "patient",
    ]


def test_create_patient(fhir_client):
    r = fhir_client.post("/api/fhir/patient", json=patient_payload())
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["warnings"] == []
    assert body["data"]["resourceType"] == "Patient"
    assert body["data"]["birthDate"] == "1985-06-15"


def test_create_claim_computes_total(fhir_client):
    r = fhir_client.post("/api/fhir/claim", json=claim_payload())
    assert r.status_code == 200
    assert r.json()["data"]["total"]["value"] == 4001.0


def test_validation_failure_lists_details(fhir_client):
    r = fhir_client.post("/api/fhir/claim", json={"resourceType": "Claim"})
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert any(detail.startswith("patient") for detail in body["details"])


def test_invalid_json_body(fhir_client):
    r = fhir_client.post(
        "/api/fhir/patient", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert r.status_code == 400
    assert r.json()["details"] == ["Request body must be valid JSON"]


def test_unknown_resource(fhir_client):
    assert fhir_client.post("/api/fhir/encounter", json={}).status_code == 404
    assert fhir_client.get("/api/fhir/encounter/schema").status_code == 404


def test_schema_uses_aliases(fhir_client):
    r = fhir_client.get("/api/fhir/coverage/schema")
    assert r.status_code == 200
    assert "class" in r.json()["schema"]["properties"]


def test_health(fhir_client):
    body = fhir_client.get("/health").json()
    assert body["status"] == "ok"
    assert body["service"] == "FHIR Utilities"
    assert body["timestamp"].endswith("+05:30")
