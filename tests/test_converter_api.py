import io
import json

import pandas as pd
from pypdf import PdfWriter

PLAN = {"resourceType": "InsurancePlan", "status": "active", "name": "Star Comprehensive"}


def _xlsx_bytes():
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame(
            [
                {"Plan": "Basic", "Premium": 2000, "Notes": None},
                {"Plan": "Premium", "Premium": 6000, "Notes": "Top tier"},
            ]
        ).to_excel(writer, sheet_name="Plans", index=False)
    return buffer.getvalue()


def _blank_pdf_bytes():
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def _upload(client, name, content, mimetype):
    return client.post("/api/insuranceplan/convert", files={"inputFile": (name, content, mimetype)})


def test_banner(converter_client):
    resp = converter_client.get("/")
    assert resp.status_code == 200
    assert resp.text == "FHIR InsurancePlan Converter Backend"


def test_missing_file(converter_client):
    resp = converter_client.post("/api/insuranceplan/convert")
    assert resp.status_code == 400
    assert resp.json() == {"message": "No file uploaded."}


def test_unsupported_file_type(converter_client, llm_reply):
    llm = llm_reply(json.dumps(PLAN))
    resp = _upload(converter_client, "plan.txt", b"plain text", "text/plain")
    assert resp.status_code == 400
    assert "Unsupported file type" in resp.json()["message"]
    assert llm.prompts == []


def test_excel_conversion_success(converter_client, llm_reply, monkeypatch):
    monkeypatch.setenv("INSURANCEPLAN_PROFILE_URL", "https://nrces.in/ndhm/fhir/r4/StructureDefinition/InsurancePlan")
    from hcx_toolkit.config import get_settings

    get_settings.cache_clear()
    try:
        llm = llm_reply("```json\n" + json.dumps(PLAN) + "\n```")
        resp = _upload(
            converter_client,
            "plans.xlsx",
            _xlsx_bytes(),
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    finally:
        get_settings.cache_clear()

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Conversion successful"
    plan = body["bundle"]["entry"][0]["resource"]
    assert plan["meta"]["profile"] == ["https://nrces.in/ndhm/fhir/r4/StructureDefinition/InsurancePlan"]
    assert "Excel file with 1 sheet(s):" in llm.prompts[0]
    assert 'Row 1: {"Plan":"Basic","Premium":2000}' in llm.prompts[0]


def test_non_insurance_plan_entry_is_flagged(converter_client, llm_reply):
    bundle = {
        "resourceType": "Bundle",
        "type": "collection",
        "entry": [{"resource": PLAN}, {"resource": {"resourceType": "Organization", "name": "Star"}}],
    }
    llm_reply(json.dumps(bundle))
    resp = _upload(converter_client, "plans.xlsx", _xlsx_bytes(), "application/octet-stream")
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Validation failed."
    assert "Non-InsurancePlan resource in bundle entry" in body["errors"]
    assert body["bundle"]["entry"][1]["resource"]["resourceType"] == "Organization"


def test_all_error_array_returns_400(converter_client, llm_reply):
    llm_reply(json.dumps([{"error": "no benefits table"}, {"error": "no premium column"}]))
    resp = _upload(converter_client, "plans.xlsx", _xlsx_bytes(), "application/octet-stream")
    assert resp.status_code == 400
    assert resp.json() == {
        "message": "LLM reported errors",
        "errors": [{"error": "no benefits table"}, {"error": "no premium column"}],
    }


def test_unparseable_reply_is_server_error(converter_client, llm_reply):
    llm_reply("no json here")
    resp = _upload(converter_client, "plans.xlsx", _xlsx_bytes(), "application/octet-stream")
    assert resp.status_code == 500
    assert resp.json()["message"].startswith("Server error: Failed to parse JSON response")


def test_blank_pdf_has_no_text(converter_client, llm_reply):
    llm_reply(json.dumps(PLAN))
    resp = _upload(converter_client, "brochure.pdf", _blank_pdf_bytes(), "application/pdf")
    assert resp.status_code == 400
    assert resp.json() == {"message": "Failed to extract text from PDF."}


def test_corrupt_pdf_is_server_error(converter_client, llm_reply):
    llm_reply(json.dumps(PLAN))
    resp = _upload(converter_client, "brochure.pdf", b"definitely not a pdf", "application/pdf")
    assert resp.status_code == 500
    assert resp.json()["message"].startswith("Server error: Failed to parse PDF")


def test_json_probe(converter_client, llm_reply):
    llm_reply('{"answer": "yes"}')
    resp = converter_client.post("/api/test-json")
    assert resp.status_code == 200
    assert resp.json() == {"message": "JSON test successful", "response": {"answer": "yes"}}


def test_json_probe_failure(converter_client, llm_reply):
    llm_reply("yes")
    resp = converter_client.post("/api/test-json")
    assert resp.status_code == 500
    assert resp.json() == {"message": "Server error: LLM did not return valid JSON"}


def test_plan_with_loose_field_types_converts(converter_client, llm_reply):
    llm_reply(json.dumps({"resourceType": "InsurancePlan", "status": "active", "name": "Gold", "meta": {"versionId": 1}}))
    resp = _upload(converter_client, "plans.xlsx", _xlsx_bytes(), "application/octet-stream")
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Conversion successful"
    assert body["bundle"]["entry"][0]["resource"]["meta"]["versionId"] == 1


def test_nan_in_reply_is_json_server_error(converter_client, llm_reply):
    llm_reply('{"resourceType": "InsurancePlan", "name": "Gold", "extension": [{"valueDecimal": NaN}]}')
    resp = _upload(converter_client, "plans.xlsx", _xlsx_bytes(), "application/octet-stream")
    assert resp.status_code == 500
    assert resp.json()["message"].startswith("Server error: Failed to parse JSON response")
