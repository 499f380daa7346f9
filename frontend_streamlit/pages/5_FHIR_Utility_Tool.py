import json

import streamlit as st

from utils.api_client import FHIR_UTILITIES, error_message, get, json_object, post
from utils.banners import show_sandbox_banner

st.set_page_config(page_title="FHIR Utility Tool", layout="wide")

show_sandbox_banner()

st.title("FHIR Utility Tool")

SAMPLES = {
    "patient": {
        "resourceType": "Patient",
        "identifier": [{"system": "https://healthid.abdm.gov.in", "value": "12-3456-7890-1234"}],
        "name": [{"given": ["Rajesh", "Kumar"], "family": "Sharma"}],
        "gender": "male",
        "birthDate": "1985-03-15",
    },
    "coverage": {
        "status": "active",
        "beneficiary": "Patient/example",
        "payor": ["Organization/star-health"],
        "subscriberId": "POL-2024-001234",
    },
    "coverage-eligibility-request": {
        "identifier": [{"value": "CER-0001"}],
        "status": "active",
        "priority": {"code": "normal"},
        "purpose": ["benefits"],
        "patient": "Patient/example",
        "created": "2024-06-01",
        "enterer": "Practitioner/example",
        "provider": "Organization/city-hospital",
        "insurer": "Organization/star-health",
        "facility": "Location/ward-1",
        "insurance": [{"coverage": "Coverage/example"}],
    },
    "claim": {
        "resourceType": "Claim",
        "identifier": [{"value": "CLM-0001"}],
        "status": "active",
        "type": {"code": "institutional", "system": "http://terminology.hl7.org/CodeSystem/claim-type"},
        "use": "claim",
        "patient": "Patient/example",
        "created": "2024-06-01",
        "insurer": "Organization/star-health",
        "provider": "Organization/city-hospital",
        "priority": {"code": "normal"},
        "diagnosis": [
            {
                "sequence": 1,
                "diagnosisCodeableConcept": {"code": "K35.80", "display": "Acute appendicitis"},
                "type": ["principal"],
            }
        ],
        "insurance": [{"sequence": 1, "focal": True, "coverage": "Coverage/example"}],
        "item": [{"sequence": 1, "productOrService": {"code": "44970"}, "unitPrice": {"value": 45000}}],
    },
    "insurance-plan": {
        "identifier": [{"value": "PLAN-BASIC-01"}],
        "status": "active",
        "type": {"code": "01", "display": "Hospitalisation Indemnity Policy"},
        "name": "Basic Health Plan",
        "period": {"start": "2024-01-01", "end": "2024-12-31"},
        "ownedBy": "Organization/star-health",
        "coverage": [{"type": "In Patient Hospitalization", "benefit": [{"type": "Room rent"}]}],
    },
}

resource = st.selectbox("Resource", list(SAMPLES))

if st.checkbox("Show input schema"):
    resp = get(FHIR_UTILITIES, f"/api/fhir/{resource}/schema")
    if resp.status_code == 200:
        st.json(resp.json().get("schema", {}))
    else:
        st.error(error_message(resp))

text = st.text_area("Input JSON", json.dumps(SAMPLES[resource], indent=2), height=360, key=f"input_{resource}")

if st.button("Build resource"):
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        st.error(f"Invalid JSON: {exc}")
        st.stop()

    resp = post(FHIR_UTILITIES, f"/api/fhir/{resource}", json=payload)
    body = json_object(resp) or {}
    if resp.status_code == 200:
        st.success("Resource built")
        st.json(body.get("data", {}))
    elif resp.status_code == 400:
        st.error("Validation failed")
        for detail in body.get("details") or []:
            st.write(f"- {detail}")
    else:
        st.error(error_message(resp))
