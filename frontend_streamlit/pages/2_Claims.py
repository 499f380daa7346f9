import pandas as pd
import streamlit as st

from hcx_toolkit.timeutils import format_date
from utils.api_client import PAYER, PROVIDER, error_message, get, post
from utils.banners import show_sandbox_banner

st.set_page_config(page_title="Claims", layout="wide")

show_sandbox_banner()

st.title("Claims and Pre-authorisation")

submit_tab, adjudicate_tab = st.tabs(["Provider: submit", "Payer: adjudicate"])

with submit_tab:
    with st.form("claim_submit"):
        use = st.radio("Use", ["claim", "preauthorization"], horizontal=True)
        col1, col2 = st.columns(2)
        with col1:
            patient_name = st.text_input("Patient name", "Priya Devi Singh")
            abha_id = st.text_input("ABHA number", "98-7654-3210-9876")
            insurer = st.text_input("Insurer", "Star Health Insurance")
            provider = st.text_input("Provider", "City Hospital")
            policy_number = st.text_input("Policy number", "POL-2024-002345")
        with col2:
            diagnosis_code = st.text_input("Diagnosis (ICD-10)", "K35.80")
            diagnosis_display = st.text_input("Diagnosis description", "Acute appendicitis")
            service_code = st.text_input("Service code", "44970")
            service_display = st.text_input("Service description", "Laparoscopic appendectomy")
            quantity = st.number_input("Quantity", min_value=1, value=1)
            unit_price = st.number_input("Unit price (INR)", min_value=0.0, value=45000.0)
        submitted = st.form_submit_button("Submit")

    if submitted:
        form = {
            "use": use,
            "patient": {"name": patient_name, "abha_id": abha_id},
            "insurer": {"name": insurer},
            "provider": {"name": provider},
            "policy_number": policy_number,
            "diagnoses": [{"code": diagnosis_code, "display": diagnosis_display}],
            "items": [
                {
                    "code": service_code,
                    "display": service_display,
                    "quantity": int(quantity),
                    "unit_price": unit_price,
                }
            ],
        }
        resp = post(PROVIDER, "/hcx/v1/claim/submit", json=form)
        if resp.status_code != 200:
            st.error(f"Submission failed: {error_message(resp)}")
        else:
            result = resp.json()
            st.success(f"Submitted with correlation id {result['correlation_id']}")
            with st.expander("Claim bundle"):
                st.json(result.get("bundle", {}))

with adjudicate_tab:
    resp = get(PAYER, "/api/claims")
    if resp.status_code != 200:
        st.error(f"Failed to load claims: {error_message(resp)}")
        st.stop()

    claims = resp.json().get("claims", [])
    if not claims:
        st.info("No claims received yet")
        st.stop()

    rows = [
        {
            "correlationId": c["correlationId"],
            "claimId": c.get("claimId"),
            "use": c.get("use"),
            "patient": c.get("patient", {}).get("name"),
            "total": (c.get("total") or {}).get("value"),
            "status": c.get("status"),
            "received": format_date(c.get("createdAt")),
        }
        for c in claims
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True)

    open_claims = [c for c in claims if c.get("status") in ("pending", "queried")]
    if not open_claims:
        st.info("No claims awaiting adjudication")
        st.stop()

    labels = {c["correlationId"]: f"{c.get('claimId')} ({c.get('patient', {}).get('name')})" for c in open_claims}
    with st.form("claim_adjudicate"):
        correlation_id = st.selectbox("Claim", list(labels), format_func=labels.get)
        decision = st.radio("Decision", ["approved", "rejected"], horizontal=True)
        disposition = st.text_input("Disposition")
        preauth_ref = st.text_input("Pre-auth reference (pre-authorisation only)")
        adjudicate = st.form_submit_button("Send decision")

    if adjudicate:
        payload = {
            "correlationId": correlation_id,
            "decision": decision,
            "disposition": disposition,
            "preauth_ref": preauth_ref or None,
        }
        resp = post(PAYER, "/hcx/v1/claim/adjudicate", json=payload)
        if resp.status_code != 200:
            st.error(f"Adjudication failed: {error_message(resp)}")
        else:
            result = resp.json()
            if result.get("forward", {}).get("status") == "error":
                st.warning(f"Decision stored but forwarding failed: {result['forward'].get('error')}")
            else:
                st.success(f"Claim {result['status']}")
            st.json(result.get("bundle", {}))
